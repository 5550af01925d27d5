"""Tool output types consumed by the prompt builder"""
from typing import List, Optional

from pydantic import BaseModel


class ToolResult(BaseModel):
    """One tool's output, labelled with the tool's display name"""
    content: str
    source: str
    length: int
    error: Optional[str] = None


class ToolResults(BaseModel):
    """Tool outputs folded into the system prompt"""
    rag_content: Optional[str] = None
    web_scraper: Optional[str] = None
    deep_search: Optional[str] = None

    def entries(self) -> List[ToolResult]:
        """Non-empty outputs as ToolResult records: knowledge base, deep search, web scraper"""
        pairs = (
            ("Knowledge Base", self.rag_content),
            ("Deep Search", self.deep_search),
            ("Web Scraper", self.web_scraper),
        )
        return [
            ToolResult(content=content, source=source, length=len(content))
            for source, content in pairs
            if content
        ]
