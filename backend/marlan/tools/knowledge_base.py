"""Knowledge base tool: document search over the documents table"""
from typing import List

from pydantic import BaseModel, Field

from ..db import database
from ..db.models import KnowledgeDocument
from ..utils.structured_logger import get_logger

logger = get_logger(__name__)

DEFAULT_LIMIT = 5
SIMILARITY_THRESHOLD = 0.3
NO_RESULTS_MESSAGE = "No relevant information found in the knowledge base for this query."


class KnowledgeBaseInput(BaseModel):
    query: str = Field(description="The question or topic to look up in the knowledge base")


def format_documents(documents: List[KnowledgeDocument]) -> str:
    """Render documents as numbered blocks with their similarity"""
    blocks = []
    for i, doc in enumerate(documents, 1):
        title = doc.metadata.get("title")
        header = f"Document {i} [Similarity: {doc.similarity:.2f}]:"
        if title:
            header += f" {title}"
        blocks.append(f"{header}\n{doc.content}")
    return "\n\n".join(blocks)


async def knowledge_base(query: str) -> str:
    documents = await database.search_documents(
        query, limit=DEFAULT_LIMIT, similarity_threshold=SIMILARITY_THRESHOLD
    )
    logger.info("Knowledge base searched", query=query[:100], document_count=len(documents))
    if not documents:
        return NO_RESULTS_MESSAGE
    return format_documents(documents)
