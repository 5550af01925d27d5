"""Content truncation and relevance-based extraction for tool output"""
import re
from dataclasses import dataclass
from typing import List, Optional

from ..tools.results import ToolResults
from ..utils.structured_logger import get_logger
from ..utils.text import query_terms

logger = get_logger(__name__)


@dataclass
class TruncationConfig:
    """Character budgets per tool"""
    rag_max_length: int = 10000
    deep_search_max_length: int = 5000
    web_scraper_max_length: int = 8000


DEFAULT_TRUNCATION_LIMITS = TruncationConfig()

MARKDOWN_HEADING = re.compile(r"^#{1,6}\s+\S")
LIST_ITEM = re.compile(r"^\s*(?:[-*•]|\d+[.)])\s+", re.MULTILINE)
SENTENCE_END = re.compile(r"(?<=[.!?])\s+")
PARAGRAPH_BREAK = re.compile(r"\n\s*\n")

MIN_PARTIAL_LENGTH = 40
CHUNK_TARGET_LENGTH = 500

KEY_BUSINESS_TERMS = (
    "price", "pricing", "package", "session", "booking", "book", "contact", "service",
    "studio", "photography", "portrait", "wedding", "offer", "guarantee", "testimonial",
    "review", "location", "hours",
)

def truncate_content(content: str, max_length: int, label: str) -> str:
    """
    Hard-truncate content and append a note with the original length

    Args:
        content: Text to truncate
        max_length: Maximum number of characters kept
        label: Name used in the note (e.g. "Knowledge Base")

    Returns:
        "" for empty input, the content unchanged when it fits, otherwise the
        first max_length characters followed by the truncation note
    """
    if not content:
        return ""

    if len(content) <= max_length:
        return content

    logger.info("Truncated content", label=label, original_length=len(content), truncated_length=max_length)
    return f"{content[:max_length]}\n\n[{label} truncated for brevity. Total length: {len(content)} characters]"


def _is_heading(line: str) -> bool:
    stripped = line.strip()
    if not stripped:
        return False
    if MARKDOWN_HEADING.match(stripped):
        return True
    if len(stripped) <= 60 and stripped.endswith(":"):
        return True
    if len(stripped) > 80 or not any(c.isalpha() for c in stripped):
        return False
    if stripped.isupper():
        return True

    words = stripped.split()
    if len(words) > 8 or stripped[-1] in ".!?,;":
        return False
    significant = [w for w in words if w[0].isalpha() and len(w) > 3]
    return words[0][0].isupper() and all(w[0].isupper() for w in significant)


def _chunk_sentences(text: str) -> List[str]:
    chunks, current = [], ""
    for sentence in SENTENCE_END.split(text):
        if current and len(current) + 1 + len(sentence) > CHUNK_TARGET_LENGTH:
            chunks.append(current)
            current = sentence
        else:
            current = f"{current} {sentence}" if current else sentence
    if current:
        chunks.append(current)
    return chunks


def split_sections(text: str) -> List[str]:
    """
    Split text into sections at heading-like lines

    Falls back to paragraphs when there are no headings, and to sentence
    chunks when the text is a single block.
    """
    lines = text.split("\n")
    # a lone line is never treated as a heading of itself
    if len(lines) > 1 and any(_is_heading(line) for line in lines):
        sections, current = [], []
        for line in lines:
            if _is_heading(line) and current:
                sections.append("\n".join(current))
                current = []
            current.append(line)
        if current:
            sections.append("\n".join(current))
    else:
        sections = PARAGRAPH_BREAK.split(text)

    sections = [s.strip() for s in sections if s.strip()]
    if len(sections) == 1:
        sections = _chunk_sentences(sections[0])
    return sections


def score_section(section: str, index: int, total: int, terms: List[str]) -> float:
    """Position, query keyword and structure score; higher is more relevant"""
    lowered = section.lower()
    score = (total - index) / total
    score += sum(lowered.count(term) for term in terms)

    if _is_heading(section.split("\n", 1)[0]):
        score += 1.5
    if LIST_ITEM.search(section):
        score += 0.5
    score += 0.25 * sum(1 for term in KEY_BUSINESS_TERMS if term in lowered)
    return score


def _leading_sentences(section: str, limit: int) -> str:
    """As many leading sentences of a section as fit in limit characters"""
    taken = ""
    for sentence in SENTENCE_END.split(section):
        candidate = f"{taken} {sentence}" if taken else sentence
        if len(candidate) > limit:
            break
        taken = candidate
    return taken


def extract_relevant_content(content: str, max_length: int, query: Optional[str] = None) -> str:
    """
    Keep the most relevant sections of content within max_length characters

    Sections are ranked by score (ties keep document order), taken greedily
    while they fit, and reassembled in their original order. A section that
    does not fit contributes its leading sentences when there is room.
    The returned body never exceeds max_length; a note about the original
    length follows it.
    """
    if not content:
        return ""
    if len(content) <= max_length:
        return content

    note = f"\n\n[Content condensed to the most relevant sections. Original length: {len(content)} characters]"
    sections = split_sections(content)
    terms = query_terms(query)

    ranked = sorted(
        ((score_section(s, i, len(sections), terms), i, s) for i, s in enumerate(sections)),
        key=lambda item: -item[0],
    )

    chosen = {}
    used = 0
    for _, index, section in ranked:
        separator = 2 if chosen else 0
        if used + separator + len(section) <= max_length:
            chosen[index] = section
            used += separator + len(section)
            continue

        remaining = max_length - used - separator
        if remaining >= MIN_PARTIAL_LENGTH:
            partial = _leading_sentences(section, remaining)
            if partial:
                chosen[index] = partial
                used += separator + len(partial)

    if not chosen:
        return content[:max_length] + note

    body = "\n\n".join(chosen[i] for i in sorted(chosen))
    logger.info(
        "Extracted relevant content",
        original_length=len(content),
        extracted_length=len(body),
        sections_total=len(sections),
        sections_kept=len(chosen),
    )
    return body + note


def optimize_tool_results(
    tool_results: ToolResults,
    config: TruncationConfig = DEFAULT_TRUNCATION_LIMITS,
    query: Optional[str] = None,
) -> ToolResults:
    """
    Fit each tool output into its budget

    Knowledge base content is hard-truncated. Scraped pages and deep search
    output are condensed around the query when one is given.
    """
    optimized = ToolResults()

    if tool_results.rag_content:
        optimized.rag_content = truncate_content(tool_results.rag_content, config.rag_max_length, "Knowledge Base")

    if tool_results.deep_search:
        if query:
            optimized.deep_search = extract_relevant_content(tool_results.deep_search, config.deep_search_max_length, query)
        else:
            optimized.deep_search = truncate_content(tool_results.deep_search, config.deep_search_max_length, "Deep Search")

    if tool_results.web_scraper:
        if query:
            optimized.web_scraper = extract_relevant_content(tool_results.web_scraper, config.web_scraper_max_length, query)
        else:
            optimized.web_scraper = truncate_content(tool_results.web_scraper, config.web_scraper_max_length, "Web Scraper")

    return optimized
