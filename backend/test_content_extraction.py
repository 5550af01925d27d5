"""Tests for tool output truncation and relevance extraction"""
from marlan.chat.content import (
    TruncationConfig,
    extract_relevant_content,
    optimize_tool_results,
    split_sections,
    truncate_content,
)
from marlan.tools.results import ToolResults
from marlan.utils.text import query_terms

NOTE_MARKER = "\n\n[Content condensed to the most relevant sections."

STUDIO_PAGE = "\n".join([
    "# Harbor Light Photography",
    "We are a family run studio on the waterfront, photographing the coast since 2009.",
    "",
    "## Wedding Packages",
    "Wedding packages start at $2,400 and include eight hours of coverage.",
    "- Second shooter available",
    "- Online gallery with print credit",
    "",
    "## Our Story",
    "Our founder started with a borrowed camera and a love of tide pools. " * 6,
    "",
    "## Newborn Sessions",
    "Newborn sessions take place in our warm studio with all props provided. " * 4,
    "",
    "## Contact",
    "Call us or use the booking form to check availability for your date.",
])


def _body(result: str) -> str:
    return result.split(NOTE_MARKER)[0]


def test_truncate_content_empty_input():
    assert truncate_content("", 100, "Knowledge Base") == ""


def test_truncate_content_keeps_short_content():
    assert truncate_content("short text", 100, "Knowledge Base") == "short text"


def test_truncate_content_keeps_prefix_and_reports_length():
    content = "x" * 250
    for max_length in (1, 10, 100, 249):
        result = truncate_content(content, max_length, "Deep Search")
        assert result.startswith(content[:max_length])
        assert result[max_length:] == "\n\n[Deep Search truncated for brevity. Total length: 250 characters]"


def test_extract_returns_content_unchanged_when_it_fits():
    assert extract_relevant_content(STUDIO_PAGE, len(STUDIO_PAGE)) == STUDIO_PAGE
    assert extract_relevant_content("", 10) == ""


def test_extract_body_never_exceeds_budget():
    for max_length in (60, 150, 300, 500, 800):
        result = extract_relevant_content(STUDIO_PAGE, max_length, query="wedding pricing")
        assert NOTE_MARKER in result
        assert len(_body(result)) <= max_length
        assert f"Original length: {len(STUDIO_PAGE)} characters" in result


def test_extract_prefers_sections_matching_the_query():
    result = extract_relevant_content(STUDIO_PAGE, 300, query="wedding packages price")
    assert "Wedding packages start at $2,400" in result
    assert "borrowed camera" not in result


def test_extract_keeps_original_section_order():
    result = extract_relevant_content(STUDIO_PAGE, 600, query="wedding contact booking")
    body = _body(result)
    assert body.index("Wedding Packages") < body.index("Contact")


def test_extract_handles_single_block_without_breaks():
    text = "Light matters in every frame. " * 100
    result = extract_relevant_content(text, 400)
    assert len(_body(result)) <= 400
    assert _body(result).startswith("Light matters")


def test_split_sections_uses_headings():
    sections = split_sections(STUDIO_PAGE)
    assert sections[0].startswith("# Harbor Light Photography")
    assert any(s.startswith("## Wedding Packages") for s in sections)
    assert any(s.startswith("## Contact") for s in sections)


def test_split_sections_falls_back_to_paragraphs():
    text = "first paragraph about lenses.\n\nsecond paragraph about lighting."
    assert split_sections(text) == ["first paragraph about lenses.", "second paragraph about lighting."]


def test_optimize_tool_results_applies_each_budget():
    results = ToolResults(
        rag_content="k" * 50,
        web_scraper=STUDIO_PAGE,
        deep_search="d" * 50,
    )
    limits = TruncationConfig(rag_max_length=20, deep_search_max_length=100, web_scraper_max_length=300)

    optimized = optimize_tool_results(results, limits, query="wedding packages")

    assert optimized.rag_content.startswith("k" * 20)
    assert "Knowledge Base truncated for brevity" in optimized.rag_content
    assert optimized.deep_search == "d" * 50
    assert len(_body(optimized.web_scraper)) <= 300


def test_optimize_tool_results_without_query_truncates():
    results = ToolResults(web_scraper="w" * 30)
    optimized = optimize_tool_results(results, TruncationConfig(web_scraper_max_length=10))
    assert optimized.web_scraper.startswith("w" * 10)
    assert "Web Scraper truncated for brevity" in optimized.web_scraper
    assert optimized.rag_content is None


def test_query_terms_drop_stopwords_and_repeats():
    assert query_terms("What should I charge for a wedding, and for wedding albums?") == [
        "charge", "wedding", "albums",
    ]
    assert query_terms("") == []
    assert query_terms(None) == []
