"""Query term extraction shared by document search and content ranking"""
import re
from typing import List, Optional

STOPWORDS = frozenset({
    "the", "and", "for", "are", "but", "not", "you", "all", "any", "can", "her", "was", "one",
    "our", "out", "has", "have", "how", "what", "when", "where", "who", "why", "with", "this",
    "that", "from", "they", "will", "your", "about", "into", "does", "should", "would", "could",
})


def query_terms(query: Optional[str]) -> List[str]:
    """Distinct lowercase words longer than two characters, minus stopwords, in order"""
    if not query:
        return []
    terms = [t for t in re.findall(r"[a-z0-9]+", query.lower()) if len(t) > 2 and t not in STOPWORDS]
    return list(dict.fromkeys(terms))
