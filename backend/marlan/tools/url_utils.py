"""URL detection helpers"""
import re
from typing import List

from ..utils.structured_logger import get_logger

logger = get_logger(__name__)

# Explicit scheme or www. prefix; bare words like "e.g." never match here
URL_REGEX = re.compile(
    r"(?:https?://(?:www\.)?[-a-zA-Z0-9@:%._+~#=]{1,256}\.[a-zA-Z0-9()]{1,6}\b(?:[-a-zA-Z0-9()@:%_+.~#?&/=]*))"
    r"|(?:www\.[-a-zA-Z0-9@:%._+~#=]{1,256}\.[a-zA-Z0-9()]{1,6}\b(?:[-a-zA-Z0-9()@:%_+.~#?&/=]*))",
    re.IGNORECASE,
)

DOMAIN_REGEX = re.compile(r"^[a-zA-Z0-9][-a-zA-Z0-9]*(\.[a-zA-Z0-9][-a-zA-Z0-9]*)+$")

# Abbreviations that look like domains
COMMON_FALSE_POSITIVES = (
    "e.g.", "i.e.", "etc.", "vs.", "a.m.", "p.m.",
    "fig.", "ca.", "et al.", "n.b.", "p.s.",
)

TRAILING_PUNCTUATION = ".,;:!?"


def is_domain_like(text: str) -> bool:
    """True for strings such as example.com or sub.domain.co.uk"""
    if text.lower() in COMMON_FALSE_POSITIVES:
        return False
    tld = text.rsplit(".", 1)[-1]
    # numeric suffixes (3.14159, 1.0.2) are not domains
    return bool(DOMAIN_REGEX.match(text)) and len(tld) >= 2 and tld.isalpha()


def ensure_protocol(url: str) -> str:
    if not url.startswith(("http://", "https://")):
        return f"https://{url}"
    return url


def extract_urls(text: str) -> List[str]:
    """
    Extract URLs from free text

    URLs with a scheme or a www. prefix are matched first. Only when none are
    found are bare domain-like words considered.

    Args:
        text: Message text

    Returns:
        URLs in order of appearance, without duplicates or trailing punctuation
    """
    if not text:
        return []

    result = [m.rstrip(TRAILING_PUNCTUATION) for m in URL_REGEX.findall(text)]

    if not result:
        for word in text.split():
            clean = word.rstrip(TRAILING_PUNCTUATION)
            if len(clean) < 5:
                continue
            if any(fp in clean.lower() for fp in COMMON_FALSE_POSITIVES):
                continue
            if is_domain_like(clean):
                result.append(clean)

    urls = list(dict.fromkeys(u for u in result if u))
    if urls:
        logger.info("URLs detected in text", url_count=len(urls), urls=[ensure_protocol(u) for u in urls])
    return urls
