"""
On-Page SEO Scraper

Fetches a page and scores six on-page checks (100 points total):

    Title           20  present (10) + 30-60 chars (10, otherwise 5)
    Description     20  present (10) + 120-160 chars (10, otherwise 5)
    H1              15  exactly one (15), several (8)
    H2              15  two or more (15), one (8)
    Content length  20  1000+ words (20), 500+ (15), 300+ (10), any (5)
    Keywords        10  8+ distinct (10), 5+ (7), any (3)

Parsing is regex based on purpose: it only needs the handful of tags above and
must tolerate broken markup.

analyze_seo() never raises. A fetch failure yields a zero score with the
reason in `issues` and `fetch_error`.
"""

import logging
import re
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..integrations.fetcher import HtmlFetcher

logger = logging.getLogger(__name__)


SEO_FETCH_TIMEOUT = 10.0
MAX_KEYWORDS = 10

STOP_WORDS = frozenset({
    "the", "and", "for", "are", "but", "not", "you", "all", "can", "had",
    "her", "was", "one", "our", "out", "has", "have", "been", "would", "could",
    "their", "will", "when", "who", "get", "which", "make", "more", "some",
    "them", "than", "then", "what", "your", "with", "this", "that", "from",
    "they", "were", "said", "each", "she", "how", "about", "into", "just",
})

TITLE_RE = re.compile(r"<title[^>]*>([^<]+)</title>", re.IGNORECASE)
DESCRIPTION_RES = (
    re.compile(r"""<meta[^>]*name=["']description["'][^>]*content=["']([^"']+)["']""", re.IGNORECASE),
    re.compile(r"""<meta[^>]*content=["']([^"']+)["'][^>]*name=["']description["']""", re.IGNORECASE),
)
HEADING_RES = {
    level: re.compile(rf"<{level}[^>]*>([^<]+)</{level}>", re.IGNORECASE)
    for level in ("h1", "h2", "h3")
}
BODY_RE = re.compile(r"<body[^>]*>([\s\S]*)</body>", re.IGNORECASE)
SCRIPT_RE = re.compile(r"<script[^>]*>[\s\S]*?</script>", re.IGNORECASE)
STYLE_RE = re.compile(r"<style[^>]*>[\s\S]*?</style>", re.IGNORECASE)
TAG_RE = re.compile(r"<[^>]+>")
WHITESPACE_RE = re.compile(r"\s+")
NON_LETTER_RE = re.compile(r"[^a-z]")


@dataclass
class SEOResult:
    """On-page SEO measurements for one URL."""
    score: int = 0
    meta_title: Optional[str] = None
    meta_description: Optional[str] = None
    headings: Dict[str, List[str]] = field(
        default_factory=lambda: {"h1": [], "h2": [], "h3": []}
    )
    word_count: int = 0
    top_keywords: List[str] = field(default_factory=list)
    issues: List[str] = field(default_factory=list)
    fetch_error: Optional[str] = None

    @property
    def fetched(self) -> bool:
        return self.fetch_error is None

    def to_fields(self) -> Dict[str, Any]:
        """Column values shared by analyses and competitors."""
        return {
            "seo_score": self.score,
            "meta_title": self.meta_title,
            "meta_description": self.meta_description,
            "headings": self.headings,
            "word_count": self.word_count,
            "top_keywords": self.top_keywords,
        }


# =============================================================================
# PARSING
# =============================================================================

def clean_text(text: str) -> str:
    return WHITESPACE_RE.sub(" ", text).strip()


def strip_html(html: str) -> str:
    """Visible text of an HTML fragment (scripts and styles dropped)."""
    html = SCRIPT_RE.sub("", html)
    html = STYLE_RE.sub("", html)
    html = TAG_RE.sub(" ", html)
    return clean_text(html)


def extract_top_keywords(words: List[str], limit: int = MAX_KEYWORDS) -> List[str]:
    """
    Most frequent content words.

    Words are lowercased and stripped of non-letters; anything of 3 letters
    or fewer and stop words are ignored. Ties keep first-seen order.
    """
    counts: Counter = Counter()
    for word in words:
        clean = NON_LETTER_RE.sub("", word.lower())
        if len(clean) > 3 and clean not in STOP_WORDS:
            counts[clean] += 1
    return [word for word, _ in counts.most_common(limit)]


def parse_seo(html: str) -> SEOResult:
    """Extract metadata from HTML and score it."""
    result = SEOResult()

    title_match = TITLE_RE.search(html)
    result.meta_title = title_match.group(1).strip() if title_match else None

    for pattern in DESCRIPTION_RES:
        desc_match = pattern.search(html)
        if desc_match:
            result.meta_description = desc_match.group(1).strip()
            break

    for level, pattern in HEADING_RES.items():
        result.headings[level] = [clean_text(m) for m in pattern.findall(html)]

    body_match = BODY_RE.search(html)
    if body_match:
        words = [w for w in strip_html(body_match.group(1)).split() if len(w) > 2]
        result.word_count = len(words)
        result.top_keywords = extract_top_keywords(words)

    result.score = calculate_seo_score(result)
    result.issues = identify_seo_issues(result)
    return result


# =============================================================================
# SCORING
# =============================================================================

def calculate_seo_score(result: SEOResult) -> int:
    score = 0

    # Title (20 points)
    if result.meta_title:
        score += 10
        score += 10 if 30 <= len(result.meta_title) <= 60 else 5

    # Meta description (20 points)
    if result.meta_description:
        score += 10
        score += 10 if 120 <= len(result.meta_description) <= 160 else 5

    # H1 (15 points)
    h1_count = len(result.headings.get("h1", []))
    if h1_count == 1:
        score += 15
    elif h1_count > 1:
        score += 8

    # H2 (15 points)
    h2_count = len(result.headings.get("h2", []))
    if h2_count >= 2:
        score += 15
    elif h2_count == 1:
        score += 8

    # Content length (20 points)
    if result.word_count >= 1000:
        score += 20
    elif result.word_count >= 500:
        score += 15
    elif result.word_count >= 300:
        score += 10
    elif result.word_count > 0:
        score += 5

    # Keyword diversity (10 points)
    keyword_count = len(result.top_keywords)
    if keyword_count >= 8:
        score += 10
    elif keyword_count >= 5:
        score += 7
    elif keyword_count > 0:
        score += 3

    return min(100, score)


def identify_seo_issues(result: SEOResult) -> List[str]:
    issues = []

    if not result.meta_title:
        issues.append("Missing meta title")
    elif len(result.meta_title) < 30:
        issues.append("Meta title is too short (under 30 characters)")
    elif len(result.meta_title) > 60:
        issues.append("Meta title is too long (over 60 characters)")

    if not result.meta_description:
        issues.append("Missing meta description")
    elif len(result.meta_description) < 120:
        issues.append("Meta description is too short (under 120 characters)")
    elif len(result.meta_description) > 160:
        issues.append("Meta description is too long (over 160 characters)")

    h1_count = len(result.headings.get("h1", []))
    if h1_count == 0:
        issues.append("Missing H1 heading")
    elif h1_count > 1:
        issues.append("Multiple H1 headings (should have only one)")

    if not result.headings.get("h2"):
        issues.append("No H2 headings for content structure")

    if result.word_count < 300:
        issues.append("Content is too thin (under 300 words)")

    return issues


# =============================================================================
# ENTRY POINT
# =============================================================================

async def analyze_seo(
    url: str,
    fetcher: HtmlFetcher,
    timeout: float = SEO_FETCH_TIMEOUT,
) -> SEOResult:
    """Fetch `url` and score it. Never raises."""
    try:
        page = await fetcher.fetch(url, timeout=timeout)
    except Exception as e:
        logger.warning(f"SEO analysis could not fetch {url}: {e}")
        return SEOResult(
            score=0,
            issues=[f"Could not fetch website: {e}"],
            fetch_error=str(e),
        )

    result = parse_seo(page.html)
    logger.info(f"SEO score for {url}: {result.score} ({len(result.issues)} issues)")
    return result
