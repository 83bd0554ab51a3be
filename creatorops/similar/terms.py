"""
Title tokenization, top-term extraction and term-set overlap.
"""
import re
from collections import Counter
from typing import Iterable

MIN_TOKEN_LENGTH = 4
MAX_TOKENS_PER_TITLE = 40
TOP_TERMS = 6

STOP_WORDS = frozenset([
    "this", "that", "with", "from", "your", "have", "will", "what",
    "when", "where", "about", "into", "over", "under", "after", "before",
])

# Title analysis uses a slightly different stop list
ANALYZER_STOP_WORDS = frozenset([
    "the", "and", "for", "with", "your", "that", "this", "from", "into",
    "over", "under", "what", "when", "where", "how",
])

RISK_WORDS = [
    "instantly", "miracle", "guaranteed", "ban", "banned", "cure",
    "reverse aging", "secret", "shocking", "urgent", "warning",
]

_NON_ALNUM_RE = re.compile(r"[^a-z0-9\s]")


def tokenize(text: str) -> list[str]:
    """Lowercase, drop non [a-z0-9] characters, keep words of 4+ chars.

    At most 40 tokens are returned per call.
    """
    cleaned = _NON_ALNUM_RE.sub(" ", (text or "").lower())
    tokens = [w for w in cleaned.split() if len(w) >= MIN_TOKEN_LENGTH]
    return tokens[:MAX_TOKENS_PER_TITLE]


def top_terms(titles: Iterable[str], limit: int = TOP_TERMS) -> list[str]:
    """Most frequent non-stop-word tokens across ``titles``.

    Equal counts keep first-encountered order.
    """
    counts: Counter = Counter()
    for title in titles:
        for word in tokenize(title):
            if word in STOP_WORDS:
                continue
            counts[word] += 1
    return [word for word, _ in counts.most_common(limit)]


def overlap_score(a: Iterable[str], b: Iterable[str]) -> float:
    """Jaccard index of two term sets, in [0, 1]. An empty union counts as 1."""
    set_a = set(a)
    set_b = set(b)
    union = len(set_a | set_b) or 1
    return len(set_a & set_b) / union


def similarity_percent(a: Iterable[str], b: Iterable[str]) -> float:
    """Overlap as a 0-100 percentage rounded to 2 decimals."""
    return round(overlap_score(a, b) * 100, 2)


def normalize_pattern(title: str) -> str:
    """Reduce a title to its reusable shape (digits become ``{n}``)."""
    text = (title or "").lower()
    text = re.sub(r"\d+", "{n}", text)
    text = re.sub(r"[“”\"'`]", "", text)
    text = re.sub(r"[^a-z0-9{}\s]", " ", text)
    return re.sub(r"\s+", " ", text).strip()


def analyze_titles(titles: list[str]) -> dict:
    """Summarise title patterns, keywords and risky wording."""
    patterns: Counter = Counter()
    words: Counter = Counter()
    risks: Counter = Counter()

    for title in titles:
        patterns[normalize_pattern(title)] += 1

        cleaned = _NON_ALNUM_RE.sub(" ", (title or "").lower())
        for word in cleaned.split():
            if len(word) >= MIN_TOKEN_LENGTH and word not in ANALYZER_STOP_WORDS:
                words[word] += 1

        lower = (title or "").lower()
        for risk in RISK_WORDS:
            if risk in lower:
                risks[risk] += 1

    return {
        "total_titles": len(titles),
        "top_patterns": [
            {"pattern": p, "count": c} for p, c in patterns.most_common(10)
        ],
        "top_keywords": [
            {"keyword": w, "count": c} for w, c in words.most_common(20)
        ],
        "risk_hits": [{"word": w, "count": c} for w, c in risks.most_common()],
    }
