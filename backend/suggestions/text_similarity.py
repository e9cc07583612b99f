"""
Text normalization and token-overlap similarity for task texts.

normalize_text() is order-independent: "Pay rent" and "rent, PAY!" both
normalize to "pay rent". Similarity is Jaccard overlap of the normalized
token sets.
"""
import re

SIMILARITY_THRESHOLD = 0.6

STOPWORDS = frozenset([
    "a", "an", "the", "and", "or", "but", "is", "are", "was", "were",
    "be", "been", "being", "have", "has", "had", "do", "does", "did",
    "will", "would", "could", "should", "may", "might", "must",
    "to", "of", "in", "for", "on", "with", "at", "by", "from",
    "this", "that", "these", "those", "it", "its",
    "my", "your", "his", "her", "our", "their",
    "i", "me", "we", "you", "he", "she", "they",
    "am", "just", "also", "very", "too", "so", "up", "out", "about",
])

MAINTENANCE_KEYWORDS = (
    "renew", "renewal", "check", "backup", "review", "update", "clean",
    "maintain", "maintenance", "inspect", "service", "replace", "refill",
    "restock", "pay", "bill", "subscription", "insurance", "license",
    "registration", "appointment", "checkup", "oil change", "filter",
)

_NON_WORD = re.compile(r"[^\w\s]", re.ASCII)
_WHITESPACE = re.compile(r"\s+")


def normalize_text(text: str) -> str:
    """Lower-case, strip punctuation, drop stop words and 1-char tokens, sort tokens."""
    cleaned = _NON_WORD.sub(" ", text.lower())
    cleaned = _WHITESPACE.sub(" ", cleaned).strip()

    tokens = [
        token for token in cleaned.split(" ")
        if len(token) > 1 and token not in STOPWORDS
    ]
    return " ".join(sorted(tokens))


def tokenize(text: str) -> set[str]:
    return {token for token in normalize_text(text).split(" ") if token}


def jaccard_similarity(text1: str, text2: str) -> float:
    tokens1 = tokenize(text1)
    tokens2 = tokenize(text2)

    if not tokens1 and not tokens2:
        return 1.0
    if not tokens1 or not tokens2:
        return 0.0

    return len(tokens1 & tokens2) / len(tokens1 | tokens2)


def are_tasks_same_intent(text1: str, text2: str, threshold: float = SIMILARITY_THRESHOLD) -> bool:
    return jaccard_similarity(text1, text2) >= threshold


def contains_maintenance_keyword(text: str) -> bool:
    lower_text = text.lower()
    return any(keyword in lower_text for keyword in MAINTENANCE_KEYWORDS)
