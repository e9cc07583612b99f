import hashlib

from models import SuggestionSourceType
from suggestions.text_similarity import normalize_text


def generate_fingerprint(text: str, source_type: SuggestionSourceType) -> str:
    """SHA-256 of the normalized text and source type; the dedup/block key for suggestions."""
    source = getattr(source_type, "value", source_type)
    payload = f"{normalize_text(text)}:{source}"
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()
