from typing import Any, Optional

from models import AiScores

VALID_XP_VALUES = (5, 15, 30, 60, 100)

DEFAULT_AI_SCORES = AiScores(
    future_pain_score=0.5,
    urgency_score=0.5,
    friction_score=0.5,
)

# Keys as returned by the parsing model (camelCase) and as stored (snake_case)
_SCORE_KEYS = {
    "future_pain_score": ("futurePainScore", "future_pain_score"),
    "urgency_score": ("urgencyScore", "urgency_score"),
    "friction_score": ("frictionScore", "friction_score"),
}


def calculate_xp_from_scores(scores: AiScores) -> int:
    """Bucket the weighted score into one of VALID_XP_VALUES."""
    raw = (
        0.5 * scores.future_pain_score
        + 0.3 * scores.urgency_score
        + 0.2 * scores.friction_score
    )

    if raw < 0.2:
        return 5
    if raw < 0.4:
        return 15
    if raw < 0.6:
        return 30
    if raw < 0.8:
        return 60
    return 100


def _clamp(value: float) -> float:
    return max(0.0, min(1.0, float(value)))


def validate_ai_scores(scores: Any) -> Optional[AiScores]:
    """
    Validate raw scores from the parsing model.
    Returns None if any score is missing or not a number; clamps the rest to [0, 1].
    """
    if not isinstance(scores, dict):
        return None

    values = {}
    for field, keys in _SCORE_KEYS.items():
        value = next((scores[k] for k in keys if k in scores), None)
        if not isinstance(value, (int, float)) or isinstance(value, bool):
            return None
        values[field] = _clamp(value)

    return AiScores(**values)
