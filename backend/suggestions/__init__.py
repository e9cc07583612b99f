"""Proactive suggestions mined from completed-task history."""
from suggestions.generator import generate_suggestions
from suggestions.lifecycle import (
    SuggestionNotFoundError,
    accept_suggestion,
    dismiss_suggestion,
    get_suggestions_for_user,
    never_suggestion,
    snooze_suggestion,
)

__all__ = [
    "SuggestionNotFoundError",
    "accept_suggestion",
    "dismiss_suggestion",
    "generate_suggestions",
    "get_suggestions_for_user",
    "never_suggestion",
    "snooze_suggestion",
]
