"""
Suggestion lifecycle: anti-spam policy, persistence and state transitions.

Policy applied when surfacing suggestions:
- at most MAX_SUGGESTIONS_PER_DAY records stamped as shown per calendar day
- at most MAX_SUGGESTIONS_SHOWN records returned per call
- fingerprints marked NEVER are blocked permanently
- fingerprints dismissed within DISMISS_COOLDOWN_DAYS are withheld
- candidates similar to a pending suggestion, or sharing a fingerprint with a
  pending/snoozed one, are dropped

The dedup checks and the insert that follows are not atomic. Two concurrent
runs for the same user can both insert a PENDING record with the same
fingerprint; callers that need a hard guarantee must serialize per user.
"""
import logging
import uuid
from datetime import datetime, timedelta
from typing import Awaitable, Callable, Optional

from ai import parse_task_text
from database import (
    count_suggestions_shown_since,
    create_suggestion_db,
    create_task_db,
    find_suggestions_db,
    get_suggestion_db,
    release_expired_snoozes_db,
    to_local_naive,
    update_suggestion_db,
)
from models import AcceptResult, ParsedTask, Quadrant, SuggestedTask, SuggestionCandidate, SuggestionStatus
from suggestions.generator import generate_suggestions
from suggestions.text_similarity import are_tasks_same_intent

logger = logging.getLogger(__name__)

MAX_SUGGESTIONS_PER_DAY = 2
MAX_SUGGESTIONS_SHOWN = 2
DISMISS_COOLDOWN_DAYS = 7
SNOOZE_HOURS = 24

NON_TERMINAL_STATUSES = (SuggestionStatus.PENDING, SuggestionStatus.SNOOZED)

TaskParser = Callable[[str], Awaitable[ParsedTask]]


class SuggestionNotFoundError(LookupError):
    """Suggestion does not exist or belongs to another user."""

    def __init__(self, suggestion_id: str):
        super().__init__(f"Suggestion not found: {suggestion_id}")
        self.suggestion_id = suggestion_id


def _start_of_day(now: datetime) -> datetime:
    return now.replace(hour=0, minute=0, second=0, microsecond=0)


def _eligible_pending(user_id: str, now: datetime) -> list[SuggestedTask]:
    return find_suggestions_db(
        user_id,
        statuses=[SuggestionStatus.PENDING],
        eligible_at=now,
        limit=MAX_SUGGESTIONS_SHOWN,
    )


def _rejection_reason(
    user_id: str,
    candidate: SuggestionCandidate,
    blocked: set[str],
    recently_dismissed: set[str],
) -> Optional[str]:
    if candidate.fingerprint in blocked:
        return "blocked"
    if candidate.fingerprint in recently_dismissed:
        return "dismissed recently"

    pending = find_suggestions_db(user_id, statuses=[SuggestionStatus.PENDING])
    if any(are_tasks_same_intent(candidate.suggested_text, s.suggested_text) for s in pending):
        return "similar pending suggestion"

    if find_suggestions_db(user_id, statuses=NON_TERMINAL_STATUSES, fingerprint=candidate.fingerprint, limit=1):
        return "already suggested"

    return None


def get_suggestions_for_user(user_id: str, now: Optional[datetime] = None) -> list[SuggestedTask]:
    """
    Suggestions to show right now, at most MAX_SUGGESTIONS_SHOWN.

    Returns existing pending suggestions when there are enough of them;
    otherwise runs the generator, stores the candidates that pass policy,
    and returns the top pending ones.
    """
    now = to_local_naive(now or datetime.now())

    shown_today = count_suggestions_shown_since(user_id, _start_of_day(now))
    if shown_today >= MAX_SUGGESTIONS_PER_DAY:
        logger.debug("Daily suggestion cap reached for user=%s (%d shown)", user_id, shown_today)
        return []

    released = release_expired_snoozes_db(user_id, now)
    if released:
        logger.info("Released %d expired snooze(s) for user=%s", released, user_id)

    existing = _eligible_pending(user_id, now)
    if len(existing) >= MAX_SUGGESTIONS_SHOWN:
        return [
            update_suggestion_db(suggestion.id, now=now, last_shown_at=now)
            for suggestion in existing
        ]

    blocked = {
        s.fingerprint for s in find_suggestions_db(user_id, statuses=[SuggestionStatus.NEVER])
    }
    recently_dismissed = {
        s.fingerprint
        for s in find_suggestions_db(
            user_id,
            statuses=[SuggestionStatus.DISMISSED],
            updated_since=now - timedelta(days=DISMISS_COOLDOWN_DAYS),
        )
    }

    for candidate in generate_suggestions(user_id, now=now):
        reason = _rejection_reason(user_id, candidate, blocked, recently_dismissed)
        if reason:
            logger.debug("Dropping candidate %r for user=%s: %s", candidate.suggested_text, user_id, reason)
            continue

        created = create_suggestion_db(
            user_id=user_id,
            suggested_text=candidate.suggested_text,
            source_type=candidate.source_type,
            confidence=candidate.confidence,
            why=candidate.why,
            fingerprint=candidate.fingerprint,
            related_task_ids=candidate.related_task_ids,
            last_shown_at=now,
            now=now,
        )
        logger.info(
            "New suggestion id=%s user=%s source=%s confidence=%.2f",
            created.id, user_id, created.source_type.value, created.confidence,
        )

    return _eligible_pending(user_id, now)


def _get_owned(user_id: str, suggestion_id: str) -> SuggestedTask:
    suggestion = get_suggestion_db(user_id, suggestion_id)
    if suggestion is None:
        raise SuggestionNotFoundError(suggestion_id)
    return suggestion


async def accept_suggestion(
    user_id: str,
    suggestion_id: str,
    quadrant: Quadrant,
    parse: Optional[TaskParser] = None,
    now: Optional[datetime] = None,
) -> AcceptResult:
    """
    Turn a suggestion into a real task in the chosen quadrant.

    The suggestion text is run through the parsing collaborator to get XP;
    if that fails the task is still created, without XP.
    """
    suggestion = _get_owned(user_id, suggestion_id)

    parse = parse or parse_task_text

    xp = None
    ai_scores = None
    try:
        parsed = await parse(suggestion.suggested_text)
        xp = parsed.xp
        ai_scores = parsed.ai_scores
    except Exception:
        logger.warning("Task parsing failed for suggestion id=%s; accepting without XP", suggestion_id, exc_info=True)

    task = create_task_db(
        task_id=str(uuid.uuid4()),
        user_id=user_id,
        text=suggestion.suggested_text,
        quadrant=quadrant,
        xp=xp,
        ai_scores=ai_scores,
    )
    update_suggestion_db(suggestion.id, now=now, status=SuggestionStatus.ACCEPTED)
    logger.info("Suggestion id=%s accepted as task id=%s (xp=%s)", suggestion_id, task.id, xp)

    return AcceptResult(task_id=task.id, xp=xp)


def snooze_suggestion(user_id: str, suggestion_id: str, now: Optional[datetime] = None) -> None:
    suggestion = _get_owned(user_id, suggestion_id)
    now = to_local_naive(now or datetime.now())
    update_suggestion_db(
        suggestion.id,
        now=now,
        status=SuggestionStatus.SNOOZED,
        snooze_until=now + timedelta(hours=SNOOZE_HOURS),
    )
    logger.info("Suggestion id=%s snoozed for %dh", suggestion_id, SNOOZE_HOURS)


def dismiss_suggestion(user_id: str, suggestion_id: str, now: Optional[datetime] = None) -> None:
    suggestion = _get_owned(user_id, suggestion_id)
    update_suggestion_db(suggestion.id, now=now, status=SuggestionStatus.DISMISSED)
    logger.info("Suggestion id=%s dismissed", suggestion_id)


def never_suggestion(user_id: str, suggestion_id: str, now: Optional[datetime] = None) -> None:
    suggestion = _get_owned(user_id, suggestion_id)
    update_suggestion_db(suggestion.id, now=now, status=SuggestionStatus.NEVER)
    logger.info("Suggestion id=%s blocked permanently", suggestion_id)
