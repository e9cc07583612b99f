"""
Recurrence detection over a user's completed-task history.

Completed tasks are grouped into clusters of the same intent, each cluster
is scored on how often and how regularly it was done, and the clusters
that look due again become suggestion candidates.
"""
import logging
import math
from datetime import datetime, timedelta
from typing import Iterable, Optional

from database import get_completed_tasks_since, get_open_tasks, to_local_naive
from models import SuggestionCandidate, SuggestionSourceType, TaskHistoryEntry, TextCluster
from suggestions.fingerprint import generate_fingerprint
from suggestions.text_similarity import (
    are_tasks_same_intent,
    contains_maintenance_keyword,
    jaccard_similarity,
    normalize_text,
)

logger = logging.getLogger(__name__)

MIN_OCCURRENCES_FOR_SUGGESTION = 2
MIN_CONFIDENCE_THRESHOLD = 0.75
LOOKBACK_DAYS = 180
MAX_CANDIDATES = 5

# A cluster is "due" once this fraction of its average interval has elapsed
OVERDUE_FRACTION = 0.8
OCCURRENCE_SATURATION = 5
OCCURRENCE_WEIGHT = 0.6
REGULARITY_WEIGHT = 0.4
MAINTENANCE_BOOST = 1.1

SECONDS_PER_DAY = 24 * 60 * 60


def _interval_days(dates: list[datetime]) -> list[float]:
    """Gaps in (fractional) days between consecutive sorted dates."""
    return [
        (later - earlier).total_seconds() / SECONDS_PER_DAY
        for earlier, later in zip(dates, dates[1:])
    ]


def cluster_similar_tasks(tasks: Iterable[TaskHistoryEntry]) -> list[TextCluster]:
    """
    Greedy single-pass clustering.

    Each unassigned task seeds a cluster and absorbs every other unassigned
    task whose similarity to the seed (not to the growing cluster) is at
    least SIMILARITY_THRESHOLD. Result depends on input order.
    """
    tasks = list(tasks)
    clusters: list[TextCluster] = []
    assigned: set[str] = set()

    for task in tasks:
        if task.id in assigned:
            continue

        cluster = TextCluster(
            normalized_text=normalize_text(task.text),
            task_ids=[task.id],
            texts=[task.text],
            completed_dates=[task.completed_at] if task.completed_at else [],
        )
        assigned.add(task.id)

        for other in tasks:
            if other.id in assigned:
                continue
            if are_tasks_same_intent(task.text, other.text):
                cluster.task_ids.append(other.id)
                cluster.texts.append(other.text)
                if other.completed_at:
                    cluster.completed_dates.append(other.completed_at)
                assigned.add(other.id)

        cluster.completed_dates.sort()
        intervals = _interval_days(cluster.completed_dates)
        if intervals:
            cluster.average_interval_days = sum(intervals) / len(intervals)

        clusters.append(cluster)

    return clusters


def calculate_regularity_score(cluster: TextCluster) -> float:
    """1 - coefficient of variation of the completion intervals, floored at 0."""
    intervals = _interval_days(cluster.completed_dates)
    if not intervals:
        return 0.0

    mean = sum(intervals) / len(intervals)
    variance = sum((value - mean) ** 2 for value in intervals) / len(intervals)
    coefficient_of_variation = math.sqrt(variance) / mean if mean > 0 else 1.0

    return max(0.0, 1.0 - coefficient_of_variation)


def calculate_occurrence_score(cluster: TextCluster) -> float:
    return min(1.0, cluster.occurrences / OCCURRENCE_SATURATION)


def calculate_confidence(occurrence_score: float, regularity_score: float, is_maintenance: bool) -> float:
    confidence = OCCURRENCE_WEIGHT * occurrence_score + REGULARITY_WEIGHT * regularity_score
    if is_maintenance:
        confidence = min(1.0, confidence * MAINTENANCE_BOOST)
    return confidence


def is_overdue(cluster: TextCluster, now: datetime) -> bool:
    if not cluster.completed_dates or cluster.average_interval_days <= 0:
        return False

    last_completed = cluster.completed_dates[-1]
    days_since = (now - last_completed).total_seconds() / SECONDS_PER_DAY
    return days_since >= cluster.average_interval_days * OVERDUE_FRACTION


def most_representative_text(texts: list[str]) -> str:
    """The text with the highest summed similarity to the others; first one wins ties."""
    if len(texts) == 1:
        return texts[0]

    best_text = texts[0]
    best_score = 0.0
    for text in texts:
        score = sum(jaccard_similarity(text, other) for other in texts)
        if score > best_score:
            best_score = score
            best_text = text
    return best_text


def score_cluster(
    cluster: TextCluster,
    open_task_texts: list[str],
    now: datetime,
) -> Optional[SuggestionCandidate]:
    """Turn a cluster into a candidate, or None if any gate rejects it."""
    if cluster.occurrences < MIN_OCCURRENCES_FOR_SUGGESTION:
        return None
    if not is_overdue(cluster, now):
        return None

    text = most_representative_text(cluster.texts)

    if any(are_tasks_same_intent(text, open_text) for open_text in open_task_texts):
        logger.debug("Skipping %r: similar task already open", text)
        return None

    is_maintenance = contains_maintenance_keyword(text)
    source_type = SuggestionSourceType.MAINTENANCE if is_maintenance else SuggestionSourceType.RECURRENCE

    confidence = calculate_confidence(
        calculate_occurrence_score(cluster),
        calculate_regularity_score(cluster),
        is_maintenance,
    )
    if confidence < MIN_CONFIDENCE_THRESHOLD:
        logger.debug("Skipping %r: confidence %.3f below threshold", text, confidence)
        return None

    interval_days = round(cluster.average_interval_days)
    return SuggestionCandidate(
        suggested_text=text,
        source_type=source_type,
        confidence=confidence,
        why=f'You\'ve done "{text}" {cluster.occurrences} times, roughly every {interval_days} days',
        fingerprint=generate_fingerprint(text, source_type),
        related_task_ids=list(cluster.task_ids),
    )


def rank_candidates(
    clusters: list[TextCluster],
    open_task_texts: list[str],
    now: datetime,
) -> list[SuggestionCandidate]:
    candidates = []
    for cluster in clusters:
        candidate = score_cluster(cluster, open_task_texts, now)
        if candidate:
            candidates.append(candidate)

    candidates.sort(key=lambda c: c.confidence, reverse=True)
    return candidates[:MAX_CANDIDATES]


def generate_suggestions(user_id: str, now: Optional[datetime] = None) -> list[SuggestionCandidate]:
    """Mine the user's recent completions for recurring tasks that look due again."""
    now = to_local_naive(now or datetime.now())
    completed = get_completed_tasks_since(user_id, now - timedelta(days=LOOKBACK_DAYS))

    if len(completed) < MIN_OCCURRENCES_FOR_SUGGESTION:
        return []

    clusters = cluster_similar_tasks(completed)
    open_task_texts = [task.text for task in get_open_tasks(user_id)]
    candidates = rank_candidates(clusters, open_task_texts, now)

    logger.info(
        "Generated %d candidate(s) for user=%s from %d completed task(s) in %d cluster(s)",
        len(candidates), user_id, len(completed), len(clusters),
    )
    return candidates
