from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field

from recurrence import NoRecurrence, Recurrence


class Quadrant(str, Enum):
    URGENT_IMPORTANT = "urgent-important"
    NOT_URGENT_IMPORTANT = "not-urgent-important"
    URGENT_NOT_IMPORTANT = "urgent-not-important"
    NOT_URGENT_NOT_IMPORTANT = "not-urgent-not-important"


class Complexity(str, Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class AiScores(BaseModel):
    future_pain_score: float
    urgency_score: float
    friction_score: float


class Task(BaseModel):
    id: str
    user_id: str
    text: str
    description: Optional[str] = None
    deadline: Optional[datetime] = None
    quadrant: Quadrant
    complexity: Optional[Complexity] = None
    completed: bool = False
    completed_at: Optional[datetime] = None
    show_after: Optional[datetime] = None
    recurrence: Recurrence = Field(default_factory=NoRecurrence)
    xp: Optional[int] = None
    ai_scores: Optional[AiScores] = None
    created_at: datetime
    updated_at: datetime


class TaskCreate(BaseModel):
    text: str = Field(min_length=1)
    quadrant: Quadrant
    description: Optional[str] = None
    deadline: Optional[datetime] = None
    complexity: Optional[Complexity] = None
    show_after: Optional[datetime] = None
    recurrence: Any = None  # free-form, validated by recurrence.validate_recurrence
    xp: Optional[int] = None
    ai_scores: Optional[AiScores] = None


class TaskUpdate(BaseModel):
    text: Optional[str] = None
    description: Optional[str] = None
    deadline: Optional[datetime] = None
    completed: Optional[bool] = None
    completed_at: Optional[datetime] = None
    quadrant: Optional[Quadrant] = None
    complexity: Optional[Complexity] = None
    show_after: Optional[datetime] = None
    recurrence: Any = None


class TaskHistoryEntry(BaseModel):
    """Read-only view of a task used as clustering input."""
    id: str
    text: str
    completed_at: Optional[datetime] = None


class TextCluster(BaseModel):
    normalized_text: str
    task_ids: list[str] = []
    texts: list[str] = []
    completed_dates: list[datetime] = []  # ascending once the cluster is closed
    average_interval_days: float = 0.0

    @property
    def occurrences(self) -> int:
        return len(self.task_ids)


class SuggestionSourceType(str, Enum):
    RECURRENCE = "recurrence-detected"
    FOLLOW_UP = "follow-up"
    LATE_ADDITION = "late-addition"
    DEPENDENCY = "dependency"
    MAINTENANCE = "maintenance"


class SuggestionStatus(str, Enum):
    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"
    SNOOZED = "SNOOZED"
    DISMISSED = "DISMISSED"
    NEVER = "NEVER"


class SuggestionCandidate(BaseModel):
    suggested_text: str
    source_type: SuggestionSourceType
    confidence: float = Field(ge=0.0, le=1.0)
    why: str
    fingerprint: str
    related_task_ids: list[str] = []


class SuggestedTask(BaseModel):
    id: str
    user_id: str
    suggested_text: str
    source_type: SuggestionSourceType
    confidence: float
    why: str
    status: SuggestionStatus = SuggestionStatus.PENDING
    fingerprint: str
    related_task_ids: list[str] = []
    snooze_until: Optional[datetime] = None
    last_shown_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime


class AcceptRequest(BaseModel):
    quadrant: Quadrant


class AcceptResult(BaseModel):
    task_id: str
    xp: Optional[int] = None


class ParsedTask(BaseModel):
    title: str
    description: str = ""
    deadline: Optional[str] = None  # YYYY-MM-DD, only when the input names a date
    quadrant: Quadrant
    recurrence: Recurrence = Field(default_factory=NoRecurrence)
    complexity: Complexity
    ai_scores: AiScores
    xp: int


class ParseRequest(BaseModel):
    input: str = Field(min_length=1)


class TaskForSort(BaseModel):
    text: str = Field(min_length=1)
    description: Optional[str] = None
    deadline: Optional[str] = None
    complexity: Optional[Complexity] = None
    recurrence: Any = None


class SortTasksRequest(BaseModel):
    tasks: list[TaskForSort]


class SortedTask(BaseModel):
    text: str
    quadrant: Quadrant
    complexity: Complexity
    recurrence: Recurrence = Field(default_factory=NoRecurrence)
