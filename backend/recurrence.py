"""
Recurrence patterns attached to tasks.

The text-parsing collaborator returns recurrence as a legacy string
("daily", "weekly", ...), an object ({"interval": 2, "unit": "week", ...})
or null. validate_recurrence() turns any of those into one of three
tagged shapes and never guesses: anything malformed becomes NoRecurrence.
"""
import json
import math
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, Field, TypeAdapter

RecurrenceUnit = Literal["day", "week", "month", "year"]

VALID_UNITS = ("day", "week", "month", "year")

# Legacy generic patterns -> unit
LEGACY_PATTERNS = {
    "daily": "day",
    "weekly": "week",
    "monthly": "month",
    "yearly": "year",
}

MIN_INTERVAL = 1
MAX_INTERVAL = 99


class NoRecurrence(BaseModel):
    kind: Literal["none"] = "none"


class SimpleRecurrence(BaseModel):
    kind: Literal["simple"] = "simple"
    unit: RecurrenceUnit


class CustomRecurrence(BaseModel):
    kind: Literal["custom"] = "custom"
    interval: int = Field(ge=MIN_INTERVAL, le=MAX_INTERVAL)
    unit: RecurrenceUnit
    week_days: Optional[list[int]] = None  # 0=Sunday .. 6=Saturday
    month_day: Optional[int] = None


Recurrence = Annotated[
    Union[NoRecurrence, SimpleRecurrence, CustomRecurrence],
    Field(discriminator="kind"),
]

_recurrence_adapter = TypeAdapter(Recurrence)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _is_whole(value: Any) -> bool:
    return _is_number(value) and float(value).is_integer()


def validate_recurrence(raw: Any) -> Recurrence:
    """
    Build a recurrence from a string, an object or None.

    Objects accept both camelCase (weekDays, monthDay) and snake_case keys.
    Interval is floored and clamped to [1, 99]; an interval below 1 or an
    unknown unit rejects the whole object.
    """
    if raw is None:
        return NoRecurrence()

    if isinstance(raw, (NoRecurrence, SimpleRecurrence, CustomRecurrence)):
        return raw

    if isinstance(raw, str):
        unit = LEGACY_PATTERNS.get(raw.strip().lower())
        return SimpleRecurrence(unit=unit) if unit else NoRecurrence()

    if not isinstance(raw, dict):
        return NoRecurrence()

    kind = raw.get("kind")
    if kind == "none":
        return NoRecurrence()
    if kind == "simple":
        unit = raw.get("unit")
        return SimpleRecurrence(unit=unit) if unit in VALID_UNITS else NoRecurrence()

    interval = raw.get("interval")
    unit = raw.get("unit")
    if not _is_number(interval) or math.isnan(interval) or interval < MIN_INTERVAL:
        return NoRecurrence()
    if unit not in VALID_UNITS:
        return NoRecurrence()

    interval = MAX_INTERVAL if math.isinf(interval) else int(math.floor(interval))
    recurrence = CustomRecurrence(
        interval=max(MIN_INTERVAL, min(MAX_INTERVAL, interval)),
        unit=unit,
    )

    week_days = raw.get("weekDays", raw.get("week_days"))
    if isinstance(week_days, list):
        valid_days = {int(d) for d in week_days if _is_whole(d) and 0 <= d <= 6}
        if valid_days:
            recurrence.week_days = sorted(valid_days)

    month_day = raw.get("monthDay", raw.get("month_day"))
    if _is_whole(month_day) and 1 <= month_day <= 31:
        recurrence.month_day = int(month_day)

    return recurrence


def recurrence_to_db(recurrence: Recurrence) -> Optional[str]:
    """Serialize for the tasks.recurrence column (NULL for no recurrence)."""
    if isinstance(recurrence, NoRecurrence):
        return None
    return recurrence.model_dump_json(exclude_none=True)


def recurrence_from_db(value: Optional[str]) -> Recurrence:
    if not value:
        return NoRecurrence()
    try:
        raw = json.loads(value)
    except ValueError:
        # Bare legacy pattern such as "weekly"
        return validate_recurrence(value)
    try:
        return _recurrence_adapter.validate_python(raw)
    except ValueError:
        return validate_recurrence(raw)
