"""
Payload clean-up applied right before records are sent to the resource API.

The generator is asked for well-formed payloads but the backend validates
strictly, so dates, priorities, durations and exercise fields are coerced here.
"""
import math
import re
from datetime import date, datetime, timedelta, timezone
from typing import Any, Dict, Optional, Union

from ..agent.utils.nanoid import stamped_id
from ..schemas.plan import Exercise, HabitItem, JournalEntry, MealPlan, TodoItem, WorkoutPlan

ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
DEFAULT_DUE_IN_DAYS = 7
PRIORITIES = ("low", "medium", "high")
DEFAULT_PRIORITY = "medium"
MAX_PLAN_WEEKS = 52
DEFAULT_WORKOUT_WEEKS = 8
DEFAULT_MEAL_PLAN_WEEKS = 4
MAX_REPS = 1000
DEFAULT_REPS = 10


def utc_today() -> date:
    return datetime.now(timezone.utc).date()


def as_number(value: Any) -> Optional[Union[int, float]]:
    """Numbers and numeric strings pass; anything else ("8-12", True, None) is None."""
    if isinstance(value, bool):
        return None
    if isinstance(value, str):
        try:
            value = float(value.strip())
        except ValueError:
            return None
    if not isinstance(value, (int, float)) or not math.isfinite(value):
        return None
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


def _default_due_date(today: date) -> str:
    return (today + timedelta(days=DEFAULT_DUE_IN_DAYS)).isoformat()


def normalize_due_date(value: Any, today: Optional[date] = None) -> str:
    today = today or utc_today()
    if isinstance(value, str) and ISO_DATE.match(value):
        return value
    if isinstance(value, str) and value.strip():
        try:
            return datetime.fromisoformat(value.strip().replace("Z", "+00:00")).date().isoformat()
        except ValueError:
            return _default_due_date(today)
    return _default_due_date(today)


def normalize_priority(value: Any) -> str:
    if isinstance(value, str) and value.strip().lower() in PRIORITIES:
        return value.strip().lower()
    return DEFAULT_PRIORITY


def normalize_todo(todo: TodoItem, today: Optional[date] = None) -> Dict[str, Any]:
    # The todo endpoint rejects unknown fields, so only these five are sent.
    return {
        "title": todo.title,
        "description": todo.description or "",
        "priority": normalize_priority(todo.priority),
        "category": todo.category or "general",
        "dueDate": normalize_due_date(todo.dueDate, today),
    }


def normalize_habit(habit: HabitItem) -> Dict[str, Any]:
    return habit.model_dump(exclude_none=True)


def normalize_journal_entry(entry: JournalEntry) -> Dict[str, Any]:
    return entry.model_dump(exclude_none=True)


def normalize_duration_weeks(value: Any, default: int) -> int:
    """Durations above a year of weeks are read as days; result is clamped to 1..52."""
    weeks = as_number(value)
    if weeks is None or weeks <= 0:
        return default
    weeks = math.ceil(weeks / 7) if weeks > MAX_PLAN_WEEKS else math.ceil(weeks)
    return max(1, min(MAX_PLAN_WEEKS, weeks))


def normalize_exercise(exercise: Exercise) -> Dict[str, Any]:
    cleaned: Dict[str, Any] = {
        "id": exercise.id or stamped_id("ex"),
        "name": exercise.name,
        "sets": as_number(exercise.sets) or 1,
        "notes": exercise.notes or "",
    }
    reps = as_number(exercise.reps)
    duration = as_number(exercise.duration)
    # Exactly one of reps/duration survives.
    if reps is not None and 0 < reps <= MAX_REPS:
        cleaned["reps"] = reps
    elif duration is not None and duration > 0:
        cleaned["duration"] = duration
    elif reps is not None and reps > MAX_REPS:
        cleaned["reps"] = MAX_REPS
    else:
        cleaned["reps"] = DEFAULT_REPS
    return cleaned


def normalize_meal_plan(plan: MealPlan) -> Dict[str, Any]:
    cleaned = plan.model_dump(exclude_none=True)
    cleaned["duration"] = normalize_duration_weeks(plan.duration, DEFAULT_MEAL_PLAN_WEEKS)
    return cleaned


def normalize_workout_plan(plan: WorkoutPlan) -> Dict[str, Any]:
    cleaned = plan.model_dump(exclude_none=True)
    cleaned["duration"] = normalize_duration_weeks(plan.duration, DEFAULT_WORKOUT_WEEKS)
    cleaned["exercises"] = [normalize_exercise(exercise) for exercise in plan.exercises]
    return cleaned
