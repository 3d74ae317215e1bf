from datetime import datetime, timezone
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .intent import Intent

ActionStatus = Literal["pending", "executing", "completed", "failed"]
ActionType = Literal["create_todos", "create_habits", "create_meal_plan", "create_workout_plan", "create_journal"]
ProgressStatus = Literal["in_progress", "completed", "failed"]

LIST_ACTION_TYPES = ("create_todos", "create_habits", "create_journal")
SINGLE_ACTION_TYPES = ("create_meal_plan", "create_workout_plan")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class _Payload(BaseModel):
    # Only the shape is checked here; value fixes happen in orchestrator.normalize.
    model_config = ConfigDict(extra="allow")


class TodoItem(_Payload):
    title: str
    description: Optional[str] = None
    priority: Optional[str] = None
    dueDate: Optional[str] = None
    category: Optional[str] = None


class HabitItem(_Payload):
    name: str
    description: Optional[str] = None
    category: Optional[str] = None
    frequency: Optional[str] = None


class JournalEntry(_Payload):
    title: str
    content: str
    tags: List[str] = Field(default_factory=list)


class Food(_Payload):
    id: Optional[str] = None
    name: str
    quantity: Optional[Any] = None
    calories: Optional[Any] = None
    protein: Optional[Any] = None
    carbs: Optional[Any] = None
    fat: Optional[Any] = None


class Meal(_Payload):
    id: Optional[str] = None
    name: str
    type: Optional[str] = None
    foods: List[Food] = Field(default_factory=list)
    calories: Optional[Any] = None
    notes: Optional[str] = None


class MealPlan(_Payload):
    name: str
    description: str = ""
    meals: List[Meal] = Field(default_factory=list)
    duration: Optional[Any] = None


class Exercise(_Payload):
    id: Optional[str] = None
    name: str
    sets: Optional[Any] = None
    reps: Optional[Any] = None
    duration: Optional[Any] = None
    notes: Optional[str] = None


class WorkoutPlan(_Payload):
    name: str
    description: str = ""
    exercises: List[Exercise] = Field(default_factory=list)
    weeklySchedule: Dict[str, List[str]] = Field(default_factory=dict)
    duration: Optional[Any] = None


class PlanPreview(BaseModel):
    name: str = ""
    duration: Optional[Any] = None


class _ActionBase(BaseModel):
    count: int = Field(ge=0)
    status: ActionStatus = "pending"
    error: Optional[str] = None


class _ListAction(_ActionBase):
    preview: List[str] = Field(default_factory=list)

    @field_validator("preview", mode="before")
    @classmethod
    def _flatten_preview(cls, value: Any) -> Any:
        if not isinstance(value, list):
            return value
        flattened = []
        for item in value:
            if isinstance(item, dict):
                flattened.append(str(item.get("title") or item.get("name") or item))
            else:
                flattened.append(str(item))
        return flattened


class TodosAction(_ListAction):
    type: Literal["create_todos"] = "create_todos"
    data: List[TodoItem]


class HabitsAction(_ListAction):
    type: Literal["create_habits"] = "create_habits"
    data: List[HabitItem]


class JournalAction(_ListAction):
    type: Literal["create_journal"] = "create_journal"
    data: List[JournalEntry]


class MealPlanAction(_ActionBase):
    type: Literal["create_meal_plan"] = "create_meal_plan"
    preview: Optional[PlanPreview] = None
    data: MealPlan


class WorkoutPlanAction(_ActionBase):
    type: Literal["create_workout_plan"] = "create_workout_plan"
    preview: Optional[PlanPreview] = None
    data: WorkoutPlan


ActionItem = Annotated[
    Union[TodosAction, HabitsAction, JournalAction, MealPlanAction, WorkoutPlanAction],
    Field(discriminator="type"),
]


class ActionPlan(BaseModel):
    id: str
    conversationId: str
    userId: str
    intent: Optional[Intent] = None
    summary: str
    category: str
    actions: List[ActionItem]
    executed: bool = False
    executedAt: Optional[datetime] = None
    createdAt: datetime = Field(default_factory=_utcnow)
    updatedAt: datetime = Field(default_factory=_utcnow)


class GeneratedPlan(BaseModel):
    summary: str
    category: str
    actions: List[ActionItem]


class ExecutionProgress(BaseModel):
    step: str = Field(serialization_alias="currentStep")
    completed: int
    total: int
    status: ProgressStatus = "in_progress"
    errors: Optional[List[str]] = None


class ActionError(BaseModel):
    action: str
    error: str


class ExecutionOutcome(BaseModel):
    success: bool
    results: List[Any] = Field(default_factory=list)
    errors: List[ActionError] = Field(default_factory=list)
