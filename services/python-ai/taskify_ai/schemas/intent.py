from typing import List, Literal, Optional

from pydantic import BaseModel, Field

QuestionType = Literal["text", "number", "select", "multi_select", "slider"]


class Measure(BaseModel):
    value: float
    unit: str


class Intent(BaseModel):
    goalType: str
    target: Optional[Measure] = None
    duration: Optional[Measure] = None
    requiredInfo: List[str] = Field(default_factory=list)
    category: Optional[str] = None


class FollowUpQuestion(BaseModel):
    id: str
    text: str
    type: QuestionType
    options: Optional[List[str]] = None
    min: Optional[float] = None
    max: Optional[float] = None
    required: Optional[bool] = None
    placeholder: Optional[str] = None
