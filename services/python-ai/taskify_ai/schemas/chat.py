from datetime import datetime, timezone
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

from .intent import FollowUpQuestion, Intent
from .plan import ActionItem

MessageRole = Literal["user", "assistant", "system"]
ConversationStatus = Literal["active", "completed", "abandoned"]
ResponseType = Literal["text", "follow_up_questions", "action_plan"]

# Allowed forward moves; a conversation never returns to "active".
STATUS_TRANSITIONS = {
    "active": {"completed", "abandoned"},
    "completed": set(),
    "abandoned": set(),
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Message(BaseModel):
    role: MessageRole
    content: str
    timestamp: datetime = Field(default_factory=_utcnow)


class ConversationSummary(BaseModel):
    id: str
    userId: str
    intent: Optional[Intent] = None
    planId: Optional[str] = None
    status: ConversationStatus = "active"
    createdAt: datetime = Field(default_factory=_utcnow)
    updatedAt: datetime = Field(default_factory=_utcnow)


class Conversation(ConversationSummary):
    messages: List[Message] = Field(default_factory=list)


class ChatReply(BaseModel):
    type: ResponseType
    message: Optional[str] = None
    questions: Optional[List[FollowUpQuestion]] = None
    planId: Optional[str] = None
    summary: Optional[str] = None
    actions: Optional[List[ActionItem]] = None


class ChatResponse(BaseModel):
    conversationId: str
    response: ChatReply
