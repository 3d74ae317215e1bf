import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from ..agent.intent import IntentExtractor
from ..agent.planner import PlanGenerator
from ..agent.questions import QuestionGenerator
from ..agent.utils.nanoid import nanoid
from ..core.exceptions import InvalidInputError, InvalidStateTransition, NotFoundError
from ..schemas.chat import (
    STATUS_TRANSITIONS,
    ChatReply,
    ChatResponse,
    Conversation,
    ConversationStatus,
    ConversationSummary,
    Message,
    MessageRole,
)
from ..schemas.plan import ActionPlan
from .store import ActionPlanStore, ConversationStore

logger = logging.getLogger(__name__)

QUESTIONS_MESSAGE = "I'll help you create a comprehensive plan! Let me ask you a few questions:"
ACKNOWLEDGE_MESSAGE = "I understand. Let me create a plan for you."
DEFAULT_LIST_LIMIT = 50


def _now() -> datetime:
    return datetime.now(timezone.utc)


def append_message(conversation: Conversation, role: MessageRole, content: str) -> None:
    now = _now()
    conversation.messages.append(Message(role=role, content=content, timestamp=now))
    conversation.updatedAt = now


def transition_status(conversation: Conversation, status: ConversationStatus) -> None:
    if conversation.status == status:
        return
    if status not in STATUS_TRANSITIONS[conversation.status]:
        raise InvalidStateTransition(f"Conversation cannot move from {conversation.status} to {status}")
    conversation.status = status
    conversation.updatedAt = _now()


class ConversationService:
    def __init__(
        self,
        conversations: ConversationStore,
        plans: ActionPlanStore,
        intents: IntentExtractor,
        questions: QuestionGenerator,
        planner: PlanGenerator,
        list_limit: int = DEFAULT_LIST_LIMIT,
    ) -> None:
        self._conversations = conversations
        self._plans = plans
        self._intents = intents
        self._questions = questions
        self._planner = planner
        self._list_limit = list_limit

    async def _load_owned(self, conversation_id: str, user_id: str) -> Conversation:
        conversation = await self._conversations.find_by_id(conversation_id)
        if not conversation or conversation.userId != user_id:
            raise NotFoundError("Conversation")
        return conversation

    async def submit_message(self, user_id: str, text: Optional[str], conversation_id: Optional[str] = None) -> ChatResponse:
        if not isinstance(text, str) or not text.strip():
            raise InvalidInputError("Message is required")

        if conversation_id:
            conversation = await self._load_owned(conversation_id, user_id)
        else:
            conversation = Conversation(id=nanoid(), userId=user_id)
            logger.info("Started conversation %s for user %s", conversation.id, user_id)

        append_message(conversation, "user", text)

        intent = await self._intents.extract(text)
        conversation.intent = intent

        questions = await self._questions.generate(intent)
        message = QUESTIONS_MESSAGE if questions else ACKNOWLEDGE_MESSAGE
        append_message(
            conversation,
            "assistant",
            json.dumps({"message": message, "questions": [question.model_dump(exclude_none=True) for question in questions]}),
        )

        await self._conversations.save(conversation)

        return ChatResponse(
            conversationId=conversation.id,
            response=ChatReply(
                type="follow_up_questions" if questions else "text",
                message=message,
                questions=questions or None,
            ),
        )

    async def submit_answers(self, user_id: str, conversation_id: Optional[str], answers: Optional[Dict[str, Any]]) -> ChatResponse:
        if not conversation_id or answers is None:
            raise InvalidInputError("Conversation ID and answers are required")
        if not isinstance(answers, dict):
            raise InvalidInputError("Answers must be an object")

        conversation = await self._load_owned(conversation_id, user_id)
        append_message(conversation, "user", json.dumps(answers, default=str))

        # Raises PlanGenerationError; nothing has been persisted at this point.
        generated = await self._planner.generate(conversation.intent, answers)

        plan = ActionPlan(
            id=nanoid(),
            conversationId=conversation.id,
            userId=user_id,
            intent=conversation.intent,
            summary=generated.summary,
            category=generated.category,
            actions=[action.model_copy(update={"status": "pending", "error": None}) for action in generated.actions],
        )
        await self._plans.save(plan)

        conversation.planId = plan.id
        append_message(conversation, "assistant", json.dumps({"plan": generated.model_dump(mode="json")}))
        await self._conversations.save(conversation)
        logger.info("Created plan %s (%d actions) for conversation %s", plan.id, len(plan.actions), conversation.id)

        return ChatResponse(
            conversationId=conversation.id,
            response=ChatReply(type="action_plan", planId=plan.id, summary=plan.summary, actions=plan.actions),
        )

    async def list_conversations(self, user_id: str, limit: Optional[int] = None, skip: int = 0) -> List[ConversationSummary]:
        limit = min(limit or self._list_limit, self._list_limit)
        docs = await self._conversations.find(
            {"userId": user_id},
            sort=("createdAt", -1),
            limit=limit,
            skip=max(skip, 0),
            projection={"messages"},
        )
        return [ConversationSummary(**doc) for doc in docs]

    async def get_conversation(self, conversation_id: Optional[str], user_id: str) -> Conversation:
        if not conversation_id:
            raise InvalidInputError("Conversation ID is required")
        return await self._load_owned(conversation_id, user_id)

    async def complete_conversation(self, conversation_id: str, note: str) -> Optional[Conversation]:
        conversation = await self._conversations.find_by_id(conversation_id)
        if not conversation:
            logger.warning("Conversation %s vanished before it could be completed", conversation_id)
            return None
        append_message(conversation, "system", note)
        transition_status(conversation, "completed")
        await self._conversations.save(conversation)
        return conversation
