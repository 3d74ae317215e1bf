import asyncio
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, List, Optional, Set

from fastapi import Request
from openai import AsyncOpenAI

from .agent.completion import CompletionService, OpenAICompletionService
from .agent.intent import IntentExtractor
from .agent.planner import PlanGenerator
from .agent.prompts import PromptTemplates
from .agent.questions import QuestionGenerator
from .core.config import Settings
from .orchestrator.conversation import ConversationService
from .orchestrator.execution import PlanExecutor
from .orchestrator.resources import HttpResourceApi, ResourceApiFactory, build_http_client
from .orchestrator.store import ActionPlanStore, ConversationStore

logger = logging.getLogger(__name__)


@dataclass
class Services:
    conversations: ConversationService
    executor: PlanExecutor
    resource_api_factory: ResourceApiFactory
    closers: List[Callable[[], Awaitable[None]]] = field(default_factory=list)
    running: Set["asyncio.Task[object]"] = field(default_factory=set)

    def track(self, task: "asyncio.Task[object]") -> None:
        # Execution passes outlive their request; keep a reference until they finish.
        self.running.add(task)
        task.add_done_callback(self.running.discard)

    async def aclose(self) -> None:
        if self.running:
            await asyncio.gather(*self.running, return_exceptions=True)
        for closer in self.closers:
            await closer()


def build_services(
    completion: CompletionService,
    resource_api_factory: ResourceApiFactory,
    templates: Optional[PromptTemplates] = None,
    conversation_store: Optional[ConversationStore] = None,
    plan_store: Optional[ActionPlanStore] = None,
    list_limit: int = 50,
) -> Services:
    templates = templates or PromptTemplates.load()
    conversation_store = conversation_store or ConversationStore()
    plan_store = plan_store or ActionPlanStore()
    conversations = ConversationService(
        conversation_store,
        plan_store,
        IntentExtractor(completion, templates),
        QuestionGenerator(completion, templates),
        PlanGenerator(completion, templates),
        list_limit=list_limit,
    )
    executor = PlanExecutor(plan_store, conversations)
    return Services(conversations=conversations, executor=executor, resource_api_factory=resource_api_factory)


def build_default_services(settings: Settings) -> Services:
    if not settings.OPENAI_API_KEY:
        logger.warning("OPENAI_API_KEY is not set; completion calls will fail and generators will fall back")
    openai_client = AsyncOpenAI(api_key=settings.OPENAI_API_KEY or "not-configured")
    http_client = build_http_client(settings.BACKEND_API_URL, settings.BACKEND_TIMEOUT_S)
    services = build_services(
        OpenAICompletionService(openai_client, settings.COMPLETION_MODEL, settings.COMPLETION_TEMPERATURE),
        lambda token: HttpResourceApi(http_client, token),
        list_limit=settings.CONVERSATION_LIST_LIMIT,
    )
    services.closers.extend([http_client.aclose, openai_client.close])
    return services


def get_services(request: Request) -> Services:
    return request.app.state.services
