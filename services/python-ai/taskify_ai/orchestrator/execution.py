import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Tuple

from ..core.exceptions import InvalidInputError, NotFoundError, PlanAlreadyExecutedError, ResourceApiError
from ..schemas.plan import (
    ActionError,
    ActionItem,
    ActionPlan,
    ExecutionOutcome,
    ExecutionProgress,
    HabitsAction,
    JournalAction,
    MealPlanAction,
    TodosAction,
    WorkoutPlanAction,
)
from .conversation import ConversationService
from .normalize import (
    normalize_habit,
    normalize_journal_entry,
    normalize_meal_plan,
    normalize_todo,
    normalize_workout_plan,
    utc_today,
)
from .resources import ResourceApi
from .store import ActionPlanStore
from .stream import ProgressChannel, StreamEvent, action_errors_to_messages

logger = logging.getLogger(__name__)

SUCCESS_MESSAGE = "Plan executed successfully!"
PARTIAL_MESSAGE = "Plan executed with some errors."
ENGINE_ACTION = "execution"

ProgressCallback = Callable[[ExecutionProgress], None]
# (items finished so far, items in the action)
ItemCallback = Callable[[int, int], None]
Routine = Callable[[Any, ResourceApi, ItemCallback], Awaitable[List[Any]]]

ITEM_NOUNS = {
    "create_todos": "todo",
    "create_habits": "habit",
    "create_journal": "journal entry",
}


def describe_error(error: BaseException) -> str:
    if isinstance(error, ResourceApiError) and error.message:
        return error.message
    return str(error) or "Unknown error"


@dataclass
class _Tally:
    total: int
    completed: int = 0
    results: List[Any] = field(default_factory=list)
    errors: List[ActionError] = field(default_factory=list)

    def outcome(self) -> ExecutionOutcome:
        return ExecutionOutcome(success=not self.errors, results=list(self.results), errors=list(self.errors))


class PlanExecutor:
    def __init__(
        self,
        plans: ActionPlanStore,
        conversations: ConversationService,
        today: Callable[[], date] = utc_today,
    ) -> None:
        self._plans = plans
        self._conversations = conversations
        self._today = today
        self._routines: Dict[str, Routine] = {
            "create_todos": self._create_todos,
            "create_habits": self._create_habits,
            "create_meal_plan": self._create_meal_plan,
            "create_workout_plan": self._create_workout_plan,
            "create_journal": self._create_journal,
        }

    async def prepare(self, plan_id: Optional[str], user_id: str) -> ActionPlan:
        if not plan_id:
            raise InvalidInputError("Plan ID is required")
        plan = await self._plans.find_by_id(plan_id)
        if not plan or plan.userId != user_id:
            raise NotFoundError("Action plan")
        if plan.executed:
            raise PlanAlreadyExecutedError(plan.id)
        return plan

    @staticmethod
    def resolve_confirmed(plan: ActionPlan, confirmations: Optional[Mapping[str, Any]]) -> List[ActionItem]:
        if confirmations is None:
            return list(plan.actions)
        if not isinstance(confirmations, Mapping):
            raise InvalidInputError("Confirmations must map action types to booleans")
        return [action for action in plan.actions if confirmations.get(action.type) is not False]

    async def run_actions(self, actions: List[ActionItem], resources: ResourceApi, emit: ProgressCallback) -> ExecutionOutcome:
        tally = _Tally(total=sum(action.count for action in actions))
        for action in actions:
            tally = await self._run_action(action, resources, emit, tally)

        emit(
            ExecutionProgress(
                step="All actions completed",
                completed=tally.total,
                total=tally.total,
                status="failed" if tally.errors else "completed",
                errors=action_errors_to_messages(tally.errors),
            )
        )
        return tally.outcome()

    async def _run_action(self, action: ActionItem, resources: ResourceApi, emit: ProgressCallback, tally: _Tally) -> _Tally:
        before = tally.completed
        ceiling = before + action.count
        emit(ExecutionProgress(step=f"Starting {action.type}...", completed=before, total=tally.total))

        noun = ITEM_NOUNS.get(action.type, "item")

        def on_item(done: int, of: int) -> None:
            emit(
                ExecutionProgress(
                    step=f"Created {noun} {done} of {of}",
                    completed=min(before + done, ceiling),
                    total=tally.total,
                )
            )

        results, error = await self._attempt(action, resources, on_item)
        tally.completed = ceiling
        if error is None:
            tally.results.extend(results)
            step = f"Completed {action.type}"
        else:
            tally.errors.append(error)
            step = f"Failed {action.type}"
        emit(ExecutionProgress(step=step, completed=tally.completed, total=tally.total))
        return tally

    async def _attempt(self, action: ActionItem, resources: ResourceApi, on_item: ItemCallback) -> Tuple[List[Any], Optional[ActionError]]:
        routine = self._routines[action.type]
        logger.info("Executing %s (%d records)", action.type, action.count)
        try:
            results = await routine(action, resources, on_item)
        except Exception as error:
            message = describe_error(error)
            logger.warning("Failed to execute %s: %s", action.type, message)
            return [], ActionError(action=action.type, error=message)
        logger.info("Executed %s", action.type)
        return results, None

    @staticmethod
    async def _create_each(
        payloads: List[Dict[str, Any]],
        create: Callable[[Dict[str, Any]], Awaitable[Any]],
        on_item: ItemCallback,
    ) -> List[Any]:
        results = []
        for index, payload in enumerate(payloads, start=1):
            results.append(await create(payload))
            on_item(index, len(payloads))
        return results

    async def _create_todos(self, action: TodosAction, resources: ResourceApi, on_item: ItemCallback) -> List[Any]:
        today = self._today()
        payloads = [normalize_todo(todo, today) for todo in action.data]
        return await self._create_each(payloads, resources.create_todo, on_item)

    async def _create_habits(self, action: HabitsAction, resources: ResourceApi, on_item: ItemCallback) -> List[Any]:
        payloads = [normalize_habit(habit) for habit in action.data]
        return await self._create_each(payloads, resources.create_habit, on_item)

    async def _create_journal(self, action: JournalAction, resources: ResourceApi, on_item: ItemCallback) -> List[Any]:
        payloads = [normalize_journal_entry(entry) for entry in action.data]
        return await self._create_each(payloads, resources.create_journal_entry, on_item)

    async def _create_meal_plan(self, action: MealPlanAction, resources: ResourceApi, on_item: ItemCallback) -> List[Any]:
        payload = normalize_meal_plan(action.data)
        logger.info("Creating meal plan %r (%s weeks)", payload.get("name"), payload["duration"])
        return [await resources.create_meal_plan(payload)]

    async def _create_workout_plan(self, action: WorkoutPlanAction, resources: ResourceApi, on_item: ItemCallback) -> List[Any]:
        payload = normalize_workout_plan(action.data)
        logger.info(
            "Creating workout plan %r (%s weeks, %d exercises)",
            payload.get("name"),
            payload["duration"],
            len(payload["exercises"]),
        )
        return [await resources.create_workout_plan(payload)]

    async def _record(self, plan: ActionPlan, confirmed: List[ActionItem], outcome: ExecutionOutcome) -> None:
        failures: Dict[str, str] = {}
        for error in outcome.errors:
            failures.setdefault(error.action, error.error)
        executed_ids = {id(action) for action in confirmed}
        for action in plan.actions:
            if id(action) not in executed_ids:
                continue
            if action.type in failures:
                action.status = "failed"
                action.error = failures[action.type]
            else:
                action.status = "completed"
        now = datetime.now(timezone.utc)
        plan.executed = True
        plan.executedAt = now
        plan.updatedAt = now
        await self._plans.save(plan)

    async def execute(
        self,
        plan: ActionPlan,
        confirmations: Optional[Mapping[str, Any]],
        resources: ResourceApi,
        channel: ProgressChannel,
    ) -> ExecutionOutcome:
        """Run one execution pass and report it on ``channel``, which is always closed afterwards."""
        if plan.executed:
            channel.close()
            raise PlanAlreadyExecutedError(plan.id)

        def emit(progress: ExecutionProgress) -> None:
            channel.emit(StreamEvent.progress(progress))

        try:
            confirmed: List[ActionItem] = []
            try:
                confirmed = self.resolve_confirmed(plan, confirmations)
            except Exception as error:
                message = describe_error(error)
                logger.error("Could not resolve confirmed actions for plan %s: %s", plan.id, message)
                outcome = ExecutionOutcome(success=False, errors=[ActionError(action=ENGINE_ACTION, error=message)])
                emit(ExecutionProgress(step="Execution failed", completed=0, total=0, status="failed", errors=[message]))
            else:
                total = sum(action.count for action in confirmed)
                emit(ExecutionProgress(step="Initializing execution...", completed=0, total=total))
                outcome = await self.run_actions(confirmed, resources, emit)

            await self._record(plan, confirmed, outcome)
            message = SUCCESS_MESSAGE if outcome.success else PARTIAL_MESSAGE
            await self._conversations.complete_conversation(plan.conversationId, message)
            logger.info("Plan %s executed: %d results, %d errors", plan.id, len(outcome.results), len(outcome.errors))
            channel.emit(StreamEvent.complete(outcome, message))
            return outcome
        except Exception as error:
            logger.exception("Execute plan error for plan %s", plan.id)
            channel.emit(StreamEvent.error("Failed to execute plan", describe_error(error)))
            return ExecutionOutcome(success=False, errors=[ActionError(action=ENGINE_ACTION, error=describe_error(error))])
        finally:
            channel.close()
