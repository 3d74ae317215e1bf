import logging
from datetime import date, datetime, timezone
from typing import Any, Dict, Optional

from pydantic import TypeAdapter, ValidationError

from ..core.exceptions import GenerationError, PlanGenerationError
from ..schemas.intent import Intent
from ..schemas.plan import LIST_ACTION_TYPES, SINGLE_ACTION_TYPES, ActionItem, GeneratedPlan
from .completion import CompletionService, complete_json
from .prompts import PromptTemplates
from .utils.nanoid import epoch_millis

logger = logging.getLogger(__name__)

_action_adapter: TypeAdapter = TypeAdapter(ActionItem)


def _build_context(intent: Optional[Intent], answers: Dict[str, Any], today: date) -> Dict[str, Any]:
    return {
        "intent": intent.model_dump(exclude_none=True) if intent else None,
        "answers": answers,
        "today": today.isoformat(),
    }


def _coerce_action(raw: Any) -> Dict[str, Any]:
    if not isinstance(raw, dict):
        raise PlanGenerationError("Plan action is not an object")
    action_type = raw.get("type")
    if action_type not in LIST_ACTION_TYPES and action_type not in SINGLE_ACTION_TYPES:
        raise PlanGenerationError(f"Unsupported action type: {action_type}")

    action = {key: value for key, value in raw.items() if key not in ("status", "error")}
    data = action.get("data")
    if action_type in SINGLE_ACTION_TYPES:
        # Plan actions carry exactly one object; a list-wrapped payload is unwrapped here.
        if isinstance(data, list):
            if not data:
                raise PlanGenerationError(f"{action_type} has no payload")
            data = data[0]
        action["count"] = 1
    else:
        if not isinstance(data, list):
            raise PlanGenerationError(f"{action_type} payload must be a list")
        action["count"] = len(data)
    action["data"] = data
    action["status"] = "pending"
    return action


def parse_plan(parsed: Dict[str, Any]) -> GeneratedPlan:
    raw_actions = parsed.get("actions")
    if not isinstance(raw_actions, list) or not raw_actions:
        raise PlanGenerationError("Plan has no actions")
    actions = [_action_adapter.validate_python(_coerce_action(raw)) for raw in raw_actions]
    return GeneratedPlan(
        summary=parsed.get("summary") or "Your personalized plan",
        category=parsed.get("category") or f"plan-{epoch_millis()}",
        actions=actions,
    )


class PlanGenerator:
    def __init__(self, completion: CompletionService, templates: PromptTemplates) -> None:
        self._completion = completion
        self._templates = templates

    async def generate(self, intent: Optional[Intent], answers: Dict[str, Any], today: Optional[date] = None) -> GeneratedPlan:
        prompt = self._templates.render("plan", _build_context(intent, answers, today or datetime.now(timezone.utc).date()))
        try:
            parsed = await complete_json(self._completion, prompt)
            plan = parse_plan(parsed)
        except PlanGenerationError as error:
            logger.error("Plan generation rejected: %s", error.message)
            raise
        except (GenerationError, ValidationError) as error:
            logger.error("Plan generation failed: %s", error)
            raise PlanGenerationError() from error
        except Exception as error:
            logger.exception("Completion service failed during plan generation")
            raise PlanGenerationError() from error
        logger.info("Generated plan %r with %d actions", plan.category, len(plan.actions))
        return plan
