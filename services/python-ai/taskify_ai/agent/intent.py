import logging

from pydantic import ValidationError

from ..core.exceptions import GenerationError
from ..schemas.intent import Intent
from .completion import CompletionService, complete_json
from .prompts import PromptTemplates
from .utils.nanoid import epoch_millis

logger = logging.getLogger(__name__)


def fallback_intent() -> Intent:
    return Intent(goalType="general", requiredInfo=["details"], category=f"general-{epoch_millis()}")


class IntentExtractor:
    def __init__(self, completion: CompletionService, templates: PromptTemplates) -> None:
        self._completion = completion
        self._templates = templates

    async def extract(self, message: str) -> Intent:
        prompt = self._templates.render("intent", message)
        try:
            parsed = await complete_json(self._completion, prompt)
            return Intent(**parsed)
        except (GenerationError, ValidationError) as error:
            logger.warning("Intent extraction failed, using fallback intent: %s", error)
        except Exception:
            logger.exception("Completion service failed during intent extraction")
        return fallback_intent()
