import logging
from typing import List

from pydantic import ValidationError

from ..core.exceptions import GenerationError
from ..schemas.intent import FollowUpQuestion, Intent
from .completion import CompletionService, complete_json
from .prompts import PromptTemplates

logger = logging.getLogger(__name__)

MAX_QUESTIONS = 5


def fallback_questions() -> List[FollowUpQuestion]:
    return [
        FollowUpQuestion(
            id="q1",
            text="Can you provide more details about your goal?",
            type="text",
            required=True,
            placeholder="Tell us more...",
        )
    ]


class QuestionGenerator:
    def __init__(self, completion: CompletionService, templates: PromptTemplates) -> None:
        self._completion = completion
        self._templates = templates

    async def generate(self, intent: Intent) -> List[FollowUpQuestion]:
        prompt = self._templates.render("questions", intent.model_dump(exclude_none=True))
        try:
            parsed = await complete_json(self._completion, prompt)
            raw_questions = parsed.get("questions") or []
            if not isinstance(raw_questions, list):
                raise GenerationError("questions is not a list")
            return [FollowUpQuestion(**question) for question in raw_questions[:MAX_QUESTIONS]]
        except (GenerationError, ValidationError, TypeError) as error:
            logger.warning("Question generation failed, using fallback question: %s", error)
        except Exception:
            logger.exception("Completion service failed during question generation")
        return fallback_questions()
