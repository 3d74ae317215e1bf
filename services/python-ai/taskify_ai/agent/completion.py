import json
import logging
from typing import Any, Dict, Optional, Protocol

from openai import AsyncOpenAI

from ..core.exceptions import GenerationError

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are the planning assistant of Taskify, a productivity app. "
    "You turn user goals into structured, realistic plans made of todos, habits, "
    "meal plans, workout plans and journal entries. Always answer with the JSON "
    "object requested by the instructions."
)


class CompletionService(Protocol):
    async def complete(self, prompt: str) -> str: ...


class OpenAICompletionService:
    def __init__(self, client: AsyncOpenAI, model: str = "gpt-4o-mini", temperature: float = 0.7) -> None:
        self._client = client
        self._model = model
        self._temperature = temperature

    async def complete(self, prompt: str) -> str:
        response = await self._client.chat.completions.create(
            model=self._model,
            temperature=self._temperature,
            messages=[
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
        )
        text = None
        if response.choices:
            text = response.choices[0].message.content
        if not text or not text.strip():
            raise GenerationError("Completion service returned an empty response")
        logger.debug("Completion received: %d chars", len(text))
        return text.strip()


def extract_json_object(text: str) -> Optional[str]:
    """Return the first balanced ``{...}`` span in ``text``, ignoring braces inside strings."""
    start = text.find("{")
    if start < 0:
        return None
    depth = 0
    in_string = False
    escaped = False
    for index in range(start, len(text)):
        char = text[index]
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue
        if char == '"':
            in_string = True
        elif char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return text[start : index + 1]
    return None


async def complete_json(completion: CompletionService, prompt: str) -> Dict[str, Any]:
    raw = await completion.complete(prompt)
    candidate = extract_json_object(raw or "")
    if candidate is None:
        raise GenerationError("No JSON object found in completion")
    try:
        parsed = json.loads(candidate)
    except json.JSONDecodeError as error:
        raise GenerationError(f"Completion JSON could not be parsed: {error.msg}") from error
    if not isinstance(parsed, dict):
        raise GenerationError("Completion JSON is not an object")
    return parsed
