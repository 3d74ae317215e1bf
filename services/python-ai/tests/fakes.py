import json
from typing import Any, Dict, List, Optional, Tuple, Union

from taskify_ai.core.exceptions import ResourceApiError

Reply = Union[str, Exception]

# First line of each template in prompts.yaml.
PROMPT_PREFIXES = {
    "intent": "Read the user's message",
    "questions": "Using the goal below",
    "plan": "Build an action plan",
}


class FakeCompletion:
    def __init__(self, replies: Optional[Dict[str, Reply]] = None) -> None:
        self.replies: Dict[str, Reply] = dict(replies or {})
        self.prompts: List[Tuple[str, str]] = []

    async def complete(self, prompt: str) -> str:
        kind = next((name for name, prefix in PROMPT_PREFIXES.items() if prompt.startswith(prefix)), "unknown")
        self.prompts.append((kind, prompt))
        reply = self.replies.get(kind)
        if reply is None:
            raise RuntimeError(f"no reply configured for {kind}")
        if isinstance(reply, Exception):
            raise reply
        return reply


class FakeResourceApi:
    def __init__(self, failures: Optional[Dict[str, Exception]] = None) -> None:
        self.failures = dict(failures or {})
        self.calls: List[Tuple[str, Dict[str, Any]]] = []

    async def _create(self, kind: str, payload: Dict[str, Any]) -> Any:
        self.calls.append((kind, payload))
        if kind in self.failures:
            raise self.failures[kind]
        return {"success": True, "data": {"id": f"{kind}-{len(self.calls)}", **payload}}

    async def create_todo(self, payload: Dict[str, Any]) -> Any:
        return await self._create("todo", payload)

    async def create_habit(self, payload: Dict[str, Any]) -> Any:
        return await self._create("habit", payload)

    async def create_meal_plan(self, payload: Dict[str, Any]) -> Any:
        return await self._create("meal_plan", payload)

    async def create_workout_plan(self, payload: Dict[str, Any]) -> Any:
        return await self._create("workout_plan", payload)

    async def create_journal_entry(self, payload: Dict[str, Any]) -> Any:
        return await self._create("journal_entry", payload)


def rejected(message: str) -> ResourceApiError:
    return ResourceApiError(message, status=400)


INTENT_JSON = {
    "goalType": "weight_loss",
    "target": {"value": 10, "unit": "kg"},
    "duration": {"value": 6, "unit": "months"},
    "requiredInfo": ["current weight", "activity level"],
    "category": "weight-loss-journey",
}

QUESTIONS_JSON = {
    "questions": [
        {"id": "q1", "text": "What is your current weight?", "type": "number", "min": 30, "max": 300, "required": True},
        {"id": "q2", "text": "How active are you?", "type": "select", "options": ["low", "medium", "high"]},
    ]
}

PLAN_JSON: Dict[str, Any] = {
    "summary": "A six month plan to lose 10kg",
    "category": "weight-loss-journey",
    "actions": [
        {
            "type": "create_todos",
            "count": 2,
            "preview": ["Buy a scale", "Book a checkup"],
            "data": [
                {"title": "Buy a scale", "priority": "high", "dueDate": "2030-01-05"},
                {"title": "Book a checkup"},
            ],
        },
        {
            "type": "create_workout_plan",
            "count": 1,
            "preview": {"name": "Starter strength", "duration": 70},
            "data": {
                "name": "Starter strength",
                "description": "Three sessions a week",
                "duration": 70,
                "exercises": [
                    {"id": "ex_1_a", "name": "Push-ups", "sets": 3, "reps": 12},
                    {"id": "ex_2_b", "name": "Plank", "sets": 3, "duration": 45},
                ],
                "weeklySchedule": {"monday": ["ex_1_a"], "wednesday": ["ex_2_b"], "sunday": []},
            },
        },
        {
            "type": "create_habits",
            "count": 1,
            "preview": ["Walk 10k steps"],
            "data": [{"name": "Walk 10k steps", "frequency": "daily"}],
        },
    ],
}


def wrapped(payload: Dict[str, Any]) -> str:
    return f"Sure! Here is what you asked for:\n```json\n{json.dumps(payload)}\n```\nGood luck!"


def happy_completion() -> FakeCompletion:
    return FakeCompletion({"intent": wrapped(INTENT_JSON), "questions": wrapped(QUESTIONS_JSON), "plan": wrapped(PLAN_JSON)})
