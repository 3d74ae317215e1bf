import copy
import json
import pathlib
import sys
from datetime import date

import pytest

ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from taskify_ai.agent.intent import IntentExtractor  # noqa: E402
from taskify_ai.agent.planner import PlanGenerator, parse_plan  # noqa: E402
from taskify_ai.agent.prompts import PromptTemplates  # noqa: E402
from taskify_ai.agent.questions import MAX_QUESTIONS, QuestionGenerator  # noqa: E402
from taskify_ai.core.exceptions import PlanGenerationError  # noqa: E402
from taskify_ai.schemas.intent import Intent  # noqa: E402

from fakes import INTENT_JSON, PLAN_JSON, QUESTIONS_JSON, FakeCompletion, wrapped  # noqa: E402

TEMPLATES = PromptTemplates.load()


def test_templates_require_every_prompt():
    with pytest.raises(ValueError):
        PromptTemplates({"intent": "x", "questions": "y"})


def test_render_appends_payload_to_template():
    prompt = TEMPLATES.render("questions", {"goalType": "fitness"})
    assert prompt.startswith("Using the goal below")
    assert prompt.endswith(json.dumps({"goalType": "fitness"}, indent=2))


@pytest.mark.asyncio
async def test_intent_extraction_parses_completion():
    completion = FakeCompletion({"intent": wrapped(INTENT_JSON)})
    intent = await IntentExtractor(completion, TEMPLATES).extract("I want to lose 10kg in 6 months")

    assert intent.goalType == "weight_loss"
    assert intent.target.value == 10 and intent.target.unit == "kg"
    assert intent.requiredInfo == ["current weight", "activity level"]
    assert completion.prompts[0][1].endswith("I want to lose 10kg in 6 months")


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "reply",
    ["Sorry, I can only chat today.", '{"target": {"value": 3}}', RuntimeError("rate limited")],
)
async def test_intent_extraction_falls_back(reply):
    intent = await IntentExtractor(FakeCompletion({"intent": reply}), TEMPLATES).extract("hello")

    assert intent.goalType == "general"
    assert intent.requiredInfo == ["details"]
    assert intent.category.startswith("general-")


@pytest.mark.asyncio
async def test_question_generation_caps_the_list():
    many = {"questions": [{"id": f"q{i}", "text": f"Question {i}?", "type": "text"} for i in range(1, 9)]}
    questions = await QuestionGenerator(FakeCompletion({"questions": wrapped(many)}), TEMPLATES).generate(
        Intent(goalType="fitness")
    )

    assert len(questions) == MAX_QUESTIONS
    assert [question.id for question in questions] == ["q1", "q2", "q3", "q4", "q5"]


@pytest.mark.asyncio
async def test_question_generation_keeps_question_fields():
    questions = await QuestionGenerator(FakeCompletion({"questions": wrapped(QUESTIONS_JSON)}), TEMPLATES).generate(
        Intent(goalType="weight_loss")
    )

    assert questions[0].type == "number" and questions[0].min == 30 and questions[0].max == 300
    assert questions[1].options == ["low", "medium", "high"]


@pytest.mark.asyncio
@pytest.mark.parametrize("reply", ["no json at all", '{"questions": "what?"}', RuntimeError("timeout")])
async def test_question_generation_falls_back(reply):
    questions = await QuestionGenerator(FakeCompletion({"questions": reply}), TEMPLATES).generate(Intent(goalType="x"))

    assert len(questions) == 1
    assert questions[0].id == "q1"
    assert questions[0].text == "Can you provide more details about your goal?"
    assert questions[0].type == "text"
    assert questions[0].required is True


@pytest.mark.asyncio
async def test_plan_generation_includes_answers_and_date():
    completion = FakeCompletion({"plan": wrapped(PLAN_JSON)})
    plan = await PlanGenerator(completion, TEMPLATES).generate(
        Intent(goalType="weight_loss"), {"q1": 82}, today=date(2030, 1, 1)
    )

    assert plan.summary == PLAN_JSON["summary"]
    assert [action.type for action in plan.actions] == ["create_todos", "create_workout_plan", "create_habits"]
    assert all(action.status == "pending" for action in plan.actions)
    prompt = completion.prompts[0][1]
    assert '"q1": 82' in prompt
    assert '"today": "2030-01-01"' in prompt


def test_parse_plan_unwraps_list_payloads_and_fixes_counts():
    raw = copy.deepcopy(PLAN_JSON)
    raw["actions"][0]["count"] = 7
    raw["actions"][1]["data"] = [raw["actions"][1]["data"]]
    raw["actions"][1]["count"] = 4
    raw["actions"][2]["status"] = "completed"

    plan = parse_plan(raw)

    todos, workout, habits = plan.actions
    assert todos.count == 2
    assert workout.count == 1
    assert workout.data.name == "Starter strength"
    assert habits.status == "pending"


def test_parse_plan_flattens_preview_objects():
    raw = copy.deepcopy(PLAN_JSON)
    raw["actions"][0]["preview"] = [{"title": "Buy a scale"}, {"name": "Book a checkup"}]

    assert parse_plan(raw).actions[0].preview == ["Buy a scale", "Book a checkup"]


def test_parse_plan_defaults_summary_and_category():
    plan = parse_plan({"actions": PLAN_JSON["actions"]})

    assert plan.summary == "Your personalized plan"
    assert plan.category.startswith("plan-")


@pytest.mark.parametrize(
    "raw",
    [
        {"summary": "empty", "actions": []},
        {"summary": "bad type", "actions": [{"type": "create_reminders", "count": 1, "data": []}]},
        {"summary": "not a list", "actions": [{"type": "create_todos", "count": 1, "data": {"title": "x"}}]},
        {"summary": "empty wrap", "actions": [{"type": "create_meal_plan", "count": 1, "data": []}]},
    ],
)
def test_parse_plan_rejects_unusable_plans(raw):
    with pytest.raises(PlanGenerationError):
        parse_plan(raw)


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "reply",
    [
        "I could not come up with a plan.",
        '{"summary": "x", "actions": [{"type": "create_todos", "data": [{"priority": "high"}]}]}',
        RuntimeError("model unavailable"),
    ],
)
async def test_plan_generation_failures_raise(reply):
    with pytest.raises(PlanGenerationError) as excinfo:
        await PlanGenerator(FakeCompletion({"plan": reply}), TEMPLATES).generate(Intent(goalType="x"), {})

    assert excinfo.value.status_code == 502
    assert excinfo.value.message == "Failed to generate plan"


@pytest.mark.parametrize(
    "action_index, path, value",
    [
        (0, ("data", 0, "priority"), "urgent"),
        (1, ("data", "exercises", 0, "reps"), "8-12"),
        (2, ("data", 0, "frequency"), "3 times a week"),
    ],
)
def test_parse_plan_keeps_loose_field_values(action_index, path, value):
    raw = copy.deepcopy(PLAN_JSON)
    target = raw["actions"][action_index]
    for key in path[:-1]:
        target = target[key]
    target[path[-1]] = value

    plan = parse_plan(raw)

    assert [action.type for action in plan.actions] == ["create_todos", "create_workout_plan", "create_habits"]
    kept = plan.actions[action_index].model_dump()
    for key in path:
        kept = kept[key]
    assert kept == value


def test_parse_plan_keeps_unlisted_meal_types():
    raw = copy.deepcopy(PLAN_JSON)
    raw["actions"].append(
        {
            "type": "create_meal_plan",
            "count": 1,
            "data": {
                "name": "Lean week",
                "duration": "4",
                "meals": [{"name": "Overnight oats", "type": "brunch", "calories": "450 kcal", "foods": []}],
            },
        }
    )

    meal_plan = parse_plan(raw).actions[-1]

    assert meal_plan.data.meals[0].type == "brunch"
    assert meal_plan.data.meals[0].calories == "450 kcal"
