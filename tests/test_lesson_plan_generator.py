import json

import pytest

from conftest import make_plan, plan_payload
from preschool_planner.models.lesson_plan_model import LessonPlanRequest
from preschool_planner.services.lesson_plan_generator import (
    LESSON_PLAN_SCHEMA,
    GenerationError,
    RefinementError,
    build_system_instruction,
    generate_lesson_plan,
    parse_lesson_plan,
    refine_lesson_plan,
)
from preschool_planner.utils.ai_client import AIClientError


def _request(**kwargs):
    return LessonPlanRequest(**{"topic": "Colors", "ageGroup": "4-5 years", "method": "STEAM", **kwargs})


async def test_generate_returns_complete_draft(generator):
    generator.queue(plan_payload())
    draft = await generate_lesson_plan(_request(), generator)

    assert draft.title == "Colors around us"
    assert len(draft.objectives.knowledge) == 2
    assert draft.preparation.teacher == ["Paint palette"]
    assert [s.step for s in draft.procedure] == ["Warm-up", "Explore", "Wrap-up"]
    assert not hasattr(draft, "id")


async def test_generate_sends_schema_and_parameters(generator):
    generator.queue(plan_payload())
    await generate_lesson_plan(_request(teacherName="Ms. Lan", notes="Outdoor class"), generator)

    call = generator.calls[0]
    assert call["response_schema"] is LESSON_PLAN_SCHEMA
    assert "preschool curriculum expert" in call["system_instruction"]
    assert "Topic / lesson title: Colors" in call["prompt"]
    assert "Teacher: Ms. Lan" in call["prompt"]
    assert "Class: Not provided" in call["prompt"]
    assert "Additional notes: Outdoor class" in call["prompt"]


async def test_output_language_reaches_system_instruction(generator):
    generator.queue(plan_payload())
    await generate_lesson_plan(_request(), generator, language="Vietnamese")
    assert "Write in Vietnamese" in generator.calls[0]["system_instruction"]


async def test_blank_topic_is_rejected_before_any_call(generator):
    request = LessonPlanRequest.model_construct(topic="   ")
    with pytest.raises(ValueError):
        await generate_lesson_plan(request, generator)
    assert generator.calls == []


def test_request_model_rejects_blank_topic():
    with pytest.raises(ValueError):
        LessonPlanRequest(topic="  ")


@pytest.mark.parametrize(
    "response",
    [
        "Sorry, I cannot help with that.",
        "[1, 2, 3]",
        json.dumps({**plan_payload(), "objectives": {"knowledge": ["a"], "skills": ["b"]}}),
        json.dumps({k: v for k, v in plan_payload().items() if k != "procedure"}),
        json.dumps({**plan_payload(), "procedure": [{"step": "Only a label"}]}),
        json.dumps({**plan_payload(), "preparation": {"teacher": "Paint", "students": []}}),
    ],
)
async def test_malformed_response_raises_generation_error(generator, response):
    generator.queue(response)
    with pytest.raises(GenerationError):
        await generate_lesson_plan(_request(), generator)


async def test_provider_failure_raises_generation_error(generator):
    generator.queue(AIClientError("AI provider returned status 503"))
    with pytest.raises(GenerationError):
        await generate_lesson_plan(_request(), generator)


async def test_empty_lists_are_valid(generator):
    generator.queue(plan_payload(preparation={"teacher": [], "students": []}))
    draft = await generate_lesson_plan(_request(), generator)
    assert draft.preparation.students == []


def test_parse_accepts_fenced_json_and_strips_markdown():
    raw = "```json\n" + json.dumps(plan_payload(title="**Colors** around us")) + "\n```"
    draft = parse_lesson_plan(raw)
    assert draft.title == "Colors around us"


def test_parse_ignores_identity_fields_from_model():
    draft = parse_lesson_plan(json.dumps({**plan_payload(), "id": "evil", "createdAt": 1}))
    assert "id" not in draft.model_dump()


def test_parse_defaults_missing_metadata_to_empty():
    payload = {k: v for k, v in plan_payload().items() if k not in ("teacherName", "location")}
    draft = parse_lesson_plan(json.dumps(payload))
    assert draft.teacher_name == ""
    assert draft.location == ""


def test_parse_reads_null_metadata_as_empty():
    draft = parse_lesson_plan(json.dumps(plan_payload(teacherName=None, className=None, location=None)))
    assert draft.teacher_name == ""
    assert draft.class_name == ""
    assert draft.location == ""
    assert draft.school_name == "Hoa Mai Kindergarten"


async def test_refine_embeds_current_plan_and_feedback(generator):
    generator.queue(plan_payload(title="Colors and shapes"))
    plan = make_plan("keep-me")

    draft = await refine_lesson_plan(plan, "Add a shapes activity", generator)

    assert draft.title == "Colors and shapes"
    prompt = generator.calls[0]["prompt"]
    assert '"title": "Colors around us"' in prompt
    assert "Add a shapes activity" in prompt
    assert "keep-me" not in prompt


async def test_refine_rejects_blank_feedback(generator):
    with pytest.raises(ValueError):
        await refine_lesson_plan(make_plan(), " ", generator)
    assert generator.calls == []


async def test_refine_malformed_response_raises_refinement_error(generator):
    generator.queue("not json")
    with pytest.raises(RefinementError):
        await refine_lesson_plan(make_plan(), "Shorter please", generator)


def test_schema_requires_every_list_field():
    props = LESSON_PLAN_SCHEMA["properties"]
    assert props["objectives"]["required"] == ["knowledge", "skills", "attitude"]
    assert props["preparation"]["required"] == ["teacher", "students"]
    assert props["procedure"]["items"]["required"] == ["step", "teacherActivity", "studentActivity"]


def test_system_instruction_mentions_output_shape():
    text = build_system_instruction()
    assert '"teacherActivity"' in text
    assert "Write in English" in text
