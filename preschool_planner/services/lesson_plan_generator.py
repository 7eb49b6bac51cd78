import json
import logging
import re
from typing import Any, Dict, Optional

from pydantic import ValidationError

from preschool_planner.models.lesson_plan_model import (
    LessonPlan,
    LessonPlanDraft,
    LessonPlanRequest,
)
from preschool_planner.utils.ai_client import AIClientError, TextGenerator, extract_json_from_text


# -------------------------
# Logging
# -------------------------
logger = logging.getLogger("lesson_plan_generator")
logger.setLevel(logging.INFO)
if not logger.handlers:
    handler = logging.StreamHandler()
    formatter = logging.Formatter("%(asctime)s - %(levelname)s - %(name)s - %(message)s")
    handler.setFormatter(formatter)
    logger.addHandler(handler)


class GenerationError(Exception):
    """The model could not produce a complete, schema-valid lesson plan."""


class RefinementError(GenerationError):
    """Same as GenerationError, raised while refining an existing plan."""


NOT_PROVIDED = "Not provided"


# -------------------------
# Output schema
# -------------------------
_STRING = {"type": "STRING"}
_STRING_LIST = {"type": "ARRAY", "items": _STRING}

LESSON_PLAN_SCHEMA: Dict[str, Any] = {
    "type": "OBJECT",
    "properties": {
        "title": _STRING,
        "ageGroup": _STRING,
        "method": _STRING,
        "developmentField": _STRING,
        "teacherName": _STRING,
        "className": _STRING,
        "schoolName": _STRING,
        "teachingDate": _STRING,
        "location": _STRING,
        "objectives": {
            "type": "OBJECT",
            "properties": {
                "knowledge": _STRING_LIST,
                "skills": _STRING_LIST,
                "attitude": _STRING_LIST,
            },
            "required": ["knowledge", "skills", "attitude"],
        },
        "preparation": {
            "type": "OBJECT",
            "properties": {
                "teacher": _STRING_LIST,
                "students": _STRING_LIST,
            },
            "required": ["teacher", "students"],
        },
        "procedure": {
            "type": "ARRAY",
            "items": {
                "type": "OBJECT",
                "properties": {
                    "step": _STRING,
                    "teacherActivity": _STRING,
                    "studentActivity": _STRING,
                },
                "required": ["step", "teacherActivity", "studentActivity"],
            },
        },
    },
    "required": [
        "title",
        "ageGroup",
        "method",
        "developmentField",
        "objectives",
        "preparation",
        "procedure",
    ],
}


# -------------------------
# Prompts
# -------------------------
def build_system_instruction(language: str = "English") -> str:
    return f"""
You are a senior preschool curriculum expert and education consultant.
Your job is to write detailed lesson plans for preschool teachers.

OUTPUT FORMAT (JSON):
{{
  "title": "Lesson title",
  "ageGroup": "Age group",
  "method": "Teaching method used",
  "developmentField": "Developmental domain",
  "objectives": {{
    "knowledge": ["Point 1", "Point 2"],
    "skills": ["Point 1", "Point 2"],
    "attitude": ["Point 1", "Point 2"]
  }},
  "preparation": {{
    "teacher": ["Teacher materials"],
    "students": ["Children's materials"]
  }},
  "procedure": [
    {{
      "step": "Step name (e.g. Warm-up and settling in)",
      "teacherActivity": "Detailed description of what the teacher does",
      "studentActivity": "Detailed description of what the children do"
    }}
  ]
}}

CONTENT RULES:
1. Write in {language}, in the professional register of early-childhood education.
2. Objectives must be observable and measurable.
3. The procedure must be detailed, creative and child-centred.
4. Integrate the method the teacher asks for (STEAM, 5E, Montessori, etc.) faithfully.
"""


def _or_placeholder(value: Optional[str], placeholder: str = NOT_PROVIDED) -> str:
    if value and value.strip():
        return value.strip()
    return placeholder


def build_generation_prompt(request: LessonPlanRequest) -> str:
    return f"""Write a preschool lesson plan with the following details:
- Topic / lesson title: {request.topic}
- Age group: {request.age_group}
- Method: {request.method}
- Developmental domain: {request.development_field}
- Teacher: {_or_placeholder(request.teacher_name)}
- Class: {_or_placeholder(request.class_name)}
- School: {_or_placeholder(request.school_name)}
- Teaching date: {_or_placeholder(request.teaching_date)}
- Location (commune/city): {_or_placeholder(request.location)}
- Additional notes: {_or_placeholder(request.notes, "None")}

Return the JSON format described in the system instruction."""


def build_refinement_prompt(plan: LessonPlanDraft, feedback: str) -> str:
    current = json.dumps(plan.model_dump(by_alias=True), ensure_ascii=False, indent=2)
    return f"""Here is the current lesson plan:
{current}

The teacher wants the following changes: "{feedback}"

Update the lesson plan accordingly and return the complete JSON object, not only the changed parts."""


# -------------------------
# Response parsing
# -------------------------
def _cleanup_ai_text(text: Any) -> Any:
    """Removes common Markdown artifacts from AI-generated text."""
    if not isinstance(text, str):
        return text
    text = re.sub(r"\*\*(.*?)\*\*", r"\1", text)
    text = re.sub(r"(?<!\w)\*(\S.*?)\*(?!\w)", r"\1", text)
    text = re.sub(r"^#+\s*", "", text, flags=re.MULTILINE)
    return text.strip()


def _cleanup_tree(value: Any) -> Any:
    if isinstance(value, dict):
        return {k: _cleanup_tree(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_cleanup_tree(v) for v in value]
    return _cleanup_ai_text(value)


def parse_lesson_plan(raw_text: str) -> LessonPlanDraft:
    """
    Turn raw model output into a LessonPlanDraft.

    Raises ValueError when the text is not a JSON object or does not match the
    lesson plan shape. Missing list fields are errors, not empty defaults.
    """
    parsed = extract_json_from_text(raw_text)
    if parsed is None:
        raise ValueError("AI output is not a valid JSON object")
    # identity belongs to the caller
    parsed.pop("id", None)
    parsed.pop("createdAt", None)
    try:
        return LessonPlanDraft.model_validate(_cleanup_tree(parsed))
    except ValidationError as e:
        raise ValueError(f"AI output does not match the lesson plan schema: {e}") from e


async def _request_plan(generator: TextGenerator, prompt: str, *, language: str) -> LessonPlanDraft:
    raw_text = await generator.generate_json(
        system_instruction=build_system_instruction(language),
        prompt=prompt,
        response_schema=LESSON_PLAN_SCHEMA,
    )
    logger.debug("AI raw response (truncated): %s", (raw_text or "")[:1000])
    return parse_lesson_plan(raw_text)


# -------------------------
# Generation & refinement
# -------------------------
async def generate_lesson_plan(
    request: LessonPlanRequest, generator: TextGenerator, *, language: str = "English"
) -> LessonPlanDraft:
    """
    Ask the model for a brand-new lesson plan.
    The returned draft has no id/createdAt; the caller assigns them.
    """
    if not request.topic or not request.topic.strip():
        raise ValueError("Topic is required")

    logger.info(f"Generating lesson plan '{request.topic}' ({request.age_group}, {request.method})")
    try:
        draft = await _request_plan(generator, build_generation_prompt(request), language=language)
    except (AIClientError, ValueError) as e:
        logger.error(f"Lesson plan generation failed for '{request.topic}': {e}")
        raise GenerationError(str(e)) from e

    logger.info(f"Lesson plan generated: '{draft.title}' with {len(draft.procedure)} procedure steps")
    return draft


async def refine_lesson_plan(
    plan: LessonPlanDraft, feedback: str, generator: TextGenerator, *, language: str = "English"
) -> LessonPlanDraft:
    """
    Ask the model to rewrite `plan` according to `feedback`.
    Returns a full replacement draft; preserving id/createdAt is up to the caller.
    """
    if not feedback or not feedback.strip():
        raise ValueError("Feedback is required")
    if isinstance(plan, LessonPlan):
        plan = plan.to_draft()

    logger.info(f"Refining lesson plan '{plan.title}'")
    try:
        draft = await _request_plan(generator, build_refinement_prompt(plan, feedback.strip()), language=language)
    except (AIClientError, ValueError) as e:
        logger.error(f"Lesson plan refinement failed for '{plan.title}': {e}")
        raise RefinementError(str(e)) from e

    return draft
