import re
from typing import List, Optional, Tuple

from preschool_planner.models.lesson_plan_model import LessonPlan

# Section labels shared by the PDF and Word exporters
OBJECTIVES_HEADING = "I. OBJECTIVES"
PREPARATION_HEADING = "II. PREPARATION"
PROCEDURE_HEADING = "III. ACTIVITY PROCEDURE"

KNOWLEDGE_LABEL = "Knowledge"
SKILLS_LABEL = "Skills"
ATTITUDE_LABEL = "Attitude"
TEACHER_PREP_LABEL = "Teacher"
STUDENTS_PREP_LABEL = "Children"

PROCEDURE_HEADER = ("Step", "Teacher's activity", "Children's activity")

SCHOOL_SIGN_OFF = "APPROVED BY THE SCHOOL BOARD"
TEACHER_SIGN_OFF = "TEACHER"
SIGNATURE_HINT = "(Signature and full name)"

PLACEHOLDER = "................"

DEFAULT_FILENAME = "lesson_plan"


def or_placeholder(value: Optional[str]) -> str:
    return value.strip() if value and value.strip() else PLACEHOLDER


def export_filename(title: str, suffix: str) -> str:
    """
    Deterministic download name for a plan: whitespace runs become underscores,
    path separators are dropped.
    """
    base = re.sub(r"\s+", "_", (title or "").strip())
    base = re.sub(r"[\\/]", "", base)
    if not base:
        base = DEFAULT_FILENAME
    if not suffix.startswith("."):
        suffix = f".{suffix}"
    return f"{base}{suffix}"


def classification_lines(plan: LessonPlan) -> List[Tuple[str, str]]:
    return [
        ("Age group", plan.age_group),
        ("Method", plan.method),
        ("Developmental domain", plan.development_field),
    ]


def metadata_columns(plan: LessonPlan) -> Tuple[List[Tuple[str, str]], List[Tuple[str, str]]]:
    """Left column: who teaches where. Right column: when and where."""
    left = [
        ("Teacher", or_placeholder(plan.teacher_name)),
        ("Class", or_placeholder(plan.class_name)),
        ("School", or_placeholder(plan.school_name)),
    ]
    right = [
        ("Teaching date", or_placeholder(plan.teaching_date)),
        ("Location", or_placeholder(plan.location)),
    ]
    return left, right


def objective_groups(plan: LessonPlan) -> List[Tuple[str, List[str]]]:
    return [
        (KNOWLEDGE_LABEL, plan.objectives.knowledge),
        (SKILLS_LABEL, plan.objectives.skills),
        (ATTITUDE_LABEL, plan.objectives.attitude),
    ]


def preparation_groups(plan: LessonPlan) -> List[Tuple[str, List[str]]]:
    return [
        (TEACHER_PREP_LABEL, plan.preparation.teacher),
        (STUDENTS_PREP_LABEL, plan.preparation.students),
    ]


def procedure_rows(plan: LessonPlan) -> List[Tuple[str, str, str]]:
    return [(p.step, p.teacher_activity, p.student_activity) for p in plan.procedure]


def signature_place_and_date(plan: LessonPlan, date_text: str) -> str:
    location = plan.location.strip() if plan.location and plan.location.strip() else PLACEHOLDER
    return f"{location}, {date_text}"
