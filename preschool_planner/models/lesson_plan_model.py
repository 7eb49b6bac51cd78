from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


AGE_GROUPS = [
    "Nursery (24-36 months)",
    "3-4 years",
    "4-5 years",
    "5-6 years",
]
METHODS = [
    "STEAM",
    "5E",
    "Montessori",
    "EDP (Engineering Design Process)",
    "Child-centred learning",
]
DEVELOPMENT_FIELDS = [
    "Cognitive development",
    "Language development",
    "Physical development",
    "Aesthetic development",
    "Social-emotional development",
]


class CamelModel(BaseModel):
    # camelCase on the wire and in storage, snake_case in Python
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Objectives(CamelModel):
    knowledge: List[str]
    skills: List[str]
    attitude: List[str]


class Preparation(CamelModel):
    teacher: List[str]
    students: List[str]


class ProcedureStep(CamelModel):
    step: str
    teacher_activity: str
    student_activity: str


class LessonPlanDraft(CamelModel):
    """A lesson plan as returned by the model, before it has an identity."""

    title: str
    age_group: str
    method: str
    development_field: str
    teacher_name: str = ""
    class_name: str = ""
    school_name: str = ""
    teaching_date: str = ""
    location: str = ""
    objectives: Objectives
    preparation: Preparation
    procedure: List[ProcedureStep]

    @field_validator("teacher_name", "class_name", "school_name", "teaching_date", "location", mode="before")
    @classmethod
    def none_to_empty(cls, v):
        return "" if v is None else v


class LessonPlan(LessonPlanDraft):
    id: str
    created_at: int = Field(..., description="Creation time in epoch milliseconds.")

    @classmethod
    def from_draft(cls, draft: LessonPlanDraft, *, id: str, created_at: int) -> "LessonPlan":
        return cls(**draft.model_dump(), id=id, created_at=created_at)

    def to_draft(self) -> LessonPlanDraft:
        return LessonPlanDraft(**self.model_dump(exclude={"id", "created_at"}))


class LessonPlanRequest(CamelModel):
    topic: str
    age_group: str = AGE_GROUPS[2]
    method: str = METHODS[0]
    development_field: str = DEVELOPMENT_FIELDS[0]
    teacher_name: Optional[str] = None
    class_name: Optional[str] = None
    school_name: Optional[str] = None
    teaching_date: Optional[str] = None
    location: Optional[str] = None
    notes: Optional[str] = None

    @field_validator("topic")
    @classmethod
    def topic_not_blank(cls, v):
        if not v or not v.strip():
            raise ValueError("Topic is required")
        return v.strip()


class RefineRequest(CamelModel):
    feedback: str

    @field_validator("feedback")
    @classmethod
    def feedback_not_blank(cls, v):
        if not v or not v.strip():
            raise ValueError("Feedback is required")
        return v.strip()


class LessonPlanResponse(CamelModel):
    plan: LessonPlan
    warning: Optional[str] = None


class FormOptions(CamelModel):
    age_groups: List[str] = AGE_GROUPS
    methods: List[str] = METHODS
    development_fields: List[str] = DEVELOPMENT_FIELDS
