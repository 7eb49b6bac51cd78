"""
session.py
----------
The lesson-planning session: what the teacher is looking at right now.

Holds the current plan, the view mode and a busy flag, and wires the
generation/refinement clients to the history store and the exporters.
There is one session per running app, so the busy flag is a plain gate
rather than a lock.
"""

import logging
import os
import uuid
from dataclasses import dataclass
from datetime import date
from typing import Callable, List, Literal, Optional

from preschool_planner.models.lesson_plan_model import LessonPlan, LessonPlanRequest
from preschool_planner.services.history_store import HistoryStore, StorageError
from preschool_planner.services.lesson_plan_generator import generate_lesson_plan, refine_lesson_plan
from preschool_planner.services.pdf_exporter import render_pdf
from preschool_planner.services.word_exporter import render_docx
from preschool_planner.utils.ai_client import TextGenerator
from preschool_planner.utils.date_utils import now_millis
from preschool_planner.utils.export_utils import export_filename

logger = logging.getLogger(__name__)

View = Literal["editor", "history"]
ExportFormat = Literal["pdf", "docx"]

STORAGE_WARNING = "The lesson plan was created but could not be saved to history."


class SessionBusyError(Exception):
    """A generation or refinement is already running."""


class NoCurrentPlanError(Exception):
    """The action needs a lesson plan on screen and there is none."""


@dataclass
class SessionResult:
    plan: LessonPlan
    warning: Optional[str] = None


@dataclass
class ExportedFile:
    filename: str
    content: bytes
    media_type: str


class LessonSession:
    def __init__(
        self,
        generator: TextGenerator,
        history: HistoryStore,
        *,
        language: str = "English",
        pdf_font_path: Optional[str] = None,
        id_factory: Callable[[], str] = lambda: uuid.uuid4().hex,
        clock: Callable[[], int] = now_millis,
    ):
        self.generator = generator
        self.history = history
        self.language = language
        self.pdf_font_path = pdf_font_path
        self.id_factory = id_factory
        self.clock = clock

        self.current_plan: Optional[LessonPlan] = None
        self.view: View = "editor"
        self.busy = False

    # -------------------------
    # Generation & refinement
    # -------------------------
    async def generate(self, request: LessonPlanRequest) -> SessionResult:
        if not request.topic or not request.topic.strip():
            raise ValueError("Topic is required")
        self._enter()
        try:
            draft = await generate_lesson_plan(request, self.generator, language=self.language)
        finally:
            self.busy = False

        plan = LessonPlan.from_draft(draft, id=self.id_factory(), created_at=self.clock())
        self.current_plan = plan
        return SessionResult(plan=plan, warning=self._persist(plan))

    async def refine(self, feedback: str) -> SessionResult:
        if self.current_plan is None:
            raise NoCurrentPlanError("There is no lesson plan to refine")
        if not feedback or not feedback.strip():
            raise ValueError("Feedback is required")
        original = self.current_plan
        self._enter()
        try:
            draft = await refine_lesson_plan(original, feedback, self.generator, language=self.language)
        finally:
            self.busy = False

        plan = LessonPlan.from_draft(draft, id=original.id, created_at=original.created_at)
        self.current_plan = plan
        return SessionResult(plan=plan, warning=self._persist(plan))

    def _enter(self):
        if self.busy:
            raise SessionBusyError("A lesson plan request is already in progress")
        self.busy = True

    def _persist(self, plan: LessonPlan) -> Optional[str]:
        try:
            self.history.save(plan)
        except StorageError as e:
            logger.warning("Lesson plan %s kept in session only: %s", plan.id, e)
            return STORAGE_WARNING
        return None

    # -------------------------
    # History
    # -------------------------
    def list_history(self) -> List[LessonPlan]:
        return self.history.load_all()

    def open(self, plan_id: str) -> Optional[LessonPlan]:
        plan = self.history.get(plan_id)
        if plan is not None:
            self.current_plan = plan
            self.view = "editor"
        return plan

    def delete(self, plan_id: str) -> List[LessonPlan]:
        return self.history.delete(plan_id)

    def set_view(self, view: View) -> None:
        self.view = view

    # -------------------------
    # Export
    # -------------------------
    def export(self, fmt: ExportFormat, today: date) -> ExportedFile:
        if self.current_plan is None:
            raise NoCurrentPlanError("There is no lesson plan to export")
        return export_plan(self.current_plan, fmt, today, pdf_font_path=self.pdf_font_path)


def export_plan(plan: LessonPlan, fmt: ExportFormat, today: date, *, pdf_font_path: Optional[str] = None) -> ExportedFile:
    if fmt == "pdf":
        return ExportedFile(
            filename=export_filename(plan.title, ".pdf"),
            content=render_pdf(plan, today, font_path=pdf_font_path),
            media_type="application/pdf",
        )
    if fmt == "docx":
        return ExportedFile(
            filename=export_filename(plan.title, ".docx"),
            content=render_docx(plan, today),
            media_type="application/vnd.openxmlformats-officedocument.wordprocessingml.document",
        )
    raise ValueError(f"Unsupported export format: {fmt}")


def write_export(directory: str, exported: ExportedFile) -> str:
    """Write an exported document into `directory` and return its path."""
    os.makedirs(directory, exist_ok=True)
    path = os.path.join(directory, exported.filename)
    with open(path, "wb") as f:
        f.write(exported.content)
    logger.info("Exported %s", path)
    return path
