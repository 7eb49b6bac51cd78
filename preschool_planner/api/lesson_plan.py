from datetime import date
from urllib.parse import quote
import logging

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status

from preschool_planner.api.deps import get_app_settings, get_session
from preschool_planner.core.config import Settings
from preschool_planner.models.lesson_plan_model import (
    FormOptions,
    LessonPlan,
    LessonPlanRequest,
    LessonPlanResponse,
    RefineRequest,
)
from preschool_planner.services.lesson_plan_generator import GenerationError, RefinementError
from preschool_planner.services.session import LessonSession, NoCurrentPlanError, SessionBusyError, write_export

router = APIRouter()

# -------------------------
# Logging Configuration
# -------------------------
logger = logging.getLogger("lesson_plan_api")
logger.setLevel(logging.INFO)
if not logger.handlers:
    handler = logging.StreamHandler()
    formatter = logging.Formatter("%(asctime)s - %(levelname)s - %(name)s - %(message)s")
    handler.setFormatter(formatter)
    logger.addHandler(handler)


BUSY_DETAIL = "A lesson plan is already being prepared. Please wait for it to finish."
NO_PLAN_DETAIL = "There is no lesson plan open."


@router.get("/options", response_model=FormOptions, summary="Choices for the lesson plan form")
def get_options():
    return FormOptions()


@router.post(
    "/lesson-plans",
    response_model=LessonPlanResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Generate an AI-powered preschool lesson plan",
)
async def create_lesson_plan(req: LessonPlanRequest, session: LessonSession = Depends(get_session)):
    """
    Generate a complete lesson plan from the form and add it to the history.
    The topic is required; everything else falls back to form defaults.
    """
    try:
        result = await session.generate(req)
    except SessionBusyError:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=BUSY_DETAIL)
    except GenerationError:
        logger.exception("Failed to generate lesson plan")
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="Something went wrong while writing the lesson plan. Please try again.",
        )

    logger.info(f"Lesson plan {result.plan.id} generated for '{req.topic}' ({req.age_group}, {req.method})")
    return LessonPlanResponse(plan=result.plan, warning=result.warning)


@router.get("/lesson-plans/current", response_model=LessonPlan, summary="The lesson plan being edited")
def get_current_plan(session: LessonSession = Depends(get_session)):
    if session.current_plan is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=NO_PLAN_DETAIL)
    return session.current_plan


@router.post(
    "/lesson-plans/current/refine",
    response_model=LessonPlanResponse,
    summary="Adjust the current lesson plan with free-text feedback",
)
async def refine_current_plan(req: RefineRequest, session: LessonSession = Depends(get_session)):
    try:
        result = await session.refine(req.feedback)
    except NoCurrentPlanError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=NO_PLAN_DETAIL)
    except SessionBusyError:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=BUSY_DETAIL)
    except RefinementError:
        logger.exception("Failed to refine lesson plan")
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="Something went wrong while adjusting the lesson plan. Please try again.",
        )

    logger.info(f"Lesson plan {result.plan.id} refined")
    return LessonPlanResponse(plan=result.plan, warning=result.warning)


@router.get("/lesson-plans/current/export/{fmt}", summary="Download the current lesson plan as PDF or Word")
def export_current_plan(
    fmt: str,
    save: bool = False,
    session: LessonSession = Depends(get_session),
    settings: Settings = Depends(get_app_settings),
):
    """
    Stream the current plan as a download.
    With `save=true` a copy is also written to the configured export directory.
    """
    if fmt not in ("pdf", "docx"):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Unknown export format '{fmt}'")
    try:
        exported = session.export(fmt, date.today())
    except NoCurrentPlanError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=NO_PLAN_DETAIL)

    if save:
        try:
            write_export(settings.export_dir, exported)
        except OSError:
            logger.exception("Failed to write export to %s", settings.export_dir)

    return Response(
        content=exported.content,
        media_type=exported.media_type,
        headers={"Content-Disposition": f"attachment; filename*=UTF-8''{quote(exported.filename)}"},
    )


@router.get("/share", summary="Link for sharing the app")
def share(request: Request):
    return {
        "title": "Preschool Lesson Plan Assistant",
        "text": "Write preschool lesson plans with STEAM, 5E, Montessori and more.",
        "url": str(request.base_url),
    }
