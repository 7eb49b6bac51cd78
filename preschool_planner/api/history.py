from typing import List

from fastapi import APIRouter, Depends, HTTPException, Response, status

from preschool_planner.api.deps import get_session
from preschool_planner.models.lesson_plan_model import LessonPlan
from preschool_planner.services.history_store import StorageError
from preschool_planner.services.session import LessonSession

router = APIRouter(prefix="/history", tags=["history"])


@router.get("", response_model=List[LessonPlan], summary="Saved lesson plans, newest first")
def list_history(session: LessonSession = Depends(get_session)):
    session.set_view("history")
    return session.list_history()


@router.get("/{plan_id}", response_model=LessonPlan, summary="Reopen a saved lesson plan")
def open_plan(plan_id: str, session: LessonSession = Depends(get_session)):
    plan = session.open(plan_id)
    if plan is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Lesson plan {plan_id} not found")
    return plan


@router.delete("/{plan_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Remove a saved lesson plan")
def delete_plan(plan_id: str, session: LessonSession = Depends(get_session)):
    try:
        session.delete(plan_id)
    except StorageError:
        raise HTTPException(
            status_code=status.HTTP_507_INSUFFICIENT_STORAGE,
            detail="The history could not be updated. Please try again.",
        )
    return Response(status_code=status.HTTP_204_NO_CONTENT)
