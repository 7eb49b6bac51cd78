from fastapi import Request

from preschool_planner.core.config import Settings
from preschool_planner.services.session import LessonSession


def get_session(request: Request) -> LessonSession:
    """The single lesson-planning session attached to the running app."""
    return request.app.state.session


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings
