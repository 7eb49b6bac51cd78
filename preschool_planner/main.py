from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from preschool_planner.api import history, lesson_plan
from preschool_planner.core.config import Settings, get_settings
from preschool_planner.services.history_store import HistoryStore, JsonFileStorage
from preschool_planner.services.session import LessonSession
from preschool_planner.utils.ai_client import TextGenerator, build_text_generator


def create_app(
    settings: Optional[Settings] = None,
    *,
    generator: Optional[TextGenerator] = None,
    history_store: Optional[HistoryStore] = None,
) -> FastAPI:
    settings = settings or get_settings()
    app = FastAPI(title="Preschool Lesson Plan Assistant")

    # CORS settings
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.settings = settings
    app.state.session = LessonSession(
        generator or build_text_generator(settings),
        history_store
        or HistoryStore(JsonFileStorage(settings.history_dir), key=settings.history_key, limit=settings.history_limit),
        language=settings.ai_output_language,
        pdf_font_path=settings.pdf_font_path,
    )

    # Routers
    app.include_router(lesson_plan.router, prefix="/api", tags=["lesson_plan"])
    app.include_router(history.router, prefix="/api")

    @app.get("/")
    def read_root():
        return {"message": "Preschool Lesson Plan Assistant API is running"}

    return app


def run():
    """Serve the API with uvicorn (`preschool-planner` console script)."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(create_app(settings), host=settings.host, port=settings.port)
