from functools import lru_cache
from typing import List, Optional

from dotenv import load_dotenv
from pydantic_settings import BaseSettings

# Load environment variables from .env
load_dotenv()


class Settings(BaseSettings):
    """Application configuration with environment variable support"""

    # AI settings
    ai_provider: str = "google-gemini"  # "google-gemini" or "openai"
    ai_model: str = "gemini-2.5-flash"
    ai_api_key: str = ""
    ai_api_base: str = "https://generativelanguage.googleapis.com/v1beta"
    ai_timeout: float = 120.0
    ai_output_language: str = "English"

    # Persistence
    history_dir: str = ".lesson_history"
    history_key: str = "lesson_history"
    history_limit: int = 20

    # Export
    export_dir: str = "exports"
    pdf_font_path: Optional[str] = None  # TTF font for non-Latin lesson content

    # HTTP
    host: str = "127.0.0.1"
    port: int = 8000
    cors_origins: List[str] = [
        "http://localhost:8000",
        "http://localhost:5173",
        "http://localhost:3000",
        "http://127.0.0.1:3000",
        "http://127.0.0.1:5173",
    ]

    class Config:
        case_sensitive = False


@lru_cache
def get_settings() -> Settings:
    return Settings()
