# utils/date_utils.py
import time
from datetime import date, datetime, timezone


def now_millis() -> int:
    """Current time as epoch milliseconds, the unit of LessonPlan.created_at."""
    return int(time.time() * 1000)


def format_export_date(today: date) -> str:
    """Date printed on exported documents, e.g. 17/10/2026."""
    return today.strftime("%d/%m/%Y")


def export_timestamp(today: date) -> datetime:
    """
    Midnight UTC of `today`.

    Used for document metadata so an export depends only on the date passed in,
    never on the wall clock or the local timezone.
    """
    return datetime(today.year, today.month, today.day, tzinfo=timezone.utc)
