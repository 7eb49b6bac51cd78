"""Shared fixtures: canned model output, a fake text generator and an in-memory history."""

import json
from typing import Any, Dict, List, Optional

import pytest

from preschool_planner.models.lesson_plan_model import LessonPlan
from preschool_planner.services.history_store import HistoryStore, InMemoryStorage


def plan_payload(**overrides) -> Dict[str, Any]:
    payload = {
        "title": "Colors around us",
        "ageGroup": "4-5 years",
        "method": "STEAM",
        "developmentField": "Cognitive development",
        "teacherName": "Ms. Lan",
        "className": "Sunflower",
        "schoolName": "Hoa Mai Kindergarten",
        "teachingDate": "20/10/2026",
        "location": "Hanoi",
        "objectives": {
            "knowledge": ["Names the primary colors", "Recognises colors in nature"],
            "skills": ["Mixes two paints"],
            "attitude": ["Enjoys experimenting"],
        },
        "preparation": {
            "teacher": ["Paint palette"],
            "students": ["Brushes"],
        },
        "procedure": [
            {"step": "Warm-up", "teacherActivity": "Sing a color song", "studentActivity": "Sing along"},
            {"step": "Explore", "teacherActivity": "Show paint mixing", "studentActivity": "Mix paints"},
            {"step": "Wrap-up", "teacherActivity": "Ask what they made", "studentActivity": "Share results"},
        ],
    }
    payload.update(overrides)
    return payload


def make_plan(plan_id: str = "plan-1", created_at: int = 1_700_000_000_000, **overrides) -> LessonPlan:
    return LessonPlan.model_validate({**plan_payload(**overrides), "id": plan_id, "createdAt": created_at})


class FakeTextGenerator:
    """Replays queued responses and records every call."""

    def __init__(self, responses: Optional[List[Any]] = None):
        self.responses = list(responses or [])
        self.calls: List[Dict[str, Any]] = []

    def queue(self, response: Any) -> None:
        self.responses.append(response)

    async def generate_json(self, *, system_instruction, prompt, response_schema):
        self.calls.append(
            {"system_instruction": system_instruction, "prompt": prompt, "response_schema": response_schema}
        )
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        if isinstance(response, dict):
            return json.dumps(response)
        return response


@pytest.fixture
def generator():
    return FakeTextGenerator()


@pytest.fixture
def storage():
    return InMemoryStorage()


@pytest.fixture
def history(storage):
    return HistoryStore(storage)
