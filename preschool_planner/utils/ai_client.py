# utils/ai_client.py
import json
import logging
import re
from typing import Any, Dict, Optional, Protocol

import httpx
from openai import AsyncOpenAI, OpenAIError

from preschool_planner.core.config import Settings

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)


class AIClientError(Exception):
    pass


class TextGenerator(Protocol):
    """
    A hosted text-generation model asked for a JSON document.

    Implementations return the raw response text. They never retry: a failed
    call raises AIClientError and the caller decides what to tell the user.
    """

    async def generate_json(
        self, *, system_instruction: str, prompt: str, response_schema: Dict[str, Any]
    ) -> str:
        ...


class GeminiTextGenerator:
    def __init__(
        self,
        *,
        api_key: str,
        model: str,
        api_base: str = "https://generativelanguage.googleapis.com/v1beta",
        timeout: float = 120.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key
        self.model = model
        self.api_base = api_base.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    async def generate_json(self, *, system_instruction, prompt, response_schema):
        url = f"{self.api_base}/models/{self.model}:generateContent"
        payload = {
            "systemInstruction": {"parts": [{"text": system_instruction}]},
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": {
                "responseMimeType": "application/json",
                "responseSchema": response_schema,
            },
        }
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                resp = await client.post(url, params={"key": self.api_key}, json=payload)
        except httpx.HTTPError as e:
            raise AIClientError(f"Request to AI provider failed: {e}") from e

        if resp.status_code != 200:
            raise AIClientError(f"AI provider returned status {resp.status_code}: {resp.text}")

        try:
            data = resp.json()
            return data["candidates"][0]["content"]["parts"][0]["text"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise AIClientError(f"Unexpected AI provider response shape: {e}") from e


class OpenAITextGenerator:
    def __init__(self, *, api_key: str, model: str, timeout: float = 120.0, client: Optional[AsyncOpenAI] = None):
        self.model = model
        self.client = client or AsyncOpenAI(api_key=api_key, timeout=timeout, max_retries=0)

    async def generate_json(self, *, system_instruction, prompt, response_schema):
        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": system_instruction},
                    {"role": "user", "content": prompt},
                ],
                response_format={
                    "type": "json_schema",
                    "json_schema": {"name": "lesson_plan", "schema": _to_json_schema(response_schema)},
                },
            )
        except OpenAIError as e:
            raise AIClientError(f"OpenAI request failed: {e}") from e

        content = response.choices[0].message.content if response.choices else None
        if not content:
            raise AIClientError("OpenAI returned an empty response")
        return content


def _to_json_schema(schema: Any) -> Any:
    """Gemini schemas use upper-case type names; JSON Schema wants lower-case."""
    if isinstance(schema, dict):
        return {
            k: (v.lower() if k == "type" and isinstance(v, str) else _to_json_schema(v))
            for k, v in schema.items()
        }
    if isinstance(schema, list):
        return [_to_json_schema(v) for v in schema]
    return schema


def build_text_generator(settings: Settings) -> TextGenerator:
    provider = settings.ai_provider.strip().lower()
    if not settings.ai_api_key:
        raise ValueError(f"AI_API_KEY not set for {provider}")

    if provider == "google-gemini":
        return GeminiTextGenerator(
            api_key=settings.ai_api_key,
            model=settings.ai_model,
            api_base=settings.ai_api_base,
            timeout=settings.ai_timeout,
        )
    if provider == "openai":
        return OpenAITextGenerator(
            api_key=settings.ai_api_key, model=settings.ai_model, timeout=settings.ai_timeout
        )
    raise ValueError(f"Unsupported AI_PROVIDER: {settings.ai_provider}")


def extract_json_from_text(text: str) -> Optional[Dict[str, Any]]:
    """
    Parse a JSON object from a model response.
    Markdown code fences around the document are tolerated; anything else that
    is not a JSON object yields None.
    """
    if not isinstance(text, str):
        return None
    text = text.strip()
    fenced = re.match(r"^```(?:json)?\s*(.*?)\s*```$", text, re.DOTALL)
    if fenced:
        text = fenced.group(1)

    try:
        parsed = json.loads(text)
    except json.JSONDecodeError:
        logger.warning("Failed to extract any valid JSON from the AI response.")
        return None
    return parsed if isinstance(parsed, dict) else None
