"""Ollama client used by the ticket analysis action."""

from __future__ import annotations

import json
import logging
import time
from typing import Any

import httpx

from helpdesk.core.config import settings

logger = logging.getLogger(__name__)

GENERATE_PATH = "/api/generate"


def build_generate_payload(prompt: str, *, json_mode: bool = False) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "model": settings.OLLAMA_MODEL,
        "prompt": prompt,
        "stream": False,
        "options": {"temperature": 0.1},
    }
    if json_mode:
        payload["format"] = "json"
    return payload


def ollama_generate(prompt: str, *, json_mode: bool = False, timeout: float | None = None) -> str:
    url = f"{settings.OLLAMA_BASE_URL.rstrip('/')}{GENERATE_PATH}"
    started = time.monotonic()
    with httpx.Client(timeout=timeout or settings.AI_ANALYSIS_TIMEOUT_SECONDS) as client:
        response = client.post(url, json=build_generate_payload(prompt, json_mode=json_mode))
        response.raise_for_status()
        data = response.json()
    logger.debug("Ollama %s answered in %.0f ms", settings.OLLAMA_MODEL, (time.monotonic() - started) * 1000)
    if not isinstance(data, dict):
        return ""
    return str(data.get("response") or "").strip()


def extract_json(text: str) -> dict[str, Any] | None:
    """First-to-last brace slice of ``text`` decoded as an object, if any."""
    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end == -1 or end <= start:
        return None
    try:
        data = json.loads(text[start : end + 1])
    except json.JSONDecodeError:
        return None
    return data if isinstance(data, dict) else None
