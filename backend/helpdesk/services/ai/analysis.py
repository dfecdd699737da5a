"""Ticket analysis used by the TRIGGER_AI_ANALYSIS automation action."""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from typing import Any

from helpdesk.core.config import settings
from helpdesk.core.exceptions import AIException, AIResponseParsingError
from helpdesk.services.ai.llm import extract_json, ollama_generate

logger = logging.getLogger(__name__)

_MAX_DESCRIPTION_CHARS = 4000


class ApprovalStatus(str, enum.Enum):
    pending = "PENDING"
    auto_approved = "AUTO_APPROVED"


@dataclass(frozen=True)
class AiAnalysis:
    text: str
    confidence: float
    reasoning: str = ""


@dataclass(frozen=True)
class TicketContext:
    ticket_number: int | None
    subject: str
    description: str | None = None
    status: str | None = None
    priority: str | None = None
    tags: list[str] = field(default_factory=list)


def build_analysis_prompt(context: TicketContext) -> str:
    description = (context.description or "").strip()[:_MAX_DESCRIPTION_CHARS]
    tags = ", ".join(context.tags) if context.tags else "none"
    return (
        "You are a helpdesk assistant writing an internal note for support agents.\n"
        "Respond only with valid JSON.\n"
        'Schema: {"analysis": "short note", "confidence": 0.0, "reasoning": "why"}\n'
        "confidence is a number between 0 and 1.\n"
        f"Ticket: #{context.ticket_number}\n"
        f"Subject: {context.subject}\n"
        f"Status: {context.status}\n"
        f"Priority: {context.priority}\n"
        f"Tags: {tags}\n"
        f"Description: {description}\n"
    )


def _coerce_confidence(value: Any) -> float:
    try:
        confidence = float(value)
    except (TypeError, ValueError):
        return 0.0
    return min(1.0, max(0.0, confidence))


def parse_analysis(reply: str) -> AiAnalysis:
    data = extract_json(reply)
    if data is None:
        raise AIResponseParsingError("LLM reply did not contain a JSON object", details={"reply": reply[:500]})
    text = str(data.get("analysis") or data.get("text") or "").strip()
    if not text:
        raise AIResponseParsingError("LLM reply had no analysis text", details={"reply": reply[:500]})
    return AiAnalysis(
        text=text,
        confidence=_coerce_confidence(data.get("confidence")),
        reasoning=str(data.get("reasoning") or "").strip(),
    )


def analyze_ticket(context: TicketContext) -> AiAnalysis:
    prompt = build_analysis_prompt(context)
    try:
        reply = ollama_generate(prompt, json_mode=True, timeout=settings.AI_ANALYSIS_TIMEOUT_SECONDS)
    except Exception as exc:  # noqa: BLE001
        logger.info("LLM ticket analysis failed: %s", exc)
        raise AIException(f"AI analysis unavailable: {exc}", error_code="AI_UNAVAILABLE") from exc
    return parse_analysis(reply)


def determine_approval_status(confidence: float) -> ApprovalStatus:
    if settings.AI_AUTO_APPROVE_ENABLED and confidence >= settings.AI_NOTE_AUTO_APPROVE_THRESHOLD:
        return ApprovalStatus.auto_approved
    return ApprovalStatus.pending
