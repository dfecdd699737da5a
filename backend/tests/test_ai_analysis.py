from __future__ import annotations

import httpx
import pytest

from helpdesk.core.config import settings
from helpdesk.core.exceptions import AIException, AIResponseParsingError
from helpdesk.services.ai import analysis, llm


def test_parse_analysis_reads_json_inside_reply() -> None:
    reply = 'Sure! {"analysis": "Reset the VPN token.", "confidence": 1.7, "reasoning": "common fix"} done'
    result = analysis.parse_analysis(reply)
    assert result.text == "Reset the VPN token."
    assert result.confidence == 1.0
    assert result.reasoning == "common fix"


def test_parse_analysis_rejects_unusable_replies() -> None:
    with pytest.raises(AIResponseParsingError):
        analysis.parse_analysis("no json here")
    with pytest.raises(AIResponseParsingError):
        analysis.parse_analysis('{"confidence": 0.4}')


def test_analyze_ticket_wraps_transport_errors(monkeypatch) -> None:  # noqa: ANN001
    def failing_generate(prompt, *, json_mode=False, timeout=None):  # noqa: ANN001
        raise ConnectionError("ollama offline")

    monkeypatch.setattr(analysis, "ollama_generate", failing_generate)
    with pytest.raises(AIException):
        analysis.analyze_ticket(analysis.TicketContext(ticket_number=1, subject="x"))


def test_analyze_ticket_builds_prompt_from_context(monkeypatch) -> None:  # noqa: ANN001
    prompts = []

    def fake_generate(prompt, *, json_mode=False, timeout=None):  # noqa: ANN001
        prompts.append((prompt, json_mode))
        return '{"analysis": "Check toner.", "confidence": 0.5}'

    monkeypatch.setattr(analysis, "ollama_generate", fake_generate)
    context = analysis.TicketContext(ticket_number=9, subject="Printer pale", tags=["hardware"])

    result = analysis.analyze_ticket(context)

    assert result.text == "Check toner."
    assert "Printer pale" in prompts[0][0]
    assert "hardware" in prompts[0][0]
    assert prompts[0][1] is True


def test_approval_requires_flag_and_threshold(monkeypatch) -> None:  # noqa: ANN001
    monkeypatch.setattr(settings, "AI_NOTE_AUTO_APPROVE_THRESHOLD", 0.9)
    monkeypatch.setattr(settings, "AI_AUTO_APPROVE_ENABLED", False)
    assert analysis.determine_approval_status(0.99) == analysis.ApprovalStatus.pending

    monkeypatch.setattr(settings, "AI_AUTO_APPROVE_ENABLED", True)
    assert analysis.determine_approval_status(0.95) == analysis.ApprovalStatus.auto_approved
    assert analysis.determine_approval_status(0.5) == analysis.ApprovalStatus.pending


class _FakeResponse:
    def __init__(self, status_code: int, payload: object) -> None:
        self.status_code = status_code
        self._payload = payload

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            request = httpx.Request("POST", "http://ollama.test/api/generate")
            raise httpx.HTTPStatusError("error", request=request, response=httpx.Response(self.status_code, request=request))

    def json(self) -> object:
        return self._payload


class _FakeClient:
    posts: list[tuple[str, dict]] = []
    response = _FakeResponse(200, {"response": "  {\"analysis\": \"ok\"}  "})

    def __init__(self, timeout: float) -> None:
        self.timeout = timeout

    def __enter__(self) -> "_FakeClient":
        return self

    def __exit__(self, *exc_info) -> None:  # noqa: ANN002
        return None

    def post(self, url: str, json: dict) -> _FakeResponse:
        _FakeClient.posts.append((url, json))
        return _FakeClient.response


def test_ollama_generate_posts_json_mode_prompt(monkeypatch) -> None:  # noqa: ANN001
    monkeypatch.setattr(llm.httpx, "Client", _FakeClient)
    monkeypatch.setattr(_FakeClient, "posts", [])
    monkeypatch.setattr(settings, "OLLAMA_BASE_URL", "http://ollama.test/")
    monkeypatch.setattr(settings, "OLLAMA_MODEL", "llama3")

    reply = llm.ollama_generate("Summarise ticket #4", json_mode=True, timeout=3)

    assert reply == '{"analysis": "ok"}'
    url, payload = _FakeClient.posts[0]
    assert url == "http://ollama.test/api/generate"
    assert payload["model"] == "llama3"
    assert payload["format"] == "json"
    assert payload["stream"] is False


def test_ollama_generate_raises_on_http_error(monkeypatch) -> None:  # noqa: ANN001
    monkeypatch.setattr(llm.httpx, "Client", _FakeClient)
    monkeypatch.setattr(_FakeClient, "response", _FakeResponse(404, {"error": "model not found"}))

    with pytest.raises(httpx.HTTPStatusError):
        llm.ollama_generate("anything")


def test_extract_json_ignores_non_objects() -> None:
    assert llm.extract_json('noise {"a": 1} trailing') == {"a": 1}
    assert llm.extract_json("[1, 2]") is None
    assert llm.extract_json("{broken") is None
