"""Tests for the intake API client."""

from __future__ import annotations

from typing import Any, Dict

import pytest
import requests

import intake.api_client as api_client
from intake.api_client import IntakeApiClient, SubmissionError, SubmissionResponse


class DummyResponse:
    def __init__(self, payload: Any = None, status_code: int = 200, json_error: bool = False) -> None:
        self._payload = payload
        self.status_code = status_code
        self._json_error = json_error

    def json(self) -> Any:
        if self._json_error:
            raise ValueError("No JSON object could be decoded")
        return self._payload

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")


def test_fetch_batch_questions(monkeypatch) -> None:
    captured: Dict[str, Any] = {}

    def fake_get(url, headers=None, timeout=None):
        captured.update(url=url, headers=headers, timeout=timeout)
        return DummyResponse(
            {
                "success": True,
                "data": {
                    "questions": [
                        {"id": 1, "code": "full_name", "type": "text", "required": True},
                        {"label": "missing code"},
                    ]
                },
            }
        )

    monkeypatch.setattr(api_client.requests, "get", fake_get)
    client = IntakeApiClient(api_url="https://intake.example/api/v1/", timeout=5)

    questions = client.fetch_batch_questions("B-7")

    assert captured["url"] == "https://intake.example/api/v1/batch/B-7/form-configuration"
    assert captured["timeout"] == 5
    assert captured["headers"]["Accept"] == "application/json"
    assert [question.code for question in questions] == ["full_name"]


def test_fetch_batch_questions_raises_http_errors(monkeypatch) -> None:
    monkeypatch.setattr(
        api_client.requests, "get", lambda *args, **kwargs: DummyResponse({}, status_code=503)
    )

    with pytest.raises(requests.HTTPError):
        IntakeApiClient(api_url="https://intake.example").fetch_batch_questions("B-7")


def test_submit_form_posts_payload(monkeypatch) -> None:
    captured: Dict[str, Any] = {}

    def fake_post(url, headers=None, json=None, timeout=None):
        captured.update(url=url, json=json, timeout=timeout)
        return DummyResponse({"success": True, "message": "Saved", "data": {"id": 9}})

    monkeypatch.setattr(api_client.requests, "post", fake_post)
    payload = {"agreement1": "agree", "answers": [], "verification_token": "t"}

    response = IntakeApiClient(api_url="https://intake.example/api/v1").submit_form(payload)

    assert captured["url"] == "https://intake.example/api/v1/form"
    assert captured["json"] == payload
    assert captured["timeout"] == 10
    assert response == SubmissionResponse(success=True, message="Saved", data={"id": 9})


def test_submit_form_returns_rejections(monkeypatch) -> None:
    monkeypatch.setattr(
        api_client.requests,
        "post",
        lambda *args, **kwargs: DummyResponse({"success": False, "error": "Token expired"}, 422),
    )

    response = IntakeApiClient(api_url="https://intake.example").submit_form({})

    assert not response.success
    assert response.message == "Token expired"


def test_success_must_be_literal_true() -> None:
    assert not SubmissionResponse.from_payload({"success": "true"}).success
    assert SubmissionResponse.from_payload({"success": True}).success


def test_submit_form_wraps_transport_errors(monkeypatch) -> None:
    def fake_post(*args, **kwargs):
        raise requests.ConnectionError("connection refused")

    monkeypatch.setattr(api_client.requests, "post", fake_post)

    with pytest.raises(SubmissionError, match="Unable to reach"):
        IntakeApiClient(api_url="https://intake.example").submit_form({})


@pytest.mark.parametrize(
    "response",
    [DummyResponse(json_error=True, status_code=502), DummyResponse(["unexpected"])],
)
def test_submit_form_rejects_unreadable_bodies(monkeypatch, response) -> None:
    monkeypatch.setattr(api_client.requests, "post", lambda *args, **kwargs: response)

    with pytest.raises(SubmissionError, match="Unexpected response"):
        IntakeApiClient(api_url="https://intake.example").submit_form({})
