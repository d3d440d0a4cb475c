"""HTTP client for the recruitment intake API (question source and submission sink)."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import requests

from intake.questions import Question, parse_questions

logger = logging.getLogger(__name__)


class SubmissionError(Exception):
    """Raised when a submission cannot be delivered or its response is unusable."""


@dataclass(frozen=True)
class SubmissionResponse:
    """Normalised ``{success, message}`` body returned by the submission endpoint."""

    success: bool
    message: str = ""
    data: Any = None

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "SubmissionResponse":
        message = payload.get("message") or payload.get("error") or ""
        return cls(
            success=payload.get("success") is True,
            message=str(message),
            data=payload.get("data"),
        )


@dataclass
class IntakeApiClient:
    """Thin wrapper around the intake REST endpoints."""

    api_url: str
    timeout: float = 10

    def _headers(self) -> Dict[str, str]:
        """Build request headers for the intake API."""

        return {
            "Accept": "application/json",
            "Content-Type": "application/json",
        }

    def _url(self, path: str) -> str:
        return f"{self.api_url.rstrip('/')}/{path.lstrip('/')}"

    def fetch_batch_questions(self, batch_id: str) -> List[Question]:
        """Fetch the form configuration of ``batch_id`` and return its questions."""

        response = requests.get(
            self._url(f"batch/{batch_id}/form-configuration"),
            headers=self._headers(),
            timeout=self.timeout,
        )
        response.raise_for_status()
        payload = response.json()
        data = payload.get("data", payload) if isinstance(payload, dict) else {}
        if not isinstance(data, dict):
            return []
        return parse_questions(data.get("questions"))

    def submit_form(self, payload: Dict[str, Any]) -> SubmissionResponse:
        """Post an application and return the service's verdict.

        A ``success: false`` body is returned, not raised; only transport
        failures and unreadable responses raise :class:`SubmissionError`.
        """

        try:
            response = requests.post(
                self._url("form"),
                headers=self._headers(),
                json=payload,
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            logger.warning("Form submission request failed: %s", exc)
            raise SubmissionError(f"Unable to reach the application service: {exc}") from exc

        try:
            body: Optional[Any] = response.json()
        except ValueError as exc:
            logger.warning(
                "Form submission returned a non-JSON body (HTTP %s)", response.status_code
            )
            raise SubmissionError(
                f"Unexpected response from the application service (HTTP {response.status_code})."
            ) from exc

        if not isinstance(body, dict):
            raise SubmissionError(
                f"Unexpected response from the application service (HTTP {response.status_code})."
            )
        return SubmissionResponse.from_payload(body)


__all__ = ["IntakeApiClient", "SubmissionError", "SubmissionResponse"]
