"""Tests for the application wizard state machine."""

from __future__ import annotations

import threading
from typing import Any, Dict, List

import pytest

from intake.api_client import SubmissionError, SubmissionResponse
from intake.questions import Question
from intake.schema_defaults import (
    CONSENT_REQUIRED_MESSAGE,
    INCOMPLETE_STEP_MESSAGE,
    SUBMISSION_FAILED_MESSAGE,
    VERIFICATION_REQUIRED_MESSAGE,
)
from intake.wizard import FormWizard, Notification


class RecordingSink:
    """Submission sink that records payloads and returns a canned response."""

    def __init__(self, response: SubmissionResponse | None = None) -> None:
        self.calls: List[Dict[str, Any]] = []
        self.response = response or SubmissionResponse(success=True, message="ok")

    def __call__(self, payload: Dict[str, Any]) -> SubmissionResponse:
        self.calls.append(payload)
        return self.response


def _questions() -> List[Question]:
    return [
        Question(id="1", question_id="101", code="program_terpilih", type="select", required=True),
        Question(
            id="2",
            question_id="102",
            code="extra",
            required=True,
            conditional_logic={
                "enabled": True,
                "operator": "AND",
                "conditions": [
                    {"field": "program_terpilih", "operator": "equals", "values": ["pkpp-mill"]}
                ],
            },
        ),
        Question(id="3", code="motivation", validation_rules=[{"rule": "max_length", "value": 20}]),
    ]


def _wizard(sink=None, **kwargs) -> FormWizard:
    return FormWizard(_questions(), submit=sink or RecordingSink(), **kwargs)


def _agree(wizard: FormWizard) -> None:
    for key in ("agreement1", "agreement2", "agreement3"):
        wizard.set_value(key, "agree")


def _ready_to_submit(wizard: FormWizard) -> None:
    _agree(wizard)
    assert wizard.next()
    wizard.set_value("program_terpilih", "pkpp-estate")
    wizard.set_verification_token("token-1")


def test_initial_state() -> None:
    wizard = _wizard()

    assert wizard.total_steps == 2
    assert wizard.state.active_step == 0
    assert wizard.values == {
        "agreement1": "",
        "agreement2": "",
        "agreement3": "",
        "program_terpilih": "",
        "extra": "",
        "motivation": "",
    }


def test_batch_without_questions_has_only_the_consent_step() -> None:
    wizard = FormWizard([], submit=RecordingSink())

    assert wizard.total_steps == 1
    assert wizard.is_last_step


def test_next_on_consent_step_requires_all_agreements() -> None:
    notes: List[Notification] = []
    wizard = _wizard(notify=notes.append)
    wizard.set_value("agreement1", "agree")

    assert not wizard.next()
    assert wizard.state.active_step == 0
    assert wizard.state.has_attempted_next
    assert wizard.state.validation_errors == [CONSENT_REQUIRED_MESSAGE]
    assert notes[-1].level == "error"


def test_next_advances_and_notifies() -> None:
    notes: List[Notification] = []
    wizard = _wizard(notify=notes.append)
    _agree(wizard)

    assert wizard.next()
    assert wizard.state.active_step == 1
    assert wizard.state.validation_errors == []
    assert notes[-1].level == "success"


def test_dynamic_step_gate_reports_field_errors() -> None:
    wizard = _wizard()
    _agree(wizard)
    wizard.next()
    wizard.set_value("program_terpilih", "pkpp-mill")

    assert not wizard.next()
    assert wizard.state.active_step == 1
    assert wizard.state.field_errors == {"extra": "extra is required"}
    assert wizard.state.validation_errors == ["extra is required"]


def test_live_validation_after_first_attempt() -> None:
    wizard = _wizard()
    _agree(wizard)
    assert wizard.state.field_errors == {}

    wizard.next()
    wizard.set_value("motivation", "x" * 30)

    assert wizard.state.field_errors["motivation"] == "Maximum length is 20"


def test_previous_and_step_click_discard_the_verification_token() -> None:
    resets: List[bool] = []
    wizard = _wizard(on_verification_reset=lambda: resets.append(True))
    _ready_to_submit(wizard)

    wizard.previous()

    assert wizard.state.active_step == 0
    assert wizard.state.verification_token is None
    assert resets == [True]

    wizard.previous()
    assert wizard.state.active_step == 0

    wizard.next()
    wizard.set_verification_token("token-2")
    assert wizard.go_to_step(0)
    assert wizard.state.verification_token is None
    assert resets == [True, True]


def test_step_click_refuses_forward_jumps() -> None:
    wizard = _wizard()

    assert not wizard.go_to_step(1)
    assert wizard.state.active_step == 0
    assert wizard.go_to_step(0)


def test_submit_without_token_makes_no_network_call() -> None:
    sink = RecordingSink()
    wizard = _wizard(sink)
    _ready_to_submit(wizard)
    wizard.set_verification_token(None)

    assert not wizard.submit()
    assert sink.calls == []
    assert wizard.state.validation_errors == [VERIFICATION_REQUIRED_MESSAGE]
    assert wizard.state.force_validation_counter == 1
    assert set(wizard.state.touched) >= {"agreement1", "program_terpilih", "extra", "motivation"}


def test_submit_with_invalid_values_makes_no_network_call() -> None:
    sink = RecordingSink()
    wizard = _wizard(sink)
    _ready_to_submit(wizard)
    wizard.set_value("program_terpilih", "")

    assert not wizard.submit()
    assert sink.calls == []
    assert wizard.state.validation_errors == ["program_terpilih is required"]


def test_successful_submit_sends_payload_once() -> None:
    sink = RecordingSink()
    wizard = _wizard(sink, batch_id="demo-2026")
    _ready_to_submit(wizard)
    wizard.set_value("motivation", "To learn")

    assert wizard.submit()
    assert wizard.state.is_submitted
    assert not wizard.state.is_submitting
    assert sink.calls == [
        {
            "agreement1": "agree",
            "agreement2": "agree",
            "agreement3": "agree",
            "answers": [
                {"question_id": "101", "question_code": "program_terpilih", "answer": "pkpp-estate"},
                {"question_id": "3", "question_code": "motivation", "answer": "To learn"},
            ],
            "verification_token": "token-1",
            "batch_id": "demo-2026",
        }
    ]
    assert not wizard.submit()
    assert len(sink.calls) == 1


def test_reentrant_submit_is_ignored() -> None:
    calls: List[Dict[str, Any]] = []
    nested: List[bool] = []
    wizard: FormWizard

    def sink(payload: Dict[str, Any]) -> SubmissionResponse:
        calls.append(payload)
        nested.append(wizard.submit())
        return SubmissionResponse(success=True)

    wizard = _wizard(sink)
    _ready_to_submit(wizard)

    assert wizard.submit()
    assert len(calls) == 1
    assert nested == [False]


def test_concurrent_submit_from_another_thread_is_ignored() -> None:
    started = threading.Event()
    release = threading.Event()
    calls: List[Dict[str, Any]] = []

    def sink(payload: Dict[str, Any]) -> SubmissionResponse:
        calls.append(payload)
        started.set()
        release.wait(timeout=5)
        return SubmissionResponse(success=True)

    wizard = _wizard(sink)
    _ready_to_submit(wizard)
    results: List[bool] = []
    worker = threading.Thread(target=lambda: results.append(wizard.submit()))
    worker.start()
    assert started.wait(timeout=5)

    assert wizard.state.is_submitting
    assert not wizard.submit()

    release.set()
    worker.join(timeout=5)
    assert results == [True]
    assert len(calls) == 1


def test_rejected_submission_keeps_state_for_retry() -> None:
    sink = RecordingSink(SubmissionResponse(success=False, message="Batch closed"))
    wizard = _wizard(sink)
    _ready_to_submit(wizard)
    values_before = dict(wizard.values)

    assert not wizard.submit()
    assert wizard.state.submit_error == "Batch closed"
    assert wizard.state.active_step == 1
    assert wizard.values == values_before
    assert not wizard.state.is_submitted

    sink.response = SubmissionResponse(success=True)
    assert wizard.submit()
    assert len(sink.calls) == 2


def test_rejected_submission_without_message_uses_default() -> None:
    wizard = _wizard(RecordingSink(SubmissionResponse(success=False)))
    _ready_to_submit(wizard)

    wizard.submit()

    assert wizard.state.submit_error == SUBMISSION_FAILED_MESSAGE


@pytest.mark.parametrize("error", [SubmissionError("Service unreachable"), RuntimeError("boom")])
def test_submission_exceptions_become_submit_errors(error) -> None:
    def sink(payload: Dict[str, Any]) -> SubmissionResponse:
        raise error

    wizard = _wizard(sink)
    _ready_to_submit(wizard)

    assert not wizard.submit()
    assert wizard.state.submit_error == str(error)
    assert not wizard.state.is_submitting
    assert wizard.state.active_step == 1


def test_submit_is_only_available_on_the_last_step() -> None:
    sink = RecordingSink()
    wizard = _wizard(sink)
    _agree(wizard)
    wizard.set_verification_token("token")

    assert not wizard.submit()
    assert sink.calls == []


def test_reset_restores_initial_state() -> None:
    resets: List[bool] = []
    notes: List[Notification] = []
    wizard = _wizard(notify=notes.append, on_verification_reset=lambda: resets.append(True))
    _ready_to_submit(wizard)
    wizard.submit()

    wizard.reset()

    assert wizard.state.active_step == 0
    assert not wizard.state.is_submitted
    assert wizard.state.verification_token is None
    assert wizard.values["agreement1"] == ""
    assert wizard.values["program_terpilih"] == ""
    assert resets == [True]
    assert notes[-1].title == "Form reset"


def test_next_on_dynamic_step_without_field_errors_uses_generic_message(monkeypatch) -> None:
    wizard = _wizard()
    _agree(wizard)
    wizard.next()
    wizard.set_value("program_terpilih", "pkpp-estate")
    monkeypatch.setattr("intake.wizard.can_advance", lambda step, values: False)

    assert not wizard.next()
    assert wizard.state.validation_errors == [INCOMPLETE_STEP_MESSAGE]
