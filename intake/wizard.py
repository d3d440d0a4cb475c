"""State machine driving the two-step application wizard.

The wizard owns an explicit :class:`WizardState` and the current form values.
Every transition recomputes visibility, validation and gating from scratch,
so the validator always reflects the latest visible question set.
"""

from __future__ import annotations

import copy
import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Optional, Set

from intake.answers import build_answers, clear_hidden_answers, initial_form_values
from intake.api_client import SubmissionError, SubmissionResponse
from intake.completion import calculate_step_completion, can_advance
from intake.conditions import filter_visible_questions, ordered_questions
from intake.questions import Question
from intake.schema_defaults import (
    CONSENT_REQUIRED_MESSAGE,
    INCOMPLETE_STEP_MESSAGE,
    NOTIFY_CONSENT_REQUIRED,
    NOTIFY_RESET,
    NOTIFY_SUBMIT_FAILED_TITLE,
    NOTIFY_SUBMITTED,
    NOTIFY_VALIDATION_FAILED,
    NOTIFY_VERIFICATION_REQUIRED,
    SUBMISSION_FAILED_MESSAGE,
    VERIFICATION_REQUIRED_MESSAGE,
)
from intake.steps import CONSENT_FIELDS, FormStep, build_form_steps
from intake.validation import (
    FormValidator,
    ValidationResult,
    build_consent_validator,
    build_submission_validator,
)

logger = logging.getLogger(__name__)

SubmitCallable = Callable[[Dict[str, Any]], SubmissionResponse]


@dataclass(frozen=True)
class Notification:
    """User-facing message emitted by a transition."""

    title: str
    message: str
    level: str = "info"


@dataclass
class WizardState:
    """Mutable per-session wizard state."""

    active_step: int = 0
    has_attempted_next: bool = False
    force_validation_counter: int = 0
    verification_token: Optional[str] = None
    submit_error: Optional[str] = None
    validation_errors: List[str] = field(default_factory=list)
    field_errors: Dict[str, str] = field(default_factory=dict)
    touched: Set[str] = field(default_factory=set)
    is_submitting: bool = False
    is_submitted: bool = False

    @property
    def live_validation(self) -> bool:
        """Whether edits should re-run validation immediately."""

        return self.has_attempted_next or self.force_validation_counter > 0


class FormWizard:
    """Consent step, optional dynamic step, then submission."""

    def __init__(
        self,
        questions: Iterable[Question],
        *,
        submit: SubmitCallable,
        batch_id: Optional[str] = None,
        notify: Optional[Callable[[Notification], None]] = None,
        on_verification_reset: Optional[Callable[[], None]] = None,
    ) -> None:
        self.questions: List[Question] = list(questions)
        self.steps: List[FormStep] = build_form_steps(self.questions)
        self.batch_id = batch_id
        self._submit = submit
        self._notify = notify
        self._on_verification_reset = on_verification_reset
        self._submit_lock = threading.Lock()
        self._initial_values: Dict[str, Any] = {key: "" for key in CONSENT_FIELDS}
        self._initial_values.update(initial_form_values(self.questions))
        self.values: Dict[str, Any] = copy.deepcopy(self._initial_values)
        self.state = WizardState()

    # ------------------------------------------------------------------
    # Derived views
    # ------------------------------------------------------------------
    @property
    def total_steps(self) -> int:
        return len(self.steps)

    @property
    def current_step(self) -> FormStep:
        return self.steps[self.state.active_step]

    @property
    def is_last_step(self) -> bool:
        return self.state.active_step == self.total_steps - 1

    @property
    def all_fields(self) -> List[str]:
        """Consent keys followed by every declared question code."""

        return [*CONSENT_FIELDS, *(question.code for question in self.questions)]

    def visible_questions(self) -> List[Question]:
        """Visible questions of the current step in display order."""

        step = self.current_step
        return ordered_questions(filter_visible_questions(step.questions, self.values))

    def step_completion(self) -> float:
        return calculate_step_completion(self.current_step.questions, self.values)

    def step_status(self, index: int) -> str:
        if index < self.state.active_step:
            return "completed"
        if index == self.state.active_step:
            return "active"
        return "inactive"

    def validator(self) -> FormValidator:
        """Build the consent and dynamic validator for the current values."""

        if self.questions:
            return build_submission_validator(self.questions, self.values)
        return build_consent_validator()

    def validate(self) -> ValidationResult:
        result = self.validator().validate(self.values)
        self.state.field_errors = dict(result.errors)
        return result

    # ------------------------------------------------------------------
    # Input
    # ------------------------------------------------------------------
    def set_value(self, code: str, value: Any) -> None:
        """Store an answer, re-validating once the applicant has tried to advance."""

        self.values[code] = value
        self.state.touched.add(code)
        if self.state.live_validation:
            self.validate()

    def set_verification_token(self, token: Optional[str]) -> None:
        self.state.verification_token = token or None

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------
    def _emit(self, title: str, message: str, level: str) -> None:
        if self._notify is not None:
            self._notify(Notification(title=title, message=message, level=level))

    def _clear_transient_errors(self) -> None:
        self.state.validation_errors = []
        self.state.submit_error = None

    def _invalidate_verification(self) -> None:
        self.state.verification_token = None
        if self._on_verification_reset is not None:
            self._on_verification_reset()

    def next(self) -> bool:
        """Advance one step if the current step's gate passes."""

        self.state.has_attempted_next = True
        self._clear_transient_errors()
        if not self.steps or self.state.active_step >= self.total_steps:
            return False

        step = self.current_step
        if not can_advance(step, self.values):
            if step.is_consent:
                self.state.validation_errors = [CONSENT_REQUIRED_MESSAGE]
                self._emit(*NOTIFY_CONSENT_REQUIRED, level="error")
            else:
                result = self.validate()
                self.state.validation_errors = result.messages() or [INCOMPLETE_STEP_MESSAGE]
                self._emit(*NOTIFY_VALIDATION_FAILED, level="error")
            logger.debug("Step %s blocked", step.id)
            return False

        self.values = clear_hidden_answers(self.questions, self.values)
        self._emit(
            f"Step {self.state.active_step + 1} complete",
            f"{step.title} done, continue to the next step.",
            level="success",
        )
        self.state.active_step = min(self.state.active_step + 1, self.total_steps - 1)
        logger.debug("Advanced to step %s", self.state.active_step)
        return True

    def previous(self) -> None:
        """Go back one step, discarding the verification token when leaving the last step."""

        if self.is_last_step:
            self._invalidate_verification()
        self._clear_transient_errors()
        self.state.active_step = max(self.state.active_step - 1, 0)

    def go_to_step(self, index: int) -> bool:
        """Jump to an already visited step; forward jumps are refused."""

        if index < 0 or index > self.state.active_step:
            return False
        if index < self.state.active_step and self.is_last_step:
            self._invalidate_verification()
        self.state.active_step = index
        self._clear_transient_errors()
        return True

    def build_payload(self) -> Dict[str, Any]:
        """Assemble the submission body from consent answers and visible answers."""

        payload: Dict[str, Any] = {key: self.values.get(key, "") for key in CONSENT_FIELDS}
        payload["answers"] = build_answers(self.questions, self.values) if self.questions else []
        payload["verification_token"] = self.state.verification_token
        if self.batch_id:
            payload["batch_id"] = self.batch_id
        return payload

    def submit(self) -> bool:
        """Validate and send the application; returns ``True`` once it is accepted.

        Calls made while a submission is in flight are ignored.
        """

        if self.state.is_submitted or not self.is_last_step:
            return False
        if not self._submit_lock.acquire(blocking=False):
            logger.debug("Submission already in flight; ignoring duplicate submit")
            return False
        try:
            self.state.is_submitting = True
            return self._run_submission()
        finally:
            self.state.is_submitting = False
            self._submit_lock.release()

    def _run_submission(self) -> bool:
        self.state.has_attempted_next = True
        self._clear_transient_errors()
        self.state.touched.update(self.all_fields)
        self.state.force_validation_counter += 1

        if not self.state.verification_token:
            self.state.validation_errors = [VERIFICATION_REQUIRED_MESSAGE]
            self._emit(*NOTIFY_VERIFICATION_REQUIRED, level="error")
            return False

        result = self.validate()
        if result.has_errors:
            self.state.validation_errors = result.messages()
            self._emit(*NOTIFY_VALIDATION_FAILED, level="error")
            return False

        payload = self.build_payload()
        try:
            response = self._submit(payload)
        except SubmissionError as exc:
            return self._submission_failed(str(exc) or SUBMISSION_FAILED_MESSAGE)
        except Exception as exc:  # pylint: disable=broad-except
            logger.exception("Unexpected error while submitting application")
            return self._submission_failed(str(exc) or SUBMISSION_FAILED_MESSAGE)

        if not response.success:
            return self._submission_failed(response.message or SUBMISSION_FAILED_MESSAGE)

        self.state.is_submitted = True
        self._emit(*NOTIFY_SUBMITTED, level="success")
        return True

    def _submission_failed(self, message: str) -> bool:
        logger.warning("Application submission failed: %s", message)
        self.state.submit_error = message
        self._emit(NOTIFY_SUBMIT_FAILED_TITLE, message, level="error")
        return False

    def reset(self) -> None:
        """Return to the first step with initial values and no errors."""

        self.values = copy.deepcopy(self._initial_values)
        self.state = WizardState()
        self._invalidate_verification()
        self._emit(*NOTIFY_RESET, level="info")


__all__ = ["FormWizard", "Notification", "WizardState"]
