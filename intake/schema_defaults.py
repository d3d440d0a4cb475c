"""Default texts shared between the application form and the home screen."""

from __future__ import annotations

from typing import List

DEFAULT_PAGE_TITLE = "Application form"
DEFAULT_PAGE_ICON = "📝"

CONSENT_STEP_TITLE = "Consent"
CONSENT_STEP_DESCRIPTION = "Please read and accept the following terms."
DYNAMIC_STEP_TITLE = "Application details"
DYNAMIC_STEP_DESCRIPTION = "Complete the information required for this batch."

CONSENT_STATEMENTS: tuple[str, ...] = (
    "I confirm that all information I provide is true and can be verified.",
    "I agree that my data is processed for the purpose of this recruitment.",
    "I accept that incomplete or false applications may be disqualified.",
)
CONSENT_ERROR_MESSAGES: tuple[str, ...] = (
    "Consent 1 must be selected and accepted",
    "Consent 2 must be selected and accepted",
    "Consent 3 must be selected and accepted",
)

CONSENT_REQUIRED_MESSAGE = "All consents must be accepted to continue"
INCOMPLETE_STEP_MESSAGE = "Please complete all required fields before continuing"
VERIFICATION_REQUIRED_MESSAGE = "Security verification must be completed"
SUBMISSION_FAILED_MESSAGE = "Failed to submit the form. Please try again."

NOTIFY_CONSENT_REQUIRED = ("Consent required", "Please accept all terms to continue.")
NOTIFY_VALIDATION_FAILED = (
    "Validation failed",
    "Please check the form and complete every required field.",
)
NOTIFY_VERIFICATION_REQUIRED = (
    "Verification required",
    "Please complete the security verification first.",
)
NOTIFY_SUBMITTED = ("Submitted!", "Your application has been sent successfully.")
NOTIFY_SUBMIT_FAILED_TITLE = "Submission failed"
NOTIFY_RESET = ("Form reset", "The form has been returned to its initial state.")

DEFAULT_SUBMIT_LABEL = "Submit application"
DEFAULT_SUCCESS_HEADING = "Application received"
DEFAULT_SUCCESS_PARAGRAPHS: tuple[str, ...] = (
    "Thank you for applying. Our team will review your submission.",
    "You can start a new application using the button below.",
)


def success_paragraphs_list() -> List[str]:
    """Return a mutable list of the default confirmation paragraphs."""

    return list(DEFAULT_SUCCESS_PARAGRAPHS)
