"""Dynamic recruitment intake form engine."""

from .questions import Question, parse_questions  # noqa: F401
from .wizard import FormWizard, Notification, WizardState  # noqa: F401
