"""Wizard step definitions for the application form."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Tuple

from intake.questions import Question
from intake.schema_defaults import (
    CONSENT_STEP_DESCRIPTION,
    CONSENT_STEP_TITLE,
    DYNAMIC_STEP_DESCRIPTION,
    DYNAMIC_STEP_TITLE,
)

CONSENT_STEP_ID = "agreement"
DYNAMIC_STEP_ID = "dynamic_fields"
CONSENT_FIELDS: Tuple[str, str, str] = ("agreement1", "agreement2", "agreement3")
AGREE_VALUE = "agree"
DISAGREE_VALUE = "disagree"


@dataclass(frozen=True)
class FormStep:
    """One page of the wizard and the questions it hosts."""

    id: str
    title: str
    order: int
    description: Optional[str] = None
    questions: Tuple[Question, ...] = field(default_factory=tuple)

    @property
    def is_consent(self) -> bool:
        return self.id == CONSENT_STEP_ID


def build_form_steps(questions: Iterable[Question]) -> List[FormStep]:
    """Return the consent step followed by the dynamic step when questions exist."""

    question_list = tuple(questions)
    steps = [
        FormStep(
            id=CONSENT_STEP_ID,
            title=CONSENT_STEP_TITLE,
            description=CONSENT_STEP_DESCRIPTION,
            order=0,
        )
    ]
    if question_list:
        steps.append(
            FormStep(
                id=DYNAMIC_STEP_ID,
                title=DYNAMIC_STEP_TITLE,
                description=DYNAMIC_STEP_DESCRIPTION,
                questions=question_list,
                order=1,
            )
        )
    return steps


__all__ = [
    "AGREE_VALUE",
    "CONSENT_FIELDS",
    "CONSENT_STEP_ID",
    "DISAGREE_VALUE",
    "DYNAMIC_STEP_ID",
    "FormStep",
    "build_form_steps",
]
