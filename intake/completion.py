"""Step completion and gating for the application wizard."""

from __future__ import annotations

from typing import Any, Iterable, List, Mapping

from intake.conditions import filter_visible_questions, stringify_value
from intake.questions import Question
from intake.steps import AGREE_VALUE, CONSENT_FIELDS, FormStep


def is_answer_filled(question: Question, values: Mapping[str, Any]) -> bool:
    """Return ``True`` when ``values`` holds a non-blank answer for ``question``."""

    value = values.get(question.code)
    if question.is_multi_valued:
        return isinstance(value, (list, tuple)) and len(value) > 0
    return value is not None and stringify_value(value).strip() != ""


def required_visible_questions(
    questions: Iterable[Question], values: Mapping[str, Any]
) -> List[Question]:
    return [question for question in filter_visible_questions(questions, values) if question.required]


def calculate_step_completion(questions: Iterable[Question], values: Mapping[str, Any]) -> float:
    """Return the share of visible required questions answered, from 0 to 100."""

    required = required_visible_questions(questions, values)
    if not required:
        return 100.0
    filled = sum(1 for question in required if is_answer_filled(question, values))
    return filled / len(required) * 100


def can_proceed_to_next_step(questions: Iterable[Question], values: Mapping[str, Any]) -> bool:
    """Return ``True`` when every visible required question is answered."""

    return all(
        is_answer_filled(question, values)
        for question in required_visible_questions(questions, values)
    )


def consent_given(values: Mapping[str, Any]) -> bool:
    """Return ``True`` only if each consent answer is exactly ``"agree"``."""

    return all(
        isinstance(values.get(key), str) and values.get(key) == AGREE_VALUE
        for key in CONSENT_FIELDS
    )


def can_advance(step: FormStep, values: Mapping[str, Any]) -> bool:
    """Return whether the wizard may leave ``step`` with the current answers."""

    if step.is_consent:
        return consent_given(values)
    return can_proceed_to_next_step(step.questions, values)


__all__ = [
    "calculate_step_completion",
    "can_advance",
    "can_proceed_to_next_step",
    "consent_given",
    "is_answer_filled",
    "required_visible_questions",
]
