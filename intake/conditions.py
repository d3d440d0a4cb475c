"""Conditional-visibility evaluation for dynamic form questions.

Conditions compare the *stringified* current answer with the configured
values, mirroring how answers are rendered in the browser form: ``None``
becomes an empty string, booleans become ``"true"``/``"false"``, integral
floats drop their fractional part and lists are joined with commas.
"""

from __future__ import annotations

import logging
import math
import re
from typing import Any, Iterable, List, Mapping

from intake.questions import Condition, ConditionalLogic, ConditionOperator, Question

logger = logging.getLogger(__name__)

_FLOAT_PREFIX = re.compile(
    r"^[+-]?(?:Infinity|\d+\.?\d*(?:[eE][+-]?\d+)?|\.\d+(?:[eE][+-]?\d+)?)"
)


def stringify_value(value: Any) -> str:
    """Return the display string used when comparing ``value``.

    A missing answer (``None``) reads as ``""`` rather than ``"undefined"``, so
    an unanswered field equals ``""`` and fails ``not_equals [""]``.
    """

    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        if math.isnan(value):
            return "NaN"
        if math.isinf(value):
            return "Infinity" if value > 0 else "-Infinity"
        if value.is_integer():
            return str(int(value))
        return repr(value)
    if isinstance(value, (list, tuple)):
        return ",".join(stringify_value(item) for item in value)
    return str(value)


def parse_float(value: Any) -> float:
    """Parse the leading number of ``value``; ``nan`` when nothing parses.

    ``"12kg"`` parses to ``12.0`` and ``"abc"`` to ``nan``. Because every
    comparison with ``nan`` is false, ``greater_than``/``less_than`` conditions
    on non-numeric answers never match.
    """

    if isinstance(value, bool):
        return math.nan
    if isinstance(value, (int, float)):
        return float(value)
    match = _FLOAT_PREFIX.match(stringify_value(value).lstrip())
    if not match:
        return math.nan
    text = match.group(0)
    if text.lstrip("+-") == "Infinity":
        return -math.inf if text.startswith("-") else math.inf
    return float(text)


def _first_value(condition: Condition) -> str:
    return condition.values[0] if condition.values else ""


def evaluate_condition(condition: Condition, values: Mapping[str, Any]) -> bool:
    """Evaluate one condition against the current answers.

    Unknown operators evaluate to ``True`` so that a condition the engine does
    not understand never hides a question.
    """

    operator = ConditionOperator.lookup(condition.operator)
    if operator is None:
        logger.debug("Unknown condition operator %r treated as satisfied", condition.operator)
        return True

    field_value = values.get(condition.field)
    text = stringify_value(field_value)

    if operator in (ConditionOperator.EQUALS, ConditionOperator.IN):
        return text in condition.values
    if operator in (ConditionOperator.NOT_EQUALS, ConditionOperator.NOT_IN):
        return text not in condition.values
    if operator is ConditionOperator.CONTAINS:
        return _first_value(condition) in text
    if operator is ConditionOperator.NOT_CONTAINS:
        return _first_value(condition) not in text
    if operator is ConditionOperator.EMPTY:
        return not field_value or text.strip() == ""
    if operator is ConditionOperator.NOT_EMPTY:
        return bool(field_value) and text.strip() != ""

    threshold = parse_float(_first_value(condition) or "0")
    if operator is ConditionOperator.GREATER_THAN:
        return parse_float(text) > threshold
    return parse_float(text) < threshold


def evaluate_conditional_logic(logic: ConditionalLogic, values: Mapping[str, Any]) -> bool:
    """Combine the results of ``logic.conditions``.

    ``AND`` requires every condition (an empty list is vacuously true); any
    other operator requires at least one (an empty list is false).
    """

    if not logic.enabled:
        return True
    results = [evaluate_condition(condition, values) for condition in logic.conditions]
    if logic.operator == "AND":
        return all(results)
    return any(results)


def is_question_visible(question: Question, values: Mapping[str, Any]) -> bool:
    """Return ``True`` if ``question`` should currently be shown."""

    if question.conditional_logic is None:
        return True
    return evaluate_conditional_logic(question.conditional_logic, values)


def filter_visible_questions(
    questions: Iterable[Question], values: Mapping[str, Any]
) -> List[Question]:
    """Return the visible questions, preserving their input order."""

    return [question for question in questions if is_question_visible(question, values)]


def ordered_questions(questions: Iterable[Question]) -> List[Question]:
    """Return ``questions`` sorted by ``display_order``; ties keep input order."""

    return sorted(questions, key=lambda question: question.display_order)


__all__ = [
    "evaluate_condition",
    "evaluate_conditional_logic",
    "filter_visible_questions",
    "is_question_visible",
    "ordered_questions",
    "parse_float",
    "stringify_value",
]
