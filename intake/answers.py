"""Form value seeding, hidden-answer clearing and submission answer assembly."""

from __future__ import annotations

import copy
import logging
from typing import Any, Dict, Iterable, List, Mapping

from intake.conditions import filter_visible_questions
from intake.questions import Question

logger = logging.getLogger(__name__)


def empty_value_for(question: Question) -> Any:
    """Return ``[]`` for multi-valued questions and ``''`` for everything else."""

    return [] if question.is_multi_valued else ""


def initial_form_values(questions: Iterable[Question]) -> Dict[str, Any]:
    """Seed values for active questions from ``default_value`` or an empty value."""

    values: Dict[str, Any] = {}
    for question in questions:
        if not question.is_active:
            continue
        if question.default_value is not None:
            values[question.code] = copy.deepcopy(question.default_value)
        else:
            values[question.code] = empty_value_for(question)
    return values


def clear_hidden_answers(
    questions: Iterable[Question], values: Mapping[str, Any]
) -> Dict[str, Any]:
    """Return a copy of ``values`` with answers of hidden questions emptied.

    Clearing one answer can hide further questions that depended on it, so
    the pass repeats until the visible set is stable.
    """

    question_list = list(questions)
    cleared = dict(values)
    for _ in range(len(question_list) + 1):
        visible_codes = {
            question.code for question in filter_visible_questions(question_list, cleared)
        }
        changed = False
        for question in question_list:
            if question.code in visible_codes or question.code not in cleared:
                continue
            if cleared[question.code] == empty_value_for(question):
                continue
            logger.debug("Clearing answer of hidden question %s", question.code)
            cleared[question.code] = empty_value_for(question)
            changed = True
        if not changed:
            break
    return cleared


def build_answers(
    questions: Iterable[Question], values: Mapping[str, Any]
) -> List[Dict[str, Any]]:
    """Return submission answers for visible, active, answered questions."""

    answers: List[Dict[str, Any]] = []
    for question in filter_visible_questions(questions, values):
        if not question.is_active:
            continue
        answer = values.get(question.code)
        if answer is None:
            continue
        answers.append(
            {
                "question_id": question.question_id
                if question.question_id is not None
                else question.id,
                "question_code": question.code,
                "answer": answer,
            }
        )
    return answers


__all__ = [
    "build_answers",
    "clear_hidden_answers",
    "empty_value_for",
    "initial_form_values",
]
