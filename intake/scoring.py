"""Score submitted answers using each question's scoring rules."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping

from intake.questions import Question, ScoringCondition, ScoringRules


@dataclass(frozen=True)
class ScoreReport:
    """Per-answer scores with their totals."""

    rows: List[Dict[str, Any]] = field(default_factory=list)
    total_score: float = 0
    max_score: float = 0


def _is_numeric(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, (int, float)):
        return True
    if isinstance(value, str):
        try:
            float(value.strip())
        except ValueError:
            return False
        return bool(value.strip())
    return False


def _matches(condition: ScoringCondition, answer: Any) -> bool:
    operator = condition.operator
    expected = condition.value

    if operator in ("equals", "not_equals"):
        if isinstance(answer, str) and isinstance(expected, str):
            equal = answer.lower() == expected.lower()
        else:
            equal = answer == expected
        return equal if operator == "equals" else not equal
    if operator == "contains":
        if not isinstance(answer, str) or expected is None:
            return False
        return str(expected).lower() in answer.lower()
    if operator in ("greater_than", "less_than", "greater_equal", "less_equal"):
        if not (_is_numeric(answer) and _is_numeric(expected)):
            return False
        left, right = float(answer), float(expected)
        if operator == "greater_than":
            return left > right
        if operator == "less_than":
            return left < right
        if operator == "greater_equal":
            return left >= right
        return left <= right
    if operator in ("in", "not_in"):
        if not isinstance(expected, (list, tuple)):
            return False
        if isinstance(answer, str):
            lowered = [item.lower() for item in expected if isinstance(item, str)]
            found = answer in lowered or answer in expected
        else:
            found = answer in expected
        return found if operator == "in" else not found
    return False


def _enabled_rules(question: Question) -> ScoringRules | None:
    rules = question.scoring_rules
    if rules is None or not rules.enabled:
        return None
    return rules


def question_score(question: Question, answer: Any) -> float:
    """Sum the points of matching conditions, capped at ``max_score``."""

    rules = _enabled_rules(question)
    if rules is None:
        return 0
    score = sum(condition.points for condition in rules.conditions if _matches(condition, answer))
    return min(score, rules.max_score)


def max_question_score(question: Question) -> float:
    rules = _enabled_rules(question)
    return rules.max_score if rules is not None else 0


def score_answers(
    questions: Iterable[Question], answers: Iterable[Mapping[str, Any]]
) -> ScoreReport:
    """Score ``answers`` (as produced by ``build_answers``) against ``questions``."""

    by_code = {question.code: question for question in questions if question.is_active}
    rows: List[Dict[str, Any]] = []
    total = 0.0
    maximum = 0.0
    for answer in answers:
        question = by_code.get(str(answer.get("question_code")))
        if question is None:
            continue
        value = answer.get("answer")
        score = question_score(question, value)
        question_max = max_question_score(question)
        rows.append(
            {
                "question_id": question.question_id or question.id,
                "question_code": question.code,
                "answer": value,
                "score": score,
                "max_score": question_max,
            }
        )
        total += score
        maximum += question_max
    return ScoreReport(rows=rows, total_score=total, max_score=maximum)


def scoring_summary(questions: Iterable[Question]) -> Dict[str, float]:
    """Return the maximum attainable score of a batch and how many questions score."""

    active = [question for question in questions if question.is_active]
    scored = [question for question in active if _enabled_rules(question) is not None]
    return {
        "total_max_score": sum(max_question_score(question) for question in scored),
        "scoring_questions": len(scored),
        "total_questions": len(active),
    }


__all__ = [
    "ScoreReport",
    "max_question_score",
    "question_score",
    "score_answers",
    "scoring_summary",
]
