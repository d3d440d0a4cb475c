"""Tests for parsing admin-authored question records."""

from __future__ import annotations

import logging

from intake.questions import ConditionOperator, Question, QuestionType, RuleKind, parse_questions


def test_parse_questions_normalises_loose_records() -> None:
    questions = parse_questions(
        [
            {
                "id": 7,
                "question_id": 70,
                "code": "program",
                "label": None,
                "type": "select",
                "options": ["web", {"value": "data", "label": "Data science"}, None],
                "validation_rules": [{"rule": "required"}, "not-a-rule"],
                "conditional_logic": {
                    "enabled": True,
                    "conditions": [{"field": "age", "operator": "greater_than", "values": 18}],
                },
                "display_order": None,
            }
        ]
    )

    assert len(questions) == 1
    question = questions[0]
    assert question.id == "7"
    assert question.question_id == "70"
    assert question.display_label == "program"
    assert question.option_values() == ["web", "data"]
    assert question.options[1].label == "Data science"
    assert [rule.rule for rule in question.validation_rules] == ["required"]
    assert question.conditional_logic is not None
    assert question.conditional_logic.operator == "AND"
    assert question.conditional_logic.conditions[0].values == ["18"]
    assert question.display_order == 0


def test_parse_questions_skips_unusable_records(caplog) -> None:
    with caplog.at_level(logging.WARNING, logger="intake.questions"):
        questions = parse_questions(["oops", {"label": "No code"}, {"code": "ok"}])

    assert [question.code for question in questions] == ["ok"]
    assert len(caplog.records) == 2


def test_parse_questions_accepts_none() -> None:
    assert parse_questions(None) == []


def test_unknown_type_behaves_like_text() -> None:
    question = Question(code="x", type="signature")

    assert question.type == "signature"
    assert question.field_type is QuestionType.TEXT
    assert not question.is_multi_valued


def test_checkbox_and_multiselect_are_multi_valued() -> None:
    assert Question(code="a", type="checkbox").is_multi_valued
    assert Question(code="b", type="multiselect").is_multi_valued
    assert not Question(code="c", type="radio").is_multi_valued


def test_enum_lookups_return_none_for_unknown_values() -> None:
    assert ConditionOperator.lookup("between") is None
    assert ConditionOperator.lookup("not_empty") is ConditionOperator.NOT_EMPTY
    assert RuleKind.lookup("uppercase") is None
    assert RuleKind.lookup("size") is RuleKind.SIZE


def test_bad_rules_and_conditions_do_not_drop_the_question(caplog) -> None:
    with caplog.at_level(logging.WARNING, logger="intake.questions"):
        questions = parse_questions(
            [
                {
                    "code": "name",
                    "required": True,
                    "validation_rules": [{"value": "5"}, {"rule": "min_length", "value": "5"}],
                },
                {
                    "code": "age",
                    "validation_rules": [{"rule": "min_length", "value": "2", "message": 123}],
                },
                {
                    "code": "extra",
                    "display_order": "soon",
                    "conditional_logic": {
                        "enabled": True,
                        "operator": None,
                        "conditions": [{"operator": "empty"}, {"field": 5, "operator": None}],
                    },
                    "scoring_rules": {"enabled": True, "max_score": "n/a", "conditions": [{"points": "x"}]},
                },
            ]
        )

    assert [question.code for question in questions] == ["name", "age", "extra"]
    name, age, extra = questions
    assert [(rule.rule, rule.value) for rule in name.validation_rules] == [("min_length", "5")]
    assert age.validation_rules[0].message == "123"
    assert extra.display_order == 0
    assert extra.conditional_logic.operator == "AND"
    assert [(c.field, c.operator) for c in extra.conditional_logic.conditions] == [("5", "equals")]
    assert extra.scoring_rules.max_score == 0
    assert extra.scoring_rules.conditions[0].points == 0
    assert len(caplog.records) == 2
