"""Declarative question records authored by administrators for a batch form."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

logger = logging.getLogger(__name__)


class QuestionType(str, Enum):
    """Field types understood by the form engine."""

    TEXT = "text"
    TEXTAREA = "textarea"
    EMAIL = "email"
    TEL = "tel"
    URL = "url"
    PASSWORD = "password"
    NUMBER = "number"
    DATE = "date"
    SELECT = "select"
    MULTISELECT = "multiselect"
    RADIO = "radio"
    CHECKBOX = "checkbox"

    @classmethod
    def resolve(cls, value: Any) -> "QuestionType":
        """Return the matching type, falling back to plain text."""

        try:
            return cls(str(value))
        except ValueError:
            return cls.TEXT


MULTI_VALUED_TYPES = frozenset({QuestionType.CHECKBOX, QuestionType.MULTISELECT})


class ConditionOperator(str, Enum):
    """Operators available to conditional-visibility conditions."""

    EQUALS = "equals"
    NOT_EQUALS = "not_equals"
    IN = "in"
    NOT_IN = "not_in"
    CONTAINS = "contains"
    NOT_CONTAINS = "not_contains"
    EMPTY = "empty"
    NOT_EMPTY = "not_empty"
    GREATER_THAN = "greater_than"
    LESS_THAN = "less_than"

    @classmethod
    def lookup(cls, value: Any) -> Optional["ConditionOperator"]:
        """Return the operator for ``value`` or ``None`` when it is unknown."""

        try:
            return cls(str(value))
        except ValueError:
            return None


class RuleKind(str, Enum):
    """Validation rule kinds that the schema builder enforces."""

    REQUIRED = "required"
    MIN_LENGTH = "min_length"
    MAX_LENGTH = "max_length"
    MIN_VALUE = "min_value"
    MAX_VALUE = "max_value"
    EMAIL = "email"
    REGEX = "regex"
    SIZE = "size"
    IN = "in"

    @classmethod
    def lookup(cls, value: Any) -> Optional["RuleKind"]:
        """Return the rule kind for ``value`` or ``None`` when it is unknown."""

        try:
            return cls(str(value))
        except ValueError:
            return None


def _ensure_list(value: Any) -> List[Any]:
    """Return ``value`` as a list, treating ``None`` as empty."""

    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


def _entries_with(value: Any, key: str, kind: str) -> List[Any]:
    """Return the entries of ``value`` that are models or mappings carrying ``key``."""

    entries: List[Any] = []
    for item in _ensure_list(value):
        if isinstance(item, BaseModel) or (isinstance(item, Mapping) and item.get(key) is not None):
            entries.append(item)
        else:
            logger.warning("Ignoring %s without %r: %r", kind, key, item)
    return entries


def _optional_text(value: Any) -> Optional[str]:
    return None if value is None else str(value)


def _points(value: Any) -> float:
    """Return ``value`` as a number of points, ``0`` when it is not numeric."""

    if isinstance(value, bool):
        return 0.0
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


class QuestionOption(BaseModel):
    """A selectable choice for select, radio, checkbox and multiselect fields."""

    model_config = ConfigDict(extra="ignore")

    value: str
    label: str = ""

    @field_validator("value", "label", mode="before")
    @classmethod
    def _stringify(cls, value: Any) -> str:
        return "" if value is None else str(value)


class ValidationRule(BaseModel):
    """One declarative constraint, e.g. ``{"rule": "min_length", "value": "5"}``."""

    model_config = ConfigDict(extra="ignore")

    rule: str
    value: Any = None
    message: Optional[str] = None

    @field_validator("rule", mode="before")
    @classmethod
    def _stringify_rule(cls, value: Any) -> str:
        return str(value)

    @field_validator("message", mode="before")
    @classmethod
    def _stringify_message(cls, value: Any) -> Optional[str]:
        return _optional_text(value)

    @property
    def kind(self) -> Optional[RuleKind]:
        return RuleKind.lookup(self.rule)


class Condition(BaseModel):
    """Compare the answer stored under ``field`` against ``values``."""

    model_config = ConfigDict(extra="ignore")

    field: str
    operator: str = ConditionOperator.EQUALS.value
    values: List[str] = Field(default_factory=list)

    @field_validator("field", mode="before")
    @classmethod
    def _stringify_field(cls, value: Any) -> str:
        return str(value)

    @field_validator("operator", mode="before")
    @classmethod
    def _normalise_operator(cls, value: Any) -> str:
        return ConditionOperator.EQUALS.value if value is None else str(value)

    @field_validator("values", mode="before")
    @classmethod
    def _normalise_values(cls, value: Any) -> List[str]:
        return ["" if item is None else str(item) for item in _ensure_list(value)]


class ConditionalLogic(BaseModel):
    """Visibility rule combining several conditions with ``AND`` or ``OR``."""

    model_config = ConfigDict(extra="ignore")

    enabled: bool = False
    operator: str = "AND"
    conditions: List[Condition] = Field(default_factory=list)

    @field_validator("conditions", mode="before")
    @classmethod
    def _normalise_conditions(cls, value: Any) -> List[Any]:
        return _entries_with(value, "field", "visibility condition")

    @field_validator("operator", mode="before")
    @classmethod
    def _normalise_operator(cls, value: Any) -> str:
        return "AND" if value is None else str(value)


class ScoringCondition(BaseModel):
    model_config = ConfigDict(extra="ignore")

    operator: str = "equals"
    value: Any = None
    points: float = 0

    @field_validator("operator", mode="before")
    @classmethod
    def _normalise_operator(cls, value: Any) -> str:
        return "equals" if value is None else str(value)

    @field_validator("points", mode="before")
    @classmethod
    def _normalise_points(cls, value: Any) -> float:
        return _points(value)


class ScoringRules(BaseModel):
    """Points awarded for an answer; the total is capped at ``max_score``."""

    model_config = ConfigDict(extra="ignore")

    enabled: bool = False
    points: float = 0
    conditions: List[ScoringCondition] = Field(default_factory=list)
    max_score: float = 0

    @field_validator("conditions", mode="before")
    @classmethod
    def _normalise_conditions(cls, value: Any) -> List[Any]:
        return [item for item in _ensure_list(value) if isinstance(item, (Mapping, BaseModel))]

    @field_validator("points", "max_score", mode="before")
    @classmethod
    def _normalise_points(cls, value: Any) -> float:
        return _points(value)


class Question(BaseModel):
    """A single admin-authored field of the dynamic application form."""

    model_config = ConfigDict(extra="ignore")

    id: Optional[str] = None
    question_id: Optional[str] = None
    code: str
    label: str = ""
    description: Optional[str] = None
    placeholder: Optional[str] = None
    type: str = QuestionType.TEXT.value
    group: Optional[str] = None
    required: bool = False
    is_active: bool = True
    disabled: bool = False
    readonly: bool = False
    options: List[QuestionOption] = Field(default_factory=list)
    validation_rules: List[ValidationRule] = Field(default_factory=list)
    scoring_rules: Optional[ScoringRules] = None
    conditional_logic: Optional[ConditionalLogic] = None
    display_order: int = 0
    default_value: Any = None

    @field_validator("id", "question_id", "code", mode="before")
    @classmethod
    def _stringify_identifier(cls, value: Any) -> Optional[str]:
        return None if value is None else str(value)

    @field_validator("type", mode="before")
    @classmethod
    def _normalise_type(cls, value: Any) -> str:
        return QuestionType.TEXT.value if value is None else str(value)

    @field_validator("label", mode="before")
    @classmethod
    def _normalise_label(cls, value: Any) -> str:
        return "" if value is None else str(value)

    @field_validator("display_order", mode="before")
    @classmethod
    def _normalise_order(cls, value: Any) -> int:
        if isinstance(value, bool):
            return 0
        try:
            return int(float(value))
        except (TypeError, ValueError, OverflowError):
            return 0

    @field_validator("options", mode="before")
    @classmethod
    def _normalise_options(cls, value: Any) -> List[Dict[str, Any]]:
        options: List[Dict[str, Any]] = []
        for item in _ensure_list(value):
            if isinstance(item, QuestionOption):
                options.append(item.model_dump())
            elif isinstance(item, Mapping):
                option = dict(item)
                option.setdefault("label", option.get("value"))
                options.append(option)
            elif item is not None:
                options.append({"value": str(item), "label": str(item)})
        return options

    @field_validator("validation_rules", mode="before")
    @classmethod
    def _normalise_rules(cls, value: Any) -> List[Any]:
        return _entries_with(value, "rule", "validation rule")

    @field_validator("conditional_logic", "scoring_rules", mode="before")
    @classmethod
    def _drop_non_mapping(cls, value: Any) -> Any:
        return value if isinstance(value, (Mapping, BaseModel)) else None

    @property
    def field_type(self) -> QuestionType:
        """Resolved type; unknown types behave like ``text``."""

        return QuestionType.resolve(self.type)

    @property
    def is_multi_valued(self) -> bool:
        return self.field_type in MULTI_VALUED_TYPES

    @property
    def display_label(self) -> str:
        return self.label.strip() or self.code

    def option_values(self) -> List[str]:
        return [option.value for option in self.options]


def parse_question(raw: Any) -> Optional[Question]:
    """Build a :class:`Question` from a raw mapping, or ``None`` if unusable."""

    if isinstance(raw, Question):
        return raw
    if not isinstance(raw, Mapping):
        logger.warning("Skipping question record that is not a mapping: %r", raw)
        return None
    try:
        return Question.model_validate(dict(raw))
    except ValidationError as exc:
        logger.warning(
            "Skipping malformed question record %r: %s",
            raw.get("code"),
            exc.errors(include_url=False),
        )
        return None


def parse_questions(raw_questions: Optional[Iterable[Any]]) -> List[Question]:
    """Return the usable questions from ``raw_questions`` in their source order."""

    questions: List[Question] = []
    for raw in raw_questions or []:
        question = parse_question(raw)
        if question is not None:
            questions.append(question)
    return questions


__all__ = [
    "ConditionOperator",
    "Condition",
    "ConditionalLogic",
    "MULTI_VALUED_TYPES",
    "Question",
    "QuestionOption",
    "QuestionType",
    "RuleKind",
    "ScoringCondition",
    "ScoringRules",
    "ValidationRule",
    "parse_question",
    "parse_questions",
]
