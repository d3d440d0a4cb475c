"""Runtime-generated validation schemas for the dynamic application form.

Each visible, active question becomes one field of a pydantic model created
with :func:`pydantic.create_model`. The field's base type follows the question
type and every declared validation rule is layered on top as an
``AfterValidator``. The first failing rule stops validation of that field and
its message becomes the field error.

Rules are authored by administrators, so a rule that cannot be enforced (an
unknown kind, a non-numeric bound, an invalid pattern) is logged and skipped;
building or running a validator never raises.
"""

from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass, field
from typing import Annotated, Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple

from pydantic import AfterValidator, BaseModel, BeforeValidator, ConfigDict, Field, ValidationError, create_model
from pydantic_core import PydanticCustomError

from intake.conditions import filter_visible_questions, parse_float, stringify_value
from intake.questions import MULTI_VALUED_TYPES, Question, QuestionType, RuleKind, ValidationRule
from intake.schema_defaults import CONSENT_ERROR_MESSAGES
from intake.steps import AGREE_VALUE, CONSENT_FIELDS

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
RULE_ERROR_TYPE = "form_rule"

Predicate = Callable[[Any], bool]


@dataclass(frozen=True)
class ValidationResult:
    """Field errors keyed by question code; empty when the form is valid."""

    errors: Dict[str, str] = field(default_factory=dict)

    @property
    def has_errors(self) -> bool:
        return bool(self.errors)

    def messages(self) -> List[str]:
        return [message for message in self.errors.values() if message]


class FormValidator:
    """Validate form values against a generated pydantic model."""

    def __init__(
        self,
        model: type[BaseModel],
        field_codes: Mapping[str, str],
        missing_messages: Mapping[str, str],
    ) -> None:
        self._model = model
        self._field_codes = dict(field_codes)
        self._missing_messages = dict(missing_messages)

    @property
    def fields(self) -> Tuple[str, ...]:
        """Question codes (and consent keys) covered by this validator."""

        return tuple(dict.fromkeys(self._field_codes.values()))

    def validate(self, values: Mapping[str, Any]) -> ValidationResult:
        try:
            self._model.model_validate(dict(values))
        except ValidationError as exc:
            return ValidationResult(self._collect_errors(exc))
        return ValidationResult()

    def _collect_errors(self, exc: ValidationError) -> Dict[str, str]:
        errors: Dict[str, str] = {}
        for error in exc.errors(include_url=False):
            location = error.get("loc") or ()
            if not location:
                continue
            code = self._field_codes.get(str(location[0]), str(location[0]))
            if code in errors:
                continue
            error_type = error.get("type")
            if error_type == "missing" or (
                error_type != RULE_ERROR_TYPE and error.get("input") is None
            ):
                errors[code] = self._missing_messages.get(code, f"{code} is required")
            else:
                errors[code] = str(error.get("msg", "Invalid value"))
        return errors


def _fail(message: str) -> None:
    raise PydanticCustomError(RULE_ERROR_TYPE, message)


def _rule_validator(predicate: Predicate, message: str) -> AfterValidator:
    def check(value: Any) -> Any:
        if not predicate(value):
            _fail(message)
        return value

    return AfterValidator(check)


def _to_number(value: Any) -> float:
    """Numeric reading of an answer; blank strings count as ``0``."""

    if value is None:
        return math.nan
    if isinstance(value, bool):
        return float(value)
    if isinstance(value, (int, float)):
        return float(value)
    text = stringify_value(value).strip()
    if not text:
        return 0.0
    try:
        return float(text)
    except ValueError:
        return math.nan


def _rule_bound(rule: ValidationRule, field_name: str) -> Optional[float]:
    """Return the numeric bound of ``rule`` or ``None`` when it cannot be enforced."""

    value = rule.value
    if not value or isinstance(value, bool):
        logger.warning(
            "Rule %s on %s has no usable value; not enforced", rule.rule, field_name
        )
        return None
    try:
        bound = float(str(value).strip())
    except ValueError:
        bound = math.nan
    if math.isnan(bound):
        logger.warning(
            "Rule %s on %s has non-numeric value %r; not enforced",
            rule.rule,
            field_name,
            value,
        )
        return None
    return bound


def _is_present(value: Any) -> bool:
    return value is not None and stringify_value(value).strip() != ""


def _rule_check(
    rule: ValidationRule, field_name: str, field_type: QuestionType
) -> Optional[Tuple[Predicate, str]]:
    """Translate ``rule`` into a predicate and its failure message."""

    kind = rule.kind
    if kind is None:
        logger.debug("Unknown validation rule %r on %s ignored", rule.rule, field_name)
        return None

    shown = stringify_value(rule.value)

    if kind is RuleKind.REQUIRED:
        message = rule.message or f"{field_name} is required"
        if field_type in MULTI_VALUED_TYPES:
            return (lambda value: isinstance(value, (list, tuple)) and len(value) > 0), message
        return _is_present, message

    if kind is RuleKind.EMAIL:
        return (
            lambda value: EMAIL_PATTERN.search(stringify_value(value)) is not None,
            rule.message or "Invalid email format",
        )

    if kind is RuleKind.REGEX:
        if not rule.value:
            logger.warning("Regex rule on %s has no pattern; not enforced", field_name)
            return None
        pattern_text = re.sub(r"^/|/$", "", str(rule.value))
        try:
            pattern = re.compile(pattern_text)
        except re.error as exc:
            logger.warning(
                "Invalid regex pattern %r on %s (%s); not enforced", rule.value, field_name, exc
            )
            return None
        return (
            lambda value: pattern.search(stringify_value(value)) is not None,
            rule.message or "Invalid format",
        )

    if kind is RuleKind.IN:
        if not rule.value:
            logger.warning("In rule on %s has no allowed values; not enforced", field_name)
            return None
        if isinstance(rule.value, (list, tuple)):
            allowed = [stringify_value(item) for item in rule.value]
        else:
            allowed = stringify_value(rule.value).split(",")
        return (
            lambda value: stringify_value(value) in allowed,
            rule.message or f"Must be one of: {', '.join(allowed)}",
        )

    bound = _rule_bound(rule, field_name)
    if bound is None:
        return None

    if kind is RuleKind.MIN_LENGTH:
        return (
            lambda value: len(stringify_value(value)) >= bound,
            rule.message or f"Minimum length is {shown}",
        )
    if kind is RuleKind.MAX_LENGTH:
        return (
            lambda value: len(stringify_value(value)) <= bound,
            rule.message or f"Maximum length is {shown}",
        )
    if kind is RuleKind.SIZE:
        return (
            lambda value: len(stringify_value(value)) == bound,
            rule.message or f"Must be exactly {shown} characters",
        )
    if kind is RuleKind.MIN_VALUE:
        return (
            lambda value: _to_number(value) >= bound,
            rule.message or f"Minimum value is {shown}",
        )
    return (
        lambda value: _to_number(value) <= bound,
        rule.message or f"Maximum value is {shown}",
    )


def _coerce_number(value: Any) -> Any:
    """Accept numbers as-is and read strings as floats, defaulting to ``0``."""

    if isinstance(value, bool):
        _fail("Expected a number")
    if isinstance(value, str):
        number = parse_float(value)
        return 0.0 if math.isnan(number) else number
    return value


def _base_type(field_type: QuestionType) -> Any:
    if field_type is QuestionType.NUMBER:
        return Annotated[float, BeforeValidator(_coerce_number)]
    if field_type in MULTI_VALUED_TYPES:
        return List[str]
    return str


def _filled_check(field_name: str, field_type: QuestionType) -> BeforeValidator:
    """Reject blank answers before coercion so ``""`` never passes as ``0``."""

    message = f"{field_name} is required"

    def check(value: Any) -> Any:
        if field_type in MULTI_VALUED_TYPES:
            filled = isinstance(value, (list, tuple)) and len(value) > 0
        else:
            filled = _is_present(value)
        if not filled:
            _fail(message)
        return value

    return BeforeValidator(check)


def build_field_type(
    field_name: str,
    field_type: QuestionType,
    rules: Iterable[ValidationRule],
    *,
    required: bool = False,
) -> Any:
    """Return the annotated type validating one answer.

    A required field first rejects blank answers. Rules that raise while being
    built are skipped so the remaining rules of the field still apply.
    """

    validators: List[Any] = []
    for rule in rules:
        try:
            check = _rule_check(rule, field_name, field_type)
        except Exception:  # pylint: disable=broad-except
            logger.warning(
                "Failed to apply validation rule %s to field %s", rule.rule, field_name,
                exc_info=True,
            )
            continue
        if check is not None:
            validators.append(_rule_validator(*check))

    base = _base_type(field_type)
    if required:
        validators.append(_filled_check(field_name, field_type))
    if not validators:
        return base
    return Annotated[(base, *validators)]


class _FieldCollector:
    """Accumulate field definitions for :func:`create_model`."""

    def __init__(self) -> None:
        self.definitions: Dict[str, Tuple[Any, Any]] = {}
        self.field_codes: Dict[str, str] = {}
        self.missing_messages: Dict[str, str] = {}
        self._names: Dict[str, str] = {}

    def add(self, code: str, annotation: Any, *, required: bool, missing_message: str) -> None:
        name = self._names.setdefault(code, f"field_{len(self._names)}")
        if required:
            self.definitions[name] = (annotation, Field(alias=code))
        else:
            self.definitions[name] = (Optional[annotation], Field(default=None, alias=code))
        # error locations carry the alias, so only codes are mapped
        self.field_codes[code] = code
        self.missing_messages[code] = missing_message

    def build(self, model_name: str) -> FormValidator:
        model = create_model(  # type: ignore[call-overload]
            model_name,
            __config__=ConfigDict(extra="ignore", populate_by_name=False),
            **self.definitions,
        )
        return FormValidator(model, self.field_codes, self.missing_messages)


def _add_consent_fields(collector: _FieldCollector) -> None:
    for key, message in zip(CONSENT_FIELDS, CONSENT_ERROR_MESSAGES):
        annotation = Annotated[
            Any, _rule_validator(lambda value: isinstance(value, str) and value == AGREE_VALUE, message)
        ]
        collector.add(key, annotation, required=True, missing_message=message)


def _add_question_fields(
    collector: _FieldCollector, questions: Iterable[Question], values: Mapping[str, Any]
) -> None:
    for question in filter_visible_questions(questions, values):
        if not question.is_active:
            continue
        annotation = build_field_type(
            question.code,
            question.field_type,
            question.validation_rules,
            required=question.required,
        )
        collector.add(
            question.code,
            annotation,
            required=question.required,
            missing_message=f"{question.code} is required",
        )


def build_schema(questions: Iterable[Question], values: Mapping[str, Any]) -> FormValidator:
    """Return a validator for the questions visible under ``values``.

    The visible set depends on the answers, so callers rebuild the validator
    whenever values change instead of caching it.
    """

    collector = _FieldCollector()
    _add_question_fields(collector, questions, values)
    return collector.build("DynamicFormSchema")


def build_consent_validator() -> FormValidator:
    """Return the validator for the three fixed consent answers."""

    collector = _FieldCollector()
    _add_consent_fields(collector)
    return collector.build("ConsentSchema")


def build_submission_validator(
    questions: Iterable[Question], values: Mapping[str, Any]
) -> FormValidator:
    """Return the consent validator merged with the dynamic question schema."""

    collector = _FieldCollector()
    _add_consent_fields(collector)
    _add_question_fields(collector, questions, values)
    return collector.build("SubmissionSchema")


__all__ = [
    "FormValidator",
    "ValidationResult",
    "build_consent_validator",
    "build_field_type",
    "build_schema",
    "build_submission_validator",
]
