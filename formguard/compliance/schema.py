"""Pydantic models for compliance rules and validation results.

Each stored rule carries a ``rule_data`` payload whose shape depends on its
``rule_type``. The payload is parsed into exactly one variant when the rule
is loaded, so evaluation never probes untyped keys:

- required   -> RequiredRuleData
- format     -> FormatRuleData
- range      -> RangeRuleData
- validation -> ValidationRuleData
"""

from __future__ import annotations

import json
import logging
import re
from datetime import date, datetime, timezone
from enum import Enum
from collections.abc import Mapping
from typing import Any, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    PrivateAttr,
    ValidationError,
    field_validator,
    model_validator,
)

from .errors import MalformedRuleData

logger = logging.getLogger("formguard.compliance.schema")

GENERAL_BUCKET = "general"
ALL_JURISDICTIONS = "ALL"
DEFAULT_JURISDICTION = "US"


# =============================================================================
# Enumerations
# =============================================================================

class RuleType(str, Enum):
    """Kinds of compliance rule. Determines which evaluator applies."""
    REQUIRED = "required"
    FORMAT = "format"
    RANGE = "range"
    VALIDATION = "validation"


class Severity(str, Enum):
    """Issue severity. Only HIGH blocks compliance."""
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


# =============================================================================
# Rule Data Variants
# =============================================================================

class RequiredRuleData(BaseModel):
    """Payload for ``required`` rules."""
    model_config = ConfigDict(frozen=True, extra="ignore")

    required: bool = Field(False, description="Whether the field must be non-blank")


def compile_pattern(pattern: str) -> re.Pattern[str]:
    """Compile a stored format pattern with browser-style regex semantics.

    Stored patterns are written for JavaScript ``RegExp``: ``\\d``, ``\\w``
    and ``\\b`` are ASCII-only and an unescaped ``$`` outside a character
    class only matches at the very end of the input, never before a
    trailing newline.

    Raises:
        re.error: The pattern does not compile.
    """
    translated: list[str] = []
    in_class = False
    i = 0
    while i < len(pattern):
        char = pattern[i]
        if char == "\\":
            translated.append(pattern[i:i + 2])
            i += 2
            continue
        if in_class:
            if char == "]":
                in_class = False
        elif char == "[":
            in_class = True
        elif char == "$":
            char = r"\Z"
        translated.append(char)
        i += 1
    return re.compile("".join(translated), re.ASCII)


class FormatRuleData(BaseModel):
    """Payload for ``format`` rules.

    ``pattern`` is compiled once at parse time. An invalid pattern fails
    validation, which makes the whole rule malformed.
    """
    model_config = ConfigDict(frozen=True, extra="ignore")

    pattern: str | None = Field(None, description="Regular expression the value must match")
    error_message: str | None = Field(None, description="Message used instead of the default")
    suggestion: str | None = Field(None, description="Remediation hint shown on mismatch")

    _regex: re.Pattern[str] | None = PrivateAttr(default=None)

    @field_validator("pattern")
    @classmethod
    def _check_pattern(cls, value: str | None) -> str | None:
        if value:
            try:
                compile_pattern(value)
            except re.error as e:
                raise ValueError(f"invalid pattern {value!r}: {e}") from e
        return value

    def model_post_init(self, __context: Any) -> None:
        if self.pattern:
            self._regex = compile_pattern(self.pattern)

    @property
    def regex(self) -> re.Pattern[str] | None:
        return self._regex


class RangeRuleData(BaseModel):
    """Payload for ``range`` rules. Both bounds are inclusive."""
    model_config = ConfigDict(frozen=True, extra="ignore")

    min: int | float | None = Field(None, description="Lowest accepted value")
    max: int | float | None = Field(None, description="Highest accepted value")


class ValidationRuleData(BaseModel):
    """Payload for ``validation`` (forbidden-term scan) rules."""
    model_config = ConfigDict(frozen=True, extra="ignore")

    forbidden_terms: list[str] = Field(default_factory=list)
    severity: Severity = Severity.MEDIUM

    @field_validator("forbidden_terms", mode="before")
    @classmethod
    def _none_is_empty(cls, value: Any) -> Any:
        if value is None:
            return []
        return value

    @field_validator("severity", mode="before")
    @classmethod
    def _default_severity(cls, value: Any) -> Any:
        if not value:
            return Severity.MEDIUM
        if isinstance(value, Severity):
            return value
        try:
            return Severity(str(value).lower())
        except ValueError:
            # Unknown severities still scan, but never block
            logger.warning("Unknown severity %r, using %s", value, Severity.MEDIUM.value)
            return Severity.MEDIUM


RuleData = Union[RequiredRuleData, FormatRuleData, RangeRuleData, ValidationRuleData]

RULE_DATA_MODELS: dict[RuleType, type[BaseModel]] = {
    RuleType.REQUIRED: RequiredRuleData,
    RuleType.FORMAT: FormatRuleData,
    RuleType.RANGE: RangeRuleData,
    RuleType.VALIDATION: ValidationRuleData,
}


# =============================================================================
# Compliance Rule
# =============================================================================

class ComplianceRule(BaseModel):
    """A loaded, immutable compliance rule.

    A rule without ``field_name`` is form-wide: it is indexed under the
    ``general`` bucket of its form type and applies to every field
    evaluated for that form type.
    """
    model_config = ConfigDict(frozen=True)

    id: str | None = Field(None, description="Backing-store identifier")
    form_type: str = Field(..., min_length=1, description="Form category, e.g. family_law")
    field_name: str | None = Field(None, description="Governed field, None for form-wide")
    rule_type: RuleType
    rule_data: RuleData
    jurisdiction: str = Field(DEFAULT_JURISDICTION, description="Jurisdiction code or ALL")
    rule_name: str = Field("", description="Identifier surfaced in issues")
    is_active: bool = True
    expiry_date: date | None = None

    @model_validator(mode="before")
    @classmethod
    def _parse_rule_data(cls, data: Any) -> Any:
        """Pick the rule_data variant from rule_type."""
        if not isinstance(data, dict):
            return data

        data = dict(data)
        try:
            rule_type = RuleType(data.get("rule_type"))
        except ValueError:
            # Let field validation report the unknown rule_type
            return data

        payload = data.get("rule_data")
        if payload is None:
            payload = {}
        elif isinstance(payload, str):
            # JSON text columns
            try:
                payload = json.loads(payload)
            except json.JSONDecodeError as e:
                raise ValueError(f"rule_data is not valid JSON: {e}") from e
        if isinstance(payload, dict):
            try:
                data["rule_data"] = RULE_DATA_MODELS[rule_type].model_validate(payload)
            except ValidationError as e:
                raise ValueError(f"invalid rule_data: {e.errors()[0]['msg']}") from e
        return data

    @model_validator(mode="after")
    def _check_variant(self) -> ComplianceRule:
        expected = RULE_DATA_MODELS[self.rule_type]
        if not isinstance(self.rule_data, expected):
            raise ValueError(
                f"rule_data for {self.rule_type.value} rule must be {expected.__name__}"
            )
        return self

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> Any:
        if value is None:
            return None
        return str(value)

    @field_validator("field_name", mode="before")
    @classmethod
    def _blank_field_is_general(cls, value: Any) -> Any:
        return value or None

    @field_validator("rule_name", mode="before")
    @classmethod
    def _none_name_is_blank(cls, value: Any) -> Any:
        if value is None:
            return ""
        return value

    @property
    def bucket(self) -> str:
        """Index bucket within the form type."""
        return self.field_name or GENERAL_BUCKET

    def applies_to(self, jurisdiction: str) -> bool:
        return self.jurisdiction == jurisdiction or self.jurisdiction == ALL_JURISDICTIONS


def parse_rule(data: Mapping[str, Any] | ComplianceRule) -> ComplianceRule:
    """Parse a stored rule mapping into a ComplianceRule.

    Raises:
        MalformedRuleData: unknown rule_type, bad rule_data or invalid pattern.
    """
    if isinstance(data, ComplianceRule):
        return data
    if not isinstance(data, Mapping):
        raise MalformedRuleData(f"rule must be a mapping, got {type(data).__name__}")

    data = dict(data)
    try:
        return ComplianceRule.model_validate(data)
    except ValidationError as e:
        raise MalformedRuleData(
            f"rule {data.get('rule_name') or data.get('id')!r} is malformed: "
            f"{e.error_count()} error(s), first: {e.errors()[0]['msg']}",
            rule_id=data.get("id"),
        ) from e


# =============================================================================
# Validation Results
# =============================================================================

class ValidationIssue(BaseModel):
    """A single problem found while validating a value."""
    type: RuleType
    severity: Severity
    message: str
    rule_name: str = ""


class FieldValidation(BaseModel):
    """Issues and suggestions for one field."""
    issues: list[ValidationIssue] = Field(default_factory=list)
    suggestions: list[str] = Field(default_factory=list)


class ValidationResult(BaseModel):
    """Pooled result of validating a whole form submission."""
    is_compliant: bool = Field(True, serialization_alias="isCompliant")
    issues: list[ValidationIssue] = Field(default_factory=list)
    suggestions: list[str] = Field(default_factory=list)

    @property
    def blocking_issues(self) -> list[ValidationIssue]:
        """Issues that make the submission non-compliant."""
        return [issue for issue in self.issues if issue.severity == Severity.HIGH]


class LoadResult(BaseModel):
    """Outcome of a load or refresh of the rule index."""
    success: bool
    rules_loaded: int = 0
    rules_skipped: int = 0
    error: str | None = None
    finished_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
