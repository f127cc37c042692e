"""Exceptions raised by the compliance rule engine."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .schema import ValidationIssue, ValidationResult


class ComplianceError(Exception):
    """Base class for compliance engine errors."""


class RuleSourceUnavailable(ComplianceError):
    """The rule source could not be read (connectivity, timeout, bad response)."""


class MalformedRuleData(ComplianceError):
    """A stored rule cannot be evaluated and is skipped."""

    def __init__(self, message: str, rule_id: Any = None):
        super().__init__(message)
        self.rule_id = rule_id


class ComplianceViolation(ComplianceError):
    """A submission carries high-severity issues and must not proceed."""

    def __init__(self, result: ValidationResult):
        self.result = result
        super().__init__(
            f"Compliance issues must be resolved before continuing "
            f"({len(self.issues)} blocking)"
        )

    @property
    def issues(self) -> list[ValidationIssue]:
        return self.result.blocking_issues

    @property
    def suggestions(self) -> list[str]:
        return self.result.suggestions
