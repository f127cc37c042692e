"""formguard - compliance rule validation for legal form submissions.

Rules scoped by form type, field and jurisdiction are loaded from a rule
source (database table or YAML files), indexed in memory, and evaluated
against single field values or whole form submissions.

Typical wiring, done once by the host application:

    from formguard import ComplianceEngine, RepositoryRuleSource

    engine = ComplianceEngine(RepositoryRuleSource())
    result = engine.validate_form("family_law", form_data, "US")
"""

from .compliance import (
    ComplianceEngine,
    ComplianceRule,
    ComplianceViolation,
    FieldValidation,
    LoadResult,
    RepositoryRuleSource,
    RuleSource,
    RuleSourceUnavailable,
    RuleType,
    Severity,
    StaticRuleSource,
    ValidationIssue,
    ValidationResult,
    YamlRuleSource,
    check_submission,
    ensure_compliant,
)

__version__ = "0.1.0"

__all__ = [
    "ComplianceEngine",
    "ComplianceRule",
    "ComplianceViolation",
    "FieldValidation",
    "LoadResult",
    "RepositoryRuleSource",
    "RuleSource",
    "RuleSourceUnavailable",
    "RuleType",
    "Severity",
    "StaticRuleSource",
    "ValidationIssue",
    "ValidationResult",
    "YamlRuleSource",
    "check_submission",
    "ensure_compliant",
]
