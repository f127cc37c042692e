"""Compliance rule engine - scoped rules, indexing and form validation."""

from .errors import (
    ComplianceError,
    RuleSourceUnavailable,
    MalformedRuleData,
    ComplianceViolation,
)
from .schema import (
    GENERAL_BUCKET,
    ALL_JURISDICTIONS,
    DEFAULT_JURISDICTION,
    RuleType,
    Severity,
    RequiredRuleData,
    FormatRuleData,
    RangeRuleData,
    ValidationRuleData,
    RuleData,
    ComplianceRule,
    compile_pattern,
    parse_rule,
    ValidationIssue,
    FieldValidation,
    ValidationResult,
    LoadResult,
)
from .index import RuleIndex
from .sources import (
    RuleSource,
    RepositoryRuleSource,
    YamlRuleSource,
    StaticRuleSource,
    read_rule_file,
    read_rule_path,
    select_active,
)
from .engine import ComplianceEngine, parse_leading_float
from .gate import check_submission, ensure_compliant

__all__ = [
    # Errors
    "ComplianceError",
    "RuleSourceUnavailable",
    "MalformedRuleData",
    "ComplianceViolation",
    # Schema
    "GENERAL_BUCKET",
    "ALL_JURISDICTIONS",
    "DEFAULT_JURISDICTION",
    "RuleType",
    "Severity",
    "RequiredRuleData",
    "FormatRuleData",
    "RangeRuleData",
    "ValidationRuleData",
    "RuleData",
    "ComplianceRule",
    "compile_pattern",
    "parse_rule",
    "ValidationIssue",
    "FieldValidation",
    "ValidationResult",
    "LoadResult",
    # Index
    "RuleIndex",
    # Sources
    "RuleSource",
    "RepositoryRuleSource",
    "YamlRuleSource",
    "StaticRuleSource",
    "read_rule_file",
    "read_rule_path",
    "select_active",
    # Engine
    "ComplianceEngine",
    "parse_leading_float",
    # Gate
    "check_submission",
    "ensure_compliant",
]
