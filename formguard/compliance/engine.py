"""Compliance engine: loads scoped rules and validates form submissions."""

from __future__ import annotations

import logging
import math
import re
import threading
from collections.abc import Iterable, Mapping
from typing import Any

from formguard.core.config import get_settings
from .errors import MalformedRuleData, RuleSourceUnavailable
from .index import RuleIndex
from .schema import (
    DEFAULT_JURISDICTION,
    ComplianceRule,
    FieldValidation,
    FormatRuleData,
    LoadResult,
    RangeRuleData,
    RequiredRuleData,
    RuleType,
    Severity,
    ValidationIssue,
    ValidationResult,
    ValidationRuleData,
    parse_rule,
)
from .sources import RuleSource

logger = logging.getLogger("formguard.compliance.engine")

# Leading decimal literal, as accepted by a permissive float parse:
# surrounding junk after the number is ignored.
_LEADING_FLOAT = re.compile(
    r"^\s*([+-]?(?:Infinity|(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?))"
)


def parse_leading_float(value: str) -> float | None:
    """Parse the number at the start of ``value``.

    ``"42"``, ``" 42.5kg"`` and ``"1e3"`` parse; ``"abc"`` and ``""`` give None.
    """
    match = _LEADING_FLOAT.match(value)
    if not match:
        return None
    return float(match.group(1))


def format_number(number: int | float) -> str:
    """Render a bound for messages: integral floats lose the ``.0``."""
    if isinstance(number, float) and math.isfinite(number) and number.is_integer():
        return str(int(number))
    return str(number)


def _as_text(value: Any) -> str | None:
    if value is None or isinstance(value, str):
        return value
    return str(value)


class ComplianceEngine:
    """Evaluates field values and form submissions against compliance rules.

    Rules come from an injected :class:`RuleSource` and are held in an
    immutable :class:`RuleIndex`. ``load`` appends into the current index,
    ``refresh`` rebuilds it from scratch; both swap the new index in under a
    lock, so validation always reads one consistent snapshot. A failed load
    leaves the previous index in place.
    """

    def __init__(
        self,
        source: RuleSource,
        load_timeout: float | None = None,
        autoload: bool = True,
    ):
        self.source = source
        self.load_timeout = (
            load_timeout if load_timeout is not None else get_settings().rule_load_timeout
        )
        self._index = RuleIndex()
        self._lock = threading.Lock()
        self.last_load: LoadResult | None = None

        if autoload:
            self.load()

    # =========================================================================
    # Lifecycle
    # =========================================================================

    @property
    def index(self) -> RuleIndex:
        """The index currently used for validation."""
        return self._index

    def load(self) -> LoadResult:
        """Fetch active rules and append them into the current index.

        Calling this repeatedly without ``refresh`` appends the same rules
        again; use ``refresh`` for a clean rebuild.
        """
        return self._load(reset=False)

    def refresh(self) -> LoadResult:
        """Rebuild the index from an empty state.

        On failure the working index is kept and the failure is returned.
        """
        return self._load(reset=True)

    def _load(self, reset: bool) -> LoadResult:
        action = "refresh" if reset else "load"

        try:
            records = self._fetch()
        except RuleSourceUnavailable as e:
            logger.error("Compliance rule %s failed, keeping %d indexed rules: %s",
                         action, len(self._index), e)
            self.last_load = LoadResult(success=False, error=str(e))
            return self.last_load

        rules, skipped = self._parse(records)

        with self._lock:
            self._index = RuleIndex.build(rules, base=None if reset else self._index)

        logger.info("Loaded %d compliance rules (%d skipped)", len(rules), skipped)
        self.last_load = LoadResult(success=True, rules_loaded=len(rules), rules_skipped=skipped)
        return self.last_load

    def _fetch(self) -> list[Mapping[str, Any]]:
        """Fetch rule records, bounded by ``load_timeout`` seconds.

        The fetch runs on a daemon thread. A fetch that never returns is
        abandoned and does not hold up interpreter exit.
        """
        if not self.load_timeout or self.load_timeout <= 0:
            return self._fetch_records()

        outcome: dict[str, Any] = {}

        def run() -> None:
            try:
                outcome["records"] = self._fetch_records()
            except RuleSourceUnavailable as e:
                outcome["error"] = e

        worker = threading.Thread(target=run, name="formguard-rules", daemon=True)
        worker.start()
        worker.join(self.load_timeout)

        if worker.is_alive():
            raise RuleSourceUnavailable(
                f"Rule source did not respond within {self.load_timeout}s"
            )
        if "error" in outcome:
            raise outcome["error"]
        if "records" not in outcome:
            raise RuleSourceUnavailable("Rule fetch ended without a result")
        return outcome["records"]

    def _fetch_records(self) -> list[Mapping[str, Any]]:
        try:
            return list(self.source.fetch_active_rules())
        except RuleSourceUnavailable:
            raise
        except Exception as e:
            raise RuleSourceUnavailable(f"{type(e).__name__}: {e}") from e

    def _parse(
        self, records: Iterable[Mapping[str, Any] | ComplianceRule]
    ) -> tuple[list[ComplianceRule], int]:
        rules: list[ComplianceRule] = []
        skipped = 0
        for record in records:
            try:
                rules.append(parse_rule(record))
            except MalformedRuleData as e:
                skipped += 1
                logger.warning("Skipping compliance rule %s: %s", e.rule_id, e)
        return rules, skipped

    # =========================================================================
    # Validation
    # =========================================================================

    def validate_field(
        self,
        form_type: str,
        field_name: str,
        value: Any,
        jurisdiction: str = DEFAULT_JURISDICTION,
    ) -> FieldValidation:
        """Validate one field value against its form-wide and field rules.

        Form-wide rules are evaluated first, then field rules. Every
        applicable rule is evaluated; none overrides another.
        """
        return self._validate_field(self._index, form_type, field_name, value, jurisdiction)

    def validate_form(
        self,
        form_type: str,
        form_data: Mapping[str, Any],
        jurisdiction: str = DEFAULT_JURISDICTION,
    ) -> ValidationResult:
        """Validate every submitted field and pool the results.

        Only fields present in ``form_data`` are evaluated, so a form-wide
        rule is only checked through the submitted fields' lookups.
        """
        index = self._index
        issues: list[ValidationIssue] = []
        suggestions: list[str] = []

        for field_name, value in (form_data or {}).items():
            field_result = self._validate_field(
                index, form_type, str(field_name), value, jurisdiction
            )
            issues.extend(field_result.issues)
            suggestions.extend(field_result.suggestions)

        return ValidationResult(
            is_compliant=not any(issue.severity == Severity.HIGH for issue in issues),
            issues=issues,
            suggestions=list(dict.fromkeys(suggestions)),
        )

    def _validate_field(
        self,
        index: RuleIndex,
        form_type: str,
        field_name: str,
        value: Any,
        jurisdiction: str | None,
    ) -> FieldValidation:
        result = FieldValidation()
        if not form_type or not field_name:
            return result

        candidates = index.lookup(form_type, field_name)
        if not candidates:
            return result

        jurisdiction = jurisdiction or DEFAULT_JURISDICTION
        text = _as_text(value)

        for rule in candidates:
            if not rule.applies_to(jurisdiction):
                continue

            data = rule.rule_data
            if rule.rule_type == RuleType.REQUIRED and isinstance(data, RequiredRuleData):
                self._check_required(rule, data, field_name, text, jurisdiction, result)
            elif rule.rule_type == RuleType.FORMAT and isinstance(data, FormatRuleData):
                self._check_format(rule, data, field_name, text, result)
            elif rule.rule_type == RuleType.RANGE and isinstance(data, RangeRuleData):
                self._check_range(rule, data, field_name, text, result)
            elif rule.rule_type == RuleType.VALIDATION and isinstance(data, ValidationRuleData):
                self._check_terms(rule, data, field_name, text, result)

        return result

    def _check_required(
        self,
        rule: ComplianceRule,
        data: RequiredRuleData,
        field_name: str,
        text: str | None,
        jurisdiction: str,
        result: FieldValidation,
    ) -> None:
        if data.required and (text is None or text.strip() == ""):
            result.issues.append(ValidationIssue(
                type=RuleType.REQUIRED,
                severity=Severity.HIGH,
                message=f"{field_name} is required by {jurisdiction} law",
                rule_name=rule.rule_name,
            ))

    def _check_format(
        self,
        rule: ComplianceRule,
        data: FormatRuleData,
        field_name: str,
        text: str | None,
        result: FieldValidation,
    ) -> None:
        if not text or data.regex is None:
            return
        if data.regex.search(text) is None:
            result.issues.append(ValidationIssue(
                type=RuleType.FORMAT,
                severity=Severity.MEDIUM,
                message=data.error_message or f"Invalid format for {field_name}",
                rule_name=rule.rule_name,
            ))
            if data.suggestion:
                result.suggestions.append(data.suggestion)

    def _check_range(
        self,
        rule: ComplianceRule,
        data: RangeRuleData,
        field_name: str,
        text: str | None,
        result: FieldValidation,
    ) -> None:
        if not text or (data.min is None and data.max is None):
            return

        # Non-numeric values are outside a range rule's concern
        number = parse_leading_float(text)
        if number is None:
            return

        if data.min is not None and number < data.min:
            result.issues.append(ValidationIssue(
                type=RuleType.RANGE,
                severity=Severity.MEDIUM,
                message=f"{field_name} must be at least {format_number(data.min)}",
                rule_name=rule.rule_name,
            ))
        if data.max is not None and number > data.max:
            result.issues.append(ValidationIssue(
                type=RuleType.RANGE,
                severity=Severity.MEDIUM,
                message=f"{field_name} cannot exceed {format_number(data.max)}",
                rule_name=rule.rule_name,
            ))

    def _check_terms(
        self,
        rule: ComplianceRule,
        data: ValidationRuleData,
        field_name: str,
        text: str | None,
        result: FieldValidation,
    ) -> None:
        if not text or not data.forbidden_terms:
            return

        lowered = text.lower()
        for term in data.forbidden_terms:
            if term.lower() in lowered:
                result.issues.append(ValidationIssue(
                    type=RuleType.VALIDATION,
                    severity=data.severity,
                    message=f'{field_name} contains potentially problematic term: "{term}"',
                    rule_name=rule.rule_name,
                ))

    # =========================================================================
    # Introspection
    # =========================================================================

    @property
    def rule_count(self) -> int:
        """Number of rules in the current index."""
        return len(self._index)

    def rules_for(self, form_type: str, field_name: str | None = None) -> list[ComplianceRule]:
        """Get the rules stored in one bucket (form-wide when field_name is None)."""
        return list(self._index.bucket(form_type, field_name))

    def form_types(self) -> list[str]:
        """Get the form types with at least one indexed rule."""
        return self._index.form_types()

    def __repr__(self) -> str:
        return f"ComplianceEngine(source={type(self.source).__name__}, rules={self.rule_count})"
