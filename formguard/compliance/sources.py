"""Rule sources feeding the compliance engine.

A rule source returns every active, non-expired rule as a plain mapping,
ordered by form_type and then field_name with form-wide rules first. The
engine parses and indexes whatever it receives.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from datetime import date, datetime
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

import yaml
from sqlalchemy.exc import SQLAlchemyError

from formguard.storage.repositories import ComplianceRuleRepository
from .errors import RuleSourceUnavailable

logger = logging.getLogger("formguard.compliance.sources")


@runtime_checkable
class RuleSource(Protocol):
    """Anything that can hand the engine its active rules."""

    def fetch_active_rules(self, as_of: date | None = None) -> Iterable[Mapping[str, Any]]:
        ...


# =============================================================================
# Filtering helpers
# =============================================================================

def as_date(value: Any) -> date | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value))


def is_loadable(rule: Mapping[str, Any], as_of: date) -> bool:
    """Check the active flag and expiry date of a stored rule."""
    if not rule.get("is_active", True):
        return False
    expiry = as_date(rule.get("expiry_date"))
    return expiry is None or expiry > as_of


def load_order(rule: Mapping[str, Any]) -> tuple[str, int, str]:
    """Sort key: form_type, then form-wide rules, then field_name."""
    field_name = rule.get("field_name") or ""
    return (str(rule.get("form_type") or ""), 1 if field_name else 0, str(field_name))


def select_active(
    rules: Iterable[Mapping[str, Any]],
    as_of: date | None = None,
) -> list[dict[str, Any]]:
    """Filter rules to the loadable ones and sort them into load order."""
    as_of = as_of or date.today()
    return sorted(
        (dict(rule) for rule in rules if is_loadable(rule, as_of)),
        key=load_order,
    )


# =============================================================================
# YAML rule files
# =============================================================================

def read_rule_file(path: str | Path) -> list[dict[str, Any]]:
    """Read compliance rules from a single YAML file.

    The file may hold a single rule, a list of rules, or a pack mapping with
    a ``rules`` list. Pack-level ``form_type`` and ``jurisdiction`` are used
    as defaults for rules that omit them.

    Raises:
        FileNotFoundError: The file does not exist.
        ValueError: The document is not a rule, list or pack.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Rule file not found: {path}")

    with open(path, "r", encoding="utf-8") as f:
        content = yaml.safe_load(f)

    if content is None:
        return []

    # Handle single rule, list of rules, or a pack
    if isinstance(content, list):
        items = content
        defaults: dict[str, Any] = {}
    elif isinstance(content, dict) and "rules" in content:
        items = content.get("rules") or []
        defaults = {
            key: content[key] for key in ("form_type", "jurisdiction") if key in content
        }
    elif isinstance(content, dict):
        items = [content]
        defaults = {}
    else:
        raise ValueError(f"Unsupported rule document in {path}")

    rules = []
    for item in items:
        if not isinstance(item, dict):
            raise ValueError(f"Rule entries must be mappings in {path}")
        rules.append({**defaults, **item})
    return rules


def read_rule_path(path: str | Path) -> list[dict[str, Any]]:
    """Read rules from a YAML file or every ``*.yaml``/``*.yml`` file in a directory."""
    path = Path(path)
    if path.is_dir():
        rules: list[dict[str, Any]] = []
        for yaml_file in sorted([*path.glob("*.yaml"), *path.glob("*.yml")]):
            rules.extend(read_rule_file(yaml_file))
        return rules
    return read_rule_file(path)


# =============================================================================
# Sources
# =============================================================================

class RepositoryRuleSource:
    """Reads rules from the ``compliance_rules`` table."""

    def __init__(self, repository: ComplianceRuleRepository | None = None):
        self.repository = repository or ComplianceRuleRepository()

    def fetch_active_rules(self, as_of: date | None = None) -> list[dict[str, Any]]:
        try:
            return self.repository.fetch_active_rules(as_of)
        except SQLAlchemyError as e:
            raise RuleSourceUnavailable(f"Failed to fetch compliance rules: {e}") from e


class YamlRuleSource:
    """Reads rules from YAML on every fetch, so refresh picks up edits."""

    def __init__(self, path: str | Path):
        self.path = Path(path)

    def fetch_active_rules(self, as_of: date | None = None) -> list[dict[str, Any]]:
        try:
            rules = read_rule_path(self.path)
            active = select_active(rules, as_of)
        except (OSError, yaml.YAMLError, ValueError) as e:
            raise RuleSourceUnavailable(f"Failed to read rules from {self.path}: {e}") from e

        logger.debug("Read %d rules (%d active) from %s", len(rules), len(active), self.path)
        return active


class StaticRuleSource:
    """In-memory rule list. ``replace`` swaps the contents for the next fetch."""

    def __init__(self, rules: Iterable[Mapping[str, Any]] | None = None):
        self._rules = [dict(rule) for rule in rules or []]

    def replace(self, rules: Iterable[Mapping[str, Any]]) -> None:
        self._rules = [dict(rule) for rule in rules]

    def add(self, rule: Mapping[str, Any]) -> None:
        self._rules.append(dict(rule))

    def fetch_active_rules(self, as_of: date | None = None) -> list[dict[str, Any]]:
        try:
            return select_active(self._rules, as_of)
        except ValueError as e:
            raise RuleSourceUnavailable(f"Bad expiry date in static rules: {e}") from e
