"""
Migration utilities for loading YAML compliance rules into the database.

Run as a module to import the bundled rule files:

    python -m formguard.storage.migration [rules_path] [--clear]
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from formguard.compliance.errors import MalformedRuleData
from formguard.compliance.schema import parse_rule
from formguard.compliance.sources import as_date, read_rule_path
from formguard.core.database import init_db
from formguard.storage.repositories import ComplianceRuleRepository

logger = logging.getLogger("formguard.storage.migration")


def import_yaml_rules(
    rules_path: str | Path,
    clear_existing: bool = False,
    repository: ComplianceRuleRepository | None = None,
) -> dict[str, Any]:
    """Import YAML rules from a file or directory into the database.

    Every rule is parsed first; malformed rules are reported in ``errors``
    and not stored. Rules carrying an ``id`` update the matching record.

    Args:
        rules_path: YAML file or directory of YAML files
        clear_existing: If True, deletes all stored rules first
        repository: Optional repository instance

    Returns:
        Migration result dict with counts and any errors
    """
    init_db()
    repo = repository or ComplianceRuleRepository()

    try:
        raw_rules = read_rule_path(rules_path)
    except (OSError, ValueError) as e:
        return {
            "success": False,
            "error": f"Failed to read rules from {rules_path}: {e}",
            "rules_imported": 0,
            "errors": [str(e)],
        }

    result: dict[str, Any] = {
        "success": True,
        "rules_imported": 0,
        "rules_updated": 0,
        "rules_cleared": 0,
        "errors": [],
    }

    if clear_existing:
        result["rules_cleared"] = repo.clear()

    for raw in raw_rules:
        try:
            rule = parse_rule(raw)
            expiry_date = as_date(raw.get("expiry_date"))
        except (MalformedRuleData, ValueError) as e:
            result["errors"].append(str(e))
            continue

        existing = repo.get_rule(rule.id) if rule.id else None
        repo.save_rule(
            form_type=rule.form_type,
            rule_type=rule.rule_type.value,
            rule_data=rule.rule_data.model_dump(mode="json", exclude_none=True),
            field_name=rule.field_name,
            jurisdiction=rule.jurisdiction,
            rule_name=rule.rule_name,
            is_active=rule.is_active,
            expiry_date=expiry_date,
            rule_id=rule.id,
        )

        if existing:
            result["rules_updated"] += 1
        else:
            result["rules_imported"] += 1

    if result["errors"]:
        logger.warning("Skipped %d malformed rules from %s", len(result["errors"]), rules_path)
    logger.info(
        "Imported %d and updated %d compliance rules from %s",
        result["rules_imported"], result["rules_updated"], rules_path,
    )
    return result


if __name__ == "__main__":
    import sys

    from formguard.core.config import get_settings
    from formguard.core.logging import configure_logging

    configure_logging()

    args = [arg for arg in sys.argv[1:] if not arg.startswith("--")]
    rules_path = Path(args[0]) if args else Path(get_settings().rules_dir)
    clear = "--clear" in sys.argv

    print(f"Importing rules from {rules_path}")
    if clear:
        print("Clearing existing rules...")

    outcome = import_yaml_rules(rules_path, clear_existing=clear)

    print(f"\nImport {'successful' if outcome['success'] else 'failed'}")
    print(f"  Rules imported: {outcome['rules_imported']}")
    print(f"  Rules updated: {outcome.get('rules_updated', 0)}")

    if outcome["errors"]:
        print(f"\nErrors ({len(outcome['errors'])}):")
        for err in outcome["errors"]:
            print(f"  - {err}")
