"""Pytest fixtures for test suite."""

import tempfile
from pathlib import Path
from typing import Any, Callable

import pytest

from formguard.compliance import ComplianceEngine, StaticRuleSource
from formguard.core.database import (
    drop_db,
    init_db,
    reset_engine,
    set_database_url,
    set_db_path,
)


# =============================================================================
# Core Fixtures
# =============================================================================


@pytest.fixture
def rules_dir() -> Path:
    """Path to the bundled rule files."""
    return Path(__file__).parent.parent / "formguard" / "compliance" / "data"


@pytest.fixture
def make_rule() -> Callable[..., dict[str, Any]]:
    """Factory for stored-rule mappings with sensible defaults."""
    counter = {"n": 0}

    def _make(
        rule_type: str,
        rule_data: dict[str, Any] | None = None,
        form_type: str = "family_law",
        field_name: str | None = None,
        jurisdiction: str = "ALL",
        **extra: Any,
    ) -> dict[str, Any]:
        counter["n"] += 1
        rule = {
            "id": f"rule-{counter['n']}",
            "form_type": form_type,
            "field_name": field_name,
            "rule_type": rule_type,
            "rule_data": rule_data or {},
            "jurisdiction": jurisdiction,
            "rule_name": extra.pop("rule_name", f"{rule_type}_{counter['n']}"),
            "is_active": True,
            "expiry_date": None,
        }
        rule.update(extra)
        return rule

    return _make


@pytest.fixture
def engine_for() -> Callable[..., ComplianceEngine]:
    """Build an engine over an in-memory rule list."""

    def _build(*rules: dict[str, Any]) -> ComplianceEngine:
        return ComplianceEngine(StaticRuleSource(rules), load_timeout=0)

    return _build


# =============================================================================
# Database Fixtures
# =============================================================================


@pytest.fixture
def temp_database():
    """Use a temporary SQLite database for one test."""
    with tempfile.NamedTemporaryFile(suffix=".db", delete=False) as f:
        temp_path = Path(f.name)

    set_db_path(temp_path)
    init_db()
    yield temp_path

    drop_db()
    reset_engine()
    set_database_url(None)
    try:
        temp_path.unlink()
    except OSError:
        pass
