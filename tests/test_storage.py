"""
Tests for the storage layer.

Tests the compliance rule repository, YAML import and the database-backed
rule source.
"""

from datetime import date, timedelta
from pathlib import Path

import pytest
from sqlalchemy import inspect

from formguard.compliance import ComplianceEngine, RepositoryRuleSource, RuleType
from formguard.core.database import drop_db, get_engine, init_db
from formguard.storage import ComplianceRuleRepository
from formguard.storage.migration import import_yaml_rules


@pytest.fixture
def repo(temp_database) -> ComplianceRuleRepository:
    return ComplianceRuleRepository()


class TestComplianceRuleRepository:
    """Test compliance rule repository operations."""

    def test_save_and_get_rule(self, repo):
        """Test saving and retrieving a rule."""
        record = repo.save_rule(
            form_type="family_law",
            field_name="petitioner_zip",
            rule_type="format",
            rule_data={"pattern": r"^\d{5}$", "suggestion": "Use 5 digits"},
            jurisdiction="US",
            rule_name="zip_format",
        )

        assert record.id
        retrieved = repo.get_rule(record.id)
        assert retrieved is not None
        assert retrieved.form_type == "family_law"
        assert retrieved.rule_data == {"pattern": r"^\d{5}$", "suggestion": "Use 5 digits"}
        assert retrieved.is_active is True

    def test_update_existing_rule(self, repo):
        """Test updating a rule in place by id."""
        record = repo.save_rule(form_type="family_law", rule_type="range",
                                field_name="age", rule_data={"min": 18})

        repo.save_rule(form_type="family_law", rule_type="range", field_name="age",
                       rule_data={"min": 21}, rule_id=record.id)

        assert repo.count_rules() == 1
        assert repo.get_rule(record.id).rule_data == {"min": 21}

    def test_blank_field_name_is_stored_as_null(self, repo):
        record = repo.save_rule(form_type="family_law", rule_type="required", field_name="")
        assert repo.get_rule(record.id).field_name is None

    def test_get_all_rules(self, repo):
        """Test getting all rules, with and without inactive ones."""
        repo.save_rule(form_type="family_law", rule_type="required")
        repo.save_rule(form_type="real_estate", rule_type="required")
        repo.save_rule(form_type="business", rule_type="required", is_active=False)

        assert len(repo.get_all_rules()) == 2
        assert len(repo.get_all_rules(active_only=False)) == 3

    def test_fetch_active_rules_filters_and_orders(self, repo):
        """Test the engine-facing fetch."""
        today = date(2025, 3, 1)
        repo.save_rule(form_type="real_estate", field_name="price", rule_type="range")
        repo.save_rule(form_type="family_law", field_name="zip", rule_type="format")
        repo.save_rule(form_type="family_law", field_name=None, rule_type="required")
        repo.save_rule(form_type="family_law", field_name="age", rule_type="range",
                       expiry_date=today)
        repo.save_rule(form_type="family_law", field_name="name", rule_type="required",
                       expiry_date=today + timedelta(days=1))
        repo.save_rule(form_type="family_law", field_name="old", rule_type="required",
                       is_active=False)

        rules = repo.fetch_active_rules(as_of=today)

        assert [(r["form_type"], r["field_name"]) for r in rules] == [
            ("family_law", None),
            ("family_law", "name"),
            ("family_law", "zip"),
            ("real_estate", "price"),
        ]
        assert rules[1]["expiry_date"] == today + timedelta(days=1)

    def test_delete_rule_soft(self, repo):
        """Test soft deletion of a rule."""
        record = repo.save_rule(form_type="family_law", rule_type="required")

        assert repo.delete_rule(record.id) is True
        assert repo.count_rules() == 0
        assert repo.count_rules(active_only=False) == 1
        assert repo.get_rule(record.id).is_active is False

    def test_delete_rule_hard(self, repo):
        record = repo.save_rule(form_type="family_law", rule_type="required")

        assert repo.delete_rule(record.id, soft=False) is True
        assert repo.get_rule(record.id) is None
        assert repo.delete_rule(record.id, soft=False) is False

    def test_deactivate_missing_rule(self, repo):
        assert repo.deactivate_rule("no-such-rule") is False

    def test_get_rules_by_form_type(self, repo):
        repo.save_rule(form_type="family_law", field_name="zip", rule_type="format")
        repo.save_rule(form_type="family_law", rule_type="required")
        repo.save_rule(form_type="probate", rule_type="required")

        rules = repo.get_rules_by_form_type("family_law")
        assert [r.field_name for r in rules] == [None, "zip"]

    def test_clear(self, repo):
        repo.save_rule(form_type="family_law", rule_type="required")
        repo.save_rule(form_type="probate", rule_type="required")
        assert repo.clear() == 2
        assert repo.count_rules(active_only=False) == 0


class TestDatabaseSchema:
    def test_drop_and_recreate_tables(self, repo):
        repo.save_rule(form_type="family_law", rule_type="required")

        drop_db()
        assert "compliance_rules" not in inspect(get_engine()).get_table_names()

        init_db()
        assert "compliance_rules" in inspect(get_engine()).get_table_names()
        assert repo.count_rules(active_only=False) == 0


class TestYamlImport:
    def test_import_bundled_rules(self, temp_database, rules_dir: Path):
        result = import_yaml_rules(rules_dir)

        assert result["success"] is True
        assert result["rules_imported"] == 10
        assert result["errors"] == []
        assert ComplianceRuleRepository().count_rules() == 10

    def test_import_with_ids_updates(self, temp_database, tmp_path: Path):
        path = tmp_path / "rules.yaml"
        path.write_text(
            "- id: probate-executor\n  form_type: probate\n  field_name: executor\n"
            "  rule_type: required\n  rule_data: {required: true}\n",
            encoding="utf-8",
        )

        first = import_yaml_rules(path)
        second = import_yaml_rules(path)

        assert first["rules_imported"] == 1
        assert second["rules_updated"] == 1
        assert ComplianceRuleRepository().count_rules() == 1

    def test_malformed_rules_are_reported(self, temp_database, tmp_path: Path):
        path = tmp_path / "rules.yaml"
        path.write_text(
            "- form_type: probate\n  rule_type: checksum\n"
            "- form_type: probate\n  rule_type: format\n  rule_data: {pattern: '[a-'}\n"
            "- form_type: probate\n  rule_type: required\n  rule_data: {required: true}\n",
            encoding="utf-8",
        )

        result = import_yaml_rules(path)

        assert result["rules_imported"] == 1
        assert len(result["errors"]) == 2

    def test_clear_existing(self, temp_database, rules_dir: Path):
        import_yaml_rules(rules_dir)
        result = import_yaml_rules(rules_dir / "business.yaml", clear_existing=True)

        assert result["rules_cleared"] == 10
        assert ComplianceRuleRepository().count_rules() == 2

    def test_missing_path(self, temp_database, tmp_path: Path):
        result = import_yaml_rules(tmp_path / "missing.yaml")
        assert result["success"] is False
        assert result["rules_imported"] == 0


class TestRepositoryRuleSource:
    def test_engine_over_database(self, temp_database, rules_dir: Path):
        import_yaml_rules(rules_dir)
        engine = ComplianceEngine(RepositoryRuleSource(), load_timeout=0)

        assert engine.rule_count == 10
        result = engine.validate_field("real_estate", "purchase_price", "500", "US")
        assert [i.message for i in result.issues] == ["purchase_price must be at least 1000"]

    def test_refresh_reflects_rule_changes(self, repo):
        """Deactivated rules stop firing and new rules start after refresh."""
        old = repo.save_rule(form_type="family_law", field_name="name",
                             rule_type="required", rule_data={"required": True})
        engine = ComplianceEngine(RepositoryRuleSource(repo), load_timeout=0)
        assert len(engine.validate_field("family_law", "name", "", "US").issues) == 1

        repo.deactivate_rule(old.id)
        repo.save_rule(form_type="family_law", field_name="age", rule_type="range",
                       rule_data={"min": 18}, jurisdiction="ALL")
        result = engine.refresh()

        assert result.success is True
        assert engine.validate_field("family_law", "name", "", "US").issues == []
        age_issues = engine.validate_field("family_law", "age", "9", "US").issues
        assert [i.type for i in age_issues] == [RuleType.RANGE]

    def test_database_failure_keeps_index(self, repo):
        repo.save_rule(form_type="family_law", field_name="name",
                       rule_type="required", rule_data={"required": True})
        engine = ComplianceEngine(RepositoryRuleSource(repo), load_timeout=0)

        with get_engine().begin() as conn:
            conn.exec_driver_sql("DROP TABLE compliance_rules")

        result = engine.refresh()

        assert result.success is False
        assert engine.rule_count == 1
        assert len(engine.validate_field("family_law", "name", "", "US").issues) == 1
