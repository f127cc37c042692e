"""
Compliance rule repository for database operations.

Provides CRUD operations for compliance rules and the active-rule fetch
used by the rule engine.
"""

from __future__ import annotations

from datetime import date
from typing import Any

from sqlalchemy import func, or_
from sqlmodel import col, select

from formguard.core.database import session_scope
from formguard.storage.models import ComplianceRuleRecord, utc_now


class ComplianceRuleRepository:
    """Repository for compliance rule persistence operations."""

    # =========================================================================
    # Rule CRUD
    # =========================================================================

    def save_rule(
        self,
        form_type: str,
        rule_type: str,
        rule_data: dict[str, Any] | None = None,
        field_name: str | None = None,
        jurisdiction: str = "US",
        rule_name: str = "",
        is_active: bool = True,
        expiry_date: date | None = None,
        rule_id: str | None = None,
    ) -> ComplianceRuleRecord:
        """Save or update a rule.

        If ``rule_id`` names an existing record, that record is updated.
        Otherwise a new record is created.

        Args:
            form_type: Form category the rule applies to
            rule_type: One of required, format, range, validation
            rule_data: Type-specific payload
            field_name: Governed field, or None for a form-wide rule
            jurisdiction: Jurisdiction code or ALL
            rule_name: Human-readable identifier surfaced in issues
            is_active: Whether the rule is eligible for loading
            expiry_date: Date after which the rule is no longer loaded
            rule_id: Existing record id to update

        Returns:
            The saved ComplianceRuleRecord
        """
        with session_scope() as session:
            record = session.get(ComplianceRuleRecord, rule_id) if rule_id else None

            if record is None:
                record = ComplianceRuleRecord(form_type=form_type, rule_type=rule_type)
                if rule_id:
                    record.id = rule_id
            else:
                record.updated_at = utc_now()

            record.form_type = form_type
            record.rule_type = rule_type
            record.rule_data = dict(rule_data or {})
            record.field_name = field_name or None
            record.jurisdiction = jurisdiction
            record.rule_name = rule_name
            record.is_active = is_active
            record.expiry_date = expiry_date

            session.add(record)
            session.commit()
            session.refresh(record)
            return record

    def get_rule(self, rule_id: str) -> ComplianceRuleRecord | None:
        """Get a rule by ID, active or not."""
        with session_scope() as session:
            return session.get(ComplianceRuleRecord, rule_id)

    def get_all_rules(self, active_only: bool = True) -> list[ComplianceRuleRecord]:
        """Get all rules.

        Args:
            active_only: If True, only return active rules

        Returns:
            List of ComplianceRuleRecord objects
        """
        statement = select(ComplianceRuleRecord)
        if active_only:
            statement = statement.where(col(ComplianceRuleRecord.is_active).is_(True))
        statement = statement.order_by(
            col(ComplianceRuleRecord.form_type),
            col(ComplianceRuleRecord.field_name).asc().nulls_first(),
            col(ComplianceRuleRecord.created_at),
        )

        with session_scope() as session:
            return list(session.exec(statement).all())

    def fetch_active_rules(self, as_of: date | None = None) -> list[dict[str, Any]]:
        """Fetch every active, non-expired rule in load order.

        A rule is returned when it is active and its expiry date is NULL or
        strictly after ``as_of`` (today by default). Rows are ordered by
        form_type, then field_name with form-wide rules first.

        Returns:
            List of plain rule mappings
        """
        as_of = as_of or date.today()
        statement = (
            select(ComplianceRuleRecord)
            .where(col(ComplianceRuleRecord.is_active).is_(True))
            .where(
                or_(
                    col(ComplianceRuleRecord.expiry_date).is_(None),
                    col(ComplianceRuleRecord.expiry_date) > as_of,
                )
            )
            .order_by(
                col(ComplianceRuleRecord.form_type),
                col(ComplianceRuleRecord.field_name).asc().nulls_first(),
                col(ComplianceRuleRecord.created_at),
            )
        )

        with session_scope() as session:
            return [record.to_dict() for record in session.exec(statement).all()]

    def deactivate_rule(self, rule_id: str) -> bool:
        """Mark a rule inactive so the next load skips it.

        Returns:
            True if a rule was deactivated
        """
        with session_scope() as session:
            record = session.get(ComplianceRuleRecord, rule_id)
            if record is None:
                return False
            record.is_active = False
            record.updated_at = utc_now()
            session.add(record)
            session.commit()
            return True

    def delete_rule(self, rule_id: str, soft: bool = True) -> bool:
        """Delete a rule.

        Args:
            rule_id: The rule identifier
            soft: If True, mark as inactive instead of deleting

        Returns:
            True if a rule was deleted/deactivated
        """
        if soft:
            return self.deactivate_rule(rule_id)

        with session_scope() as session:
            record = session.get(ComplianceRuleRecord, rule_id)
            if record is None:
                return False
            session.delete(record)
            session.commit()
            return True

    def clear(self) -> int:
        """Delete every rule. Returns the number of rows removed."""
        with session_scope() as session:
            records = session.exec(select(ComplianceRuleRecord)).all()
            for record in records:
                session.delete(record)
            session.commit()
            return len(records)

    # =========================================================================
    # Query Operations
    # =========================================================================

    def get_rules_by_form_type(self, form_type: str) -> list[ComplianceRuleRecord]:
        """Get all active rules for a form type."""
        statement = (
            select(ComplianceRuleRecord)
            .where(ComplianceRuleRecord.form_type == form_type)
            .where(col(ComplianceRuleRecord.is_active).is_(True))
            .order_by(col(ComplianceRuleRecord.field_name).asc().nulls_first())
        )
        with session_scope() as session:
            return list(session.exec(statement).all())

    def count_rules(self, active_only: bool = True) -> int:
        """Count total rules.

        Args:
            active_only: If True, only count active rules

        Returns:
            Number of rules
        """
        statement = select(func.count()).select_from(ComplianceRuleRecord)
        if active_only:
            statement = statement.where(col(ComplianceRuleRecord.is_active).is_(True))

        with session_scope() as session:
            return session.exec(statement).one()
