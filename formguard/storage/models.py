"""SQLModel table definitions for compliance rules.

One row per validation constraint. ``rule_data`` is stored as JSON and its
shape depends on ``rule_type``:
- required: {"required": true}
- format: {"pattern": ..., "error_message": ..., "suggestion": ...}
- range: {"min": ..., "max": ...}
- validation: {"forbidden_terms": [...], "severity": ...}
"""

import uuid
from datetime import date, datetime, timezone
from typing import Any, Optional

from sqlalchemy import JSON, Column
from sqlmodel import Field, SQLModel


def generate_uuid() -> str:
    """Generate a new UUID string."""
    return str(uuid.uuid4())


def utc_now() -> datetime:
    """Get the current UTC time."""
    return datetime.now(timezone.utc)


class ComplianceRuleRecord(SQLModel, table=True):
    """Database record for a compliance rule."""

    __tablename__ = "compliance_rules"

    id: str = Field(default_factory=generate_uuid, primary_key=True)
    form_type: str = Field(..., index=True, description="Form category, e.g. family_law")
    field_name: Optional[str] = Field(
        default=None, description="Governed field; NULL for form-wide rules"
    )
    rule_type: str = Field(..., description="required, format, range or validation")
    rule_data: dict[str, Any] = Field(default_factory=dict, sa_column=Column(JSON))
    jurisdiction: str = Field(default="US", description="Jurisdiction code or ALL")
    rule_name: str = Field(default="", description="Human-readable rule identifier")

    # Lifecycle
    is_active: bool = Field(default=True, index=True)
    expiry_date: Optional[date] = Field(default=None)

    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    def to_dict(self) -> dict[str, Any]:
        """Convert to the plain mapping shape consumed by the rule engine."""
        return {
            "id": self.id,
            "form_type": self.form_type,
            "field_name": self.field_name,
            "rule_type": self.rule_type,
            "rule_data": dict(self.rule_data or {}),
            "jurisdiction": self.jurisdiction,
            "rule_name": self.rule_name,
            "is_active": self.is_active,
            "expiry_date": self.expiry_date,
        }
