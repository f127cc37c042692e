"""
Storage layer for formguard.

Persists compliance rules in a relational table. Uses SQLite by default,
PostgreSQL when DATABASE_URL points at one. YAML import lives in
``formguard.storage.migration``.
"""

from formguard.storage.models import ComplianceRuleRecord, generate_uuid, utc_now
from formguard.storage.repositories import ComplianceRuleRepository

__all__ = [
    # Models
    "ComplianceRuleRecord",
    "generate_uuid",
    "utc_now",
    # Repositories
    "ComplianceRuleRepository",
]
