"""
Repository modules for database operations.

Each repository provides CRUD operations for a specific domain entity.
"""

from formguard.storage.repositories.compliance_rule_repo import ComplianceRuleRepository

__all__ = [
    "ComplianceRuleRepository",
]
