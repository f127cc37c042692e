"""Call-site helpers for gating a form submission on compliance.

Validation must never block the surrounding feature by itself failing:
``check_submission`` degrades to "no validation performed" (``None``) on
unexpected errors. Blocking only happens when a completed validation
reports high-severity issues and the caller asks for it through
``ensure_compliant``.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from formguard.core.config import get_settings
from .engine import ComplianceEngine
from .errors import ComplianceViolation
from .schema import ValidationResult

logger = logging.getLogger("formguard.compliance.gate")


def check_submission(
    engine: ComplianceEngine | None,
    payload: Mapping[str, Any],
) -> ValidationResult | None:
    """Validate a submission payload if it carries a form type and form data.

    Args:
        engine: The engine to validate with; None means validation is unavailable
        payload: Mapping with ``form_type``, ``form_data`` and optional ``jurisdiction``

    Returns:
        The ValidationResult, or None when nothing was validated
    """
    form_type = payload.get("form_type")
    form_data = payload.get("form_data")
    if not form_type or form_data is None:
        return None

    if engine is None:
        logger.warning("Compliance engine unavailable; %s submission not validated", form_type)
        return None

    jurisdiction = payload.get("jurisdiction") or get_settings().default_jurisdiction
    try:
        return engine.validate_form(form_type, form_data, jurisdiction)
    except Exception:
        logger.exception("Compliance validation error for %s submission", form_type)
        return None


def ensure_compliant(result: ValidationResult | None) -> ValidationResult | None:
    """Raise when a completed validation found blocking issues.

    Raises:
        ComplianceViolation: ``result`` is non-compliant.
    """
    if result is not None and not result.is_compliant:
        raise ComplianceViolation(result)
    return result
