"""Immutable (form_type, field) index over loaded compliance rules."""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from typing import Tuple

from .schema import ComplianceRule, GENERAL_BUCKET

IndexKey = Tuple[str, str]


class RuleIndex:
    """Maps ``(form_type, field_name or "general")`` to rules in load order.

    Instances are never mutated after construction. Loading builds a new
    index and the engine swaps it in whole.
    """

    __slots__ = ("_buckets", "_size")

    def __init__(self, buckets: dict[IndexKey, tuple[ComplianceRule, ...]] | None = None):
        self._buckets: dict[IndexKey, tuple[ComplianceRule, ...]] = dict(buckets or {})
        self._size = sum(len(rules) for rules in self._buckets.values())

    @classmethod
    def build(
        cls,
        rules: Iterable[ComplianceRule],
        base: RuleIndex | None = None,
    ) -> RuleIndex:
        """Build an index from rules, appending onto ``base``'s buckets.

        Args:
            rules: Rules in fetch order
            base: Existing index whose buckets are extended, not replaced

        Returns:
            A new RuleIndex
        """
        staging: dict[IndexKey, list[ComplianceRule]] = {}
        if base is not None:
            for key, bucket in base._buckets.items():
                staging[key] = list(bucket)

        for rule in rules:
            staging.setdefault((rule.form_type, rule.bucket), []).append(rule)

        return cls({key: tuple(bucket) for key, bucket in staging.items()})

    def lookup(self, form_type: str, field_name: str) -> list[ComplianceRule]:
        """Get candidate rules for a field: form-wide rules first, then field rules."""
        general = self._buckets.get((form_type, GENERAL_BUCKET), ())
        specific = self._buckets.get((form_type, field_name), ())
        return [*general, *specific]

    def bucket(self, form_type: str, field_name: str | None) -> tuple[ComplianceRule, ...]:
        """Get one bucket as stored."""
        return self._buckets.get((form_type, field_name or GENERAL_BUCKET), ())

    def form_types(self) -> list[str]:
        """Get the form types that have at least one rule."""
        return sorted({form_type for form_type, _ in self._buckets})

    def keys(self) -> list[IndexKey]:
        return list(self._buckets)

    def __iter__(self) -> Iterator[ComplianceRule]:
        for bucket in self._buckets.values():
            yield from bucket

    def __len__(self) -> int:
        return self._size

    def __contains__(self, key: object) -> bool:
        return key in self._buckets

    def __repr__(self) -> str:
        return f"RuleIndex(buckets={len(self._buckets)}, rules={self._size})"
