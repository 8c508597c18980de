"""Structural diffing of two parsed JSON payloads."""

from __future__ import annotations

from typing import Any

from .models import DifferenceRecord, DiffKind, Severity, JsonType
from .utils import (
    get_json_type,
    is_container,
    iter_items,
    lookup,
    build_path,
    format_path,
    format_value,
)


class StructuralDiffer:
    """
    Compares a baseline payload against a candidate payload key by key.

    Only keys present in the baseline are visited, so keys added in the
    candidate are never reported here (strict schema validation covers
    them). Arrays are walked by index like objects, which means a
    reordered array shows up as value or type mismatches.

    Handles:
    - Missing keys (always blocking)
    - JSON type changes (always blocking)
    - Scalar value changes (blocking only with strict_values)
    """

    def __init__(self, strict_values: bool = True):
        self.strict_values = strict_values

    def compare(self, old: Any, new: Any, path_prefix: str = "") -> list[DifferenceRecord]:
        """
        Compare two non-empty JSON values.

        Args:
            old: The baseline value
            new: The candidate value
            path_prefix: Path of ``old`` within the enclosing payload

        Returns:
            Flat list of differences, in baseline key order
        """
        diffs: list[DifferenceRecord] = []

        if not is_container(old) or not is_container(new):
            self._diff_leaf(old, new, format_path(path_prefix), diffs)
            return diffs

        if get_json_type(old) != get_json_type(new):
            self._diff_leaf(old, new, format_path(path_prefix), diffs)
            return diffs

        self._diff_children(old, new, path_prefix, diffs)
        return diffs

    def _diff_children(
        self,
        old: Any,
        new: Any,
        path: str,
        diffs: list[DifferenceRecord]
    ):
        for key, old_value in iter_items(old):
            child_path = build_path(path, key)
            present, new_value = lookup(new, key)

            if not present:
                diffs.append(DifferenceRecord(
                    path=child_path,
                    kind=DiffKind.MISSING_KEY,
                    message=f"Missing key in new data: {child_path}",
                ))
                continue

            old_type = get_json_type(old_value)
            new_type = get_json_type(new_value)

            if old_type != new_type:
                diffs.append(self._type_mismatch(child_path, old_type, new_type))
                continue

            if old_type in (JsonType.OBJECT, JsonType.ARRAY):
                self._diff_children(old_value, new_value, child_path, diffs)
            elif old_value != new_value:
                diffs.append(self._value_mismatch(child_path, old_value, new_value))

    def _diff_leaf(self, old: Any, new: Any, path: str, diffs: list[DifferenceRecord]):
        """Compare values that cannot be walked, such as scalar roots."""
        old_type = get_json_type(old)
        new_type = get_json_type(new)
        if old_type != new_type:
            diffs.append(self._type_mismatch(path, old_type, new_type))
        elif old != new:
            diffs.append(self._value_mismatch(path, old, new))

    def _type_mismatch(self, path: str, old_type: JsonType, new_type: JsonType) -> DifferenceRecord:
        return DifferenceRecord(
            path=path,
            kind=DiffKind.TYPE_MISMATCH,
            message=f"Type mismatch at {path}: expected {old_type.value}, got {new_type.value}",
        )

    def _value_mismatch(self, path: str, old: Any, new: Any) -> DifferenceRecord:
        if self.strict_values:
            severity = Severity.BLOCKING
        else:
            severity = Severity.INFORMATIONAL
        return DifferenceRecord(
            path=path,
            kind=DiffKind.VALUE_MISMATCH,
            message=f"Value mismatch at {path}: {format_value(old)} vs {format_value(new)}",
            severity=severity,
        )


def compare(old: Any, new: Any, strict_values: bool = True, path_prefix: str = "") -> list[DifferenceRecord]:
    """Convenience function to diff two payloads."""
    return StructuralDiffer(strict_values).compare(old, new, path_prefix)
