"""Condition evaluation over nested observation data.

Paths are dotted (``palm.lines.life``); integer segments index into
sequences (``dream.keywords.0`` or ``dream.keywords[0]``). A path that does
not resolve is a miss, not an error.
"""

from __future__ import annotations

import re
from collections.abc import Mapping, Sequence
from typing import Any

from .schemas import TraceStep

_SEGMENT_RE = re.compile(r"[^.\[\]]+")


class _Missing:
    """Sentinel type for unresolved paths."""

    _instance: _Missing | None = None

    def __new__(cls) -> _Missing:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING = _Missing()


def split_path(path: str) -> list[str]:
    """Split a dotted/bracketed path into segments."""
    return _SEGMENT_RE.findall(path)


def resolve_path(data: Any, path: str | list[str]) -> Any:
    """Resolve a path against nested mappings and sequences.

    Args:
        data: The structure to descend into.
        path: Dotted path, or pre-split segments. A string path that is
            itself a top-level key (e.g. ``"solar.name"``) resolves to that
            key before being split.

    Returns:
        The value at the path, or ``MISSING`` if any segment is absent.
    """
    if isinstance(path, str) and isinstance(data, Mapping) and path in data:
        return data[path]
    segments = split_path(path) if isinstance(path, str) else path
    if not segments:
        return MISSING
    return _descend(data, segments, 0)


def _descend(node: Any, segments: list[str], index: int) -> Any:
    if index == len(segments):
        return node

    segment = segments[index]
    if isinstance(node, Mapping):
        if segment not in node:
            return MISSING
        return _descend(node[segment], segments, index + 1)

    if _is_sequence(node) and segment.isdigit():
        position = int(segment)
        if position >= len(node):
            return MISSING
        return _descend(node[position], segments, index + 1)

    return MISSING


def _is_sequence(value: Any) -> bool:
    return isinstance(value, Sequence) and not isinstance(value, (str, bytes))


def values_equal(actual: Any, expected: Any) -> bool:
    """Compare two leaf values; booleans only equal booleans."""
    if actual is MISSING:
        return False
    if isinstance(actual, bool) or isinstance(expected, bool):
        return isinstance(actual, bool) and isinstance(expected, bool) and actual == expected
    return actual == expected


def match_value(actual: Any, expected: Any) -> bool:
    """Check a resolved value against an expected value.

    - list expected: a list actual must contain every expected item,
      otherwise actual must be one of the expected items.
    - mapping expected: actual must be a mapping satisfying every nested
      path/value pair.
    - anything else: equality.
    """
    if actual is MISSING:
        return False

    if isinstance(expected, list):
        if _is_sequence(actual):
            return all(any(values_equal(a, e) for a in actual) for e in expected)
        return any(values_equal(actual, e) for e in expected)

    if isinstance(expected, Mapping):
        if not isinstance(actual, Mapping):
            return False
        return all(
            match_value(resolve_path(actual, key), value)
            for key, value in expected.items()
        )

    return values_equal(actual, expected)


def evaluate_conditions(
    conditions: Mapping[str, Any],
    context: Mapping[str, Any],
    rule_id: str = "",
    trace: list[TraceStep] | None = None,
) -> bool:
    """Evaluate a rule's conditions (logical AND) against a context.

    An empty condition set always matches. When ``trace`` is given, every
    check made is appended to it; evaluation stops at the first failure.
    """
    for path, expected in conditions.items():
        actual = resolve_path(context, path)
        result = match_value(actual, expected)

        if trace is not None:
            trace.append(
                TraceStep(
                    rule_id=rule_id,
                    path=path,
                    expected=expected,
                    actual=None if actual is MISSING else actual,
                    result=result,
                )
            )

        if not result:
            return False

    return True
