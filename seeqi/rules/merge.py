"""Folding of rule effects into an accumulated result."""

from __future__ import annotations

import copy
import json
import unicodedata
from collections.abc import Mapping
from typing import Any, Hashable

from .schemas import MergeStrategy


def normalize_item(item: Any) -> Hashable:
    """Return the comparison key used to deduplicate list items.

    Strings compare trimmed, without trailing punctuation and case-folded, so
    ``"晨练"``, ``"晨练。"`` and ``" 晨练! "`` are the same item.
    """
    if isinstance(item, str):
        text = item.strip()
        while text and (unicodedata.category(text[-1]).startswith("P") or text[-1].isspace()):
            text = text[:-1]
        return ("text", text.casefold())
    return ("json", json.dumps(item, sort_keys=True, ensure_ascii=False, default=str))


def has_value(value: Any) -> bool:
    """Whether a slot already holds something worth keeping."""
    if value is None:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    if isinstance(value, (list, tuple, Mapping)):
        return len(value) > 0
    return True


def append_unique(target: list[Any], items: list[Any]) -> list[Any]:
    """Append items not already present, preserving first-seen order."""
    merged = list(target)
    seen = {normalize_item(existing) for existing in merged}
    for item in items:
        key = normalize_item(item)
        if key in seen:
            continue
        seen.add(key)
        merged.append(copy.deepcopy(item))
    return merged


def _fresh(value: Any) -> Any:
    if isinstance(value, list):
        return append_unique([], value)
    if isinstance(value, Mapping):
        return {key: _fresh(item) for key, item in value.items()}
    return copy.deepcopy(value)


def merge_value(target: Any, source: Any, strategy: MergeStrategy = MergeStrategy.APPEND) -> Any:
    """Merge one effect value into the value accumulated so far.

    Args:
        target: Value accumulated from earlier (higher-priority) rules, or None.
        source: Value contributed by the current rule.
        strategy: The current rule's merge strategy.

    Returns:
        The new accumulated value. ``target`` is never mutated.
    """
    if strategy is MergeStrategy.SKIP and target is not None:
        return target

    if isinstance(target, list) and isinstance(source, list):
        if strategy is MergeStrategy.REPLACE and has_value(target):
            return target
        return append_unique(target, source)

    if isinstance(target, Mapping) and isinstance(source, Mapping):
        merged = dict(target)
        for key, value in source.items():
            existing = merged.get(key)
            if not has_value(existing):
                merged[key] = _fresh(value)
            elif strategy is MergeStrategy.REPLACE:
                continue
            else:
                merged[key] = merge_value(existing, value, strategy)
        return merged

    # Scalars and mismatched shapes: first value wins
    if has_value(target):
        return target
    return _fresh(source)


def apply_effects(
    accumulator: dict[str, Any],
    patch: Mapping[str, Any],
    strategy: MergeStrategy = MergeStrategy.APPEND,
) -> None:
    """Merge every key of an effects patch into ``accumulator`` in place."""
    for key, value in patch.items():
        accumulator[key] = merge_value(accumulator.get(key), value, strategy)
