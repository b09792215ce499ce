"""Pytest fixtures for test suite."""

import json
from pathlib import Path
from typing import Any, Callable

import pytest

from seeqi.core.config import DEFAULT_RULES_DIR, get_settings
from seeqi.rules import RuleEngine, RuleLoader, reset_engine


# =============================================================================
# Core Fixtures
# =============================================================================


@pytest.fixture
def fixture_rules_dir() -> Path:
    """Path to the fixture rules directory."""
    return Path(__file__).parent / "fixtures" / "rules"


@pytest.fixture
def bundled_rules_dir() -> Path:
    """Path to the rules shipped with the package."""
    return DEFAULT_RULES_DIR


@pytest.fixture
def rule_loader(fixture_rules_dir: Path) -> RuleLoader:
    """Rule loader pointed at the fixture rules."""
    return RuleLoader(fixture_rules_dir)


@pytest.fixture
def engine(fixture_rules_dir: Path) -> RuleEngine:
    """Independent engine with the fixture rules loaded."""
    engine = RuleEngine(fixture_rules_dir)
    engine.reload()
    return engine


# =============================================================================
# Ad-hoc Rule Directories
# =============================================================================


@pytest.fixture
def write_rules(tmp_path: Path) -> Callable[..., Path]:
    """Write rule records as JSONL into ``tmp_path`` and return the directory.

    Usage:
        rules_dir = write_rules([{...}, {...}], filename="a.jsonl")
    """

    def _write(records: list[dict[str, Any]], filename: str = "rules.jsonl") -> Path:
        lines = [json.dumps(record, ensure_ascii=False) for record in records]
        (tmp_path / filename).write_text("\n".join(lines) + "\n", encoding="utf-8")
        return tmp_path

    return _write


def _make_rule(
    rule_id: str,
    priority: int = 0,
    conditions: dict[str, Any] | None = None,
    constitution: str | None = None,
    advice: dict[str, list[Any]] | None = None,
    **extra: Any,
) -> dict[str, Any]:
    """Build a raw rule record."""
    effects: dict[str, Any] = {}
    if constitution is not None:
        effects["constitution"] = constitution
    if advice is not None:
        effects["advice"] = advice
    record: dict[str, Any] = {"id": rule_id, "priority": priority, "effects": effects}
    if conditions is not None:
        record["conditions"] = conditions
    record.update(extra)
    return record


@pytest.fixture
def make_rule() -> Callable[..., dict[str, Any]]:
    """Factory for raw rule records."""
    return _make_rule


# =============================================================================
# Default Engine Isolation
# =============================================================================


@pytest.fixture(autouse=True)
def isolated_default_engine():
    """Reset the process-wide engine and settings around every test."""
    reset_engine()
    get_settings.cache_clear()
    yield
    reset_engine()
    get_settings.cache_clear()
