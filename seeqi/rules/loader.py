"""Rule file loader and validator.

Rules live in a directory of ``*.jsonl`` files (one JSON object per line,
blank lines and ``#`` comments ignored) and/or ``*.yaml`` files (a list of
rule mappings). Files are read in name order and records in file order;
that declaration order breaks priority ties.
"""

from __future__ import annotations

import hashlib
import json
import logging
from collections.abc import Iterator
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from .errors import RuleLoadError
from .schemas import Rule

logger = logging.getLogger(__name__)

JSONL_SUFFIXES = (".jsonl",)
YAML_SUFFIXES = (".yaml", ".yml")
RULE_FILE_SUFFIXES = JSONL_SUFFIXES + YAML_SUFFIXES


@dataclass(frozen=True)
class FileFingerprint:
    """Change-detection stamp for one rule file."""

    mtime_ns: int
    digest: str


@dataclass(frozen=True)
class RuleSet:
    """Immutable snapshot of a loaded rule directory.

    ``rules`` are in evaluation order: priority descending, ties kept in
    declaration order.
    """

    rules: tuple[Rule, ...]
    rules_dir: Path
    fingerprint: dict[str, FileFingerprint] = field(default_factory=dict)
    loaded_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def __len__(self) -> int:
        return len(self.rules)

    def __iter__(self) -> Iterator[Rule]:
        return iter(self.rules)

    @property
    def ids(self) -> list[str]:
        return [rule.id for rule in self.rules]

    def get(self, rule_id: str) -> Rule | None:
        """Get a rule by ID."""
        for rule in self.rules:
            if rule.id == rule_id:
                return rule
        return None


def order_rules(rules: list[Rule]) -> tuple[Rule, ...]:
    """Sort by priority descending; ``sorted`` is stable, so ties keep declaration order."""
    return tuple(sorted(rules, key=lambda rule: -rule.priority))


class RuleLoader:
    """Loads and validates rules from a directory."""

    def __init__(self, rules_dir: str | Path | None = None):
        self.rules_dir = Path(rules_dir) if rules_dir else None

    def rule_files(self, rules_dir: str | Path | None = None) -> list[Path]:
        """List rule files in a directory, sorted by name.

        Raises:
            RuleLoadError: If the directory does not exist.
        """
        path = self._resolve_dir(rules_dir)
        if not path.is_dir():
            raise RuleLoadError(f"directory not found: {path}", path=path)

        return sorted(
            (p for p in path.iterdir() if p.is_file() and p.suffix in RULE_FILE_SUFFIXES),
            key=lambda p: p.name,
        )

    def load(self, rules_dir: str | Path | None = None) -> RuleSet:
        """Load every rule file in the directory into a RuleSet.

        The load is all-or-nothing: any malformed record or duplicate ID
        aborts it.

        Raises:
            RuleLoadError: On a missing directory, unreadable or malformed
                file, or duplicate rule ID.
        """
        path = self._resolve_dir(rules_dir)
        rules: list[Rule] = []
        seen: dict[str, Rule] = {}
        fingerprint: dict[str, FileFingerprint] = {}

        for rule_file in self.rule_files(path):
            raw = self._read_bytes(rule_file)
            for rule in self._parse(rule_file, self._decode(rule_file, raw)):
                if rule.id in seen:
                    raise RuleLoadError(
                        f"duplicate rule id: {rule.id}",
                        path=rule_file,
                        location=rule.source_location,
                    )
                seen[rule.id] = rule
                rules.append(rule)
            fingerprint[rule_file.name] = FileFingerprint(
                mtime_ns=rule_file.stat().st_mtime_ns,
                digest=hashlib.md5(raw).hexdigest(),
            )

        if not rules:
            logger.warning("No rules found in %s", path)
        else:
            logger.info("Loaded %d rules from %d files in %s", len(rules), len(fingerprint), path)

        return RuleSet(rules=order_rules(rules), rules_dir=path, fingerprint=fingerprint)

    def load_file(self, path: str | Path) -> list[Rule]:
        """Load rules from a single file, in declaration order."""
        path = Path(path)
        if not path.is_file():
            raise RuleLoadError("rule file not found", path=path)
        return self._parse(path, self._decode(path, self._read_bytes(path)))

    def fingerprint(self, rules_dir: str | Path | None = None) -> dict[str, FileFingerprint]:
        """Compute the current on-disk fingerprint of the rule directory."""
        stamps = {}
        for rule_file in self.rule_files(rules_dir):
            raw = self._read_bytes(rule_file)
            stamps[rule_file.name] = FileFingerprint(
                mtime_ns=rule_file.stat().st_mtime_ns,
                digest=hashlib.md5(raw).hexdigest(),
            )
        return stamps

    def _resolve_dir(self, rules_dir: str | Path | None) -> Path:
        path = Path(rules_dir) if rules_dir else self.rules_dir
        if not path:
            raise RuleLoadError("no rules directory specified")
        return path

    def _read_bytes(self, path: Path) -> bytes:
        try:
            return path.read_bytes()
        except OSError as e:
            raise RuleLoadError(f"cannot read file: {e}", path=path) from e

    def _decode(self, path: Path, raw: bytes) -> str:
        try:
            return raw.decode("utf-8-sig")
        except UnicodeDecodeError as e:
            raise RuleLoadError(f"file is not valid UTF-8: {e}", path=path) from e

    def _parse(self, path: Path, content: str) -> list[Rule]:
        if path.suffix in JSONL_SUFFIXES:
            return self._parse_jsonl(path, content)
        return self._parse_yaml(path, content)

    def _parse_jsonl(self, path: Path, content: str) -> list[Rule]:
        rules = []
        for lineno, raw_line in enumerate(content.split("\n"), start=1):
            line = raw_line.rstrip("\r").strip()
            if not line or line.startswith("#"):
                continue

            location = f"line {lineno}"
            try:
                data = json.loads(line)
            except json.JSONDecodeError as e:
                raise RuleLoadError(f"invalid JSON: {e.msg}", path=path, location=location) from e

            rules.append(self._parse_rule(data, path, location))
        return rules

    def _parse_yaml(self, path: Path, content: str) -> list[Rule]:
        try:
            data = yaml.safe_load(content)
        except yaml.YAMLError as e:
            location = None
            mark = getattr(e, "problem_mark", None)
            if mark is not None:
                location = f"line {mark.line + 1}"
            raise RuleLoadError(f"invalid YAML: {e}", path=path, location=location) from e

        if data is None:
            return []
        # Handle single rule or list of rules
        records = data if isinstance(data, list) else [data]
        return [
            self._parse_rule(item, path, f"record {index}")
            for index, item in enumerate(records, start=1)
        ]

    def _parse_rule(self, data: Any, path: Path, location: str) -> Rule:
        """Validate one raw record into a Rule."""
        if not isinstance(data, dict):
            raise RuleLoadError("rule record must be an object", path=path, location=location)

        try:
            return Rule.model_validate(
                {**data, "source_file": path.name, "source_location": location}
            )
        except ValidationError as e:
            raise RuleLoadError(
                f"invalid rule: {_summarize_validation_error(e)}",
                path=path,
                location=location,
            ) from e


def _summarize_validation_error(error: ValidationError) -> str:
    parts = []
    for item in error.errors():
        loc = ".".join(str(part) for part in item["loc"]) or "<record>"
        parts.append(f"{loc}: {item['msg']}")
    return "; ".join(parts)
