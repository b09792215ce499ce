"""Forward-chaining constitution/advice engine."""

from __future__ import annotations

import logging
import threading
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from pydantic import BaseModel

from .conditions import evaluate_conditions
from .errors import RuleEvaluationError, RuleLoadError
from .loader import RuleLoader, RuleSet
from .merge import apply_effects, has_value
from .schemas import ContextExport, RuleExecutionResult, RuleResult, TraceStep

logger = logging.getLogger(__name__)

DEFAULT_CONSTITUTION = "平和"


class RuleEngine:
    """Evaluates observations against a rule directory.

    The engine owns an immutable ``RuleSet`` snapshot. ``execute`` reads the
    snapshot reference once, so concurrent ``reload`` calls never expose a
    half-updated rule set; reloads are serialized and swap the reference.
    """

    def __init__(
        self,
        rules_dir: str | Path,
        default_constitution: str = DEFAULT_CONSTITUTION,
        auto_reload: bool = False,
        loader: RuleLoader | None = None,
    ):
        self.rules_dir = Path(rules_dir)
        self.default_constitution = default_constitution
        self.auto_reload = auto_reload
        self.loader = loader or RuleLoader(self.rules_dir)
        self.last_error: RuleLoadError | None = None
        self._snapshot: RuleSet | None = None
        self._lock = threading.Lock()

    # -------------------------------------------------------------------------
    # Rule set lifecycle
    # -------------------------------------------------------------------------

    @property
    def snapshot(self) -> RuleSet:
        """The active rule set, loading it on first access."""
        snapshot = self._snapshot
        if snapshot is not None:
            return snapshot
        with self._lock:
            if self._snapshot is None:
                self._swap(self.rules_dir)
            return self._snapshot

    @property
    def is_loaded(self) -> bool:
        return self._snapshot is not None

    def reload(self, rules_dir: str | Path | None = None) -> RuleSet:
        """Re-read the rule directory and atomically replace the active set.

        Args:
            rules_dir: Optional new directory; it becomes the engine's
                directory only if loading from it succeeds.

        Returns:
            The newly active RuleSet.

        Raises:
            RuleLoadError: If loading fails. The previous rule set stays
                active.
        """
        with self._lock:
            return self._swap(Path(rules_dir) if rules_dir else self.rules_dir)

    def refresh(self) -> bool:
        """Reload only if rule files changed on disk since the last load.

        The fingerprint is computed without holding ``_lock``; only the
        swap is serialized.

        Returns:
            True if a reload happened.
        """
        current = self._snapshot
        if current is None:
            with self._lock:
                if self._snapshot is None:
                    self._swap(self.rules_dir)
                    return True
            return False
        if self.loader.fingerprint(current.rules_dir) == current.fingerprint:
            return False

        with self._lock:
            if self._snapshot is not current:
                # Another reload landed while we were checking.
                return False
            logger.info("Rule files changed in %s, reloading", current.rules_dir)
            self._swap(current.rules_dir)
            return True

    def _swap(self, rules_dir: Path) -> RuleSet:
        """Load and install a new snapshot. Caller holds ``_lock``."""
        try:
            snapshot = self.loader.load(rules_dir)
        except RuleLoadError as e:
            self.last_error = e
            logger.exception("Failed to load rules from %s", rules_dir)
            raise

        self._snapshot = snapshot
        self.rules_dir = rules_dir
        self.last_error = None
        logger.info("Activated %d rules from %s", len(snapshot), rules_dir)
        return snapshot

    def _current(self) -> RuleSet:
        if self.auto_reload:
            try:
                self.refresh()
            except RuleLoadError:
                if self._snapshot is None:
                    raise
                logger.warning("Keeping previous rules after failed refresh")
        return self.snapshot

    # -------------------------------------------------------------------------
    # Evaluation
    # -------------------------------------------------------------------------

    def execute(self, observation: Any, trace: bool = False) -> RuleExecutionResult:
        """Evaluate an observation against every rule.

        Rules are tried in priority order. Each matching rule's effects are
        merged into the result and into the evaluation context, so later
        rules can match on derived fields such as ``constitution``.

        Args:
            observation: Mapping (or pydantic model) of per-module features.
            trace: Record every condition check in the result.

        Returns:
            RuleExecutionResult with the merged result and matched rule IDs
            in evaluation order.

        Raises:
            RuleEvaluationError: If the observation is not a mapping.
            RuleLoadError: If no rule set could be loaded.
        """
        context = self._as_context(observation)
        snapshot = self._current()

        derived: dict[str, Any] = {}
        matched: list[str] = []
        steps: list[TraceStep] | None = [] if trace else None

        for rule in snapshot.rules:
            if not evaluate_conditions(rule.conditions, context, rule.id, steps):
                continue

            matched.append(rule.id)
            patch = rule.effects.as_patch()
            apply_effects(derived, patch, rule.merge)
            apply_effects(context, patch, rule.merge)

        logger.debug("Matched %d/%d rules: %s", len(matched), len(snapshot), matched)

        return RuleExecutionResult(
            result=self._shape_result(derived),
            matched_rules=matched,
            trace=steps or [],
        )

    def export_context(self, observation: Any) -> ContextExport:
        """Return the observation alongside the engine's conclusions."""
        context = self._as_context(observation)
        outcome = self.execute(context)
        return ContextExport(
            context=context,
            result=outcome.result,
            matched_rules=outcome.matched_rules,
        )

    def _as_context(self, observation: Any) -> dict[str, Any]:
        if isinstance(observation, BaseModel):
            to_context = getattr(observation, "to_context", None)
            if callable(to_context):
                observation = to_context()
            else:
                observation = observation.model_dump(exclude_none=True)

        if not isinstance(observation, Mapping):
            raise RuleEvaluationError(
                f"observation must be a mapping, got {type(observation).__name__}"
            )
        for key in observation:
            if not isinstance(key, str):
                raise RuleEvaluationError(f"observation keys must be strings, got {key!r}")

        return dict(observation)

    def _shape_result(self, derived: dict[str, Any]) -> RuleResult:
        constitution = derived.pop("constitution", None)
        if not has_value(constitution) or not isinstance(constitution, str):
            constitution = self.default_constitution
        advice = derived.pop("advice", None) or {}
        return RuleResult(constitution=constitution, advice=advice, **derived)
