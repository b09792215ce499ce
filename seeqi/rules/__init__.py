"""Rules domain - rule loading, condition evaluation and the rule engine."""

from .errors import RuleEngineError, RuleLoadError, RuleEvaluationError
from .schemas import (
    MergeStrategy,
    RuleEffects,
    Rule,
    TraceStep,
    RuleResult,
    RuleExecutionResult,
    ContextExport,
)
from .conditions import MISSING, resolve_path, match_value, evaluate_conditions
from .merge import normalize_item, merge_value, apply_effects
from .loader import RuleLoader, RuleSet, FileFingerprint
from .engine import RuleEngine, DEFAULT_CONSTITUTION
from .service import get_engine, reset_engine, execute_rules, reload_rules

__all__ = [
    # Errors
    "RuleEngineError",
    "RuleLoadError",
    "RuleEvaluationError",
    # Models
    "MergeStrategy",
    "RuleEffects",
    "Rule",
    "TraceStep",
    "RuleResult",
    "RuleExecutionResult",
    "ContextExport",
    # Conditions
    "MISSING",
    "resolve_path",
    "match_value",
    "evaluate_conditions",
    # Merging
    "normalize_item",
    "merge_value",
    "apply_effects",
    # Loader
    "RuleLoader",
    "RuleSet",
    "FileFingerprint",
    # Engine
    "RuleEngine",
    "DEFAULT_CONSTITUTION",
    # Default instance
    "get_engine",
    "reset_engine",
    "execute_rules",
    "reload_rules",
]
