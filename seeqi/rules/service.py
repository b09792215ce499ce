"""Process-wide default engine used by report generation.

The default engine is built from settings on first use. Tests and
multi-tenant callers should construct their own ``RuleEngine`` instead.
"""

from __future__ import annotations

import logging
import threading
from typing import Any

from seeqi.core.config import get_settings

from .engine import RuleEngine
from .schemas import RuleExecutionResult

logger = logging.getLogger(__name__)

_default_engine: RuleEngine | None = None
_engine_lock = threading.Lock()


def get_engine() -> RuleEngine:
    """Get or create the default engine.

    Returns:
        The process-wide RuleEngine, configured from settings.
    """
    global _default_engine
    if _default_engine is None:
        with _engine_lock:
            if _default_engine is None:
                settings = get_settings()
                _default_engine = RuleEngine(
                    settings.resolved_rules_dir(),
                    default_constitution=settings.default_constitution,
                    auto_reload=settings.rules_auto_reload,
                )
    return _default_engine


def reset_engine() -> None:
    """Drop the default engine so the next call rebuilds it."""
    global _default_engine
    with _engine_lock:
        _default_engine = None


def execute_rules(observation: Any) -> RuleExecutionResult:
    """Evaluate an observation with the default engine."""
    return get_engine().execute(observation)


def reload_rules() -> None:
    """Re-read configuration and reload the default engine's rules.

    A changed ``RULES_DIR_PATH`` takes effect here. On failure the
    previous rules stay active and the RuleLoadError propagates.
    """
    get_settings.cache_clear()
    settings = get_settings()
    engine = get_engine()
    engine.reload(settings.resolved_rules_dir())
    engine.default_constitution = settings.default_constitution
    engine.auto_reload = settings.rules_auto_reload
    logger.info("Reloaded default rules from %s", engine.rules_dir)
