"""Exceptions raised by the rule engine."""

from __future__ import annotations

from pathlib import Path


class RuleEngineError(Exception):
    """Base class for rule engine errors."""

    pass


class RuleLoadError(RuleEngineError):
    """Raised when a rule directory or rule file cannot be loaded.

    Attributes:
        path: The offending file or directory, if known.
        location: Position inside the file (e.g. ``"line 3"``), if known.
    """

    def __init__(
        self,
        message: str,
        path: str | Path | None = None,
        location: str | None = None,
    ):
        self.path = Path(path) if path is not None else None
        self.location = location
        self.reason = message
        super().__init__(self._format(message))

    def _format(self, message: str) -> str:
        if self.path is None:
            return message
        where = self.path.name
        if self.location:
            where = f"{where} ({self.location})"
        return f"{where}: {message}"


class RuleEvaluationError(RuleEngineError):
    """Raised when an observation cannot be evaluated."""

    pass
