"""Pydantic models for rule definitions and evaluation results.

A rule file record looks like::

    {"id": "tongue_pale", "priority": 80,
     "conditions": {"tongue.color": "pale"},
     "effects": {"constitution": "阳虚", "advice": {"diet": ["羊肉汤"]}}}

``when``/``then`` are accepted in place of ``conditions``/``effects``.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    StrictInt,
    field_validator,
)


# =============================================================================
# Rule Definitions
# =============================================================================


class MergeStrategy(str, Enum):
    """How a matching rule's effects are folded into the result."""

    APPEND = "append"
    REPLACE = "replace"
    SKIP = "skip"


AdviceItem = str | dict[str, Any]


class RuleEffects(BaseModel):
    """Patch applied to the result when a rule matches.

    Keys other than the declared ones (e.g. ``mindset_tags``) are kept and
    merged into the result as extra fields.
    """

    model_config = ConfigDict(extra="allow", frozen=True)

    constitution: str | None = Field(None, description="Primary classification label")
    advice: dict[str, list[AdviceItem]] | None = Field(
        None, description="Advice items by category (diet, lifestyle, ...)"
    )
    quote: str | None = None
    solar_term: str | None = None
    dream: dict[str, Any] | None = None

    @field_validator("advice", mode="before")
    @classmethod
    def _coerce_advice(cls, value: Any) -> Any:
        if not isinstance(value, dict):
            return value
        coerced = {}
        for category, items in value.items():
            if isinstance(items, str):
                items = [items]
            coerced[category] = items
        return coerced

    def as_patch(self) -> dict[str, Any]:
        """Return the effects as a plain dict, omitting unset fields."""
        return self.model_dump(exclude_none=True)


class Rule(BaseModel):
    """A declarative condition -> effect record."""

    model_config = ConfigDict(extra="forbid", frozen=True, populate_by_name=True)

    id: str = Field(..., min_length=1, description="Unique rule identifier")
    priority: StrictInt = Field(..., description="Higher values are evaluated first")
    conditions: dict[str, Any] = Field(
        default_factory=dict,
        validation_alias=AliasChoices("conditions", "when"),
        description="Dotted path -> expected value; empty means always match",
    )
    effects: RuleEffects = Field(
        ...,
        validation_alias=AliasChoices("effects", "then"),
    )
    merge: MergeStrategy = MergeStrategy.APPEND
    description: str | None = None

    # Provenance, filled in by the loader
    source_file: str | None = None
    source_location: str | None = None

    @field_validator("conditions", mode="before")
    @classmethod
    def _none_means_unconditional(cls, value: Any) -> Any:
        return {} if value is None else value

    @field_validator("conditions")
    @classmethod
    def _paths_not_blank(cls, value: dict[str, Any]) -> dict[str, Any]:
        for path in value:
            if not path.strip():
                raise ValueError("condition path must not be blank")
        return value

    @property
    def is_fallback(self) -> bool:
        """True for unconditioned rules, which always match."""
        return not self.conditions


# =============================================================================
# Evaluation Results
# =============================================================================


class TraceStep(BaseModel):
    """A single condition check made while evaluating a rule."""

    rule_id: str
    path: str
    expected: Any = None
    actual: Any = None
    result: bool


class RuleResult(BaseModel):
    """Merged outcome of all matching rules."""

    model_config = ConfigDict(extra="allow")

    constitution: str
    advice: dict[str, list[AdviceItem]] = Field(default_factory=dict)
    quote: str | None = None
    solar_term: str | None = None
    dream: dict[str, Any] | None = None


class RuleExecutionResult(BaseModel):
    """Result of one engine evaluation."""

    model_config = ConfigDict(populate_by_name=True)

    result: RuleResult
    matched_rules: list[str] = Field(
        default_factory=list,
        serialization_alias="matchedRules",
        validation_alias=AliasChoices("matched_rules", "matchedRules"),
    )
    trace: list[TraceStep] = Field(default_factory=list)


class ContextExport(BaseModel):
    """Observation together with what the engine derived from it."""

    context: dict[str, Any]
    result: RuleResult
    matched_rules: list[str] = Field(default_factory=list)
