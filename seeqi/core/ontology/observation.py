"""Observation bundle passed to the rule engine."""

from typing import Any
from pydantic import BaseModel, ConfigDict, Field


class PalmLines(BaseModel):
    """Principal palm lines, described qualitatively (e.g. ``"deep"``)."""

    model_config = ConfigDict(extra="allow")

    life: str | None = None
    heart: str | None = None
    head: str | None = None
    fate: str | None = None


class PalmFeatures(BaseModel):
    """Features extracted from a palm photo."""

    model_config = ConfigDict(extra="allow")

    color: str | None = None
    texture: str | None = None
    lines: PalmLines | None = None


class TongueFeatures(BaseModel):
    """Features extracted from a tongue photo."""

    model_config = ConfigDict(extra="allow")

    color: str | None = None
    coating: str | None = None
    coating_color: str | None = None
    moisture: str | None = None
    teeth_marks: bool | None = None


class DreamFeatures(BaseModel):
    """Tags derived from a dream description."""

    model_config = ConfigDict(extra="allow")

    keywords: list[str] = Field(default_factory=list)
    emotion: str | None = None
    five_element: str | None = None
    tip: str | None = None


class SolarContext(BaseModel):
    """Solar-term calendar context for the observation date."""

    model_config = ConfigDict(extra="allow")

    code: str | None = None
    name: str | None = None
    element: str | None = None


class Observation(BaseModel):
    """Input bundle for constitution/advice inference.

    An observation groups per-module features under their module name.
    Modules without typed fields are kept as given, either at the top
    level or under ``extra``.

    Example:
        {
            "tongue": {"color": "red", "coating": "thin"},
            "palm": {"lines": {"life": "deep"}},
            "solar": {"name": "夏至"}
        }
    """

    model_config = ConfigDict(extra="allow")

    palm: PalmFeatures | None = None
    tongue: TongueFeatures | None = None
    dream: DreamFeatures | None = None
    solar: SolarContext | None = None
    locale: str | None = None

    # Flexible additional modules
    extra: dict[str, Any] = Field(default_factory=dict)

    def to_context(self) -> dict[str, Any]:
        """Convert to a nested dictionary for rule evaluation.

        Unset fields are omitted so that conditions on them miss instead of
        comparing against ``None``. Unknown top-level modules pass through.
        """
        result = self.model_dump(exclude_none=True, exclude={"extra"})
        result.update(self.extra)
        return result
