"""Observation types passed to the rule engine."""

from .observation import (
    Observation,
    PalmFeatures,
    PalmLines,
    TongueFeatures,
    DreamFeatures,
    SolarContext,
)

__all__ = [
    "Observation",
    "PalmFeatures",
    "PalmLines",
    "TongueFeatures",
    "DreamFeatures",
    "SolarContext",
]
