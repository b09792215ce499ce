"""SeeQi wellness analysis - constitution and advice rule engine."""

__version__ = "0.1.0"
