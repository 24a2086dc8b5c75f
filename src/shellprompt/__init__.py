"""Command timer and status prompt for interactive shells."""

__version__ = "0.1.0"
