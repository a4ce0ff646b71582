"""Predictive analytics engine for short-form clip performance."""

__version__ = "1.0.0"
