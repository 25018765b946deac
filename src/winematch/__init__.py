"""Taste profile and wine recommendation engine."""

__version__ = "0.1.0"
