"""Unified access to public transport backends."""

__version__ = "0.1.0"
