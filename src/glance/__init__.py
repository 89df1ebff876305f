"""Glance - recursive per-directory codebase summaries."""

__version__ = "0.1.0"
