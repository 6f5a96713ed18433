"""Instrumentation statistics, field visitors, input helpers and configuration for an async task console."""

__version__ = "0.1.0"
__all__ = ["cli", "config", "histogram", "input", "intern", "retention", "stats", "visitors"]