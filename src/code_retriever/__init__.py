"""Caching read-through proxy for verified contract source code."""

__version__ = "0.1.0"
