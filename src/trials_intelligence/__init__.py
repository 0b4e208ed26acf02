"""Trials Intelligence: a stable tool surface over public trial and citation data."""

__version__ = "0.1.0"
