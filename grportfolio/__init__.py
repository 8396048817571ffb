"""Lobbying client portfolio analytics: ingest, score, optimize."""

__version__ = "0.1.0"
