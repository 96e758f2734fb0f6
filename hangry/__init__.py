"""Hangry: nearby restaurant discovery, enrichment cache and recommendations."""

__version__ = "1.0.0"
