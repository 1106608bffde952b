"""Inkwell: journal analytics and semantic retrieval engine."""

__version__ = "0.1.0"
