"""Briefly - a streaming conversational co-pilot."""

__version__ = "0.1.0"
