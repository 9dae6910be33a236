"""Adapters for external providers and collaborators."""
