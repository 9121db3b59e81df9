"""Shared utilities: logging, timing and persistence."""
