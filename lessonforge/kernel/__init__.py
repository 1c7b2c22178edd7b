"""Persistence and identity boundary."""
