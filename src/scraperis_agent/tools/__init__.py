"""Caller-facing tool surface."""
