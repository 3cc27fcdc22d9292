"""Shared helpers for validation and terminal output."""
