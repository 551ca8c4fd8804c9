"""Utility helpers for configuration and logging."""
