"""Atomic engine components (pure functional cores)."""
