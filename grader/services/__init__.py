"""Grading, runtime and sandbox services."""
