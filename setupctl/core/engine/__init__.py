"""Execution engine — planning, rendering, running."""
