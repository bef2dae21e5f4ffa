"""Read-only inspection of the host."""
