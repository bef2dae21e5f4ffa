"""Persistence — state file and audit ledger."""
