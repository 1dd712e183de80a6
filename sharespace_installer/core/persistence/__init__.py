"""Persistence — install state and audit ledger."""
