"""Persistence: the append-only governance event log."""
