"""Persistence helpers for tablesync."""
