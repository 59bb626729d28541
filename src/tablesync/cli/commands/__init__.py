"""CLI command groups for tablesync."""
