"""Command line interface for tablesync."""
