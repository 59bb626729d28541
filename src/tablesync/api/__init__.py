"""HTTP transport for tablesync."""
