"""API routers for tablesync."""
