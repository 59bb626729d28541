"""tablesync - server-side table state with incremental view deltas."""

try:
    from importlib.metadata import version
    __version__ = version("tablesync")
except Exception:
    # Package metadata is not available when running from a source tree
    __version__ = "0.1.0"

__all__ = ["__version__"]
