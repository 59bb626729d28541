"""Row and table rendering collaborators."""

from tablesync.rendering.renderer import RenderContext, RowRenderer, DefaultRowRenderer

__all__ = ["RenderContext", "RowRenderer", "DefaultRowRenderer"]
