from .markup_toolbar import MarkupToolbar

__all__ = ["MarkupToolbar"]
