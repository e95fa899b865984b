"""Background execution for listing alert cycles."""

from .service import BackgroundRunner

__all__ = ["BackgroundRunner"]
