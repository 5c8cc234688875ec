"""API routes."""

from . import analysis, llm, nutrition, stream

__all__ = ["analysis", "llm", "nutrition", "stream"]
