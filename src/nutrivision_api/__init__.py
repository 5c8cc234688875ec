"""Nutrition analysis API for food label images."""

__version__ = "1.0.0"
