"""Database access layer."""

from .collections import CollectionRegistry, nutrition_namespace
from .mongo import MongoDB

__all__ = ["CollectionRegistry", "MongoDB", "nutrition_namespace"]
