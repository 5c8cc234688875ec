"""Repository classes for database access."""

from .base import BaseRepository
from .nutrition import NutritionRepository

__all__ = ["BaseRepository", "NutritionRepository"]
