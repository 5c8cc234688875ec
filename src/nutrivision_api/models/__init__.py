"""Pydantic models for API schemas."""

from .analysis import (
    AnalysisEvent,
    AnalysisFailure,
    AnalysisProgress,
    AnalysisResult,
    AnalysisStart,
    AnalyzeImageRequest,
    GenerateRequest,
    GenerateResponse,
    StreamFrame,
    TERMINAL_EVENTS,
)
from .nutrition import (
    CamelModel,
    ImageInfo,
    NutritionCreate,
    NutritionDraft,
    NutritionListResponse,
    NutritionRecord,
    NutritionUpdate,
)

__all__ = [
    # Analysis protocol
    "AnalysisEvent",
    "AnalysisFailure",
    "AnalysisProgress",
    "AnalysisResult",
    "AnalysisStart",
    "AnalyzeImageRequest",
    "GenerateRequest",
    "GenerateResponse",
    "StreamFrame",
    "TERMINAL_EVENTS",
    # Nutrition records
    "CamelModel",
    "ImageInfo",
    "NutritionCreate",
    "NutritionDraft",
    "NutritionListResponse",
    "NutritionRecord",
    "NutritionUpdate",
]
