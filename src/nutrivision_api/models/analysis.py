"""Models for the image analysis protocol (WebSocket, SSE and sync variants)."""

from enum import Enum
from typing import Any

from pydantic import Field

from .nutrition import CamelModel, ImageInfo, NutritionDraft


class AnalysisEvent(str, Enum):
    """Event names exchanged on a streaming connection."""

    # Client -> server
    ANALYZE_IMAGE = "analyze-image"
    # Server -> client
    WELCOME = "welcome"
    ANALYSIS_START = "analysis-start"
    ANALYSIS_PROGRESS = "analysis-progress"
    ANALYSIS_COMPLETE = "analysis-complete"
    ANALYSIS_ERROR = "analysis-error"
    ERROR = "error"
    # Both directions
    HEARTBEAT = "heartbeat"


TERMINAL_EVENTS = frozenset({AnalysisEvent.ANALYSIS_COMPLETE, AnalysisEvent.ANALYSIS_ERROR})


class AnalyzeImageRequest(ImageInfo):
    """Payload of an `analyze-image` request."""


class AnalysisStart(CamelModel):
    image_id: str | None = None
    message: str = "Analysis has started"


class AnalysisProgress(CamelModel):
    progress: int = Field(..., ge=0, le=100)
    message: str


class AnalysisFailure(CamelModel):
    """Payload of `analysis-error` and `error` events."""

    message: str
    details: Any = None


class StreamFrame(CamelModel):
    """One JSON frame on the WebSocket: `{"event": ..., "data": {...}}`."""

    event: str
    data: dict[str, Any] = Field(default_factory=dict)


class AnalysisResult(CamelModel):
    """Response of the non-streaming analyze endpoint."""

    data: NutritionDraft
    degraded: bool = Field(
        False, description="True when the model output could not be fully normalized"
    )
    elapsed_seconds: float = 0


class GenerateRequest(CamelModel):
    """Free-form prompt against the vision model."""

    image_url: str = Field(..., min_length=1, description="Image URL is required")
    prompt: str = ""
    model: str | None = None


class GenerateResponse(CamelModel):
    content: Any
