"""Image analysis routes (non-streaming and Server-Sent Events)."""

import json
import logging

from fastapi import APIRouter
from sse_starlette.sse import EventSourceResponse

from nutrivision_api.api.dependencies import AnalysisServiceDep, CurrentUserDep
from nutrivision_api.core.exceptions import UpstreamError
from nutrivision_api.models.analysis import AnalysisResult, AnalyzeImageRequest
from nutrivision_api.services.vlm import VLMError

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("", response_model=AnalysisResult)
async def analyze_image(
    request: AnalyzeImageRequest,
    user: CurrentUserDep,
    service: AnalysisServiceDep,
):
    """
    Analyze a food label image and return the normalized record.

    Batch-friendly variant of the streaming protocol: same model call and
    normalization, no progress events, and nothing is persisted.
    """
    logger.info(f"Sync analysis requested by user {user.uuid} for {request.image_url}")
    try:
        result, elapsed = await service.analyze(request.image_url)
    except VLMError as e:
        raise UpstreamError(e.error, details=e.details) from e

    return AnalysisResult(data=result.draft, degraded=result.degraded, elapsed_seconds=elapsed)


@router.post("/stream", response_model=None)
async def analyze_image_stream(
    request: AnalyzeImageRequest,
    user: CurrentUserDep,
    service: AnalysisServiceDep,
):
    """
    Analyze an image and stream progress as Server-Sent Events.

    Emits the same events as the WebSocket protocol (`analysis-start`,
    `analysis-progress`, then `analysis-complete` or `analysis-error`) and
    persists the result for the caller.
    """
    session = service.open_session(request, user)

    async def generate():
        """Relay session events as SSE messages."""
        async for event in session.events():
            yield {
                "event": event.event.value,
                "data": json.dumps(event.data),
            }

    return EventSourceResponse(generate())
