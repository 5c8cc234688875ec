"""
Image analysis workflow.

An `AnalysisSession` is one analyze request: it calls the vision model,
normalizes the answer, persists it for the user and reports every step as
an ordered stream of events. The session is an async generator so the same
state machine drives the WebSocket, Server-Sent Events and tests.

State machine:
    IDLE -> STARTED -> (progress)* -> COMPLETED | FAILED

Event order within one session:
    analysis-start, analysis-progress(10), analysis-progress(60),
    analysis-progress(90), analysis-complete
or, when the model call fails:
    analysis-start, analysis-progress(10), analysis-error

Progress values mark real pipeline stages: request sent, response
normalized, persistence attempted.
"""

import logging
from collections.abc import AsyncIterator
from dataclasses import dataclass
from enum import Enum
from typing import Any

from nutrivision_api.core.security import UserPayload
from nutrivision_api.db.collections import CollectionRegistry
from nutrivision_api.models.analysis import (
    AnalysisEvent,
    AnalysisFailure,
    AnalysisProgress,
    AnalysisStart,
    AnalyzeImageRequest,
    TERMINAL_EVENTS,
)
from nutrivision_api.models.nutrition import NutritionDraft
from nutrivision_api.services.normalizer import NormalizationResult, normalize
from nutrivision_api.services.vlm.client import OpenRouterClient, VLMError

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    IDLE = "idle"
    STARTED = "started"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(frozen=True)
class SessionEvent:
    """One outbound event: name plus JSON-ready payload."""

    event: AnalysisEvent
    data: dict[str, Any]

    @property
    def is_terminal(self) -> bool:
        return self.event in TERMINAL_EVENTS


def _progress(progress: int, message: str) -> SessionEvent:
    return SessionEvent(
        AnalysisEvent.ANALYSIS_PROGRESS,
        AnalysisProgress(progress=progress, message=message).to_wire(),
    )


def _failure(event: AnalysisEvent, message: str, details: Any = None) -> SessionEvent:
    return SessionEvent(event, AnalysisFailure(message=message, details=details).to_wire())


class AnalysisSession:
    """
    One analyze request on one connection.

    Not reusable: `events()` may be iterated once. After it finishes,
    `state` is COMPLETED or FAILED and `result` holds the emitted draft
    (COMPLETED) or `error` the failure message (FAILED).
    """

    def __init__(
        self,
        request: AnalyzeImageRequest,
        user: UserPayload | None,
        *,
        vlm_client: OpenRouterClient,
        collections: CollectionRegistry,
    ):
        self.request = request
        self.user = user
        self._vlm_client = vlm_client
        self._collections = collections
        self.state = SessionState.IDLE
        self.result: NutritionDraft | None = None
        self.error: str | None = None
        self._consumed = False

    async def events(self) -> AsyncIterator[SessionEvent]:
        """
        Run the session, yielding events as each stage is reached.

        Exactly one terminal event (analysis-complete or analysis-error) is
        yielded for an authorized request. An unauthorized one yields a
        single `error` event and touches neither the model nor storage.
        """
        if self._consumed:
            raise RuntimeError("AnalysisSession.events() can only be consumed once")
        self._consumed = True

        if self.user is None or not self.user.uuid:
            logger.warning("Analysis requested without an authenticated user")
            yield _failure(AnalysisEvent.ERROR, "Unauthorized")
            return

        user_id = self.user.uuid
        image_id = self.request.image_id
        logger.info(f"Image analysis requested by user {user_id} for image: {image_id}")

        self.state = SessionState.STARTED
        yield SessionEvent(
            AnalysisEvent.ANALYSIS_START,
            AnalysisStart(image_id=image_id).to_wire(),
        )
        yield _progress(10, "Sending image to the vision model...")

        try:
            response = await self._vlm_client.extract_nutrition_info(self.request.image_url)
        except VLMError as e:
            logger.error(f"Analysis error for {image_id}: {e.error}")
            self.state = SessionState.FAILED
            self.error = e.error
            yield _failure(
                AnalysisEvent.ANALYSIS_ERROR,
                e.error or "Error analyzing image",
                e.details,
            )
            return
        except Exception as e:
            logger.exception(f"Unexpected analysis error for {image_id}")
            self.state = SessionState.FAILED
            self.error = str(e) or "Error processing your request"
            yield _failure(AnalysisEvent.ANALYSIS_ERROR, self.error)
            return

        normalized = normalize(response.parsed_content)
        if normalized.degraded:
            logger.warning(f"Model output for {image_id} could not be fully normalized")
        yield _progress(60, "Extracting nutrition data...")

        draft = normalized.draft
        yield _progress(90, "Saving results...")
        draft.id = await self._persist(draft, user_id)

        self.state = SessionState.COMPLETED
        self.result = draft
        logger.info(f"Analysis completed for user {user_id}, image: {image_id}")
        yield SessionEvent(AnalysisEvent.ANALYSIS_COMPLETE, draft.to_wire())

    async def _persist(self, draft: NutritionDraft, user_id: str) -> str | None:
        """Store the draft; storage is best-effort, so failures return None."""
        try:
            repo = self._collections.resolve(user_id)
            return await repo.create(draft, user_id=user_id, image=self.request)
        except Exception as e:
            logger.error(f"Failed to save nutrition data for user {user_id}: {e!r}")
            return None


class AnalysisService:
    """
    Entry point for analyses: opens streaming sessions and serves the
    non-streaming variant.
    """

    def __init__(self, vlm_client: OpenRouterClient, collections: CollectionRegistry):
        self.vlm_client = vlm_client
        self.collections = collections

    def open_session(
        self,
        request: AnalyzeImageRequest,
        user: UserPayload | None,
    ) -> AnalysisSession:
        """Create a session; nothing runs until its events are consumed."""
        return AnalysisSession(
            request,
            user,
            vlm_client=self.vlm_client,
            collections=self.collections,
        )

    async def analyze(self, image_url: str) -> tuple[NormalizationResult, float]:
        """
        Analyze an image and return the normalized draft without persisting it.

        Returns:
            (normalization result, gateway elapsed seconds)

        Raises:
            VLMError: If the model call fails
        """
        response = await self.vlm_client.extract_nutrition_info(image_url)
        return normalize(response.parsed_content), response.elapsed_seconds
