"""Direct prompt access to the vision model."""

import logging

from fastapi import APIRouter

from nutrivision_api.api.dependencies import CurrentUserDep, VLMServiceDep
from nutrivision_api.core.exceptions import UpstreamError
from nutrivision_api.models.analysis import GenerateRequest, GenerateResponse
from nutrivision_api.services.vlm import VLMError

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/generate", response_model=GenerateResponse)
async def generate(
    request: GenerateRequest,
    user: CurrentUserDep,
    service: VLMServiceDep,
):
    """
    Send a prompt with an image to the model and return its parsed answer.

    - **imageUrl**: Image to attach (required)
    - **prompt**: Instruction; when empty, runs the nutrition extraction prompt
    - **model**: Optional model id override
    """
    logger.info(f"Processing image URL for user {user.uuid}: {request.image_url}")
    try:
        content = await service.call(request.prompt, request.image_url, request.model)
    except VLMError as e:
        logger.error(f"LLM service error: {e.error}")
        raise UpstreamError(e.error, details=e.details) from e

    return GenerateResponse(content=content)
