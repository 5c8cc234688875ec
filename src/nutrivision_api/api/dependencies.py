"""FastAPI dependency injection factories."""

from typing import Annotated

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from nutrivision_api.core.config import Settings, get_settings
from nutrivision_api.core.security import UserPayload, decode_token
from nutrivision_api.db.collections import CollectionRegistry
from nutrivision_api.db.repositories.nutrition import NutritionRepository
from nutrivision_api.services.analysis import AnalysisService
from nutrivision_api.services.vlm import OpenRouterClient, VLMService

# Type aliases for cleaner route signatures
SettingsDep = Annotated[Settings, Depends(get_settings)]

# auto_error=False so a missing header goes through our 401 error shape
bearer_scheme = HTTPBearer(auto_error=False)


def get_current_user(
    settings: SettingsDep,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
) -> UserPayload:
    """
    Resolve the caller from the Authorization header.

    Raises:
        AuthenticationError: If the token is missing or invalid
    """
    token = credentials.credentials if credentials else None
    return decode_token(token, settings)


CurrentUserDep = Annotated[UserPayload, Depends(get_current_user)]


def get_collections(request: Request) -> CollectionRegistry:
    """Process-wide collection registry created by the lifespan."""
    return request.app.state.collections


def get_vlm_client(request: Request) -> OpenRouterClient:
    """Model gateway client created by the lifespan."""
    return request.app.state.vlm_client


CollectionsDep = Annotated[CollectionRegistry, Depends(get_collections)]
VLMClientDep = Annotated[OpenRouterClient, Depends(get_vlm_client)]


def get_nutrition_repository(
    user: CurrentUserDep,
    collections: CollectionsDep,
) -> NutritionRepository:
    """Repository over the caller's own nutrition collection."""
    return collections.resolve(user.uuid)


def get_analysis_service(
    vlm_client: VLMClientDep,
    collections: CollectionsDep,
) -> AnalysisService:
    return AnalysisService(vlm_client, collections)


def get_vlm_service(vlm_client: VLMClientDep) -> VLMService:
    return VLMService(vlm_client)


# Type aliases for service dependencies
NutritionRepoDep = Annotated[NutritionRepository, Depends(get_nutrition_repository)]
AnalysisServiceDep = Annotated[AnalysisService, Depends(get_analysis_service)]
VLMServiceDep = Annotated[VLMService, Depends(get_vlm_service)]
