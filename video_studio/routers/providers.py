from fastapi import APIRouter

from video_studio.providers.registry import get_registry
from video_studio.schemas.provider import ProviderListResponse

router = APIRouter(prefix="/api/providers", tags=["providers"])


@router.get("", response_model=ProviderListResponse)
def list_providers() -> ProviderListResponse:
    metadata = get_registry().all_metadata()
    return ProviderListResponse.model_validate({"data": [item.to_dict() for item in metadata]})
