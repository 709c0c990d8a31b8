from video_studio.schemas.job import (
    DeleteJobResponse,
    ExtendRequest,
    JobCreate,
    JobListResponse,
    JobRead,
    JobResponse,
    RemixRequest,
)
from video_studio.schemas.provider import ProviderInfo, ProviderListResponse

__all__ = [
    "JobCreate",
    "JobRead",
    "JobResponse",
    "JobListResponse",
    "DeleteJobResponse",
    "RemixRequest",
    "ExtendRequest",
    "ProviderInfo",
    "ProviderListResponse",
]
