from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

ProviderName = Literal["sora", "veo"]
JobStatusName = Literal["queued", "running", "succeeded", "failed", "canceled", "unknown"]
AssetKindName = Literal["video/mp4", "video", "unknown"]


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class AssetPayload(CamelModel):
    kind: AssetKindName
    uri: str
    bytes_base64: str | None = None


class JobCreate(CamelModel):
    provider: ProviderName
    prompt: str = Field(min_length=1)
    mode: str | None = None
    params: dict[str, Any] | None = None
    assets: list[AssetPayload] | None = None


class RemixRequest(CamelModel):
    prompt: str | None = None


class ExtendRequest(CamelModel):
    prompt: str | None = None
    source_asset_index: int | None = Field(default=None, ge=0)
    params: dict[str, Any] | None = None


class JobErrorRead(CamelModel):
    message: str
    raw: str | list[str] | None = None


class JobActions(CamelModel):
    can_download: bool
    can_delete: bool
    can_remix: bool
    can_extend: bool


class JobRead(CamelModel):
    id: str
    provider: ProviderName
    provider_job_id: str | None
    status: JobStatusName
    progress_pct: int | None
    created_at: datetime
    updated_at: datetime
    prompt: str
    params: dict[str, Any]
    outputs: list[AssetPayload]
    error: JobErrorRead | None
    actions: JobActions


class JobResponse(CamelModel):
    data: JobRead


class JobListMeta(CamelModel):
    total: int
    limit: int
    next_cursor: str | None


class JobListResponse(CamelModel):
    data: list[JobRead]
    meta: JobListMeta


class DeletedJob(CamelModel):
    id: str
    deleted: bool = True


class DeleteJobResponse(CamelModel):
    data: DeletedJob
