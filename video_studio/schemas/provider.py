from video_studio.schemas.job import CamelModel


class ProviderModeRead(CamelModel):
    id: str
    label: str
    description: str | None = None


class ProviderCapabilities(CamelModel):
    remix: bool
    extend: bool
    reference_image: bool


class ProviderInfo(CamelModel):
    id: str
    name: str
    modes: list[ProviderModeRead]
    capabilities: ProviderCapabilities


class ProviderListResponse(CamelModel):
    data: list[ProviderInfo]
