"""Contract shared by every provider adapter.

Adapters translate canonical job operations into one provider's native API.
`submit`, `refresh`, `content` and `delete` are mandatory. `remix` and `extend`
are optional: an adapter defines them only when its capability flags say so,
and callers check `supports()` before dispatching.
"""

from abc import ABC, abstractmethod
from typing import Literal

from video_studio.core.errors import AssetNotFoundError
from video_studio.providers.types import (
    ContentResult,
    ProviderJobContext,
    ProviderMetadata,
    RefreshResult,
    SubmitResult,
    VideoAsset,
)

OptionalOperation = Literal["remix", "extend"]


class ProviderAdapter(ABC):
    provider_id: str
    metadata: ProviderMetadata

    @abstractmethod
    def submit(self, job: ProviderJobContext) -> SubmitResult:
        """Send a new job to the provider. Called once per job."""

    @abstractmethod
    def refresh(self, job: ProviderJobContext) -> RefreshResult:
        """Poll the provider. Safe to call any number of times."""

    @abstractmethod
    def content(self, job: ProviderJobContext, asset_index: int) -> ContentResult:
        """Resolve output `asset_index` to a redirect URL or a byte stream."""

    @abstractmethod
    def delete(self, job: ProviderJobContext) -> None:
        """Best-effort provider-side cleanup."""

    def supports(self, operation: OptionalOperation) -> bool:
        flag = getattr(self.metadata.capabilities, operation, False)
        return bool(flag) and callable(getattr(self, operation, None))

    @staticmethod
    def output_at(job: ProviderJobContext, asset_index: int) -> VideoAsset:
        if asset_index < 0 or asset_index >= len(job.outputs):
            raise AssetNotFoundError(f"Asset index {asset_index} not found")
        return job.outputs[asset_index]
