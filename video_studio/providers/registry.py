import logging
from functools import lru_cache

from video_studio.core.config import Settings, get_settings
from video_studio.core.errors import NotFoundError
from video_studio.providers.base import ProviderAdapter
from video_studio.providers.sora import SoraAdapter
from video_studio.providers.stubs import SoraAdapterStub, VeoAdapterStub
from video_studio.providers.types import ProviderMetadata
from video_studio.providers.veo import VeoAdapter

logger = logging.getLogger(__name__)


class AdapterRegistry:
    """One adapter per provider for the lifetime of the process."""

    def __init__(self, adapters: list[ProviderAdapter]) -> None:
        self._adapters = {adapter.provider_id: adapter for adapter in adapters}

    @classmethod
    def from_settings(cls, settings: Settings) -> "AdapterRegistry":
        force_stubs = settings.use_stub_adapters
        sora: ProviderAdapter = (
            SoraAdapterStub() if force_stubs or not settings.openai_api_key else SoraAdapter(settings)
        )
        veo: ProviderAdapter = (
            VeoAdapterStub() if force_stubs or not settings.google_application_credentials else VeoAdapter(settings)
        )
        for adapter in (sora, veo):
            logger.info(
                "provider_adapter_selected",
                extra={"provider": adapter.provider_id, "adapter": type(adapter).__name__},
            )
        return cls([sora, veo])

    def get_adapter(self, provider_id: str) -> ProviderAdapter:
        adapter = self._adapters.get(provider_id)
        if adapter is None:
            raise NotFoundError(f"Unknown provider: {provider_id}")
        return adapter

    def provider_ids(self) -> list[str]:
        return list(self._adapters)

    def all_metadata(self) -> list[ProviderMetadata]:
        return [adapter.metadata for adapter in self._adapters.values()]

    def has_provider(self, provider_id: str) -> bool:
        return provider_id in self._adapters


@lru_cache(maxsize=1)
def get_registry() -> AdapterRegistry:
    return AdapterRegistry.from_settings(get_settings())


def get_adapter(provider_id: str) -> ProviderAdapter:
    return get_registry().get_adapter(provider_id)
