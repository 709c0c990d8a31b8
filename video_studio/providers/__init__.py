from video_studio.providers.base import ProviderAdapter
from video_studio.providers.registry import AdapterRegistry, get_adapter, get_registry
from video_studio.providers.sora import SoraAdapter
from video_studio.providers.stubs import SoraAdapterStub, VeoAdapterStub
from video_studio.providers.veo import VeoAdapter

__all__ = [
    "ProviderAdapter",
    "AdapterRegistry",
    "get_adapter",
    "get_registry",
    "SoraAdapter",
    "SoraAdapterStub",
    "VeoAdapter",
    "VeoAdapterStub",
]
