from collections.abc import Callable, Iterator, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Literal

ProviderId = Literal["sora", "veo"]
AssetKind = Literal["video/mp4", "video", "unknown"]


class JobStatus(str, Enum):
    QUEUED = "queued"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELED = "canceled"
    UNKNOWN = "unknown"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.SUCCEEDED, JobStatus.FAILED, JobStatus.CANCELED)


def map_status(native: object, table: Mapping[str, JobStatus]) -> JobStatus:
    """Translate a provider-native status; anything outside `table` is UNKNOWN."""
    if not isinstance(native, str):
        return JobStatus.UNKNOWN
    return table.get(native, JobStatus.UNKNOWN)


@dataclass(slots=True)
class VideoAsset:
    kind: AssetKind
    uri: str
    bytes_base64: str | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "VideoAsset":
        kind = data.get("kind")
        return cls(
            kind=kind if kind in ("video/mp4", "video") else "unknown",
            uri=str(data.get("uri", "")),
            bytes_base64=data.get("bytesBase64"),
        )

    def to_dict(self) -> dict:
        payload = {"kind": self.kind, "uri": self.uri}
        if self.bytes_base64 is not None:
            payload["bytesBase64"] = self.bytes_base64
        return payload


@dataclass(slots=True)
class JobError:
    message: str
    raw: str | list[str] | None = None

    def to_dict(self) -> dict:
        return {"message": self.message, "raw": self.raw}


@dataclass(slots=True)
class ProviderJobContext:
    """What an adapter gets to see of a persisted job."""

    id: str
    provider_job_id: str | None
    prompt: str
    params: dict[str, Any]
    status: JobStatus
    outputs: list[VideoAsset] = field(default_factory=list)


@dataclass(slots=True)
class SubmitResult:
    provider_job_id: str
    status: JobStatus
    progress_pct: int | None = None


@dataclass(slots=True)
class RefreshResult:
    status: JobStatus
    progress_pct: int | None = None
    outputs: list[VideoAsset] | None = None
    error: JobError | None = None


@dataclass(slots=True)
class ContentResult:
    type: Literal["redirect", "stream"]
    url: str | None = None
    content_type: str = "video/mp4"
    stream: Iterator[bytes] | None = None
    close: Callable[[], None] | None = None

    @classmethod
    def redirect(cls, url: str) -> "ContentResult":
        return cls(type="redirect", url=url)

    @classmethod
    def streamed(
        cls,
        stream: Iterator[bytes],
        content_type: str = "video/mp4",
        close: Callable[[], None] | None = None,
    ) -> "ContentResult":
        return cls(type="stream", stream=stream, content_type=content_type, close=close)


@dataclass(slots=True)
class RemixParams:
    prompt: str | None = None


@dataclass(slots=True)
class ExtendParams:
    prompt: str | None = None
    source_asset_index: int | None = None
    params: dict[str, Any] = field(default_factory=dict)


@dataclass(slots=True, frozen=True)
class ProviderMode:
    id: str
    label: str
    description: str | None = None


@dataclass(slots=True, frozen=True)
class Capabilities:
    remix: bool = False
    extend: bool = False
    reference_image: bool = False


@dataclass(slots=True, frozen=True)
class ProviderMetadata:
    id: ProviderId
    name: str
    modes: tuple[ProviderMode, ...]
    capabilities: Capabilities

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "modes": [
                {"id": mode.id, "label": mode.label, "description": mode.description} for mode in self.modes
            ],
            "capabilities": {
                "remix": self.capabilities.remix,
                "extend": self.capabilities.extend,
                "referenceImage": self.capabilities.reference_image,
            },
        }


GENERATE_MODE = ProviderMode("generate", "Generate", "Generate a new video from prompt")
REMIX_MODE = ProviderMode("remix", "Remix", "Remix an existing video with modifications")
EXTEND_MODE = ProviderMode("extend", "Extend", "Extend an existing video")
IMAGE_TO_VIDEO_MODE = ProviderMode("image-to-video", "Image to Video", "Generate video from a reference image")
