import base64
import logging
from collections.abc import Iterator
from contextlib import ExitStack
from typing import Any

import openai
from openai import OpenAI

from video_studio.core.config import Settings, get_settings
from video_studio.core.errors import ProviderError, ValidationError
from video_studio.providers.base import ProviderAdapter
from video_studio.providers.types import (
    GENERATE_MODE,
    IMAGE_TO_VIDEO_MODE,
    REMIX_MODE,
    Capabilities,
    ContentResult,
    JobError,
    JobStatus,
    ProviderJobContext,
    ProviderMetadata,
    RefreshResult,
    RemixParams,
    SubmitResult,
    VideoAsset,
    map_status,
)

logger = logging.getLogger(__name__)

STATUS_MAP = {
    "queued": JobStatus.QUEUED,
    "in_progress": JobStatus.RUNNING,
    "completed": JobStatus.SUCCEEDED,
    "failed": JobStatus.FAILED,
}


def map_sora_status(native: object) -> JobStatus:
    return map_status(native, STATUS_MAP)


def _provider_error(exc: openai.APIError) -> ProviderError:
    status_code = getattr(exc, "status_code", None)
    label = status_code if status_code is not None else "network"
    return ProviderError(f"Sora API error ({label}): {exc.message}", provider_status=status_code)


def _reference_file(reference: Any) -> tuple[str, bytes, str]:
    if not isinstance(reference, dict) or not reference.get("bytesBase64Encoded"):
        raise ValidationError("inputReference must carry bytesBase64Encoded and mimeType")
    mime_type = str(reference.get("mimeType") or "image/png")
    extension = mime_type.split("/")[-1] or "png"
    return f"reference.{extension}", base64.b64decode(reference["bytesBase64Encoded"]), mime_type


class SoraAdapter(ProviderAdapter):
    """OpenAI Sora through the `videos` resource of the official SDK."""

    provider_id = "sora"
    metadata = ProviderMetadata(
        id="sora",
        name="Sora",
        modes=(GENERATE_MODE, REMIX_MODE, IMAGE_TO_VIDEO_MODE),
        capabilities=Capabilities(remix=True, extend=False, reference_image=True),
    )

    def __init__(self, settings: Settings | None = None, client: OpenAI | None = None) -> None:
        self.settings = settings or get_settings()
        self._client = client

    @property
    def client(self) -> OpenAI:
        if self._client is None:
            if not self.settings.openai_api_key:
                raise ProviderError("OPENAI_API_KEY is not configured.")
            self._client = OpenAI(api_key=self.settings.openai_api_key, timeout=self.settings.http_timeout_seconds)
        return self._client

    def submit(self, job: ProviderJobContext) -> SubmitResult:
        params = job.params or {}
        request: dict[str, Any] = {
            "prompt": job.prompt,
            "model": params.get("model") or self.settings.sora_default_model,
        }
        if params.get("seconds"):
            request["seconds"] = str(params["seconds"])
        if params.get("size"):
            request["size"] = str(params["size"])
        if params.get("inputReference"):
            request["input_reference"] = _reference_file(params["inputReference"])

        try:
            video = self.client.videos.create(**request)
        except openai.APIError as exc:
            raise _provider_error(exc) from exc

        logger.info("sora_submitted", extra={"job_id": job.id, "video_id": video.id, "model": request["model"]})
        return SubmitResult(
            provider_job_id=video.id,
            status=map_sora_status(video.status),
            progress_pct=video.progress or 0,
        )

    def refresh(self, job: ProviderJobContext) -> RefreshResult:
        if not job.provider_job_id:
            raise ProviderError("Cannot refresh job without providerJobId")
        try:
            video = self.client.videos.retrieve(job.provider_job_id)
        except openai.APIError as exc:
            raise _provider_error(exc) from exc

        result = RefreshResult(status=map_sora_status(video.status), progress_pct=video.progress)
        if video.status == "completed":
            # Resolved by content(); Sora serves bytes per video id, not a durable URL.
            result.outputs = [VideoAsset(kind="video/mp4", uri=f"sora://{video.id}/content")]
        elif video.status == "failed":
            error = getattr(video, "error", None)
            result.error = JobError(
                message=(getattr(error, "message", None) or "Video generation failed"),
                raw=getattr(error, "code", None),
            )
        return result

    def content(self, job: ProviderJobContext, asset_index: int) -> ContentResult:
        self.output_at(job, asset_index)
        if not job.provider_job_id:
            raise ProviderError("Cannot get content without providerJobId")

        stack = ExitStack()
        try:
            response = stack.enter_context(
                self.client.videos.with_streaming_response.download_content(job.provider_job_id, variant="video")
            )
        except openai.APIError as exc:
            stack.close()
            raise _provider_error(exc) from exc

        def stream() -> Iterator[bytes]:
            with stack:
                yield from response.iter_bytes()

        content_type = response.headers.get("content-type") or "video/mp4"
        # `close` also runs when the stream is dropped before the first chunk.
        return ContentResult.streamed(stream(), content_type=content_type, close=stack.close)

    def delete(self, job: ProviderJobContext) -> None:
        if not job.provider_job_id:
            return
        try:
            self.client.videos.delete(job.provider_job_id)
        except openai.APIError as exc:
            raise _provider_error(exc) from exc

    def remix(self, job: ProviderJobContext, params: RemixParams) -> SubmitResult:
        if not job.provider_job_id:
            raise ProviderError("Cannot remix job without providerJobId")
        prompt = params.prompt or job.prompt
        try:
            video = self.client.videos.remix(job.provider_job_id, prompt=prompt)
        except openai.APIError as exc:
            raise _provider_error(exc) from exc

        logger.info("sora_remix_submitted", extra={"job_id": job.id, "video_id": video.id})
        return SubmitResult(
            provider_job_id=video.id,
            status=map_sora_status(video.status),
            progress_pct=video.progress or 0,
        )
