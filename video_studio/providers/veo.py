"""Google Veo on Vertex AI.

Submission goes through `predictLongRunning`, which answers with nothing but an
operation name. Operations are pinned to the region that created them, so
polling reads the location back out of that name and calls
`fetchPredictOperation` in the same region. Veo does not report progress.
"""

import base64
import logging
import re
from typing import Any

import httpx

from video_studio.core.config import Settings, get_settings
from video_studio.core.errors import (
    AssetNotFoundError,
    NotImplementedOperationError,
    ProviderError,
    UnsupportedOperationError,
)
from video_studio.providers.base import ProviderAdapter
from video_studio.providers.google_auth import ServiceAccountCredentials, ServiceAccountTokenSource
from video_studio.providers.types import (
    EXTEND_MODE,
    GENERATE_MODE,
    IMAGE_TO_VIDEO_MODE,
    Capabilities,
    ContentResult,
    ExtendParams,
    JobError,
    JobStatus,
    ProviderJobContext,
    ProviderMetadata,
    RefreshResult,
    SubmitResult,
    VideoAsset,
)

logger = logging.getLogger(__name__)

LOCATION_PATTERN = re.compile(r"locations/([^/]+)")
EXTEND_MODELS = ("veo-2.0-generate-001",)
EXTEND_MODEL_PREFIXES = ("veo-3.1",)


def extract_location(operation_name: str) -> str | None:
    match = LOCATION_PATTERN.search(operation_name)
    return match.group(1) if match else None


def supports_audio(model: str) -> bool:
    return model.startswith("veo-3")


def supports_extend(model: str) -> bool:
    return any(name in model for name in EXTEND_MODELS) or model.startswith(EXTEND_MODEL_PREFIXES)


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text
    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
        if body.get("message"):
            return str(body["message"])
    return response.text


class VeoAdapter(ProviderAdapter):
    provider_id = "veo"
    metadata = ProviderMetadata(
        id="veo",
        name="Veo",
        modes=(GENERATE_MODE, EXTEND_MODE, IMAGE_TO_VIDEO_MODE),
        capabilities=Capabilities(remix=False, extend=True, reference_image=True),
    )

    def __init__(
        self,
        settings: Settings | None = None,
        http_client: httpx.Client | None = None,
        credentials: ServiceAccountCredentials | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self._http = http_client or httpx.Client(timeout=self.settings.http_timeout_seconds)
        self._credentials = credentials
        self.tokens = ServiceAccountTokenSource(self._load_credentials, self._http)

    def _load_credentials(self) -> ServiceAccountCredentials:
        if self._credentials is None:
            path = self.settings.google_application_credentials
            if not path:
                raise ProviderError("GOOGLE_APPLICATION_CREDENTIALS is not configured.")
            self._credentials = ServiceAccountCredentials.from_file(path)
        return self._credentials

    @property
    def project_id(self) -> str:
        return self.settings.google_cloud_project or self._load_credentials().project_id

    def model_for(self, params: dict[str, Any] | None) -> str:
        model = (params or {}).get("model")
        return str(model) if model else self.settings.veo_model

    def _model_url(self, model: str, location: str | None = None) -> str:
        location = location or self.settings.google_cloud_location
        return (
            f"https://{location}-aiplatform.googleapis.com/v1/"
            f"projects/{self.project_id}/locations/{location}/publishers/google/models/{model}"
        )

    def _post(self, url: str, body: dict) -> dict:
        headers = {"Authorization": f"Bearer {self.tokens.access_token()}"}
        try:
            response = self._http.post(url, json=body, headers=headers)
        except httpx.HTTPError as exc:
            raise ProviderError(f"Veo API request failed: {exc}") from exc
        if response.is_error:
            raise ProviderError(
                f"Veo API error ({response.status_code}): {_error_message(response)}",
                provider_status=response.status_code,
            )
        return response.json()

    def _predict(self, model: str, instance: dict, parameters: dict) -> SubmitResult:
        body = {"instances": [instance], "parameters": parameters}
        operation = self._post(f"{self._model_url(model)}:predictLongRunning", body)
        name = operation.get("name")
        if not name:
            raise ProviderError("Veo API returned no operation name")
        return SubmitResult(provider_job_id=name, status=JobStatus.RUNNING, progress_pct=None)

    def submit(self, job: ProviderJobContext) -> SubmitResult:
        params = job.params or {}
        model = self.model_for(params)

        instance: dict[str, Any] = {"prompt": job.prompt}
        if params.get("image"):
            instance["image"] = params["image"]
        if params.get("lastFrame"):
            instance["lastFrame"] = params["lastFrame"]
        if isinstance(params.get("referenceImages"), list):
            instance["referenceImages"] = params["referenceImages"]

        parameters: dict[str, Any] = {"aspectRatio": params.get("aspectRatio") or "16:9", "sampleCount": 1}
        if params.get("durationSeconds"):
            parameters["durationSeconds"] = params["durationSeconds"]
        if params.get("resolution") and model.startswith("veo-3"):
            parameters["resolution"] = params["resolution"]
        if supports_audio(model):
            parameters["generateAudio"] = params.get("generateAudio") is not False
        if params.get("negativePrompt"):
            parameters["negativePrompt"] = params["negativePrompt"]
        if params.get("seed") is not None:
            parameters["seed"] = params["seed"]

        result = self._predict(model, instance, parameters)
        logger.info("veo_submitted", extra={"job_id": job.id, "model": model, "operation": result.provider_job_id})
        return result

    def refresh(self, job: ProviderJobContext) -> RefreshResult:
        if not job.provider_job_id:
            raise ProviderError("Cannot refresh job without providerJobId")

        location = extract_location(job.provider_job_id) or self.settings.google_cloud_location
        url = f"{self._model_url(self.model_for(job.params), location)}:fetchPredictOperation"
        operation = self._post(url, {"operationName": job.provider_job_id})

        if not operation.get("done"):
            return RefreshResult(status=JobStatus.RUNNING, progress_pct=None)

        error = operation.get("error")
        if error:
            return RefreshResult(
                status=JobStatus.FAILED,
                error=JobError(message=error.get("message") or "Video generation failed", raw=str(error.get("code"))),
            )

        response = operation.get("response") or {}
        videos = response.get("videos") or []
        outputs = [self._asset_from_video(job, index, video) for index, video in enumerate(videos)]
        filtered = response.get("raiMediaFilteredCount") or 0
        # Every sample may be filtered, leaving `videos` empty.
        if filtered > 0:
            return RefreshResult(
                status=JobStatus.FAILED,
                outputs=outputs or None,
                error=JobError(
                    message=f"{filtered} video(s) filtered by content policy",
                    raw=response.get("raiMediaFilteredReasons"),
                ),
            )
        if not outputs:
            return RefreshResult(status=JobStatus.FAILED, error=JobError(message="Operation completed but no videos returned"))
        return RefreshResult(status=JobStatus.SUCCEEDED, progress_pct=100, outputs=outputs)

    @staticmethod
    def _asset_from_video(job: ProviderJobContext, index: int, video: dict) -> VideoAsset:
        internal_uri = f"veo://{job.id}/output_{index}"
        if video.get("bytesBase64Encoded"):
            return VideoAsset(kind="video/mp4", uri=internal_uri, bytes_base64=video["bytesBase64Encoded"])
        return VideoAsset(kind="video/mp4", uri=video.get("gcsUri") or internal_uri)

    def content(self, job: ProviderJobContext, asset_index: int) -> ContentResult:
        asset = self.output_at(job, asset_index)
        if asset.bytes_base64:
            data = base64.b64decode(asset.bytes_base64)
            return ContentResult.streamed(iter([data]), content_type="video/mp4")
        if asset.uri.startswith(("https://", "http://")):
            return ContentResult.redirect(asset.uri)
        if asset.uri.startswith("gs://"):
            raise NotImplementedOperationError("Content retrieval from Cloud Storage URIs is not implemented")
        raise AssetNotFoundError("No content available for this asset")

    def delete(self, job: ProviderJobContext) -> None:
        # Operations expire on their own; Vertex AI has no delete call for them.
        return None

    def extend(self, job: ProviderJobContext, params: ExtendParams) -> SubmitResult:
        extra = params.params or {}
        model = self.model_for(extra)
        if not supports_extend(model):
            raise UnsupportedOperationError(f"Model {model} does not support video extension")

        source_index = params.source_asset_index or 0
        source = self.output_at(job, source_index)
        if not source.bytes_base64:
            raise UnsupportedOperationError("Source video must have inline content for extension")

        instance: dict[str, Any] = {"video": {"bytesBase64Encoded": source.bytes_base64, "mimeType": "video/mp4"}}
        if params.prompt:
            instance["prompt"] = params.prompt

        parameters: dict[str, Any] = {"aspectRatio": extra.get("aspectRatio") or "16:9", "sampleCount": 1}
        if extra.get("durationSeconds"):
            parameters["durationSeconds"] = extra["durationSeconds"]
        if supports_audio(model):
            parameters["generateAudio"] = extra.get("generateAudio") is not False

        result = self._predict(model, instance, parameters)
        logger.info(
            "veo_extend_submitted",
            extra={"job_id": job.id, "model": model, "source_asset_index": source_index, "operation": result.provider_job_id},
        )
        return result
