import base64
from contextlib import contextmanager
from types import SimpleNamespace

import httpx
import openai
import pytest

from video_studio.core.config import Settings
from video_studio.core.errors import AssetNotFoundError, ProviderError
from video_studio.providers.sora import SoraAdapter, map_sora_status
from video_studio.providers.types import JobStatus, ProviderJobContext, RemixParams, VideoAsset


class FakeStreamingVideos:
    def __init__(self, chunks):
        self.chunks = chunks
        self.closed = False
        self.requests = []

    @contextmanager
    def download_content(self, video_id, variant="video"):
        self.requests.append((video_id, variant))
        try:
            yield SimpleNamespace(headers={"content-type": "video/mp4"}, iter_bytes=lambda: iter(self.chunks))
        finally:
            self.closed = True


class FakeVideos:
    def __init__(self):
        self.created = []
        self.remixed = []
        self.deleted = []
        self.videos = {}
        self.create_error = None
        self.with_streaming_response = FakeStreamingVideos([b"abc", b"def"])

    def create(self, **kwargs):
        if self.create_error:
            raise self.create_error
        self.created.append(kwargs)
        return SimpleNamespace(id="video_123", status="queued", progress=None)

    def retrieve(self, video_id):
        return self.videos[video_id]

    def remix(self, video_id, prompt):
        self.remixed.append((video_id, prompt))
        return SimpleNamespace(id="video_remix", status="in_progress", progress=5)

    def delete(self, video_id):
        self.deleted.append(video_id)


@pytest.fixture()
def videos():
    return FakeVideos()


@pytest.fixture()
def adapter(videos):
    return SoraAdapter(settings=Settings(openai_api_key="sk-test"), client=SimpleNamespace(videos=videos))


def _job(**overrides):
    values = {
        "id": "job-1",
        "provider_job_id": None,
        "prompt": "a cat",
        "params": {},
        "status": JobStatus.QUEUED,
        "outputs": [],
    }
    values.update(overrides)
    return ProviderJobContext(**values)


def _bad_request(message):
    request = httpx.Request("POST", "https://api.openai.com/v1/videos")
    return openai.BadRequestError(message=message, response=httpx.Response(400, request=request), body=None)


@pytest.mark.parametrize(
    ("native", "expected"),
    [
        ("queued", JobStatus.QUEUED),
        ("in_progress", JobStatus.RUNNING),
        ("completed", JobStatus.SUCCEEDED),
        ("failed", JobStatus.FAILED),
        ("cancelled", JobStatus.UNKNOWN),
        (None, JobStatus.UNKNOWN),
    ],
)
def test_status_mapping(native, expected):
    assert map_sora_status(native) is expected


def test_submit_sends_prompt_model_and_options(adapter, videos):
    image = base64.b64encode(b"\x89PNG").decode()
    job = _job(params={"model": "sora-2-pro", "seconds": 8, "size": "1280x720", "inputReference": {"bytesBase64Encoded": image, "mimeType": "image/png"}})

    result = adapter.submit(job)

    assert result.provider_job_id == "video_123"
    assert result.status is JobStatus.QUEUED
    assert result.progress_pct == 0
    request = videos.created[0]
    assert request["prompt"] == "a cat"
    assert request["model"] == "sora-2-pro"
    assert request["seconds"] == "8"
    assert request["size"] == "1280x720"
    assert request["input_reference"] == ("reference.png", b"\x89PNG", "image/png")


def test_submit_defaults_model_and_omits_optional_fields(adapter, videos):
    adapter.submit(_job())
    assert videos.created[0] == {"prompt": "a cat", "model": "sora-2"}


def test_submit_surfaces_provider_message(adapter, videos):
    videos.create_error = _bad_request("Invalid size")
    with pytest.raises(ProviderError) as excinfo:
        adapter.submit(_job())
    assert "Invalid size" in excinfo.value.message
    assert excinfo.value.provider_status == 400


def test_refresh_completed_builds_internal_uri(adapter, videos):
    videos.videos["video_123"] = SimpleNamespace(id="video_123", status="completed", progress=100, error=None)
    result = adapter.refresh(_job(provider_job_id="video_123", status=JobStatus.RUNNING))
    assert result.status is JobStatus.SUCCEEDED
    assert result.progress_pct == 100
    assert result.outputs == [VideoAsset(kind="video/mp4", uri="sora://video_123/content")]
    assert result.error is None


def test_refresh_failed_carries_error(adapter, videos):
    error = SimpleNamespace(code="moderation_blocked", message="Prompt was blocked")
    videos.videos["video_123"] = SimpleNamespace(id="video_123", status="failed", progress=0, error=error)
    result = adapter.refresh(_job(provider_job_id="video_123", status=JobStatus.RUNNING))
    assert result.status is JobStatus.FAILED
    assert result.outputs is None
    assert result.error.message == "Prompt was blocked"
    assert result.error.raw == "moderation_blocked"


def test_refresh_in_progress(adapter, videos):
    videos.videos["video_123"] = SimpleNamespace(id="video_123", status="in_progress", progress=42, error=None)
    result = adapter.refresh(_job(provider_job_id="video_123", status=JobStatus.RUNNING))
    assert result.status is JobStatus.RUNNING
    assert result.progress_pct == 42
    assert result.outputs is None


def test_content_streams_provider_bytes(adapter, videos):
    job = _job(
        provider_job_id="video_123",
        status=JobStatus.SUCCEEDED,
        outputs=[VideoAsset(kind="video/mp4", uri="sora://video_123/content")],
    )
    result = adapter.content(job, 0)
    assert result.type == "stream"
    assert result.content_type == "video/mp4"
    assert b"".join(result.stream) == b"abcdef"
    assert videos.with_streaming_response.requests == [("video_123", "video")]
    assert videos.with_streaming_response.closed


def test_content_close_releases_unread_download(adapter, videos):
    job = _job(
        provider_job_id="video_123",
        status=JobStatus.SUCCEEDED,
        outputs=[VideoAsset(kind="video/mp4", uri="sora://video_123/content")],
    )
    result = adapter.content(job, 0)
    assert not videos.with_streaming_response.closed
    result.close()
    assert videos.with_streaming_response.closed


def test_content_out_of_range(adapter):
    job = _job(provider_job_id="video_123", status=JobStatus.SUCCEEDED, outputs=[])
    with pytest.raises(AssetNotFoundError):
        adapter.content(job, 0)


def test_remix_uses_new_prompt_or_source_prompt(adapter, videos):
    source = _job(provider_job_id="video_123", status=JobStatus.SUCCEEDED)
    result = adapter.remix(source, RemixParams(prompt="a cat at night"))
    adapter.remix(source, RemixParams())
    assert result.provider_job_id == "video_remix"
    assert result.status is JobStatus.RUNNING
    assert videos.remixed == [("video_123", "a cat at night"), ("video_123", "a cat")]


def test_delete_skips_unsubmitted_jobs(adapter, videos):
    adapter.delete(_job())
    adapter.delete(_job(provider_job_id="video_123"))
    assert videos.deleted == ["video_123"]


def test_missing_api_key_is_a_provider_error():
    adapter = SoraAdapter(settings=Settings(openai_api_key=""))
    with pytest.raises(ProviderError):
        adapter.submit(_job())
