"""Network-free adapters that fake provider progress.

Each stub owns a `SimulatedProgress` tracker keyed by provider job id. The
submission counts as the first poll, so a Sora stub job is done on its third
poll and a Veo stub job on its fourth. Once done, a job stays done.
"""

import uuid
from dataclasses import dataclass, field

from video_studio.providers.base import ProviderAdapter
from video_studio.providers.types import (
    EXTEND_MODE,
    GENERATE_MODE,
    IMAGE_TO_VIDEO_MODE,
    REMIX_MODE,
    Capabilities,
    ContentResult,
    ExtendParams,
    JobStatus,
    ProviderJobContext,
    ProviderMetadata,
    RefreshResult,
    RemixParams,
    SubmitResult,
    VideoAsset,
)

STUB_BASE_URL = "https://example.com/stub"


@dataclass(slots=True)
class _PollState:
    polls: int = 0
    completed: bool = False


@dataclass
class SimulatedProgress:
    polls_to_complete: int
    _states: dict[str, _PollState] = field(default_factory=dict)

    def start(self, key: str) -> None:
        self._states[key] = _PollState(polls=1)

    def advance(self, key: str) -> tuple[int, bool]:
        state = self._states.setdefault(key, _PollState())
        state.polls += 1
        if state.polls >= self.polls_to_complete:
            state.completed = True
        return state.polls, state.completed

    def polls(self, key: str) -> int:
        state = self._states.get(key)
        return state.polls if state else 0


def _short_id() -> str:
    return uuid.uuid4().hex[:12]


class SoraAdapterStub(ProviderAdapter):
    provider_id = "sora"
    metadata = ProviderMetadata(
        id="sora",
        name="Sora",
        modes=(GENERATE_MODE, REMIX_MODE),
        capabilities=Capabilities(remix=True, extend=False, reference_image=False),
    )

    def __init__(self) -> None:
        self.progress = SimulatedProgress(polls_to_complete=3)

    def submit(self, job: ProviderJobContext) -> SubmitResult:
        provider_job_id = f"sora_{_short_id()}"
        self.progress.start(provider_job_id)
        return SubmitResult(provider_job_id=provider_job_id, status=JobStatus.RUNNING, progress_pct=0)

    def refresh(self, job: ProviderJobContext) -> RefreshResult:
        polls, completed = self.progress.advance(job.provider_job_id or job.id)
        if completed:
            return RefreshResult(
                status=JobStatus.SUCCEEDED,
                progress_pct=100,
                outputs=[VideoAsset(kind="video/mp4", uri=f"{STUB_BASE_URL}/sora/{job.provider_job_id}/output.mp4")],
            )
        return RefreshResult(status=JobStatus.RUNNING, progress_pct=min(polls * 30, 90))

    def content(self, job: ProviderJobContext, asset_index: int) -> ContentResult:
        self.output_at(job, asset_index)
        return ContentResult.redirect(f"{STUB_BASE_URL}/sora/{job.provider_job_id}/output_{asset_index}.mp4")

    def delete(self, job: ProviderJobContext) -> None:
        return None

    def remix(self, job: ProviderJobContext, params: RemixParams) -> SubmitResult:
        provider_job_id = f"sora_remix_{_short_id()}"
        self.progress.start(provider_job_id)
        return SubmitResult(provider_job_id=provider_job_id, status=JobStatus.RUNNING, progress_pct=0)


class VeoAdapterStub(ProviderAdapter):
    provider_id = "veo"
    metadata = ProviderMetadata(
        id="veo",
        name="Veo",
        modes=(GENERATE_MODE, EXTEND_MODE, IMAGE_TO_VIDEO_MODE),
        capabilities=Capabilities(remix=False, extend=True, reference_image=True),
    )

    def __init__(self) -> None:
        self.progress = SimulatedProgress(polls_to_complete=4)

    def submit(self, job: ProviderJobContext) -> SubmitResult:
        operation_name = f"operations/veo_{_short_id()}"
        self.progress.start(operation_name)
        # Veo reports no percentage while running.
        return SubmitResult(provider_job_id=operation_name, status=JobStatus.RUNNING, progress_pct=None)

    def refresh(self, job: ProviderJobContext) -> RefreshResult:
        _, completed = self.progress.advance(job.provider_job_id or job.id)
        if completed:
            return RefreshResult(
                status=JobStatus.SUCCEEDED,
                progress_pct=100,
                outputs=[VideoAsset(kind="video/mp4", uri=f"{STUB_BASE_URL}/veo/{self._operation_id(job)}/output.mp4")],
            )
        return RefreshResult(status=JobStatus.RUNNING, progress_pct=None)

    def content(self, job: ProviderJobContext, asset_index: int) -> ContentResult:
        self.output_at(job, asset_index)
        return ContentResult.redirect(f"{STUB_BASE_URL}/veo/{self._operation_id(job)}/output_{asset_index}.mp4")

    def delete(self, job: ProviderJobContext) -> None:
        return None

    def extend(self, job: ProviderJobContext, params: ExtendParams) -> SubmitResult:
        self.output_at(job, params.source_asset_index or 0)
        operation_name = f"operations/veo_extend_{_short_id()}"
        self.progress.start(operation_name)
        return SubmitResult(provider_job_id=operation_name, status=JobStatus.RUNNING, progress_pct=None)

    @staticmethod
    def _operation_id(job: ProviderJobContext) -> str:
        return (job.provider_job_id or "unknown").removeprefix("operations/")
