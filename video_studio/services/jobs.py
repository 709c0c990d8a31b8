"""Job lifecycle driven by client calls.

There is no background scheduler. A job is submitted to its provider on the
first refresh and polled on every refresh after that until it reaches a
terminal status. Two refreshes racing on a job that has not been submitted yet
can both submit it; the last write wins locally. Callers serialize refreshes
per job.
"""

import logging
from typing import Any

from sqlalchemy import and_, func, or_, select
from sqlalchemy.orm import Session

from video_studio.core.errors import (
    JobNotCompleteError,
    MissingProviderJobError,
    NotFoundError,
    NotImplementedOperationError,
    ProviderError,
    UnsupportedOperationError,
    ValidationError,
)
from video_studio.models.job import VideoJob
from video_studio.providers.base import OptionalOperation, ProviderAdapter
from video_studio.providers.registry import get_adapter, get_registry
from video_studio.providers.types import (
    ContentResult,
    ExtendParams,
    JobStatus,
    ProviderJobContext,
    RefreshResult,
    RemixParams,
    SubmitResult,
    VideoAsset,
)
from video_studio.schemas.job import ExtendRequest, JobCreate, JobRead, RemixRequest

logger = logging.getLogger(__name__)


def serialize_job(job: VideoJob) -> JobRead:
    adapter = get_adapter(job.provider)
    succeeded = job.status == JobStatus.SUCCEEDED.value
    return JobRead.model_validate(
        {
            "id": job.id,
            "provider": job.provider,
            "provider_job_id": job.provider_job_id,
            "status": job.status,
            "progress_pct": job.progress_pct,
            "created_at": job.created_at,
            "updated_at": job.updated_at,
            "prompt": job.prompt,
            "params": job.params_json or {},
            "outputs": job.outputs_json or [],
            "error": job.error_json,
            "actions": {
                "can_download": succeeded,
                "can_delete": True,
                "can_remix": succeeded and adapter.metadata.capabilities.remix,
                "can_extend": succeeded and adapter.metadata.capabilities.extend,
            },
        }
    )


def to_context(job: VideoJob) -> ProviderJobContext:
    return ProviderJobContext(
        id=job.id,
        provider_job_id=job.provider_job_id,
        prompt=job.prompt,
        params=dict(job.params_json or {}),
        status=JobStatus(job.status),
        outputs=[VideoAsset.from_dict(item) for item in job.outputs_json or []],
    )


def create_job(db: Session, payload: JobCreate) -> VideoJob:
    params: dict[str, Any] = dict(payload.params or {})
    if payload.mode is not None:
        params["mode"] = payload.mode
    if payload.assets is not None:
        params["assets"] = [asset.model_dump(by_alias=True, exclude_none=True) for asset in payload.assets]

    job = VideoJob(provider=payload.provider, prompt=payload.prompt, status=JobStatus.QUEUED.value, params_json=params)
    db.add(job)
    db.commit()
    db.refresh(job)
    logger.info("job_created", extra={"job_id": job.id, "provider": job.provider})
    return job


def list_jobs(
    db: Session,
    provider: str | None = None,
    status: str | None = None,
    q: str | None = None,
    limit: int = 20,
    cursor: str | None = None,
) -> tuple[list[VideoJob], int, str | None]:
    filters = []
    if provider:
        filters.append(VideoJob.provider == provider)
    if status:
        filters.append(VideoJob.status == status)
    if q:
        filters.append(VideoJob.prompt.ilike(f"%{q}%"))

    total = db.scalar(select(func.count(VideoJob.id)).where(*filters)) or 0

    page_filters = list(filters)
    if cursor:
        anchor = db.scalar(select(VideoJob).where(VideoJob.id == cursor))
        if anchor is None:
            raise ValidationError("cursor: unknown job id")
        page_filters.append(
            or_(
                VideoJob.created_at < anchor.created_at,
                and_(VideoJob.created_at == anchor.created_at, VideoJob.id < anchor.id),
            )
        )

    rows = db.scalars(
        select(VideoJob)
        .where(*page_filters)
        .order_by(VideoJob.created_at.desc(), VideoJob.id.desc())
        .limit(limit + 1)
    ).all()
    has_more = len(rows) > limit
    page = list(rows[:limit])
    next_cursor = page[-1].id if has_more else None
    return page, int(total), next_cursor


def get_job_or_404(db: Session, job_id: str) -> VideoJob:
    job = db.scalar(select(VideoJob).where(VideoJob.id == job_id))
    if not job:
        raise NotFoundError("Job not found")
    return job


def delete_job(db: Session, job_id: str) -> None:
    job = get_job_or_404(db, job_id)
    adapter = get_adapter(job.provider)
    try:
        adapter.delete(to_context(job))
    except ProviderError as exc:
        logger.warning("provider_delete_failed", extra={"job_id": job.id, "error": exc.message})
    db.delete(job)
    db.commit()
    logger.info("job_deleted", extra={"job_id": job_id})


def _apply_submit(job: VideoJob, result: SubmitResult) -> None:
    if job.provider_job_id is None:
        job.provider_job_id = result.provider_job_id
    job.status = result.status.value
    job.progress_pct = result.progress_pct


def _apply_refresh(job: VideoJob, result: RefreshResult) -> None:
    job.status = result.status.value
    job.progress_pct = result.progress_pct
    if result.status is JobStatus.SUCCEEDED:
        job.outputs_json = [asset.to_dict() for asset in result.outputs or []]
        job.error_json = None
    elif result.status is JobStatus.FAILED:
        error = result.error.to_dict() if result.error else {"message": "Video generation failed", "raw": None}
        job.error_json = error
        if result.outputs:
            logger.info(
                "job_failed_with_outputs",
                extra={"job_id": job.id, "discarded_outputs": len(result.outputs)},
            )


def refresh_job(db: Session, job_id: str) -> VideoJob:
    job = get_job_or_404(db, job_id)
    if job.is_terminal:
        return job

    adapter = get_adapter(job.provider)
    context = to_context(job)
    if job.provider_job_id is None:
        _apply_submit(job, adapter.submit(context))
        event = "job_submitted"
    else:
        _apply_refresh(job, adapter.refresh(context))
        event = "job_refreshed"

    db.add(job)
    db.commit()
    db.refresh(job)
    logger.info(
        event,
        extra={"job_id": job.id, "provider": job.provider, "status": job.status, "provider_job_id": job.provider_job_id},
    )
    return job


def _derivative_source(db: Session, job_id: str, operation: OptionalOperation) -> tuple[VideoJob, ProviderAdapter]:
    source = get_job_or_404(db, job_id)
    if source.status != JobStatus.SUCCEEDED.value:
        raise JobNotCompleteError(f"Can only {operation} completed jobs")

    adapter = get_adapter(source.provider)
    if not getattr(adapter.metadata.capabilities, operation):
        registry = get_registry()
        supported = [
            name for name in registry.provider_ids() if getattr(registry.get_adapter(name).metadata.capabilities, operation)
        ]
        raise UnsupportedOperationError(
            f"{operation.capitalize()} is only supported for {', '.join(supported) or 'no'} jobs"
        )
    if not source.provider_job_id:
        raise MissingProviderJobError("Source job has no provider job ID")
    if not adapter.supports(operation):
        raise NotImplementedOperationError(f"{operation.capitalize()} not implemented for this provider")
    return source, adapter


def _create_derivative(
    db: Session,
    source: VideoJob,
    result: SubmitResult,
    prompt: str | None,
    mode: str,
    extra_params: dict[str, Any] | None = None,
) -> VideoJob:
    params = {
        **(source.params_json or {}),
        **(extra_params or {}),
        "mode": mode,
        "sourceJobId": source.id,
        "sourceProviderJobId": source.provider_job_id,
    }
    job = VideoJob(
        provider=source.provider,
        provider_job_id=result.provider_job_id,
        prompt=prompt or source.prompt,
        status=result.status.value,
        progress_pct=result.progress_pct,
        params_json=params,
    )
    db.add(job)
    db.commit()
    db.refresh(job)
    logger.info(
        "job_derived",
        extra={"job_id": job.id, "source_job_id": source.id, "mode": mode, "provider_job_id": job.provider_job_id},
    )
    return job


def remix_job(db: Session, job_id: str, payload: RemixRequest) -> VideoJob:
    source, adapter = _derivative_source(db, job_id, "remix")
    result = adapter.remix(to_context(source), RemixParams(prompt=payload.prompt))
    return _create_derivative(db, source, result, payload.prompt, "remix")


def extend_job(db: Session, job_id: str, payload: ExtendRequest) -> VideoJob:
    source, adapter = _derivative_source(db, job_id, "extend")
    params = ExtendParams(
        prompt=payload.prompt,
        source_asset_index=payload.source_asset_index,
        params=dict(payload.params or {}),
    )
    result = adapter.extend(to_context(source), params)
    return _create_derivative(db, source, result, payload.prompt, "extend", payload.params)


def job_content(db: Session, job_id: str, asset_index: int) -> ContentResult:
    job = get_job_or_404(db, job_id)
    if job.status != JobStatus.SUCCEEDED.value:
        raise JobNotCompleteError("Job has not completed successfully")
    return get_adapter(job.provider).content(to_context(job), asset_index)
