from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import RedirectResponse, StreamingResponse
from starlette.background import BackgroundTask
from sqlalchemy.orm import Session

from video_studio.db.session import get_db
from video_studio.schemas.job import (
    DeleteJobResponse,
    ExtendRequest,
    JobCreate,
    JobListResponse,
    JobResponse,
    JobStatusName,
    ProviderName,
    RemixRequest,
)
from video_studio.services import jobs as job_service

router = APIRouter(prefix="/api/jobs", tags=["jobs"])


@router.post("", response_model=JobResponse, status_code=status.HTTP_201_CREATED)
def create_job(payload: JobCreate, db: Session = Depends(get_db)) -> JobResponse:
    job = job_service.create_job(db, payload)
    return JobResponse(data=job_service.serialize_job(job))


@router.get("", response_model=JobListResponse)
def list_jobs(
    provider: ProviderName | None = Query(default=None),
    status: JobStatusName | None = Query(default=None),
    q: str | None = Query(default=None),
    limit: int = Query(default=20, ge=1, le=100),
    cursor: str | None = Query(default=None),
    db: Session = Depends(get_db),
) -> JobListResponse:
    page, total, next_cursor = job_service.list_jobs(
        db, provider=provider, status=status, q=q, limit=limit, cursor=cursor
    )
    return JobListResponse.model_validate(
        {
            "data": [job_service.serialize_job(job) for job in page],
            "meta": {"total": total, "limit": limit, "next_cursor": next_cursor},
        }
    )


@router.get("/{job_id}", response_model=JobResponse)
def get_job(job_id: str, db: Session = Depends(get_db)) -> JobResponse:
    job = job_service.get_job_or_404(db, job_id)
    return JobResponse(data=job_service.serialize_job(job))


@router.delete("/{job_id}", response_model=DeleteJobResponse)
def delete_job(job_id: str, db: Session = Depends(get_db)) -> DeleteJobResponse:
    job_service.delete_job(db, job_id)
    return DeleteJobResponse.model_validate({"data": {"id": job_id, "deleted": True}})


@router.post("/{job_id}/refresh", response_model=JobResponse)
def refresh_job(job_id: str, db: Session = Depends(get_db)) -> JobResponse:
    job = job_service.refresh_job(db, job_id)
    return JobResponse(data=job_service.serialize_job(job))


@router.get("/{job_id}/content")
def job_content(job_id: str, asset: int = Query(default=0), db: Session = Depends(get_db)):
    result = job_service.job_content(db, job_id, asset)
    if result.type == "redirect" and result.url:
        return RedirectResponse(result.url, status_code=status.HTTP_302_FOUND)
    background = BackgroundTask(result.close) if result.close else None
    return StreamingResponse(result.stream, media_type=result.content_type, background=background)


@router.post("/{job_id}/remix", response_model=JobResponse, status_code=status.HTTP_201_CREATED)
def remix_job(job_id: str, payload: RemixRequest | None = None, db: Session = Depends(get_db)) -> JobResponse:
    job = job_service.remix_job(db, job_id, payload or RemixRequest())
    return JobResponse(data=job_service.serialize_job(job))


@router.post("/{job_id}/extend", response_model=JobResponse, status_code=status.HTTP_201_CREATED)
def extend_job(job_id: str, payload: ExtendRequest | None = None, db: Session = Depends(get_db)) -> JobResponse:
    job = job_service.extend_job(db, job_id, payload or ExtendRequest())
    return JobResponse(data=job_service.serialize_job(job))
