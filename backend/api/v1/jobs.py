from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from core.database import get_db
from core.exceptions import (
    ConfigError,
    IndexerError,
    InvalidTransitionError,
    JobDeleteError,
    JobNotFoundError,
)
from models import IndexProvider, JobStatus
from schemas import (
    BulkResult,
    IndexJobCreate,
    JobCreateResult,
    JobIdsRequest,
    JobListResponse,
    JobLogResponse,
    JobResponse,
)
from services import JobService

router = APIRouter()


def _get_job_or_404(service: JobService, job_id: int):
    try:
        return service.get(job_id)
    except JobNotFoundError:
        raise HTTPException(status_code=404, detail="작업을 찾을 수 없습니다.")


@router.post("", response_model=JobCreateResult, status_code=201)
def create_jobs(data: IndexJobCreate, db: Session = Depends(get_db)):
    """사이트의 URL 들을 제공자별 색인 작업으로 등록. 이미 있는 (제공자, URL)은 건너뛴다."""
    service = JobService(db)
    created = []
    duplicates = 0
    for url in data.urls:
        for provider in data.providers:
            try:
                index_job, is_new = service.create_index_job(
                    data.site_id,
                    provider,
                    url,
                    priority=data.priority,
                    scheduled_at=data.scheduled_at,
                )
            except ConfigError as e:
                raise HTTPException(status_code=404, detail=str(e))
            except ValueError as e:
                raise HTTPException(status_code=422, detail=str(e))
            if is_new:
                created.append(index_job.job)
            else:
                duplicates += 1
    return JobCreateResult(created=created, duplicates=duplicates)


@router.get("", response_model=JobListResponse)
def list_jobs(
    status: Optional[JobStatus] = None,
    search: Optional[str] = None,
    order_by: str = "created_at",
    order: str = Query("desc", pattern="^(asc|desc)$"),
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=500),
    db: Session = Depends(get_db),
):
    service = JobService(db)
    items = service.list_jobs(
        status=status, search=search, order_by=order_by, order=order, skip=skip, limit=limit
    )
    return JobListResponse(
        items=items,
        total=service.count_jobs(status=status, search=search),
        skip=skip,
        limit=limit,
    )


@router.post("/retry", response_model=BulkResult)
def retry_jobs(data: JobIdsRequest, db: Session = Depends(get_db)):
    """FAILED 작업들을 다시 대기열로. FAILED 가 아닌 작업은 무시된다."""
    affected = JobService(db).retry_many(data.ids)
    return BulkResult(requested=len(data.ids), affected=affected)


@router.delete("", response_model=BulkResult)
def delete_jobs(data: JobIdsRequest, db: Session = Depends(get_db)):
    affected = JobService(db).delete_many(data.ids)
    return BulkResult(requested=len(data.ids), affected=affected)


@router.get("/{job_id}", response_model=JobResponse)
def get_job(job_id: int, db: Session = Depends(get_db)):
    return _get_job_or_404(JobService(db), job_id)


@router.get("/{job_id}/logs", response_model=List[JobLogResponse])
def get_job_logs(job_id: int, db: Session = Depends(get_db)):
    service = JobService(db)
    _get_job_or_404(service, job_id)
    return service.get_logs(job_id)


@router.get("/{job_id}/logs/latest", response_model=Optional[JobLogResponse])
def get_latest_job_log(job_id: int, db: Session = Depends(get_db)):
    service = JobService(db)
    _get_job_or_404(service, job_id)
    return service.get_latest_log(job_id)


@router.get("/{job_id}/index-status")
async def get_index_status(job_id: int, db: Session = Depends(get_db)):
    """Google 작업의 URL 색인 알림 상태 조회."""
    from scheduler.jobs.job_queue import get_job_queue_processor
    from services.site_config_service import build_submit_target

    service = JobService(db)
    job = _get_job_or_404(service, job_id)
    index_job = job.index_job
    if index_job is None or index_job.provider != IndexProvider.GOOGLE:
        raise HTTPException(status_code=400, detail="Google 색인 작업만 상태 조회가 가능합니다.")

    try:
        target = build_submit_target(db, index_job.site_id, IndexProvider.GOOGLE)
        strategy = get_job_queue_processor().registry.get(IndexProvider.GOOGLE)
        return await strategy.get_status(target, index_job.url)
    except ConfigError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except IndexerError as e:
        raise HTTPException(status_code=502, detail=str(e))


def _transition(action, job_id: int):
    try:
        return action(job_id)
    except JobNotFoundError:
        raise HTTPException(status_code=404, detail="작업을 찾을 수 없습니다.")
    except InvalidTransitionError as e:
        raise HTTPException(status_code=409, detail=str(e))


@router.post("/{job_id}/retry", response_model=JobResponse)
def retry_job(job_id: int, db: Session = Depends(get_db)):
    return _transition(JobService(db).retry, job_id)


@router.post("/{job_id}/request", response_model=JobResponse)
def hold_job(job_id: int, db: Session = Depends(get_db)):
    """PENDING 작업을 보류(REQUEST)."""
    return _transition(JobService(db).request, job_id)


@router.post("/{job_id}/pending", response_model=JobResponse)
def release_job(job_id: int, db: Session = Depends(get_db)):
    return _transition(JobService(db).release, job_id)


@router.delete("/{job_id}", status_code=204)
def delete_job(job_id: int, db: Session = Depends(get_db)):
    try:
        JobService(db).delete(job_id)
    except JobNotFoundError:
        raise HTTPException(status_code=404, detail="작업을 찾을 수 없습니다.")
    except JobDeleteError as e:
        raise HTTPException(status_code=409, detail=str(e))
