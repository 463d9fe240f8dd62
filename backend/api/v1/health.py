"""스케줄러/작업 큐 상태 엔드포인트."""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from core.database import get_db
from models import JobStatus
from services import JobService
from scheduler import get_scheduler_manager
from scheduler.jobs.job_queue import get_job_queue_processor

router = APIRouter()


@router.get("/scheduler")
def scheduler_status():
    """스케줄러 실행 여부와 등록된 작업 목록."""
    scheduler = get_scheduler_manager()
    return {
        "running": scheduler.is_running,
        "jobs": scheduler.get_jobs() if scheduler.is_running else [],
        "queue_processing": get_job_queue_processor().is_processing,
    }


@router.get("/jobs")
def job_counts(db: Session = Depends(get_db)):
    """상태별 작업 수."""
    service = JobService(db)
    return {status.value: service.count_jobs(status=status) for status in JobStatus}
