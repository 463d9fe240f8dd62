"""색인 작업 저장소.

Job / IndexJob / JobLog 의 유일한 변경 경로.
"""
import logging
from datetime import datetime
from typing import Iterable, Optional

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from core.exceptions import ConfigError, JobNotFoundError, JobDeleteError
from models import Job, JobLog, JobStatus, JobType, IndexJob, IndexProvider, Site
from services.state_machine import ensure_transition
from utils.url import normalize_url

logger = logging.getLogger(__name__)

RECOVERY_MESSAGE = "시스템 재시작으로 인해 작업이 중단되었습니다."
RETRY_MESSAGE = "재시도 요청됨"

ORDERABLE_FIELDS = {
    "created_at": Job.created_at,
    "updated_at": Job.updated_at,
    "scheduled_at": Job.scheduled_at,
    "priority": Job.priority,
    "status": Job.status,
}


class JobService:
    def __init__(self, db: Session):
        self.db = db

    # ------------------------------------------------------------------
    # 생성
    # ------------------------------------------------------------------

    def create_index_job(
        self,
        site_id: int,
        provider: IndexProvider,
        url: str,
        subject: Optional[str] = None,
        description: Optional[str] = None,
        priority: int = 1,
        scheduled_at: Optional[datetime] = None,
        published_at: Optional[datetime] = None,
    ) -> tuple[IndexJob, bool]:
        """색인 작업 생성. 이미 같은 (사이트, 제공자, URL)이 있으면 기존 행 반환.

        Returns:
            (IndexJob, created)
        """
        if self.db.get(Site, site_id) is None:
            raise ConfigError(f"Site {site_id} not found")

        normalized = normalize_url(url)
        existing = self._find_index_job(site_id, provider, normalized)
        if existing:
            logger.debug(f"중복 색인 요청 무시: {provider.value} {normalized}")
            return existing, False

        job = Job(
            type=JobType.INDEX,
            status=JobStatus.PENDING,
            subject=subject or f"[{provider.value}] {normalized}",
            description=description,
            priority=priority,
            scheduled_at=scheduled_at or datetime.utcnow(),
        )
        job.index_job = IndexJob(
            site_id=site_id,
            provider=provider,
            url=normalized,
            status=JobStatus.PENDING.value,
            published_at=published_at,
        )
        job.logs.append(JobLog(message=f"인덱싱 작업 생성됨: {provider.value} - {normalized}"))
        self.db.add(job)

        try:
            self.db.commit()
        except IntegrityError:
            # 동시 생성 경합: 먼저 커밋된 행을 돌려준다
            self.db.rollback()
            existing = self._find_index_job(site_id, provider, normalized)
            if existing is None:
                raise
            return existing, False

        self.db.refresh(job)
        return job.index_job, True

    def _find_index_job(self, site_id: int, provider: IndexProvider, url: str) -> Optional[IndexJob]:
        return (
            self.db.query(IndexJob)
            .filter(
                IndexJob.site_id == site_id,
                IndexJob.provider == provider,
                IndexJob.url == url,
            )
            .first()
        )

    # ------------------------------------------------------------------
    # 조회
    # ------------------------------------------------------------------

    def get(self, job_id: int) -> Job:
        job = self.db.get(Job, job_id)
        if job is None:
            raise JobNotFoundError(job_id)
        return job

    def get_index_job(self, job_id: int) -> Optional[IndexJob]:
        return self.db.query(IndexJob).filter(IndexJob.job_id == job_id).first()

    def _filtered(self, status: Optional[JobStatus] = None, search: Optional[str] = None):
        query = self.db.query(Job)
        if status:
            query = query.filter(Job.status == status)
        if search:
            pattern = f"%{search}%"
            query = query.filter(
                or_(
                    Job.subject.ilike(pattern),
                    Job.description.ilike(pattern),
                    Job.result_msg.ilike(pattern),
                )
            )
        return query

    def list_jobs(
        self,
        status: Optional[JobStatus] = None,
        search: Optional[str] = None,
        order_by: str = "created_at",
        order: str = "desc",
        skip: int = 0,
        limit: int = 50,
    ) -> list[Job]:
        column = ORDERABLE_FIELDS.get(order_by, Job.created_at)
        ordering = column.asc() if order == "asc" else column.desc()
        return (
            self._filtered(status, search)
            .order_by(ordering, Job.id.desc())
            .offset(skip)
            .limit(limit)
            .all()
        )

    def count_jobs(self, status: Optional[JobStatus] = None, search: Optional[str] = None) -> int:
        return self._filtered(status, search).count()

    def list_index_jobs_for_site(self, site_id: int, page: int = 1, limit: int = 20) -> tuple[list[IndexJob], int]:
        query = self.db.query(IndexJob).filter(IndexJob.site_id == site_id)
        total = query.count()
        items = (
            query.order_by(IndexJob.created_at.desc(), IndexJob.id.desc())
            .offset((max(page, 1) - 1) * limit)
            .limit(limit)
            .all()
        )
        return items, total

    def existing_urls_for_site(self, site_id: int) -> set[str]:
        """사이트에 등록된 모든 색인 URL (제공자 무관)."""
        rows = self.db.query(IndexJob.url).filter(IndexJob.site_id == site_id).distinct().all()
        return {row[0] for row in rows}

    # ------------------------------------------------------------------
    # 사용자 조작
    # ------------------------------------------------------------------

    def retry(self, job_id: int) -> Job:
        """FAILED → PENDING. 시작/완료 시각과 메시지를 비운다."""
        job = self.get(job_id)
        ensure_transition(job.status, JobStatus.PENDING, manual=True)
        self._reset_for_retry(job)
        self.db.commit()
        self.db.refresh(job)
        return job

    def retry_many(self, job_ids: Iterable[int]) -> int:
        jobs = (
            self.db.query(Job)
            .filter(Job.id.in_(list(job_ids)), Job.status == JobStatus.FAILED)
            .all()
        )
        for job in jobs:
            self._reset_for_retry(job)
        self.db.commit()
        return len(jobs)

    def _reset_for_retry(self, job: Job) -> None:
        job.status = JobStatus.PENDING
        job.started_at = None
        job.completed_at = None
        job.error_message = None
        job.result_msg = None
        if job.index_job:
            job.index_job.status = JobStatus.PENDING.value
        job.logs.append(JobLog(message=RETRY_MESSAGE))

    def request(self, job_id: int) -> Job:
        """PENDING → REQUEST (수동 보류)."""
        return self._manual_move(job_id, JobStatus.REQUEST, "수동 보류됨")

    def release(self, job_id: int) -> Job:
        """REQUEST → PENDING."""
        return self._manual_move(job_id, JobStatus.PENDING, "보류 해제됨")

    def _manual_move(self, job_id: int, target: JobStatus, message: str) -> Job:
        job = self.get(job_id)
        ensure_transition(job.status, target, manual=True)
        job.status = target
        if job.index_job:
            job.index_job.status = target.value
        job.logs.append(JobLog(message=message))
        self.db.commit()
        self.db.refresh(job)
        return job

    def delete(self, job_id: int) -> None:
        job = self.get(job_id)
        if job.status == JobStatus.PROCESSING:
            raise JobDeleteError(f"Job {job_id} is processing and cannot be deleted")
        self.db.delete(job)
        self.db.commit()

    def delete_many(self, job_ids: Iterable[int]) -> int:
        """처리 중인 작업은 건너뛴다."""
        jobs = (
            self.db.query(Job)
            .filter(Job.id.in_(list(job_ids)), Job.status != JobStatus.PROCESSING)
            .all()
        )
        for job in jobs:
            self.db.delete(job)
        self.db.commit()
        return len(jobs)

    # ------------------------------------------------------------------
    # 로그
    # ------------------------------------------------------------------

    def append_log(self, job_id: int, message: str, level: str = "info") -> JobLog:
        log = JobLog(job_id=job_id, message=message, level=level)
        self.db.add(log)
        self.db.commit()
        self.db.refresh(log)
        return log

    def get_logs(self, job_id: int) -> list[JobLog]:
        self.get(job_id)
        return (
            self.db.query(JobLog)
            .filter(JobLog.job_id == job_id)
            .order_by(JobLog.created_at.asc(), JobLog.id.asc())
            .all()
        )

    def get_latest_log(self, job_id: int) -> Optional[JobLog]:
        self.get(job_id)
        return (
            self.db.query(JobLog)
            .filter(JobLog.job_id == job_id)
            .order_by(JobLog.created_at.desc(), JobLog.id.desc())
            .first()
        )

    # ------------------------------------------------------------------
    # 스케줄러 전용
    # ------------------------------------------------------------------

    def fetch_next_pending(self) -> Optional[Job]:
        """예약 시각이 지난 가장 오래된 PENDING 작업."""
        return (
            self.db.query(Job)
            .filter(Job.status == JobStatus.PENDING, Job.scheduled_at <= datetime.utcnow())
            .order_by(Job.created_at.asc(), Job.id.asc())
            .first()
        )

    def mark_processing(self, job: Job) -> Job:
        ensure_transition(job.status, JobStatus.PROCESSING, manual=False)
        job.status = JobStatus.PROCESSING
        job.started_at = datetime.utcnow()
        if job.index_job:
            job.index_job.status = JobStatus.PROCESSING.value
        job.logs.append(JobLog(message="작업 처리를 시작합니다."))
        self.db.commit()
        self.db.refresh(job)
        return job

    def mark_completed(self, job: Job, result_msg: str) -> Job:
        ensure_transition(job.status, JobStatus.COMPLETED, manual=False)
        job.status = JobStatus.COMPLETED
        job.completed_at = datetime.utcnow()
        job.result_msg = result_msg
        if job.index_job:
            job.index_job.status = JobStatus.COMPLETED.value
        job.logs.append(JobLog(message=f"작업 완료: {result_msg}"))
        self.db.commit()
        self.db.refresh(job)
        return job

    def mark_failed(self, job: Job, error_message: str) -> Job:
        ensure_transition(job.status, JobStatus.FAILED, manual=False)
        job.status = JobStatus.FAILED
        job.completed_at = datetime.utcnow()
        job.error_message = error_message
        if job.index_job:
            job.index_job.status = JobStatus.FAILED.value
        job.logs.append(JobLog(message=f"작업 실패: {error_message}", level="error"))
        self.db.commit()
        self.db.refresh(job)
        return job

    def recover_stranded_jobs(self) -> int:
        """PROCESSING 으로 남은 작업을 모두 FAILED 처리 (재시작 복구)."""
        jobs = self.db.query(Job).filter(Job.status == JobStatus.PROCESSING).all()
        for job in jobs:
            job.status = JobStatus.FAILED
            job.completed_at = datetime.utcnow()
            job.error_message = RECOVERY_MESSAGE
            if job.index_job:
                job.index_job.status = JobStatus.FAILED.value
            job.logs.append(JobLog(message=RECOVERY_MESSAGE, level="error"))
        self.db.commit()
        if jobs:
            logger.warning(f"재시작 복구: PROCESSING 작업 {len(jobs)}건을 FAILED 처리")
        return len(jobs)
