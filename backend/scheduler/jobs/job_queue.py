"""색인 작업 큐 처리.

스케줄러가 주기적으로 tick() 을 호출한다. 한 번에 하나의 작업만 PROCESSING 상태가 되도록
진행 중 플래그로 단일 실행을 보장한다.
"""
import logging
from typing import Callable, Optional

from sqlalchemy.orm import Session

from core.database import SessionLocal
from models import Job
from services.job_service import JobService
from services.indexers.registry import StrategyRegistry, build_default_registry
from services.site_config_service import build_submit_target

logger = logging.getLogger(__name__)


class JobQueueProcessor:
    def __init__(
        self,
        session_factory: Callable[[], Session] = SessionLocal,
        registry: Optional[StrategyRegistry] = None,
    ):
        self.session_factory = session_factory
        self._registry = registry
        self._processing = False

    @property
    def registry(self) -> StrategyRegistry:
        if self._registry is None:
            self._registry = build_default_registry()
        return self._registry

    @property
    def is_processing(self) -> bool:
        return self._processing

    def recover_on_startup(self) -> int:
        """재시작 전에 PROCESSING 으로 남은 작업을 FAILED 처리."""
        db = self.session_factory()
        try:
            return JobService(db).recover_stranded_jobs()
        finally:
            db.close()

    async def tick(self) -> Optional[int]:
        """대기 작업 하나 처리. 처리한 작업 id (없거나 진행 중이면 None)."""
        if self._processing:
            logger.debug("이전 작업 처리 중, 이번 주기는 건너뜀")
            return None

        self._processing = True
        db = self.session_factory()
        try:
            job = JobService(db).fetch_next_pending()
            if job is None:
                return None
            job_id = job.id
            await self.process_job(db, job)
            return job_id
        except Exception as e:
            logger.error(f"작업 큐 처리 중 오류: {e}", exc_info=True)
            return None
        finally:
            db.close()
            self._processing = False

    async def close(self) -> None:
        if self._registry is not None:
            await self._registry.close()

    async def process_job(self, db: Session, job: Job) -> Job:
        """작업 하나를 PROCESSING → COMPLETED/FAILED 로 진행."""
        jobs = JobService(db)
        job = jobs.mark_processing(job)
        job_id = job.id
        index_job = job.index_job

        try:
            if index_job is None:
                raise ValueError(f"Job {job_id} 에 색인 대상이 없습니다")
            provider = index_job.provider
            url = index_job.url
            target = build_submit_target(db, index_job.site_id, provider)
            strategy = self.registry.get(provider)
            logger.info(f"작업 {job_id} 처리: {provider.value} {url}")
            outcome = await strategy.submit(target, url)
        except Exception as e:
            logger.error(f"작업 {job_id} 실패: {e}")
            db.rollback()
            return jobs.mark_failed(jobs.get(job_id), str(e))

        if outcome.is_completed:
            return jobs.mark_completed(job, outcome.message)
        return jobs.mark_failed(job, outcome.message)


_processor: Optional[JobQueueProcessor] = None


def get_job_queue_processor() -> JobQueueProcessor:
    global _processor
    if _processor is None:
        _processor = JobQueueProcessor()
    return _processor


async def process_next_index_job() -> Optional[int]:
    """스케줄러 등록용 진입점."""
    return await get_job_queue_processor().tick()
