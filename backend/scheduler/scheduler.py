"""APScheduler 설정 및 관리."""
import logging
from typing import Optional, Callable, Any

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from apscheduler.events import EVENT_JOB_ERROR, EVENT_JOB_EXECUTED, JobExecutionEvent

from core.config import get_settings

logger = logging.getLogger(__name__)


class SchedulerManager:
    """스케줄러 관리자.

    APScheduler의 AsyncIOScheduler를 래핑하여
    작업 등록, 상태 조회, 시작/종료를 관리합니다.
    """

    def __init__(self):
        self.settings = get_settings()
        self._scheduler: Optional[AsyncIOScheduler] = None
        self._initialized = False

    @property
    def scheduler(self) -> AsyncIOScheduler:
        if self._scheduler is None:
            self._scheduler = AsyncIOScheduler(
                timezone=self.settings.browser_timezone,
                job_defaults={
                    "coalesce": True,  # 놓친 작업 한번만 실행
                    "max_instances": 1,  # 동시 실행 방지
                    "misfire_grace_time": 30,
                }
            )
            self._scheduler.add_listener(
                self._job_listener,
                EVENT_JOB_EXECUTED | EVENT_JOB_ERROR
            )
        return self._scheduler

    def _job_listener(self, event: JobExecutionEvent):
        """작업 실행 이벤트 리스너."""
        if event.exception:
            logger.error(
                f"Job {event.job_id} failed: {event.exception}",
                exc_info=event.exception
            )
        else:
            logger.debug(f"Job {event.job_id} executed successfully")

    def add_interval_job(
        self,
        func: Callable,
        job_id: str,
        seconds: Optional[int] = None,
        minutes: Optional[int] = None,
        **kwargs: Any,
    ) -> None:
        """일정 간격으로 실행되는 작업 등록. 둘 다 없으면 5분."""
        if seconds is None and minutes is None:
            minutes = 5
        interval = {"seconds": seconds or 0, "minutes": minutes or 0}
        self.scheduler.add_job(
            func,
            trigger=IntervalTrigger(**interval),
            id=job_id,
            replace_existing=True,
            **kwargs,
        )
        every = f"{seconds} seconds" if seconds else f"{minutes} minutes"
        logger.info(f"Added interval job: {job_id} (every {every})")

    def remove_job(self, job_id: str) -> bool:
        """작업 제거."""
        try:
            self.scheduler.remove_job(job_id)
            logger.info(f"Removed job: {job_id}")
            return True
        except Exception:
            return False

    def get_jobs(self) -> list[dict]:
        """등록된 작업 목록."""
        jobs = []
        for job in self.scheduler.get_jobs():
            next_run_time = getattr(job, "next_run_time", None)
            jobs.append({
                "id": job.id,
                "name": job.name,
                "next_run_time": next_run_time.isoformat() if next_run_time else None,
                "trigger": str(job.trigger),
            })
        return jobs

    def start(self) -> None:
        """스케줄러 시작."""
        if not self.settings.scheduler_enabled:
            logger.info("Scheduler is disabled by configuration")
            return

        if not self._initialized:
            self._setup_jobs()
            self._initialized = True

        if not self.scheduler.running:
            self.scheduler.start()
            logger.info("Scheduler started")

    def shutdown(self) -> None:
        """스케줄러 종료."""
        if self._scheduler and self._scheduler.running:
            self._scheduler.shutdown(wait=False)
            logger.info("Scheduler shutdown")

    def _setup_jobs(self) -> None:
        """기본 작업 등록."""
        from scheduler.jobs.job_queue import process_next_index_job
        from scheduler.jobs.sitemap_parse import parse_enabled_sitemaps

        # 색인 작업 큐 (10초마다, 한 번에 한 건)
        self.add_interval_job(
            process_next_index_job,
            job_id="index_job_process",
            seconds=self.settings.job_poll_interval_seconds,
        )

        # 사이트맵 신규 URL 수집 (1분마다)
        self.add_interval_job(
            parse_enabled_sitemaps,
            job_id="sitemap_parse",
            minutes=self.settings.sitemap_poll_interval_minutes,
        )

    @property
    def is_running(self) -> bool:
        return self._scheduler is not None and self._scheduler.running


# 싱글톤 인스턴스
_scheduler_manager: Optional[SchedulerManager] = None


def get_scheduler_manager() -> SchedulerManager:
    """스케줄러 매니저 싱글톤 반환."""
    global _scheduler_manager
    if _scheduler_manager is None:
        _scheduler_manager = SchedulerManager()
    return _scheduler_manager
