"""제공자별 URL 제출 전략 공통 인터페이스."""
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum as PyEnum
from typing import Callable, Optional

from core.exceptions import IndexerError, SubmissionError, SubmissionErrorKind
from integrations.browser.session import LoginCredentials
from models.index_job import IndexProvider

logger = logging.getLogger(__name__)


class OutcomeStatus(str, PyEnum):
    SUCCESS = "success"
    SKIPPED = "skipped"  # 이미 요청된 URL
    FAIL = "fail"  # 제출했지만 반영 확인 실패
    ERROR = "error"  # 예외


@dataclass
class SubmitTarget:
    """한 사이트에 대한 제공자 제출 문맥."""

    site_id: int
    site_url: str
    config: dict = field(default_factory=dict)
    account_id: Optional[str] = None
    credentials: Optional[LoginCredentials] = None
    headless: bool = True


@dataclass
class SubmitOutcome:
    url: str
    success: bool
    message: str
    status: OutcomeStatus = OutcomeStatus.SUCCESS
    error_kind: Optional[str] = None

    @property
    def is_completed(self) -> bool:
        """작업 관점 완료 여부 (성공 또는 중복 건너뜀)."""
        return self.success or self.status == OutcomeStatus.SKIPPED


@dataclass
class BatchOutcome:
    outcomes: list[SubmitOutcome] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.outcomes)

    @property
    def success(self) -> int:
        return sum(1 for o in self.outcomes if o.is_completed)

    @property
    def failed(self) -> int:
        return self.total - self.success

    @property
    def skipped(self) -> int:
        return sum(1 for o in self.outcomes if o.status == OutcomeStatus.SKIPPED)

    @property
    def success_urls(self) -> list[str]:
        return [o.url for o in self.outcomes if o.is_completed]

    @property
    def failed_urls(self) -> list[str]:
        return [o.url for o in self.outcomes if not o.is_completed]

    def summary(self) -> dict:
        return {
            "total": self.total,
            "success": self.success,
            "failed": self.failed,
            "skipped": self.skipped,
            "success_urls": self.success_urls,
            "failed_urls": self.failed_urls,
        }


OutcomeCallback = Callable[[SubmitOutcome], None]


def outcome_from_error(url: str, error: Exception) -> SubmitOutcome:
    if isinstance(error, SubmissionError) and error.kind == SubmissionErrorKind.DUPLICATE:
        return SubmitOutcome(url, False, str(error), OutcomeStatus.SKIPPED, error.kind.value)
    if isinstance(error, SubmissionError):
        return SubmitOutcome(url, False, str(error), OutcomeStatus.ERROR, error.kind.value)
    if isinstance(error, IndexerError):
        return SubmitOutcome(url, False, str(error), OutcomeStatus.ERROR, type(error).__name__)
    return SubmitOutcome(url, False, f"예상치 못한 오류: {error}", OutcomeStatus.ERROR, "unknown")


class SubmissionStrategy(ABC):
    """URL 제출 전략.

    submit() 은 설정/인증/세션 오류를 예외로 올리고,
    submit_batch() 는 어떤 URL 이 실패해도 중단하지 않고 URL 별 결과를 모두 기록한다.
    """

    provider: IndexProvider

    @abstractmethod
    async def submit(self, target: SubmitTarget, url: str) -> SubmitOutcome:
        pass

    async def submit_batch(
        self,
        target: SubmitTarget,
        urls: list[str],
        on_outcome: Optional[OutcomeCallback] = None,
    ) -> BatchOutcome:
        batch = BatchOutcome()
        for url in urls:
            self.record(batch, await self.submit_safe(target, url), on_outcome)
        return batch

    async def submit_safe(self, target: SubmitTarget, url: str) -> SubmitOutcome:
        try:
            return await self.submit(target, url)
        except Exception as e:
            return outcome_from_error(url, e)

    def record(
        self,
        batch: BatchOutcome,
        outcome: SubmitOutcome,
        on_outcome: Optional[OutcomeCallback] = None,
    ) -> None:
        batch.outcomes.append(outcome)
        log = logger.info if outcome.is_completed else logger.warning
        log(f"[{self.provider.value}] {outcome.status.value} {outcome.url}: {outcome.message}")
        if on_outcome is not None:
            on_outcome(outcome)

    async def close(self) -> None:
        pass
