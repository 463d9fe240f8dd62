"""Google Indexing API 제출 전략."""
import asyncio
import logging
from typing import Optional

from core.config import get_settings
from integrations.google.auth import ServiceAccount, parse_service_account
from integrations.google.client import GoogleIndexingClient
from models.index_job import IndexProvider
from services.indexers.base import (
    BatchOutcome,
    OutcomeCallback,
    OutcomeStatus,
    SubmissionStrategy,
    SubmitOutcome,
    SubmitTarget,
    outcome_from_error,
)

logger = logging.getLogger(__name__)


class GoogleIndexer(SubmissionStrategy):
    """서비스 계정 토큰으로 urlNotifications:publish 호출.

    배치는 concurrency 개씩 동시에 보내고 묶음 사이에 delay 초 쉰다.
    """

    provider = IndexProvider.GOOGLE

    def __init__(
        self,
        client: Optional[GoogleIndexingClient] = None,
        concurrency: Optional[int] = None,
        delay_seconds: Optional[float] = None,
    ):
        settings = get_settings()
        self.client = client or GoogleIndexingClient()
        self.concurrency = max(1, concurrency or settings.google_batch_concurrency)
        self.delay_seconds = settings.google_batch_delay_seconds if delay_seconds is None else delay_seconds

    def _account(self, target: SubmitTarget) -> ServiceAccount:
        return parse_service_account(target.config.get("service_account_json"))

    async def submit(self, target: SubmitTarget, url: str) -> SubmitOutcome:
        account = self._account(target)
        await self.client.publish(account, url)
        return SubmitOutcome(url, True, "Google 색인 요청 성공", OutcomeStatus.SUCCESS)

    async def submit_batch(
        self,
        target: SubmitTarget,
        urls: list[str],
        on_outcome: Optional[OutcomeCallback] = None,
    ) -> BatchOutcome:
        batch = BatchOutcome()
        try:
            self._account(target)
        except Exception as e:
            for url in urls:
                self.record(batch, outcome_from_error(url, e), on_outcome)
            return batch

        for start in range(0, len(urls), self.concurrency):
            window = urls[start:start + self.concurrency]
            results = await asyncio.gather(*(self.submit_safe(target, url) for url in window))
            for outcome in results:
                self.record(batch, outcome, on_outcome)

            if start + self.concurrency < len(urls) and self.delay_seconds > 0:
                await asyncio.sleep(self.delay_seconds)

        logger.info(f"Google 배치 색인 완료: {batch.success}/{batch.total}")
        return batch

    async def get_status(self, target: SubmitTarget, url: str) -> dict:
        """색인 알림 메타데이터 조회."""
        return await self.client.get_metadata(self._account(target), url)

    async def close(self) -> None:
        await self.client.close()
