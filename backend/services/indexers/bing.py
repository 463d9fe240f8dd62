"""Bing Webmaster API 제출 전략."""
import logging
from typing import Optional

from core.exceptions import ConfigError
from integrations.bing.client import BingWebmasterClient
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

# SubmitUrlBatch 1회 최대 URL 수
MAX_URLS_PER_REQUEST = 500


class BingIndexer(SubmissionStrategy):
    provider = IndexProvider.BING

    def __init__(self, client: Optional[BingWebmasterClient] = None):
        self.client = client or BingWebmasterClient()

    def _api_key(self, target: SubmitTarget) -> str:
        if not target.config.get("use"):
            raise ConfigError("Bing 색인이 비활성화되어 있습니다", provider="BING")
        api_key = target.config.get("api_key")
        if not api_key:
            raise ConfigError("Bing API 키가 설정되지 않았습니다", provider="BING")
        return api_key

    async def submit(self, target: SubmitTarget, url: str) -> SubmitOutcome:
        await self.client.submit_url_batch(self._api_key(target), target.site_url, [url])
        return SubmitOutcome(url, True, "Bing 색인 요청 성공", OutcomeStatus.SUCCESS)

    async def submit_batch(
        self,
        target: SubmitTarget,
        urls: list[str],
        on_outcome: Optional[OutcomeCallback] = None,
    ) -> BatchOutcome:
        """URL 목록을 한 요청으로 제출. 요청 단위 실패는 해당 묶음의 모든 URL 에 기록."""
        batch = BatchOutcome()
        try:
            api_key = self._api_key(target)
        except ConfigError as e:
            for url in urls:
                self.record(batch, outcome_from_error(url, e), on_outcome)
            return batch

        for start in range(0, len(urls), MAX_URLS_PER_REQUEST):
            chunk = urls[start:start + MAX_URLS_PER_REQUEST]
            try:
                await self.client.submit_url_batch(api_key, target.site_url, chunk)
            except Exception as e:
                for url in chunk:
                    self.record(batch, outcome_from_error(url, e), on_outcome)
                continue
            for url in chunk:
                self.record(
                    batch,
                    SubmitOutcome(url, True, "Bing 색인 요청 성공", OutcomeStatus.SUCCESS),
                    on_outcome,
                )
        return batch

    async def close(self) -> None:
        await self.client.close()
