"""웹 콘솔(브라우저 자동화) 기반 제출 전략 공통부."""
import asyncio
import logging
from abc import abstractmethod
from typing import Any, Awaitable, Callable, Optional

from playwright.async_api import Error as PlaywrightError

from core.exceptions import BrowserError, ConfigError, IndexerError
from integrations.browser.profiles import ProviderProfile
from integrations.browser.session import BrowserSession, BrowserSessionManager
from services.indexers.base import (
    BatchOutcome,
    OutcomeCallback,
    SubmissionStrategy,
    SubmitOutcome,
    SubmitTarget,
    outcome_from_error,
)

logger = logging.getLogger(__name__)


class DialogRecorder:
    """페이지 dialog(alert/confirm) 메시지를 모으고 자동으로 닫는다."""

    def __init__(self, page: Any):
        self.page = page
        self.messages: list[str] = []

    async def _handle(self, dialog: Any) -> None:
        self.messages.append(dialog.message)
        await dialog.accept()

    def __enter__(self) -> "DialogRecorder":
        self.page.on("dialog", self._handle)
        return self

    def __exit__(self, *exc_info) -> None:
        self.page.remove_listener("dialog", self._handle)


async def poll_until(
    check: Callable[[], Awaitable[Optional[SubmitOutcome]]],
    timeout_seconds: float,
    interval_seconds: float,
) -> Optional[SubmitOutcome]:
    """check() 가 결과를 돌려줄 때까지 주기적으로 확인. 시간 초과면 None."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout_seconds
    while True:
        result = await check()
        if result is not None:
            return result
        if loop.time() >= deadline:
            return None
        await asyncio.sleep(interval_seconds)


class ConsoleIndexer(SubmissionStrategy):
    """하나의 브라우저 세션으로 여러 URL 을 순서대로 제출한다.

    세션 준비(쿠키 복원/로그인) 실패는 submit() 에서 예외로 올라가고,
    submit_batch() 에서는 남은 모든 URL 의 오류 결과로 기록된다.
    """

    profile: ProviderProfile

    def __init__(
        self,
        session_manager: BrowserSessionManager,
        poll_timeout_seconds: float,
        poll_interval_seconds: float,
    ):
        self.session_manager = session_manager
        self.poll_timeout_seconds = poll_timeout_seconds
        self.poll_interval_seconds = poll_interval_seconds

    @abstractmethod
    def console_url(self, target: SubmitTarget) -> str:
        pass

    @abstractmethod
    async def submit_in_session(self, session: BrowserSession, target: SubmitTarget, url: str) -> SubmitOutcome:
        pass

    def _require_account(self, target: SubmitTarget) -> str:
        if not target.account_id:
            raise ConfigError(f"{self.provider.value} 계정이 설정되지 않았습니다", provider=self.provider.value)
        return target.account_id

    async def _run(
        self,
        target: SubmitTarget,
        urls: list[str],
        batch: BatchOutcome,
        on_outcome: Optional[OutcomeCallback],
    ) -> None:
        account_id = self._require_account(target)
        async with self.session_manager.open(self.profile, account_id, headless=target.headless) as session:
            await self.session_manager.ensure_logged_in(
                session, self.console_url(target), target.credentials
            )
            for url in urls:
                try:
                    outcome = await self.submit_in_session(session, target, url)
                except IndexerError as e:
                    outcome = outcome_from_error(url, e)
                except PlaywrightError as e:
                    logger.warning(f"[{self.provider.value}] 브라우저 조작 실패: {url} ({e})")
                    error = BrowserError(f"브라우저 조작 실패: {e}", provider=self.provider.value)
                    outcome = outcome_from_error(url, error)
                self.record(batch, outcome, on_outcome)

    async def submit(self, target: SubmitTarget, url: str) -> SubmitOutcome:
        batch = BatchOutcome()
        await self._run(target, [url], batch, None)
        return batch.outcomes[0]

    async def submit_batch(
        self,
        target: SubmitTarget,
        urls: list[str],
        on_outcome: Optional[OutcomeCallback] = None,
    ) -> BatchOutcome:
        batch = BatchOutcome()
        try:
            await self._run(target, urls, batch, on_outcome)
        except Exception as e:
            logger.error(f"[{self.provider.value}] 세션 준비/실행 실패: {e}")
            done = {o.url for o in batch.outcomes}
            for url in urls:
                if url not in done:
                    self.record(batch, outcome_from_error(url, e), on_outcome)
        return batch
