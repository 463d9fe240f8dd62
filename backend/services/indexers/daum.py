"""다음 웹마스터도구 수집 요청 제출 전략."""
import logging
from typing import Optional

from core.exceptions import LoginRequiredError
from integrations.browser.profiles import DAUM_PROFILE
from integrations.browser.session import BrowserSession, BrowserSessionManager
from models.index_job import IndexProvider
from services.indexers.base import OutcomeStatus, SubmitOutcome, SubmitTarget
from services.indexers.console import ConsoleIndexer, DialogRecorder, poll_until

logger = logging.getLogger(__name__)

URL_INPUT_SELECTOR = "#collectReqUrl"
SUBMIT_BUTTON_SELECTOR = ".btn_result"
RESULT_LAYER_SELECTOR = ".webmaster_layer.layer_collect:not(.hide)"
CONFIRM_BUTTON_SELECTOR = ".btn_confirm"

SUCCESS_MESSAGE = "수집요청 완료"
TIMEOUT_MESSAGE = "수집요청 실패 또는 레이어 미노출"
DUPLICATE_HINTS = ("이미", "already")


class DaumIndexer(ConsoleIndexer):
    """사이트 URL + PIN 코드로 로그인해 수집 요청을 넣는다.

    결과 레이어가 뜨면 성공, '이미' 문구면 중복으로 건너뜀, 10초 내 미노출이면 실패.
    """

    provider = IndexProvider.DAUM
    profile = DAUM_PROFILE

    def __init__(
        self,
        session_manager: BrowserSessionManager,
        poll_timeout_seconds: float = 10.0,
        poll_interval_seconds: float = 0.3,
    ):
        super().__init__(session_manager, poll_timeout_seconds, poll_interval_seconds)

    def console_url(self, target: SubmitTarget) -> str:
        return self.profile.console_url

    async def submit_in_session(self, session: BrowserSession, target: SubmitTarget, url: str) -> SubmitOutcome:
        page = session.page
        if not session.url.startswith(self.profile.console_url):
            await session.goto(self.profile.console_url)
        if await session.is_login_wall():
            raise LoginRequiredError("다음 웹마스터도구 로그인이 필요합니다", provider=self.provider.value)

        with DialogRecorder(page) as dialogs:
            await page.fill(URL_INPUT_SELECTOR, url)
            await page.click(SUBMIT_BUTTON_SELECTOR)

            async def check() -> Optional[SubmitOutcome]:
                layer = await page.query_selector(RESULT_LAYER_SELECTOR)
                if layer is not None:
                    text = (await layer.inner_text()).strip()
                    confirm = await page.query_selector(CONFIRM_BUTTON_SELECTOR)
                    if confirm is not None:
                        await confirm.click()
                    if any(hint in text for hint in DUPLICATE_HINTS):
                        return SubmitOutcome(url, False, text, OutcomeStatus.SKIPPED, "duplicate")
                    return SubmitOutcome(url, True, SUCCESS_MESSAGE, OutcomeStatus.SUCCESS)

                if dialogs.messages:
                    message = dialogs.messages[-1]
                    if any(hint in message for hint in DUPLICATE_HINTS):
                        return SubmitOutcome(url, False, message, OutcomeStatus.SKIPPED, "duplicate")
                    return SubmitOutcome(url, False, message, OutcomeStatus.FAIL)
                return None

            outcome = await poll_until(check, self.poll_timeout_seconds, self.poll_interval_seconds)

        return outcome or SubmitOutcome(url, False, TIMEOUT_MESSAGE, OutcomeStatus.FAIL)
