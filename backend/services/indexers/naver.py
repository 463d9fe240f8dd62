"""네이버 서치어드바이저 웹 콘솔 제출 전략."""
import logging
from typing import Optional
from urllib.parse import quote, urlsplit

from core.config import get_settings
from core.exceptions import LoginRequiredError
from integrations.browser.profiles import NAVER_PROFILE
from integrations.browser.session import BrowserSession, BrowserSessionManager
from models.index_job import IndexProvider
from services.indexers.base import OutcomeStatus, SubmitOutcome, SubmitTarget
from services.indexers.console import ConsoleIndexer, DialogRecorder, poll_until
from utils.url import try_normalize_url

logger = logging.getLogger(__name__)

URL_INPUT_SELECTOR = 'input[type="text"][maxlength="2048"]'
CONFIRM_BUTTON_SELECTOR = 'button:has-text("확인")'
FIRST_ROW_LINK_SELECTOR = ".v-data-table__wrapper tbody tr:first-child td:nth-child(2) a"

SUCCESS_MESSAGE = "색인 요청 성공"
DUPLICATE_MESSAGE = "이미 요청된 URL"
TIMEOUT_MESSAGE = "색인 요청 실패 또는 테이블에 20초 내 반영되지 않음"
DUPLICATE_HINTS = ("이미", "already")


def row_matches(url: str, text: str, href: str) -> bool:
    """요청 목록 첫 행이 제출한 URL 인지 (전체 URL 또는 경로 표기 모두 허용)."""
    target = try_normalize_url(url)
    if href and try_normalize_url(href) == target:
        return True
    text = text.strip()
    if not text:
        return False
    if try_normalize_url(text) == target:
        return True
    path = urlsplit(url).path.rstrip("/") or "/"
    query = urlsplit(url).query
    shown = text.rstrip("/") or "/"
    return shown == path or (bool(query) and shown == f"{path}?{query}")


class NaverIndexer(ConsoleIndexer):
    """서치어드바이저 '웹 페이지 수집 요청' 화면을 조작한다.

    저장된 쿠키 세션이 있어야 하며, 세션이 만료되어 로그인 벽을 만나면
    계정 비밀번호로 자동 로그인 (CAPTCHA 포함) 을 시도한다.
    """

    provider = IndexProvider.NAVER
    profile = NAVER_PROFILE

    def __init__(
        self,
        session_manager: BrowserSessionManager,
        poll_timeout_seconds: Optional[float] = None,
        poll_interval_seconds: float = 0.5,
    ):
        settings = get_settings()
        super().__init__(
            session_manager,
            poll_timeout_seconds or settings.submission_poll_timeout_seconds,
            poll_interval_seconds,
        )

    def console_url(self, target: SubmitTarget) -> str:
        return self.profile.console_url.format(site=quote(target.site_url, safe=""))

    async def submit_in_session(self, session: BrowserSession, target: SubmitTarget, url: str) -> SubmitOutcome:
        page = session.page
        console = self.console_url(target)
        if session.url != console:
            await session.goto(console)
        if await session.is_login_wall():
            raise LoginRequiredError("네이버 로그인이 필요합니다", provider=self.provider.value)

        with DialogRecorder(page) as dialogs:
            await page.fill(URL_INPUT_SELECTOR, url)
            await page.click(CONFIRM_BUTTON_SELECTOR)

            async def check() -> Optional[SubmitOutcome]:
                if dialogs.messages:
                    message = dialogs.messages[-1].strip()
                    # 빈 dialog 도 중복 요청 안내로 취급
                    if not message or any(hint in message for hint in DUPLICATE_HINTS):
                        detail = f"{DUPLICATE_MESSAGE}: {message}" if message else DUPLICATE_MESSAGE
                        return SubmitOutcome(url, False, detail, OutcomeStatus.SKIPPED, "duplicate")
                    return SubmitOutcome(url, False, message, OutcomeStatus.FAIL)

                link = await page.query_selector(FIRST_ROW_LINK_SELECTOR)
                if link is not None:
                    text = await link.inner_text()
                    href = await link.get_attribute("href") or ""
                    if row_matches(url, text, href):
                        return SubmitOutcome(url, True, SUCCESS_MESSAGE, OutcomeStatus.SUCCESS)
                return None

            outcome = await poll_until(check, self.poll_timeout_seconds, self.poll_interval_seconds)

        return outcome or SubmitOutcome(url, False, TIMEOUT_MESSAGE, OutcomeStatus.FAIL)
