"""Playwright 브라우저 세션 관리.

세션은 항상 `BrowserSessionManager.open()` 컨텍스트 안에서만 쓰고,
성공/실패/타임아웃/예외 어느 경로든 브라우저를 닫는다.
"""
import asyncio
import base64
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Any, AsyncIterator, Callable, Optional
from urllib.parse import urlsplit

from playwright.async_api import async_playwright, Error as PlaywrightError

from core.config import Settings, get_settings
from core.exceptions import AuthError, BrowserError, CaptchaError, LoginRequiredError
from integrations.browser.cookie_store import CookieStore
from integrations.browser.profiles import ProviderProfile

if TYPE_CHECKING:
    from services.captcha_service import CaptchaResolver

logger = logging.getLogger(__name__)

# (provider, account_id, is_logged_in, last_login)
LoginStatusCallback = Callable[[str, str, bool, Optional[datetime]], None]


@dataclass
class LoginCredentials:
    username: str
    password: str


@dataclass
class CaptchaChallenge:
    image_base64: str
    question: str


class BrowserSession:
    """열린 브라우저 컨텍스트 하나와 그 계정 정보."""

    def __init__(
        self,
        profile: ProviderProfile,
        account_id: str,
        context: Any,
        page: Any,
        cookie_store: CookieStore,
        has_cookies: bool,
    ):
        self.profile = profile
        self.account_id = account_id
        self.context = context
        self.page = page
        self.cookie_store = cookie_store
        self.has_cookies = has_cookies

    @property
    def url(self) -> str:
        return self.page.url or ""

    async def goto(self, url: str, timeout_ms: int = 30000) -> None:
        try:
            await self.page.goto(url, wait_until="domcontentloaded", timeout=timeout_ms)
        except PlaywrightError as e:
            raise BrowserError(f"페이지 이동 실패: {url} ({e})", provider=self.profile.name)

    async def settle(self, timeout_ms: int = 10000) -> None:
        """네비게이션 후 로드 대기. 시간 초과는 무시하고 현재 상태로 진행."""
        try:
            await self.page.wait_for_load_state("domcontentloaded", timeout=timeout_ms)
        except PlaywrightError:
            logger.debug(f"[{self.profile.name}] 로드 대기 시간 초과, 계속 진행")

    async def is_login_wall(self) -> bool:
        """로그인 도메인/경로 또는 로그인 폼 존재 여부로 판정."""
        url = self.url
        host = urlsplit(url).netloc.lower()
        if any(login_host in host for login_host in self.profile.login_hosts):
            return True
        if any(url.startswith(prefix) for prefix in self.profile.login_url_prefixes):
            return True
        if self.profile.login_form_selector:
            return await self.page.query_selector(self.profile.login_form_selector) is not None
        return False

    async def save_cookies(self) -> None:
        cookies = await self.context.cookies()
        self.cookie_store.save(self.profile.name, self.account_id, cookies)
        self.has_cookies = bool(cookies)


class BrowserSessionManager:
    """제공자 콘솔 자동화용 세션 관리자.

    1. 제공자 로케일/타임존으로 브라우저 실행
    2. 저장된 쿠키 주입
    3. 콘솔 이동 후 로그인 벽 감지
    4. 자격 증명이 있으면 로그인 (CAPTCHA 는 resolver 에 위임, 재시도 한도 있음)
    5. 로그인 벽을 벗어나면 쿠키 저장
    """

    def __init__(
        self,
        cookie_store: CookieStore,
        captcha_resolver: Optional["CaptchaResolver"] = None,
        settings: Optional[Settings] = None,
        playwright_factory: Callable[[], Any] = async_playwright,
        status_callback: Optional[LoginStatusCallback] = None,
        poll_interval: float = 1.0,
    ):
        self.cookie_store = cookie_store
        self.captcha_resolver = captcha_resolver
        self.settings = settings or get_settings()
        self._playwright_factory = playwright_factory
        self._status_callback = status_callback
        self.poll_interval = poll_interval

    # ------------------------------------------------------------------
    # 세션 수명
    # ------------------------------------------------------------------

    @asynccontextmanager
    async def open(
        self,
        profile: ProviderProfile,
        account_id: str,
        headless: bool = True,
    ) -> AsyncIterator[BrowserSession]:
        playwright = None
        browser = None
        try:
            try:
                playwright = await self._playwright_factory().start()
                launch_kwargs: dict[str, Any] = {"headless": headless}
                if self.settings.browser_executable_path:
                    launch_kwargs["executable_path"] = self.settings.browser_executable_path
                browser = await playwright.chromium.launch(**launch_kwargs)
                context = await browser.new_context(
                    locale=profile.locale or self.settings.browser_locale,
                    timezone_id=profile.timezone or self.settings.browser_timezone,
                    viewport={"width": 1280, "height": 900},
                )
                cookies = self.cookie_store.load(profile.name, account_id)
                if cookies:
                    await context.add_cookies(cookies)
                page = await context.new_page()
            except PlaywrightError as e:
                raise BrowserError(f"브라우저 실행 실패: {e}", provider=profile.name)

            logger.info(
                f"[{profile.name}] 브라우저 세션 시작 (account={account_id}, headless={headless}, cookies={len(cookies)})"
            )
            yield BrowserSession(profile, account_id, context, page, self.cookie_store, bool(cookies))
        finally:
            if browser is not None:
                try:
                    await browser.close()
                except PlaywrightError as e:
                    logger.warning(f"[{profile.name}] 브라우저 종료 중 오류: {e}")
            if playwright is not None:
                await playwright.stop()
            logger.debug(f"[{profile.name}] 브라우저 세션 종료 (account={account_id})")

    def _notify(self, profile: ProviderProfile, account_id: str, is_logged_in: bool) -> None:
        if self._status_callback is None:
            return
        last_login = datetime.utcnow() if is_logged_in else None
        try:
            self._status_callback(profile.name, account_id, is_logged_in, last_login)
        except Exception as e:
            logger.warning(f"[{profile.name}] 로그인 상태 기록 실패: {e}")

    # ------------------------------------------------------------------
    # 로그인
    # ------------------------------------------------------------------

    async def ensure_logged_in(
        self,
        session: BrowserSession,
        target_url: str,
        credentials: Optional[LoginCredentials] = None,
    ) -> None:
        """target_url 에 로그인 상태로 도달하게 만든다.

        Raises:
            LoginRequiredError: 저장 세션이 필요하지만 없거나, 로그인 벽인데 자격 증명이 없음
            AuthError: 자격 증명으로 로그인했는데도 로그인 벽
            CaptchaError: CAPTCHA 재시도 한도 초과
        """
        profile = session.profile
        if profile.requires_session and not session.has_cookies:
            self._notify(profile, session.account_id, False)
            raise LoginRequiredError(
                f"저장된 로그인 세션이 없습니다. 수동 로그인이 필요합니다 (account={session.account_id})",
                provider=profile.name,
            )

        await session.goto(target_url)
        if not await session.is_login_wall():
            await session.save_cookies()
            self._notify(profile, session.account_id, True)
            return

        if credentials is None:
            self._notify(profile, session.account_id, False)
            raise LoginRequiredError(
                f"로그인 세션이 만료되었습니다. 수동 로그인이 필요합니다 (account={session.account_id})",
                provider=profile.name,
            )

        logger.info(f"[{profile.name}] 로그인 벽 감지 → 자동 로그인 시도")
        await self.login_with_credentials(session, credentials)

        await session.goto(target_url)
        if await session.is_login_wall():
            self._notify(profile, session.account_id, False)
            raise AuthError("로그인 후에도 로그인 페이지로 이동됩니다", provider=profile.name)

        await session.save_cookies()
        self._notify(profile, session.account_id, True)

    async def login_with_credentials(self, session: BrowserSession, credentials: LoginCredentials) -> None:
        """아이디/비밀번호 로그인. CAPTCHA 가 나오면 풀어서 재제출.

        CAPTCHA 오답이 login_captcha_max_attempts 회 이어지면 CaptchaError.
        CAPTCHA 없이 로그인 벽에 머물면 AuthError.
        """
        profile = session.profile
        page = session.page
        max_attempts = self.settings.login_captcha_max_attempts

        if await page.query_selector(profile.username_selector) is None:
            await session.goto(profile.login_url)

        answer: Optional[str] = None
        solved = 0
        while True:
            await page.fill(profile.username_selector, credentials.username)
            await page.fill(profile.password_selector, credentials.password)
            if answer is not None and profile.captcha_answer_selector:
                await page.fill(profile.captcha_answer_selector, answer)
            await page.click(profile.submit_selector)
            await session.settle()

            if not await session.is_login_wall():
                logger.info(f"[{profile.name}] 로그인 성공 (account={session.account_id})")
                return

            challenge = await self._detect_captcha(session)
            if challenge is None:
                raise AuthError("로그인 실패: 아이디/비밀번호를 확인하세요", provider=profile.name)

            if answer is not None and await self._has_captcha_error(session):
                logger.warning(f"[{profile.name}] CAPTCHA 오답 ({solved}/{max_attempts})")

            if solved >= max_attempts:
                raise CaptchaError(
                    f"CAPTCHA {max_attempts}회 시도 후 로그인 실패", provider=profile.name
                )

            answer = await self._solve(profile, challenge)
            solved += 1

    async def _detect_captcha(self, session: BrowserSession) -> Optional[CaptchaChallenge]:
        profile = session.profile
        if not profile.captcha_image_selector:
            return None
        image = await session.page.query_selector(profile.captcha_image_selector)
        if image is None:
            return None

        png = await image.screenshot()
        question = ""
        if profile.captcha_question_selector:
            question_el = await session.page.query_selector(profile.captcha_question_selector)
            if question_el is not None:
                question = (await question_el.inner_text()).strip()
        return CaptchaChallenge(image_base64=base64.b64encode(png).decode("ascii"), question=question)

    async def _has_captcha_error(self, session: BrowserSession) -> bool:
        if not session.profile.captcha_error_texts:
            return False
        content = await session.page.content()
        return any(text in content for text in session.profile.captcha_error_texts)

    async def _solve(self, profile: ProviderProfile, challenge: CaptchaChallenge) -> str:
        if self.captcha_resolver is None:
            raise CaptchaError("CAPTCHA 가 나타났지만 해결 수단이 설정되지 않았습니다", provider=profile.name)
        logger.info(f"[{profile.name}] CAPTCHA 풀이 요청: {challenge.question[:50]}")
        return await self.captcha_resolver.solve(challenge.image_base64, challenge.question)

    # ------------------------------------------------------------------
    # 수동 로그인 / 상태 확인
    # ------------------------------------------------------------------

    async def manual_login(
        self,
        profile: ProviderProfile,
        account_id: str,
        timeout_seconds: Optional[int] = None,
    ) -> bool:
        """보이는 브라우저를 띄워 사용자가 직접 로그인하도록 기다린다.

        로그인 도메인을 벗어나면 쿠키를 저장하고 True. 시간 초과면 False.
        """
        timeout = timeout_seconds or self.settings.manual_login_timeout_seconds
        async with self.open(profile, account_id, headless=False) as session:
            await session.goto(profile.login_url)
            loop = asyncio.get_running_loop()
            deadline = loop.time() + timeout

            while loop.time() < deadline:
                if await self._manual_login_done(session):
                    await session.save_cookies()
                    self._notify(profile, account_id, True)
                    logger.info(f"[{profile.name}] 수동 로그인 완료 (account={account_id})")
                    return True
                await asyncio.sleep(self.poll_interval)

        logger.warning(f"[{profile.name}] 수동 로그인 대기 시간 초과 ({timeout}s)")
        self._notify(profile, account_id, False)
        return False

    async def _manual_login_done(self, session: BrowserSession) -> bool:
        if await session.is_login_wall():
            return False
        if session.profile.success_host:
            return urlsplit(session.url).netloc.lower() == session.profile.success_host
        return True

    async def check_login_status(self, profile: ProviderProfile, account_id: str) -> bool:
        """저장된 쿠키로 콘솔에 접근 가능한지 확인."""
        if not self.cookie_store.exists(profile.name, account_id):
            self._notify(profile, account_id, False)
            return False

        async with self.open(profile, account_id, headless=True) as session:
            await session.goto(profile.status_url)
            logged_in = not await session.is_login_wall()
            if logged_in:
                await session.save_cookies()

        self._notify(profile, account_id, logged_in)
        return logged_in
