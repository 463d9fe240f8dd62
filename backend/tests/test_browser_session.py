"""브라우저 세션 관리자 테스트 (Playwright 대역 사용)."""
import asyncio

import pytest

from core.config import Settings
from core.exceptions import AuthError, CaptchaError, LoginRequiredError
from integrations.browser.cookie_store import FileCookieStore, MemoryCookieStore
from integrations.browser.profiles import DAUM_PROFILE, NAVER_PROFILE
from integrations.browser.session import BrowserSessionManager, LoginCredentials

from fakes import CountingResolver, FakeElement, FakePage, FakePlaywright

CONSOLE = "https://searchadvisor.naver.com/console/board"
LOGIN = "https://nid.naver.com/nidlogin.login"
CREDENTIALS = LoginCredentials("tester", "secret")


def manager_for(playwright: FakePlaywright, store=None, resolver=None, statuses: list = None, **settings):
    return BrowserSessionManager(
        cookie_store=store or MemoryCookieStore(),
        captcha_resolver=resolver,
        settings=Settings(**settings),
        playwright_factory=playwright.factory,
        status_callback=(lambda *args: statuses.append(args)) if statuses is not None else None,
        poll_interval=0.01,
    )


def naver_login_page() -> FakePage:
    page = FakePage(LOGIN)
    page.elements["#id"] = FakeElement()
    return page


class TestOpen:
    def test_injects_cookies_and_locale(self):
        store = MemoryCookieStore()
        store.save("NAVER", "tester", [{"name": "NID_AUT", "value": "x", "domain": ".naver.com", "path": "/"}])
        playwright = FakePlaywright()
        manager = manager_for(playwright, store=store)

        async def scenario():
            async with manager.open(NAVER_PROFILE, "tester") as session:
                return session.has_cookies

        assert asyncio.run(scenario()) is True
        assert playwright.context.added_cookies[0]["name"] == "NID_AUT"
        assert playwright.context.options["locale"] == "ko-KR"
        assert playwright.context.options["timezone_id"] == "Asia/Seoul"
        assert playwright.chromium.launch_options["headless"] is True

    def test_closes_browser_on_exception(self):
        playwright = FakePlaywright()
        manager = manager_for(playwright)

        async def scenario():
            async with manager.open(DAUM_PROFILE, "https://blog.example.com"):
                raise RuntimeError("boom")

        with pytest.raises(RuntimeError):
            asyncio.run(scenario())
        assert playwright.browser.closed is True
        assert playwright.stopped is True


class TestEnsureLoggedIn:
    def test_requires_saved_session(self):
        """네이버는 쿠키가 없으면 페이지 이동 없이 LoginRequired."""
        playwright = FakePlaywright()
        statuses = []
        manager = manager_for(playwright, statuses=statuses)

        async def scenario():
            async with manager.open(NAVER_PROFILE, "tester") as session:
                await manager.ensure_logged_in(session, CONSOLE, CREDENTIALS)

        with pytest.raises(LoginRequiredError):
            asyncio.run(scenario())
        assert playwright.page.visited == []
        assert statuses[-1][:3] == ("NAVER", "tester", False)

    def test_valid_session_saves_cookies(self):
        store = MemoryCookieStore()
        store.save("NAVER", "tester", [{"name": "NID_AUT", "value": "old", "domain": ".naver.com", "path": "/"}])
        fresh = [{"name": "NID_AUT", "value": "new", "domain": ".naver.com", "path": "/"}]
        playwright = FakePlaywright(cookies_after=fresh)
        statuses = []
        manager = manager_for(playwright, store=store, statuses=statuses)

        async def scenario():
            async with manager.open(NAVER_PROFILE, "tester") as session:
                await manager.ensure_logged_in(session, CONSOLE)

        asyncio.run(scenario())
        assert store.load("NAVER", "tester") == fresh
        assert statuses[-1][:3] == ("NAVER", "tester", True)

    def test_expired_session_without_credentials(self):
        store = MemoryCookieStore()
        store.save("NAVER", "tester", [{"name": "old", "value": "x"}])
        page = naver_login_page()
        page.redirects[CONSOLE] = LOGIN
        manager = manager_for(FakePlaywright(page), store=store)

        async def scenario():
            async with manager.open(NAVER_PROFILE, "tester") as session:
                await manager.ensure_logged_in(session, CONSOLE)

        with pytest.raises(LoginRequiredError):
            asyncio.run(scenario())

    def test_daum_logs_in_with_pin(self):
        """다음은 로그인 폼이 보이면 사이트 URL + PIN 으로 로그인."""
        page = FakePage()
        page.elements["form.form_register input#authSiteUrl"] = FakeElement()
        page.elements["#authSiteUrl"] = FakeElement()

        def submit(p):
            del p.elements["form.form_register input#authSiteUrl"]

        page.click_hooks["button.btn_register"] = submit
        store = MemoryCookieStore()
        manager = manager_for(FakePlaywright(page), store=store)

        async def scenario():
            async with manager.open(DAUM_PROFILE, "https://blog.example.com") as session:
                await manager.ensure_logged_in(
                    session, DAUM_PROFILE.console_url, LoginCredentials("https://blog.example.com", "1234")
                )

        asyncio.run(scenario())
        assert page.filled_value("#authSiteUrl") == "https://blog.example.com"
        assert page.filled_value("#authPinCode") == "1234"
        assert store.exists("DAUM", "https://blog.example.com")


class TestLoginWithCredentials:
    def _run(self, page, resolver=None, **settings):
        playwright = FakePlaywright(page)
        manager = manager_for(playwright, resolver=resolver, **settings)

        async def scenario():
            async with manager.open(NAVER_PROFILE, "tester") as session:
                await manager.login_with_credentials(session, CREDENTIALS)

        asyncio.run(scenario())
        return playwright

    def test_plain_login(self):
        page = naver_login_page()
        page.click_hooks['button[type="submit"]'] = lambda p: setattr(p, "url", "https://www.naver.com/")
        self._run(page)
        assert page.filled_value("#id") == "tester"
        assert page.filled_value("#pw") == "secret"

    def test_wrong_password_is_auth_error(self):
        with pytest.raises(AuthError):
            self._run(naver_login_page())

    def test_captcha_solved(self):
        page = naver_login_page()
        page.elements["#captchaimg"] = FakeElement()
        page.elements[".bill_message em"] = FakeElement(text="영수증의 가게 전화번호 뒷자리는?")

        def submit(p):
            if p.filled_value("#captcha") == "1234":
                p.url = "https://www.naver.com/"

        page.click_hooks['button[type="submit"]'] = submit
        resolver = CountingResolver("1234")

        self._run(page, resolver=resolver)

        assert len(resolver.calls) == 1
        assert resolver.calls[0][1] == "영수증의 가게 전화번호 뒷자리는?"

    def test_captcha_retry_bound(self):
        """CAPTCHA 가 계속 틀리면 정확히 N(=2)번만 풀고 CaptchaError."""
        page = naver_login_page()
        page.elements["#captchaimg"] = FakeElement()
        page.html = "자동 등록 방지를 위한 문자를 잘못 입력하셨습니다."
        resolver = CountingResolver("0000")

        with pytest.raises(CaptchaError):
            self._run(page, resolver=resolver, login_captcha_max_attempts=2)

        assert len(resolver.calls) == 2
        assert page.clicks.count('button[type="submit"]') == 3

    def test_captcha_without_resolver(self):
        page = naver_login_page()
        page.elements["#captchaimg"] = FakeElement()
        with pytest.raises(CaptchaError):
            self._run(page)


class TestManualLogin:
    def test_success_persists_cookies(self, tmp_path):
        page = FakePage()
        page.redirects[LOGIN] = "https://www.naver.com/"
        store = FileCookieStore(tmp_path)
        playwright = FakePlaywright(page)
        manager = manager_for(playwright, store=store)

        assert asyncio.run(manager.manual_login(NAVER_PROFILE, "tester", timeout_seconds=1)) is True
        assert playwright.chromium.launch_options["headless"] is False
        assert (tmp_path / "naver_tester.json").exists()

    def test_timeout(self):
        page = naver_login_page()
        playwright = FakePlaywright(page)
        manager = manager_for(playwright)

        assert asyncio.run(manager.manual_login(NAVER_PROFILE, "tester", timeout_seconds=0.05)) is False
        assert playwright.browser.closed is True

    def test_check_login_status_without_cookies(self):
        playwright = FakePlaywright()
        manager = manager_for(playwright)
        assert asyncio.run(manager.check_login_status(NAVER_PROFILE, "tester")) is False
        assert playwright.started == 0
