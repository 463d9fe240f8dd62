"""네이버/다음 콘솔 제출 전략 테스트."""
import asyncio

from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from core.config import Settings
from integrations.browser.cookie_store import MemoryCookieStore
from integrations.browser.session import BrowserSessionManager, LoginCredentials
from services.indexers.base import OutcomeStatus, SubmitTarget
from services.indexers.daum import DaumIndexer
from services.indexers.naver import (
    CONFIRM_BUTTON_SELECTOR,
    FIRST_ROW_LINK_SELECTOR,
    SUCCESS_MESSAGE,
    URL_INPUT_SELECTOR,
    NaverIndexer,
    row_matches,
)

from fakes import FakeElement, FakePage, FakePlaywright

URL = "https://blog.example.com/post/1"


class FlakyFillPage(FakePage):
    """지정한 URL 입력에서만 Playwright 시간 초과를 낸다."""

    def __init__(self, fail_on: str):
        super().__init__()
        self.fail_on = fail_on

    async def fill(self, selector: str, value: str) -> None:
        if value == self.fail_on:
            raise PlaywrightTimeoutError(f"Timeout 30000ms exceeded: fill {selector}")
        await super().fill(selector, value)


def session_manager(page: FakePage, store: MemoryCookieStore) -> BrowserSessionManager:
    return BrowserSessionManager(
        cookie_store=store,
        settings=Settings(),
        playwright_factory=FakePlaywright(page).factory,
    )


def naver_setup():
    store = MemoryCookieStore()
    store.save("NAVER", "tester", [{"name": "NID_AUT", "value": "x", "domain": ".naver.com", "path": "/"}])
    page = FakePage()
    indexer = NaverIndexer(session_manager(page, store), poll_timeout_seconds=0.1, poll_interval_seconds=0.01)
    target = SubmitTarget(
        site_id=1,
        site_url="https://blog.example.com",
        config={"use": True},
        account_id="tester",
        credentials=LoginCredentials("tester", "secret"),
    )
    return page, indexer, target


class TestRowMatches:
    def test_full_url_or_path(self):
        assert row_matches(URL, "https://blog.example.com/post/1/", "")
        assert row_matches(URL, "/post/1", "")
        assert row_matches(URL, "", "https://blog.example.com/post/1")
        assert not row_matches(URL, "/post/2", "")
        assert not row_matches(URL, "", "")


class TestNaverIndexer:
    def test_console_url_encodes_site(self):
        _, indexer, target = naver_setup()
        assert indexer.console_url(target).endswith("?site=https%3A%2F%2Fblog.example.com")

    def test_success_when_row_appears(self):
        page, indexer, target = naver_setup()

        def confirm(p):
            p.elements[FIRST_ROW_LINK_SELECTOR] = FakeElement(text=URL)

        page.click_hooks[CONFIRM_BUTTON_SELECTOR] = confirm

        outcome = asyncio.run(indexer.submit(target, URL))

        assert outcome.status == OutcomeStatus.SUCCESS
        assert outcome.message == SUCCESS_MESSAGE
        assert page.filled_value(URL_INPUT_SELECTOR) == URL

    def test_duplicate_dialog_is_skipped(self):
        page, indexer, target = naver_setup()

        async def confirm(p):
            await p.emit_dialog("이미 요청된 URL 입니다.")

        page.click_hooks[CONFIRM_BUTTON_SELECTOR] = confirm

        outcome = asyncio.run(indexer.submit(target, URL))

        assert outcome.status == OutcomeStatus.SKIPPED
        assert outcome.is_completed

    def test_other_dialog_is_fail(self):
        page, indexer, target = naver_setup()

        async def confirm(p):
            await p.emit_dialog("올바른 URL 을 입력하세요.")

        page.click_hooks[CONFIRM_BUTTON_SELECTOR] = confirm

        outcome = asyncio.run(indexer.submit(target, URL))
        assert outcome.status == OutcomeStatus.FAIL
        assert outcome.message == "올바른 URL 을 입력하세요."

    def test_timeout_is_fail(self):
        page, indexer, target = naver_setup()
        page.elements[FIRST_ROW_LINK_SELECTOR] = FakeElement(text="/other-post")

        outcome = asyncio.run(indexer.submit(target, URL))

        assert outcome.status == OutcomeStatus.FAIL
        assert not outcome.is_completed

    def test_batch_session_failure_records_every_url(self):
        """세션 준비 실패는 배치의 모든 URL 에 오류 결과로 남는다."""
        page = FakePage()
        indexer = NaverIndexer(session_manager(page, MemoryCookieStore()), poll_timeout_seconds=0.1)
        target = SubmitTarget(site_id=1, site_url="https://blog.example.com", account_id="tester")
        urls = [URL, "https://blog.example.com/post/2"]

        batch = asyncio.run(indexer.submit_batch(target, urls))

        assert batch.total == 2
        assert batch.failed == 2
        assert all(o.error_kind == "LoginRequiredError" for o in batch.outcomes)


    def test_browser_step_failure_only_fails_that_url(self):
        """한 URL 의 브라우저 조작 실패가 나머지 URL 제출을 막지 않는다."""
        page = FlakyFillPage(fail_on="https://blog.example.com/post/3")
        store = MemoryCookieStore()
        store.save("NAVER", "tester", [{"name": "NID_AUT", "value": "x", "domain": ".naver.com", "path": "/"}])
        indexer = NaverIndexer(session_manager(page, store), poll_timeout_seconds=0.1, poll_interval_seconds=0.01)
        target = SubmitTarget(site_id=1, site_url="https://blog.example.com", account_id="tester")
        urls = [f"https://blog.example.com/post/{i}" for i in range(1, 6)]

        def confirm(p):
            p.elements[FIRST_ROW_LINK_SELECTOR] = FakeElement(text=p.fills[-1][1])

        page.click_hooks[CONFIRM_BUTTON_SELECTOR] = confirm

        batch = asyncio.run(indexer.submit_batch(target, urls))

        assert [value for _, value in page.fills] == [u for u in urls if u != page.fail_on]
        assert batch.total == 5
        assert batch.success == 4
        assert batch.failed == 1
        assert [o.status for o in batch.outcomes] == [
            OutcomeStatus.SUCCESS,
            OutcomeStatus.SUCCESS,
            OutcomeStatus.ERROR,
            OutcomeStatus.SUCCESS,
            OutcomeStatus.SUCCESS,
        ]
        assert batch.outcomes[2].error_kind == "BrowserError"


class TestDaumIndexer:
    def _indexer(self, page: FakePage) -> DaumIndexer:
        return DaumIndexer(
            session_manager(page, MemoryCookieStore()), poll_timeout_seconds=0.1, poll_interval_seconds=0.01
        )

    def _target(self) -> SubmitTarget:
        return SubmitTarget(
            site_id=1,
            site_url="https://blog.example.com",
            config={"use": True, "pin": "1234"},
            account_id="https://blog.example.com",
            credentials=LoginCredentials("https://blog.example.com", "1234"),
        )

    def test_layer_means_success(self):
        page = FakePage()
        confirm = FakeElement()

        def submit(p):
            p.elements[".webmaster_layer.layer_collect:not(.hide)"] = FakeElement(text="수집 요청이 접수되었습니다.")
            p.elements[".btn_confirm"] = confirm

        page.click_hooks[".btn_result"] = submit

        outcome = asyncio.run(self._indexer(page).submit(self._target(), URL))

        assert outcome.status == OutcomeStatus.SUCCESS
        assert confirm.clicked == 1
        assert page.filled_value("#collectReqUrl") == URL

    def test_already_requested_is_skipped(self):
        page = FakePage()

        def submit(p):
            p.elements[".webmaster_layer.layer_collect:not(.hide)"] = FakeElement(text="이미 수집 요청된 URL 입니다.")

        page.click_hooks[".btn_result"] = submit

        outcome = asyncio.run(self._indexer(page).submit(self._target(), URL))
        assert outcome.status == OutcomeStatus.SKIPPED

    def test_no_layer_is_fail(self):
        outcome = asyncio.run(self._indexer(FakePage()).submit(self._target(), URL))
        assert outcome.status == OutcomeStatus.FAIL
        assert outcome.message == "수집요청 실패 또는 레이어 미노출"
