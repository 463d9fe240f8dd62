"""스케줄러/전략 등록 테스트."""
import asyncio

import pytest

from core.config import Settings
from core.exceptions import ConfigError
from integrations.browser.cookie_store import MemoryCookieStore
from integrations.browser.session import BrowserSessionManager
from models import IndexProvider
from scheduler.scheduler import SchedulerManager
from services.indexers.registry import StrategyRegistry, build_default_registry, build_session_manager

from fakes import FakePlaywright


class TestSchedulerManager:
    def test_default_jobs(self):
        manager = SchedulerManager()
        manager._setup_jobs()

        jobs = {job["id"]: job for job in manager.get_jobs()}
        assert set(jobs) == {"index_job_process", "sitemap_parse"}
        assert "0:00:10" in jobs["index_job_process"]["trigger"]
        assert "0:01:00" in jobs["sitemap_parse"]["trigger"]

    def test_disabled_start_does_nothing(self):
        manager = SchedulerManager()
        manager.start()
        assert manager.is_running is False

    def test_remove_job(self):
        manager = SchedulerManager()
        manager.add_interval_job(lambda: None, job_id="noop", seconds=30)
        assert manager.remove_job("noop") is True
        assert manager.remove_job("noop") is False


class TestStrategyRegistry:
    def test_default_registry_covers_all_providers(self):
        manager = BrowserSessionManager(MemoryCookieStore(), playwright_factory=FakePlaywright().factory)
        registry = build_default_registry(session_manager=manager)

        assert set(registry.providers) == set(IndexProvider)
        assert registry.get(IndexProvider.NAVER).session_manager is manager
        asyncio.run(registry.close())

    def test_unknown_provider(self):
        with pytest.raises(ConfigError):
            StrategyRegistry().get(IndexProvider.DAUM)

    def test_session_manager_without_captcha_key(self, tmp_path):
        manager = build_session_manager(Settings(cookie_dir=str(tmp_path), two_captcha_api_key=None))
        assert manager.captcha_resolver is None
        assert manager.cookie_store.root == tmp_path
