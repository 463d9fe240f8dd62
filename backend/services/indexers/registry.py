"""제공자 → 제출 전략 매핑."""
import logging
from typing import Iterable, Optional

from core.config import Settings, get_settings
from core.database import SessionLocal
from core.exceptions import ConfigError
from integrations.browser.cookie_store import FileCookieStore
from integrations.browser.session import BrowserSessionManager
from models.index_job import IndexProvider
from services.indexers.base import SubmissionStrategy

logger = logging.getLogger(__name__)


class StrategyRegistry:
    """시작 시 한 번 만들어 작업 큐에 주입한다."""

    def __init__(self, strategies: Iterable[SubmissionStrategy] = ()):
        self._strategies: dict[IndexProvider, SubmissionStrategy] = {}
        for strategy in strategies:
            self.register(strategy)

    def register(self, strategy: SubmissionStrategy) -> None:
        self._strategies[strategy.provider] = strategy

    def get(self, provider: IndexProvider) -> SubmissionStrategy:
        strategy = self._strategies.get(provider)
        if strategy is None:
            raise ConfigError(f"등록된 제출 전략이 없습니다: {provider.value}", provider=provider.value)
        return strategy

    @property
    def providers(self) -> list[IndexProvider]:
        return list(self._strategies)

    async def close(self) -> None:
        for strategy in self._strategies.values():
            await strategy.close()


def record_naver_login_status(provider: str, account_id: str, is_logged_in: bool, last_login) -> None:
    """세션 관리자가 확인한 네이버 로그인 상태를 계정에 기록."""
    if provider != IndexProvider.NAVER.value:
        return
    from services.site_config_service import NaverAccountService

    db = SessionLocal()
    try:
        NaverAccountService(db).update_login_status(account_id, is_logged_in, last_login)
    finally:
        db.close()


def build_session_manager(settings: Optional[Settings] = None) -> BrowserSessionManager:
    from services.captcha_service import build_captcha_resolver

    settings = settings or get_settings()
    try:
        resolver = build_captcha_resolver(settings)
    except ConfigError as e:
        logger.warning(f"CAPTCHA 해결 수단 없음, 자동 로그인 중 CAPTCHA 는 실패 처리됨: {e}")
        resolver = None

    return BrowserSessionManager(
        cookie_store=FileCookieStore(settings.cookie_path),
        captcha_resolver=resolver,
        settings=settings,
        status_callback=record_naver_login_status,
    )


def build_default_registry(
    settings: Optional[Settings] = None,
    session_manager: Optional[BrowserSessionManager] = None,
) -> StrategyRegistry:
    from services.indexers.bing import BingIndexer
    from services.indexers.daum import DaumIndexer
    from services.indexers.google import GoogleIndexer
    from services.indexers.naver import NaverIndexer

    settings = settings or get_settings()
    session_manager = session_manager or build_session_manager(settings)
    registry = StrategyRegistry([
        GoogleIndexer(),
        BingIndexer(),
        NaverIndexer(session_manager),
        DaumIndexer(session_manager),
    ])
    logger.info(f"제출 전략 등록: {[p.value for p in registry.providers]}")
    return registry
