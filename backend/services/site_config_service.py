"""사이트/제공자 설정 조회."""
import logging
from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy.orm import Session

from core.exceptions import ConfigError
from models import Site, NaverAccount, IndexProvider

if TYPE_CHECKING:
    from services.indexers.base import SubmitTarget

logger = logging.getLogger(__name__)

PROVIDER_CONFIG_FIELDS = {
    IndexProvider.GOOGLE: "google_config",
    IndexProvider.BING: "bing_config",
    IndexProvider.NAVER: "naver_config",
    IndexProvider.DAUM: "daum_config",
}

DEFAULT_INDEXING_CONFIG = {"mode": "recentCount", "count": 50, "days": 7, "start_date": None}


class SiteConfigService:
    def __init__(self, db: Session):
        self.db = db

    def get_site(self, site_id: int) -> Site:
        site = self.db.get(Site, site_id)
        if site is None:
            raise ConfigError(f"Site {site_id} not found")
        return site

    def get_provider_config(self, site: Site, provider: IndexProvider) -> dict:
        return dict(getattr(site, PROVIDER_CONFIG_FIELDS[provider]) or {})

    def enabled_providers(self, site: Site) -> list[IndexProvider]:
        """use=True 인 제공자 목록 (GOOGLE, NAVER, DAUM, BING 순)."""
        order = [IndexProvider.GOOGLE, IndexProvider.NAVER, IndexProvider.DAUM, IndexProvider.BING]
        return [p for p in order if self.get_provider_config(site, p).get("use")]

    def require_provider_config(
        self,
        site: Site,
        provider: IndexProvider,
        required_fields: tuple[str, ...] = (),
    ) -> dict:
        """활성화 여부와 필수 필드를 확인한 설정 반환."""
        config = self.get_provider_config(site, provider)
        if not config.get("use"):
            raise ConfigError(
                f"{provider.value} 색인이 비활성화되어 있습니다", provider=provider.value
            )
        missing = [f for f in required_fields if not config.get(f)]
        if missing:
            raise ConfigError(
                f"{provider.value} 설정 누락: {', '.join(missing)}",
                provider=provider.value,
                details={"missing": missing},
            )
        return config

    def get_indexing_config(self, site: Site) -> dict:
        config = dict(DEFAULT_INDEXING_CONFIG)
        config.update({k: v for k, v in (site.indexing_config or {}).items() if v is not None})
        return config


class NaverAccountService:
    def __init__(self, db: Session):
        self.db = db

    def get_account(self, account_id: int) -> NaverAccount:
        account = self.db.get(NaverAccount, account_id)
        if account is None:
            raise ConfigError(f"Naver account {account_id} not found", provider="NAVER")
        return account

    def get_by_naver_id(self, naver_id: str) -> Optional[NaverAccount]:
        return self.db.query(NaverAccount).filter(NaverAccount.naver_id == naver_id).first()

    def update_login_status(
        self,
        naver_id: str,
        is_logged_in: bool,
        last_login: Optional[datetime] = None,
    ) -> Optional[NaverAccount]:
        account = self.get_by_naver_id(naver_id)
        if account is None:
            logger.warning(f"로그인 상태 갱신 대상 계정 없음: {naver_id}")
            return None
        account.is_logged_in = is_logged_in
        if last_login is not None:
            account.last_login = last_login
        self.db.commit()
        return account


def build_submit_target(db: Session, site_id: int, provider: IndexProvider) -> "SubmitTarget":
    """작업 처리용 제출 문맥 생성. 설정이 비활성/누락이면 ConfigError."""
    from integrations.browser.session import LoginCredentials
    from services.indexers.base import SubmitTarget

    sites = SiteConfigService(db)
    site = sites.get_site(site_id)

    if provider == IndexProvider.GOOGLE:
        config = sites.require_provider_config(site, provider, ("service_account_json",))
        return SubmitTarget(site_id=site.id, site_url=site.site_url, config=config)

    if provider == IndexProvider.BING:
        config = sites.require_provider_config(site, provider, ("api_key",))
        return SubmitTarget(site_id=site.id, site_url=site.site_url, config=config)

    if provider == IndexProvider.NAVER:
        config = sites.require_provider_config(site, provider, ("selected_naver_account_id",))
        account = NaverAccountService(db).get_account(int(config["selected_naver_account_id"]))
        if not account.is_active:
            raise ConfigError(f"네이버 계정 {account.naver_id} 이(가) 비활성 상태입니다", provider="NAVER")
        if not account.naver_id or not account.password:
            raise ConfigError("네이버 계정 아이디/비밀번호가 비어 있습니다", provider="NAVER")
        return SubmitTarget(
            site_id=site.id,
            site_url=site.site_url,
            config=config,
            account_id=account.naver_id,
            credentials=LoginCredentials(account.naver_id, account.password),
            headless=config.get("headless", True),
        )

    if provider == IndexProvider.DAUM:
        config = sites.require_provider_config(site, provider, ("pin",))
        daum_site_url = config.get("site_url") or site.site_url
        return SubmitTarget(
            site_id=site.id,
            site_url=daum_site_url,
            config=config,
            account_id=daum_site_url,
            credentials=LoginCredentials(daum_site_url, config["pin"]),
            headless=config.get("headless", True),
        )

    raise ConfigError(f"지원하지 않는 제공자: {provider}")
