"""사이트맵 기반 신규 URL 수집."""
import logging
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlalchemy.orm import Session

from core.config import get_settings
from core.exceptions import ConfigError
from integrations.sitemap.client import SitemapClient, SitemapFetchError
from models import SitemapConfig, SitemapType
from schemas import SitemapConfigCreate, SitemapConfigUpdate
from services.job_service import JobService
from services.site_config_service import SiteConfigService
from utils.url import base_url, is_sitemap_url, try_normalize_url

logger = logging.getLogger(__name__)


class SitemapParseError(Exception):
    """XML 파싱 실패."""
    pass


@dataclass
class SitemapUrl:
    loc: str
    lastmod: Optional[datetime] = None


@dataclass
class ParsedSitemap:
    child_sitemaps: list[str] = field(default_factory=list)
    urls: list[SitemapUrl] = field(default_factory=list)


def _local_name(tag: str) -> str:
    """'{ns}url', 'sitemap:url', 'url' → 'url'."""
    return tag.rsplit("}", 1)[-1].rsplit(":", 1)[-1]


def _child_text(element: ET.Element, name: str) -> Optional[str]:
    for child in element:
        if _local_name(child.tag) == name and child.text:
            return child.text.strip()
    return None


def parse_lastmod(value: Optional[str]) -> Optional[datetime]:
    """W3C datetime → naive UTC datetime. 해석 불가면 None."""
    if not value:
        return None
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


class SitemapParser:
    """<sitemapindex> / <urlset> 파서.

    네임스페이스 유무, 'sitemap:' 접두사 태그 모두 허용한다.
    <url><loc> 이 사이트맵처럼 보이면 (.xml, "sitemap" 포함) 하위 사이트맵으로 분류한다.
    """

    def parse(self, xml_text: str) -> ParsedSitemap:
        try:
            root = ET.fromstring(xml_text.strip().encode("utf-8"))
        except ET.ParseError as e:
            raise SitemapParseError(f"사이트맵 XML 파싱 실패: {e}")

        result = ParsedSitemap()
        root_name = _local_name(root.tag)

        if root_name == "sitemapindex":
            for entry in root:
                if _local_name(entry.tag) != "sitemap":
                    continue
                loc = _child_text(entry, "loc")
                if loc:
                    result.child_sitemaps.append(loc)
        elif root_name == "urlset":
            for entry in root:
                if _local_name(entry.tag) != "url":
                    continue
                loc = _child_text(entry, "loc")
                if not loc:
                    continue
                if is_sitemap_url(loc):
                    result.child_sitemaps.append(loc)
                else:
                    result.urls.append(SitemapUrl(loc=loc, lastmod=parse_lastmod(_child_text(entry, "lastmod"))))
        else:
            logger.warning(f"알 수 없는 사이트맵 루트 요소: {root_name}")

        return result


def build_sitemap_url(site_url: str, sitemap_type: SitemapType) -> str:
    """사이트 기본 URL 에서 표준 사이트맵 URL 생성."""
    base = base_url(site_url)
    if sitemap_type in (SitemapType.BLOGSPOT, SitemapType.TISTORY, SitemapType.WORDPRESS, SitemapType.CUSTOM):
        return f"{base}/sitemap.xml"
    raise ConfigError(f"지원하지 않는 사이트맵 유형: {sitemap_type}")


def _sort_recent_first(urls: list[SitemapUrl]) -> list[SitemapUrl]:
    dated = [u for u in urls if u.lastmod]
    undated = [u for u in urls if not u.lastmod]
    return sorted(dated, key=lambda u: u.lastmod, reverse=True) + undated


def filter_by_indexing_config(
    urls: list[SitemapUrl],
    config: dict,
    now: Optional[datetime] = None,
) -> list[SitemapUrl]:
    """사이트 색인 설정에 따라 후보 URL 축소.

    - all: 전체
    - recentCount: lastmod 최신순 상위 N (기본 50, 모드 미지정 시 기본값)
    - recentDays: 최근 N일 (기본 7)
    - fromDate: start_date 이후
    """
    mode = config.get("mode") or "recentCount"
    now = now or datetime.utcnow()

    if mode == "recentCount":
        count = int(config.get("count") or 50)
        return _sort_recent_first(urls)[:count]

    if mode == "recentDays":
        days = int(config.get("days") or 7)
        threshold = now - timedelta(days=days)
        return _sort_recent_first([u for u in urls if u.lastmod and u.lastmod >= threshold])

    if mode == "fromDate":
        start = config.get("start_date")
        start_dt = start if isinstance(start, datetime) else parse_lastmod(str(start)) if start else None
        if start_dt is None:
            logger.warning("fromDate 모드인데 start_date 가 없어 전체 URL 사용")
            return urls
        return _sort_recent_first([u for u in urls if u.lastmod and u.lastmod >= start_dt])

    return urls


class SitemapService:
    def __init__(self, db: Session, client: Optional[SitemapClient] = None):
        self.db = db
        self.settings = get_settings()
        self.client = client or SitemapClient()
        self.parser = SitemapParser()
        self.jobs = JobService(db)
        self.sites = SiteConfigService(db)

    # ------------------------------------------------------------------
    # 수집
    # ------------------------------------------------------------------

    async def collect_urls(self, sitemap_url: str) -> list[SitemapUrl]:
        """사이트맵을 재귀적으로 따라가며 콘텐츠 URL 수집.

        방문 집합과 최대 깊이로 순환/자기참조 사이트맵에서도 종료를 보장한다.
        루트 사이트맵 실패는 예외로 올리고, 하위 사이트맵 실패는 건너뛴다.
        """
        visited: set[str] = set()
        collected: list[SitemapUrl] = []
        await self._collect(sitemap_url, 0, visited, collected)

        seen: set[str] = set()
        unique = []
        for item in collected:
            key = try_normalize_url(item.loc)
            if key is None or key in seen:
                continue
            seen.add(key)
            unique.append(item)
        return unique

    async def _collect(self, url: str, depth: int, visited: set[str], collected: list[SitemapUrl]) -> None:
        key = try_normalize_url(url) or url
        if key in visited:
            logger.debug(f"이미 방문한 사이트맵 건너뜀: {url}")
            return
        if depth > self.settings.sitemap_max_depth:
            logger.warning(f"사이트맵 최대 깊이({self.settings.sitemap_max_depth}) 초과: {url}")
            return
        visited.add(key)

        xml_text = await self.client.fetch(url)
        parsed = self.parser.parse(xml_text)
        collected.extend(parsed.urls)

        for child in parsed.child_sitemaps:
            try:
                await self._collect(child, depth + 1, visited, collected)
            except (SitemapFetchError, SitemapParseError) as e:
                logger.warning(f"하위 사이트맵 처리 실패, 건너뜀: {child} ({e})")

    def find_new_urls(self, site_id: int, urls: list[SitemapUrl]) -> list[SitemapUrl]:
        """사이트에 아직 색인 작업이 없는 URL (제공자 무관)."""
        existing = self.jobs.existing_urls_for_site(site_id)
        new_urls = []
        for item in urls:
            normalized = try_normalize_url(item.loc)
            if normalized is None or normalized in existing:
                continue
            existing.add(normalized)
            new_urls.append(SitemapUrl(loc=normalized, lastmod=item.lastmod))
        return new_urls

    async def process_config(self, config: SitemapConfig) -> dict:
        """사이트맵 설정 하나 처리: 수집 → 필터 → 신규 판정 → 작업 생성."""
        site = config.site
        if site is None:
            raise ConfigError(f"Sitemap config {config.id} has no site")

        sitemap_url = build_sitemap_url(site.site_url, config.sitemap_type)
        urls = await self.collect_urls(sitemap_url)
        filtered = filter_by_indexing_config(urls, self.sites.get_indexing_config(site))
        new_urls = self.find_new_urls(site.id, filtered)
        providers = self.sites.enabled_providers(site)

        jobs_created = 0
        for item in new_urls:
            for provider in providers:
                _, created = self.jobs.create_index_job(
                    site.id,
                    provider,
                    item.loc,
                    description=f"사이트맵 자동 수집: {config.name}",
                    published_at=item.lastmod,
                )
                if created:
                    jobs_created += 1

        config.last_parsed = datetime.utcnow()
        self.db.commit()

        logger.info(
            f"사이트맵 처리 완료 [{site.domain}] {sitemap_url}: "
            f"발견 {len(urls)}, 필터 {len(filtered)}, 신규 {len(new_urls)}, 작업 {jobs_created}"
        )
        return {
            "config_id": config.id,
            "sitemap_url": sitemap_url,
            "found": len(urls),
            "filtered": len(filtered),
            "new_urls": len(new_urls),
            "jobs_created": jobs_created,
        }

    async def _process_many(self, configs: list[SitemapConfig]) -> list[dict]:
        results = []
        for config in configs:
            config_id = config.id
            try:
                results.append(await self.process_config(config))
            except Exception as e:
                self.db.rollback()
                logger.error(f"사이트맵 설정 {config_id} 처리 실패: {e}")
                results.append({"config_id": config_id, "error": str(e)})
        return results

    async def run_all_enabled(self) -> list[dict]:
        """활성화된 모든 사이트맵 설정을 하나씩 처리. 한 설정의 실패는 나머지를 막지 않는다."""
        configs = (
            self.db.query(SitemapConfig)
            .filter(SitemapConfig.is_enabled.is_(True))
            .order_by(SitemapConfig.id.asc())
            .all()
        )
        return await self._process_many([c for c in configs if c.site and c.site.is_active])

    async def parse_site(self, site_id: int) -> list[dict]:
        """사이트 단위 수동 파싱."""
        self.sites.get_site(site_id)
        return await self._process_many(self.list_configs(site_id, enabled_only=True))

    # ------------------------------------------------------------------
    # 설정 CRUD
    # ------------------------------------------------------------------

    def list_configs(self, site_id: int, enabled_only: bool = False) -> list[SitemapConfig]:
        query = self.db.query(SitemapConfig).filter(SitemapConfig.site_id == site_id)
        if enabled_only:
            query = query.filter(SitemapConfig.is_enabled.is_(True))
        return query.order_by(SitemapConfig.id.asc()).all()

    def get_config(self, config_id: int) -> SitemapConfig:
        config = self.db.get(SitemapConfig, config_id)
        if config is None:
            raise ConfigError(f"Sitemap config {config_id} not found")
        return config

    def create_config(self, site_id: int, data: SitemapConfigCreate) -> SitemapConfig:
        self.sites.get_site(site_id)
        config = SitemapConfig(
            site_id=site_id,
            name=data.name,
            sitemap_type=data.sitemap_type,
            is_enabled=data.is_enabled,
        )
        self.db.add(config)
        self.db.commit()
        self.db.refresh(config)
        return config

    def update_config(self, config_id: int, data: SitemapConfigUpdate) -> SitemapConfig:
        config = self.get_config(config_id)
        for key, value in data.model_dump(exclude_unset=True).items():
            setattr(config, key, value)
        self.db.commit()
        self.db.refresh(config)
        return config

    def delete_config(self, config_id: int) -> None:
        config = self.get_config(config_id)
        self.db.delete(config)
        self.db.commit()
