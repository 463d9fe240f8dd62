"""사이트맵 XML 다운로드 클라이언트."""
import logging
from typing import Optional

import httpx

from core.config import get_settings
from integrations.base_client import BaseAPIClient

logger = logging.getLogger(__name__)


class SitemapFetchError(Exception):
    """사이트맵을 가져오지 못함."""
    pass


class SitemapClient(BaseAPIClient):
    """사이트맵/피드 XML 을 텍스트로 가져온다."""

    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None):
        settings = get_settings()
        super().__init__(rate_limit=5.0, timeout=settings.sitemap_fetch_timeout, transport=transport)

    def get_headers(self) -> dict[str, str]:
        return {
            "User-Agent": "Mozilla/5.0 (compatible; SitemapIndexer/1.0)",
            "Accept": "application/xml,text/xml;q=0.9,*/*;q=0.8",
        }

    async def fetch(self, url: str) -> str:
        try:
            response = await self._send("GET", url)
        except httpx.RequestError as e:
            raise SitemapFetchError(f"사이트맵 요청 실패: {url} ({e})")

        if response.status_code >= 400:
            raise SitemapFetchError(f"사이트맵 응답 오류 {response.status_code}: {url}")

        content_type = response.headers.get("content-type", "").lower()
        if "text/html" in content_type:
            raise SitemapFetchError(f"XML 이 아닌 HTML 응답: {url}")

        return response.text
