"""URL 정규화 유틸리티.

색인 작업 중복 판정은 항상 정규화된 URL 기준으로 한다.
"""
from typing import Optional
from urllib.parse import urlsplit, urlunsplit


def normalize_url(url: str) -> str:
    """스킴/호스트 소문자화, 경로 끝 슬래시 제거, 빈 경로는 "/".

    쿼리는 유지하고 fragment는 버린다.

    >>> normalize_url("HTTPS://Example.COM/post/1/")
    'https://example.com/post/1'
    >>> normalize_url("https://example.com")
    'https://example.com/'
    """
    if not url or not url.strip():
        raise ValueError("URL is empty")

    parts = urlsplit(url.strip())
    if not parts.scheme or not parts.netloc:
        raise ValueError(f"Invalid URL: {url}")

    path = parts.path.rstrip("/") or "/"
    return urlunsplit((parts.scheme.lower(), parts.netloc.lower(), path, parts.query, ""))


def try_normalize_url(url: str) -> Optional[str]:
    try:
        return normalize_url(url)
    except ValueError:
        return None


def is_sitemap_url(url: str) -> bool:
    """사이트맵으로 보이는 URL인지 판정 (.xml 확장자 또는 "sitemap" 포함)."""
    lowered = url.lower()
    return urlsplit(lowered).path.endswith(".xml") or "sitemap" in lowered


def same_domain(site_url: str, url: str) -> bool:
    """www. 유무를 무시하고 호스트가 같은지 비교."""
    def _host(value: str) -> str:
        host = urlsplit(value).netloc.lower()
        return host[4:] if host.startswith("www.") else host

    return _host(site_url) == _host(url)


def base_url(site_url: str) -> str:
    """사이트 URL에서 스킴+호스트만 남긴다."""
    parts = urlsplit(site_url.strip())
    return urlunsplit((parts.scheme.lower(), parts.netloc.lower(), "", "", ""))
