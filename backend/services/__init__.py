from .job_service import JobService
from .site_config_service import SiteConfigService, NaverAccountService
from .sitemap_service import SitemapService

__all__ = [
    "JobService",
    "SiteConfigService",
    "NaverAccountService",
    "SitemapService",
]
