from .job import Job, JobLog, JobStatus, JobType
from .index_job import IndexJob, IndexProvider
from .site import Site
from .sitemap_config import SitemapConfig, SitemapType
from .naver_account import NaverAccount

__all__ = [
    "Job",
    "JobLog",
    "JobStatus",
    "JobType",
    "IndexJob",
    "IndexProvider",
    "Site",
    "SitemapConfig",
    "SitemapType",
    "NaverAccount",
]
