from .job import (
    IndexJobCreate,
    IndexJobInfo,
    JobResponse,
    JobListResponse,
    JobCreateResult,
    JobLogResponse,
    JobIdsRequest,
    BulkResult,
)
from .sitemap import (
    SitemapConfigCreate,
    SitemapConfigUpdate,
    SitemapConfigResponse,
    SitemapParseResult,
    IndexJobPage,
)

__all__ = [
    "IndexJobCreate",
    "IndexJobInfo",
    "JobResponse",
    "JobListResponse",
    "JobCreateResult",
    "JobLogResponse",
    "JobIdsRequest",
    "BulkResult",
    "SitemapConfigCreate",
    "SitemapConfigUpdate",
    "SitemapConfigResponse",
    "SitemapParseResult",
    "IndexJobPage",
]
