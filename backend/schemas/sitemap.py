from datetime import datetime
from typing import Optional, List
from pydantic import BaseModel, Field
from models.sitemap_config import SitemapType
from schemas.job import IndexJobInfo


class SitemapConfigCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    sitemap_type: SitemapType = SitemapType.CUSTOM
    is_enabled: bool = True


class SitemapConfigUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    sitemap_type: Optional[SitemapType] = None
    is_enabled: Optional[bool] = None


class SitemapConfigResponse(BaseModel):
    id: int
    site_id: int
    name: str
    sitemap_type: SitemapType
    is_enabled: bool
    last_parsed: Optional[datetime]
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class SitemapParseResult(BaseModel):
    config_id: int
    sitemap_url: Optional[str] = None
    found: int = 0
    filtered: int = 0
    new_urls: int = 0
    jobs_created: int = 0
    error: Optional[str] = None


class IndexJobPage(BaseModel):
    items: List[IndexJobInfo]
    total: int
    page: int
    limit: int
