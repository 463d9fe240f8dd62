from typing import List
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from core.database import get_db
from core.exceptions import ConfigError
from schemas import (
    IndexJobPage,
    SitemapConfigCreate,
    SitemapConfigResponse,
    SitemapConfigUpdate,
    SitemapParseResult,
)
from services import JobService, SiteConfigService, SitemapService

router = APIRouter()


@router.get("/sites/{site_id}/configs", response_model=List[SitemapConfigResponse])
def list_sitemap_configs(site_id: int, db: Session = Depends(get_db)):
    try:
        SiteConfigService(db).get_site(site_id)
    except ConfigError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return SitemapService(db).list_configs(site_id)


@router.post("/sites/{site_id}/configs", response_model=SitemapConfigResponse, status_code=201)
def create_sitemap_config(site_id: int, data: SitemapConfigCreate, db: Session = Depends(get_db)):
    try:
        return SitemapService(db).create_config(site_id, data)
    except ConfigError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.patch("/configs/{config_id}", response_model=SitemapConfigResponse)
def update_sitemap_config(config_id: int, data: SitemapConfigUpdate, db: Session = Depends(get_db)):
    try:
        return SitemapService(db).update_config(config_id, data)
    except ConfigError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.delete("/configs/{config_id}", status_code=204)
def delete_sitemap_config(config_id: int, db: Session = Depends(get_db)):
    try:
        SitemapService(db).delete_config(config_id)
    except ConfigError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.post("/sites/{site_id}/parse", response_model=List[SitemapParseResult])
async def parse_site_sitemaps(site_id: int, db: Session = Depends(get_db)):
    """사이트의 활성 사이트맵을 즉시 파싱해 신규 URL 작업을 만든다."""
    service = SitemapService(db)
    try:
        return await service.parse_site(site_id)
    except ConfigError as e:
        raise HTTPException(status_code=404, detail=str(e))
    finally:
        await service.client.close()


@router.get("/sites/{site_id}/index-jobs", response_model=IndexJobPage)
def list_site_index_jobs(
    site_id: int,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=200),
    db: Session = Depends(get_db),
):
    items, total = JobService(db).list_index_jobs_for_site(site_id, page=page, limit=limit)
    return IndexJobPage(items=items, total=total, page=page, limit=limit)
