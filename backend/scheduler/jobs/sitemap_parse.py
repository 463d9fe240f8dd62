"""사이트맵 자동 수집 작업."""
import logging
from datetime import datetime

from core.database import SessionLocal
from services.sitemap_service import SitemapService

logger = logging.getLogger(__name__)


async def parse_enabled_sitemaps() -> dict:
    """활성화된 사이트맵을 모두 파싱해 신규 URL 의 색인 작업을 만든다.

    Returns:
        {"configs": N, "jobs_created": M, "errors": K, "timestamp": "..."}
    """
    result = {
        "configs": 0,
        "jobs_created": 0,
        "errors": 0,
        "timestamp": datetime.utcnow().isoformat(),
    }

    db = SessionLocal()
    service = SitemapService(db)
    try:
        results = await service.run_all_enabled()
        result["configs"] = len(results)
        result["jobs_created"] = sum(r.get("jobs_created", 0) for r in results)
        result["errors"] = sum(1 for r in results if "error" in r)
        if result["jobs_created"]:
            logger.info(f"Sitemap parse: {result['jobs_created']} jobs created from {result['configs']} configs")
    except Exception as e:
        logger.error(f"Sitemap parse job failed: {e}")
        result["error"] = str(e)
    finally:
        await service.client.close()
        db.close()

    return result
