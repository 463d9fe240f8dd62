import logging
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager

from core.config import get_settings
from core.database import engine, Base
from api.v1 import jobs, sitemaps, sessions, health
from scheduler import get_scheduler_manager
from scheduler.jobs.job_queue import get_job_queue_processor

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    Base.metadata.create_all(bind=engine)

    # 재시작 전에 처리 중이던 작업은 FAILED 로 (사용자가 재시도)
    processor = get_job_queue_processor()
    processor.recover_on_startup()

    # Start scheduler
    scheduler = get_scheduler_manager()
    scheduler.start()
    logger.info("Application started")

    yield

    # Shutdown
    scheduler.shutdown()
    await processor.close()
    logger.info("Application shutdown")


app = FastAPI(
    title="Search Indexer API",
    description="검색엔진 색인 요청 작업 관리 시스템",
    version="1.0.0",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origin_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(jobs.router, prefix="/api/v1/jobs", tags=["jobs"])
app.include_router(sitemaps.router, prefix="/api/v1/sitemaps", tags=["sitemaps"])
app.include_router(sessions.router, prefix="/api/v1/sessions", tags=["sessions"])
app.include_router(health.router, prefix="/api/v1/health", tags=["health"])


@app.get("/health")
async def health_check():
    return {"status": "healthy"}
