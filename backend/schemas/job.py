from datetime import datetime
from typing import Optional, List
from pydantic import BaseModel, Field
from models.job import JobStatus, JobType
from models.index_job import IndexProvider


class IndexJobCreate(BaseModel):
    site_id: int
    providers: List[IndexProvider] = Field(min_length=1)
    urls: List[str] = Field(min_length=1)
    priority: int = 1
    scheduled_at: Optional[datetime] = None  # 미지정시 즉시


class IndexJobInfo(BaseModel):
    id: int
    site_id: int
    provider: IndexProvider
    url: str
    status: str
    published_at: Optional[datetime] = None
    created_at: datetime

    class Config:
        from_attributes = True


class JobResponse(BaseModel):
    id: int
    type: JobType
    status: JobStatus
    subject: str
    description: Optional[str]
    priority: int
    scheduled_at: datetime
    started_at: Optional[datetime]
    completed_at: Optional[datetime]
    result_msg: Optional[str]
    error_message: Optional[str]
    created_at: datetime
    updated_at: datetime
    index_job: Optional[IndexJobInfo] = None

    class Config:
        from_attributes = True


class JobListResponse(BaseModel):
    items: List[JobResponse]
    total: int
    skip: int
    limit: int


class JobCreateResult(BaseModel):
    created: List[JobResponse]
    duplicates: int  # 이미 존재해서 건너뛴 (제공자, URL) 수


class JobLogResponse(BaseModel):
    id: int
    job_id: int
    message: str
    level: str
    created_at: datetime

    class Config:
        from_attributes = True


class JobIdsRequest(BaseModel):
    ids: List[int] = Field(min_length=1)


class BulkResult(BaseModel):
    requested: int
    affected: int
