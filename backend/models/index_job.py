from datetime import datetime
from enum import Enum as PyEnum

from sqlalchemy import Column, Integer, String, DateTime, Enum, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship

from core.database import Base


class IndexProvider(str, PyEnum):
    GOOGLE = "GOOGLE"
    BING = "BING"
    NAVER = "NAVER"
    DAUM = "DAUM"


class IndexJob(Base):
    __tablename__ = "index_jobs"
    __table_args__ = (
        UniqueConstraint("site_id", "provider", "url", name="uq_index_job_site_provider_url"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    job_id = Column(Integer, ForeignKey("jobs.id", ondelete="CASCADE"), nullable=False, unique=True)
    site_id = Column(Integer, ForeignKey("sites.id", ondelete="CASCADE"), nullable=False, index=True)
    provider = Column(Enum(IndexProvider), nullable=False)
    url = Column(String(2048), nullable=False)  # 정규화된 URL
    status = Column(String(20), default="PENDING", nullable=False)
    published_at = Column(DateTime, nullable=True)  # 사이트맵 lastmod
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    job = relationship("Job", back_populates="index_job")
    site = relationship("Site", back_populates="index_jobs")

    def __repr__(self):
        return f"<IndexJob {self.id} {self.provider.value} {self.url}>"
