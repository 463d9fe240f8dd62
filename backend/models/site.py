from datetime import datetime

from sqlalchemy import Column, Integer, String, Boolean, DateTime, JSON
from sqlalchemy.orm import relationship

from core.database import Base


class Site(Base):
    """색인 대상 사이트와 제공자별 설정.

    제공자 설정은 최소 {"use": bool} 을 포함하는 JSON 객체.
    - google_config: {"use", "service_account_json"}
    - bing_config: {"use", "api_key"}
    - naver_config: {"use", "selected_naver_account_id", "headless"}
    - daum_config: {"use", "site_url", "pin", "headless"}
    - indexing_config: {"mode", "count", "days", "start_date"}
    """

    __tablename__ = "sites"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(200), nullable=False)
    domain = Column(String(255), nullable=False)
    site_url = Column(String(500), nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

    google_config = Column(JSON, default=dict, nullable=True)
    bing_config = Column(JSON, default=dict, nullable=True)
    naver_config = Column(JSON, default=dict, nullable=True)
    daum_config = Column(JSON, default=dict, nullable=True)
    indexing_config = Column(JSON, default=dict, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    sitemap_configs = relationship("SitemapConfig", back_populates="site", cascade="all, delete-orphan")
    index_jobs = relationship("IndexJob", back_populates="site")

    def __repr__(self):
        return f"<Site {self.id} {self.domain}>"
