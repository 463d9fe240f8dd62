from datetime import datetime
from enum import Enum as PyEnum

from sqlalchemy import Column, Integer, String, Boolean, DateTime, Enum, ForeignKey
from sqlalchemy.orm import relationship

from core.database import Base


class SitemapType(str, PyEnum):
    BLOGSPOT = "blogspot"
    TISTORY = "tistory"
    WORDPRESS = "wordpress"
    CUSTOM = "custom"


class SitemapConfig(Base):
    __tablename__ = "sitemap_configs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    site_id = Column(Integer, ForeignKey("sites.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(200), nullable=False)
    sitemap_type = Column(Enum(SitemapType), default=SitemapType.CUSTOM, nullable=False)
    is_enabled = Column(Boolean, default=True, nullable=False)
    last_parsed = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    site = relationship("Site", back_populates="sitemap_configs")
