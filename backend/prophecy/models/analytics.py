from sqlalchemy import Column, Integer, String, Float, DateTime, Enum
from sqlalchemy.sql import func
import enum
from prophecy.db.session import Base

class PlatformType(str, enum.Enum):
    TIKTOK = "tiktok"
    INSTAGRAM = "instagram"
    YOUTUBE = "youtube"
    TWITTER = "twitter"
    FACEBOOK = "facebook"

class AnalyticsEvent(Base):
    """Observed performance of a published clip, written by the ingestion pipeline"""
    __tablename__ = "analytics_events"
    
    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(64), nullable=False, index=True)
    clip_id = Column(String(64), nullable=False, index=True)
    platform = Column(Enum(PlatformType), nullable=False)
    
    # Engagement metrics
    views = Column(Integer, nullable=False, default=0)
    likes = Column(Integer, nullable=False, default=0)
    comments = Column(Integer, nullable=False, default=0)
    shares = Column(Integer, nullable=False, default=0)
    watch_time = Column(Float, nullable=False, default=0.0)  # seconds
    
    # Timing
    posted_at = Column(DateTime(timezone=True), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
