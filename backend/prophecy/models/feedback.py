from sqlalchemy import Column, Integer, String, Float, Text, DateTime, Boolean, JSON
from sqlalchemy.sql import func
from prophecy.db.session import Base

class UserFeedback(Base):
    """Append-only user judgment on a past prediction"""
    __tablename__ = "user_feedback"
    
    id = Column(String(36), primary_key=True)
    user_id = Column(String(64), nullable=False, index=True)
    prophecy_id = Column(String(64), nullable=False, index=True)
    rating = Column(Integer, nullable=False)  # 1-5
    was_helpful = Column(Boolean, nullable=False)
    comment = Column(Text, nullable=True)
    
    # Predicted vs actual metrics and follow-through flag
    feedback_metadata = Column("metadata", JSON, nullable=True)
    
    created_at = Column(DateTime(timezone=True), nullable=False, index=True)

class PredictionParameters(Base):
    """Per-user calibration factors derived from recent feedback"""
    __tablename__ = "prediction_parameters"
    
    user_id = Column(String(64), primary_key=True)
    view_multiplier = Column(Float, nullable=False, default=1.0)
    like_multiplier = Column(Float, nullable=False, default=1.0)
    comment_multiplier = Column(Float, nullable=False, default=1.0)
    confidence_adjustment = Column(Float, nullable=False, default=0.0)
    sample_size = Column(Integer, nullable=False, default=0)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
