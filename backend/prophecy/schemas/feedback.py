from pydantic import BaseModel, ConfigDict, Field, StrictBool
from datetime import datetime
from typing import List, Optional

class FeedbackMetadata(BaseModel):
    """Predicted values at prediction time and the outcome observed later"""
    followed_recommendations: bool = False
    predicted_views: Optional[float] = Field(default=None, ge=0)
    predicted_likes: Optional[float] = Field(default=None, ge=0)
    predicted_comments: Optional[float] = Field(default=None, ge=0)
    actual_views: Optional[float] = Field(default=None, ge=0)
    actual_likes: Optional[float] = Field(default=None, ge=0)
    actual_comments: Optional[float] = Field(default=None, ge=0)

class FeedbackCreate(BaseModel):
    # rating range and was_helpful presence are checked by the feedback service
    user_id: str = Field(min_length=1)
    prophecy_id: str = Field(min_length=1)
    rating: int
    was_helpful: Optional[StrictBool] = None
    comment: Optional[str] = None
    metadata: Optional[FeedbackMetadata] = None

class FeedbackRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    user_id: str
    prophecy_id: str
    rating: int
    was_helpful: bool
    comment: Optional[str] = None
    metadata: Optional[FeedbackMetadata] = None
    created_at: datetime

class AccuracyPoint(BaseModel):
    date: str
    accuracy: float

class FeedbackSummary(BaseModel):
    average_rating: float = 0
    total_feedback: int = 0
    helpful_percentage: float = 0
    recommendation_follow_rate: float = 0
    accuracy_trend: List[AccuracyPoint] = []
