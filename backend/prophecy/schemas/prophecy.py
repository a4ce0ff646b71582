from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime
from enum import Enum
from typing import List, Optional

from prophecy.models.analytics import PlatformType

class ModelVariant(str, Enum):
    LINEAR = "linear"
    RANDOM_FOREST = "random_forest"
    ENSEMBLE = "ensemble"

class Weekday(str, Enum):
    MONDAY = "Monday"
    TUESDAY = "Tuesday"
    WEDNESDAY = "Wednesday"
    THURSDAY = "Thursday"
    FRIDAY = "Friday"
    SATURDAY = "Saturday"
    SUNDAY = "Sunday"

class InsightType(str, Enum):
    ENGAGEMENT = "engagement"
    TIMING = "timing"
    CONTENT = "content"

# Historical data
class PerformanceRecord(BaseModel):
    model_config = ConfigDict(frozen=True, from_attributes=True)

    user_id: str
    clip_id: str
    platform: PlatformType = PlatformType.TIKTOK
    views: int = Field(ge=0)
    likes: int = Field(ge=0)
    comments: int = Field(ge=0)
    shares: int = Field(default=0, ge=0)
    watch_time: float = Field(default=0.0, ge=0)
    posted_at: datetime

# Prediction output
class PredictionInterval(BaseModel):
    lower: int = Field(ge=0)
    upper: int = Field(ge=0)

class Insight(BaseModel):
    type: InsightType
    message: str
    confidence: int = Field(ge=0, le=100)

class PredictionResult(BaseModel):
    prophecy_id: str
    user_id: str
    clip_id: Optional[str] = None
    variant: ModelVariant
    predicted_views: int = Field(ge=0)
    predicted_likes: int = Field(ge=0)
    predicted_comments: int = Field(ge=0)
    confidence: int = Field(ge=0, le=100)
    views_interval: Optional[PredictionInterval] = None
    best_time: str
    best_day: Weekday
    recommended_duration: int
    trending_hashtags: List[str]
    recommendations: List[str]
    insights: List[Insight]
    generated_at: datetime

# Calibration state
class AdjustmentFactors(BaseModel):
    view_multiplier: float = Field(default=1.0, ge=0.5, le=1.5)
    like_multiplier: float = Field(default=1.0, ge=0.5, le=1.5)
    comment_multiplier: float = Field(default=1.0, ge=0.5, le=1.5)
    confidence_adjustment: float = 0.0
