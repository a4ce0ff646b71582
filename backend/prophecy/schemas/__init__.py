from .prophecy import (
    ModelVariant, Weekday, InsightType, PerformanceRecord, Insight,
    PredictionInterval, PredictionResult, AdjustmentFactors
)
from .feedback import (
    FeedbackMetadata, FeedbackCreate, FeedbackRecord, AccuracyPoint, FeedbackSummary
)
