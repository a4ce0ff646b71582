from .analytics import AnalyticsEvent, PlatformType
from .feedback import UserFeedback, PredictionParameters
