from typing import List

from prophecy.core.config import settings
from prophecy.schemas.prophecy import Insight, InsightType, Weekday
from .baseline import BaselineMetrics, MetricForecast

SHORTEN_CLIPS = "Try shortening your clips to improve watch time retention"
ADD_CALL_TO_ACTION = "Add clear calls-to-action to boost engagement"

FILLER_RECOMMENDATIONS = (
    "Post consistently at optimal times to build audience habits",
    "Engage with comments within the first hour of posting",
    "Use trending sounds and effects to increase visibility",
)

LOW_WATCH_TIME_SECONDS = 20
LOW_ENGAGEMENT_RATIO = 0.05


def generate_recommendations(baseline: BaselineMetrics) -> List[str]:
    """Rule-based suggestions, padded with general advice and capped"""
    recommendations = []

    if baseline.avg_watch_time < LOW_WATCH_TIME_SECONDS:
        recommendations.append(SHORTEN_CLIPS)

    if baseline.avg_engagement < LOW_ENGAGEMENT_RATIO:
        recommendations.append(ADD_CALL_TO_ACTION)

    recommendations.extend(FILLER_RECOMMENDATIONS)

    return recommendations[:settings.MAX_RECOMMENDATIONS]


def trending_hashtags() -> List[str]:
    return list(settings.TRENDING_HASHTAGS)


def generate_insights(
    baseline: BaselineMetrics,
    forecast: MetricForecast,
    best_time: str,
    best_day: Weekday,
    record_count: int,
) -> List[Insight]:
    """One engagement, timing and content insight derived from the forecast inputs"""
    insights = []

    if not forecast.used_regression:
        insights.append(Insight(
            type=InsightType.ENGAGEMENT,
            message="Not enough posting history to detect a trend yet, so predictions follow your averages",
            confidence=forecast.confidence,
        ))
    elif forecast.views >= baseline.avg_views:
        insights.append(Insight(
            type=InsightType.ENGAGEMENT,
            message="Your views are trending upward",
            confidence=forecast.confidence,
        ))
    else:
        insights.append(Insight(
            type=InsightType.ENGAGEMENT,
            message="Your views are trending downward; revisit hooks from your best clips",
            confidence=forecast.confidence,
        ))

    if record_count:
        insights.append(Insight(
            type=InsightType.TIMING,
            message=f"{best_day.value} posts around {best_time} earn your highest engagement",
            confidence=min(90, 50 + 5 * record_count),
        ))
    else:
        insights.append(Insight(
            type=InsightType.TIMING,
            message="Post a few clips to learn your best posting window",
            confidence=50,
        ))

    if baseline.avg_watch_time >= 30:
        insights.append(Insight(
            type=InsightType.CONTENT,
            message=f"Viewers watch {baseline.avg_watch_time:.0f}s on average; tutorial-style content holds attention",
            confidence=80,
        ))
    else:
        insights.append(Insight(
            type=InsightType.CONTENT,
            message=f"Viewers drop off after about {baseline.avg_watch_time:.0f}s; lead with your strongest moment",
            confidence=75,
        ))

    return insights
