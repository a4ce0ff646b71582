from typing import Sequence

from prophecy.schemas.prophecy import PerformanceRecord, Weekday
from .trend_predictor import as_utc

DEFAULT_HOUR = 9
DEFAULT_DAY = Weekday.MONDAY

WEEKDAYS = list(Weekday)  # indexed by datetime.weekday()


def engagement_score(record: PerformanceRecord) -> float:
    if record.views <= 0:
        return 0.0
    return (record.likes + record.comments) / record.views


def format_hour(hour: int) -> str:
    return f"{hour % 12 or 12}:00 {'AM' if hour < 12 else 'PM'}"


def determine_optimal_hour(records: Sequence[PerformanceRecord]) -> int:
    """Hour of day (UTC) with the highest accumulated engagement"""
    engagement_by_hour = [0.0] * 24
    best_hour = DEFAULT_HOUR
    max_engagement = 0.0

    for record in records:
        hour = as_utc(record.posted_at).hour
        engagement_by_hour[hour] += engagement_score(record)

        # first hour to reach the running maximum keeps it
        if engagement_by_hour[hour] > max_engagement:
            max_engagement = engagement_by_hour[hour]
            best_hour = hour

    return best_hour


def determine_optimal_time(records: Sequence[PerformanceRecord]) -> str:
    return format_hour(determine_optimal_hour(records))


def determine_optimal_day(records: Sequence[PerformanceRecord]) -> Weekday:
    """Weekday (UTC) with the highest accumulated engagement"""
    engagement_by_day = [0.0] * 7
    best_day = DEFAULT_DAY
    max_engagement = 0.0

    for record in records:
        day = as_utc(record.posted_at).weekday()
        engagement_by_day[day] += engagement_score(record)

        if engagement_by_day[day] > max_engagement:
            max_engagement = engagement_by_day[day]
            best_day = WEEKDAYS[day]

    return best_day
