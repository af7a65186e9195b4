"""Sleep-domain services: metrics, debt, analytics, sessions, notifications, export"""
from dreamwell.services.sleep_metrics import (
    calculate_sleep_quality,
    generate_sleep_phases,
    format_duration,
    get_quality_color,
    get_sleep_debt_color,
)
from dreamwell.services.sleep_debt import calculate_sleep_debt
from dreamwell.services.analytics import (
    get_sessions_in_range,
    get_sleep_quality_trend,
    get_sleep_duration_trend,
    get_average_phases_distribution,
    analyze_activity_correlations,
    get_weekday_patterns,
    generate_recommendations,
)

__all__ = [
    "calculate_sleep_quality",
    "generate_sleep_phases",
    "format_duration",
    "get_quality_color",
    "get_sleep_debt_color",
    "calculate_sleep_debt",
    "get_sessions_in_range",
    "get_sleep_quality_trend",
    "get_sleep_duration_trend",
    "get_average_phases_distribution",
    "analyze_activity_correlations",
    "get_weekday_patterns",
    "generate_recommendations",
]
