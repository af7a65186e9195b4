"""
Sleep Analytics Engine

Aggregations over the full session and note history for the insights views:

1. Quality and duration trends over a trailing window
2. Average phase distribution
3. Activity/quality correlations from sleep notes
4. Weekday patterns
5. Personalized recommendations built from all of the above

All functions are pure: they never mutate their inputs or touch storage.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, List, Literal, Optional, Sequence, Tuple

from dreamwell.models.sleep import SleepNote, SleepSession
from dreamwell.utils.datetime_helpers import WEEKDAY_NAMES, sunday_based_weekday
from dreamwell.utils.numbers import round_half_up

logger = logging.getLogger(__name__)

Confidence = Literal["low", "medium", "high"]
Priority = Literal["low", "medium", "high"]
RecommendationCategory = Literal["duration", "timing", "quality", "activities"]

MIN_CORRELATION_SAMPLES = 3
MIN_IMPACT = 5
RECOMMENDATION_IMPACT = -10
MAX_RECOMMENDATIONS = 5


@dataclass
class TrendDataPoint:
    date: str
    value: float
    label: str


@dataclass
class PhaseShare:
    name: str
    value: int  # average minutes per session
    percentage: int


@dataclass
class CorrelationInsight:
    activity: str
    impact: int  # quality points, with minus without
    description: str
    confidence: Confidence


@dataclass
class WeekdayPattern:
    day: str
    average_quality: int
    average_duration: int
    count: int  # 0 means no data, not a 0% night


@dataclass
class Recommendation:
    title: str
    description: str
    priority: Priority
    category: RecommendationCategory


def _date_label(moment: datetime) -> str:
    return f"{moment:%b} {moment.day}"


def get_sessions_in_range(
    sessions: Sequence[SleepSession],
    days: int,
    now: Optional[datetime] = None
) -> List[SleepSession]:
    """Completed sessions that started within the last `days` days, oldest first"""
    cutoff = (now or datetime.now()) - timedelta(days=days)

    return sorted(
        (s for s in sessions if s.end_time is not None and s.start_time >= cutoff),
        key=lambda s: s.start_time
    )


def get_sleep_quality_trend(
    sessions: Sequence[SleepSession],
    days: int = 30,
    now: Optional[datetime] = None
) -> List[TrendDataPoint]:
    return [
        TrendDataPoint(date=_date_label(s.start_time), value=s.quality, label=f"{s.quality}%")
        for s in get_sessions_in_range(sessions, days, now)
    ]


def get_sleep_duration_trend(
    sessions: Sequence[SleepSession],
    days: int = 30,
    now: Optional[datetime] = None
) -> List[TrendDataPoint]:
    """Duration trend in hours"""
    return [
        TrendDataPoint(
            date=_date_label(s.start_time),
            value=s.duration / 60,
            label=f"{s.duration / 60:.1f}h"
        )
        for s in get_sessions_in_range(sessions, days, now)
    ]


def get_average_phases_distribution(sessions: Sequence[SleepSession]) -> List[PhaseShare]:
    """
    Average minutes per phase across completed sessions, with each phase's
    share of the combined total. Returns zeroed rows when there is no data.
    """
    completed = [s for s in sessions if s.end_time is not None]
    names = ("Light", "Deep", "REM", "Awake")

    if not completed:
        return [PhaseShare(name=name, value=0, percentage=0) for name in names]

    totals = (
        sum(s.phases.light for s in completed),
        sum(s.phases.deep for s in completed),
        sum(s.phases.rem for s in completed),
        sum(s.phases.awake for s in completed),
    )
    grand_total = sum(totals)
    count = len(completed)

    return [
        PhaseShare(
            name=name,
            value=round_half_up(total / count),
            percentage=round_half_up(total / grand_total * 100) if grand_total else 0,
        )
        for name, total in zip(names, totals)
    ]


def _confidence(sample_size: int) -> Confidence:
    if sample_size > 10:
        return "high"
    if sample_size > 5:
        return "medium"
    return "low"


def _mean_quality(pairs: Sequence[Tuple[SleepSession, SleepNote]]) -> float:
    return sum(session.quality for session, _ in pairs) / len(pairs)


def _pair_sessions_with_notes(
    sessions: Sequence[SleepSession],
    notes: Sequence[SleepNote]
) -> List[Tuple[SleepSession, SleepNote]]:
    """Match each completed session with the first note from the same calendar day"""
    pairs = []
    for session in sessions:
        if session.end_time is None:
            continue
        session_day = session.start_time.date()
        note = next((n for n in notes if n.date.date() == session_day), None)
        if note is not None:
            pairs.append((session, note))
    return pairs


# (activity, "with" predicate, "without" predicate, description when negative, when positive)
_CORRELATION_FACTORS: List[Tuple[str, Callable[[SleepNote], bool], Callable[[SleepNote], bool], str, str]] = [
    (
        "Caffeine",
        lambda n: len(n.activities.caffeine) > 0,
        lambda n: len(n.activities.caffeine) == 0,
        "Caffeine consumption reduces your sleep quality by {impact}%",
        "Caffeine consumption improves your sleep quality by {impact}%",
    ),
    (
        "Exercise",
        lambda n: n.activities.exercise is not None,
        lambda n: n.activities.exercise is None,
        "Exercise reduces your sleep quality by {impact}%",
        "Exercise improves your sleep quality by {impact}%",
    ),
    (
        "High Stress",
        lambda n: n.activities.stress >= 4,
        lambda n: n.activities.stress <= 2,
        "High stress levels reduce your sleep quality by {impact}%",
        "High stress levels improve your sleep quality by {impact}%",
    ),
    (
        "Screen Time",
        lambda n: n.activities.screen_time > 120,
        lambda n: n.activities.screen_time < 60,
        "High screen time (>2h) reduces your sleep quality by {impact}%",
        "High screen time improves your sleep quality by {impact}%",
    ),
]


def analyze_activity_correlations(
    sessions: Sequence[SleepSession],
    notes: Sequence[SleepNote]
) -> List[CorrelationInsight]:
    """
    Compare mean quality on nights with and without each activity.

    Needs at least 3 session/note pairs. An insight is emitted only when the
    difference exceeds 5 points; results are sorted by absolute impact.
    """
    pairs = _pair_sessions_with_notes(sessions, notes)

    if len(pairs) < MIN_CORRELATION_SAMPLES:
        logger.debug(f"Not enough paired nights for correlations (have {len(pairs)}, need {MIN_CORRELATION_SAMPLES})")
        return []

    confidence = _confidence(len(pairs))
    insights = []

    for activity, has_factor, lacks_factor, negative_text, positive_text in _CORRELATION_FACTORS:
        with_group = [p for p in pairs if has_factor(p[1])]
        without_group = [p for p in pairs if lacks_factor(p[1])]

        if not with_group or not without_group:
            continue

        impact = round_half_up(_mean_quality(with_group) - _mean_quality(without_group))

        if abs(impact) > MIN_IMPACT:
            template = negative_text if impact < 0 else positive_text
            insights.append(CorrelationInsight(
                activity=activity,
                impact=impact,
                description=template.format(impact=abs(impact)),
                confidence=confidence,
            ))

    return sorted(insights, key=lambda i: abs(i.impact), reverse=True)


def get_weekday_patterns(sessions: Sequence[SleepSession]) -> List[WeekdayPattern]:
    """Average quality and duration of completed sessions per weekday, Sunday first"""
    patterns = []

    for index, day in enumerate(WEEKDAY_NAMES):
        day_sessions = [
            s for s in sessions
            if s.end_time is not None and sunday_based_weekday(s.start_time) == index
        ]

        if not day_sessions:
            patterns.append(WeekdayPattern(day=day, average_quality=0, average_duration=0, count=0))
            continue

        patterns.append(WeekdayPattern(
            day=day,
            average_quality=round_half_up(sum(s.quality for s in day_sessions) / len(day_sessions)),
            average_duration=round_half_up(sum(s.duration for s in day_sessions) / len(day_sessions)),
            count=len(day_sessions),
        ))

    return patterns


_ACTIVITY_RECOMMENDATIONS = {
    "Caffeine": Recommendation(
        title="Reduce Late Caffeine",
        description="Caffeine is negatively impacting your sleep. Try avoiding it after 2 PM.",
        priority="medium",
        category="activities",
    ),
    "High Stress": Recommendation(
        title="Manage Stress Levels",
        description="High stress is affecting your sleep. Consider meditation or relaxation techniques.",
        priority="high",
        category="activities",
    ),
    "Screen Time": Recommendation(
        title="Reduce Evening Screen Time",
        description="Excessive screen time before bed is hurting your sleep quality. Try a digital curfew 1 hour before bed.",
        priority="medium",
        category="activities",
    ),
}


def generate_recommendations(
    sessions: Sequence[SleepSession],
    notes: Sequence[SleepNote],
    goal_minutes: int,
    now: Optional[datetime] = None
) -> List[Recommendation]:
    """
    Build up to 5 recommendations from the last 7 days and the note history.

    Triggers, in order:
    - average duration more than an hour under goal (high)
    - average quality under 70 (high)
    - more than 5 interruptions per night (medium)
    - a negative activity correlation (impact < -10, confidence not low)
    - the worst weekday more than 10 points below average (low)
    """
    if not sessions:
        return []

    recommendations: List[Recommendation] = []
    recent = get_sessions_in_range(sessions, 7, now)
    avg_quality: Optional[float] = None

    if recent:
        avg_duration = sum(s.duration for s in recent) / len(recent)
        if avg_duration < goal_minutes - 60:
            recommendations.append(Recommendation(
                title="Increase Sleep Duration",
                description=(
                    f"You're sleeping {round_half_up((goal_minutes - avg_duration) / 60)} hours less than your goal. "
                    "Try going to bed 30 minutes earlier."
                ),
                priority="high",
                category="duration",
            ))

        avg_quality = sum(s.quality for s in recent) / len(recent)
        if avg_quality < 70:
            recommendations.append(Recommendation(
                title="Improve Sleep Quality",
                description="Your sleep quality is below optimal. Consider reviewing your bedtime routine and sleep environment.",
                priority="high",
                category="quality",
            ))

        avg_interruptions = sum(s.interruptions for s in recent) / len(recent)
        if avg_interruptions > 5:
            recommendations.append(Recommendation(
                title="Reduce Sleep Interruptions",
                description=(
                    f"You average {round_half_up(avg_interruptions)} interruptions per night. "
                    "Try reducing noise and light in your bedroom."
                ),
                priority="medium",
                category="quality",
            ))

    for insight in analyze_activity_correlations(sessions, notes):
        if insight.impact < RECOMMENDATION_IMPACT and insight.confidence != "low":
            suggestion = _ACTIVITY_RECOMMENDATIONS.get(insight.activity)
            if suggestion is not None:
                recommendations.append(Recommendation(**vars(suggestion)))

    if avg_quality is not None:
        observed_days = [p for p in get_weekday_patterns(recent) if p.count > 0]
        worst_day = min(observed_days, key=lambda p: p.average_quality, default=None)

        if worst_day and worst_day.average_quality < avg_quality - 10:
            recommendations.append(Recommendation(
                title=f"Improve {worst_day.day} Sleep",
                description=(
                    f"Your sleep quality on {worst_day.day}s is "
                    f"{round_half_up(avg_quality - worst_day.average_quality)}% below average. "
                    "Review what's different on those days."
                ),
                priority="low",
                category="timing",
            ))

    return recommendations[:MAX_RECOMMENDATIONS]
