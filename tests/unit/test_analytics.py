"""Unit tests for the sleep analytics engine"""
import pytest
from datetime import datetime, timedelta

from dreamwell.services.analytics import (
    analyze_activity_correlations,
    generate_recommendations,
    get_average_phases_distribution,
    get_sessions_in_range,
    get_sleep_duration_trend,
    get_sleep_quality_trend,
    get_weekday_patterns,
)


NOW = datetime(2024, 1, 10, 12, 0)  # Wednesday


def _night(day: int) -> datetime:
    return datetime(2024, 1, day, 22, 0)


# ============================================================================
# Ranges and Trends
# ============================================================================

class TestSessionsInRange:
    """Tests for get_sessions_in_range()"""

    def test_filters_by_cutoff_and_sorts(self, make_session):
        newer = make_session(start=_night(8), id="newer")
        older = make_session(start=_night(4), id="older")
        outside = make_session(start=_night(2), id="outside")

        result = get_sessions_in_range([newer, outside, older], 7, now=NOW)

        assert [s.id for s in result] == ["older", "newer"]

    def test_cutoff_is_inclusive(self, make_session):
        edge = make_session(start=NOW - timedelta(days=7))
        assert get_sessions_in_range([edge], 7, now=NOW) == [edge]

    def test_active_sessions_excluded(self, make_session):
        active = make_session(start=_night(9), completed=False)
        assert get_sessions_in_range([active], 7, now=NOW) == []


class TestTrends:
    """Tests for quality and duration trends"""

    def test_quality_trend_points(self, make_session):
        sessions = [
            make_session(start=_night(5), quality=85),
            make_session(start=_night(3), quality=72),
        ]

        trend = get_sleep_quality_trend(sessions, days=30, now=NOW)

        assert [(p.date, p.value, p.label) for p in trend] == [
            ("Jan 3", 72, "72%"),
            ("Jan 5", 85, "85%"),
        ]

    def test_duration_trend_in_hours(self, make_session):
        sessions = [make_session(start=_night(5), duration=450)]

        trend = get_sleep_duration_trend(sessions, days=30, now=NOW)

        assert len(trend) == 1
        assert trend[0].value == pytest.approx(7.5)
        assert trend[0].label == "7.5h"

    def test_trend_respects_window(self, make_session):
        sessions = [make_session(start=datetime(2023, 11, 1, 22, 0))]
        assert get_sleep_quality_trend(sessions, days=30, now=NOW) == []


class TestPhaseDistribution:
    """Tests for get_average_phases_distribution()"""

    def test_empty_history_returns_zero_rows(self):
        rows = get_average_phases_distribution([])

        assert [r.name for r in rows] == ["Light", "Deep", "REM", "Awake"]
        assert all(r.value == 0 and r.percentage == 0 for r in rows)

    def test_averages_and_shares(self, make_session):
        sessions = [
            make_session(phases={"awake": 10, "light": 200, "deep": 150, "rem": 120}),
            make_session(phases={"awake": 20, "light": 100, "deep": 50, "rem": 80}),
        ]

        rows = {r.name: r for r in get_average_phases_distribution(sessions)}

        assert rows["Light"].value == 150
        assert rows["Deep"].value == 100
        assert rows["REM"].value == 100
        assert rows["Awake"].value == 15
        assert rows["Light"].percentage == 41
        assert rows["Deep"].percentage == 27
        assert rows["REM"].percentage == 27
        assert rows["Awake"].percentage == 4

    def test_only_completed_sessions(self, make_session):
        sessions = [
            make_session(phases={"awake": 0, "light": 100, "deep": 0, "rem": 0}),
            make_session(completed=False, phases={"awake": 0, "light": 900, "deep": 0, "rem": 0}),
        ]

        rows = {r.name: r for r in get_average_phases_distribution(sessions)}

        assert rows["Light"].value == 100
        assert rows["Light"].percentage == 100


# ============================================================================
# Correlations
# ============================================================================

class TestActivityCorrelations:
    """Tests for analyze_activity_correlations()"""

    def test_needs_three_pairs(self, make_session, make_note):
        sessions = [make_session(start=_night(d), quality=40) for d in (1, 2)]
        notes = [make_note(_night(d), caffeine=["coffee"]) for d in (1, 2)]

        assert analyze_activity_correlations(sessions, notes) == []

    def test_negative_caffeine_impact(self, make_session, make_note):
        sessions = [
            make_session(start=_night(1), quality=60),
            make_session(start=_night(2), quality=60),
            make_session(start=_night(3), quality=80),
            make_session(start=_night(4), quality=80),
        ]
        notes = [
            make_note(_night(1), caffeine=["coffee"]),
            make_note(_night(2), caffeine=["tea"]),
            make_note(_night(3)),
            make_note(_night(4)),
        ]

        insights = analyze_activity_correlations(sessions, notes)

        assert len(insights) == 1
        assert insights[0].activity == "Caffeine"
        assert insights[0].impact == -20
        assert insights[0].description == "Caffeine consumption reduces your sleep quality by 20%"
        assert insights[0].confidence == "low"

    def test_positive_exercise_impact(self, make_session, make_note):
        sessions = [make_session(start=_night(d), quality=q) for d, q in ((1, 90), (2, 90), (3, 70))]
        notes = [
            make_note(_night(1), exercise="morning"),
            make_note(_night(2), exercise="evening"),
            make_note(_night(3)),
        ]

        insights = analyze_activity_correlations(sessions, notes)

        assert [(i.activity, i.impact) for i in insights] == [("Exercise", 20)]
        assert insights[0].description == "Exercise improves your sleep quality by 20%"

    def test_small_differences_ignored(self, make_session, make_note):
        sessions = [make_session(start=_night(d), quality=q) for d, q in ((1, 75), (2, 80), (3, 80))]
        notes = [make_note(_night(1), caffeine=["coffee"]), make_note(_night(2)), make_note(_night(3))]

        assert analyze_activity_correlations(sessions, notes) == []

    def test_sorted_by_absolute_impact(self, make_session, make_note):
        # Stress nights lose 30 points, screen-heavy nights lose 15
        specs = [
            (1, 50, {"stress": 5, "screen_time": 30}),
            (2, 50, {"stress": 4, "screen_time": 30}),
            (3, 80, {"stress": 1, "screen_time": 30}),
            (4, 80, {"stress": 2, "screen_time": 30}),
            (5, 50, {"stress": 3, "screen_time": 180}),
        ]
        sessions = [make_session(start=_night(d), quality=q) for d, q, _ in specs]
        notes = [make_note(_night(d), **a) for d, _, a in specs]

        insights = analyze_activity_correlations(sessions, notes)

        assert [(i.activity, i.impact) for i in insights] == [
            ("High Stress", -30),
            ("Screen Time", -15),
        ]

    def test_confidence_grows_with_samples(self, make_session, make_note):
        def build(count):
            sessions, notes = [], []
            for d in range(1, count + 1):
                has_caffeine = d % 2 == 0
                sessions.append(make_session(start=_night(d), quality=50 if has_caffeine else 90))
                notes.append(make_note(_night(d), caffeine=["coffee"] if has_caffeine else []))
            return sessions, notes

        assert analyze_activity_correlations(*build(5))[0].confidence == "low"
        assert analyze_activity_correlations(*build(6))[0].confidence == "medium"
        assert analyze_activity_correlations(*build(11))[0].confidence == "high"

    def test_unpaired_notes_and_active_sessions_ignored(self, make_session, make_note):
        sessions = [
            make_session(start=_night(1), quality=50),
            make_session(start=_night(2), completed=False),
        ]
        notes = [make_note(_night(d), caffeine=["coffee"]) for d in (1, 2, 3, 4)]

        assert analyze_activity_correlations(sessions, notes) == []


# ============================================================================
# Weekday Patterns
# ============================================================================

class TestWeekdayPatterns:
    """Tests for get_weekday_patterns()"""

    def test_seven_rows_sunday_first(self):
        patterns = get_weekday_patterns([])

        assert [p.day for p in patterns] == [
            "Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday"
        ]
        assert all(p.count == 0 for p in patterns)

    def test_averages_per_weekday(self, make_session):
        sessions = [
            make_session(start=_night(7), quality=70, duration=400),   # Sunday
            make_session(start=_night(14), quality=81, duration=421),  # Sunday
            make_session(start=_night(8), quality=90, duration=480),   # Monday
        ]

        patterns = {p.day: p for p in get_weekday_patterns(sessions)}

        assert patterns["Sunday"].count == 2
        assert patterns["Sunday"].average_quality == 76
        assert patterns["Sunday"].average_duration == 411
        assert patterns["Monday"].average_quality == 90
        assert patterns["Tuesday"].count == 0
        assert patterns["Tuesday"].average_quality == 0


# ============================================================================
# Recommendations
# ============================================================================

class TestGenerateRecommendations:
    """Tests for generate_recommendations()"""

    def test_no_sessions(self):
        assert generate_recommendations([], [], 480, now=NOW) == []

    def test_healthy_week_has_no_recommendations(self, make_session):
        sessions = [make_session(start=_night(d), quality=85, interruptions=1) for d in range(4, 10)]

        assert generate_recommendations(sessions, [], 480, now=NOW) == []

    def test_short_poor_interrupted_week(self, make_session):
        sessions = [
            make_session(start=_night(d), duration=360, quality=60, interruptions=6)
            for d in range(4, 10)
        ]

        recs = generate_recommendations(sessions, [], 480, now=NOW)
        titles = [r.title for r in recs]

        assert titles[:3] == [
            "Increase Sleep Duration",
            "Improve Sleep Quality",
            "Reduce Sleep Interruptions",
        ]
        assert recs[0].priority == "high"
        assert recs[0].category == "duration"
        assert "2 hours less than your goal" in recs[0].description
        assert "You average 6 interruptions per night" in recs[2].description

    def test_worst_weekday_flagged(self, make_session):
        sessions = [
            make_session(start=_night(d), quality=55 if d == 7 else 85)
            for d in range(4, 10)
        ]

        recs = generate_recommendations(sessions, [], 480, now=NOW)

        assert len(recs) == 1
        assert recs[0].title == "Improve Sunday Sleep"
        assert recs[0].priority == "low"
        assert recs[0].category == "timing"
        assert "25% below average" in recs[0].description

    def test_activity_recommendation_requires_confidence(self, make_session, make_note):
        def build(days):
            sessions, notes = [], []
            for d in days:
                has_caffeine = d % 2 == 0
                sessions.append(make_session(start=_night(d), quality=70 if has_caffeine else 95))
                notes.append(make_note(_night(d), caffeine=["coffee"] if has_caffeine else []))
            return sessions, notes

        # Outside the 7-day window so only the correlation rules apply
        low = generate_recommendations(*build(range(20, 25)), 480, now=datetime(2024, 3, 1))
        medium = generate_recommendations(*build(range(20, 26)), 480, now=datetime(2024, 3, 1))

        assert low == []
        assert [r.title for r in medium] == ["Reduce Late Caffeine"]

    def test_capped_at_five(self, make_session, make_note):
        sessions, notes = [], []
        for d in range(4, 10):
            bad_night = d % 2 == 0
            sessions.append(make_session(
                start=_night(d), duration=300, interruptions=8, quality=30 if bad_night else 70
            ))
            notes.append(make_note(
                _night(d),
                caffeine=["coffee"] if bad_night else [],
                stress=5 if bad_night else 1,
                screen_time=180 if bad_night else 0,
            ))

        recs = generate_recommendations(sessions, notes, 480, now=NOW)

        assert [r.title for r in recs] == [
            "Increase Sleep Duration",
            "Improve Sleep Quality",
            "Reduce Sleep Interruptions",
            "Reduce Late Caffeine",
            "Manage Stress Levels",
        ]

    def test_inputs_not_mutated(self, make_session, make_note):
        sessions = [make_session(start=_night(d), quality=60) for d in range(4, 10)]
        before = [s.model_dump() for s in sessions]

        generate_recommendations(sessions, [], 480, now=NOW)

        assert [s.model_dump() for s in sessions] == before
