"""Unit tests for sleep quality scoring, phase synthesis and display helpers"""
import random
import pytest
from datetime import datetime

from dreamwell.models.sleep import SleepPhases
from dreamwell.services.sleep_metrics import (
    EFFICIENCY_SCORE,
    calculate_consistency_score,
    calculate_duration_score,
    calculate_phase_score,
    calculate_sleep_quality,
    format_duration,
    generate_sleep_phases,
    get_quality_color,
    get_sleep_debt_color,
)


class TestCalculateSleepQuality:
    """Tests for calculate_sleep_quality()"""

    def test_optimal_sleep_scores_high(self, make_session):
        """8 hours, near-ideal phases, one interruption"""
        session = make_session(
            duration=480,
            phases={"awake": 10, "light": 240, "deep": 144, "rem": 96},
            interruptions=1,
        )

        quality = calculate_sleep_quality(session)

        assert 80 <= quality <= 100

    def test_short_interrupted_sleep_scores_lower(self, make_session):
        session = make_session(
            duration=240,
            phases={"awake": 0, "light": 0, "deep": 0, "rem": 0},
            interruptions=8,
        )

        quality = calculate_sleep_quality(session)

        # 40*.3 + 100*.25 + 20*.2 + 100*.15 + 100*.1
        assert quality == 66
        assert quality < 70

    def test_many_interruptions_penalized(self, make_session):
        calm = make_session(interruptions=0)
        restless = make_session(interruptions=10)

        assert calculate_sleep_quality(restless) == calculate_sleep_quality(calm) - 20

    def test_score_stays_in_range_for_extremes(self, make_session):
        worst = make_session(
            duration=60,
            phases={"awake": 60, "light": 0, "deep": 0, "rem": 0},
            interruptions=50,
        )
        best = make_session(
            duration=480,
            phases={"awake": 0, "light": 240, "deep": 144, "rem": 96},
            interruptions=0,
        )

        assert 0 <= calculate_sleep_quality(worst) <= 100
        assert calculate_sleep_quality(best) == 100

    def test_deterministic(self, make_session):
        session = make_session()
        history = [make_session(start=datetime(2024, 1, d, 22, 0)) for d in range(1, 8)]

        assert calculate_sleep_quality(session, history) == calculate_sleep_quality(session, history)

    def test_inconsistent_schedule_lowers_score(self, make_session):
        session = make_session()
        regular = [make_session(start=datetime(2024, 1, d, 22, 0)) for d in range(1, 6)]
        irregular = [
            make_session(start=datetime(2024, 1, d, hour, 0))
            for d, hour in zip(range(1, 6), (20, 23, 1, 21, 3))
        ]

        assert calculate_sleep_quality(session, irregular) < calculate_sleep_quality(session, regular)

    def test_efficiency_is_constant(self):
        assert EFFICIENCY_SCORE == 100


class TestSubScores:
    """Tests for the individual sub-scores"""

    @pytest.mark.parametrize("minutes,expected", [
        (420, 100), (480, 100), (540, 100),
        (360, 80), (419, 80),
        (300, 60), (359, 60),
        (541, 80), (600, 80),
        (299, 40), (601, 40), (0, 40),
    ])
    def test_duration_score_bands(self, minutes, expected):
        assert calculate_duration_score(minutes) == expected

    def test_phase_score_empty_phases(self):
        assert calculate_phase_score(SleepPhases()) == 100

    def test_phase_score_ideal_split(self):
        assert calculate_phase_score(SleepPhases(light=50, deep=30, rem=20)) == pytest.approx(100)

    def test_phase_score_floor_at_zero(self):
        assert calculate_phase_score(SleepPhases(awake=100)) == pytest.approx(33.33, abs=0.01)
        assert calculate_phase_score(SleepPhases(rem=100)) >= 0

    def test_consistency_needs_three_sessions(self, make_session):
        sessions = [
            make_session(start=datetime(2024, 1, 1, 20, 0)),
            make_session(start=datetime(2024, 1, 2, 2, 0)),
        ]
        assert calculate_consistency_score(sessions) == 100

    def test_consistency_ignores_active_sessions(self, make_session):
        sessions = [
            make_session(start=datetime(2024, 1, 1, 22, 0)),
            make_session(start=datetime(2024, 1, 2, 22, 0)),
            make_session(start=datetime(2024, 1, 3, 3, 0), completed=False),
        ]
        assert calculate_consistency_score(sessions) == 100

    def test_consistency_perfect_schedule(self, make_session):
        sessions = [make_session(start=datetime(2024, 1, d, 22, 0)) for d in range(1, 8)]
        assert calculate_consistency_score(sessions) == 100

    def test_consistency_one_hour_deviation(self, make_session):
        # Bedtimes 21:00/23:00 alternate -> pstdev 1h for bed and wake -> 50
        sessions = [
            make_session(start=datetime(2024, 1, d, 21 if d % 2 else 23, 0))
            for d in range(1, 5)
        ]
        assert calculate_consistency_score(sessions) == 50

    def test_consistency_uses_last_seven(self, make_session):
        erratic = [make_session(start=datetime(2024, 1, d, 12 + d, 0)) for d in range(1, 6)]
        regular = [make_session(start=datetime(2024, 1, d, 22, 0)) for d in range(6, 13)]
        assert calculate_consistency_score(erratic + regular) == 100


class TestGenerateSleepPhases:
    """Tests for generate_sleep_phases()"""

    def test_zero_duration(self):
        assert generate_sleep_phases(0) == SleepPhases()

    def test_under_one_cycle(self):
        assert generate_sleep_phases(89, micro_awakenings=False) == SleepPhases()

    def test_single_cycle_uses_first_cycle_allocation(self):
        phases = generate_sleep_phases(90, micro_awakenings=False)
        assert (phases.light, phases.deep, phases.rem, phases.awake) == (15, 50, 15, 0)

    def test_five_cycles(self):
        phases = generate_sleep_phases(480, micro_awakenings=False)
        # first + 3 middle + last
        assert phases.light == 15 + 3 * 20 + 25
        assert phases.deep == 50 + 3 * 35 + 20
        assert phases.rem == 15 + 3 * 25 + 35
        assert phases.awake == 0

    @pytest.mark.parametrize("duration", [0, 45, 90, 179, 180, 420, 480, 600, 1440])
    def test_total_never_exceeds_duration(self, duration):
        rng = random.Random(duration)
        for _ in range(20):
            phases = generate_sleep_phases(duration, rng=rng)
            assert phases.total <= duration
            assert min(phases.awake, phases.light, phases.deep, phases.rem) >= 0

    def test_seeded_source_is_reproducible(self):
        first = generate_sleep_phases(480, rng=random.Random(7))
        second = generate_sleep_phases(480, rng=random.Random(7))
        assert first == second

    def test_micro_awakenings_drawn_from_source(self):
        class AlwaysAwake:
            def random(self):
                return 0.99

            def randint(self, a, b):
                return b

        phases = generate_sleep_phases(270, rng=AlwaysAwake())
        assert phases.awake == 3 * 3

    def test_no_micro_awakening_at_threshold(self):
        class Threshold:
            def random(self):
                return 0.7

            def randint(self, a, b):
                raise AssertionError("should not be called")

        assert generate_sleep_phases(180, rng=Threshold()).awake == 0


class TestDisplayHelpers:
    """Tests for format_duration() and color bands"""

    @pytest.mark.parametrize("minutes,expected", [
        (0, "0m"), (45, "45m"), (60, "1h"), (480, "8h"), (125, "2h 5m"), (461, "7h 41m"),
    ])
    def test_format_duration(self, minutes, expected):
        assert format_duration(minutes) == expected

    @pytest.mark.parametrize("quality,band", [
        (100, "good"), (80, "good"), (79, "medium"), (60, "medium"), (59, "poor"), (0, "poor"),
    ])
    def test_quality_color(self, quality, band):
        assert get_quality_color(quality) == band

    @pytest.mark.parametrize("debt,band", [
        (0, "good"), (120, "good"), (-120, "good"),
        (121, "medium"), (300, "medium"), (-300, "medium"),
        (301, "elevated"), (480, "elevated"), (-480, "elevated"),
        (481, "severe"), (-600, "severe"),
    ])
    def test_sleep_debt_color(self, debt, band):
        assert get_sleep_debt_color(debt) == band
