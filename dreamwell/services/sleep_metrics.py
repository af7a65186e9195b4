"""
Sleep Metrics

Scores a single sleep session, synthesizes a phase breakdown for a given
duration, and maps durations and scores to display bands.

Quality score weights:
- Duration      30%  (7-9h ideal)
- Efficiency    25%  (constant 100 until a real efficiency signal exists)
- Interruptions 20%  (-10 per interruption)
- Phase balance 15%  (distance from 50% light / 30% deep / 20% REM)
- Consistency   10%  (bedtime/wake-time regularity over the last 7 nights)

Everything here is pure except generate_sleep_phases, whose micro-awakenings
draw from an injectable random source.
"""

import logging
import random
import statistics
from typing import Iterable, Optional, Protocol, Sequence

from dreamwell.models.sleep import SleepPhases, SleepSession
from dreamwell.utils.datetime_helpers import decimal_hour
from dreamwell.utils.numbers import clamp, round_half_up

logger = logging.getLogger(__name__)

DURATION_WEIGHT = 0.30
EFFICIENCY_WEIGHT = 0.25
INTERRUPTION_WEIGHT = 0.20
PHASE_WEIGHT = 0.15
CONSISTENCY_WEIGHT = 0.10

# Placeholder: no signal for time-in-bed vs time-asleep yet
EFFICIENCY_SCORE = 100

IDEAL_LIGHT_PERCENT = 50
IDEAL_DEEP_PERCENT = 30
IDEAL_REM_PERCENT = 20

CONSISTENCY_WINDOW = 7
CONSISTENCY_MIN_SAMPLES = 3

CYCLE_MINUTES = 90
MICRO_AWAKENING_THRESHOLD = 0.7


class RandomSource(Protocol):
    """Anything with the random.Random interface used for micro-awakenings"""

    def random(self) -> float: ...

    def randint(self, a: int, b: int) -> int: ...


def calculate_sleep_quality(
    session: SleepSession,
    recent_sessions: Optional[Sequence[SleepSession]] = None
) -> int:
    """
    Score a completed session from 0 to 100.

    Args:
        session: The session to score
        recent_sessions: History used for the consistency sub-score; the last
            7 completed entries are used

    Returns:
        Weighted quality score, rounded to the nearest integer
    """
    duration_score = calculate_duration_score(session.duration)
    interruption_score = calculate_interruption_score(session.interruptions)
    phase_score = calculate_phase_score(session.phases)
    consistency_score = calculate_consistency_score(recent_sessions or [])

    quality = (
        duration_score * DURATION_WEIGHT
        + EFFICIENCY_SCORE * EFFICIENCY_WEIGHT
        + interruption_score * INTERRUPTION_WEIGHT
        + phase_score * PHASE_WEIGHT
        + consistency_score * CONSISTENCY_WEIGHT
    )

    return int(clamp(round_half_up(quality), 0, 100))


def calculate_duration_score(minutes: float) -> int:
    hours = minutes / 60
    if 7 <= hours <= 9:
        return 100
    if 6 <= hours < 7:
        return 80
    if 5 <= hours < 6:
        return 60
    if 9 < hours <= 10:
        return 80
    return 40


def calculate_interruption_score(interruptions: int) -> int:
    return max(0, 100 - interruptions * 10)


def calculate_phase_score(phases: SleepPhases) -> float:
    """100 minus twice the mean deviation from the ideal phase split"""
    total = phases.total
    if total == 0:
        return 100

    light_percent = phases.light / total * 100
    deep_percent = phases.deep / total * 100
    rem_percent = phases.rem / total * 100

    avg_diff = (
        abs(light_percent - IDEAL_LIGHT_PERCENT)
        + abs(deep_percent - IDEAL_DEEP_PERCENT)
        + abs(rem_percent - IDEAL_REM_PERCENT)
    ) / 3
    return max(0.0, 100 - avg_diff * 2)


def calculate_consistency_score(sessions: Iterable[SleepSession]) -> int:
    """
    Schedule regularity over the last 7 completed sessions.

    0h average deviation scores 100, 2h or more scores 0, linear between.
    New users (fewer than 3 sessions) get 100.
    """
    completed = [s for s in sessions if s.end_time is not None][-CONSISTENCY_WINDOW:]
    if len(completed) < CONSISTENCY_MIN_SAMPLES:
        return 100

    bedtimes = [decimal_hour(s.start_time) for s in completed]
    wake_times = [decimal_hour(s.end_time) for s in completed]

    avg_std_dev = (statistics.pstdev(bedtimes) + statistics.pstdev(wake_times)) / 2

    return round_half_up(clamp(100 - (avg_std_dev / 2) * 100, 0, 100))


def generate_sleep_phases(
    duration_minutes: int,
    rng: Optional[RandomSource] = None,
    micro_awakenings: bool = True
) -> SleepPhases:
    """
    Synthesize a phase breakdown from 90-minute cycles.

    First cycle is deep-heavy, last cycle REM-heavy, middle cycles balanced.
    Each cycle has a 30% chance of a 1-3 minute micro-awakening.

    Args:
        duration_minutes: Session length
        rng: Random source (random.Random(seed) for reproducible output)
        micro_awakenings: Set False to disable the stochastic awake minutes

    Returns:
        SleepPhases whose total never exceeds duration_minutes
    """
    source = rng if rng is not None else random
    cycles = max(0, int(duration_minutes) // CYCLE_MINUTES)
    awake = light = deep = rem = 0

    for i in range(cycles):
        if i == 0:
            light += 15
            deep += 50
            rem += 15
        elif i == cycles - 1:
            light += 25
            deep += 20
            rem += 35
        else:
            light += 20
            deep += 35
            rem += 25

        if micro_awakenings and source.random() > MICRO_AWAKENING_THRESHOLD:
            awake += source.randint(1, 3)

    return SleepPhases(awake=awake, light=light, deep=deep, rem=rem)


def format_duration(minutes: int) -> str:
    """480 -> "8h", 125 -> "2h 5m", 45 -> "45m" """
    hours, mins = divmod(int(minutes), 60)
    if hours == 0:
        return f"{mins}m"
    if mins == 0:
        return f"{hours}h"
    return f"{hours}h {mins}m"


def get_quality_color(quality: float) -> str:
    """Band a quality score: good (>=80), medium (60-79), poor (<60)"""
    if quality >= 80:
        return "good"
    if quality >= 60:
        return "medium"
    return "poor"


def get_sleep_debt_color(debt_minutes: float) -> str:
    """Band sleep debt or surplus by absolute hours: good/medium/elevated/severe"""
    hours = abs(debt_minutes) / 60
    if hours <= 2:
        return "good"
    if hours <= 5:
        return "medium"
    if hours <= 8:
        return "elevated"
    return "severe"
