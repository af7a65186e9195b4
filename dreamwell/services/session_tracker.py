"""Sleep session lifecycle: start an active session, then complete it once"""
import logging
import random
from datetime import datetime
from typing import Optional, Sequence

from dreamwell.exceptions import SessionStateError
from dreamwell.models.sleep import SleepEnvironment, SleepSession
from dreamwell.services.sleep_metrics import (
    RandomSource,
    calculate_sleep_quality,
    generate_sleep_phases,
)

logger = logging.getLogger(__name__)

# Interruptions are simulated until a real motion/sound signal exists
MAX_SIMULATED_INTERRUPTIONS = 2


def start_session(now: Optional[datetime] = None, noise: float = 0) -> SleepSession:
    """Create an active session starting at `now`"""
    session = SleepSession(
        start_time=now or datetime.now(),
        environment=SleepEnvironment(noise=noise),
    )
    logger.info(f"Started sleep session {session.id} at {session.start_time.isoformat()}")
    return session


def complete_session(
    session: SleepSession,
    end_time: Optional[datetime] = None,
    history: Sequence[SleepSession] = (),
    rng: Optional[RandomSource] = None,
    interruptions: Optional[int] = None,
) -> SleepSession:
    """
    Stop an active session and derive its duration, phases and quality.

    Args:
        session: The active session (left unchanged)
        end_time: When the user woke; defaults to now
        history: Previous sessions, used for the consistency score
        rng: Random source for phases and simulated interruptions
        interruptions: Recorded wake events; simulated when omitted

    Returns:
        A new, completed SleepSession

    Raises:
        SessionStateError: If the session was already completed
    """
    if session.end_time is not None:
        raise SessionStateError(
            f"Session {session.id} is already completed",
            session_id=session.id,
            operation="complete_session",
        )

    source = rng if rng is not None else random
    end = end_time or datetime.now()
    duration = max(0, int((end - session.start_time).total_seconds() // 60))
    phases = generate_sleep_phases(duration, rng=source)

    if interruptions is None:
        interruptions = source.randint(0, MAX_SIMULATED_INTERRUPTIONS)

    completed = session.model_copy(update={
        "end_time": end,
        "duration": duration,
        "phases": phases,
        "interruptions": interruptions,
    })
    completed = completed.model_copy(update={
        "quality": calculate_sleep_quality(completed, list(history)),
    })

    logger.info(
        f"Completed sleep session {completed.id}: {duration} min, quality {completed.quality}"
    )
    return completed
