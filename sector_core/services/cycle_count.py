# =============================================================================
# sector_core/services/cycle_count.py
# Cycle-count candidates and the collision retry driver
# =============================================================================
"""
A new sector row needs a cycle_count that is unique together with its tag
number. Candidates are timestamp based with growing randomness per attempt;
the driver retries only on unique-constraint violations.

    attempt 0      now + rand[0, 10_000)
    attempt 1..5   now + rand[0, 10**(attempt + 2)) + attempt * 10_000
    attempt >= 6   now * 1000 + <first 8 digits of a random UUID> + rand[0, 1_000_000)
"""

from __future__ import annotations
import random
import time
import uuid
from typing import Callable, Optional, TypeVar

from sector_core.errors import CycleCountExhaustedError, FailureKind, classify_error
from sector_core.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

MAX_ATTEMPTS = 15
BASE_DELAY = 0.5


def generate_cycle_count(attempt: int, now_ms: int, rng: random.Random) -> int:
    """Candidate cycle count for the given 0-based attempt."""
    if attempt <= 0:
        return now_ms + rng.randrange(10_000)

    if attempt >= 6:
        token = uuid.UUID(int=rng.getrandbits(128), version=4)
        digits = "".join(ch for ch in str(token) if ch.isdigit())[:8]
        candidate = now_ms * 1000 + int(digits or 0) + rng.randrange(1_000_000)
        logger.info(f"Attempt {attempt + 1}: using high-entropy cycle count {candidate}")
        return candidate

    spacing = 10 ** (attempt + 2)
    return now_ms + rng.randrange(spacing) + attempt * 10_000


def retry_on_collision(
    write: Callable[[int], T],
    candidate: Optional[Callable[[int], int]] = None,
    max_attempts: int = MAX_ATTEMPTS,
    base_delay: float = BASE_DELAY,
    sleep: Callable[[float], None] = time.sleep,
    tag_number: Optional[str] = None,
) -> T:
    """
    Call ``write(cycle_count)`` until it succeeds.

    A duplicate-key failure sleeps ``base_delay * 2**(failures - 1)`` seconds
    and retries with a fresh candidate. Any other failure propagates at once.

    Raises:
        CycleCountExhaustedError: after ``max_attempts`` collisions
    """
    if candidate is None:
        rng = random.Random()
        candidate = lambda attempt: generate_cycle_count(attempt, int(time.time() * 1000), rng)

    last_error: Optional[Exception] = None
    for attempt in range(max_attempts):
        cycle_count = candidate(attempt)
        try:
            return write(cycle_count)
        except Exception as e:
            if classify_error(e) is not FailureKind.DUPLICATE_KEY:
                raise
            last_error = e
            failures = attempt + 1
            logger.warning(f"Cycle count {cycle_count} collided (attempt {failures}/{max_attempts})")
            if failures < max_attempts:
                sleep(base_delay * 2 ** (failures - 1))

    raise CycleCountExhaustedError(
        f"No unique cycle count after {max_attempts} attempts",
        attempts=max_attempts,
        tag_number=tag_number,
    ) from last_error
