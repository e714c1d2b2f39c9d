"""
Reconnect backoff schedule.

The schedule is a pure function of the attempt number so it can be checked
without a transport or a timer.
"""

from typing import List, Optional

BASE_DELAY_MS = 1000
MAX_DELAY_MS = 30000
MAX_ATTEMPTS = 4


def retry_delay_ms(attempt: int,
                   base_ms: int = BASE_DELAY_MS,
                   max_ms: int = MAX_DELAY_MS,
                   max_attempts: int = MAX_ATTEMPTS) -> Optional[int]:
    """
    Delay before reconnect attempt number ``attempt`` (0-based).

    Returns:
        min(base_ms * 2**attempt, max_ms), or None once the attempts are
        exhausted (the caller then gives up).
    """
    if attempt < 0 or attempt >= max_attempts:
        return None
    return min(base_ms * (2 ** attempt), max_ms)


def retry_schedule(base_ms: int = BASE_DELAY_MS,
                   max_ms: int = MAX_DELAY_MS,
                   max_attempts: int = MAX_ATTEMPTS) -> List[int]:
    """Every delay of the schedule, in order."""
    return [retry_delay_ms(n, base_ms, max_ms, max_attempts) for n in range(max_attempts)]
