import logging
import random
import secrets
import time
from typing import Awaitable, Callable, Optional

logger = logging.getLogger(__name__)

SLUG_ALPHABET = "abcdefghijklmnopqrstuvwxyz0123456789"

MEETING_SLUG_LENGTH = 10
MEETING_SLUG_ATTEMPTS = 7
FALLBACK_RANDOM_LENGTH = 8
FALLBACK_TIMESTAMP_DIGITS = 4
RESPONSE_ID_LENGTH = 12
DEVICE_ID_LENGTH = 14


def _format_base36(number: int) -> str:
    if number < 0:
        raise ValueError("number must be non-negative")
    digits = "0123456789abcdefghijklmnopqrstuvwxyz"
    if number == 0:
        return "0"
    result = []
    while number:
        number, remainder = divmod(number, 36)
        result.append(digits[remainder])
    return "".join(reversed(result))


def _current_millis() -> int:
    return int(time.time() * 1000)


class SlugGenerator:
    """
    Random lowercase-alphanumeric identifiers for meetings, responses and devices.

    Uses the operating system's CSPRNG and drops to a seeded ``random.Random``
    only when no system source exists. Identifiers are names, not secrets.
    """

    def __init__(
        self,
        rng: Optional[random.Random] = None,
        clock: Callable[[], int] = _current_millis,
    ):
        self._rng = rng
        self._clock = clock

    def _choice(self) -> str:
        if self._rng is not None:
            return self._rng.choice(SLUG_ALPHABET)
        try:
            return secrets.choice(SLUG_ALPHABET)
        except NotImplementedError:
            logger.warning("No system randomness source; using a pseudo-random generator.")
            self._rng = random.Random()
            return self._rng.choice(SLUG_ALPHABET)

    def generate(self, length: int) -> str:
        if length < 0:
            raise ValueError("length must be non-negative")
        return "".join(self._choice() for _ in range(length))

    def generate_response_id(self) -> str:
        return self.generate(RESPONSE_ID_LENGTH)

    def generate_device_id(self) -> str:
        return self.generate(DEVICE_ID_LENGTH)

    def fallback_meeting_slug(self) -> str:
        """Random stem plus the trailing base-36 digits of the current time in ms."""
        stamp = _format_base36(max(0, int(self._clock())))
        return f"{self.generate(FALLBACK_RANDOM_LENGTH)}{stamp[-FALLBACK_TIMESTAMP_DIGITS:]}"

    async def create_unique_meeting_slug(
        self, exists: Callable[[str], Awaitable[bool]]
    ) -> str:
        """
        Return a 10-character slug that ``exists`` reported free, trying up to
        seven candidates. When every candidate collides, fall back to a
        timestamp-suffixed slug without checking it again.
        """
        for attempt in range(1, MEETING_SLUG_ATTEMPTS + 1):
            candidate = self.generate(MEETING_SLUG_LENGTH)
            if not await exists(candidate):
                return candidate
            logger.warning(
                "Meeting slug collision on attempt %s/%s", attempt, MEETING_SLUG_ATTEMPTS
            )
        fallback = self.fallback_meeting_slug()
        logger.warning("Slug attempts exhausted; using fallback slug %s", fallback)
        return fallback
