"""
Position clock.

Keeps the last authoritative position together with the instant it was
anchored, and extrapolates forward while playing. Every change that affects
extrapolation (play state, rate, explicit position) folds elapsed time into
the stored position first, so readers never see a jump and no drift
accumulates between polls.
"""

import math
import time
from typing import Callable

# Rate is fixed for LMS: the server has no variable-speed transport
DEFAULT_RATE = 1.0


def monotonic_us() -> int:
    """Monotonic clock in microseconds."""
    return time.monotonic_ns() // 1000


# Injectable time source type
TimeSource = Callable[[], int]


class PositionClock:
    """
    Drift-free playback position extrapolation.

    All values are microseconds.
    """

    def __init__(
        self,
        position_us: int = 0,
        anchor_us: int = 0,
        rate: float = DEFAULT_RATE,
        playing: bool = False,
    ):
        self._position_us = max(0, int(position_us))
        self._anchor_us = anchor_us
        self._rate = rate
        self._playing = playing

    @property
    def stored_position(self) -> int:
        return self._position_us

    @property
    def anchor(self) -> int:
        return self._anchor_us

    @property
    def rate(self) -> float:
        return self._rate

    @property
    def playing(self) -> bool:
        return self._playing

    def extrapolate(self, now_us: int) -> int:
        """
        Position at `now_us`.

        Returns the stored position unchanged unless playing.
        """
        if not self._playing:
            return self._position_us
        elapsed = max(0, now_us - self._anchor_us)
        return max(0, self._position_us + math.floor(elapsed * self._rate))

    def reanchor(self, now_us: int) -> None:
        """Fold elapsed extrapolation into the stored position."""
        self._position_us = self.extrapolate(now_us)
        self._anchor_us = now_us

    def set_position(self, position_us: int, now_us: int) -> None:
        """Set an authoritative position."""
        self._position_us = max(0, int(position_us))
        self._anchor_us = now_us

    def set_playing(self, playing: bool, now_us: int) -> None:
        """Start or stop extrapolating."""
        if playing == self._playing:
            return
        self.reanchor(now_us)
        self._playing = playing

    def set_rate(self, rate: float, now_us: int) -> None:
        """Change the extrapolation rate."""
        if rate == self._rate:
            return
        self.reanchor(now_us)
        self._rate = rate

    def __repr__(self) -> str:
        return (
            f"PositionClock(position_us={self._position_us}, anchor_us={self._anchor_us}, "
            f"rate={self._rate}, playing={self._playing})"
        )
