"""Tests for the position clock."""

from lyrion_mpris.mpris.clock import PositionClock

SECOND = 1_000_000


class TestPositionClock:
    """Tests for PositionClock extrapolation."""

    def test_paused_position_is_frozen(self) -> None:
        """Test that a paused clock reports the stored position at any time."""
        clock = PositionClock(position_us=10 * SECOND, anchor_us=0)
        assert clock.extrapolate(0) == 10 * SECOND
        assert clock.extrapolate(60 * SECOND) == 10 * SECOND

    def test_playing_extrapolates(self) -> None:
        """Test that 10s anchored and 5s elapsed reads as 15s."""
        clock = PositionClock(position_us=10 * SECOND, anchor_us=100 * SECOND, playing=True)
        assert clock.extrapolate(105 * SECOND) == 15 * SECOND

    def test_backwards_time_never_rewinds(self) -> None:
        """Test that a now before the anchor reads as the stored position."""
        clock = PositionClock(position_us=10 * SECOND, anchor_us=100 * SECOND, playing=True)
        assert clock.extrapolate(90 * SECOND) == 10 * SECOND

    def test_rate_scales_elapsed_time(self) -> None:
        clock = PositionClock(position_us=0, anchor_us=0, rate=2.0, playing=True)
        assert clock.extrapolate(3 * SECOND) == 6 * SECOND

    def test_pause_folds_elapsed_time(self) -> None:
        """Test that pausing keeps the position reached so far."""
        clock = PositionClock(position_us=0, anchor_us=0, playing=True)
        clock.set_playing(False, 7 * SECOND)
        assert clock.stored_position == 7 * SECOND
        assert clock.extrapolate(20 * SECOND) == 7 * SECOND

    def test_resume_starts_from_stored_position(self) -> None:
        clock = PositionClock(position_us=7 * SECOND, anchor_us=0)
        clock.set_playing(True, 50 * SECOND)
        assert clock.extrapolate(52 * SECOND) == 9 * SECOND

    def test_set_playing_same_value_keeps_anchor(self) -> None:
        clock = PositionClock(position_us=0, anchor_us=0, playing=True)
        clock.set_playing(True, 5 * SECOND)
        assert clock.anchor == 0

    def test_rate_change_reanchors(self) -> None:
        """Test a rate change never causes a jump."""
        clock = PositionClock(position_us=0, anchor_us=0, playing=True)
        clock.set_rate(2.0, 4 * SECOND)
        assert clock.extrapolate(4 * SECOND) == 4 * SECOND
        assert clock.extrapolate(5 * SECOND) == 6 * SECOND

    def test_set_position_reanchors(self) -> None:
        clock = PositionClock(position_us=3 * SECOND, anchor_us=0, playing=True)
        clock.set_position(30 * SECOND, 10 * SECOND)
        assert clock.anchor == 10 * SECOND
        assert clock.extrapolate(11 * SECOND) == 31 * SECOND

    def test_negative_position_is_clamped(self) -> None:
        clock = PositionClock()
        clock.set_position(-5, 0)
        assert clock.stored_position == 0
