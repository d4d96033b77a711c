"""Tests for the timing module."""

from fractions import Fraction

import pytest

from chapterclip.exceptions import FrameRateError
from chapterclip.timing import HandleTiming, parse_frame_rate


class TestParseFrameRate:
    """Tests for the strict frame-rate parser."""

    @pytest.mark.parametrize(
        ("text", "expected"),
        [
            ("30000/1001", Fraction(30000, 1001)),
            ("30/1", Fraction(30)),
            ("25", Fraction(25)),
            (" 24000 / 1001 ", Fraction(24000, 1001)),
        ],
    )
    def test_valid_rates(self, text: str, expected: Fraction) -> None:
        """Test accepted rational and integer forms."""
        assert parse_frame_rate(text) == expected

    @pytest.mark.parametrize(
        "text",
        [
            "",
            "0/0",
            "30/0",
            "0/1",
            "29.97",
            "30000/1001/2",
            "__import__('os')",
            "-30/1",
            "1e3",
        ],
    )
    def test_rejects_everything_else(self, text: str) -> None:
        """Test that anything but a positive rational is rejected."""
        with pytest.raises(FrameRateError):
            parse_frame_rate(text)


class TestHandleTiming:
    """Tests for handle and frame durations."""

    def test_handle_is_ten_frames_at_30fps(self) -> None:
        """Test 10 frames at 30 fps is a third of a second."""
        timing = HandleTiming(Fraction(30))
        assert timing.handle_duration == pytest.approx(1 / 3)
        assert timing.frame_duration == pytest.approx(1 / 30)

    @pytest.mark.parametrize(
        "rate",
        [Fraction(30000, 1001), Fraction(24000, 1001), Fraction(25), Fraction(60)],
    )
    def test_handle_is_exact_rational(self, rate: Fraction) -> None:
        """Test handle duration equals 10/r computed from the rational."""
        timing = HandleTiming(rate)
        assert timing.handle_duration == float(Fraction(10) / rate)

    def test_ntsc_handle(self) -> None:
        """Test handle duration at 29.97 fps."""
        timing = HandleTiming(Fraction(30000, 1001))
        assert timing.handle_duration == pytest.approx(0.333666, abs=1e-6)

    def test_custom_handle_frames(self) -> None:
        """Test a configured handle length."""
        timing = HandleTiming(Fraction(25), handle_frames=5)
        assert timing.handle_duration == pytest.approx(0.2)
        assert timing.loop_count == 4

    def test_rejects_zero_handle(self) -> None:
        """Test handle length must be positive."""
        with pytest.raises(ValueError):
            HandleTiming(Fraction(25), handle_frames=0)
