"""Frame-rate parsing and freeze-frame handle timing."""

import re
from dataclasses import dataclass
from fractions import Fraction

from chapterclip.exceptions import FrameRateError

DEFAULT_HANDLE_FRAMES = 10

_RATIONAL = re.compile(r"^\s*(\d+)\s*(?:/\s*(\d+)\s*)?$")


def parse_frame_rate(text: str) -> Fraction:
    """Parse an ffprobe frame rate such as ``30000/1001`` or ``25``.

    Only ``numerator/denominator`` or a plain integer is accepted; anything
    else is rejected rather than interpreted.

    Args:
        text: The frame rate string.

    Returns:
        The exact frame rate.

    Raises:
        FrameRateError: If the string is not a positive rational.

    Example:
        >>> parse_frame_rate("30000/1001")
        Fraction(30000, 1001)
    """
    match = _RATIONAL.match(text or "")
    if not match:
        raise FrameRateError(f"Invalid frame rate: {text!r}")

    numerator = int(match.group(1))
    denominator = int(match.group(2)) if match.group(2) is not None else 1
    if numerator == 0 or denominator == 0:
        raise FrameRateError(f"Frame rate must be positive: {text!r}")
    return Fraction(numerator, denominator)


@dataclass(frozen=True)
class HandleTiming:
    """Frame and handle durations derived from an exact frame rate.

    Attributes:
        frame_rate: Exact frame rate.
        handle_frames: Number of frames held before and after each clip.
    """

    frame_rate: Fraction
    handle_frames: int = DEFAULT_HANDLE_FRAMES

    def __post_init__(self) -> None:
        if self.handle_frames < 1:
            raise ValueError(f"handle_frames must be >= 1, got {self.handle_frames}")
        if self.frame_rate <= 0:
            raise ValueError(f"frame_rate must be positive, got {self.frame_rate}")

    @property
    def frame_duration(self) -> float:
        return float(1 / self.frame_rate)

    @property
    def handle_duration(self) -> float:
        """Handle length in seconds, ``handle_frames / frame_rate``."""
        return float(Fraction(self.handle_frames) / self.frame_rate)

    @property
    def loop_count(self) -> int:
        """Extra repetitions of a single still to fill the handle."""
        return self.handle_frames - 1
