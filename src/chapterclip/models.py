"""Data models for Chapterclip."""

from dataclasses import dataclass, field
from enum import Enum
from fractions import Fraction
from pathlib import Path


class ChapterStatus(str, Enum):
    """Per-chapter status reported on the progress channel."""

    PROCESSING = "Processing"
    DONE = "Done"
    ERROR = "Error"
    PAUSED = "Paused"
    STOPPED = "Stopped"


class RunState(str, Enum):
    """States of the job controller."""

    IDLE = "Idle"
    RUNNING = "Running"
    PAUSED = "Paused"
    STOPPING = "Stopping"
    STOPPED = "Stopped"
    COMPLETED = "Completed"


@dataclass
class Chapter:
    """A chapter marker found in a source file, queued for processing.

    The title starts as the raw marker title, may be replaced by a display
    name from an enrichment lookup, and is finally replaced by the versioned
    output name once processing starts.

    Attributes:
        id: Stable identifier, unique per source file and marker index.
        title: Current title of the chapter.
        start_time: Marker start time in seconds.
        source_file: Path to the source video file.
        index: Marker index within the source file.
        path: Destination sub-path under the output root, if known.
        original_title: The raw marker title, kept for reporting.
    """

    id: str
    title: str
    start_time: float
    source_file: Path
    index: int = 0
    path: str | None = None
    original_title: str = ""

    def __post_init__(self) -> None:
        if not self.original_title:
            self.original_title = self.title

    def __str__(self) -> str:
        """Return a human-readable string representation."""
        return f"{self.title} @ {self.start_time:.3f}s ({self.source_file.name})"


@dataclass(frozen=True)
class TimeRange:
    """Half-open ``[start, end)`` range of a chapter in its source file."""

    start: float
    end: float

    @property
    def duration(self) -> float:
        """Length of the range in seconds."""
        return self.end - self.start

    def __str__(self) -> str:
        return f"[{self.start:.3f}s, {self.end:.3f}s)"


@dataclass(frozen=True)
class AudioFormat:
    """Sample rate and channel layout of a source audio stream."""

    sample_rate: str = "48000"
    channel_layout: str = "stereo"


@dataclass(frozen=True)
class StreamInfo:
    """Stream and format description of one source file.

    Attributes:
        path: The probed file.
        duration: Container duration in seconds.
        frame_rate: Exact video frame rate.
        frame_rate_text: The frame rate as reported by ffprobe (e.g.
            ``30000/1001``), used verbatim in time-base arithmetic.
        audio: Audio stream format, or None when the file has no audio.
    """

    path: Path
    duration: float
    frame_rate: Fraction
    frame_rate_text: str
    audio: AudioFormat | None = None

    @property
    def has_audio(self) -> bool:
        return self.audio is not None


@dataclass(frozen=True)
class ClipResult:
    """Authoritative duration of a produced clip."""

    duration_seconds: int = 0
    duration_frames: int = 0


@dataclass(frozen=True)
class ChapterUpdate:
    """A status event for one chapter.

    ``final_name`` is only set on the ``Processing`` event emitted once the
    versioned name is known; duration fields and ``version`` only on ``Done``.
    """

    chapter_id: str
    status: ChapterStatus
    message: str | None = None
    final_name: str | None = None
    duration_seconds: int | None = None
    duration_frames: int | None = None
    version: int | None = None


@dataclass
class RunSummary:
    """Outcome of one processing run.

    Attributes:
        state: Terminal state, ``Completed`` or ``Stopped``.
        updates: Every status event emitted, in order.
    """

    state: RunState
    updates: list[ChapterUpdate] = field(default_factory=list)

    def final_status(self, chapter_id: str) -> ChapterStatus | None:
        """Return the last status reported for a chapter."""
        for update in reversed(self.updates):
            if update.chapter_id == chapter_id:
                return update.status
        return None

    @property
    def stopped(self) -> bool:
        return self.state is RunState.STOPPED

    def count(self, status: ChapterStatus) -> int:
        """Count chapters whose final status is ``status``."""
        ids = dict.fromkeys(u.chapter_id for u in self.updates)
        return sum(1 for cid in ids if self.final_status(cid) is status)
