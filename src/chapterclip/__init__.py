"""Chapterclip - Cut handle-padded clips from video chapter markers.

A tool for turning each chapter marker of one or more source videos into its
own clip, bracketed by freeze-frame handles and tagged with a single chapter,
with versioned output names and a pausable, stoppable processing queue.
"""

__version__ = "0.1.0"

from chapterclip.config import EncodingProfile, Settings, load_settings
from chapterclip.controller import JobController, ProcessingRun
from chapterclip.exceptions import (
    ChapterclipError,
    DirectoryCreateError,
    FFmpegNotFoundError,
    FrameRateError,
    LookupTableError,
    ProbeError,
    ProcessingInterrupted,
    ProcessingPaused,
    ProcessingStopped,
    RunInProgressError,
    TranscodeError,
    VerificationIncompleteError,
)
from chapterclip.models import (
    Chapter,
    ChapterStatus,
    ChapterUpdate,
    ClipResult,
    RunState,
    RunSummary,
    StreamInfo,
    TimeRange,
)
from chapterclip.prober import SUPPORTED_FORMATS, MediaProber, is_supported_format
from chapterclip.splicer import ChapterSplicer
from chapterclip.verifier import ResultVerifier

__all__ = [
    # Main classes
    "JobController",
    "ProcessingRun",
    "MediaProber",
    "ChapterSplicer",
    "ResultVerifier",
    # Models
    "Chapter",
    "ChapterStatus",
    "ChapterUpdate",
    "ClipResult",
    "RunState",
    "RunSummary",
    "StreamInfo",
    "TimeRange",
    # Configuration
    "EncodingProfile",
    "Settings",
    "load_settings",
    # Format utilities
    "SUPPORTED_FORMATS",
    "is_supported_format",
    # Exceptions
    "ChapterclipError",
    "FFmpegNotFoundError",
    "ProbeError",
    "FrameRateError",
    "DirectoryCreateError",
    "TranscodeError",
    "ProcessingInterrupted",
    "ProcessingPaused",
    "ProcessingStopped",
    "VerificationIncompleteError",
    "LookupTableError",
    "RunInProgressError",
]
