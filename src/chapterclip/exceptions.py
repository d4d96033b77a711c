"""Custom exceptions for Chapterclip."""

from pathlib import Path


class ChapterclipError(Exception):
    """Base exception for all chapterclip errors.

    This can be used to catch any exception raised by the package:

        try:
            controller.start(chapters)
        except ChapterclipError as e:
            print(f"Processing failed: {e}")
    """


class FFmpegNotFoundError(ChapterclipError):
    """Raised when FFmpeg or FFprobe executables are not found.

    This is a pre-flight failure: nothing has been probed or encoded yet.
    """


class ProbeError(ChapterclipError):
    """Raised when ffprobe cannot describe a file.

    This can occur due to:
    - Input file not found
    - ffprobe exiting with a non-zero status
    - Output that is not valid JSON
    - No video stream, or a video stream without a frame rate
    """

    def __init__(self, message: str, path: Path | None = None) -> None:
        super().__init__(message)
        self.path = path


class FrameRateError(ProbeError, ValueError):
    """Raised when a frame rate string is not a strict positive rational."""


class DirectoryCreateError(ChapterclipError):
    """Raised when a chapter's output directory cannot be created."""

    def __init__(self, message: str, directory: Path) -> None:
        super().__init__(message)
        self.directory = directory


class TranscodeError(ChapterclipError):
    """Raised when an ffmpeg invocation exits with a non-zero status.

    Attributes:
        returncode: Exit status of the ffmpeg process.
        diagnostics: Captured stderr output, for display to the operator.
    """

    def __init__(self, message: str, returncode: int | None = None,
                 diagnostics: str = "") -> None:
        super().__init__(message)
        self.returncode = returncode
        self.diagnostics = diagnostics

    def __str__(self) -> str:
        base = super().__str__()
        if self.diagnostics:
            return f"{base}\n\nFFmpeg output:\n{self.diagnostics.strip()}"
        return base


class ProcessingInterrupted(ChapterclipError):
    """Base for control signals raised out of an in-flight chapter."""


class ProcessingStopped(ProcessingInterrupted):
    """The run was stopped while the chapter was being processed."""


class ProcessingPaused(ProcessingInterrupted):
    """The run was paused while the chapter was being processed."""


class VerificationIncompleteError(ChapterclipError):
    """Raised when a produced clip lacks duration or frame-rate metadata."""


class LookupTableError(ChapterclipError):
    """Raised when an enrichment lookup table cannot be read."""


class RunInProgressError(ChapterclipError):
    """Raised when a run is started while another is still active."""
