"""Tests for the exceptions module."""

from pathlib import Path

import pytest

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


class TestExceptionHierarchy:
    """Tests for the exception class hierarchy."""

    @pytest.mark.parametrize(
        "exc_class",
        [
            FFmpegNotFoundError,
            ProbeError,
            FrameRateError,
            DirectoryCreateError,
            TranscodeError,
            ProcessingInterrupted,
            VerificationIncompleteError,
            LookupTableError,
            RunInProgressError,
        ],
    )
    def test_inherits_base(self, exc_class: type) -> None:
        """Test every package error inherits from the base."""
        assert issubclass(exc_class, ChapterclipError)
        assert issubclass(exc_class, Exception)

    def test_frame_rate_error_is_probe_and_value_error(self) -> None:
        """Test FrameRateError can be caught as either parent."""
        assert issubclass(FrameRateError, ProbeError)
        assert issubclass(FrameRateError, ValueError)

    def test_control_signals_share_base(self) -> None:
        """Test pause and stop signals derive from ProcessingInterrupted."""
        assert issubclass(ProcessingPaused, ProcessingInterrupted)
        assert issubclass(ProcessingStopped, ProcessingInterrupted)
        assert not issubclass(ProcessingPaused, ProcessingStopped)


class TestExceptionAttributes:
    """Tests for exception payloads."""

    def test_probe_error_carries_path(self) -> None:
        """Test ProbeError keeps the probed path."""
        exc = ProbeError("bad", Path("a.mov"))
        assert exc.path == Path("a.mov")
        assert str(exc) == "bad"

    def test_directory_error_carries_directory(self) -> None:
        """Test DirectoryCreateError keeps the directory."""
        exc = DirectoryCreateError("nope", Path("/x/y"))
        assert exc.directory == Path("/x/y")

    def test_transcode_error_includes_diagnostics(self) -> None:
        """Test TranscodeError renders captured ffmpeg output."""
        exc = TranscodeError("failed", returncode=1, diagnostics="Invalid argument\n")
        assert exc.returncode == 1
        assert "failed" in str(exc)
        assert "Invalid argument" in str(exc)

    def test_transcode_error_without_diagnostics(self) -> None:
        """Test TranscodeError message without diagnostics is unchanged."""
        assert str(TranscodeError("failed")) == "failed"


class TestExceptionImports:
    """Tests for exception imports from package root."""

    def test_import_from_package_root(self) -> None:
        """Test that exceptions can be imported from package root."""
        from chapterclip import ChapterclipError as Base
        from chapterclip import ProbeError as PE
        from chapterclip import TranscodeError as TE

        assert Base is ChapterclipError
        assert PE is ProbeError
        assert TE is TranscodeError
