"""Chapter and stream discovery via ffprobe.

This module provides the MediaProber class, which runs ffprobe to list the
chapter markers of source files and to describe their streams.
"""

import json
import logging
import subprocess
from collections.abc import Sequence
from glob import glob
from pathlib import Path
from typing import Any

from chapterclip.exceptions import FFmpegNotFoundError, FrameRateError, ProbeError
from chapterclip.models import AudioFormat, Chapter, StreamInfo
from chapterclip.timing import parse_frame_rate

logger = logging.getLogger(__name__)

# Supported source container formats
SUPPORTED_FORMATS: frozenset[str] = frozenset({
    ".mov",   # QuickTime
    ".qt",    # QuickTime
    ".mp4",   # MPEG-4 Part 14
    ".m4v",   # iTunes Video
    ".mkv",   # Matroska
})


def validate_executables(*tools: tuple[str, str | Path]) -> None:
    """Check that each ``(name, path)`` executable answers ``-version``.

    Raises:
        FFmpegNotFoundError: If any executable cannot be run.
    """
    for tool, path in tools:
        try:
            subprocess.run(
                [str(path), "-version"],
                capture_output=True,
                check=True,
            )
        except (subprocess.CalledProcessError, FileNotFoundError) as e:
            raise FFmpegNotFoundError(
                f"{tool} not found at '{path}'. Please install FFmpeg and ensure "
                "it's in your PATH, or provide the full path to the executable."
            ) from e


class MediaProber:
    """Probe source files for chapter markers and stream information.

    Attributes:
        ffprobe_path: Path to the ffprobe executable.

    Example:
        >>> prober = MediaProber()
        >>> chapters = prober.analyze(["take1.mov", "take2.mov"])
        >>> info = prober.get_stream_info("take1.mov")
    """

    def __init__(self, ffprobe_path: str | Path = "ffprobe", validate: bool = True) -> None:
        """Initialize the MediaProber.

        Args:
            ffprobe_path: Path to the ffprobe executable. Defaults to "ffprobe"
                (assumes it's in PATH).
            validate: Check that ffprobe can be run.

        Raises:
            FFmpegNotFoundError: If ffprobe cannot be found.
        """
        self.ffprobe_path = Path(ffprobe_path)
        if validate:
            validate_executables(("ffprobe", self.ffprobe_path))

    def _probe_json(self, input_path: Path, args: Sequence[str]) -> dict[str, Any]:
        if not input_path.exists():
            raise ProbeError(f"Input file not found: {input_path}", input_path)

        cmd = [str(self.ffprobe_path), *args]
        logger.debug(f"Running ffprobe: {' '.join(cmd)}")

        try:
            result = subprocess.run(cmd, capture_output=True, text=True, check=True)
            data = json.loads(result.stdout)
        except subprocess.CalledProcessError as e:
            raise ProbeError(
                f"ffprobe exited with code {e.returncode} for '{input_path}': "
                f"{(e.stderr or '').strip()}",
                input_path,
            ) from e
        except FileNotFoundError as e:
            raise ProbeError(
                f"ffprobe not found at '{self.ffprobe_path}'", input_path
            ) from e
        except json.JSONDecodeError as e:
            raise ProbeError(
                f"Failed to parse ffprobe output for '{input_path}'", input_path
            ) from e

        if not isinstance(data, dict):
            raise ProbeError(
                f"Unexpected ffprobe output for '{input_path}'", input_path
            )
        return data

    def get_markers(self, input_file: str | Path) -> list[dict[str, Any]]:
        """Return the raw chapter markers of a file in container order.

        Each marker is ``{"title": str | None, "start_time": float}``.

        Raises:
            ProbeError: If probing fails.
        """
        input_path = Path(input_file)
        data = self._probe_json(
            input_path,
            ["-i", str(input_path), "-print_format", "json",
             "-show_chapters", "-loglevel", "error"],
        )

        markers = []
        for chapter_data in data.get("chapters", []):
            tags = chapter_data.get("tags") or {}
            try:
                start_time = float(chapter_data["start_time"])
            except (KeyError, TypeError, ValueError) as e:
                raise ProbeError(
                    f"Chapter without a valid start time in '{input_path}'",
                    input_path,
                ) from e
            markers.append({"title": tags.get("title"), "start_time": start_time})
        return markers

    def get_chapters(
        self, input_file: str | Path, label: str | None = None
    ) -> list[Chapter]:
        """Extract the chapters of one file.

        Chapters keep marker order; ids are ``ch-{label}-{index}`` where the
        label defaults to the file name. Chapters without a title tag are
        named ``Chapter {n}``.

        Raises:
            ProbeError: If probing fails.
        """
        input_path = Path(input_file)
        label = label or input_path.name
        chapters = []
        for idx, marker in enumerate(self.get_markers(input_path)):
            title = marker["title"] or f"Chapter {idx + 1}"
            chapters.append(
                Chapter(
                    id=f"ch-{label}-{idx}",
                    title=title,
                    start_time=marker["start_time"],
                    source_file=input_path,
                    index=idx,
                )
            )
        return chapters

    def analyze(self, input_files: Sequence[str | Path]) -> list[Chapter]:
        """Collect the chapters of several files, file by file.

        Files sharing a name with an earlier, different file get a ``~N``
        suffix on their id label so chapter ids stay unique across the batch.

        Raises:
            ProbeError: On the first file that cannot be probed.
        """
        all_chapters: list[Chapter] = []
        labels = _unique_labels([Path(f) for f in input_files])
        for input_file, label in zip(input_files, labels):
            chapters = self.get_chapters(input_file, label)
            logger.info(f"Found {len(chapters)} chapters in {Path(input_file).name}.")
            all_chapters.extend(chapters)
        logger.info(f"Analysis complete. Found {len(all_chapters)} total chapters.")
        return all_chapters

    def probe(self, input_file: str | Path) -> dict[str, Any]:
        """Return ffprobe's raw format and stream description of a file.

        Raises:
            ProbeError: If probing fails.
        """
        input_path = Path(input_file)
        return self._probe_json(
            input_path,
            ["-v", "quiet", "-print_format", "json",
             "-show_format", "-show_streams", str(input_path)],
        )

    def get_stream_info(self, input_file: str | Path) -> StreamInfo:
        """Describe the video and audio streams of a source file.

        Raises:
            ProbeError: If probing fails, there is no video stream, the video
                stream has no usable frame rate, or the duration is missing.
        """
        input_path = Path(input_file)
        data = self.probe(input_path)
        streams = data.get("streams") or []

        video = next((s for s in streams if s.get("codec_type") == "video"), None)
        if video is None or not video.get("r_frame_rate"):
            raise ProbeError(
                f"Could not determine frame rate for '{input_path}'", input_path
            )
        frame_rate_text = str(video["r_frame_rate"]).strip()
        try:
            frame_rate = parse_frame_rate(frame_rate_text)
        except FrameRateError as e:
            raise FrameRateError(f"{e} in '{input_path}'", input_path) from e

        try:
            duration = float((data.get("format") or {})["duration"])
        except (KeyError, TypeError, ValueError) as e:
            raise ProbeError(
                f"Could not determine duration of '{input_path}'", input_path
            ) from e

        audio_stream = next(
            (s for s in streams if s.get("codec_type") == "audio"), None
        )
        audio = None
        if audio_stream is not None:
            audio = AudioFormat(
                sample_rate=str(audio_stream.get("sample_rate") or "48000"),
                channel_layout=str(audio_stream.get("channel_layout") or "stereo"),
            )

        return StreamInfo(
            path=input_path,
            duration=duration,
            frame_rate=frame_rate,
            frame_rate_text=frame_rate_text,
            audio=audio,
        )


def _unique_labels(paths: Sequence[Path]) -> list[str]:
    """Label each path by its name, suffixing ``~2``, ``~3``... on clashes.

    The same path always gets the same label.
    """
    labels: dict[Path, str] = {}
    per_name: dict[str, int] = {}
    result = []
    for path in paths:
        key = path.resolve()
        if key not in labels:
            count = per_name.get(path.name, 0) + 1
            per_name[path.name] = count
            labels[key] = path.name if count == 1 else f"{path.name}~{count}"
        result.append(labels[key])
    return result


def is_supported_format(file_path: str | Path) -> bool:
    """Check if a file has a supported video format extension."""
    return Path(file_path).suffix.lower() in SUPPORTED_FORMATS


def resolve_input_files(
    input_pattern: str | list[str | Path],
    filter_supported: bool = True,
) -> list[Path]:
    """Resolve source files from a path, a glob pattern or a list of paths.

    A string naming an existing file is taken literally, so names holding
    glob characters such as ``[`` are not expanded.

    Args:
        input_pattern: An existing file path, a glob pattern, or a list of
            file paths.
        filter_supported: Drop files whose extension is not a supported
            source format.

    Returns:
        Sorted list of matching source files.

    Raises:
        ValueError: If the input type is invalid.
        FileNotFoundError: If a string matches no file.
    """
    if isinstance(input_pattern, str):
        if Path(input_pattern).is_file():
            files = [Path(input_pattern)]
        else:
            files = sorted(Path(p) for p in glob(input_pattern))
        if not files:
            raise FileNotFoundError(f"No files found matching: {input_pattern}")
    elif isinstance(input_pattern, list):
        files = sorted(Path(p) for p in input_pattern)
    else:
        raise ValueError(
            "input_pattern must be a path, a glob pattern or a list of file paths"
        )

    if filter_supported:
        files = [f for f in files if is_supported_format(f)]
    return files
