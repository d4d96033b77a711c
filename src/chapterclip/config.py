"""Settings and the encoding profile.

Settings can be loaded from a JSON file whose keys overlay the defaults::

    {
        "output_root": "/mnt/clips",
        "handle_frames": 12,
        "profile": {"resolution": [1920, 1080], "video_options": ["-crf", "18"]}
    }
"""

import json
import logging
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any

from chapterclip.naming import DEFAULT_UNMATCHED_DIR
from chapterclip.timing import DEFAULT_HANDLE_FRAMES

logger = logging.getLogger(__name__)

# Red 50x50 marker drawn in the top-right corner of every freeze frame
DEFAULT_STILL_FILTER = "drawbox=x=iw-w-10:y=10:w=50:h=50:color=red:t=fill"


def _default_video_options() -> list[str]:
    return [
        "-profile:v", "main",
        "-level", "4.1",
        "-pix_fmt", "yuv420p",
        "-refs", "3",
        "-b:v", "2465k",
        "-maxrate", "2694k",
        "-bufsize", "5388k",
        "-g", "1",
        "-metadata:s:v:0", "language=eng",
    ]


def _default_audio_options() -> list[str]:
    return [
        "-b:a", "192k",
        "-ac", "2",
        "-ar", "48000",
        "-metadata:s:a:0", "language=eng",
    ]


@dataclass(frozen=True)
class EncodingProfile:
    """Codec, bitrate and geometry of produced clips.

    Attributes:
        video_codec: ffmpeg video encoder.
        video_options: Extra video encoder arguments.
        audio_codec: ffmpeg audio encoder.
        audio_options: Extra audio encoder arguments.
        container_options: Muxer arguments.
        extra_output_options: Arguments appended before the output path.
        resolution: Output ``(width, height)``, or None to keep the source size.
        still_filter: Filter applied to captured stills, or None.
        extension: Output file extension.
    """

    video_codec: str = "libx264"
    video_options: list[str] = field(default_factory=_default_video_options)
    audio_codec: str = "aac"
    audio_options: list[str] = field(default_factory=_default_audio_options)
    container_options: list[str] = field(default_factory=lambda: ["-brand", "mp42"])
    extra_output_options: list[str] = field(default_factory=list)
    resolution: tuple[int, int] | None = None
    still_filter: str | None = DEFAULT_STILL_FILTER
    extension: str = "mp4"

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "EncodingProfile":
        _reject_unknown(cls, data, "profile")
        values = dict(data)
        if values.get("resolution") is not None:
            values["resolution"] = parse_resolution(values["resolution"])
        return cls(**values)


@dataclass(frozen=True)
class Settings:
    """Run-wide settings.

    Attributes:
        output_root: Root directory clips are written under.
        ffmpeg_path: Path to the ffmpeg executable.
        ffprobe_path: Path to the ffprobe executable.
        handle_frames: Length of each freeze-frame handle in frames.
        poll_interval: Seconds between checks while paused.
        unmatched_dir: Directory under the root for chapters without a path.
        name_substitute: Replacement for filesystem-hostile title characters.
        temp_dir: Parent directory for per-chapter temporary files.
        profile: Encoding profile.
    """

    output_root: Path = field(default_factory=lambda: Path.cwd() / "clips")
    ffmpeg_path: str = "ffmpeg"
    ffprobe_path: str = "ffprobe"
    handle_frames: int = DEFAULT_HANDLE_FRAMES
    poll_interval: float = 0.5
    unmatched_dir: str = DEFAULT_UNMATCHED_DIR
    name_substitute: str = "_"
    temp_dir: Path | None = None
    profile: EncodingProfile = field(default_factory=EncodingProfile)

    def __post_init__(self) -> None:
        if self.handle_frames < 1:
            raise ValueError(f"handle_frames must be >= 1, got {self.handle_frames}")
        if self.poll_interval <= 0:
            raise ValueError(f"poll_interval must be positive, got {self.poll_interval}")

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Settings":
        _reject_unknown(cls, data, "settings")
        values = dict(data)
        if "output_root" in values:
            values["output_root"] = Path(values["output_root"])
        if values.get("temp_dir") is not None:
            values["temp_dir"] = Path(values["temp_dir"])
        if "profile" in values:
            values["profile"] = EncodingProfile.from_dict(values["profile"] or {})
        return cls(**values)

    def with_overrides(self, **overrides: Any) -> "Settings":
        """Return a copy with every non-None override applied."""
        applied = {k: v for k, v in overrides.items() if v is not None}
        if "resolution" in applied:
            profile = replace(self.profile, resolution=applied.pop("resolution"))
            applied["profile"] = profile
        if "output_root" in applied:
            applied["output_root"] = Path(applied["output_root"])
        return replace(self, **applied)


def _reject_unknown(cls: type, data: dict[str, Any], section: str) -> None:
    known = {f.name for f in fields(cls)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ValueError(f"Unknown {section} key(s): {', '.join(unknown)}")


def parse_resolution(value: str | list[int] | tuple[int, int]) -> tuple[int, int]:
    """Parse ``"1920x1080"`` or ``[1920, 1080]`` into a size tuple.

    Raises:
        ValueError: If the value is not two positive integers.
    """
    if isinstance(value, str):
        parts = value.lower().split("x")
    else:
        parts = list(value)
    if len(parts) != 2:
        raise ValueError(f"Invalid resolution: {value!r}")
    width, height = int(parts[0]), int(parts[1])
    if width <= 0 or height <= 0:
        raise ValueError(f"Invalid resolution: {value!r}")
    return width, height


def load_settings(path: str | Path | None = None) -> Settings:
    """Load settings from a JSON file, falling back to defaults.

    Args:
        path: JSON settings file. None, or a path that does not exist,
            yields the defaults.

    Raises:
        ValueError: If the file is not valid JSON or has unknown keys.
    """
    if path is None:
        return Settings()

    settings_path = Path(path)
    if not settings_path.exists():
        logger.info(f"Settings file {settings_path} not found, using defaults")
        return Settings()

    try:
        data = json.loads(settings_path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid settings file '{settings_path}': {e}") from e

    if not isinstance(data, dict):
        raise ValueError(f"Settings file '{settings_path}' must hold a JSON object")

    logger.debug(f"Loaded settings from {settings_path}")
    return Settings.from_dict(data)
