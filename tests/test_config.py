"""Tests for the config module."""

import json
from pathlib import Path

import pytest

from chapterclip.config import (
    DEFAULT_STILL_FILTER,
    EncodingProfile,
    Settings,
    load_settings,
    parse_resolution,
)


class TestEncodingProfile:
    """Tests for the EncodingProfile dataclass."""

    def test_defaults(self) -> None:
        """Test the default H.264/AAC delivery profile."""
        profile = EncodingProfile()
        assert profile.video_codec == "libx264"
        assert profile.audio_codec == "aac"
        assert "yuv420p" in profile.video_options
        assert profile.video_options[profile.video_options.index("-g") + 1] == "1"
        assert "48000" in profile.audio_options
        assert profile.container_options == ["-brand", "mp42"]
        assert profile.still_filter == DEFAULT_STILL_FILTER
        assert profile.resolution is None
        assert profile.extension == "mp4"

    def test_from_dict(self) -> None:
        """Test profile keys overlay defaults."""
        profile = EncodingProfile.from_dict(
            {"resolution": "1280x720", "video_options": ["-crf", "18"]}
        )
        assert profile.resolution == (1280, 720)
        assert profile.video_options == ["-crf", "18"]
        assert profile.audio_codec == "aac"

    def test_unknown_key(self) -> None:
        """Test unknown profile keys are rejected."""
        with pytest.raises(ValueError, match="bitrate"):
            EncodingProfile.from_dict({"bitrate": "5M"})


class TestSettings:
    """Tests for the Settings dataclass."""

    def test_defaults(self) -> None:
        """Test default settings."""
        settings = Settings()
        assert settings.handle_frames == 10
        assert settings.unmatched_dir == "_UNMATCHED"
        assert settings.ffmpeg_path == "ffmpeg"

    @pytest.mark.parametrize(
        "kwargs",
        [{"handle_frames": 0}, {"poll_interval": 0}],
    )
    def test_validation(self, kwargs: dict) -> None:
        """Test invalid values are rejected."""
        with pytest.raises(ValueError):
            Settings(**kwargs)

    def test_with_overrides(self, tmp_path: Path) -> None:
        """Test None overrides are ignored and others applied."""
        settings = Settings().with_overrides(
            output_root=str(tmp_path),
            handle_frames=None,
            resolution=(640, 360),
        )
        assert settings.output_root == tmp_path
        assert settings.handle_frames == 10
        assert settings.profile.resolution == (640, 360)


class TestParseResolution:
    """Tests for parse_resolution."""

    @pytest.mark.parametrize(
        ("value", "expected"),
        [("1920x1080", (1920, 1080)), ("640X360", (640, 360)), ([720, 480], (720, 480))],
    )
    def test_valid(self, value: object, expected: tuple[int, int]) -> None:
        """Test accepted forms."""
        assert parse_resolution(value) == expected  # type: ignore[arg-type]

    @pytest.mark.parametrize("value", ["1920", "0x1080", "axb", [1, 2, 3]])
    def test_invalid(self, value: object) -> None:
        """Test rejected forms."""
        with pytest.raises(ValueError):
            parse_resolution(value)  # type: ignore[arg-type]


class TestLoadSettings:
    """Tests for load_settings."""

    def test_no_path(self) -> None:
        """Test None yields defaults."""
        assert load_settings(None) == Settings()

    def test_missing_file(self, tmp_path: Path) -> None:
        """Test a missing file yields defaults."""
        assert load_settings(tmp_path / "missing.json").handle_frames == 10

    def test_load(self, tmp_path: Path) -> None:
        """Test file values overlay defaults."""
        path = tmp_path / "settings.json"
        path.write_text(json.dumps({
            "output_root": str(tmp_path / "out"),
            "handle_frames": 12,
            "profile": {"resolution": [1920, 1080]},
        }))
        settings = load_settings(path)
        assert settings.output_root == tmp_path / "out"
        assert settings.handle_frames == 12
        assert settings.profile.resolution == (1920, 1080)
        assert settings.profile.video_codec == "libx264"

    def test_invalid_json(self, tmp_path: Path) -> None:
        """Test malformed JSON raises ValueError."""
        path = tmp_path / "settings.json"
        path.write_text("{not json")
        with pytest.raises(ValueError, match="Invalid settings"):
            load_settings(path)

    def test_not_an_object(self, tmp_path: Path) -> None:
        """Test a non-object document raises ValueError."""
        path = tmp_path / "settings.json"
        path.write_text("[1, 2]")
        with pytest.raises(ValueError, match="JSON object"):
            load_settings(path)

    def test_unknown_key(self, tmp_path: Path) -> None:
        """Test unknown keys are rejected."""
        path = tmp_path / "settings.json"
        path.write_text(json.dumps({"handles": 3}))
        with pytest.raises(ValueError, match="handles"):
            load_settings(path)
