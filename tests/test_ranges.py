"""Tests for the ranges module."""

from pathlib import Path

import pytest

from chapterclip.models import Chapter
from chapterclip.ranges import (
    resolve_end_time,
    resolve_time_range,
    resolve_time_ranges,
)

FILE_A = Path("/media/a.mov")
FILE_B = Path("/media/b.mov")


def make_chapter(source: Path, index: int, start: float) -> Chapter:
    return Chapter(
        id=f"ch-{source.name}-{index}",
        title=f"Shot {index}",
        start_time=start,
        source_file=source,
        index=index,
    )


class TestResolveEndTime:
    """Tests for end time resolution."""

    def test_two_chapters_in_one_file(self) -> None:
        """Test markers at 0 and 5 in a 10 s file give [0,5) and [5,10)."""
        chapters = [make_chapter(FILE_A, 0, 0.0), make_chapter(FILE_A, 1, 5.0)]
        ranges = resolve_time_ranges(chapters, {FILE_A: 10.0})
        assert (ranges[0].start, ranges[0].end) == (0.0, 5.0)
        assert (ranges[1].start, ranges[1].end) == (5.0, 10.0)

    def test_matches_on_source_file_across_interleaved_list(self) -> None:
        """Test the next chapter of the same file is found past other files."""
        chapters = [
            make_chapter(FILE_A, 0, 0.0),
            make_chapter(FILE_B, 0, 0.0),
            make_chapter(FILE_B, 1, 3.0),
            make_chapter(FILE_A, 1, 7.0),
        ]
        assert resolve_end_time(chapters, 0, 20.0) == 7.0
        assert resolve_end_time(chapters, 1, 9.0) == 3.0
        assert resolve_end_time(chapters, 2, 9.0) == 9.0
        assert resolve_end_time(chapters, 3, 20.0) == 20.0

    def test_filtered_list_skips_removed_markers(self) -> None:
        """Test a chapter ends at the next submitted chapter of its file."""
        chapters = [make_chapter(FILE_A, 0, 0.0), make_chapter(FILE_A, 2, 8.0)]
        assert resolve_end_time(chapters, 0, 12.0) == 8.0

    def test_property_end_equals_next_start(self) -> None:
        """Test every end is the next same-file start, else the duration."""
        durations = {FILE_A: 30.0, FILE_B: 40.0}
        chapters = [
            make_chapter(FILE_B, 0, 0.0),
            make_chapter(FILE_A, 0, 0.0),
            make_chapter(FILE_A, 1, 10.0),
            make_chapter(FILE_B, 1, 12.0),
            make_chapter(FILE_A, 2, 20.0),
        ]
        ranges = resolve_time_ranges(chapters, durations)
        for i, chapter in enumerate(chapters):
            following = [
                c for c in chapters[i + 1:] if c.source_file == chapter.source_file
            ]
            expected = (
                following[0].start_time if following
                else durations[chapter.source_file]
            )
            assert ranges[i].end == expected


class TestResolveTimeRange:
    """Tests for clamped ranges."""

    def test_negative_start_clamped(self) -> None:
        """Test a negative marker start becomes zero."""
        chapters = [make_chapter(FILE_A, 0, -0.04), make_chapter(FILE_A, 1, 5.0)]
        time_range = resolve_time_range(chapters, 0, 10.0)
        assert time_range.start == 0.0
        assert time_range.end == 5.0

    def test_end_never_precedes_start(self) -> None:
        """Test out-of-order markers collapse to an empty range."""
        chapters = [make_chapter(FILE_A, 0, 6.0), make_chapter(FILE_A, 1, 2.0)]
        time_range = resolve_time_range(chapters, 0, 10.0)
        assert time_range.start == 6.0
        assert time_range.end == 6.0
        assert time_range.duration == 0.0

    def test_missing_duration_raises(self) -> None:
        """Test that an unknown source file is reported."""
        with pytest.raises(KeyError):
            resolve_time_ranges([make_chapter(FILE_A, 0, 0.0)], {})
