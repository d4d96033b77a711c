"""Time-range resolution for queued chapters.

A chapter ends where the next chapter *from the same source file* begins,
looking forward through the whole submitted list, or at the end of the file
when no such chapter follows. The list may mix files and may have been
reordered or filtered before submission, so matching is done on the source
file, never on list proximity.
"""

from collections.abc import Mapping, Sequence
from pathlib import Path

from chapterclip.models import Chapter, TimeRange


def resolve_end_time(
    chapters: Sequence[Chapter],
    index: int,
    total_duration: float,
) -> float:
    """Return the end time of ``chapters[index]``.

    Args:
        chapters: The full submitted chapter list.
        index: Position of the chapter in ``chapters``.
        total_duration: Duration of the chapter's source file in seconds.

    Returns:
        Start time of the next chapter from the same file, or the file's
        total duration.
    """
    chapter = chapters[index]
    for candidate in chapters[index + 1:]:
        if candidate.source_file == chapter.source_file:
            return candidate.start_time
    return total_duration


def resolve_time_range(
    chapters: Sequence[Chapter],
    index: int,
    total_duration: float,
) -> TimeRange:
    """Resolve the clamped ``[start, end)`` range of ``chapters[index]``.

    A negative start is clamped to zero and the end never precedes the start.
    """
    start = max(0.0, chapters[index].start_time)
    end = max(start, resolve_end_time(chapters, index, total_duration))
    return TimeRange(start=start, end=end)


def resolve_time_ranges(
    chapters: Sequence[Chapter],
    durations: Mapping[Path, float],
) -> list[TimeRange]:
    """Resolve ranges for every chapter in submission order.

    Args:
        chapters: The full submitted chapter list.
        durations: Total duration of each distinct source file.

    Raises:
        KeyError: If a chapter's source file has no known duration.
    """
    return [
        resolve_time_range(chapters, idx, durations[chapter.source_file])
        for idx, chapter in enumerate(chapters)
    ]
