"""Output naming, destination routing and versioning.

Every clip is written as ``{base}-v{NNN}.{ext}`` using the lowest version
whose file does not exist yet, so an existing output is never overwritten.
"""

import logging
import re
from pathlib import Path, PurePath

from chapterclip.exceptions import DirectoryCreateError
from chapterclip.models import Chapter

logger = logging.getLogger(__name__)

UNKNOWN_PATH = "UNKNOWN_PATH"
DEFAULT_UNMATCHED_DIR = "_UNMATCHED"

_TITLE_HOSTILE = re.compile(r'[ /\\?%*:|"<>]')
_PATH_HOSTILE = re.compile(r'[:*?"<>|]')
_VERSION_WIDTH = 3


def sanitize_title(title: str, substitute: str = "_") -> str:
    """Replace filesystem-hostile characters in a title.

    Example:
        >>> sanitize_title('Intro: Part 1/2')
        'Intro__Part_1_2'
    """
    return _TITLE_HOSTILE.sub(substitute, title)


def sanitize_sub_path(path: str) -> PurePath:
    """Turn a destination sub-path into a relative path under the output root.

    Illegal characters are dropped, both separator styles are accepted, and
    empty, ``.`` and ``..`` components are removed so the result can never
    escape the root.
    """
    cleaned = _PATH_HOSTILE.sub("", path)
    parts = [
        part.strip()
        for part in re.split(r"[\\/]+", cleaned)
        if part.strip() not in ("", ".", "..")
    ]
    return PurePath(*parts)


def has_valid_path(chapter: Chapter) -> bool:
    """Check whether a chapter carries a usable destination sub-path."""
    if not chapter.path or chapter.path == UNKNOWN_PATH:
        return False
    return bool(sanitize_sub_path(chapter.path).parts)


def resolve_output_dir(
    output_root: Path,
    chapter: Chapter,
    unmatched_dir: str = DEFAULT_UNMATCHED_DIR,
) -> Path:
    """Resolve the directory a chapter's clip is written to.

    Chapters without a valid path are routed to
    ``{root}/{unmatched_dir}/{source file stem}`` rather than dropped.
    """
    if has_valid_path(chapter):
        return Path(output_root) / sanitize_sub_path(chapter.path or "")

    logger.warning(
        f'Chapter "{chapter.title}" has an invalid or missing path. '
        "Saving to a fallback directory."
    )
    return Path(output_root) / unmatched_dir / chapter.source_file.stem


def ensure_directory(directory: Path) -> Path:
    """Create ``directory`` and its parents if needed.

    Raises:
        DirectoryCreateError: If the directory cannot be created.
    """
    try:
        directory.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise DirectoryCreateError(
            f'Could not create directory "{directory}": {e}', directory
        ) from e
    logger.debug(f'Ensured directory exists: "{directory}"')
    return directory


def format_version(version: int) -> str:
    """Format a version number as ``vNNN``."""
    return f"v{version:0{_VERSION_WIDTH}d}"


def versioned_name(base: str, version: int) -> str:
    return f"{base}-{format_version(version)}"


def resolve_versioned_path(
    directory: Path,
    base: str,
    extension: str = "mp4",
) -> tuple[Path, int]:
    """Find the first free ``{base}-vNNN.{extension}`` in ``directory``.

    Versions are scanned from ``v001`` upward, so gaps left by deleted files
    are reused before higher numbers.

    Returns:
        Tuple of (output path, version number).
    """
    extension = extension.lstrip(".")
    version = 1
    while True:
        candidate = directory / f"{versioned_name(base, version)}.{extension}"
        if not candidate.exists():
            return candidate, version
        version += 1
