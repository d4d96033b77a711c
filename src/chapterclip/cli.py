"""Command-line interface for Chapterclip.

This module provides a CLI for cutting one handle-padded clip per chapter
from video files using argparse.
"""

import argparse
import logging
import signal
import sys
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from pathlib import Path

from rich.console import Console
from rich.progress import (
    BarColumn,
    Progress,
    SpinnerColumn,
    TaskProgressColumn,
    TextColumn,
    TimeElapsedColumn,
)
from rich.table import Table

from chapterclip import __version__
from chapterclip.config import Settings, load_settings, parse_resolution
from chapterclip.controller import JobController
from chapterclip.exceptions import (
    ChapterclipError,
    FFmpegNotFoundError,
    LookupTableError,
    ProbeError,
)
from chapterclip.lookup import apply_lookup, load_lookup_csv
from chapterclip.models import (
    Chapter,
    ChapterStatus,
    ChapterUpdate,
    RunSummary,
    TimeRange,
)
from chapterclip.naming import (
    resolve_output_dir,
    resolve_versioned_path,
    sanitize_title,
)
from chapterclip.prober import MediaProber, resolve_input_files
from chapterclip.ranges import resolve_time_range

EXIT_STOPPED = 130

TERMINAL_STATUSES = frozenset({
    ChapterStatus.DONE,
    ChapterStatus.ERROR,
    ChapterStatus.STOPPED,
})


def setup_logging(
    verbose: bool = False,
    quiet: bool = False,
    log_file: str | Path | None = None,
) -> None:
    """Configure logging based on verbosity settings."""
    if quiet:
        level = logging.ERROR
    elif verbose:
        level = logging.DEBUG
    else:
        level = logging.INFO

    logging.basicConfig(
        level=level,
        format="%(message)s",
    )

    if log_file:
        handler = logging.FileHandler(log_file, encoding="utf-8")
        handler.setLevel(logging.DEBUG)
        handler.setFormatter(logging.Formatter("%(asctime)s - %(message)s"))
        root = logging.getLogger()
        root.addHandler(handler)
        root.setLevel(min(root.level, logging.DEBUG))


def create_parser() -> argparse.ArgumentParser:
    """Create and configure the argument parser."""
    parser = argparse.ArgumentParser(
        prog="chapterclip",
        description=(
            "Cut one clip per chapter marker from video files, padded with "
            "freeze-frame handles and tagged with a single chapter."
        ),
        epilog=(
            "Examples:\n"
            "  %(prog)s -i 'shoots/*.mov' -o /mnt/clips\n"
            "  %(prog)s -i take1.mov -i take2.mov -o clips --lookup shots.csv\n"
            "  %(prog)s -i take1.mov --list-chapters\n"
            "  %(prog)s -i take1.mov -o clips --dry-run\n"
            "\n"
            "While processing, Ctrl+C stops the queue and SIGUSR1 toggles "
            "pause/resume (POSIX)."
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "-V",
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    # Input options
    input_group = parser.add_argument_group("Input options")
    input_group.add_argument(
        "-i",
        "--input",
        dest="inputs",
        action="append",
        required=True,
        metavar="PATH",
        help=(
            "Input file path or glob pattern. Can be specified multiple times. "
            "Use quotes around glob patterns to prevent shell expansion."
        ),
    )
    input_group.add_argument(
        "--lookup",
        metavar="CSV",
        help=(
            "CSV table with ID, GUIDE_NAME and PATH columns mapping chapter "
            "titles to display names and destination sub-paths."
        ),
    )

    # Output options
    output_group = parser.add_argument_group("Output options")
    output_mode = output_group.add_mutually_exclusive_group()
    output_mode.add_argument(
        "-l",
        "--list-chapters",
        action="store_true",
        help="List all chapters and their ranges without processing.",
    )
    output_mode.add_argument(
        "-n",
        "--dry-run",
        action="store_true",
        help="Show where each clip would be written without encoding.",
    )
    output_group.add_argument(
        "-o",
        "--output-root",
        metavar="DIR",
        help="Root directory clips are written under.",
    )

    # Settings options
    settings_group = parser.add_argument_group("Settings options")
    settings_group.add_argument(
        "--config",
        metavar="JSON",
        help="JSON settings file overlaying the defaults.",
    )
    settings_group.add_argument(
        "--handle-frames",
        type=int,
        metavar="N",
        help="Length of each freeze-frame handle in frames (default: 10).",
    )
    settings_group.add_argument(
        "--resolution",
        metavar="WxH",
        help="Scale clips to this size, e.g. 1920x1080 (default: source size).",
    )
    settings_group.add_argument(
        "--ffmpeg",
        dest="ffmpeg_path",
        metavar="PATH",
        help="Path to the ffmpeg executable.",
    )
    settings_group.add_argument(
        "--ffprobe",
        dest="ffprobe_path",
        metavar="PATH",
        help="Path to the ffprobe executable.",
    )

    # Behavior options
    behavior_group = parser.add_argument_group("Behavior options")
    behavior_group.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose output.",
    )
    behavior_group.add_argument(
        "-q",
        "--quiet",
        action="store_true",
        help="Suppress all output except errors.",
    )
    behavior_group.add_argument(
        "--log-file",
        metavar="FILE",
        help="Append a timestamped debug log to FILE.",
    )
    behavior_group.add_argument(
        "--no-progress",
        action="store_true",
        help="Disable progress bar and tables (uses simple text output).",
    )

    return parser


def print_update(update: ChapterUpdate) -> None:
    """Print a chapter status update."""
    line = f"[{update.status.value}] {update.chapter_id}"
    if update.final_name:
        line += f" -> {update.final_name}"
    if update.status is ChapterStatus.DONE:
        line += f" ({update.duration_seconds}s, {update.duration_frames} frames)"
    elif update.message and update.status is ChapterStatus.ERROR:
        line += f": {update.message.splitlines()[0]}"
    print(line)


def _resolve_ranges(
    prober: MediaProber, chapters: list[Chapter]
) -> list[TimeRange | None]:
    durations: dict[Path, float | None] = {}
    for chapter in chapters:
        if chapter.source_file not in durations:
            try:
                durations[chapter.source_file] = prober.get_stream_info(
                    chapter.source_file
                ).duration
            except ProbeError as e:
                logging.getLogger(__name__).error(str(e))
                durations[chapter.source_file] = None

    ranges: list[TimeRange | None] = []
    for idx, chapter in enumerate(chapters):
        duration = durations[chapter.source_file]
        ranges.append(
            None if duration is None else resolve_time_range(chapters, idx, duration)
        )
    return ranges


def list_chapters(
    prober: MediaProber, chapters: list[Chapter], use_rich: bool = True
) -> None:
    """List all chapters with their resolved ranges."""
    ranges = _resolve_ranges(prober, chapters)

    if use_rich:
        console = Console()
        table = Table(title="Chapters")
        table.add_column("ID", style="cyan")
        table.add_column("Title", style="green")
        table.add_column("Start", style="yellow", justify="right")
        table.add_column("End", style="yellow", justify="right")
        table.add_column("Duration", style="magenta", justify="right")
        table.add_column("Path", style="blue")

        for chapter, time_range in zip(chapters, ranges):
            table.add_row(
                chapter.id,
                chapter.title,
                f"{chapter.start_time:.2f}s",
                f"{time_range.end:.2f}s" if time_range else "?",
                f"{time_range.duration:.2f}s" if time_range else "?",
                chapter.path or "-",
            )
        console.print(table)
    else:
        for chapter, time_range in zip(chapters, ranges):
            span = str(time_range) if time_range else "[?]"
            print(f"  {chapter.id:<30} {chapter.title:<30} {span}")


def run_dry_run(
    prober: MediaProber, chapters: list[Chapter], settings: Settings
) -> None:
    """Show what would be produced for each chapter."""
    print("\n=== DRY RUN ===\n")
    ranges = _resolve_ranges(prober, chapters)
    for chapter, time_range in zip(chapters, ranges):
        output_dir = resolve_output_dir(
            settings.output_root, chapter, settings.unmatched_dir
        )
        base = sanitize_title(chapter.title, settings.name_substitute)
        output_file, _ = resolve_versioned_path(
            output_dir, base, settings.profile.extension
        )
        span = str(time_range) if time_range else "[?]"
        print(f"  {chapter.id}: {span} -> {output_file}")
    print(f"\nTotal chapters to process: {len(chapters)}")


class RichProgressCallback:
    """Progress callback using rich library."""

    def __init__(self, total: int, description: str = "Processing") -> None:
        """Initialize the progress callback."""
        self.progress = Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            TaskProgressColumn(),
            TimeElapsedColumn(),
        )
        self.task_id = self.progress.add_task(description, total=total)
        self.progress.start()

    def __call__(self, update: ChapterUpdate) -> None:
        """Update progress."""
        if update.status is ChapterStatus.PROCESSING and update.final_name:
            self.progress.update(
                self.task_id, description=f"Processing: {update.final_name[:50]}"
            )
        elif update.status is ChapterStatus.PAUSED:
            self.progress.update(self.task_id, description="Paused...")
        elif update.status in TERMINAL_STATUSES:
            self.progress.advance(self.task_id)

    def stop(self) -> None:
        """Stop the progress bar."""
        self.progress.stop()


def print_summary(
    chapters: list[Chapter], summary: RunSummary, use_rich: bool = True
) -> None:
    """Print the final status of every chapter."""
    done: dict[str, ChapterUpdate] = {
        u.chapter_id: u for u in summary.updates if u.status is ChapterStatus.DONE
    }

    if use_rich:
        table = Table(title=f"Run {summary.state.value}")
        table.add_column("ID", style="cyan")
        table.add_column("Clip", style="green")
        table.add_column("Status")
        table.add_column("Seconds", justify="right")
        table.add_column("Frames", justify="right")
        for chapter in chapters:
            status = summary.final_status(chapter.id)
            update = done.get(chapter.id)
            table.add_row(
                chapter.id,
                chapter.title,
                status.value if status else "-",
                str(update.duration_seconds) if update else "-",
                str(update.duration_frames) if update else "-",
            )
        Console().print(table)
    else:
        print(f"\n=== Summary ({summary.state.value}) ===")
        for chapter in chapters:
            status = summary.final_status(chapter.id)
            print(f"  {chapter.id}: {status.value if status else '-'} {chapter.title}")

    print(
        f"\nDone: {summary.count(ChapterStatus.DONE)}  "
        f"Errors: {summary.count(ChapterStatus.ERROR)}  "
        f"Not processed: {len(chapters) - len(done) - summary.count(ChapterStatus.ERROR)}"
    )


@contextmanager
def control_signals(controller: JobController) -> Iterator[None]:
    """Route Ctrl+C to stop and, on POSIX, SIGUSR1 to pause/resume."""

    def on_interrupt(signum: int, frame: object) -> None:
        controller.stop()

    def on_toggle(signum: int, frame: object) -> None:
        controller.toggle_pause()

    handlers: list[tuple[int, Callable | int | None]] = [
        (signal.SIGINT, signal.signal(signal.SIGINT, on_interrupt)),
    ]
    if hasattr(signal, "SIGUSR1"):
        handlers.append((signal.SIGUSR1, signal.signal(signal.SIGUSR1, on_toggle)))
    try:
        yield
    finally:
        for signum, previous in handlers:
            signal.signal(signum, previous)


def _build_settings(args: argparse.Namespace) -> Settings:
    settings = load_settings(args.config)
    return settings.with_overrides(
        output_root=args.output_root,
        handle_frames=args.handle_frames,
        resolution=parse_resolution(args.resolution) if args.resolution else None,
        ffmpeg_path=args.ffmpeg_path,
        ffprobe_path=args.ffprobe_path,
    )


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the CLI.

    Args:
        argv: Command-line arguments (defaults to sys.argv[1:]).

    Returns:
        Exit code (0 for success, 130 when stopped, 1 for errors).
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    setup_logging(verbose=args.verbose, quiet=args.quiet, log_file=args.log_file)
    logger = logging.getLogger(__name__)

    is_info_mode = args.list_chapters or args.dry_run
    if not args.list_chapters and not args.output_root and not args.config:
        parser.error("-o/--output-root is required for processing")

    try:
        settings = _build_settings(args)
    except ValueError as e:
        parser.error(str(e))

    # Resolve input files
    try:
        input_files: list[Path] = []
        for input_pattern in args.inputs:
            input_files.extend(resolve_input_files(input_pattern))

        # Remove duplicates while preserving order
        input_files = list(dict.fromkeys(input_files))
        if not input_files:
            logger.error("No input files found")
            return 1

        logger.info(f"Found {len(input_files)} input file(s)")

    except FileNotFoundError as e:
        logger.error(str(e))
        return 1

    use_rich = not args.no_progress and not args.quiet

    try:
        if is_info_mode:
            prober = MediaProber(settings.ffprobe_path)
        else:
            controller = JobController.from_settings(settings)
            prober = controller.prober

        chapters = prober.analyze(input_files)
        if not chapters:
            logger.error("No chapters found in input files")
            return 1

        if args.lookup:
            matched = apply_lookup(chapters, load_lookup_csv(args.lookup))
            logger.info(f"Matched {matched} of {len(chapters)} chapters")

    except (FFmpegNotFoundError, ProbeError, LookupTableError) as e:
        logger.error(str(e))
        return 1

    if args.list_chapters:
        list_chapters(prober, chapters, use_rich)
        return 0

    if args.dry_run:
        run_dry_run(prober, chapters, settings)
        return 0

    rich_progress: RichProgressCallback | None = None
    if not args.quiet:
        if use_rich:
            rich_progress = RichProgressCallback(len(chapters), "Processing chapters")
            controller.on_update = rich_progress
        else:
            controller.on_update = print_update

    try:
        with control_signals(controller):
            summary = controller.start(chapters)
    except ChapterclipError as e:
        logger.error(f"Processing failed: {e}")
        return 1
    finally:
        if rich_progress:
            rich_progress.stop()

    if not args.quiet:
        print_summary(chapters, summary, use_rich)

    if summary.stopped:
        return EXIT_STOPPED
    return 1 if summary.count(ChapterStatus.ERROR) else 0


if __name__ == "__main__":
    sys.exit(main())
