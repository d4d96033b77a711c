"""Sequential chapter processing with pause, resume and stop.

The JobController walks the submitted chapters strictly in order with at most
one ffmpeg process alive. ``pause()`` and ``stop()`` may be called from
another thread (or a signal handler); both kill the in-flight process at
once. A paused chapter is retried from scratch after ``resume()``; a stopped
run ends after the current chapter's cleanup.

Example:
    >>> controller = JobController.from_settings(settings, on_update=print)
    >>> summary = controller.start(chapters)
    >>> summary.state
    <RunState.COMPLETED: 'Completed'>
"""

import logging
import threading
import time
from collections.abc import Callable, Sequence
from pathlib import Path

from chapterclip.config import Settings
from chapterclip.exceptions import (
    ChapterclipError,
    ProcessingPaused,
    ProcessingStopped,
    RunInProgressError,
)
from chapterclip.models import (
    Chapter,
    ChapterStatus,
    ChapterUpdate,
    RunState,
    RunSummary,
    StreamInfo,
    TimeRange,
)
from chapterclip.naming import (
    ensure_directory,
    resolve_output_dir,
    resolve_versioned_path,
    sanitize_title,
    versioned_name,
)
from chapterclip.prober import MediaProber
from chapterclip.process import ProcessSupervisor
from chapterclip.ranges import resolve_time_range
from chapterclip.splicer import ChapterSplicer
from chapterclip.verifier import ResultVerifier

logger = logging.getLogger(__name__)

UpdateCallback = Callable[[ChapterUpdate], None]


class ProcessingRun:
    """Control flags of one processing run, guarded by a lock."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self.is_paused = False
        self.should_stop = False

    def pause(self) -> None:
        with self._lock:
            self.is_paused = True

    def resume(self) -> None:
        with self._lock:
            self.is_paused = False

    def stop(self) -> None:
        with self._lock:
            self.should_stop = True
            self.is_paused = False

    def snapshot(self) -> tuple[bool, bool]:
        """Return ``(is_paused, should_stop)`` atomically."""
        with self._lock:
            return self.is_paused, self.should_stop

    def raise_if_interrupted(self) -> None:
        """Raise the control signal matching the current flags.

        Raises:
            ProcessingStopped: If a stop was requested.
            ProcessingPaused: If the run is paused.
        """
        paused, stopping = self.snapshot()
        if stopping:
            raise ProcessingStopped("Processing was stopped by the user")
        if paused:
            raise ProcessingPaused("Processing was paused by the user")

    def wait_while_paused(self, poll_interval: float) -> bool:
        """Block while paused; return True if a stop was requested."""
        while True:
            paused, stopping = self.snapshot()
            if stopping:
                return True
            if not paused:
                return False
            time.sleep(poll_interval)


class JobController:
    """Run chapters through the splicer one at a time.

    Attributes:
        prober: Describes source files and produced clips.
        splicer: Produces one clip per chapter.
        verifier: Reads back produced clip durations.
        settings: Output root, naming and polling settings.
    """

    def __init__(
        self,
        prober: MediaProber,
        splicer: ChapterSplicer,
        verifier: ResultVerifier,
        settings: Settings,
        on_update: UpdateCallback | None = None,
    ) -> None:
        self.prober = prober
        self.splicer = splicer
        self.verifier = verifier
        self.settings = settings
        self.on_update = on_update
        self._lock = threading.RLock()
        self._run: ProcessingRun | None = None
        self._state = RunState.IDLE

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        on_update: UpdateCallback | None = None,
    ) -> "JobController":
        """Build a controller with real ffprobe/ffmpeg collaborators.

        Raises:
            FFmpegNotFoundError: If ffmpeg or ffprobe cannot be found.
        """
        prober = MediaProber(settings.ffprobe_path)
        splicer = ChapterSplicer(
            settings.ffmpeg_path,
            profile=settings.profile,
            handle_frames=settings.handle_frames,
            supervisor=ProcessSupervisor(),
            temp_dir=settings.temp_dir,
        )
        return cls(prober, splicer, ResultVerifier(prober), settings, on_update)

    @property
    def state(self) -> RunState:
        """Current controller state."""
        with self._lock:
            run = self._run
            if run is None:
                return self._state
            paused, stopping = run.snapshot()
            if stopping:
                return RunState.STOPPING
            if paused:
                return RunState.PAUSED
            return RunState.RUNNING

    # Control surface

    def pause(self) -> None:
        """Pause the run and kill the in-flight process."""
        with self._lock:
            run = self._run
            if run is None:
                logger.info("[CONTROL] pause ignored: no run in progress")
                return
            logger.info("--- Processing Paused ---")
            run.pause()
            self.splicer.supervisor.kill()

    def resume(self) -> None:
        """Resume a paused run; the interrupted chapter is retried."""
        with self._lock:
            run = self._run
            if run is None:
                logger.info("[CONTROL] resume ignored: no run in progress")
                return
            logger.info("--- Processing Resumed ---")
            run.resume()

    def stop(self) -> None:
        """Stop the run after the current chapter's cleanup."""
        with self._lock:
            run = self._run
            if run is None:
                logger.info("[CONTROL] stop ignored: no run in progress")
                return
            run.stop()
            if self.splicer.supervisor.kill():
                logger.info("--- User requested stop. Killed current FFmpeg process. ---")
            else:
                logger.info("--- User requested stop. No active FFmpeg process. ---")

    def toggle_pause(self) -> None:
        """Pause a running run, or resume a paused one."""
        if self.state is RunState.PAUSED:
            self.resume()
        else:
            self.pause()

    # Processing

    def _emit(self, summary: RunSummary, update: ChapterUpdate) -> None:
        summary.updates.append(update)
        if self.on_update:
            self.on_update(update)

    def _cache_stream_info(self, chapters: Sequence[Chapter]) -> dict[Path, StreamInfo]:
        infos: dict[Path, StreamInfo] = {}
        for chapter in chapters:
            if chapter.source_file not in infos:
                infos[chapter.source_file] = self.prober.get_stream_info(
                    chapter.source_file
                )
        return infos

    def start(self, chapters: Sequence[Chapter]) -> RunSummary:
        """Process every chapter in submission order.

        Args:
            chapters: Chapters to process; titles are rewritten to their
                versioned output names as processing reaches them.

        Returns:
            Summary whose state is ``Completed`` or ``Stopped``.

        Raises:
            RunInProgressError: If a run is already active.
            ProbeError: If any source file cannot be described; no clip is
                produced in that case.
        """
        with self._lock:
            if self._run is not None:
                raise RunInProgressError("Processing is already running")
            run = ProcessingRun()
            self._run = run
            self._state = RunState.RUNNING

        chapters = list(chapters)
        summary = RunSummary(state=RunState.RUNNING)
        logger.info(
            f"--- Starting video processing. Base output directory: "
            f'"{self.settings.output_root}" ---'
        )
        try:
            infos = self._cache_stream_info(chapters)
            ranges = [
                resolve_time_range(chapters, idx, infos[c.source_file].duration)
                for idx, c in enumerate(chapters)
            ]
            self._process_all(run, chapters, ranges, infos, summary)
        except BaseException:
            self._finish(run, RunState.IDLE)
            raise

        _, stopped = run.snapshot()
        if stopped:
            logger.info("--- Processing was stopped by the user. ---")
            summary.state = RunState.STOPPED
        else:
            logger.info("--- All chapters have been processed. ---")
            summary.state = RunState.COMPLETED
        self._finish(run, summary.state)
        return summary

    def _finish(self, run: ProcessingRun, state: RunState) -> None:
        with self._lock:
            if self._run is run:
                self._run = None
                self._state = state

    def _process_all(
        self,
        run: ProcessingRun,
        chapters: list[Chapter],
        ranges: list[TimeRange],
        infos: dict[Path, StreamInfo],
        summary: RunSummary,
    ) -> None:
        # Titles before versioning, so a retried chapter is named from scratch
        base_titles = [chapter.title for chapter in chapters]
        i = 0
        while i < len(chapters):
            chapter = chapters[i]
            if run.snapshot()[1] or run.wait_while_paused(self.settings.poll_interval):
                logger.info("Processing loop stopped by user request.")
                if summary.final_status(chapter.id) is ChapterStatus.PAUSED:
                    self._emit(summary, ChapterUpdate(chapter.id, ChapterStatus.STOPPED))
                break

            try:
                self._process_chapter(
                    run, chapter, base_titles[i], ranges[i], infos, summary
                )
            except ProcessingStopped:
                logger.info(f"Processing of chapter {chapter.title} was intentionally stopped.")
                self._emit(summary, ChapterUpdate(chapter.id, ChapterStatus.STOPPED))
                break
            except ProcessingPaused:
                logger.info(f"Chapter {chapter.title} interrupted by pause; will retry.")
                self._emit(summary, ChapterUpdate(chapter.id, ChapterStatus.PAUSED))
                continue
            except (ChapterclipError, OSError) as e:
                logger.error(f"[ERROR] Failed to process chapter {chapter.title}. Error: {e}")
                self._emit(
                    summary,
                    ChapterUpdate(chapter.id, ChapterStatus.ERROR, message=str(e)),
                )
            i += 1

    def _process_chapter(
        self,
        run: ProcessingRun,
        chapter: Chapter,
        base_title: str,
        time_range: TimeRange,
        infos: dict[Path, StreamInfo],
        summary: RunSummary,
    ) -> None:
        output_dir = resolve_output_dir(
            self.settings.output_root, chapter, self.settings.unmatched_dir
        )
        logger.info(f'Target directory for "{chapter.title}" is: "{output_dir}"')
        ensure_directory(output_dir)

        base = sanitize_title(base_title, self.settings.name_substitute)
        output_file, version = resolve_versioned_path(
            output_dir, base, self.settings.profile.extension
        )
        final_name = versioned_name(base, version)
        chapter.title = final_name
        logger.info(f"Assigning final name: {final_name}")

        self._emit(
            summary,
            ChapterUpdate(
                chapter.id,
                ChapterStatus.PROCESSING,
                message=f"Processing: {final_name}",
                final_name=final_name,
            ),
        )

        self.splicer.splice(
            final_name,
            time_range,
            infos[chapter.source_file],
            output_file,
            check_interrupt=run.raise_if_interrupted,
        )
        result = self.verifier.verify(output_file)
        logger.info(
            f"Chapter {final_name} processed. DUR_S: {result.duration_seconds}, "
            f"DUR_F: {result.duration_frames}, VERSION: {version}"
        )
        self._emit(
            summary,
            ChapterUpdate(
                chapter.id,
                ChapterStatus.DONE,
                duration_seconds=result.duration_seconds,
                duration_frames=result.duration_frames,
                version=version,
            ),
        )
