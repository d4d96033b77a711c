"""Per-chapter clip production with ffmpeg.

For each chapter the splicer captures the two freeze-frame stills, writes
the single-chapter metadata file, then runs one ffmpeg transcode over the
source, the stills and the metadata. Stills and metadata live in a private
temporary directory that is removed on every exit path.
"""

import logging
import tempfile
from collections.abc import Callable
from pathlib import Path

from chapterclip.config import EncodingProfile
from chapterclip.exceptions import ProcessingInterrupted, TranscodeError
from chapterclip.filtergraph import (
    AUDIO_OUT,
    METADATA_INPUT,
    VIDEO_OUT,
    SplicePlan,
    build_chapter_metadata,
    build_splice_graph,
    format_number,
    plan_splice,
)
from chapterclip.models import StreamInfo, TimeRange
from chapterclip.process import ProcessSupervisor
from chapterclip.prober import validate_executables
from chapterclip.timing import DEFAULT_HANDLE_FRAMES, HandleTiming

logger = logging.getLogger(__name__)


def _no_interrupt() -> None:
    return None


class ChapterSplicer:
    """Produce one handle-padded clip per chapter.

    Attributes:
        ffmpeg_path: Path to the ffmpeg executable.
        profile: Encoding profile of produced clips.
        handle_frames: Length of each freeze-frame handle in frames.
        supervisor: Tracks the live ffmpeg process so it can be killed.
    """

    def __init__(
        self,
        ffmpeg_path: str | Path = "ffmpeg",
        profile: EncodingProfile | None = None,
        handle_frames: int = DEFAULT_HANDLE_FRAMES,
        supervisor: ProcessSupervisor | None = None,
        temp_dir: Path | None = None,
        validate: bool = True,
    ) -> None:
        """Initialize the ChapterSplicer.

        Raises:
            FFmpegNotFoundError: If ffmpeg cannot be found.
        """
        self.ffmpeg_path = Path(ffmpeg_path)
        self.profile = profile or EncodingProfile()
        self.handle_frames = handle_frames
        self.supervisor = supervisor or ProcessSupervisor()
        self._temp_dir = temp_dir
        if validate:
            validate_executables(("ffmpeg", self.ffmpeg_path))

    def plan(self, time_range: TimeRange, info: StreamInfo) -> SplicePlan:
        """Compute the splice plan for a chapter of ``info.path``."""
        timing = HandleTiming(info.frame_rate, self.handle_frames)
        return plan_splice(time_range, timing, info.duration)

    def still_command(self, source: Path, time: float, output: Path) -> list[str]:
        """Build the ffmpeg command capturing one frame at ``time``."""
        filters = []
        if self.profile.still_filter:
            filters.append(self.profile.still_filter)
        if self.profile.resolution is not None:
            width, height = self.profile.resolution
            filters.append(f"scale={width}:{height}")

        cmd = [
            str(self.ffmpeg_path),
            "-ss", format_number(max(0.0, time)),
            "-i", str(source),
        ]
        if filters:
            cmd.extend(["-vf", ",".join(filters)])
        cmd.extend(["-frames:v", "1", "-y", str(output)])
        return cmd

    def transcode_command(
        self,
        plan: SplicePlan,
        info: StreamInfo,
        prefix_still: Path,
        suffix_still: Path,
        metadata_file: Path,
        output_file: Path,
    ) -> list[str]:
        """Build the ffmpeg command splicing stills, chapter and handles."""
        graph = build_splice_graph(
            plan, info.frame_rate_text, info.audio, self.profile.resolution
        )
        cmd = [
            str(self.ffmpeg_path),
            "-i", str(info.path),
            "-framerate", info.frame_rate_text, "-i", str(prefix_still),
            "-framerate", info.frame_rate_text, "-i", str(suffix_still),
            "-i", str(metadata_file),
            "-filter_complex", str(graph),
            "-map", f"[{VIDEO_OUT}]",
        ]
        if info.has_audio:
            cmd.extend(["-map", f"[{AUDIO_OUT}]"])
        cmd.extend(["-map_chapters", str(METADATA_INPUT)])
        cmd.extend(self.profile.container_options)
        cmd.extend(["-c:v", self.profile.video_codec, *self.profile.video_options])
        if info.has_audio:
            cmd.extend(["-c:a", self.profile.audio_codec, *self.profile.audio_options])
        cmd.extend(self.profile.extra_output_options)
        cmd.extend(["-y", str(output_file)])
        return cmd

    def _run(
        self,
        cmd: list[str],
        what: str,
        check_interrupt: Callable[[], None],
    ) -> None:
        # Clear any stale kill before the check, so a pause or stop landing
        # after the check still reaches the process about to start.
        self.supervisor.reset()
        check_interrupt()
        try:
            result = self.supervisor.run(cmd)
        except OSError as e:
            raise TranscodeError(f"Could not run ffmpeg for {what}: {e}") from e
        # A kill from pause/stop shows up as a failed exit; report the
        # control signal instead.
        check_interrupt()
        if not result.ok:
            raise TranscodeError(
                f"FFmpeg process exited with code {result.returncode} for {what}",
                returncode=result.returncode,
                diagnostics=result.stderr,
            )

    def splice(
        self,
        title: str,
        time_range: TimeRange,
        info: StreamInfo,
        output_file: Path,
        check_interrupt: Callable[[], None] = _no_interrupt,
    ) -> None:
        """Produce the clip for one chapter.

        Args:
            title: Final chapter title written into the clip's metadata.
            time_range: Chapter range in the source.
            info: Stream description of the source.
            output_file: Destination of the clip.
            check_interrupt: Raises ProcessingInterrupted when the run was
                paused or stopped; called around every ffmpeg invocation.

        Raises:
            TranscodeError: If any ffmpeg invocation fails.
            ProcessingInterrupted: If the run was paused or stopped.
        """
        plan = self.plan(time_range, info)
        logger.info(f"--- Processing chapter: {title} from {info.path.name} ---")
        logger.debug(
            f"Chapter times: start={plan.chapter.start}s, end={plan.chapter.end}s, "
            f"handle={plan.timing.handle_duration}s"
        )

        work_dir = Path(tempfile.mkdtemp(prefix="chapterclip-", dir=self._temp_dir))
        prefix_still = work_dir / "prefix.png"
        suffix_still = work_dir / "suffix.png"
        metadata_file = work_dir / "metadata.txt"

        try:
            self._run(
                self.still_command(info.path, plan.prefix_still_time, prefix_still),
                f"prefix still of '{title}'",
                check_interrupt,
            )
            self._run(
                self.still_command(info.path, plan.suffix_still_time, suffix_still),
                f"suffix still of '{title}'",
                check_interrupt,
            )
            metadata_file.write_text(
                build_chapter_metadata(title, plan), encoding="utf-8"
            )
            self._run(
                self.transcode_command(
                    plan, info, prefix_still, suffix_still, metadata_file, output_file
                ),
                f"'{title}'",
                check_interrupt,
            )
            logger.info(f"--- Successfully created: {output_file} ---")
        except (TranscodeError, ProcessingInterrupted, OSError):
            self._discard_partial(output_file)
            raise
        finally:
            self._cleanup(work_dir)

    def _discard_partial(self, output_file: Path) -> None:
        try:
            if output_file.exists():
                output_file.unlink()
                logger.debug(f"Removed partial output: {output_file}")
        except OSError as e:
            logger.warning(f"Could not remove partial output {output_file}: {e}")

    def _cleanup(self, work_dir: Path) -> None:
        logger.debug(f"Cleaning up temporary files in {work_dir}")
        for path in sorted(work_dir.glob("*")):
            try:
                path.unlink()
                logger.debug(f"Deleted temp file: {path}")
            except OSError as e:
                logger.warning(f"Could not delete temporary file: {path}. Error: {e}")
        try:
            work_dir.rmdir()
        except OSError as e:
            logger.warning(f"Could not delete temporary directory: {work_dir}. Error: {e}")
