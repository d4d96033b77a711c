"""Duration check of produced clips."""

import logging
from pathlib import Path
from typing import Any

from chapterclip.exceptions import FrameRateError, ProbeError, VerificationIncompleteError
from chapterclip.models import ClipResult
from chapterclip.prober import MediaProber
from chapterclip.timing import parse_frame_rate

logger = logging.getLogger(__name__)


def read_clip_duration(data: dict[str, Any]) -> ClipResult:
    """Compute the rounded duration of a clip from ffprobe output.

    Raises:
        VerificationIncompleteError: If the format duration or video frame
            rate is missing or malformed.
    """
    streams = data.get("streams") or []
    video = next((s for s in streams if s.get("codec_type") == "video"), None)
    duration_text = (data.get("format") or {}).get("duration")
    if not duration_text or video is None or not video.get("r_frame_rate"):
        raise VerificationIncompleteError("Clip metadata is incomplete")

    try:
        seconds = float(duration_text)
        frame_rate = parse_frame_rate(str(video["r_frame_rate"]))
    except (ValueError, FrameRateError) as e:
        raise VerificationIncompleteError(f"Clip metadata is malformed: {e}") from e

    return ClipResult(
        duration_seconds=round(seconds),
        duration_frames=round(seconds * frame_rate),
    )


class ResultVerifier:
    """Re-probe produced clips for their authoritative duration."""

    def __init__(self, prober: MediaProber) -> None:
        self.prober = prober

    def verify(self, output_file: str | Path) -> ClipResult:
        """Return the clip's duration in whole seconds and frames.

        The transcode has already succeeded by the time this runs, so missing
        metadata degrades to a zero result instead of failing the chapter.
        """
        output_path = Path(output_file)
        logger.info(f"Getting duration for exported clip: {output_path.name}")
        try:
            result = read_clip_duration(self.prober.probe(output_path))
        except (ProbeError, VerificationIncompleteError) as e:
            logger.warning(
                f"Could not get precise duration from {output_path.name} ({e}). "
                "Reporting as 0."
            )
            return ClipResult(0, 0)

        logger.info(
            f"Exported clip duration: {result.duration_seconds}s, "
            f"{result.duration_frames} frames."
        )
        return result
