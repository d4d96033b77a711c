"""Splice filter-graph construction.

Each clip is built from three video segments (a held first frame, the
chapter itself, a held last frame) and, when the source has audio, three
matching audio segments. The graph is assembled from typed chain records and
only rendered to ffmpeg's ``-filter_complex`` syntax at the end.

Input numbering used by the graph:

    0  the source file
    1  the prefix still image
    2  the suffix still image
    3  the single-chapter metadata file
"""

from collections.abc import Sequence
from dataclasses import dataclass, field
from fractions import Fraction

from chapterclip.models import AudioFormat, TimeRange
from chapterclip.timing import HandleTiming

SOURCE_INPUT = 0
PREFIX_STILL_INPUT = 1
SUFFIX_STILL_INPUT = 2
METADATA_INPUT = 3

METADATA_TIMEBASE = 1_000_000

VIDEO_OUT = "out_v"
AUDIO_OUT = "out_a"


def format_number(value: float | int | Fraction) -> str:
    """Render a number for ffmpeg option values.

    Integers and integral floats render without a decimal point; other floats
    to microsecond precision with trailing zeros removed. Fractions keep
    their ``n/d`` form.
    """
    if isinstance(value, Fraction):
        return str(value.numerator) if value.denominator == 1 else str(value)
    if isinstance(value, int) or float(value).is_integer():
        return str(int(value))
    return f"{value:.6f}".rstrip("0").rstrip(".")


@dataclass(frozen=True)
class Filter:
    """One filter with ordered ``key=value`` options."""

    name: str
    options: tuple[tuple[str, object], ...] = ()

    @classmethod
    def of(cls, name: str, **options: object) -> "Filter":
        return cls(name, tuple(options.items()))

    def __str__(self) -> str:
        if not self.options:
            return self.name
        rendered = ":".join(
            f"{key}={_render_value(value)}" for key, value in self.options
        )
        return f"{self.name}={rendered}"


def _render_value(value: object) -> str:
    if isinstance(value, (int, float, Fraction)) and not isinstance(value, bool):
        return format_number(value)
    return str(value)


@dataclass(frozen=True)
class FilterChain:
    """A linear chain of filters between named input and output pads."""

    inputs: tuple[str, ...]
    filters: tuple[Filter, ...]
    outputs: tuple[str, ...]

    def __str__(self) -> str:
        pads_in = "".join(f"[{pad}]" for pad in self.inputs)
        pads_out = "".join(f"[{pad}]" for pad in self.outputs)
        return f"{pads_in}{','.join(str(f) for f in self.filters)}{pads_out}"


@dataclass
class FilterGraph:
    """Ordered collection of filter chains."""

    chains: list[FilterChain] = field(default_factory=list)

    def add(
        self,
        inputs: Sequence[str],
        filters: Sequence[Filter],
        output: str,
    ) -> str:
        """Append a chain and return its output pad label."""
        self.chains.append(FilterChain(tuple(inputs), tuple(filters), (output,)))
        return output

    def chain_for(self, output: str) -> FilterChain:
        """Return the chain producing ``output``."""
        for chain in self.chains:
            if output in chain.outputs:
                return chain
        raise KeyError(output)

    @property
    def outputs(self) -> list[str]:
        return [pad for chain in self.chains for pad in chain.outputs]

    def __str__(self) -> str:
        return ";".join(str(chain) for chain in self.chains)


@dataclass(frozen=True)
class AudioSegment:
    """An audio handle segment: a source trim, or silence when ``trim`` is None."""

    trim: TimeRange | None = None

    @property
    def is_silence(self) -> bool:
        return self.trim is None


@dataclass(frozen=True)
class SplicePlan:
    """All times needed to splice one chapter.

    Attributes:
        chapter: The chapter range in the source.
        timing: Frame and handle durations.
        video_end: End of the main video trim, one frame short of the
            chapter end so the suffix still is not shown twice.
        prefix_still_time: Source time captured for the prefix still.
        suffix_still_time: Source time captured for the suffix still.
        audio_prefix: Audio before the chapter.
        audio_suffix: Audio after the chapter.
    """

    chapter: TimeRange
    timing: HandleTiming
    video_end: float
    prefix_still_time: float
    suffix_still_time: float
    audio_prefix: AudioSegment
    audio_suffix: AudioSegment

    @property
    def metadata_start(self) -> float:
        """Chapter start in the output, right after the prefix handle."""
        return self.timing.handle_duration

    @property
    def metadata_end(self) -> float:
        return self.metadata_start + self.chapter.duration


def plan_splice(
    chapter: TimeRange,
    timing: HandleTiming,
    total_duration: float,
) -> SplicePlan:
    """Compute the still times and handle segments for a chapter.

    The audio prefix is silence when the chapter starts within one handle of
    the file start; the audio suffix is silence when the chapter ends within
    one frame of the file end. Otherwise both are taken from the
    neighbouring source audio.
    """
    start = max(0.0, chapter.start)
    end = max(start, chapter.end)
    handle = timing.handle_duration
    frame = timing.frame_duration
    video_end = max(start, end - frame)

    if start < handle:
        audio_prefix = AudioSegment()
    else:
        audio_prefix = AudioSegment(TimeRange(max(0.0, start - handle), start))

    if end > total_duration - frame:
        audio_suffix = AudioSegment()
    else:
        audio_suffix = AudioSegment(
            TimeRange(end, min(total_duration, end + handle))
        )

    return SplicePlan(
        chapter=TimeRange(start, end),
        timing=timing,
        video_end=video_end,
        prefix_still_time=start,
        suffix_still_time=video_end,
        audio_prefix=audio_prefix,
        audio_suffix=audio_suffix,
    )


def _held_still(timing: HandleTiming) -> list[Filter]:
    return [
        Filter.of("loop", loop=timing.loop_count, size=1, start=0),
        Filter.of("setpts", expr="PTS-STARTPTS"),
    ]


def _scale(resolution: tuple[int, int] | None) -> list[Filter]:
    if resolution is None:
        return []
    width, height = resolution
    return [Filter.of("scale", w=width, h=height), Filter.of("setsar", r=1)]


def _audio_handle(
    segment: AudioSegment,
    timing: HandleTiming,
    audio: AudioFormat,
) -> tuple[list[str], list[Filter]]:
    if segment.trim is None:
        return [], [
            Filter.of(
                "anullsrc", r=audio.sample_rate, cl=audio.channel_layout
            ),
            Filter.of("atrim", duration=timing.handle_duration),
            Filter.of("asetpts", expr="PTS-STARTPTS"),
        ]
    return [f"{SOURCE_INPUT}:a"], [
        Filter.of("atrim", start=segment.trim.start, end=segment.trim.end),
        Filter.of("asetpts", expr="PTS-STARTPTS"),
    ]


def build_splice_graph(
    plan: SplicePlan,
    frame_rate_text: str,
    audio: AudioFormat | None = None,
    resolution: tuple[int, int] | None = None,
) -> FilterGraph:
    """Build the prefix/main/suffix splice graph for a chapter.

    Args:
        plan: Times computed by :func:`plan_splice`.
        frame_rate_text: Source frame rate as an exact ``n/d`` string; the
            concatenated video is re-stamped at this rate.
        audio: Source audio format, or None to omit the audio branch.
        resolution: Optional output size applied to every video segment.

    Returns:
        A graph producing ``[out_v]`` and, with audio, ``[out_a]``.
    """
    timing = plan.timing
    graph = FilterGraph()
    scale = _scale(resolution)

    video_pads = [
        graph.add(
            [f"{PREFIX_STILL_INPUT}:v"],
            _held_still(timing) + scale,
            "pre_v",
        ),
        graph.add(
            [f"{SOURCE_INPUT}:v"],
            [
                Filter.of("trim", start=plan.chapter.start, end=plan.video_end),
                Filter.of("setpts", expr="PTS-STARTPTS"),
            ] + scale,
            "main_v",
        ),
        graph.add(
            [f"{SUFFIX_STILL_INPUT}:v"],
            _held_still(timing) + scale,
            "suf_v",
        ),
    ]

    if audio is not None:
        pre_inputs, pre_filters = _audio_handle(plan.audio_prefix, timing, audio)
        suf_inputs, suf_filters = _audio_handle(plan.audio_suffix, timing, audio)
        audio_pads = [
            graph.add(pre_inputs, pre_filters, "pre_a"),
            graph.add(
                [f"{SOURCE_INPUT}:a"],
                [
                    Filter.of("atrim", start=plan.chapter.start, end=plan.chapter.end),
                    Filter.of("asetpts", expr="PTS-STARTPTS"),
                ],
                "main_a",
            ),
            graph.add(suf_inputs, suf_filters, "suf_a"),
        ]
        graph.add(
            audio_pads,
            [Filter.of("concat", n=len(audio_pads), v=0, a=1)],
            AUDIO_OUT,
        )

    graph.add(
        video_pads,
        [
            Filter.of("concat", n=len(video_pads), v=1, a=0),
            Filter.of("fps", fps=frame_rate_text),
        ],
        VIDEO_OUT,
    )
    return graph


def _escape_metadata(value: str) -> str:
    for char in ("\\", "=", ";", "#", "\n"):
        value = value.replace(char, "\\" + char)
    return value


def build_chapter_metadata(title: str, plan: SplicePlan) -> str:
    """Render an FFMETADATA1 document holding the clip's single chapter.

    The chapter begins where the prefix handle ends and lasts exactly as long
    as the source chapter, in a microsecond timebase.
    """
    start = round(plan.metadata_start * METADATA_TIMEBASE)
    end = round(plan.metadata_end * METADATA_TIMEBASE)
    return (
        ";FFMETADATA1\n"
        "[CHAPTER]\n"
        f"TIMEBASE=1/{METADATA_TIMEBASE}\n"
        f"START={start}\n"
        f"END={end}\n"
        f"title={_escape_metadata(title)}\n"
    )
