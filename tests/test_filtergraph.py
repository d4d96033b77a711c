"""Tests for the filtergraph module."""

from fractions import Fraction

import pytest

from chapterclip.filtergraph import (
    AUDIO_OUT,
    VIDEO_OUT,
    Filter,
    FilterGraph,
    build_chapter_metadata,
    build_splice_graph,
    format_number,
    plan_splice,
)
from chapterclip.models import AudioFormat, TimeRange
from chapterclip.timing import HandleTiming

TIMING_30 = HandleTiming(Fraction(30))
STEREO = AudioFormat("48000", "stereo")


class TestFormatNumber:
    """Tests for option value rendering."""

    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            (5, "5"),
            (5.0, "5"),
            (0.5, "0.5"),
            (1 / 3, "0.333333"),
            (Fraction(30000, 1001), "30000/1001"),
            (Fraction(30), "30"),
        ],
    )
    def test_rendering(self, value: float, expected: str) -> None:
        """Test numbers render compactly."""
        assert format_number(value) == expected


class TestFilterGraph:
    """Tests for the typed graph records."""

    def test_filter_rendering(self) -> None:
        """Test a filter with options renders as name=k=v:k=v."""
        assert str(Filter.of("trim", start=1.5, end=3)) == "trim=start=1.5:end=3"
        assert str(Filter("null")) == "null"

    def test_graph_serialization(self) -> None:
        """Test chains join with semicolons and pads are bracketed."""
        graph = FilterGraph()
        graph.add(["0:v"], [Filter("null")], "a")
        graph.add(["a", "1:v"], [Filter.of("concat", n=2)], "out")
        assert str(graph) == "[0:v]null[a];[a][1:v]concat=n=2[out]"
        assert graph.outputs == ["a", "out"]

    def test_chain_for_unknown_output(self) -> None:
        """Test looking up a missing pad raises KeyError."""
        with pytest.raises(KeyError):
            FilterGraph().chain_for("nope")


class TestPlanSplice:
    """Tests for splice timing."""

    def test_first_chapter_in_file_gets_silent_prefix(self) -> None:
        """Test chapter [0,5) of a 10 s file: silence before, audio after."""
        plan = plan_splice(TimeRange(0.0, 5.0), TIMING_30, 10.0)
        assert plan.audio_prefix.is_silence
        assert not plan.audio_suffix.is_silence
        assert plan.audio_suffix.trim is not None
        assert plan.audio_suffix.trim.start == 5.0
        assert plan.audio_suffix.trim.end == pytest.approx(5 + 1 / 3)
        assert plan.video_end == pytest.approx(5 - 1 / 30)
        assert plan.prefix_still_time == 0.0
        assert plan.suffix_still_time == pytest.approx(5 - 1 / 30)

    def test_second_chapter_gets_real_prefix_and_silent_suffix(self) -> None:
        """Test chapter [5,10): audio prefix [4.667, 5), silence after."""
        plan = plan_splice(TimeRange(5.0, 10.0), TIMING_30, 10.0)
        assert plan.audio_prefix.trim is not None
        assert plan.audio_prefix.trim.start == pytest.approx(4.6667, abs=1e-4)
        assert plan.audio_prefix.trim.end == 5.0
        assert plan.audio_suffix.is_silence

    def test_suffix_clamped_to_file_duration(self) -> None:
        """Test the audio suffix stops at the end of the file."""
        plan = plan_splice(TimeRange(0.0, 9.9), TIMING_30, 10.0)
        assert plan.audio_suffix.trim is not None
        assert plan.audio_suffix.trim.end == 10.0

    def test_empty_range_never_inverts(self) -> None:
        """Test a zero-length chapter keeps the trim end at its start."""
        plan = plan_splice(TimeRange(4.0, 4.0), TIMING_30, 10.0)
        assert plan.video_end == 4.0
        assert plan.suffix_still_time == 4.0

    def test_metadata_window(self) -> None:
        """Test the output chapter starts after the prefix handle."""
        plan = plan_splice(TimeRange(5.0, 10.0), TIMING_30, 10.0)
        assert plan.metadata_start == pytest.approx(1 / 3)
        assert plan.metadata_end == pytest.approx(1 / 3 + 5)


class TestBuildSpliceGraph:
    """Tests for graph construction."""

    def test_video_segments(self) -> None:
        """Test stills are held for the handle and the main trim is one frame short."""
        plan = plan_splice(TimeRange(0.0, 5.0), TIMING_30, 10.0)
        graph = build_splice_graph(plan, "30/1", STEREO)
        text = str(graph)

        assert "[1:v]loop=loop=9:size=1:start=0,setpts=expr=PTS-STARTPTS[pre_v]" in text
        assert "[0:v]trim=start=0:end=4.966667,setpts=expr=PTS-STARTPTS[main_v]" in text
        assert "[2:v]loop=loop=9:size=1:start=0,setpts=expr=PTS-STARTPTS[suf_v]" in text
        assert text.endswith(
            "[pre_v][main_v][suf_v]concat=n=3:v=1:a=0,fps=fps=30/1[out_v]"
        )

    def test_audio_silence_and_trims(self) -> None:
        """Test first-in-file prefix is silence and the suffix is a trim."""
        plan = plan_splice(TimeRange(0.0, 5.0), TIMING_30, 10.0)
        graph = build_splice_graph(plan, "30/1", STEREO)

        pre = graph.chain_for("pre_a")
        assert pre.inputs == ()
        assert str(pre).startswith("anullsrc=r=48000:cl=stereo,atrim=duration=0.333333")
        assert str(graph.chain_for("main_a")) == (
            "[0:a]atrim=start=0:end=5,asetpts=expr=PTS-STARTPTS[main_a]"
        )
        assert str(graph.chain_for("suf_a")) == (
            "[0:a]atrim=start=5:end=5.333333,asetpts=expr=PTS-STARTPTS[suf_a]"
        )
        assert str(graph.chain_for(AUDIO_OUT)) == (
            "[pre_a][main_a][suf_a]concat=n=3:v=0:a=1[out_a]"
        )

    def test_real_prefix_for_later_chapter(self) -> None:
        """Test a later chapter takes its prefix from the source audio."""
        plan = plan_splice(TimeRange(5.0, 10.0), TIMING_30, 10.0)
        graph = build_splice_graph(plan, "30/1", AudioFormat("44100", "mono"))
        assert str(graph.chain_for("pre_a")) == (
            "[0:a]atrim=start=4.666667:end=5,asetpts=expr=PTS-STARTPTS[pre_a]"
        )
        assert str(graph.chain_for("suf_a")).startswith("anullsrc=r=44100:cl=mono")

    def test_no_audio_branch_without_audio(self) -> None:
        """Test the audio chains are omitted for silent sources."""
        plan = plan_splice(TimeRange(0.0, 5.0), TIMING_30, 10.0)
        graph = build_splice_graph(plan, "30/1", None)
        assert AUDIO_OUT not in graph.outputs
        assert "[0:a]" not in str(graph)
        assert graph.outputs[-1] == VIDEO_OUT

    def test_ntsc_rate_kept_exact(self) -> None:
        """Test the output is re-stamped with the exact rational rate."""
        timing = HandleTiming(Fraction(30000, 1001))
        plan = plan_splice(TimeRange(0.0, 5.0), timing, 10.0)
        graph = build_splice_graph(plan, "30000/1001")
        assert str(graph.chain_for(VIDEO_OUT)).endswith("fps=fps=30000/1001[out_v]")

    def test_resolution_scales_every_video_segment(self) -> None:
        """Test a configured size is applied to all three segments."""
        plan = plan_splice(TimeRange(0.0, 5.0), TIMING_30, 10.0)
        graph = build_splice_graph(plan, "30/1", None, resolution=(1280, 720))
        for pad in ("pre_v", "main_v", "suf_v"):
            assert "scale=w=1280:h=720" in str(graph.chain_for(pad))


class TestBuildChapterMetadata:
    """Tests for the single-chapter metadata document."""

    def test_document(self) -> None:
        """Test timebase, window and title."""
        plan = plan_splice(TimeRange(5.0, 10.0), TIMING_30, 10.0)
        text = build_chapter_metadata("Shot_B-v001", plan)
        assert text == (
            ";FFMETADATA1\n"
            "[CHAPTER]\n"
            "TIMEBASE=1/1000000\n"
            "START=333333\n"
            "END=5333333\n"
            "title=Shot_B-v001\n"
        )

    def test_title_escaping(self) -> None:
        """Test metadata special characters are escaped."""
        plan = plan_splice(TimeRange(0.0, 1.0), TIMING_30, 10.0)
        text = build_chapter_metadata("a=b;c#d\\e", plan)
        assert r"title=a\=b\;c\#d\\e" + "\n" in text
