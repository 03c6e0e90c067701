"""Tests for the .osu beatmap reader."""

import io
from pathlib import Path

import orjson
import pytest

from beatmapkit.osu.beatmap import (
    Background,
    Beatmap,
    Break,
    Countdown,
    CurveType,
    EdgeSet,
    Effects,
    GameMode,
    HitCircle,
    HitSound,
    ManiaHold,
    MAX_COMBO_COLOURS,
    OverlayPosition,
    SampleSet,
    Slider,
    Spinner,
    Video,
)
from beatmapkit.osu.errors import (
    BeatmapError,
    EmptyBeatmap,
    InvalidHitObjectPayload,
    InvalidKeyValueLine,
    InvalidRecordLine,
    MalformedHeader,
    UnknownSection,
    UnsupportedVersion,
)

FIXTURES = Path(__file__).parent / "fixtures"
HEADER = "osu file format v14\n\n"


def parse(body: str) -> Beatmap:
    return Beatmap.from_data(HEADER + body)


def parse_hit_object(line: str):
    bmap = parse(f"[HitObjects]\n{line}\n")
    assert len(bmap.hit_objects) == 1
    return bmap.hit_objects[0]


class TestHeader:
    def test_header_only_fails(self):
        with pytest.raises(EmptyBeatmap):
            Beatmap.from_data("osu file format v14")

    def test_header_with_blank_lines_only_fails(self):
        with pytest.raises(EmptyBeatmap):
            Beatmap.from_data("osu file format v14\n\n\n")

    def test_empty_beatmap_is_a_malformed_header(self):
        with pytest.raises(MalformedHeader):
            Beatmap.from_data("osu file format v14")

    def test_unsupported_version(self):
        with pytest.raises(UnsupportedVersion) as excinfo:
            Beatmap.from_data("osu file format v9\n\n[General]\nAudioFilename: a.mp3\n")
        assert excinfo.value.version == "9"

    def test_unsupported_version_without_body(self):
        with pytest.raises(UnsupportedVersion):
            Beatmap.from_data("osu file format v9")

    def test_bad_prefix(self):
        with pytest.raises(MalformedHeader):
            Beatmap.from_data("osu file format 14\n[General]\n")

    def test_garbage(self):
        with pytest.raises(MalformedHeader):
            Beatmap.from_data("")

    def test_version_too_long(self):
        with pytest.raises(MalformedHeader):
            Beatmap.from_data("osu file format v" + "1" * 20 + "\n[General]\n")

    def test_utf8_bom_is_skipped(self):
        bmap = Beatmap.from_data("\ufeff" + HEADER + "[General]\nMode: 1\n")
        assert bmap.file_version == 14
        assert bmap.general.mode is GameMode.TAIKO

    def test_bytes_input(self):
        bmap = Beatmap.from_data((HEADER + "[Metadata]\nTitle:abc\n").encode())
        assert bmap.metadata.title == "abc"

    def test_crlf_line_endings(self):
        data = "osu file format v14\r\n\r\n[Difficulty]\r\nCircleSize:4\r\nApproachRate:9.5\r\n"
        bmap = Beatmap.from_data(data)
        assert bmap.difficulty.circle_size == 4.0
        assert bmap.difficulty.approach_rate == 9.5


class TestSections:
    def test_unknown_section(self):
        with pytest.raises(UnknownSection):
            parse("[Storyboard]\n")

    def test_header_must_match_exactly(self):
        with pytest.raises(UnknownSection):
            parse("[General]x\n")

    def test_header_trailing_blanks_allowed(self):
        bmap = parse("[General]  \nMode: 3\n")
        assert bmap.general.mode is GameMode.MANIA

    def test_content_before_section(self):
        with pytest.raises(UnknownSection):
            parse("AudioFilename: a.mp3\n")

    def test_comments_and_blank_lines_ignored(self):
        bmap = parse("// a comment\n[General]\n\n   \n// another\nMode: 2\n")
        assert bmap.general.mode is GameMode.CATCH

    def test_error_carries_line_number(self):
        with pytest.raises(InvalidKeyValueLine) as excinfo:
            parse("[General]\nMode: 0\nNope: 1\n")
        assert excinfo.value.line_num == 5

    def test_deterministic(self):
        data = (FIXTURES / "sample.osu").read_text(encoding="utf-8")
        a = Beatmap.from_data(data)
        b = Beatmap.from_data(data)
        assert a.as_dict() == b.as_dict()


class TestGeneral:
    def test_fields(self):
        bmap = parse(
            "[General]\n"
            "AudioFilename: my song.mp3  \n"
            "AudioLeadIn: -500\n"
            "Countdown: 2\n"
            "SampleSet: Drum\n"
            "StackLeniency: 0.5\n"
            "OverlayPosition: Above\n"
            "EpilepsyWarning: 1\n"
            "CountdownOffset: 3\n"
            "SamplesMatchPlaybackRate: 1\n"
        )
        g = bmap.general
        assert g.audio_filename == "my song.mp3"
        assert g.audio_leadin == -500
        assert g.countdown is Countdown.HALF
        assert g.sample_set is SampleSet.DRUM
        assert g.stack_leniency == 0.5
        assert g.overlay_position is OverlayPosition.ABOVE
        assert g.epilepsy_warning is True
        assert g.countdown_offset == 3
        assert g.samples_match_playback_rate is True
        assert g.preview_time is None

    def test_duplicate_key_last_wins(self):
        bmap = parse("[General]\nMode: 1\nMode: 3\n")
        assert bmap.general.mode is GameMode.MANIA

    @pytest.mark.parametrize("line", [
        "Mode: 4",
        "Countdown: -1",
        "SampleSet: Loud",
        "LetterboxInBreaks: yes",
        "AudioLeadIn: 1.5",
        "StackLeniency: abc",
        "Mode:1",  # prefix includes the space
        "mode: 1",
    ])
    def test_invalid_lines(self, line):
        with pytest.raises(InvalidKeyValueLine):
            parse(f"[General]\n{line}\n")


class TestEditor:
    def test_bookmarks(self):
        bmap = parse("[Editor]\nBookmarks: 100,200,300\n")
        assert bmap.editor.bookmarks == [100, 200, 300]

    def test_empty_bookmarks(self):
        bmap = parse("[Editor]\nBookmarks: \n")
        assert bmap.editor.bookmarks == []

    def test_bookmarks_empty_element(self):
        with pytest.raises(InvalidKeyValueLine):
            parse("[Editor]\nBookmarks: 100,,300\n")

    def test_decimals(self):
        bmap = parse("[Editor]\nDistanceSpacing: 0.8\nBeatDivisor: 4\nGridSize: 16\n")
        assert bmap.editor.distance_spacing == 0.8
        assert bmap.editor.beat_divisor == 4.0
        assert bmap.editor.grid_size == 16


class TestMetadata:
    def test_tags(self):
        bmap = parse("[Metadata]\nTags: foo bar baz\n")
        assert bmap.metadata.tags == ["foo", "bar", "baz"]

    def test_tags_consecutive_spaces(self):
        bmap = parse("[Metadata]\nTags:foo   bar \n")
        assert bmap.metadata.tags == ["foo", "bar"]

    def test_empty_tags(self):
        bmap = parse("[Metadata]\nTags:\n")
        assert bmap.metadata.tags == []

    def test_strings_and_ids(self):
        bmap = parse(
            "[Metadata]\nTitle:Hello\nTitleUnicode:こんにちは\n"
            "BeatmapID:75\nBeatmapSetID:-1\n"
        )
        assert bmap.metadata.title == "Hello"
        assert bmap.metadata.title_unicode == "こんにちは"
        assert bmap.metadata.beatmap_id == 75
        assert bmap.metadata.beatmap_set_id == -1

    def test_bad_id(self):
        with pytest.raises(InvalidKeyValueLine):
            parse("[Metadata]\nBeatmapID:abc\n")


class TestColours:
    def test_combos(self):
        bmap = parse("[Colours]\nCombo1 : 255,0,0\nCombo2 : 0,255,0\n")
        assert bmap.colours.combos[0] == (255, 0, 0)
        assert bmap.colours.combos[1] == (0, 255, 0)
        assert bmap.colours.combos[2] is None

    def test_named_colours(self):
        bmap = parse("[Colours]\nSliderBorder : 1,2,3\nSliderTrackOverride : 4,5,6\n")
        assert bmap.colours.slider_border == (1, 2, 3)
        assert bmap.colours.slider_track_override.b == 6

    @pytest.mark.parametrize("line", [
        "Combo0 : 255,0,0",
        f"Combo{MAX_COMBO_COLOURS + 1} : 255,0,0",
        "Combo : 255,0,0",
        "Combo1: 255,0,0",
        "Combo1 : 256,0,0",
        "Combo1 : 255,0",
        "Combo1 : a,b,c",
        "Unknown : 1,2,3",
    ])
    def test_invalid(self, line):
        with pytest.raises(InvalidKeyValueLine):
            parse(f"[Colours]\n{line}\n")

    def test_last_slot(self):
        bmap = parse(f"[Colours]\nCombo{MAX_COMBO_COLOURS} : 1,1,1\n")
        assert bmap.colours.combos[-1] == (1, 1, 1)


class TestEvents:
    def test_background_video_break(self):
        bmap = parse(
            "[Events]\n"
            '0,0,"bg, with comma.jpg",10,-20\n'
            "1,500,video.avi\n"
            "Break,1000,2000\n"
        )
        bg, video, brk = bmap.events
        assert isinstance(bg, Background)
        assert bg.filename == "bg, with comma.jpg"
        assert (bg.x_offset, bg.y_offset) == (10, -20)
        assert isinstance(video, Video)
        assert video.start_time == 500
        assert video.filename == "video.avi"
        assert (video.x_offset, video.y_offset) == (0, 0)
        assert isinstance(brk, Break)
        assert (brk.start_time, brk.end_time) == (1000, 2000)

    def test_malformed_rows_are_skipped(self):
        bmap = parse(
            "[Events]\n"
            "Sprite,Foreground,Centre,\"a.png\",320,240\n"
            " M,0,100,200,0,0\n"
            "2,abc,2000\n"
            "2,100,200,300\n"
            '0,0,"bg.jpg",5\n'
            "2,100,200\n"
            "[HitObjects]\n"
            "256,192,350,1,0,0:0:0:0:\n"
        )
        assert len(bmap.events) == 1
        assert bmap.breaks[0].end_time == 200
        assert len(bmap.hit_objects) == 1

    def test_event_views(self):
        bmap = Beatmap.from_file(FIXTURES / "sample.osu")
        assert [b.filename for b in bmap.backgrounds] == ["bg.jpg"]
        assert [v.filename for v in bmap.videos] == ["intro video.mp4"]
        assert bmap.videos[0].start_time == -200
        assert len(bmap.breaks) == 1


class TestTimingPoints:
    def test_uninherited(self):
        bmap = parse("[TimingPoints]\n500,333.33,4,2,1,60,1,0\n")
        tp = bmap.timing_points[0]
        assert tp.time == 500
        assert tp.beat_length == pytest.approx(333.33)
        assert tp.meter == 4
        assert tp.sample_set is SampleSet.SOFT
        assert tp.sample_index == 1
        assert tp.volume == 60
        assert tp.uninherited is True
        assert tp.effects == Effects.NONE
        assert tp.bpm == pytest.approx(180.0, rel=1e-4)

    def test_inherited_with_kiai(self):
        bmap = parse("[TimingPoints]\n1000,-50,4,0,0,100,0,1\n")
        tp = bmap.timing_points[0]
        assert tp.beat_length == -50.0
        assert tp.uninherited is False
        assert tp.effects & Effects.KIAI

    @pytest.mark.parametrize("line", [
        "500,333.33,4,2,1,60,1",
        "500,333.33,4,2,1,60,1,0,9",
        "500,333.33,4,2,1,60,1,",
        "500,333.33,4,7,1,60,1,0",
        "500,333.33,4,2,1,60,2,0",
        "500,333.33,4,2,1,60,1,256",
        "abc,333.33,4,2,1,60,1,0",
    ])
    def test_malformed_rows_fail(self, line):
        with pytest.raises(InvalidRecordLine):
            parse(f"[TimingPoints]\n{line}\n")


class TestHitObjects:
    def test_circle(self):
        obj = parse_hit_object("256,192,350,1,0,0:0:0:0:")
        assert isinstance(obj, HitCircle)
        assert (obj.x, obj.y, obj.time) == (256, 192, 350)
        assert obj.hit_sound == HitSound(0)
        assert obj.hit_sample.is_default
        assert obj.hit_sample.filename == ""

    def test_slider(self):
        obj = parse_hit_object("100,100,1000,2,0,B|100:100|200:50,1,150.0,0|0,0:0|0:0,0:0:0:0:")
        assert isinstance(obj, Slider)
        assert obj.curve_type is CurveType.Bezier
        assert obj.curve_points == [(100, 100), (200, 50)]
        assert obj.slides == 1
        assert obj.length == 150.0
        assert len(obj.edge_sounds) == 2
        assert obj.edge_sets == [EdgeSet(0, 0), EdgeSet(0, 0)]

    @pytest.mark.parametrize("letter, curve_type", [
        ("B", CurveType.Bezier),
        ("C", CurveType.CentripetalCatmullRom),
        ("L", CurveType.Linear),
        ("P", CurveType.PerfectCircle),
    ])
    def test_slider_curve_types(self, letter, curve_type):
        obj = parse_hit_object(f"0,0,0,2,0,{letter}|-10:20,1,10,0,0:0,0:0:0:0:")
        assert obj.curve_type is curve_type
        assert obj.curve_points == [(-10, 20)]

    def test_slider_edges(self):
        obj = parse_hit_object("0,0,0,6,2,L|50:50,3,70.5,2|0|8|4,1:2|0:0|2:0|3:1,1:2:3:40:clap.wav")
        assert obj.new_combo
        assert obj.slides == 3
        assert obj.edge_sounds == [HitSound.WHISTLE, HitSound(0), HitSound.CLAP, HitSound.FINISH]
        assert obj.edge_sets[3] == EdgeSet(3, 1)
        assert obj.hit_sample.normal_set is SampleSet.NORMAL
        assert obj.hit_sample.addition_set is SampleSet.SOFT
        assert obj.hit_sample.index == 3
        assert obj.hit_sample.volume == 40
        assert obj.hit_sample.filename == "clap.wav"

    def test_spinner(self):
        obj = parse_hit_object("256,192,1000,12,0,3000,0:0:0:0:")
        assert isinstance(obj, Spinner)
        assert obj.end_time == 3000
        assert obj.new_combo

    def test_mania_hold(self):
        obj = parse_hit_object("64,192,1000,128,0,1500:0:0:0:0:")
        assert isinstance(obj, ManiaHold)
        assert obj.end_time == 1500

    def test_spinner_and_hold_terminators_differ(self):
        with pytest.raises(InvalidHitObjectPayload):
            parse_hit_object("256,192,1000,8,0,3000:0:0:0:0:")
        with pytest.raises(InvalidHitObjectPayload):
            parse_hit_object("64,192,1000,128,0,1500,0:0:0:0:")

    def test_quoted_sample_filename(self):
        obj = parse_hit_object('0,0,0,1,0,0:0:0:0:"with, comma.wav"  ')
        assert obj.hit_sample.filename == "with, comma.wav"

    def test_unterminated_quote(self):
        with pytest.raises(InvalidHitObjectPayload):
            parse_hit_object('0,0,0,1,0,0:0:0:0:"broken.wav')

    def test_combo_skip(self):
        obj = parse_hit_object("0,0,0,53,0,0:0:0:0:")  # 1 | 4 | 16 | 32
        assert obj.new_combo
        assert obj.combo_skip == 3

    @pytest.mark.parametrize("type_", [0, 4, 3, 9, 130, 11])
    def test_type_must_have_exactly_one_kind(self, type_):
        with pytest.raises(InvalidHitObjectPayload):
            parse_hit_object(f"0,0,0,{type_},0,0:0:0:0:")

    @pytest.mark.parametrize("line", [
        "0,0,0,2,0,X|1:1,1,10,0,0:0,0:0:0:0:",
        "0,0,0,2,0,B1:1,1,10,0,0:0,0:0:0:0:",
        "0,0,0,2,0,B|1:1,1,abc,0,0:0,0:0:0:0:",
        "0,0,0,2,0,B|1:1,1,10,0,0:0",
        "0,0,0,2,0,B|1,1,10,0,0:0,0:0:0:0:",
        "0,0,0,2,0,B|1:1,1,10,0|,0:0,0:0:0:0:",
        "0,0,0,1,0,4:0:0:0:",
        "0,0,0,1,0,0:0:0:",
    ])
    def test_bad_payloads(self, line):
        with pytest.raises(InvalidHitObjectPayload):
            parse_hit_object(line)

    @pytest.mark.parametrize("line", [
        "0,0,0,1,0",
        "x,0,0,1,0,0:0:0:0:",
        "0,0,0,256,0,0:0:0:0:",
        "0,0",
    ])
    def test_bad_fixed_fields(self, line):
        with pytest.raises(InvalidRecordLine):
            parse_hit_object(line)

    def test_bad_row_fails_whole_parse(self):
        with pytest.raises(BeatmapError):
            parse("[HitObjects]\n256,192,350,1,0,0:0:0:0:\nnot a hit object\n")


class TestSampleFile:
    def test_from_file(self):
        bmap = Beatmap.from_file(FIXTURES / "sample.osu")
        assert bmap.file_version == 14
        assert repr(bmap) == "Test Artist - Test Song (mapper) [Insane]"

        assert bmap.general.audio_filename == "audio.mp3"
        assert bmap.general.sample_set is SampleSet.SOFT
        assert bmap.general.widescreen_storyboard is True
        assert bmap.editor.bookmarks == [1000, 2000, 3000]
        assert bmap.metadata.title_unicode == "テストソング"
        assert bmap.metadata.source == ""
        assert bmap.metadata.tags == ["test", "sample", "tags"]
        assert bmap.difficulty.overall_difficulty == 8.5
        assert bmap.colours.combos[:3] == [(255, 128, 0), (0, 202, 0), (18, 124, 255)]
        assert bmap.colours.slider_border == (255, 255, 255)

        assert len(bmap.events) == 3
        assert len(bmap.timing_points) == 2
        kinds = [type(obj) for obj in bmap.hit_objects]
        assert kinds == [HitCircle, Slider, Spinner, ManiaHold, HitCircle]
        assert bmap.hit_objects[-1].hit_sample.filename == "soft-hitclap 2.wav"

    def test_missing_file(self, tmp_path):
        assert Beatmap.from_file(tmp_path / "nope.osu") is None

    def test_stream_matches_buffer(self):
        path = FIXTURES / "sample.osu"
        from_buffer = Beatmap.from_data(path.read_bytes())
        with open(path, encoding="utf-8") as f:
            from_text_stream = Beatmap.from_stream(f)
        with open(path, "rb") as f:
            from_binary_stream = Beatmap.from_stream(f)
        assert from_buffer.as_dict() == from_text_stream.as_dict()
        assert from_buffer.as_dict() == from_binary_stream.as_dict()

    def test_as_json(self):
        bmap = Beatmap.from_file(FIXTURES / "sample.osu")
        data = orjson.loads(bmap.as_json())
        assert data["metadata"]["title"] == "Test Song"
        assert data["hit_objects"][1]["kind"] == "Slider"
        assert data["hit_objects"][1]["curve_points"] == [[200, 100], [300, 150]]
        assert data["events"][2] == {"kind": "Break", "start_time": 12000, "end_time": 15000}


class TestStream:
    def test_crlf_binary_stream(self):
        data = b"osu file format v14\r\n\r\n[General]\r\nMode: 1\r\n[Foo]\r\n"
        with pytest.raises(UnknownSection) as excinfo:
            Beatmap.from_stream(io.BytesIO(data))
        assert excinfo.value.line_num == 5

    def test_bom(self):
        data = b"\xef\xbb\xbfosu file format v14\n[General]\nMode: 1\n"
        bmap = Beatmap.from_stream(io.BytesIO(data))
        assert bmap.general.mode is GameMode.TAIKO

    def test_header_only(self):
        with pytest.raises(EmptyBeatmap):
            Beatmap.from_stream(io.StringIO("osu file format v14"))

    def test_unsupported_version(self):
        with pytest.raises(UnsupportedVersion):
            Beatmap.from_stream(io.StringIO("osu file format v12\n[General]\n"))

    def test_bad_prefix(self):
        with pytest.raises(MalformedHeader):
            Beatmap.from_stream(io.StringIO("osu file"))

    def test_row_errors_are_not_ignored(self):
        with pytest.raises(InvalidRecordLine):
            Beatmap.from_stream(io.StringIO(HEADER + "[TimingPoints]\n1,2,3\n"))

    def test_events_errors_are_ignored(self):
        bmap = Beatmap.from_stream(io.StringIO(HEADER + "[Events]\nAnimation,Foo\n2,1,2\n"))
        assert len(bmap.events) == 1
