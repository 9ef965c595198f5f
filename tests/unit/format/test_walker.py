"""Tests for the CAF chunk walk and metadata scan."""

import io
import logging
import struct
from pathlib import Path

import mido
import numpy as np
import pytest

from cafmeta.format import walker
from cafmeta.format.caf import INFO_STRINGS_UUID, ByteCursor, ChunkType
from cafmeta.format.layouts import LayoutTag
from cafmeta.format.types import ChannelLayout
from cafmeta.format.walker import (
    iter_chunks,
    read_audio_description,
    read_container_layout,
    scan_metadata,
    scan_metadata_file,
)
from cafmeta.format.writer import build_caf, pack_chunk, pack_string_table

FILE_HEADER = b"caff" + struct.pack(">HH", 1, 0)


def make_midi(*messages: mido.MetaMessage) -> bytes:
    midi_file = mido.MidiFile(ticks_per_beat=480)
    track = mido.MidiTrack()
    track.extend(messages)
    midi_file.tracks.append(track)
    buffer = io.BytesIO()
    midi_file.save(file=buffer)
    return buffer.getvalue()


def info_chunk(entries: dict[str, str]) -> bytes:
    return pack_chunk(b"info", pack_string_table(entries))


class TestIterChunks:
    """Tests for chunk header iteration."""

    def test_visits_every_chunk(self) -> None:
        data = build_caf(np.zeros((1, 4)), 44100, info={"a": "b"})
        cursor = ByteCursor.from_bytes(data)
        cursor.position = 8

        names = [header.name for header in iter_chunks(cursor)]

        assert names == ["desc", "info", "data"]
        assert cursor.is_exhausted()

    def test_moves_to_chunk_end_even_if_consumer_reads(self) -> None:
        data = FILE_HEADER + info_chunk({"k": "v"}) + pack_chunk(b"free", b"\x00" * 8)
        cursor = ByteCursor.from_bytes(data)
        cursor.position = 8

        names = []
        for header in iter_chunks(cursor):
            cursor.read_bytes(2)
            names.append(header.name)

        assert names == ["info", "free"]

    def test_sentinel_data_chunk_is_last(self) -> None:
        data = FILE_HEADER + pack_chunk(b"data", b"\x00" * 16, size=-1) + info_chunk({"a": "b"})
        cursor = ByteCursor.from_bytes(data)
        cursor.position = 8

        headers = list(iter_chunks(cursor))

        assert [h.name for h in headers] == ["data"]
        assert headers[0].size == -1

    def test_invalid_negative_size_stops(self, caplog: pytest.LogCaptureFixture) -> None:
        data = FILE_HEADER + pack_chunk(b"info", b"", size=-5) + info_chunk({"a": "b"})
        cursor = ByteCursor.from_bytes(data)
        cursor.position = 8

        with caplog.at_level(logging.WARNING, logger="cafmeta.format.walker"):
            headers = list(iter_chunks(cursor))

        assert headers == []
        assert "invalid size" in caplog.text

    def test_partial_trailing_header_ignored(self) -> None:
        data = FILE_HEADER + info_chunk({"a": "b"}) + b"inf"
        cursor = ByteCursor.from_bytes(data)
        cursor.position = 8

        assert [h.name for h in iter_chunks(cursor)] == ["info"]


class TestScanMetadata:
    """Tests for scan_metadata."""

    def test_not_caf(self) -> None:
        stream = io.BytesIO(b"RIFF\x24\x00\x00\x00WAVEfmt ")

        is_caf, metadata = scan_metadata(stream)

        assert not is_caf
        assert dict(metadata) == {}
        assert stream.tell() == 0

    def test_empty_stream(self) -> None:
        is_caf, metadata = scan_metadata(io.BytesIO(b""))
        assert not is_caf
        assert len(metadata) == 0

    def test_header_only(self) -> None:
        is_caf, metadata = scan_metadata(io.BytesIO(FILE_HEADER))
        assert is_caf
        assert len(metadata) == 0

    def test_info_chunk(self) -> None:
        data = build_caf(np.zeros((2, 8)), 48000, info={"title": "Loop", "artist": "Band"})

        is_caf, metadata = scan_metadata(io.BytesIO(data))

        assert is_caf
        assert dict(metadata) == {"title": "Loop", "artist": "Band"}

    def test_user_defined_chunk_with_info_uuid(self) -> None:
        data = build_caf(np.zeros((1, 8)), 48000, user_strings={"source": "recorder"})

        _, metadata = scan_metadata(io.BytesIO(data))

        assert metadata["source"] == "recorder"

    def test_user_defined_chunk_with_other_uuid(self) -> None:
        payload = b"\x11" * 16 + pack_string_table({"hidden": "yes"})
        data = FILE_HEADER + pack_chunk(b"uuid", payload) + info_chunk({"shown": "yes"})

        _, metadata = scan_metadata(io.BytesIO(data))

        assert dict(metadata) == {"shown": "yes"}

    def test_midi_chunk(self) -> None:
        midi = make_midi(
            mido.MetaMessage("set_tempo", tempo=500000, time=0),
            mido.MetaMessage("time_signature", numerator=3, denominator=4, time=0),
            mido.MetaMessage("key_signature", key="Ebm", time=0),
        )
        data = build_caf(np.zeros((1, 8)), 44100, midi_data=midi)

        _, metadata = scan_metadata(io.BytesIO(data))

        assert metadata["tempo"] == "120"
        assert metadata["time signature"] == "3/4"
        assert metadata["key signature"] == "Ebm"
        assert "midiDataBase64" in metadata
        assert "tempo sequence" not in metadata

    def test_midi_chunk_with_out_of_range_key(self) -> None:
        events = (
            b"\x00\xff\x51\x03\x07\xa1\x20"
            + b"\x00\xff\x58\x04\x06\x03\x18\x08"
            + b"\x00\xff\x59\x02\x09\x00"
            + b"\x00\xff\x2f\x00"
        )
        midi = (
            b"MThd"
            + struct.pack(">IHHH", 6, 0, 1, 480)
            + b"MTrk"
            + struct.pack(">I", len(events))
            + events
        )
        data = build_caf(np.zeros((1, 8)), 44100, info={"title": "x"}, midi_data=midi)

        _, metadata = scan_metadata(io.BytesIO(data))

        assert metadata["title"] == "x"
        assert metadata["tempo"] == "120"
        assert metadata["time signature"] == "6/8"
        assert metadata["key signature"] == "C#"
        assert "midiDataBase64" in metadata

    def test_invalid_midi_chunk_contributes_nothing(self) -> None:
        data = FILE_HEADER + pack_chunk(b"midi", b"not a midi file") + info_chunk({"a": "b"})

        is_caf, metadata = scan_metadata(io.BytesIO(data))

        assert is_caf
        assert dict(metadata) == {"a": "b"}

    def test_later_chunks_overwrite_earlier_keys(self) -> None:
        data = FILE_HEADER + info_chunk({"title": "First", "a": "1"}) + info_chunk({"title": "Second"})

        _, metadata = scan_metadata(io.BytesIO(data))

        assert dict(metadata) == {"title": "Second", "a": "1"}

    def test_unknown_chunks_are_skipped(self) -> None:
        data = (
            FILE_HEADER
            + pack_chunk(b"zzzz", b"\xff" * 33)
            + pack_chunk(b"free", b"\x00" * 100)
            + info_chunk({"a": "b"})
        )

        _, metadata = scan_metadata(io.BytesIO(data))

        assert dict(metadata) == {"a": "b"}

    def test_sentinel_data_halts_walk(self) -> None:
        data = (
            FILE_HEADER
            + info_chunk({"before": "1"})
            + pack_chunk(b"data", b"\x00\x00\x00\x00" + info_chunk({"after": "2"}), size=-1)
        )

        _, metadata = scan_metadata(io.BytesIO(data))

        assert dict(metadata) == {"before": "1"}

    def test_chunks_after_sized_data_are_read(self) -> None:
        data = FILE_HEADER + pack_chunk(b"data", b"\x00" * 12) + info_chunk({"after": "2"})

        _, metadata = scan_metadata(io.BytesIO(data))

        assert dict(metadata) == {"after": "2"}

    def test_truncated_chunk_keeps_earlier_metadata(self) -> None:
        truncated = b"info" + struct.pack(">q", 1000) + struct.pack(">I", 2) + b"k\x00v\x00"
        data = FILE_HEADER + info_chunk({"a": "b"}) + truncated

        is_caf, metadata = scan_metadata(io.BytesIO(data))

        assert is_caf
        assert dict(metadata) == {"a": "b", "k": "v"}

    def test_position_restored(self) -> None:
        data = b"prefix" + build_caf(np.zeros((1, 4)), 44100, info={"a": "b"})
        stream = io.BytesIO(data)
        stream.seek(6)

        is_caf, metadata = scan_metadata(stream)

        assert is_caf
        assert metadata["a"] == "b"
        assert stream.tell() == 6

    def test_metadata_is_read_only(self) -> None:
        data = build_caf(np.zeros((1, 4)), 44100, info={"a": "b"})
        _, metadata = scan_metadata(io.BytesIO(data))

        with pytest.raises(TypeError):
            metadata["a"] = "c"  # type: ignore[index]

    def test_oversized_payload_skipped(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(walker, "MAX_PAYLOAD_BYTES", 16)
        data = FILE_HEADER + info_chunk({"long key": "a long value"}) + info_chunk({"k": "v"})

        _, metadata = scan_metadata(io.BytesIO(data))

        assert dict(metadata) == {"k": "v"}

    def test_scan_file(self, tmp_path: Path) -> None:
        path = tmp_path / "test.caf"
        path.write_bytes(build_caf(np.zeros((1, 4)), 44100, info={"a": "b"}))

        is_caf, metadata = scan_metadata_file(path)

        assert is_caf
        assert metadata["a"] == "b"


class TestContainerRecords:
    """Tests for reading desc and chan chunks."""

    def test_read_layout(self) -> None:
        layout = ChannelLayout(tag=LayoutTag.MPEG_5_1_A)
        stream = io.BytesIO(build_caf(np.zeros((6, 4)), 48000, layout=layout))

        assert read_container_layout(stream) == layout
        assert stream.tell() == 0

    def test_no_layout(self) -> None:
        stream = io.BytesIO(build_caf(np.zeros((2, 4)), 48000))
        assert read_container_layout(stream) is None

    def test_layout_of_non_caf(self) -> None:
        assert read_container_layout(io.BytesIO(b"RIFF0000WAVE")) is None

    def test_truncated_layout(self) -> None:
        data = FILE_HEADER + pack_chunk(b"chan", b"\x00\x00")
        assert read_container_layout(io.BytesIO(data)) is None

    def test_read_audio_description(self) -> None:
        stream = io.BytesIO(build_caf(np.zeros((3, 4)), 96000))

        description = read_audio_description(stream)

        assert description is not None
        assert description.sample_rate == 96000.0
        assert description.channels_per_frame == 3
        assert description.is_float
        assert description.bits_per_channel == 32

    def test_desc_not_emitted_as_metadata(self) -> None:
        _, metadata = scan_metadata(io.BytesIO(build_caf(np.zeros((1, 4)), 44100)))
        assert len(metadata) == 0

    def test_info_uuid_constant(self) -> None:
        assert INFO_STRINGS_UUID.hex().upper() == "29819273B5BF4AEFB78D62D1EF90BB2C"
        assert ChunkType.USER_DEFINED.to_bytes(4, "big") == b"uuid"
