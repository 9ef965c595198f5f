"""Tests for the MIDI event timeline."""

import io
import struct

import mido
import pytest

from cafmeta.format.midi import (
    MAJOR_KEYS,
    MINOR_KEYS,
    EventSequenceError,
    KeySignatureEvent,
    TempoEvent,
    TimeSignatureEvent,
    key_name_to_signature,
    parse_event_sequence,
)


def save(midi_file: mido.MidiFile) -> bytes:
    buffer = io.BytesIO()
    midi_file.save(file=buffer)
    return buffer.getvalue()


class TestParseEventSequence:
    """Tests for decoding embedded MIDI files."""

    def test_absolute_times(self) -> None:
        midi_file = mido.MidiFile(ticks_per_beat=96)
        track = mido.MidiTrack(
            [
                mido.MetaMessage("set_tempo", tempo=500000, time=0),
                mido.Message("note_on", note=60, velocity=100, time=96),
                mido.MetaMessage("set_tempo", tempo=250000, time=96),
            ]
        )
        midi_file.tracks.append(track)

        timeline = parse_event_sequence(save(midi_file))

        assert timeline.ticks_per_beat == 96
        assert timeline.tempo_events() == [TempoEvent(0, 0.5), TempoEvent(192, 0.25)]

    def test_tracks_are_merged_in_time_order(self) -> None:
        midi_file = mido.MidiFile(type=1, ticks_per_beat=480)
        midi_file.tracks.append(
            mido.MidiTrack([mido.MetaMessage("time_signature", numerator=3, denominator=4, time=960)])
        )
        midi_file.tracks.append(
            mido.MidiTrack([mido.MetaMessage("time_signature", numerator=4, denominator=4, time=0)])
        )

        timeline = parse_event_sequence(save(midi_file))

        assert timeline.time_signature_events() == [
            TimeSignatureEvent(0, 4, 4),
            TimeSignatureEvent(960, 3, 4),
        ]

    def test_key_signatures(self) -> None:
        midi_file = mido.MidiFile()
        midi_file.tracks.append(
            mido.MidiTrack(
                [
                    mido.MetaMessage("key_signature", key="D", time=0),
                    mido.MetaMessage("key_signature", key="Cm", time=480),
                ]
            )
        )

        timeline = parse_event_sequence(save(midi_file))

        assert timeline.key_signature_events() == [
            KeySignatureEvent(0, 2, True),
            KeySignatureEvent(480, -3, False),
        ]

    def test_no_meta_events(self) -> None:
        midi_file = mido.MidiFile()
        midi_file.tracks.append(mido.MidiTrack([mido.Message("note_on", note=64, time=0)]))

        timeline = parse_event_sequence(save(midi_file))

        assert timeline.tempo_events() == []
        assert timeline.time_signature_events() == []
        assert timeline.key_signature_events() == []

    @pytest.mark.parametrize("data", [b"", b"RIFF", b"MThd", b"MThd\x00\x00\x00\x06\x00\x00"])
    def test_invalid_data(self, data: bytes) -> None:
        with pytest.raises(EventSequenceError):
            parse_event_sequence(data)

    def test_error_is_value_error(self) -> None:
        with pytest.raises(ValueError):
            parse_event_sequence(b"garbage bytes here")


class TestKeyNames:
    """Tests for key name conversion."""

    @pytest.mark.parametrize("index", range(15))
    def test_major_round_trip(self, index: int) -> None:
        assert key_name_to_signature(MAJOR_KEYS[index]) == (index - 7, True)

    @pytest.mark.parametrize("index", range(15))
    def test_minor_round_trip(self, index: int) -> None:
        assert key_name_to_signature(MINOR_KEYS[index] + "m") == (index - 7, False)


class TestLenientKeySignatures:
    """Key signature bytes outside mido's table decode to a clamped key."""

    @staticmethod
    def smf(key_signature_data: bytes) -> bytes:
        events = b"\x00\xff\x59" + bytes([len(key_signature_data)]) + key_signature_data
        events += b"\x00\xff\x2f\x00"
        header = b"MThd" + struct.pack(">IHHH", 6, 0, 1, 96)
        return header + b"MTrk" + struct.pack(">I", len(events)) + events

    @pytest.mark.parametrize(
        ("data", "expected"),
        [
            (b"\x09\x00", KeySignatureEvent(0, 7, True)),
            (b"\xf8\x00", KeySignatureEvent(0, -7, True)),
            (b"\x7f\x01", KeySignatureEvent(0, 7, False)),
            (b"\x02\x05", KeySignatureEvent(0, 2, False)),
            (b"\x03\x00", KeySignatureEvent(0, 3, True)),
        ],
    )
    def test_clamped_on_decode(self, data: bytes, expected: KeySignatureEvent) -> None:
        timeline = parse_event_sequence(self.smf(data))
        assert timeline.key_signature_events() == [expected]

    def test_short_payload_defaults_to_c_major(self) -> None:
        timeline = parse_event_sequence(self.smf(b""))
        assert timeline.key_signature_events() == [KeySignatureEvent(0, 0, True)]

    def test_encoding_unchanged(self) -> None:
        message = mido.MetaMessage("key_signature", key="Ebm")
        assert message.bytes() == [0xFF, 0x59, 0x02, 0xFA, 0x01]
