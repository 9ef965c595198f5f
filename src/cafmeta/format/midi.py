"""Event timeline decoded from an embedded Standard MIDI File.

Decoding is delegated to ``mido``; this module flattens all tracks into one
time-ordered timeline and exposes the three meta events the metadata
derivation needs: tempo changes, time signatures and key signatures.

Key signature events are decoded leniently: a sharps/flats count outside
``[-7, 7]`` is clamped and any non-zero mode byte means minor, so one odd
event does not make the whole file undecodable.
"""

import io
import struct
from collections.abc import Iterator
from dataclasses import dataclass

import mido
from mido.midifiles import meta

MAJOR_KEYS = ("Cb", "Gb", "Db", "Ab", "Eb", "Bb", "F", "C", "G", "D", "A", "E", "B", "F#", "C#")
"""Major key names indexed by ``sharps_or_flats + 7``."""

MINOR_KEYS = ("Ab", "Eb", "Bb", "F", "C", "G", "D", "A", "E", "B", "F#", "C#", "G#", "D#", "A#")
"""Minor key names (without the ``m`` suffix) indexed by ``sharps_or_flats + 7``."""

MICROSECONDS_PER_SECOND = 1_000_000


class EventSequenceError(ValueError):
    """Embedded bytes are not a decodable Standard MIDI File."""


def key_signature_name(sharps_or_flats: int, is_major: bool) -> str:
    """Name a key from its circle-of-fifths position, e.g. ``(-1, False)`` -> ``"Dm"``.

    Counts outside ``[-7, 7]`` are clamped.
    """
    index = min(max(sharps_or_flats + 7, 0), 14)
    if is_major:
        return MAJOR_KEYS[index]
    return MINOR_KEYS[index] + "m"


class LenientKeySignatureSpec(meta.MetaSpec_key_signature):
    """``key_signature`` decoding that clamps instead of raising.

    Keys inside mido's table decode exactly as before; the message keeps the
    single ``key`` attribute, so encoding is unchanged.
    """

    type = "key_signature"

    def decode(self, message, data):
        sharps_or_flats = meta.signed("byte", data[0]) if data else 0
        mode = data[1] if len(data) > 1 else 0
        message.key = key_signature_name(sharps_or_flats, mode == 0)


# Registered process-wide: mido looks meta specs up in a module-level table
meta.add_meta_spec(LenientKeySignatureSpec)


@dataclass(frozen=True)
class TempoEvent:
    time: int
    """Absolute time in ticks."""

    seconds_per_quarter_note: float


@dataclass(frozen=True)
class TimeSignatureEvent:
    time: int
    numerator: int
    denominator: int


@dataclass(frozen=True)
class KeySignatureEvent:
    time: int
    sharps_or_flats: int
    """Positive for sharps, negative for flats."""

    is_major: bool


@dataclass(frozen=True)
class TimedMessage:
    time: int
    message: mido.Message | mido.MetaMessage


@dataclass(frozen=True)
class EventTimeline:
    """All messages of a MIDI file on one absolute tick timeline.

    Messages are ordered by time; messages at the same tick keep their
    track order, then their order within the track.
    """

    messages: tuple[TimedMessage, ...]
    ticks_per_beat: int

    def _meta(self, meta_type: str) -> Iterator[TimedMessage]:
        return (m for m in self.messages if m.message.is_meta and m.message.type == meta_type)

    def tempo_events(self) -> list[TempoEvent]:
        return [
            TempoEvent(m.time, m.message.tempo / MICROSECONDS_PER_SECOND)
            for m in self._meta("set_tempo")
        ]

    def time_signature_events(self) -> list[TimeSignatureEvent]:
        return [
            TimeSignatureEvent(m.time, m.message.numerator, m.message.denominator)
            for m in self._meta("time_signature")
        ]

    def key_signature_events(self) -> list[KeySignatureEvent]:
        events = []
        for m in self._meta("key_signature"):
            sharps_or_flats, is_major = key_name_to_signature(m.message.key)
            events.append(KeySignatureEvent(m.time, sharps_or_flats, is_major))
        return events


def key_name_to_signature(key: str) -> tuple[int, bool]:
    """Convert a key name such as ``"Ebm"`` to ``(sharps_or_flats, is_major)``."""
    if key.endswith("m"):
        return MINOR_KEYS.index(key[:-1]) - 7, False
    return MAJOR_KEYS.index(key) - 7, True


def parse_event_sequence(data: bytes) -> EventTimeline:
    """Decode a Standard MIDI File into an :class:`EventTimeline`.

    Raises:
        EventSequenceError: If ``data`` is not a valid MIDI file.
    """
    try:
        midi_file = mido.MidiFile(file=io.BytesIO(data), clip=True)
    except (
        OSError,
        EOFError,
        ValueError,
        KeyError,
        IndexError,
        struct.error,
        meta.KeySignatureError,
    ) as e:
        raise EventSequenceError(f"Invalid MIDI data: {e}") from e

    timed = []
    for track in midi_file.tracks:
        now = 0
        for message in track:
            now += message.time
            timed.append(TimedMessage(now, message))

    timed.sort(key=lambda m: m.time)
    return EventTimeline(messages=tuple(timed), ticks_per_beat=midi_file.ticks_per_beat)
