"""Metadata extractors for individual CAF chunks.

Each extractor is a pure function of one chunk's payload bytes and returns a
fresh ``dict`` of string metadata; the chunk walk merges them in file order.
Keys written by the MIDI extractor are reserved (see :data:`RESERVED_KEYS`)
and never produced by the string-table extractors' own logic, although a
file may of course store any key it likes in an ``info`` chunk.
"""

import base64
import logging
import math
from collections.abc import Iterable

from cafmeta.format.caf import INFO_STRINGS_UUID, ByteCursor, TruncatedDataError
from cafmeta.format.midi import (
    EventSequenceError,
    EventTimeline,
    KeySignatureEvent,
    TempoEvent,
    TimeSignatureEvent,
    key_signature_name,
    parse_event_sequence,
)

logger = logging.getLogger(__name__)

MIDI_DATA_BASE64_KEY = "midiDataBase64"
TEMPO_KEY = "tempo"
TEMPO_SEQUENCE_KEY = "tempo sequence"
TIME_SIGNATURE_KEY = "time signature"
TIME_SIGNATURE_SEQUENCE_KEY = "time signature sequence"
KEY_SIGNATURE_KEY = "key signature"
KEY_SIGNATURE_SEQUENCE_KEY = "key signature sequence"

RESERVED_KEYS = frozenset(
    {
        MIDI_DATA_BASE64_KEY,
        TEMPO_KEY,
        TEMPO_SEQUENCE_KEY,
        TIME_SIGNATURE_KEY,
        TIME_SIGNATURE_SEQUENCE_KEY,
        KEY_SIGNATURE_KEY,
        KEY_SIGNATURE_SEQUENCE_KEY,
    }
)


def format_number(value: float) -> str:
    """Render a number as metadata text: ``120.0`` -> ``"120"``, ``0.5`` -> ``"0.5"``."""
    if math.isfinite(value) and float(value).is_integer():
        return str(int(value))
    return f"{value:.10g}"


def _read_string_pairs(cursor: ByteCursor) -> dict[str, str]:
    try:
        count = cursor.read_u32()
    except TruncatedDataError:
        logger.debug("String table too short for its entry count")
        return {}

    entries: dict[str, str] = {}
    for index in range(count):
        try:
            key = cursor.read_cstring()
            value = cursor.read_cstring()
        except TruncatedDataError:
            logger.debug("String table declares %d entries but holds %d", count, index)
            break
        entries[key] = value
    return entries


def parse_info_chunk(payload: bytes) -> dict[str, str]:
    """Read the key/value strings of an ``info`` chunk."""
    return _read_string_pairs(ByteCursor.from_bytes(payload))


def parse_user_defined_chunk(payload: bytes) -> dict[str, str]:
    """Read a ``uuid`` chunk, which only carries metadata under the info-strings UUID."""
    if payload[: len(INFO_STRINGS_UUID)] != INFO_STRINGS_UUID:
        return {}
    return _read_string_pairs(ByteCursor.from_bytes(payload[len(INFO_STRINGS_UUID) :]))


def _scalar_and_sequence(
    values: list[tuple[str, int]], key: str, sequence_key: str
) -> dict[str, str]:
    if not values:
        return {}

    result = {key: values[0][0]}
    if len(values) > 1:
        result[sequence_key] = "".join(f"{value},{time};" for value, time in values)
    return result


def derive_tempo_metadata(events: Iterable[TempoEvent]) -> dict[str, str]:
    """Tempo in BPM from tempo-change events; non-positive tempos are skipped."""
    values = []
    for event in events:
        if event.seconds_per_quarter_note <= 0:
            continue
        bpm = 60.0 / event.seconds_per_quarter_note
        if bpm <= 0 or not math.isfinite(bpm):
            continue
        values.append((format_number(bpm), event.time))
    return _scalar_and_sequence(values, TEMPO_KEY, TEMPO_SEQUENCE_KEY)


def derive_time_signature_metadata(events: Iterable[TimeSignatureEvent]) -> dict[str, str]:
    values = [(f"{e.numerator}/{e.denominator}", e.time) for e in events]
    return _scalar_and_sequence(values, TIME_SIGNATURE_KEY, TIME_SIGNATURE_SEQUENCE_KEY)


def derive_key_signature_metadata(events: Iterable[KeySignatureEvent]) -> dict[str, str]:
    values = [(key_signature_name(e.sharps_or_flats, e.is_major), e.time) for e in events]
    return _scalar_and_sequence(values, KEY_SIGNATURE_KEY, KEY_SIGNATURE_SEQUENCE_KEY)


def derive_musical_metadata(timeline: EventTimeline) -> dict[str, str]:
    """Tempo, time signature and key signature entries for a timeline."""
    metadata: dict[str, str] = {}
    metadata.update(derive_tempo_metadata(timeline.tempo_events()))
    metadata.update(derive_time_signature_metadata(timeline.time_signature_events()))
    metadata.update(derive_key_signature_metadata(timeline.key_signature_events()))
    return metadata


def parse_midi_chunk(payload: bytes) -> dict[str, str]:
    """Read a ``midi`` chunk holding a Standard MIDI File.

    A payload that does not decode contributes nothing.
    """
    try:
        timeline = parse_event_sequence(payload)
    except EventSequenceError as e:
        logger.warning("Skipping undecodable MIDI chunk: %s", e)
        return {}

    metadata = {MIDI_DATA_BASE64_KEY: base64.b64encode(payload).decode("ascii")}
    metadata.update(derive_musical_metadata(timeline))
    return metadata
