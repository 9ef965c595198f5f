"""Top-level chunk walk over a CAF container.

The walk reads the file header, then visits each chunk by its declared size.
Metadata chunks (``info``, ``uuid``, ``midi``) are read into memory and
handed to the pure extractors in :mod:`cafmeta.format.extractors`; every
other chunk is skipped by size. The cursor only moves forward during the
walk and is put back where it started when the walk ends.
"""

import logging
from collections.abc import Callable, Iterator
from pathlib import Path
from types import MappingProxyType
from typing import BinaryIO

from cafmeta.format.caf import (
    UNKNOWN_DATA_SIZE,
    AudioDescription,
    ByteCursor,
    ChunkHeader,
    ChunkType,
    FileHeader,
    TruncatedDataError,
)
from cafmeta.format.extractors import (
    parse_info_chunk,
    parse_midi_chunk,
    parse_user_defined_chunk,
)
from cafmeta.format.types import ChannelLayout, MetadataMap

logger = logging.getLogger(__name__)

MAX_PAYLOAD_BYTES = 16 * 1024 * 1024
"""Largest metadata chunk payload that is read into memory."""

_EMPTY_METADATA: MetadataMap = MappingProxyType({})

_EXTRACTORS: dict[int, Callable[[bytes], dict[str, str]]] = {
    ChunkType.INFORMATION: parse_info_chunk,
    ChunkType.USER_DEFINED: parse_user_defined_chunk,
    ChunkType.MIDI: parse_midi_chunk,
}


def iter_chunks(cursor: ByteCursor) -> Iterator[ChunkHeader]:
    """Yield chunk headers from the cursor's position to the end of the file.

    After each yield the cursor is moved to the end of that chunk, whatever
    the consumer did with it in between. The walk stops at the end of the
    stream, after a data chunk of unknown size, after a chunk that runs past
    the end of the stream, or at a chunk with an invalid negative size.
    """
    while not cursor.is_exhausted():
        try:
            header = ChunkHeader.read(cursor)
        except TruncatedDataError:
            logger.debug("Trailing bytes before offset %d are not a chunk header", cursor.length)
            return

        if header.size < 0:
            if header.size == UNKNOWN_DATA_SIZE and header.chunk_type == ChunkType.AUDIO_DATA:
                yield header
            else:
                logger.warning(
                    "Chunk '%s' at offset %d has invalid size %d; stopping",
                    header.name,
                    header.offset,
                    header.size,
                )
            return

        yield header

        if header.end > cursor.length:
            logger.debug(
                "Chunk '%s' declares %d bytes but only %d remain",
                header.name,
                header.size,
                cursor.length - header.offset,
            )
            return
        cursor.position = header.end


def read_chunk_payload(cursor: ByteCursor, header: ChunkHeader) -> bytes | None:
    """Read a chunk's payload, clamped to the bytes actually present.

    Returns ``None`` for payloads larger than :data:`MAX_PAYLOAD_BYTES`.
    """
    cursor.position = header.offset
    size = cursor.remaining if header.size < 0 else min(header.size, cursor.remaining)
    if size > MAX_PAYLOAD_BYTES:
        logger.warning(
            "Skipping '%s' chunk of %d bytes (limit %d)", header.name, size, MAX_PAYLOAD_BYTES
        )
        return None
    return cursor.read_bytes(size)


def _check_audio_description(payload: bytes) -> None:
    try:
        description = AudioDescription.read(ByteCursor.from_bytes(payload))
    except TruncatedDataError:
        logger.warning("Audio description chunk is truncated (%d bytes)", len(payload))
        return

    if description.sample_rate <= 0 or description.channels_per_frame == 0:
        logger.warning(
            "Audio description is not usable: %g Hz, %d channels",
            description.sample_rate,
            description.channels_per_frame,
        )


def scan_metadata(stream: BinaryIO) -> tuple[bool, MetadataMap]:
    """Scan a stream for CAF metadata.

    Args:
        stream: Seekable binary stream positioned at the start of the container.

    Returns:
        ``(is_caf, metadata)``. ``is_caf`` is ``False`` when the stream does
        not start with a CAF header, in which case the metadata is empty.
        Metadata keys from later chunks replace those of earlier ones.

    The stream position is restored before returning. Errors raised by the
    stream itself propagate; malformed chunks only end or shorten the walk.
    """
    cursor = ByteCursor(stream)
    start = cursor.position
    try:
        try:
            file_header = FileHeader.read(cursor)
        except TruncatedDataError:
            return False, _EMPTY_METADATA

        if not file_header.is_caf:
            return False, _EMPTY_METADATA

        metadata: dict[str, str] = {}
        for header in iter_chunks(cursor):
            if header.chunk_type == ChunkType.AUDIO_DESCRIPTION:
                payload = read_chunk_payload(cursor, header)
                if payload is not None:
                    _check_audio_description(payload)
                continue

            extractor = _EXTRACTORS.get(header.chunk_type)
            if extractor is None:
                continue

            payload = read_chunk_payload(cursor, header)
            if payload is not None:
                metadata.update(extractor(payload))

        return True, MappingProxyType(metadata)
    finally:
        cursor.position = start


def scan_metadata_file(path: Path | str) -> tuple[bool, MetadataMap]:
    """Convenience wrapper around :func:`scan_metadata` for a file on disk."""
    with open(path, "rb") as f:
        return scan_metadata(f)


def _find_chunk(stream: BinaryIO, chunk_type: int) -> bytes | None:
    cursor = ByteCursor(stream)
    start = cursor.position
    try:
        try:
            if not FileHeader.read(cursor).is_caf:
                return None
        except TruncatedDataError:
            return None

        for header in iter_chunks(cursor):
            if header.chunk_type == chunk_type:
                return read_chunk_payload(cursor, header)
        return None
    finally:
        cursor.position = start


def read_audio_description(stream: BinaryIO) -> AudioDescription | None:
    """The ``desc`` record of a CAF stream, ``None`` if absent or unreadable."""
    payload = _find_chunk(stream, ChunkType.AUDIO_DESCRIPTION)
    if payload is None:
        return None
    try:
        return AudioDescription.read(ByteCursor.from_bytes(payload))
    except TruncatedDataError:
        logger.warning("Audio description chunk is truncated")
        return None


def read_container_layout(stream: BinaryIO) -> ChannelLayout | None:
    """The ``chan`` layout of a CAF stream, ``None`` if absent or unreadable."""
    payload = _find_chunk(stream, ChunkType.CHANNEL_LAYOUT)
    if payload is None:
        return None
    try:
        return ChannelLayout.read(ByteCursor.from_bytes(payload))
    except TruncatedDataError:
        logger.warning("Channel layout chunk is truncated")
        return None
