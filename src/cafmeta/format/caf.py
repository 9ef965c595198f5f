"""CAF chunk utilities.

This module provides the low-level pieces for reading Core Audio Format
containers: a big-endian cursor over a seekable stream, the fixed file
header, chunk headers and the fixed-size records stored in the ``desc``
and ``chan`` chunks.
"""

import io
import struct
from dataclasses import dataclass
from enum import IntEnum
from typing import BinaryIO

# FourCC identifiers
CAFF_ID = b"caff"
DESC_ID = b"desc"
CHAN_ID = b"chan"
DATA_ID = b"data"
INFO_ID = b"info"
UUID_ID = b"uuid"
MIDI_ID = b"midi"
FREE_ID = b"free"

# Audio format identifiers
LINEAR_PCM_FORMAT_ID = b"lpcm"

# Linear PCM format flags
FORMAT_FLAG_IS_FLOAT = 1 << 0
FORMAT_FLAG_IS_LITTLE_ENDIAN = 1 << 1

# Vendor UUID marking a user-defined chunk that carries info-style strings
INFO_STRINGS_UUID = bytes.fromhex("29819273B5BF4AEFB78D62D1EF90BB2C")

# Size of a data chunk whose length runs to the end of the file
UNKNOWN_DATA_SIZE = -1

FILE_HEADER_SIZE = 8
CHUNK_HEADER_SIZE = 12
DESC_CHUNK_SIZE = 32
CHANNEL_DESCRIPTION_SIZE = 20


def fourcc(name: bytes) -> int:
    """Interpret a four character code as a big-endian 32-bit integer."""
    if len(name) != 4:
        raise ValueError(f"FourCC must be 4 bytes, got {name!r}")
    return struct.unpack(">I", name)[0]


class ChunkType(IntEnum):
    """Chunk type tags understood by the metadata walk."""

    AUDIO_DESCRIPTION = fourcc(DESC_ID)
    CHANNEL_LAYOUT = fourcc(CHAN_ID)
    AUDIO_DATA = fourcc(DATA_ID)
    INFORMATION = fourcc(INFO_ID)
    USER_DEFINED = fourcc(UUID_ID)
    MIDI = fourcc(MIDI_ID)
    FREE = fourcc(FREE_ID)


class CafError(Exception):
    """Error reading or writing CAF files."""


class TruncatedDataError(CafError):
    """A fixed-size field ran past the end of the available data."""


class ByteCursor:
    """Sequential big-endian reader over a seekable binary stream.

    The cursor never reads past the physical end of the stream: fixed-size
    reads that come up short raise :class:`TruncatedDataError`, while
    :meth:`read_bytes` simply returns what is left.
    """

    def __init__(self, stream: BinaryIO) -> None:
        self._stream = stream
        start = stream.tell()
        self._length = stream.seek(0, io.SEEK_END)
        stream.seek(start)

    @classmethod
    def from_bytes(cls, data: bytes) -> "ByteCursor":
        """Create a cursor over an in-memory buffer."""
        return cls(io.BytesIO(data))

    @property
    def length(self) -> int:
        """Total length of the underlying stream in bytes."""
        return self._length

    @property
    def position(self) -> int:
        return self._stream.tell()

    @position.setter
    def position(self, offset: int) -> None:
        self._stream.seek(max(0, offset))

    @property
    def remaining(self) -> int:
        return max(0, self._length - self.position)

    def is_exhausted(self) -> bool:
        return self.position >= self._length

    def read_bytes(self, size: int) -> bytes:
        """Read up to ``size`` bytes, stopping at the end of the stream."""
        if size <= 0:
            return b""
        return self._stream.read(min(size, self.remaining))

    def read_exact(self, size: int) -> bytes:
        data = self.read_bytes(size)
        if len(data) < size:
            raise TruncatedDataError(
                f"Expected {size} bytes at offset {self.position - len(data)}, got {len(data)}"
            )
        return data

    def _unpack(self, fmt: str) -> int | float:
        return struct.unpack(fmt, self.read_exact(struct.calcsize(fmt)))[0]

    def read_u16(self) -> int:
        return int(self._unpack(">H"))

    def read_u32(self) -> int:
        return int(self._unpack(">I"))

    def read_i64(self) -> int:
        return int(self._unpack(">q"))

    def read_f32(self) -> float:
        return float(self._unpack(">f"))

    def read_f64(self) -> float:
        return float(self._unpack(">d"))

    def read_cstring(self) -> str:
        """Read a NUL-terminated UTF-8 string.

        A string that runs into the end of the stream without a terminator is
        returned as-is; a cursor that is already exhausted raises
        :class:`TruncatedDataError`.
        """
        if self.is_exhausted():
            raise TruncatedDataError(f"No string data at offset {self.position}")

        buffer = bytearray()
        while True:
            byte = self._stream.read(1)
            if not byte or byte == b"\x00":
                break
            buffer += byte
        return buffer.decode("utf-8", errors="replace")


@dataclass(frozen=True)
class FileHeader:
    """The fixed 8-byte header at the start of every CAF file."""

    file_type: int
    file_version: int
    file_flags: int

    @classmethod
    def read(cls, cursor: ByteCursor) -> "FileHeader":
        return cls(
            file_type=cursor.read_u32(),
            file_version=cursor.read_u16(),
            file_flags=cursor.read_u16(),
        )

    @property
    def is_caf(self) -> bool:
        return self.file_type == fourcc(CAFF_ID)


@dataclass(frozen=True)
class ChunkHeader:
    """A chunk's type tag and declared payload size.

    Attributes:
        chunk_type: Four character code as a big-endian integer.
        size: Declared payload size. ``-1`` is only valid for the data chunk
            and means the payload runs to the end of the file.
        offset: Stream offset of the first payload byte.
    """

    chunk_type: int
    size: int
    offset: int

    @classmethod
    def read(cls, cursor: ByteCursor) -> "ChunkHeader":
        chunk_type = cursor.read_u32()
        size = cursor.read_i64()
        return cls(chunk_type=chunk_type, size=size, offset=cursor.position)

    @property
    def end(self) -> int:
        """Offset of the byte following this chunk's payload."""
        return self.offset + self.size

    @property
    def name(self) -> str:
        """The chunk type as printable text (e.g. ``"desc"``)."""
        return struct.pack(">I", self.chunk_type).decode("latin-1")


@dataclass(frozen=True)
class AudioDescription:
    """Contents of the ``desc`` chunk."""

    sample_rate: float
    format_id: int
    format_flags: int
    bytes_per_packet: int
    frames_per_packet: int
    channels_per_frame: int
    bits_per_channel: int

    @classmethod
    def read(cls, cursor: ByteCursor) -> "AudioDescription":
        return cls(
            sample_rate=cursor.read_f64(),
            format_id=cursor.read_u32(),
            format_flags=cursor.read_u32(),
            bytes_per_packet=cursor.read_u32(),
            frames_per_packet=cursor.read_u32(),
            channels_per_frame=cursor.read_u32(),
            bits_per_channel=cursor.read_u32(),
        )

    def pack(self) -> bytes:
        return struct.pack(
            ">dIIIIII",
            self.sample_rate,
            self.format_id,
            self.format_flags,
            self.bytes_per_packet,
            self.frames_per_packet,
            self.channels_per_frame,
            self.bits_per_channel,
        )

    @property
    def is_linear_pcm(self) -> bool:
        return self.format_id == fourcc(LINEAR_PCM_FORMAT_ID)

    @property
    def is_float(self) -> bool:
        return self.is_linear_pcm and bool(self.format_flags & FORMAT_FLAG_IS_FLOAT)

    @property
    def format_name(self) -> str:
        return struct.pack(">I", self.format_id).decode("latin-1")
