"""Python types for opened audio streams.

These types describe an audio stream independently of how it was decoded:
the stream description reported when a container is opened, and the
native channel layout stored in a CAF ``chan`` chunk.
"""

import struct
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import TypeAlias

from cafmeta.format.caf import CHANNEL_DESCRIPTION_SIZE, ByteCursor, TruncatedDataError

MetadataMap: TypeAlias = Mapping[str, str]
"""Ordered string key/value metadata; later writers win on key collisions."""

ChannelMap: TypeAlias = tuple[int, ...]
"""Entry ``i`` is the canonical slot that file channel ``i`` is copied to."""


@dataclass(frozen=True)
class ChannelDescription:
    """One entry of a description-based channel layout."""

    label: int
    """CoreAudio channel label (see :class:`cafmeta.format.layouts.ChannelLabel`)."""

    flags: int = 0
    """Coordinate flags; unused by the channel mapping."""

    coordinates: tuple[float, float, float] = (0.0, 0.0, 0.0)
    """Speaker coordinates, only meaningful when the coordinate flags are set."""

    @classmethod
    def read(cls, cursor: ByteCursor) -> "ChannelDescription":
        label = cursor.read_u32()
        flags = cursor.read_u32()
        coordinates = (cursor.read_f32(), cursor.read_f32(), cursor.read_f32())
        return cls(label=label, flags=flags, coordinates=coordinates)

    def pack(self) -> bytes:
        return struct.pack(">IIfff", self.label, self.flags, *self.coordinates)


@dataclass(frozen=True)
class ChannelLayout:
    """A vendor channel-layout descriptor as stored in the ``chan`` chunk.

    The layout is either a tag alone (the channel order is implied by the
    tag), a tag of ``UseChannelBitmap`` plus a speaker bitmap, or a tag of
    ``UseChannelDescriptions`` plus one description per channel.
    """

    tag: int
    bitmap: int = 0
    descriptions: tuple[ChannelDescription, ...] = field(default_factory=tuple)

    @classmethod
    def read(cls, cursor: ByteCursor) -> "ChannelLayout":
        """Read a layout record from the start of a ``chan`` payload.

        Descriptions beyond the end of the payload are dropped rather than
        failing the whole record.
        """
        tag = cursor.read_u32()
        bitmap = cursor.read_u32()
        count = cursor.read_u32()

        descriptions = []
        for _ in range(min(count, cursor.remaining // CHANNEL_DESCRIPTION_SIZE)):
            try:
                descriptions.append(ChannelDescription.read(cursor))
            except TruncatedDataError:
                break

        return cls(tag=tag, bitmap=bitmap, descriptions=tuple(descriptions))

    def pack(self) -> bytes:
        header = struct.pack(">III", self.tag, self.bitmap, len(self.descriptions))
        return header + b"".join(d.pack() for d in self.descriptions)

    @property
    def labels(self) -> list[int]:
        return [d.label for d in self.descriptions]


@dataclass(frozen=True)
class StreamDescription:
    """Format of an opened stream, fixed once the container has been opened."""

    sample_rate: float
    num_channels: int
    bits_per_sample: int
    """Declared bit depth (0 for compressed formats that do not declare one)."""

    uses_float: bool
    length_in_frames: int
    layout: ChannelLayout | None = None
    """Native channel layout, if the container declares one."""

    format_name: str = ""
    """Short codec or container format name, for display."""

    @property
    def duration_seconds(self) -> float:
        if self.sample_rate <= 0:
            return 0.0
        return self.length_in_frames / self.sample_rate
