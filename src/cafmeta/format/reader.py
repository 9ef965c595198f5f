"""Opening audio files for metadata and canonical-order frame reads.

This module ties the pieces together: the chunk walk supplies metadata and
the native channel layout, the codec supplies the decoded stream, and the
channel map reorders the codec's channels into canonical role order.
"""

import dataclasses
import logging
import math
from dataclasses import dataclass
from pathlib import Path

import numpy as np
from numpy.typing import NDArray

from cafmeta.format.caf import CafError
from cafmeta.format.channel_map import build_channel_map
from cafmeta.format.codec import FrameReader, describe_with_codec
from cafmeta.format.types import ChannelLayout, ChannelMap, MetadataMap, StreamDescription
from cafmeta.format.walker import read_audio_description, read_container_layout, scan_metadata

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AudioFile:
    """An opened audio file.

    Instances are immutable and can be shared between threads; each thread
    reads samples through its own :meth:`open_reader`.
    """

    path: Path
    description: StreamDescription
    metadata: MetadataMap
    """Read-only metadata collected from the container's chunks."""

    channel_map: ChannelMap
    """Canonical slot of each file channel."""

    is_caf: bool = False

    @property
    def layout(self) -> ChannelLayout | None:
        return self.description.layout

    @property
    def num_channels(self) -> int:
        return self.description.num_channels

    def open_reader(self) -> FrameReader:
        """Open an independent frame reader that delivers canonical order."""
        return FrameReader(self.path, self.channel_map)

    def read_frames(
        self, start: int, count: int, num_dest_channels: int | None = None
    ) -> NDArray[np.float32]:
        """Read frames in canonical channel order (see :meth:`FrameReader.read`)."""
        with self.open_reader() as reader:
            return reader.read(start, count, num_dest_channels)


def open_audio_file(path: Path | str, *, strict_layout: bool = False) -> AudioFile:
    """Open an audio file and collect its description, metadata and channel map.

    Args:
        path: Path to the audio file. Any format the codec reads is accepted;
            metadata and channel layouts are only found in CAF files.
        strict_layout: Raise :class:`~cafmeta.format.channel_map.ChannelLayoutError`
            for layout table inconsistencies instead of using file order.

    Returns:
        AudioFile describing the opened stream.

    Raises:
        CafError: If the file does not exist, cannot be read, or the codec
            cannot open it.
    """
    path = Path(path)

    try:
        with open(path, "rb") as f:
            is_caf, metadata = scan_metadata(f)
            caf_description = read_audio_description(f) if is_caf else None
            layout = read_container_layout(f) if is_caf else None
    except FileNotFoundError as e:
        raise CafError(f"File not found: {path}") from e
    except OSError as e:
        raise CafError(f"Cannot read {path}: {e}") from e

    description = describe_with_codec(path)

    if caf_description is not None:
        if not math.isclose(caf_description.sample_rate, description.sample_rate) or (
            caf_description.channels_per_frame != description.num_channels
        ):
            logger.warning(
                "%s: container declares %g Hz / %d channels, codec reports %g Hz / %d channels",
                path,
                caf_description.sample_rate,
                caf_description.channels_per_frame,
                description.sample_rate,
                description.num_channels,
            )

        description = dataclasses.replace(
            description,
            bits_per_sample=caf_description.bits_per_channel,
            uses_float=caf_description.is_float,
            format_name=caf_description.format_name,
        )

    if layout is not None:
        description = dataclasses.replace(description, layout=layout)

    channel_map = build_channel_map(layout, description.num_channels, strict=strict_layout)

    logger.debug(
        "Opened %s: %d channels, %d frames, %d metadata entries",
        path,
        description.num_channels,
        description.length_in_frames,
        len(metadata),
    )

    return AudioFile(
        path=path,
        description=description,
        metadata=metadata,
        channel_map=channel_map,
        is_caf=is_caf,
    )
