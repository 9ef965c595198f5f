"""Sample codec service backed by ``soundfile``.

``libsndfile`` does the actual sample decoding and encoding. These wrappers
add frame-indexed planar access and deliver channels in canonical order
through a channel map.
"""

from pathlib import Path
from types import TracebackType

import numpy as np
import soundfile as sf
from numpy.typing import ArrayLike, NDArray

from cafmeta.format.caf import CafError
from cafmeta.format.types import ChannelMap, StreamDescription


def _get_bit_depth_from_subtype(subtype: str) -> int:
    """Get bit depth from soundfile subtype string (0 if it has none)."""
    subtype = subtype.upper()
    if "8" in subtype and "PCM" in subtype:
        return 8
    elif "16" in subtype:
        return 16
    elif "24" in subtype:
        return 24
    elif "32" in subtype or subtype == "FLOAT":
        return 32
    elif "64" in subtype or subtype == "DOUBLE":
        return 64
    return 0


def describe_with_codec(path: Path | str) -> StreamDescription:
    """Ask the codec for a file's stream description.

    Raises:
        CafError: If the codec cannot open the file.
    """
    try:
        info = sf.info(str(path))
    except RuntimeError as e:
        raise CafError(f"Cannot open {path}: {e}") from e

    return StreamDescription(
        sample_rate=float(info.samplerate),
        num_channels=info.channels,
        bits_per_sample=_get_bit_depth_from_subtype(info.subtype),
        uses_float=info.subtype in ("FLOAT", "DOUBLE"),
        length_in_frames=info.frames,
        format_name=info.format,
    )


class FrameReader:
    """Frame-indexed planar reads from one open file.

    Each reader owns its own codec handle and position, so several readers
    over the same file can be used from different threads.
    """

    def __init__(self, path: Path | str, channel_map: ChannelMap | None = None) -> None:
        try:
            self._file = sf.SoundFile(str(path), mode="r")
        except RuntimeError as e:
            raise CafError(f"Cannot open {path}: {e}") from e

        if channel_map is None:
            channel_map = tuple(range(self._file.channels))
        if len(channel_map) != self._file.channels:
            self._file.close()
            raise ValueError(
                f"Channel map has {len(channel_map)} entries for {self._file.channels} channels"
            )
        self._channel_map = channel_map

    @property
    def num_channels(self) -> int:
        return self._file.channels

    @property
    def length_in_frames(self) -> int:
        return self._file.frames

    @property
    def sample_rate(self) -> float:
        return float(self._file.samplerate)

    def read(
        self,
        start: int,
        count: int,
        num_dest_channels: int | None = None,
    ) -> NDArray[np.float32]:
        """Read ``count`` frames starting at frame ``start``.

        Args:
            start: First frame to read; may be negative or past the end.
            count: Number of frames to return.
            num_dest_channels: Number of output channels, default the file's.

        Returns:
            Array of shape ``(num_dest_channels, count)``. File channel ``i``
            is written to row ``channel_map[i]``; rows the file does not fill
            and frames outside the file are zero.
        """
        if count < 0:
            raise ValueError(f"Frame count must be >= 0, got {count}")
        if num_dest_channels is None:
            num_dest_channels = self.num_channels

        output = np.zeros((num_dest_channels, count), dtype=np.float32)

        first = max(start, 0)
        last = min(start + count, self.length_in_frames)
        if last <= first:
            return output

        self._file.seek(first)
        block = self._file.read(last - first, dtype="float32", always_2d=True)
        offset = first - start
        num_read = block.shape[0]
        for channel, slot in enumerate(self._channel_map):
            if slot < num_dest_channels:
                output[slot, offset : offset + num_read] = block[:, channel]
        return output

    def close(self) -> None:
        self._file.close()

    def __enter__(self) -> "FrameReader":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()


class FrameWriter:
    """Write planar float buffers to a CAF file through the codec."""

    def __init__(
        self,
        path: Path | str,
        sample_rate: float,
        num_channels: int,
        *,
        subtype: str = "FLOAT",
    ) -> None:
        if num_channels < 1:
            raise ValueError(f"num_channels must be >= 1, got {num_channels}")
        self._file = sf.SoundFile(
            str(path),
            mode="w",
            samplerate=int(sample_rate),
            channels=num_channels,
            format="CAF",
            subtype=subtype,
        )

    @property
    def num_channels(self) -> int:
        return self._file.channels

    def write(self, buffers: ArrayLike, frame_count: int) -> int:
        """Write the first ``frame_count`` frames of ``(channels, frames)`` buffers."""
        planar = np.asarray(buffers, dtype=np.float32)
        if planar.ndim != 2 or planar.shape[0] != self.num_channels:
            raise ValueError(
                f"Expected buffers of shape ({self.num_channels}, frames), got {planar.shape}"
            )
        if not 0 <= frame_count <= planar.shape[1]:
            raise ValueError(f"frame_count {frame_count} out of range for {planar.shape[1]} frames")

        self._file.write(np.ascontiguousarray(planar[:, :frame_count].T))
        return frame_count

    def close(self) -> None:
        self._file.close()

    def __enter__(self) -> "FrameWriter":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()
