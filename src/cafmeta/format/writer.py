"""CAF file writer.

Builds linear PCM (32-bit big-endian float) CAF files, optionally carrying
a channel layout, ``info`` strings, info strings under the vendor UUID and
an embedded MIDI file.
"""

import struct
from collections.abc import Mapping, Sequence
from pathlib import Path

import numpy as np
from numpy.typing import ArrayLike

from cafmeta.format.caf import (
    CAFF_ID,
    CHAN_ID,
    DATA_ID,
    DESC_ID,
    FORMAT_FLAG_IS_FLOAT,
    INFO_ID,
    INFO_STRINGS_UUID,
    LINEAR_PCM_FORMAT_ID,
    MIDI_ID,
    UNKNOWN_DATA_SIZE,
    UUID_ID,
    AudioDescription,
    fourcc,
)
from cafmeta.format.types import ChannelLayout

CAF_FILE_VERSION = 1


def pack_chunk(chunk_id: bytes, payload: bytes, *, size: int | None = None) -> bytes:
    """Serialise one chunk; ``size`` overrides the declared payload size."""
    declared = len(payload) if size is None else size
    return chunk_id + struct.pack(">q", declared) + payload


def pack_string_table(entries: Mapping[str, str]) -> bytes:
    """Serialise key/value strings in the ``info`` chunk layout."""
    table = bytearray(struct.pack(">I", len(entries)))
    for key, value in entries.items():
        table.extend(key.encode("utf-8") + b"\x00")
        table.extend(value.encode("utf-8") + b"\x00")
    return bytes(table)


def _as_planar(samples: ArrayLike) -> np.ndarray:
    planar = np.asarray(samples, dtype=np.float32)
    if planar.ndim == 1:
        planar = planar[np.newaxis, :]
    if planar.ndim != 2 or planar.shape[0] < 1:
        raise ValueError(f"samples must have shape (channels, frames), got {planar.shape}")
    return planar


def build_caf(
    samples: ArrayLike,
    sample_rate: float,
    *,
    layout: ChannelLayout | None = None,
    info: Mapping[str, str] | None = None,
    user_strings: Mapping[str, str] | None = None,
    midi_data: bytes | None = None,
    extra_chunks: Sequence[tuple[bytes, bytes]] = (),
    unknown_data_size: bool = False,
) -> bytes:
    """Build a complete CAF file.

    Args:
        samples: Planar audio of shape ``(channels, frames)``, or 1-D mono.
        sample_rate: The sample rate in Hz.
        layout: Channel layout for the ``chan`` chunk.
        info: Strings for the ``info`` chunk.
        user_strings: Strings for a ``uuid`` chunk under the info-strings UUID.
        midi_data: A Standard MIDI File for the ``midi`` chunk.
        extra_chunks: Additional ``(chunk_id, payload)`` chunks placed before
            the audio data.
        unknown_data_size: Write the data chunk size as ``-1`` (runs to the
            end of the file), as streaming writers do.

    Returns:
        The complete CAF file as bytes.
    """
    planar = _as_planar(samples)
    num_channels = planar.shape[0]

    description = AudioDescription(
        sample_rate=float(sample_rate),
        format_id=fourcc(LINEAR_PCM_FORMAT_ID),
        format_flags=FORMAT_FLAG_IS_FLOAT,
        bytes_per_packet=4 * num_channels,
        frames_per_packet=1,
        channels_per_frame=num_channels,
        bits_per_channel=32,
    )

    caf = bytearray()
    caf.extend(CAFF_ID)
    caf.extend(struct.pack(">HH", CAF_FILE_VERSION, 0))
    caf.extend(pack_chunk(DESC_ID, description.pack()))

    if layout is not None:
        caf.extend(pack_chunk(CHAN_ID, layout.pack()))
    if info:
        caf.extend(pack_chunk(INFO_ID, pack_string_table(info)))
    if user_strings:
        caf.extend(pack_chunk(UUID_ID, INFO_STRINGS_UUID + pack_string_table(user_strings)))
    if midi_data is not None:
        caf.extend(pack_chunk(MIDI_ID, midi_data))
    for chunk_id, payload in extra_chunks:
        caf.extend(pack_chunk(chunk_id, payload))

    # Edit count, then interleaved big-endian frames
    data = struct.pack(">I", 0) + planar.T.astype(">f4").tobytes()
    caf.extend(pack_chunk(DATA_ID, data, size=UNKNOWN_DATA_SIZE if unknown_data_size else None))

    return bytes(caf)


def save_caf(
    path: Path | str,
    samples: ArrayLike,
    sample_rate: float,
    *,
    layout: ChannelLayout | None = None,
    info: Mapping[str, str] | None = None,
    user_strings: Mapping[str, str] | None = None,
    midi_data: bytes | None = None,
) -> None:
    """Write a CAF file built by :func:`build_caf` to ``path``."""
    path = Path(path)
    path.write_bytes(
        build_caf(
            samples,
            sample_rate,
            layout=layout,
            info=info,
            user_strings=user_strings,
            midi_data=midi_data,
        )
    )
