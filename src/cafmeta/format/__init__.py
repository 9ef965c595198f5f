"""Core Audio Format (CAF) metadata and channel layout module.

This module reads the metadata carried by CAF files and reconciles their
native channel layouts with an order-independent channel role model.

Format Overview
---------------
A CAF file is a fixed header followed by chunks, each a 4-byte type and a
signed 64-bit size:

    +----------------------------------------+
    | File header ("caff", version, flags)   |
    +----------------------------------------+
    | desc chunk (stream description)        |
    +----------------------------------------+
    | chan chunk (channel layout, optional)  |
    +----------------------------------------+
    | info / uuid chunks (key/value strings) |
    +----------------------------------------+
    | midi chunk (Standard MIDI File)        |
    |   - tempo                              |
    |   - time signature                     |
    |   - key signature                      |
    +----------------------------------------+
    | data chunk (audio packets)             |
    |   - size -1: runs to end of file       |
    +----------------------------------------+

Example Usage
-------------
>>> from cafmeta.format import open_audio_file, scan_metadata_file
>>> is_caf, metadata = scan_metadata_file("loop.caf")
>>> print(metadata.get("tempo"))
>>> audio = open_audio_file("surround.caf")
>>> frames = audio.read_frames(0, 1024)  # canonical channel order
"""

from cafmeta.format.caf import CafError, TruncatedDataError
from cafmeta.format.channel_map import ChannelLayoutError, build_channel_map
from cafmeta.format.codec import FrameReader, FrameWriter
from cafmeta.format.extractors import RESERVED_KEYS, derive_musical_metadata
from cafmeta.format.layouts import (
    ChannelLabel,
    ChannelRole,
    ChannelRoleSet,
    LayoutTag,
    layout_tag_for_roles,
    roles_for_layout,
    roles_for_tag,
)
from cafmeta.format.midi import EventSequenceError, EventTimeline, parse_event_sequence
from cafmeta.format.reader import AudioFile, open_audio_file
from cafmeta.format.types import (
    ChannelDescription,
    ChannelLayout,
    ChannelMap,
    MetadataMap,
    StreamDescription,
)
from cafmeta.format.walker import iter_chunks, scan_metadata, scan_metadata_file
from cafmeta.format.writer import build_caf, save_caf

__all__ = [
    # Types
    "StreamDescription",
    "ChannelLayout",
    "ChannelDescription",
    "ChannelMap",
    "MetadataMap",
    # Chunk walk
    "scan_metadata",
    "scan_metadata_file",
    "iter_chunks",
    # Metadata
    "RESERVED_KEYS",
    "derive_musical_metadata",
    "EventTimeline",
    "parse_event_sequence",
    # Channel layouts
    "ChannelRole",
    "ChannelRoleSet",
    "ChannelLabel",
    "LayoutTag",
    "roles_for_tag",
    "roles_for_layout",
    "layout_tag_for_roles",
    "build_channel_map",
    # Reader
    "open_audio_file",
    "AudioFile",
    "FrameReader",
    # Writer
    "FrameWriter",
    "build_caf",
    "save_caf",
    # Errors
    "CafError",
    "TruncatedDataError",
    "EventSequenceError",
    "ChannelLayoutError",
]
