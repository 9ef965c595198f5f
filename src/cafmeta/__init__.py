"""cafmeta - Core Audio Format metadata and channel layout toolkit.

This package reads the musical and descriptive metadata embedded in CAF
files and maps their vendor channel layouts onto an order-independent
channel role model.

Example Usage
-------------
>>> from cafmeta import open_audio_file
>>>
>>> audio = open_audio_file("session.caf")
>>> print(audio.metadata.get("tempo"), audio.metadata.get("key signature"))
>>> print(audio.channel_map)
"""

# Re-export format module for convenience
from cafmeta.format import (
    AudioFile,
    CafError,
    ChannelLayout,
    ChannelLayoutError,
    ChannelRole,
    ChannelRoleSet,
    LayoutTag,
    StreamDescription,
    build_caf,
    build_channel_map,
    open_audio_file,
    save_caf,
    scan_metadata,
    scan_metadata_file,
)

__all__ = [
    # Types
    "StreamDescription",
    "ChannelLayout",
    "ChannelRole",
    "ChannelRoleSet",
    "LayoutTag",
    # Reader
    "open_audio_file",
    "AudioFile",
    "scan_metadata",
    "scan_metadata_file",
    "build_channel_map",
    # Writer
    "build_caf",
    "save_caf",
    # Errors
    "CafError",
    "ChannelLayoutError",
]
