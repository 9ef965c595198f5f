"""Mapping from file channel order to canonical role order.

A CAF file stores its channels in the order its layout tag (or channel
descriptions) declares. Callers receive audio in canonical order instead:
the ascending order of the roles in the file's :class:`ChannelRoleSet`.
"""

import logging

from cafmeta.format.layouts import ChannelRoleSet, roles_for_layout, tag_name
from cafmeta.format.types import ChannelLayout, ChannelMap

logger = logging.getLogger(__name__)


class ChannelLayoutError(Exception):
    """The static layout tables produced a role that cannot be placed."""


def identity_channel_map(num_channels: int) -> ChannelMap:
    return tuple(range(num_channels))


def build_channel_map(
    layout: ChannelLayout | None,
    num_channels: int,
    *,
    strict: bool = False,
) -> ChannelMap:
    """Build the file-channel to canonical-slot permutation for a stream.

    Args:
        layout: The file's native layout, or ``None`` when it declares none.
        num_channels: Number of channels actually stored in the file.
        strict: Raise :class:`ChannelLayoutError` for table inconsistencies
            instead of logging them and falling back to the identity map.

    Returns:
        A tuple whose entry ``i`` is the canonical slot of file channel ``i``.
        When the layout's role count does not match ``num_channels`` the
        layout cannot be trusted and the identity map is returned.
    """
    if layout is None:
        return identity_channel_map(num_channels)

    try:
        declared = roles_for_layout(layout)
    except ValueError as e:
        return _fail(f"Cannot resolve layout {tag_name(layout.tag)}: {e}", num_channels, strict)

    if len(declared) != num_channels:
        logger.warning(
            "Layout %s declares %d channels but the stream has %d; using file order",
            tag_name(layout.tag),
            len(declared),
            num_channels,
        )
        return identity_channel_map(num_channels)

    # Duplicate roles collapse in the set and show up as a non-permutation below
    canonical = ChannelRoleSet.of(declared).ordered
    channel_map = [canonical.index(role) for role in declared]

    if sorted(channel_map) != list(range(num_channels)):
        return _fail(
            f"Layout {tag_name(layout.tag)} does not describe a channel permutation: {channel_map}",
            num_channels,
            strict,
        )

    return tuple(channel_map)


def _fail(message: str, num_channels: int, strict: bool) -> ChannelMap:
    if strict:
        raise ChannelLayoutError(message)
    logger.error("%s; falling back to file channel order", message)
    return identity_channel_map(num_channels)
