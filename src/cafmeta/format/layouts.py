"""Channel roles and the CoreAudio channel-layout tables.

CoreAudio identifies a speaker arrangement with a numeric layout tag whose
low 16 bits hold the channel count, and lists the speakers of that
arrangement in its own, vendor-defined order. This module maps those tags,
channel bitmaps and per-channel labels onto :class:`ChannelRole` values,
an order-independent speaker identity, and back again.

Table Layout
------------
Every known tag is listed once in ``_SPEAKER_LAYOUTS`` together with its
roles in CoreAudio channel order. Layouts that have a standard name (see
:data:`STANDARD_LAYOUTS`) come first, so that converting a role set back to
a tag always prefers the standard tag over a later tag with the same
speakers.
"""

import math
from collections.abc import Iterable
from dataclasses import dataclass
from enum import IntEnum

from cafmeta.format.types import ChannelLayout

DISCRETE_ROLE_BASE = 128
"""Role value of the first discrete (unlabelled) channel."""

MAX_DISCRETE_CHANNELS = 1 << 16
"""Discrete roles mirror the 16-bit index of the ``DISCRETE_n`` channel labels."""

MAX_AMBISONIC_CHANNELS = 36
"""Ambisonic roles are defined up to fifth order (36 ACN components)."""


def _ambisonic_value(acn: int) -> int:
    # ACN 0-3 sit before the two top-side roles, ACN 4+ after them
    return 24 + acn if acn < 4 else 26 + acn


class ChannelRole(IntEnum):
    """Abstract speaker identity.

    Roles have no inherent order; the ascending role value is only used as
    the canonical slot order of a :class:`ChannelRoleSet`. Discrete roles
    (``DISCRETE_0`` onwards) are created on demand with :meth:`discrete`.
    """

    UNKNOWN = 0
    LEFT = 1
    RIGHT = 2
    CENTRE = 3
    LFE = 4
    """Low-frequency effects."""

    LEFT_SURROUND = 5
    RIGHT_SURROUND = 6
    LEFT_CENTRE = 7
    RIGHT_CENTRE = 8
    CENTRE_SURROUND = 9
    LEFT_SURROUND_SIDE = 10
    RIGHT_SURROUND_SIDE = 11
    TOP_MIDDLE = 12
    TOP_FRONT_LEFT = 13
    TOP_FRONT_CENTRE = 14
    TOP_FRONT_RIGHT = 15
    TOP_REAR_LEFT = 16
    TOP_REAR_CENTRE = 17
    TOP_REAR_RIGHT = 18
    LFE2 = 19
    """Second low-frequency effects channel."""

    LEFT_SURROUND_REAR = 20
    RIGHT_SURROUND_REAR = 21
    WIDE_LEFT = 22
    WIDE_RIGHT = 23
    AMBISONIC_ACN0 = 24
    AMBISONIC_ACN1 = 25
    AMBISONIC_ACN2 = 26
    AMBISONIC_ACN3 = 27
    TOP_SIDE_LEFT = 28
    TOP_SIDE_RIGHT = 29
    AMBISONIC_ACN4 = 30
    AMBISONIC_ACN5 = 31
    AMBISONIC_ACN6 = 32
    AMBISONIC_ACN7 = 33
    AMBISONIC_ACN8 = 34
    AMBISONIC_ACN9 = 35
    AMBISONIC_ACN10 = 36
    AMBISONIC_ACN11 = 37
    AMBISONIC_ACN12 = 38
    AMBISONIC_ACN13 = 39
    AMBISONIC_ACN14 = 40
    AMBISONIC_ACN15 = 41
    AMBISONIC_ACN16 = 42
    AMBISONIC_ACN17 = 43
    AMBISONIC_ACN18 = 44
    AMBISONIC_ACN19 = 45
    AMBISONIC_ACN20 = 46
    AMBISONIC_ACN21 = 47
    AMBISONIC_ACN22 = 48
    AMBISONIC_ACN23 = 49
    AMBISONIC_ACN24 = 50
    AMBISONIC_ACN25 = 51
    AMBISONIC_ACN26 = 52
    AMBISONIC_ACN27 = 53
    AMBISONIC_ACN28 = 54
    AMBISONIC_ACN29 = 55
    AMBISONIC_ACN30 = 56
    AMBISONIC_ACN31 = 57
    AMBISONIC_ACN32 = 58
    AMBISONIC_ACN33 = 59
    AMBISONIC_ACN34 = 60
    AMBISONIC_ACN35 = 61

    # First-order B-format names
    AMBISONIC_W = 24
    AMBISONIC_X = 27
    AMBISONIC_Y = 25
    AMBISONIC_Z = 26

    DISCRETE_0 = DISCRETE_ROLE_BASE

    @classmethod
    def _missing_(cls, value: object) -> "ChannelRole | None":
        # Pseudo-members stay in the enum's value table for the life of the
        # process, so at most MAX_DISCRETE_CHANNELS of them ever exist
        limit = DISCRETE_ROLE_BASE + MAX_DISCRETE_CHANNELS
        if isinstance(value, int) and DISCRETE_ROLE_BASE < value < limit:
            pseudo = int.__new__(cls, value)
            pseudo._name_ = f"DISCRETE_{value - DISCRETE_ROLE_BASE}"
            pseudo._value_ = value
            return cls._value2member_map_.setdefault(value, pseudo)
        return None

    @classmethod
    def discrete(cls, index: int) -> "ChannelRole":
        """The role of the ``index``-th discrete channel.

        Equal indices always return the same member.
        """
        if not 0 <= index < MAX_DISCRETE_CHANNELS:
            raise ValueError(f"Discrete channel index out of range: {index}")
        return cls(DISCRETE_ROLE_BASE + index)

    @classmethod
    def ambisonic(cls, acn: int) -> "ChannelRole":
        """The role of ambisonic component ``acn`` (ACN ordering)."""
        if not 0 <= acn < MAX_AMBISONIC_CHANNELS:
            raise ValueError(f"Ambisonic channel number out of range: {acn}")
        return cls(_ambisonic_value(acn))

    @property
    def is_discrete(self) -> bool:
        return self.value >= DISCRETE_ROLE_BASE

    @property
    def ambisonic_channel_number(self) -> int | None:
        """The ACN index of an ambisonic role, ``None`` for any other role."""
        if 24 <= self.value <= 27:
            return self.value - 24
        if 30 <= self.value <= 61:
            return self.value - 26
        return None


def _tag(index: int, channels: int) -> int:
    return (index << 16) | channels


class LayoutTag(IntEnum):
    """CoreAudio ``AudioChannelLayoutTag`` values.

    The numeric values are part of the file format and must not change.
    Several tags are aliases of one another (e.g. ``ITU_3_2`` is
    ``MPEG_5_0_A``); enum aliases keep them resolving to the same member.
    """

    USE_CHANNEL_DESCRIPTIONS = _tag(0, 0)
    USE_CHANNEL_BITMAP = _tag(1, 0)

    MONO = _tag(100, 1)
    STEREO = _tag(101, 2)
    STEREO_HEADPHONES = _tag(102, 2)
    MATRIX_STEREO = _tag(103, 2)
    MID_SIDE = _tag(104, 2)
    XY = _tag(105, 2)
    BINAURAL = _tag(106, 2)
    AMBISONIC_B_FORMAT = _tag(107, 4)
    QUADRAPHONIC = _tag(108, 4)
    PENTAGONAL = _tag(109, 5)
    HEXAGONAL = _tag(110, 6)
    OCTAGONAL = _tag(111, 8)
    CUBE = _tag(112, 8)

    MPEG_1_0 = MONO
    MPEG_2_0 = STEREO
    MPEG_3_0_A = _tag(113, 3)
    MPEG_3_0_B = _tag(114, 3)
    MPEG_4_0_A = _tag(115, 4)
    MPEG_4_0_B = _tag(116, 4)
    MPEG_5_0_A = _tag(117, 5)
    MPEG_5_0_B = _tag(118, 5)
    MPEG_5_0_C = _tag(119, 5)
    MPEG_5_0_D = _tag(120, 5)
    MPEG_5_1_A = _tag(121, 6)
    MPEG_5_1_B = _tag(122, 6)
    MPEG_5_1_C = _tag(123, 6)
    MPEG_5_1_D = _tag(124, 6)
    MPEG_6_1_A = _tag(125, 7)
    MPEG_7_1_A = _tag(126, 8)
    MPEG_7_1_B = _tag(127, 8)
    MPEG_7_1_C = _tag(128, 8)
    EMAGIC_DEFAULT_7_1 = _tag(129, 8)
    SMPTE_DTV = _tag(130, 8)

    ITU_1_0 = MONO
    ITU_2_0 = STEREO
    ITU_2_1 = _tag(131, 3)
    ITU_2_2 = _tag(132, 4)
    ITU_3_0 = MPEG_3_0_A
    ITU_3_1 = MPEG_4_0_A
    ITU_3_2 = MPEG_5_0_A
    ITU_3_2_1 = MPEG_5_1_A
    ITU_3_4_1 = MPEG_7_1_C

    DVD_0 = MONO
    DVD_1 = STEREO
    DVD_2 = ITU_2_1
    DVD_3 = ITU_2_2
    DVD_4 = _tag(133, 3)
    DVD_5 = _tag(134, 4)
    DVD_6 = _tag(135, 5)
    DVD_7 = MPEG_3_0_A
    DVD_8 = MPEG_4_0_A
    DVD_9 = MPEG_5_0_A
    DVD_10 = _tag(136, 4)
    DVD_11 = _tag(137, 5)
    DVD_12 = MPEG_5_1_A
    DVD_13 = DVD_8
    DVD_14 = DVD_9
    DVD_15 = DVD_10
    DVD_16 = DVD_11
    DVD_17 = DVD_12
    DVD_18 = _tag(138, 5)
    DVD_19 = MPEG_5_0_B
    DVD_20 = MPEG_5_1_B

    AUDIO_UNIT_4 = QUADRAPHONIC
    AUDIO_UNIT_5 = PENTAGONAL
    AUDIO_UNIT_6 = HEXAGONAL
    AUDIO_UNIT_8 = OCTAGONAL
    AUDIO_UNIT_5_0 = MPEG_5_0_B
    AUDIO_UNIT_6_0 = _tag(139, 6)
    AUDIO_UNIT_7_0 = _tag(140, 7)
    AUDIO_UNIT_7_0_FRONT = _tag(148, 7)
    AUDIO_UNIT_5_1 = MPEG_5_1_A
    AUDIO_UNIT_6_1 = MPEG_6_1_A
    AUDIO_UNIT_7_1 = MPEG_7_1_C
    AUDIO_UNIT_7_1_FRONT = MPEG_7_1_A

    AAC_3_0 = MPEG_3_0_B
    AAC_QUADRAPHONIC = QUADRAPHONIC
    AAC_4_0 = MPEG_4_0_B
    AAC_5_0 = MPEG_5_0_D
    AAC_5_1 = MPEG_5_1_D
    AAC_6_0 = _tag(141, 6)
    AAC_6_1 = _tag(142, 7)
    AAC_7_0 = _tag(143, 7)
    AAC_7_1 = MPEG_7_1_B
    AAC_7_1_B = _tag(183, 8)
    AAC_7_1_C = _tag(184, 8)
    AAC_OCTAGONAL = _tag(144, 8)

    TMH_10_2_STD = _tag(145, 16)

    AC3_1_0_1 = _tag(149, 2)
    AC3_3_0 = _tag(150, 3)
    AC3_3_1 = _tag(151, 4)
    AC3_3_0_1 = _tag(152, 4)
    AC3_2_1_1 = _tag(153, 4)
    AC3_3_1_1 = _tag(154, 5)

    EAC_6_0_A = _tag(155, 6)
    EAC_7_0_A = _tag(156, 7)
    EAC3_6_1_A = _tag(157, 7)
    EAC3_6_1_B = _tag(158, 7)
    EAC3_6_1_C = _tag(159, 7)
    EAC3_7_1_A = _tag(160, 8)
    EAC3_7_1_B = _tag(161, 8)
    EAC3_7_1_C = _tag(162, 8)
    EAC3_7_1_D = _tag(163, 8)
    EAC3_7_1_E = _tag(164, 8)
    EAC3_7_1_F = _tag(165, 8)
    EAC3_7_1_G = _tag(166, 8)
    EAC3_7_1_H = _tag(167, 8)

    DTS_3_1 = _tag(168, 4)
    DTS_4_1 = _tag(169, 5)
    DTS_6_0_A = _tag(170, 6)
    DTS_6_0_B = _tag(171, 6)
    DTS_6_0_C = _tag(172, 6)
    DTS_6_1_A = _tag(173, 7)
    DTS_6_1_B = _tag(174, 7)
    DTS_6_1_C = _tag(175, 7)
    DTS_7_0 = _tag(176, 7)
    DTS_7_1 = _tag(177, 8)
    DTS_8_0_A = _tag(178, 8)
    DTS_8_0_B = _tag(179, 8)
    DTS_8_1_A = _tag(180, 9)
    DTS_8_1_B = _tag(181, 9)
    DTS_6_1_D = _tag(182, 7)

    WAVE_2_1 = DVD_4
    WAVE_3_0 = MPEG_3_0_A
    WAVE_4_0_A = ITU_2_2
    WAVE_4_0_B = _tag(185, 4)
    WAVE_5_0_A = MPEG_5_0_A
    WAVE_5_0_B = _tag(186, 5)
    WAVE_5_1_A = MPEG_5_1_A
    WAVE_5_1_B = _tag(187, 6)
    WAVE_6_1 = _tag(188, 7)
    WAVE_7_1 = _tag(189, 8)

    ATMOS_7_1_4 = _tag(192, 12)
    ATMOS_9_1_6 = _tag(193, 16)
    ATMOS_5_1_2 = _tag(194, 8)

    DISCRETE_IN_ORDER = _tag(147, 0)
    HOA_ACN_SN3D = _tag(190, 0)
    HOA_ACN_N3D = _tag(191, 0)
    UNKNOWN = 0xFFFF0000


class ChannelLabel(IntEnum):
    """CoreAudio ``AudioChannelLabel`` values used in channel descriptions."""

    UNUSED = 0
    LEFT = 1
    RIGHT = 2
    CENTER = 3
    LFE_SCREEN = 4
    LEFT_SURROUND = 5
    RIGHT_SURROUND = 6
    LEFT_CENTER = 7
    RIGHT_CENTER = 8
    CENTER_SURROUND = 9
    LEFT_SURROUND_DIRECT = 10
    RIGHT_SURROUND_DIRECT = 11
    TOP_CENTER_SURROUND = 12
    VERTICAL_HEIGHT_LEFT = 13
    VERTICAL_HEIGHT_CENTER = 14
    VERTICAL_HEIGHT_RIGHT = 15
    TOP_BACK_LEFT = 16
    TOP_BACK_CENTER = 17
    TOP_BACK_RIGHT = 18
    REAR_SURROUND_LEFT = 33
    REAR_SURROUND_RIGHT = 34
    LEFT_WIDE = 35
    RIGHT_WIDE = 36
    LFE2 = 37
    LEFT_TOTAL = 38
    RIGHT_TOTAL = 39
    HEARING_IMPAIRED = 40
    NARRATION = 41
    MONO = 42
    DIALOG_CENTRIC_MIX = 43
    CENTER_SURROUND_DIRECT = 44
    HAPTIC = 45
    LEFT_TOP_MIDDLE = 49
    RIGHT_TOP_MIDDLE = 51
    LEFT_TOP_REAR = 52
    CENTER_TOP_REAR = 53
    RIGHT_TOP_REAR = 54
    USE_COORDINATES = 100
    AMBISONIC_W = 200
    AMBISONIC_X = 201
    AMBISONIC_Y = 202
    AMBISONIC_Z = 203
    MS_MID = 204
    MS_SIDE = 205
    XY_X = 206
    XY_Y = 207
    BINAURAL_LEFT = 208
    BINAURAL_RIGHT = 209
    HEADPHONES_LEFT = 301
    HEADPHONES_RIGHT = 302
    CLICK_TRACK = 304
    FOREIGN_LANGUAGE = 305
    DISCRETE = 400
    DISCRETE_0 = 1 << 16
    HOA_ACN_0 = 2 << 16
    UNKNOWN = 0xFFFFFFFF


_LABEL_ROLES: dict[int, ChannelRole] = {
    ChannelLabel.LEFT: ChannelRole.LEFT,
    ChannelLabel.HEADPHONES_LEFT: ChannelRole.LEFT,
    ChannelLabel.RIGHT: ChannelRole.RIGHT,
    ChannelLabel.HEADPHONES_RIGHT: ChannelRole.RIGHT,
    ChannelLabel.CENTER: ChannelRole.CENTRE,
    ChannelLabel.MONO: ChannelRole.CENTRE,
    ChannelLabel.LFE_SCREEN: ChannelRole.LFE,
    ChannelLabel.LEFT_SURROUND: ChannelRole.LEFT_SURROUND,
    ChannelLabel.RIGHT_SURROUND: ChannelRole.RIGHT_SURROUND,
    ChannelLabel.LEFT_CENTER: ChannelRole.LEFT_CENTRE,
    ChannelLabel.RIGHT_CENTER: ChannelRole.RIGHT_CENTRE,
    ChannelLabel.CENTER_SURROUND: ChannelRole.CENTRE_SURROUND,
    ChannelLabel.LEFT_SURROUND_DIRECT: ChannelRole.LEFT_SURROUND_SIDE,
    ChannelLabel.RIGHT_SURROUND_DIRECT: ChannelRole.RIGHT_SURROUND_SIDE,
    ChannelLabel.TOP_CENTER_SURROUND: ChannelRole.TOP_MIDDLE,
    ChannelLabel.VERTICAL_HEIGHT_LEFT: ChannelRole.TOP_FRONT_LEFT,
    ChannelLabel.VERTICAL_HEIGHT_CENTER: ChannelRole.TOP_FRONT_CENTRE,
    ChannelLabel.VERTICAL_HEIGHT_RIGHT: ChannelRole.TOP_FRONT_RIGHT,
    ChannelLabel.TOP_BACK_LEFT: ChannelRole.TOP_REAR_LEFT,
    ChannelLabel.TOP_BACK_CENTER: ChannelRole.TOP_REAR_CENTRE,
    ChannelLabel.TOP_BACK_RIGHT: ChannelRole.TOP_REAR_RIGHT,
    ChannelLabel.LEFT_TOP_REAR: ChannelRole.TOP_REAR_LEFT,
    ChannelLabel.CENTER_TOP_REAR: ChannelRole.TOP_REAR_CENTRE,
    ChannelLabel.RIGHT_TOP_REAR: ChannelRole.TOP_REAR_RIGHT,
    ChannelLabel.LEFT_TOP_MIDDLE: ChannelRole.TOP_SIDE_LEFT,
    ChannelLabel.RIGHT_TOP_MIDDLE: ChannelRole.TOP_SIDE_RIGHT,
    ChannelLabel.REAR_SURROUND_LEFT: ChannelRole.LEFT_SURROUND_REAR,
    ChannelLabel.REAR_SURROUND_RIGHT: ChannelRole.RIGHT_SURROUND_REAR,
    ChannelLabel.LEFT_WIDE: ChannelRole.WIDE_LEFT,
    ChannelLabel.RIGHT_WIDE: ChannelRole.WIDE_RIGHT,
    ChannelLabel.LFE2: ChannelRole.LFE2,
    ChannelLabel.AMBISONIC_W: ChannelRole.AMBISONIC_W,
    ChannelLabel.AMBISONIC_X: ChannelRole.AMBISONIC_X,
    ChannelLabel.AMBISONIC_Y: ChannelRole.AMBISONIC_Y,
    ChannelLabel.AMBISONIC_Z: ChannelRole.AMBISONIC_Z,
}

# Speaker bitmap bits 0-17, in bit order
_BITMAP_ROLES: tuple[ChannelRole, ...] = tuple(ChannelRole(value) for value in range(1, 19))


def _build_speaker_layouts() -> tuple[tuple[LayoutTag, tuple[ChannelRole, ...]], ...]:
    R_ = ChannelRole
    L, R, C, LFE = R_.LEFT, R_.RIGHT, R_.CENTRE, R_.LFE
    Ls, Rs, Lc, Rc, Cs = (
        R_.LEFT_SURROUND,
        R_.RIGHT_SURROUND,
        R_.LEFT_CENTRE,
        R_.RIGHT_CENTRE,
        R_.CENTRE_SURROUND,
    )
    Lss, Rss = R_.LEFT_SURROUND_SIDE, R_.RIGHT_SURROUND_SIDE
    Lrs, Rrs = R_.LEFT_SURROUND_REAR, R_.RIGHT_SURROUND_REAR
    Lw, Rw = R_.WIDE_LEFT, R_.WIDE_RIGHT
    Tm, Tfl, Tfc, Tfr = R_.TOP_MIDDLE, R_.TOP_FRONT_LEFT, R_.TOP_FRONT_CENTRE, R_.TOP_FRONT_RIGHT
    Trl, Trc, Trr = R_.TOP_REAR_LEFT, R_.TOP_REAR_CENTRE, R_.TOP_REAR_RIGHT
    Tsl, Tsr = R_.TOP_SIDE_LEFT, R_.TOP_SIDE_RIGHT
    W, X, Y, Z = R_.AMBISONIC_W, R_.AMBISONIC_X, R_.AMBISONIC_Y, R_.AMBISONIC_Z
    D0, D1 = R_.discrete(0), R_.discrete(1)

    T = LayoutTag
    return (
        # layouts with a standard name first
        (T.MONO, (C,)),
        (T.STEREO, (L, R)),
        (T.MPEG_3_0_A, (L, R, C)),
        (T.ITU_2_1, (L, R, Cs)),
        (T.MPEG_4_0_A, (L, R, C, Cs)),
        (T.MPEG_5_0_A, (L, R, C, Ls, Rs)),
        (T.MPEG_5_1_A, (L, R, C, LFE, Ls, Rs)),
        (T.AUDIO_UNIT_6_0, (L, R, Ls, Rs, C, Cs)),
        (T.MPEG_6_1_A, (L, R, C, LFE, Ls, Rs, Cs)),
        (T.DTS_6_0_A, (L, R, Lss, Rss, Ls, Rs)),
        (T.DTS_6_1_A, (L, R, Lss, Rss, Ls, Rs, LFE)),
        (T.AUDIO_UNIT_7_0, (L, R, Lss, Rss, C, Lrs, Rrs)),
        (T.AUDIO_UNIT_7_0_FRONT, (L, R, Ls, Rs, C, Lc, Rc)),
        (T.MPEG_7_1_C, (L, R, C, LFE, Lss, Rss, Lrs, Rrs)),
        (T.MPEG_7_1_A, (L, R, C, LFE, Ls, Rs, Lc, Rc)),
        (T.AMBISONIC_B_FORMAT, (W, X, Y, Z)),
        (T.QUADRAPHONIC, (L, R, Ls, Rs)),
        (T.PENTAGONAL, (L, R, Lrs, Rrs, C)),
        (T.HEXAGONAL, (L, R, Lrs, Rrs, C, Cs)),
        (T.OCTAGONAL, (L, R, Ls, Rs, C, Cs, Lw, Rw)),
        # less common layouts
        (T.STEREO_HEADPHONES, (L, R)),
        (T.MATRIX_STEREO, (L, R)),
        (T.MID_SIDE, (C, D0)),
        (T.XY, (X, Y)),
        (T.BINAURAL, (L, R)),
        (T.CUBE, (L, R, Ls, Rs, Tfl, Tfr, Trl, Trr)),
        (T.MPEG_3_0_B, (C, L, R)),
        (T.MPEG_4_0_B, (C, L, R, Cs)),
        (T.MPEG_5_0_B, (L, R, Ls, Rs, C)),
        (T.MPEG_5_0_C, (L, C, R, Ls, Rs)),
        (T.MPEG_5_0_D, (C, L, R, Ls, Rs)),
        (T.MPEG_5_1_B, (L, R, Ls, Rs, C, LFE)),
        (T.MPEG_5_1_C, (L, C, R, Ls, Rs, LFE)),
        (T.MPEG_5_1_D, (C, L, R, Ls, Rs, LFE)),
        (T.MPEG_7_1_B, (C, Lc, Rc, L, R, Ls, Rs, LFE)),
        (T.EMAGIC_DEFAULT_7_1, (L, R, Ls, Rs, C, LFE, Lc, Rc)),
        (T.SMPTE_DTV, (L, R, C, LFE, Ls, Rs, D0, D1)),
        (T.ITU_2_2, (L, R, Ls, Rs)),
        (T.DVD_4, (L, R, LFE)),
        (T.DVD_5, (L, R, LFE, Cs)),
        (T.DVD_6, (L, R, LFE, Ls, Rs)),
        (T.DVD_10, (L, R, C, LFE)),
        (T.DVD_11, (L, R, C, LFE, Cs)),
        (T.DVD_18, (L, R, Ls, Rs, LFE)),
        (T.AAC_6_0, (C, L, R, Ls, Rs, Cs)),
        (T.AAC_6_1, (C, L, R, Ls, Rs, Cs, LFE)),
        (T.AAC_7_0, (C, L, R, Ls, Rs, Lrs, Rrs)),
        (T.AAC_7_1_B, (C, L, R, Ls, Rs, Lrs, Rrs, LFE)),
        (T.AAC_7_1_C, (C, L, R, Ls, Rs, LFE, Tfl, Tfr)),
        (T.AAC_OCTAGONAL, (C, L, R, Ls, Rs, Lrs, Rrs, Cs)),
        (
            T.TMH_10_2_STD,
            (L, R, C, Tfc, Lss, Rss, Ls, Rs, Tfl, Tfr, Lw, Rw, Trc, Cs, LFE, R_.LFE2),
        ),
        (T.AC3_1_0_1, (C, LFE)),
        (T.AC3_3_0, (L, C, R)),
        (T.AC3_3_1, (L, C, R, Cs)),
        (T.AC3_3_0_1, (L, C, R, LFE)),
        (T.AC3_2_1_1, (L, R, Cs, LFE)),
        (T.AC3_3_1_1, (L, C, R, Cs, LFE)),
        (T.EAC_6_0_A, (L, C, R, Ls, Rs, Cs)),
        (T.EAC_7_0_A, (L, C, R, Ls, Rs, Lrs, Rrs)),
        (T.EAC3_6_1_A, (L, C, R, Ls, Rs, LFE, Cs)),
        (T.EAC3_6_1_B, (L, C, R, Ls, Rs, LFE, Tm)),
        (T.EAC3_6_1_C, (L, C, R, Ls, Rs, LFE, Tfc)),
        (T.EAC3_7_1_A, (L, C, R, Ls, Rs, LFE, Lrs, Rrs)),
        (T.EAC3_7_1_B, (L, C, R, Ls, Rs, LFE, Lc, Rc)),
        (T.EAC3_7_1_C, (L, C, R, Ls, Rs, LFE, Lss, Rss)),
        (T.EAC3_7_1_D, (L, C, R, Ls, Rs, LFE, Lw, Rw)),
        (T.EAC3_7_1_E, (L, C, R, Ls, Rs, LFE, Tfl, Tfr)),
        (T.EAC3_7_1_F, (L, C, R, Ls, Rs, LFE, Cs, Tm)),
        (T.EAC3_7_1_G, (L, C, R, Ls, Rs, LFE, Cs, Tfc)),
        (T.EAC3_7_1_H, (L, C, R, Ls, Rs, LFE, Tm, Tfc)),
        (T.DTS_3_1, (C, L, R, LFE)),
        (T.DTS_4_1, (C, L, R, Cs, LFE)),
        (T.DTS_6_0_B, (C, L, R, Lrs, Rrs, Tm)),
        (T.DTS_6_0_C, (C, Cs, L, R, Lrs, Rrs)),
        (T.DTS_6_1_B, (C, L, R, Lrs, Rrs, Tm, LFE)),
        (T.DTS_6_1_C, (C, Cs, L, R, Lrs, Rrs, LFE)),
        (T.DTS_6_1_D, (C, L, R, Ls, Rs, LFE, Cs)),
        (T.DTS_7_0, (Lc, C, Rc, L, R, Ls, Rs)),
        (T.DTS_7_1, (Lc, C, Rc, L, R, Ls, Rs, LFE)),
        (T.DTS_8_0_A, (Lc, Rc, L, R, Ls, Rs, Lrs, Rrs)),
        (T.DTS_8_0_B, (Lc, C, Rc, L, R, Ls, Cs, Rs)),
        (T.DTS_8_1_A, (Lc, Rc, L, R, Ls, Rs, Lrs, Rrs, LFE)),
        (T.DTS_8_1_B, (Lc, C, Rc, L, R, Ls, Cs, Rs, LFE)),
        (T.WAVE_4_0_B, (L, R, Lrs, Rrs)),
        (T.WAVE_5_0_B, (L, R, C, Lrs, Rrs)),
        (T.WAVE_5_1_B, (L, R, C, LFE, Lrs, Rrs)),
        (T.WAVE_6_1, (L, R, C, LFE, Cs, Lss, Rss)),
        (T.WAVE_7_1, (L, R, C, LFE, Lrs, Rrs, Lss, Rss)),
        (T.ATMOS_5_1_2, (L, R, C, LFE, Ls, Rs, Tsl, Tsr)),
        (T.ATMOS_7_1_4, (L, R, C, LFE, Lss, Rss, Lrs, Rrs, Tfl, Tfr, Trl, Trr)),
        (
            T.ATMOS_9_1_6,
            (L, R, C, LFE, Lss, Rss, Lrs, Rrs, Lw, Rw, Tfl, Tfr, Tsl, Tsr, Trl, Trr),
        ),
    )


_SPEAKER_LAYOUTS = _build_speaker_layouts()
_ROLES_BY_TAG: dict[int, tuple[ChannelRole, ...]] = dict(_SPEAKER_LAYOUTS)


@dataclass(frozen=True)
class ChannelRoleSet:
    """An unordered set of channel roles.

    The canonical slot order used when delivering decoded audio is the
    ascending role value (see :attr:`ordered`).
    """

    roles: frozenset[ChannelRole] = frozenset()

    @classmethod
    def of(cls, roles: Iterable[int]) -> "ChannelRoleSet":
        return cls(frozenset(ChannelRole(role) for role in roles))

    @classmethod
    def ambisonic(cls, order: int) -> "ChannelRoleSet":
        """The full set of ambisonic components of the given order."""
        return cls.of(ChannelRole.ambisonic(acn) for acn in range((order + 1) ** 2))

    def __len__(self) -> int:
        return len(self.roles)

    def __contains__(self, role: object) -> bool:
        return role in self.roles

    @property
    def ordered(self) -> tuple[ChannelRole, ...]:
        return tuple(sorted(self.roles))

    def index_of(self, role: int) -> int | None:
        """Slot index of ``role`` in canonical order, ``None`` if absent."""
        if role not in self.roles:
            return None
        return self.ordered.index(role)

    @property
    def ambisonic_order(self) -> int | None:
        """The ambisonic order if this set is exactly one full ambisonic order."""
        count = len(self.roles)
        if count == 0:
            return None

        acns = {role.ambisonic_channel_number for role in self.roles}
        order = math.isqrt(count) - 1
        if (order + 1) ** 2 != count or acns != set(range(count)):
            return None
        return order


@dataclass(frozen=True)
class StandardLayout:
    """A named speaker arrangement and the tag it is stored under."""

    name: str
    tag: int
    roles: ChannelRoleSet


def _standard_layouts() -> tuple[StandardLayout, ...]:
    R_ = ChannelRole
    base = {
        "mono": (LayoutTag.MONO, [R_.CENTRE]),
        "stereo": (LayoutTag.STEREO, [R_.LEFT, R_.RIGHT]),
        "LCR": (LayoutTag.MPEG_3_0_A, [R_.LEFT, R_.RIGHT, R_.CENTRE]),
        "LRS": (LayoutTag.ITU_2_1, [R_.LEFT, R_.RIGHT, R_.CENTRE_SURROUND]),
        "LCRS": (LayoutTag.MPEG_4_0_A, [R_.LEFT, R_.RIGHT, R_.CENTRE, R_.CENTRE_SURROUND]),
        "5.0": (
            LayoutTag.MPEG_5_0_A,
            [R_.LEFT, R_.RIGHT, R_.CENTRE, R_.LEFT_SURROUND, R_.RIGHT_SURROUND],
        ),
        "5.1": (
            LayoutTag.MPEG_5_1_A,
            [R_.LEFT, R_.RIGHT, R_.CENTRE, R_.LFE, R_.LEFT_SURROUND, R_.RIGHT_SURROUND],
        ),
        "6.0": (
            LayoutTag.AUDIO_UNIT_6_0,
            [
                R_.LEFT,
                R_.RIGHT,
                R_.CENTRE,
                R_.LEFT_SURROUND,
                R_.RIGHT_SURROUND,
                R_.CENTRE_SURROUND,
            ],
        ),
        "6.1": (
            LayoutTag.MPEG_6_1_A,
            [
                R_.LEFT,
                R_.RIGHT,
                R_.CENTRE,
                R_.LFE,
                R_.LEFT_SURROUND,
                R_.RIGHT_SURROUND,
                R_.CENTRE_SURROUND,
            ],
        ),
        "6.0 Music": (
            LayoutTag.DTS_6_0_A,
            [
                R_.LEFT,
                R_.RIGHT,
                R_.LEFT_SURROUND,
                R_.RIGHT_SURROUND,
                R_.LEFT_SURROUND_SIDE,
                R_.RIGHT_SURROUND_SIDE,
            ],
        ),
        "6.1 Music": (
            LayoutTag.DTS_6_1_A,
            [
                R_.LEFT,
                R_.RIGHT,
                R_.LFE,
                R_.LEFT_SURROUND,
                R_.RIGHT_SURROUND,
                R_.LEFT_SURROUND_SIDE,
                R_.RIGHT_SURROUND_SIDE,
            ],
        ),
        "7.0": (
            LayoutTag.AUDIO_UNIT_7_0,
            [
                R_.LEFT,
                R_.RIGHT,
                R_.CENTRE,
                R_.LEFT_SURROUND_SIDE,
                R_.RIGHT_SURROUND_SIDE,
                R_.LEFT_SURROUND_REAR,
                R_.RIGHT_SURROUND_REAR,
            ],
        ),
        "7.0 SDDS": (
            LayoutTag.AUDIO_UNIT_7_0_FRONT,
            [
                R_.LEFT,
                R_.RIGHT,
                R_.CENTRE,
                R_.LEFT_SURROUND,
                R_.RIGHT_SURROUND,
                R_.LEFT_CENTRE,
                R_.RIGHT_CENTRE,
            ],
        ),
        "7.1": (
            LayoutTag.MPEG_7_1_C,
            [
                R_.LEFT,
                R_.RIGHT,
                R_.CENTRE,
                R_.LFE,
                R_.LEFT_SURROUND_SIDE,
                R_.RIGHT_SURROUND_SIDE,
                R_.LEFT_SURROUND_REAR,
                R_.RIGHT_SURROUND_REAR,
            ],
        ),
        "7.1 SDDS": (
            LayoutTag.MPEG_7_1_A,
            [
                R_.LEFT,
                R_.RIGHT,
                R_.CENTRE,
                R_.LFE,
                R_.LEFT_SURROUND,
                R_.RIGHT_SURROUND,
                R_.LEFT_CENTRE,
                R_.RIGHT_CENTRE,
            ],
        ),
        "quadraphonic": (
            LayoutTag.QUADRAPHONIC,
            [R_.LEFT, R_.RIGHT, R_.LEFT_SURROUND, R_.RIGHT_SURROUND],
        ),
        "pentagonal": (
            LayoutTag.PENTAGONAL,
            [R_.LEFT, R_.RIGHT, R_.CENTRE, R_.LEFT_SURROUND_REAR, R_.RIGHT_SURROUND_REAR],
        ),
        "hexagonal": (
            LayoutTag.HEXAGONAL,
            [
                R_.LEFT,
                R_.RIGHT,
                R_.CENTRE,
                R_.CENTRE_SURROUND,
                R_.LEFT_SURROUND_REAR,
                R_.RIGHT_SURROUND_REAR,
            ],
        ),
        "octagonal": (
            LayoutTag.OCTAGONAL,
            [
                R_.LEFT,
                R_.RIGHT,
                R_.CENTRE,
                R_.LEFT_SURROUND,
                R_.RIGHT_SURROUND,
                R_.CENTRE_SURROUND,
                R_.WIDE_LEFT,
                R_.WIDE_RIGHT,
            ],
        ),
    }

    layouts = [
        StandardLayout(name, int(tag), ChannelRoleSet.of(roles))
        for name, (tag, roles) in base.items()
    ]
    for order in range(6):
        layouts.append(
            StandardLayout(
                f"ambisonic order {order}",
                LayoutTag.HOA_ACN_SN3D | (order + 1) ** 2,
                ChannelRoleSet.ambisonic(order),
            )
        )
    return tuple(layouts)


STANDARD_LAYOUTS = _standard_layouts()
"""Named role sets and the tag each one is written with."""


def num_channels_in_tag(tag: int) -> int:
    return tag & 0xFFFF


def known_layout_tags() -> tuple[LayoutTag, ...]:
    """Every tag with an explicit entry in the speaker table, in table order."""
    return tuple(tag for tag, _ in _SPEAKER_LAYOUTS)


def tag_name(tag: int) -> str:
    """Readable name of a layout tag (``"MPEG_5_1_A"``, ``"HOA_ACN_SN3D|4"``)."""
    try:
        return LayoutTag(tag).name
    except ValueError:
        pass

    base = tag & 0xFFFF0000
    try:
        return f"{LayoutTag(base).name}|{num_channels_in_tag(tag)}"
    except ValueError:
        return f"0x{tag:08X}"


def role_for_label(label: int) -> ChannelRole | None:
    """Map a CoreAudio channel label to a role, ``None`` if it has none."""
    if ChannelLabel.DISCRETE_0 <= label <= ChannelLabel.DISCRETE_0 | 0xFFFF:
        return ChannelRole.discrete(label - ChannelLabel.DISCRETE_0)

    if ChannelLabel.HOA_ACN_0 <= label < ChannelLabel.HOA_ACN_0 + MAX_AMBISONIC_CHANNELS:
        return ChannelRole.ambisonic(label - ChannelLabel.HOA_ACN_0)

    return _LABEL_ROLES.get(label)


def roles_for_tag(tag: int) -> tuple[ChannelRole, ...]:
    """Roles of a tag-only layout, in the tag's own channel order.

    Tags not in the speaker table resolve to ambisonic components when they
    are HOA tags with a full-order channel count, and to discrete channels
    otherwise.

    Raises:
        ValueError: For ``UseChannelDescriptions``/``UseChannelBitmap``,
            which need the full layout record (see :func:`roles_for_layout`).
    """
    if tag in (LayoutTag.USE_CHANNEL_DESCRIPTIONS, LayoutTag.USE_CHANNEL_BITMAP):
        raise ValueError(f"{tag_name(tag)} requires a full channel layout")

    known = _ROLES_BY_TAG.get(tag)
    if known is not None:
        return known

    num_channels = num_channels_in_tag(tag)
    if tag & 0xFFFF0000 in (LayoutTag.HOA_ACN_SN3D, LayoutTag.HOA_ACN_N3D):
        order = math.isqrt(num_channels) - 1
        if num_channels <= MAX_AMBISONIC_CHANNELS and (order + 1) ** 2 == num_channels:
            return ChannelRoleSet.ambisonic(order).ordered

    return tuple(ChannelRole.discrete(i) for i in range(num_channels))


def _roles_for_descriptions(labels: list[int]) -> tuple[ChannelRole, ...]:
    resolved: list[ChannelRole | None] = []
    taken: set[ChannelRole] = set()
    for label in labels:
        role = role_for_label(label)
        if role is None or role in taken:
            resolved.append(None)
        else:
            resolved.append(role)
            taken.add(role)

    # Unlabelled and repeated channels take the lowest free discrete roles
    next_discrete = 0
    roles = []
    for role in resolved:
        if role is None:
            while ChannelRole.discrete(next_discrete) in taken:
                next_discrete += 1
            role = ChannelRole.discrete(next_discrete)
            taken.add(role)
        roles.append(role)
    return tuple(roles)


def roles_for_layout(layout: ChannelLayout) -> tuple[ChannelRole, ...]:
    """Roles of a layout descriptor, in the descriptor's declared channel order.

    The result never repeats a role.
    """
    base = layout.tag & 0xFFFF0000
    if layout.tag == LayoutTag.USE_CHANNEL_BITMAP:
        return tuple(role for bit, role in enumerate(_BITMAP_ROLES) if layout.bitmap & (1 << bit))
    if layout.tag == LayoutTag.USE_CHANNEL_DESCRIPTIONS:
        return _roles_for_descriptions(layout.labels)
    if base == LayoutTag.DISCRETE_IN_ORDER:
        return tuple(ChannelRole.discrete(i) for i in range(num_channels_in_tag(layout.tag)))
    return roles_for_tag(layout.tag)


def role_set_for_layout(layout: ChannelLayout) -> ChannelRoleSet:
    """The abstract role set a layout descriptor implies."""
    return ChannelRoleSet.of(roles_for_layout(layout))


def layout_tag_for_roles(roles: Iterable[int]) -> int:
    """Find the layout tag to store a role set under.

    Full ambisonic orders map to ``HOA_ACN_SN3D``; otherwise the first table
    entry with exactly these roles wins; anything else is stored as
    ``DiscreteInOrder``.
    """
    role_set = roles if isinstance(roles, ChannelRoleSet) else ChannelRoleSet.of(roles)

    if role_set.ambisonic_order is not None:
        return LayoutTag.HOA_ACN_SN3D | len(role_set)

    for tag, table_roles in _SPEAKER_LAYOUTS:
        if frozenset(table_roles) == role_set.roles:
            return int(tag)

    return LayoutTag.DISCRETE_IN_ORDER | len(role_set)
