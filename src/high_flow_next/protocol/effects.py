"""RGBpx effect codes and parameter word descriptors.

Every controller carries twelve big-endian parameter words at
``PARAMS_OFFSET``. Their meaning depends on the effect code; each effect
model declares a :class:`~.schema.Schema` over those 24 bytes built from
the helpers below, so range checks and error reporting follow the same
path as every other field.
"""

from __future__ import annotations

from enum import IntEnum

from .layouts import PARAMS_SIZE
from .schema import Field, Schema


class EffectType(IntEnum):
    """Effect code stored in byte 2 of a controller."""

    EMPTY = 0x00
    STATIC = 0x01
    BREATHING = 0x02
    RAINBOW = 0x03
    BLINK = 0x04
    COLOR_CHANGE = 0x05
    SEQUENCE = 0x07
    SCANNER = 0x08
    LASER = 0x09
    WAVE = 0x0A
    COLOR_SEQUENCE = 0x0B
    COLOR_SHIFT = 0x0C
    BAR_GRAPH = 0x0D
    FLAME = 0x0E
    RAIN = 0x0F
    SNOW = 0x10
    STARDUST = 0x11
    COLOR_SWITCH = 0x12
    SWIPING_RAINBOW = 0x13
    SOUND_FLASH = 0x14
    SOUND_BARS = 0x15
    SOUND_SLIDER = 0x16
    SOUND_SHIFT = 0x17
    AMBIENT = 0x18
    COLOR_GRADIENT = 0x21


# Controller flag bits enabling the two source-control slots.
SOURCE_CONTROL_A = 0x4000
SOURCE_CONTROL_B = 0x8000

NO_DATA_SOURCE = 0xFFFF


def word(name: str, index: int, **kwargs) -> Field:
    """Parameter word ``index`` (0-11)."""
    return Field(name, 2 * index, width=2, **kwargs)


def percent(name: str, index: int) -> Field:
    return word(name, index, minimum=0, maximum=100)


def delay(name: str, index: int) -> Field:
    return word(name, index, minimum=0, maximum=100)


def width(name: str, index: int) -> Field:
    return word(name, index, minimum=1, maximum=100)


def rain_items(name: str, index: int) -> Field:
    return word(name, index, minimum=1, maximum=4)


def sound_speed(name: str, index: int) -> Field:
    return word(name, index, minimum=1, maximum=10)


def sound_effect(name: str, index: int) -> Field:
    return word(name, index, minimum=0, maximum=5)


def params(name: str, *fields: Field) -> Schema:
    """Schema over the parameter words of one effect."""
    return Schema(f"{name}.params", PARAMS_SIZE, fields)
