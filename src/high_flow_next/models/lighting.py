"""RGBpx lighting: controllers and their effects.

A controller occupies 70 bytes (see ``protocol.layouts.CONTROLLER``).
The effect code selects how the parameter words, the six color slots
and the low flag bits are interpreted. Each effect class declares:

- ``PARAMS``: the parameter words it uses
- ``OPTIONS``: boolean attributes stored as flag bits
- ``CONTROLS``: source-control attributes as ``(attribute, slot offset, gate bit)``

Words, color slots and control slots an effect does not use are left
untouched when encoding, so a template's bytes survive.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from enum import IntEnum
from typing import ClassVar, Mapping, Optional, Sequence

from ..protocol import effects as fx
from ..protocol.effects import NO_DATA_SOURCE, SOURCE_CONTROL_A, SOURCE_CONTROL_B, EffectType
from ..protocol.errors import FieldOutOfRange
from ..protocol.layouts import (
    COLOR_SIZE,
    COLOR_SLOTS,
    COLORS_OFFSET,
    CONTROLLER,
    CONTROLLER_OFFSETS,
    CONTROLLER_SIZE,
    PARAMS_OFFSET,
    SENSOR_CONTROLLERS,
    SETTINGS,
    SLOT_A_OFFSET,
    SLOT_B_OFFSET,
    SOURCE_CONTROL,
    SOURCE_CONTROL_SIZE,
    STRIP_CONTROLLERS,
)
from ..protocol.schema import Schema
from .base import as_enum, decode_fields, encode_fields, jsonable
from .color import Color

# Bit in the lighting flags byte that switches all effects off.
LIGHTING_DISABLED = 0x02


class DataSource(IntEnum):
    """Sensor value driving data-controlled effects."""

    FLOW = 0x00
    WATER_TEMPERATURE = 0x01
    EXTERNAL_TEMPERATURE = 0x02
    CONDUCTIVITY = 0x03
    WATER_QUALITY = 0x04
    POWER = 0x05
    SOFTWARE_SENSOR_1 = 0x06
    SOFTWARE_SENSOR_2 = 0x07
    SOFTWARE_SENSOR_3 = 0x08
    SOFTWARE_SENSOR_4 = 0x09
    SOFTWARE_SENSOR_5 = 0x0A
    SOFTWARE_SENSOR_6 = 0x0B
    SOFTWARE_SENSOR_7 = 0x0C
    SOFTWARE_SENSOR_8 = 0x0D
    SOUND = 0x1C


class SoundEffect(IntEnum):
    """Spatial reaction of a sound slider channel."""

    OUTWARDS_FROM_CENTER = 0
    INWARDS_TO_CENTER_A = 1
    INWARDS_TO_CENTER_B = 2
    FROM_LEFT = 3
    FROM_RIGHT = 4
    ALL_LEDS = 5


@dataclass(frozen=True)
class SourceControl:
    """Maps a data source input range onto an effect parameter range."""

    SIZE: ClassVar[int] = SOURCE_CONTROL_SIZE

    input_min: int = 0
    input_max: int = 0
    output_min: int = 0
    output_max: int = 0

    @classmethod
    def from_bytes(cls, data: bytes, base: int = 0) -> SourceControl:
        return cls(**SOURCE_CONTROL.unpack(data, base))

    def write(self, buf: bytearray, base: int = 0) -> None:
        SOURCE_CONTROL.pack(dataclasses.asdict(self), buf, base)

    def to_dict(self) -> dict:
        return dataclasses.asdict(self)


@dataclass(frozen=True)
class ColorRange:
    """A color shown from ``value`` upwards (bar graph, color switch)."""

    color: Color
    value: int = 0
    blink: bool = False


@dataclass(frozen=True)
class GradientStop:
    color: Color
    position: int = 0


@dataclass(frozen=True)
class SliderChannel:
    color: Color
    effect: SoundEffect = SoundEffect.OUTWARDS_FROM_CENTER
    speed: int = 1


@dataclass(frozen=True)
class ShiftChannel:
    color: Color
    speed: int = 1
    random_color: bool = False


@dataclass
class EffectBody:
    """Parameter words, color slots and flag bits an effect writes."""

    words: dict[str, object] = field(default_factory=dict)
    colors: dict[int, Color] = field(default_factory=dict)
    flags: int = 0
    flag_mask: int = 0


def _color_slot(index: int) -> int:
    return COLORS_OFFSET + COLOR_SIZE * index


def _check_count(effect: str, name: str, items: Sequence, minimum: int, maximum: int) -> None:
    if not minimum <= len(items) <= maximum:
        raise FieldOutOfRange(f"{effect}.{name}", len(items), minimum, maximum)


SPEED_AND_BRIGHTNESS = (
    ("source_control_speed", SLOT_A_OFFSET, SOURCE_CONTROL_A),
    ("source_control_brightness", SLOT_B_OFFSET, SOURCE_CONTROL_B),
)


@dataclass(frozen=True)
class Effect:
    """Base class for controller effects."""

    CODE: ClassVar[EffectType]
    PARAMS: ClassVar[Schema] = fx.params("effect")
    OPTIONS: ClassVar[Mapping[str, int]] = {}
    CONTROLS: ClassVar[Sequence[tuple[str, int, int]]] = ()

    @property
    def name(self) -> str:
        return self.CODE.name.lower()

    @classmethod
    def from_controller(cls, data: bytes, flags: int) -> Effect:
        """Decode the effect from a 70-byte controller block."""
        raw = cls.PARAMS.unpack(data, PARAMS_OFFSET)
        values = decode_fields(cls.PARAMS, raw, *raw)
        colors = tuple(Color.from_bytes(data, _color_slot(i)) for i in range(COLOR_SLOTS))
        kwargs = cls._decode_body(values, colors, flags)
        for attr, bit in cls.OPTIONS.items():
            kwargs[attr] = bool(flags & bit)
        for attr, offset, gate in cls.CONTROLS:
            kwargs[attr] = SourceControl.from_bytes(data, offset) if flags & gate else None
        return cls(**kwargs)

    @classmethod
    def _decode_body(cls, values: dict, colors: tuple[Color, ...], flags: int) -> dict:
        return values

    def to_controller(self, buf: bytearray, previous: int = 0) -> int:
        """Write the effect into a controller block and return its flag word.

        Bits the effect does not model are taken from ``previous``.
        """
        body = self._encode_body()
        self.PARAMS.pack(encode_fields(self.PARAMS, body.words), buf, PARAMS_OFFSET)
        for index, color in body.colors.items():
            color.write(buf, _color_slot(index))
        flags = body.flags
        mask = body.flag_mask
        for attr, bit in self.OPTIONS.items():
            mask |= bit
            if getattr(self, attr):
                flags |= bit
        for attr, offset, gate in self.CONTROLS:
            mask |= gate
            control = getattr(self, attr)
            if control is not None:
                control.write(buf, offset)
                flags |= gate
        return (previous & ~mask) | flags

    def _encode_body(self) -> EffectBody:
        return EffectBody(words=self._attribute_words())

    def _attribute_words(self) -> dict[str, object]:
        """Parameter words that map directly onto attributes."""
        attrs = {f.name for f in dataclasses.fields(self)}
        return {f.name: getattr(self, f.name) for f in self.PARAMS.fields if f.name in attrs}

    def to_dict(self) -> dict:
        result = {"type": self.CODE.name}
        for f in dataclasses.fields(self):
            result[f.name] = jsonable(getattr(self, f.name))
        return result


# ─── SINGLE COLOR EFFECTS ────────────────────────────────────────────

@dataclass(frozen=True)
class StaticEffect(Effect):
    """A constant color."""

    CODE = EffectType.STATIC
    PARAMS = fx.params("static")
    CONTROLS = (
        ("source_control_brightness", SLOT_A_OFFSET, SOURCE_CONTROL_A),
        ("source_control_saturation", SLOT_B_OFFSET, SOURCE_CONTROL_B),
    )

    color: Color = Color()
    source_control_brightness: Optional[SourceControl] = None
    source_control_saturation: Optional[SourceControl] = None

    @classmethod
    def _decode_body(cls, values, colors, flags):
        return {**values, "color": colors[0]}

    def _encode_body(self):
        return EffectBody(words=self._attribute_words(), colors={0: self.color})


@dataclass(frozen=True)
class BreathingEffect(Effect):
    """Fades a color in and out."""

    CODE = EffectType.BREATHING
    PARAMS = fx.params(
        "breathing",
        fx.percent("speed", 0),
        fx.percent("intensity", 1),
        fx.delay("delay_max_brightness", 2),
        fx.delay("delay_min_brightness", 3),
    )
    CONTROLS = (
        ("source_control_speed", SLOT_A_OFFSET, SOURCE_CONTROL_A),
        ("source_control_intensity", SLOT_B_OFFSET, SOURCE_CONTROL_B),
    )

    color: Color = Color()
    speed: int = 0
    intensity: int = 0
    delay_max_brightness: int = 0
    delay_min_brightness: int = 0
    source_control_speed: Optional[SourceControl] = None
    source_control_intensity: Optional[SourceControl] = None

    @classmethod
    def _decode_body(cls, values, colors, flags):
        return {**values, "color": colors[0]}

    def _encode_body(self):
        return EffectBody(words=self._attribute_words(), colors={0: self.color})


@dataclass(frozen=True)
class RainbowEffect(Effect):
    CODE = EffectType.RAINBOW
    PARAMS = fx.params("rainbow", fx.percent("speed", 0), fx.percent("color_range", 1))
    OPTIONS = {"reverse_direction": 0x02}
    CONTROLS = SPEED_AND_BRIGHTNESS

    color: Color = Color()
    speed: int = 0
    color_range: int = 0
    reverse_direction: bool = False
    source_control_speed: Optional[SourceControl] = None
    source_control_brightness: Optional[SourceControl] = None

    @classmethod
    def _decode_body(cls, values, colors, flags):
        return {**values, "color": colors[0]}

    def _encode_body(self):
        return EffectBody(words=self._attribute_words(), colors={0: self.color})


@dataclass(frozen=True)
class ColorShiftEffect(Effect):
    CODE = EffectType.COLOR_SHIFT
    PARAMS = fx.params(
        "color_shift",
        fx.percent("speed", 0),
        fx.percent("color_range", 1),
        fx.width("total_area", 2),
    )
    OPTIONS = {"reverse_direction": 0x02}
    CONTROLS = SPEED_AND_BRIGHTNESS

    color: Color = Color()
    speed: int = 0
    color_range: int = 0
    total_area: int = 1
    reverse_direction: bool = False
    source_control_speed: Optional[SourceControl] = None
    source_control_brightness: Optional[SourceControl] = None

    @classmethod
    def _decode_body(cls, values, colors, flags):
        return {**values, "color": colors[0]}

    def _encode_body(self):
        return EffectBody(words=self._attribute_words(), colors={0: self.color})


@dataclass(frozen=True)
class AmbientEffect(Effect):
    """Shows the color pushed by the host in the ambient color report."""

    CODE = EffectType.AMBIENT
    PARAMS = fx.params("ambient")

    background: Color = Color()

    @classmethod
    def _decode_body(cls, values, colors, flags):
        return {"background": colors[0]}

    def _encode_body(self):
        return EffectBody(colors={0: self.background})


# ─── COLOR LIST EFFECTS ──────────────────────────────────────────────

@dataclass(frozen=True)
class BlinkEffect(Effect):
    CODE = EffectType.BLINK
    PARAMS = fx.params("blink", fx.percent("speed", 0), fx.word("count", 1))
    OPTIONS = {
        "fade_in": 0x02,
        "fade_out": 0x04,
        "random_color": 0x08,
        "slide_colors": 0x10,
    }
    CONTROLS = SPEED_AND_BRIGHTNESS
    MAX_COLORS: ClassVar[int] = COLOR_SLOTS - 1

    background: Color = Color()
    colors: tuple[Color, ...] = ()
    speed: int = 0
    fade_in: bool = False
    fade_out: bool = False
    random_color: bool = False
    slide_colors: bool = False
    source_control_speed: Optional[SourceControl] = None
    source_control_brightness: Optional[SourceControl] = None

    @classmethod
    def _decode_body(cls, values, colors, flags):
        count = values.pop("count")
        return {**values, "background": colors[0], "colors": colors[1:][:count]}

    def _encode_body(self):
        _check_count(self.name, "colors", self.colors, 0, self.MAX_COLORS)
        words = {**self._attribute_words(), "count": len(self.colors)}
        slots = {0: self.background}
        slots.update({i + 1: c for i, c in enumerate(self.colors)})
        return EffectBody(words=words, colors=slots)


@dataclass(frozen=True)
class ColorChangeEffect(Effect):
    CODE = EffectType.COLOR_CHANGE
    PARAMS = fx.params("color_change", fx.percent("speed", 0), fx.word("count", 1))
    OPTIONS = {"fade": 0x04, "random_color": 0x08, "slide_colors": 0x10}
    CONTROLS = SPEED_AND_BRIGHTNESS

    colors: tuple[Color, ...] = ()
    speed: int = 0
    fade: bool = False
    random_color: bool = False
    slide_colors: bool = False
    source_control_speed: Optional[SourceControl] = None
    source_control_brightness: Optional[SourceControl] = None

    @classmethod
    def _decode_body(cls, values, colors, flags):
        count = values.pop("count")
        return {**values, "colors": colors[:count]}

    def _encode_body(self):
        _check_count(self.name, "colors", self.colors, 0, COLOR_SLOTS)
        words = {**self._attribute_words(), "count": len(self.colors)}
        return EffectBody(words=words, colors=dict(enumerate(self.colors)))


@dataclass(frozen=True)
class SequenceEffect(Effect):
    CODE = EffectType.SEQUENCE
    PARAMS = fx.params(
        "sequence",
        fx.percent("speed", 0),
        fx.percent("smoothness", 1),
        fx.word("count", 2),
        fx.delay("delay_after_sequence", 3),
        fx.delay("delay_before_sequence", 4),
    )
    OPTIONS = {"reverse_direction": 0x02, "fade": 0x04, "random_color": 0x08}
    CONTROLS = SPEED_AND_BRIGHTNESS

    background: Color = Color()
    colors: tuple[Color, ...] = ()
    speed: int = 0
    smoothness: int = 0
    delay_after_sequence: int = 0
    delay_before_sequence: int = 0
    reverse_direction: bool = False
    fade: bool = False
    random_color: bool = False
    source_control_speed: Optional[SourceControl] = None
    source_control_brightness: Optional[SourceControl] = None

    @classmethod
    def _decode_body(cls, values, colors, flags):
        count = values.pop("count")
        return {**values, "background": colors[0], "colors": colors[1:][:count]}

    def _encode_body(self):
        _check_count(self.name, "colors", self.colors, 0, COLOR_SLOTS - 1)
        words = {**self._attribute_words(), "count": len(self.colors)}
        slots = {0: self.background}
        slots.update({i + 1: c for i, c in enumerate(self.colors)})
        return EffectBody(words=words, colors=slots)


@dataclass(frozen=True)
class WaveEffect(Effect):
    CODE = EffectType.WAVE
    PARAMS = fx.params(
        "wave",
        fx.percent("speed", 0),
        fx.percent("smoothness", 1),
        fx.width("width", 2),
        fx.word("count", 3),
    )
    OPTIONS = {"reverse_direction": 0x02, "random_color": 0x04, "circular": 0x80}
    CONTROLS = SPEED_AND_BRIGHTNESS

    background: Color = Color()
    colors: tuple[Color, ...] = ()
    speed: int = 0
    smoothness: int = 0
    width: int = 1
    reverse_direction: bool = False
    random_color: bool = False
    circular: bool = False
    source_control_speed: Optional[SourceControl] = None
    source_control_brightness: Optional[SourceControl] = None

    @classmethod
    def _decode_body(cls, values, colors, flags):
        count = values.pop("count")
        return {**values, "background": colors[0], "colors": colors[1:][:count]}

    def _encode_body(self):
        _check_count(self.name, "colors", self.colors, 0, COLOR_SLOTS - 1)
        words = {**self._attribute_words(), "count": len(self.colors)}
        slots = {0: self.background}
        slots.update({i + 1: c for i, c in enumerate(self.colors)})
        return EffectBody(words=words, colors=slots)


@dataclass(frozen=True)
class ColorSequenceEffect(Effect):
    CODE = EffectType.COLOR_SEQUENCE
    PARAMS = fx.params(
        "color_sequence",
        fx.percent("speed", 0),
        fx.percent("smoothness", 1),
        fx.word("count", 3),
        fx.width("color_change_speed", 4),
    )
    OPTIONS = {"reverse_direction": 0x02, "random_color": 0x08}
    CONTROLS = SPEED_AND_BRIGHTNESS

    colors: tuple[Color, ...] = ()
    speed: int = 0
    smoothness: int = 0
    color_change_speed: int = 1
    reverse_direction: bool = False
    random_color: bool = False
    source_control_speed: Optional[SourceControl] = None
    source_control_brightness: Optional[SourceControl] = None

    @classmethod
    def _decode_body(cls, values, colors, flags):
        count = values.pop("count")
        return {**values, "colors": colors[:count]}

    def _encode_body(self):
        _check_count(self.name, "colors", self.colors, 0, COLOR_SLOTS)
        words = {**self._attribute_words(), "count": len(self.colors)}
        return EffectBody(words=words, colors=dict(enumerate(self.colors)))


# ─── MULTI COLOR EFFECTS ─────────────────────────────────────────────

@dataclass(frozen=True)
class ScannerEffect(Effect):
    """A light point sweeping across the LEDs."""

    CODE = EffectType.SCANNER
    PARAMS = fx.params(
        "scanner",
        fx.percent("speed", 0),
        fx.percent("smoothness", 1),
        fx.width("width", 2),
    )
    OPTIONS = {
        "reverse_direction": 0x02,
        "fade": 0x04,
        "random_color": 0x08,
        "second_color_mode": 0x20,
        "color_change": 0x40,
        "circular": 0x80,
    }
    CONTROLS = SPEED_AND_BRIGHTNESS

    background: Color = Color()
    outer_color: Color = Color()
    inner_color: Color = Color()
    speed: int = 0
    smoothness: int = 0
    width: int = 1
    reverse_direction: bool = False
    fade: bool = False
    random_color: bool = False
    second_color_mode: bool = False
    color_change: bool = False
    circular: bool = False
    source_control_speed: Optional[SourceControl] = None
    source_control_brightness: Optional[SourceControl] = None

    @classmethod
    def _decode_body(cls, values, colors, flags):
        return {
            **values,
            "background": colors[0],
            "outer_color": colors[1],
            "inner_color": colors[2],
        }

    def _encode_body(self):
        return EffectBody(
            words=self._attribute_words(),
            colors={0: self.background, 1: self.outer_color, 2: self.inner_color},
        )


@dataclass(frozen=True)
class LaserEffect(ScannerEffect):
    CODE = EffectType.LASER


@dataclass(frozen=True)
class FlameEffect(Effect):
    CODE = EffectType.FLAME
    PARAMS = fx.params("flame", fx.width("intensity", 0))
    CONTROLS = (("source_control_intensity", SLOT_A_OFFSET, SOURCE_CONTROL_A),)

    background: Color = Color()
    color_primary: Color = Color()
    color_secondary: Color = Color()
    intensity: int = 1
    source_control_intensity: Optional[SourceControl] = None

    @classmethod
    def _decode_body(cls, values, colors, flags):
        return {
            **values,
            "background": colors[0],
            "color_primary": colors[1],
            "color_secondary": colors[2],
        }

    def _encode_body(self):
        return EffectBody(
            words=self._attribute_words(),
            colors={0: self.background, 1: self.color_primary, 2: self.color_secondary},
        )


@dataclass(frozen=True)
class RainEffect(Effect):
    CODE = EffectType.RAIN
    PARAMS = fx.params(
        "rain",
        fx.width("speed", 0),
        fx.rain_items("items", 1),
        fx.width("size", 2),
        fx.width("smoothness", 3),
    )
    OPTIONS = {"reverse_direction": 0x02, "random_color": 0x08}
    CONTROLS = SPEED_AND_BRIGHTNESS

    background: Color = Color()
    color: Color = Color()
    speed: int = 1
    items: int = 1
    size: int = 1
    smoothness: int = 1
    reverse_direction: bool = False
    random_color: bool = False
    source_control_speed: Optional[SourceControl] = None
    source_control_brightness: Optional[SourceControl] = None

    @classmethod
    def _decode_body(cls, values, colors, flags):
        return {**values, "background": colors[0], "color": colors[1]}

    def _encode_body(self):
        return EffectBody(
            words=self._attribute_words(),
            colors={0: self.background, 1: self.color},
        )


@dataclass(frozen=True)
class SnowEffect(RainEffect):
    CODE = EffectType.SNOW


@dataclass(frozen=True)
class StardustEffect(RainEffect):
    CODE = EffectType.STARDUST


@dataclass(frozen=True)
class SwipingRainbowEffect(Effect):
    CODE = EffectType.SWIPING_RAINBOW
    PARAMS = fx.params(
        "swiping_rainbow",
        fx.width("point_speed", 0),
        fx.width("point_smoothness", 1),
        fx.width("point_size", 2),
        fx.width("color_change_speed", 3),
        fx.width("color_range", 4),
    )
    OPTIONS = {"reverse_direction": 0x01}
    CONTROLS = SPEED_AND_BRIGHTNESS

    point_color: Color = Color()
    strip_color: Color = Color()
    point_speed: int = 1
    point_smoothness: int = 1
    point_size: int = 1
    color_change_speed: int = 1
    color_range: int = 1
    reverse_direction: bool = False
    source_control_speed: Optional[SourceControl] = None
    source_control_brightness: Optional[SourceControl] = None

    @classmethod
    def _decode_body(cls, values, colors, flags):
        return {**values, "point_color": colors[0], "strip_color": colors[1]}

    def _encode_body(self):
        return EffectBody(
            words=self._attribute_words(),
            colors={0: self.point_color, 1: self.strip_color},
        )


# ─── VALUE RANGE EFFECTS ─────────────────────────────────────────────

BAR_GRAPH_RANGES = 4
BAR_GRAPH_FIRST_RANGE_SLOT = 2
BAR_GRAPH_BLINK_SHIFT = 7


@dataclass(frozen=True)
class BarGraphEffect(Effect):
    """Fills the LEDs proportionally to the data source value.

    ``ranges`` holds one to four color ranges; the first range starts at
    the bar's start value.
    """

    CODE = EffectType.BAR_GRAPH
    PARAMS = fx.params(
        "bar_graph",
        fx.word("start_value", 0),
        fx.word("end_value", 1),
        fx.percent("rotation", 2),
        fx.word("count", 3),
        fx.word("value1", 4),
        fx.word("value2", 5),
        fx.word("value3", 6),
        fx.percent("peak_hold_time", 7),
    )
    OPTIONS = {
        "fade_ranges": 0x01,
        "show_bar": 0x02,
        "show_ranges": 0x04,
        "reverse_direction": 0x08,
        "show_peak": 0x20,
    }
    CONTROLS = (("source_control_rotation", SLOT_A_OFFSET, SOURCE_CONTROL_A),)

    background: Color = Color()
    peak_color: Color = Color()
    ranges: tuple[ColorRange, ...] = (ColorRange(Color()),)
    end_value: int = 0
    rotation: int = 0
    peak_hold_time: int = 0
    reverse_direction: bool = False
    show_peak: bool = False
    show_bar: bool = False
    show_ranges: bool = False
    fade_ranges: bool = False
    source_control_rotation: Optional[SourceControl] = None

    @classmethod
    def _decode_body(cls, values, colors, flags):
        count = values.pop("count")
        thresholds = [values.pop("start_value")] + [
            values.pop(f"value{i}") for i in range(1, BAR_GRAPH_RANGES)
        ]
        slots = colors[BAR_GRAPH_FIRST_RANGE_SLOT:]
        ranges = tuple(
            ColorRange(color, value, bool(flags & (1 << (i + BAR_GRAPH_BLINK_SHIFT))))
            for i, (color, value) in enumerate(zip(slots, thresholds))
        )
        return {
            **values,
            "background": colors[0],
            "peak_color": colors[1],
            "ranges": ranges[: count + 1],
        }

    def _encode_body(self):
        _check_count(self.name, "ranges", self.ranges, 1, BAR_GRAPH_RANGES)
        words = {**self._attribute_words(), "count": len(self.ranges) - 1}
        slots = {0: self.background, 1: self.peak_color}
        flags = mask = 0
        for i, entry in enumerate(self.ranges):
            words["start_value" if i == 0 else f"value{i}"] = entry.value
            slots[BAR_GRAPH_FIRST_RANGE_SLOT + i] = entry.color
            bit = 1 << (i + BAR_GRAPH_BLINK_SHIFT)
            mask |= bit
            if entry.blink:
                flags |= bit
        return EffectBody(words=words, colors=slots, flags=flags, flag_mask=mask)


@dataclass(frozen=True)
class SoundBarsEffect(BarGraphEffect):
    CODE = EffectType.SOUND_BARS


@dataclass(frozen=True)
class ColorSwitchEffect(Effect):
    """Switches between up to six colors depending on the data source value."""

    CODE = EffectType.COLOR_SWITCH
    PARAMS = fx.params(
        "color_switch",
        fx.word("count", 0),
        *(fx.word(f"value{i}", i + 1) for i in range(COLOR_SLOTS)),
        fx.word("end_value", 7),
    )
    OPTIONS = {"fade_ranges": 0x01}
    # Stored in the first slot but gated by the second slot's bit.
    CONTROLS = (("source_control_brightness", SLOT_A_OFFSET, SOURCE_CONTROL_B),)

    ranges: tuple[ColorRange, ...] = (ColorRange(Color()),)
    end_value: int = 0
    fade_ranges: bool = False
    source_control_brightness: Optional[SourceControl] = None

    @classmethod
    def _decode_body(cls, values, colors, flags):
        count = values.pop("count")
        thresholds = [values.pop(f"value{i}") for i in range(COLOR_SLOTS)]
        ranges = tuple(
            ColorRange(color, value, bool(flags & (1 << (i + 1))))
            for i, (color, value) in enumerate(zip(colors, thresholds))
        )
        return {**values, "ranges": ranges[: count + 1]}

    def _encode_body(self):
        _check_count(self.name, "ranges", self.ranges, 1, COLOR_SLOTS)
        words = {**self._attribute_words(), "count": len(self.ranges) - 1}
        slots = {}
        flags = mask = 0
        for i, entry in enumerate(self.ranges):
            words[f"value{i}"] = entry.value
            slots[i] = entry.color
            mask |= 1 << (i + 1)
            if entry.blink:
                flags |= 1 << (i + 1)
        return EffectBody(words=words, colors=slots, flags=flags, flag_mask=mask)


GRADIENT_START_SLOT = 2
GRADIENT_STOPS = 3


@dataclass(frozen=True)
class ColorGradientEffect(Effect):
    CODE = EffectType.COLOR_GRADIENT
    PARAMS = fx.params(
        "color_gradient",
        fx.percent("rotation", 2),
        fx.word("count", 3),
        *(fx.word(f"position{i}", 4 + i) for i in range(GRADIENT_STOPS)),
    )
    OPTIONS = {"reverse_direction": 0x08, "reverse_rotation": 0x10}
    CONTROLS = (("source_control_rotation", SLOT_A_OFFSET, SOURCE_CONTROL_A),)

    start_color: Color = Color()
    stops: tuple[GradientStop, ...] = ()
    rotation: int = 0
    reverse_direction: bool = False
    reverse_rotation: bool = False
    source_control_rotation: Optional[SourceControl] = None

    @classmethod
    def _decode_body(cls, values, colors, flags):
        count = values.pop("count")
        positions = [values.pop(f"position{i}") for i in range(GRADIENT_STOPS)]
        slots = colors[GRADIENT_START_SLOT + 1 :]
        stops = tuple(GradientStop(c, p) for c, p in zip(slots, positions))
        return {**values, "start_color": colors[GRADIENT_START_SLOT], "stops": stops[:count]}

    def _encode_body(self):
        _check_count(self.name, "stops", self.stops, 0, GRADIENT_STOPS)
        words = {**self._attribute_words(), "count": len(self.stops)}
        slots = {GRADIENT_START_SLOT: self.start_color}
        for i, stop in enumerate(self.stops):
            words[f"position{i}"] = stop.position
            slots[GRADIENT_START_SLOT + 1 + i] = stop.color
        return EffectBody(words=words, colors=slots)


# ─── SOUND EFFECTS ───────────────────────────────────────────────────

SOUND_CHANNELS = 4


@dataclass(frozen=True)
class SoundFlashEffect(Effect):
    CODE = EffectType.SOUND_FLASH
    PARAMS = fx.params("sound_flash")

    background: Color = Color()
    colors: tuple[Color, ...] = (Color(),) * SOUND_CHANNELS

    @classmethod
    def _decode_body(cls, values, colors, flags):
        return {"background": colors[0], "colors": colors[1 : 1 + SOUND_CHANNELS]}

    def _encode_body(self):
        _check_count(self.name, "colors", self.colors, SOUND_CHANNELS, SOUND_CHANNELS)
        slots = {0: self.background}
        slots.update({i + 1: c for i, c in enumerate(self.colors)})
        return EffectBody(colors=slots)


@dataclass(frozen=True)
class SoundSliderEffect(Effect):
    CODE = EffectType.SOUND_SLIDER
    PARAMS = fx.params(
        "sound_slider",
        *(fx.sound_effect(f"effect{i}", i) for i in range(SOUND_CHANNELS)),
        *(fx.sound_speed(f"speed{i}", SOUND_CHANNELS + i) for i in range(SOUND_CHANNELS)),
        fx.percent("rotate_color", 8),
    )

    background: Color = Color()
    channels: tuple[SliderChannel, ...] = (SliderChannel(Color()),) * SOUND_CHANNELS
    rotate_color: int = 0

    @classmethod
    def _decode_body(cls, values, colors, flags):
        channels = tuple(
            SliderChannel(
                colors[1 + i],
                SoundEffect(values.pop(f"effect{i}")),
                values.pop(f"speed{i}"),
            )
            for i in range(SOUND_CHANNELS)
        )
        return {**values, "background": colors[0], "channels": channels}

    def _encode_body(self):
        _check_count(self.name, "channels", self.channels, SOUND_CHANNELS, SOUND_CHANNELS)
        words = self._attribute_words()
        slots = {0: self.background}
        for i, channel in enumerate(self.channels):
            words[f"effect{i}"] = int(channel.effect)
            words[f"speed{i}"] = channel.speed
            slots[1 + i] = channel.color
        return EffectBody(words=words, colors=slots)


SHIFT_CHANNELS = 2


@dataclass(frozen=True)
class SoundShiftEffect(Effect):
    CODE = EffectType.SOUND_SHIFT
    PARAMS = fx.params(
        "sound_shift",
        fx.percent("rotate_color", 0),
        *(fx.sound_speed(f"speed{i}", 1 + i) for i in range(SHIFT_CHANNELS)),
        fx.percent("idle_speed", 3),
        fx.percent("activity_speed", 4),
    )
    OPTIONS = {"reverse_direction": 0x01}

    background: Color = Color()
    channels: tuple[ShiftChannel, ...] = (ShiftChannel(Color()),) * SHIFT_CHANNELS
    rotate_color: int = 0
    idle_speed: int = 0
    activity_speed: int = 0
    reverse_direction: bool = False

    @classmethod
    def _decode_body(cls, values, colors, flags):
        channels = tuple(
            ShiftChannel(colors[1 + i], values.pop(f"speed{i}"), bool(flags & (1 << (i + 1))))
            for i in range(SHIFT_CHANNELS)
        )
        return {**values, "background": colors[0], "channels": channels}

    def _encode_body(self):
        _check_count(self.name, "channels", self.channels, SHIFT_CHANNELS, SHIFT_CHANNELS)
        words = self._attribute_words()
        slots = {0: self.background}
        flags = mask = 0
        for i, channel in enumerate(self.channels):
            words[f"speed{i}"] = channel.speed
            slots[1 + i] = channel.color
            mask |= 1 << (i + 1)
            if channel.random_color:
                flags |= 1 << (i + 1)
        return EffectBody(words=words, colors=slots, flags=flags, flag_mask=mask)


EFFECT_CLASSES: dict[EffectType, type[Effect]] = {
    cls.CODE: cls
    for cls in (
        StaticEffect,
        BreathingEffect,
        RainbowEffect,
        BlinkEffect,
        ColorChangeEffect,
        SequenceEffect,
        ScannerEffect,
        LaserEffect,
        WaveEffect,
        ColorSequenceEffect,
        ColorShiftEffect,
        BarGraphEffect,
        FlameEffect,
        RainEffect,
        SnowEffect,
        StardustEffect,
        ColorSwitchEffect,
        SwipingRainbowEffect,
        SoundFlashEffect,
        SoundBarsEffect,
        SoundSliderEffect,
        SoundShiftEffect,
        AmbientEffect,
        ColorGradientEffect,
    )
}


# ─── CONTROLLERS ─────────────────────────────────────────────────────

@dataclass(frozen=True)
class Controller:
    """One LED region and the effect it shows."""

    SIZE: ClassVar[int] = CONTROLLER_SIZE

    offset: int
    length: int
    effect: Effect
    data_source: Optional[DataSource] = None
    attenuation_rising: int = 0
    attenuation_falling: int = 0

    @classmethod
    def from_bytes(cls, data: bytes, base: int = 0) -> Optional[Controller]:
        """Decode a controller block; an empty slot yields ``None``."""
        raw = CONTROLLER.unpack(data, base)
        code = raw["effect"]
        if code == EffectType.EMPTY:
            return None
        try:
            effect_cls = EFFECT_CLASSES[EffectType(code)]
        except ValueError:
            raise FieldOutOfRange("controller.effect", code) from None

        if raw["data_source"] == NO_DATA_SOURCE:
            data_source = None
        else:
            data_source = as_enum(DataSource, raw["data_source"], "controller.data_source")

        block = bytes(data[base : base + CONTROLLER_SIZE])
        return cls(
            offset=raw["offset"],
            length=raw["length"],
            effect=effect_cls.from_controller(block, raw["flags"]),
            data_source=data_source,
            attenuation_rising=raw["attenuation_rising"],
            attenuation_falling=raw["attenuation_falling"],
        )

    def to_bytes(self, template: Optional[bytes] = None) -> bytes:
        """Encode the controller over ``template`` (70 bytes) or zeros.

        Flag bits the effect does not model are kept when the template
        holds the same effect.
        """
        buf = bytearray(template) if template is not None else bytearray(self.SIZE)
        previous = 0
        if CONTROLLER["effect"].read(buf) == self.effect.CODE:
            previous = CONTROLLER["flags"].read(buf)
        flags = self.effect.to_controller(buf, previous)
        CONTROLLER.pack(
            {
                "offset": self.offset,
                "length": self.length,
                "effect": int(self.effect.CODE),
                "flags": flags,
                "data_source": (
                    NO_DATA_SOURCE if self.data_source is None else int(self.data_source)
                ),
                "attenuation_rising": self.attenuation_rising,
                "attenuation_falling": self.attenuation_falling,
            },
            buf,
        )
        return bytes(buf)

    @staticmethod
    def empty_bytes(template: Optional[bytes] = None) -> bytes:
        """An unused controller slot."""
        buf = bytearray(template) if template is not None else bytearray(CONTROLLER_SIZE)
        CONTROLLER.pack({"effect": int(EffectType.EMPTY)}, buf)
        return bytes(buf)

    def to_dict(self) -> dict:
        return {
            "offset": self.offset,
            "length": self.length,
            "data_source": jsonable(self.data_source),
            "attenuation_rising": self.attenuation_rising,
            "attenuation_falling": self.attenuation_falling,
            "effect": self.effect.to_dict(),
        }


@dataclass(frozen=True)
class LightingSettings:
    """Global brightness and the used controller slots.

    Empty slots are dropped on decode; on encode the controllers are
    packed into the first slots and the remaining slots are emptied.
    """

    brightness: int = 255
    strip_controllers: tuple[Controller, ...] = ()
    sensor_controllers: tuple[Controller, ...] = ()

    @classmethod
    def from_payload(cls, payload: bytes, raw: Mapping[str, int]) -> Optional[LightingSettings]:
        """Decode lighting from a SETTINGS payload; ``None`` when disabled."""
        if raw["lighting.flags"] & LIGHTING_DISABLED:
            return None

        controllers = [
            Controller.from_bytes(payload, offset) for offset in CONTROLLER_OFFSETS
        ]
        strip = controllers[:STRIP_CONTROLLERS]
        sensor = controllers[STRIP_CONTROLLERS:]
        return cls(
            brightness=decode_fields(SETTINGS, raw, "lighting.brightness")["lighting.brightness"],
            strip_controllers=tuple(c for c in strip if c is not None),
            sensor_controllers=tuple(c for c in sensor if c is not None),
        )

    @staticmethod
    def write(lighting: Optional[LightingSettings], buf: bytearray, previous: Mapping[str, int]) -> None:
        """Write lighting into a SETTINGS payload buffer.

        ``buf`` already holds the template bytes (or zeros) and
        ``previous`` their raw field values.
        """
        flags = previous["lighting.flags"]
        if lighting is None:
            SETTINGS.pack({"lighting.flags": flags | LIGHTING_DISABLED}, buf)
            return

        _check_count("lighting", "strip_controllers", lighting.strip_controllers, 0, STRIP_CONTROLLERS)
        _check_count("lighting", "sensor_controllers", lighting.sensor_controllers, 0, SENSOR_CONTROLLERS)

        values = encode_fields(SETTINGS, {"lighting.brightness": lighting.brightness})
        values["lighting.flags"] = flags & ~LIGHTING_DISABLED
        SETTINGS.pack(values, buf)

        slots: list[Optional[Controller]] = [None] * (STRIP_CONTROLLERS + SENSOR_CONTROLLERS)
        slots[: len(lighting.strip_controllers)] = lighting.strip_controllers
        slots[STRIP_CONTROLLERS : STRIP_CONTROLLERS + len(lighting.sensor_controllers)] = (
            lighting.sensor_controllers
        )
        for controller, offset in zip(slots, CONTROLLER_OFFSETS):
            template = bytes(buf[offset : offset + CONTROLLER_SIZE])
            if controller is None:
                block = Controller.empty_bytes(template)
            else:
                block = controller.to_bytes(template)
            buf[offset : offset + CONTROLLER_SIZE] = block

    def to_dict(self) -> dict:
        return {
            "brightness": self.brightness,
            "strip_controllers": [c.to_dict() for c in self.strip_controllers],
            "sensor_controllers": [c.to_dict() for c in self.sensor_controllers],
        }