"""HSV color as stored by the device (4 bytes).

Hue is split into a 60° section and an offset within that section
scaled to 0-255. Saturation and value are scaled to 0-255. Colors built
from floating point HSV or RGB are quantized to the wire representation
so equality and round trips are exact.
"""

from __future__ import annotations

import colorsys
from dataclasses import dataclass
from typing import ClassVar

from ..protocol.layouts import COLOR, COLOR_SIZE

SECTION_DEGREES = 60.0
SECTIONS = 6


def _quantize(x: float) -> int:
    return int(x + 0.5)


@dataclass(frozen=True)
class Color:
    """A device color."""

    SIZE: ClassVar[int] = COLOR_SIZE

    hue_section: int = 0
    hue_offset: int = 0
    saturation: int = 0
    value: int = 0

    @property
    def hue(self) -> float:
        """Hue in degrees."""
        return SECTION_DEGREES * self.hue_section + SECTION_DEGREES * self.hue_offset / 255

    @property
    def hsv(self) -> tuple[float, float, float]:
        return self.hue, self.saturation / 255, self.value / 255

    @property
    def rgb(self) -> tuple[int, int, int]:
        h, s, v = self.hsv
        r, g, b = colorsys.hsv_to_rgb((h / 360.0) % 1.0, s, v)
        return _quantize(r * 255), _quantize(g * 255), _quantize(b * 255)

    @property
    def hex(self) -> str:
        return "#{:02X}{:02X}{:02X}".format(*self.rgb)

    @classmethod
    def from_hsv(cls, h: float, s: float, v: float) -> Color:
        """Create a color from hue in degrees and saturation/value in 0.0-1.0."""
        # Quantize the whole hue before splitting so 119.9999° lands on section 2.
        steps = _quantize((h % 360.0) / SECTION_DEGREES * 255)
        section, offset = divmod(steps, 255)
        return cls(
            hue_section=section % SECTIONS,
            hue_offset=offset,
            saturation=_quantize(max(0.0, min(s, 1.0)) * 255),
            value=_quantize(max(0.0, min(v, 1.0)) * 255),
        )

    @classmethod
    def from_rgb(cls, r: int, g: int, b: int) -> Color:
        """Create a color from 8-bit RGB channels."""
        h, s, v = colorsys.rgb_to_hsv(r / 255, g / 255, b / 255)
        return cls.from_hsv(h * 360.0, s, v)

    @classmethod
    def from_rgb_hex(cls, value: int) -> Color:
        """Create a color from a packed ``0xRRGGBB`` value."""
        return cls.from_rgb((value >> 16) & 0xFF, (value >> 8) & 0xFF, value & 0xFF)

    @classmethod
    def from_bytes(cls, data: bytes, base: int = 0) -> Color:
        raw = COLOR.unpack(data, base)
        return cls(**raw)

    def write(self, buf: bytearray, base: int = 0) -> None:
        COLOR.pack(
            {
                "hue_section": self.hue_section,
                "hue_offset": self.hue_offset,
                "saturation": self.saturation,
                "value": self.value,
            },
            buf,
            base,
        )

    def to_bytes(self) -> bytes:
        buf = bytearray(self.SIZE)
        self.write(buf)
        return bytes(buf)

    def to_dict(self) -> dict:
        h, s, v = self.hsv
        return {"hex": self.hex, "hue": round(h, 2), "saturation": round(s, 4), "value": round(v, 4)}
