"""Auxiliary reports: device strings, ambient colors and sound levels."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import ClassVar

from ..protocol.errors import FieldOutOfRange
from ..protocol.layouts import AMBIENT_COLOR, COLOR_SIZE, CONTROLLER_COUNT, SOUND_BANDS, SOUND_DATA
from .base import encode_fields, jsonable
from .color import Color

LABEL_TERMINATOR = b"\x00"


@dataclass(frozen=True)
class DeviceStrings:
    """NUL-terminated UTF-8 labels carried by the STRINGS report."""

    labels: tuple[str, ...] = ()

    @classmethod
    def from_payload(cls, payload: bytes) -> DeviceStrings:
        if not payload:
            return cls()
        if not payload.endswith(LABEL_TERMINATOR):
            raise FieldOutOfRange("strings", payload[-1:].hex())
        try:
            text = payload[:-1].decode("utf-8")
        except UnicodeDecodeError as e:
            raise FieldOutOfRange("strings", payload[e.start : e.end].hex()) from None
        return cls(labels=tuple(text.split("\x00")))

    def to_payload(self) -> bytes:
        chunks = []
        for label in self.labels:
            if "\x00" in label:
                raise FieldOutOfRange("strings", label)
            chunks.append(label.encode("utf-8") + LABEL_TERMINATOR)
        return b"".join(chunks)

    def to_dict(self) -> dict:
        return {"labels": list(self.labels)}


@dataclass(frozen=True)
class AmbientColor:
    """One color per RGBpx controller slot, shown by ambient effects."""

    SIZE: ClassVar[int] = AMBIENT_COLOR.size

    colors: tuple[Color, ...] = (Color(),) * CONTROLLER_COUNT

    @classmethod
    def from_payload(cls, payload: bytes) -> AmbientColor:
        return cls(
            colors=tuple(
                Color.from_bytes(payload, COLOR_SIZE * i) for i in range(CONTROLLER_COUNT)
            )
        )

    def to_payload(self) -> bytes:
        if len(self.colors) != CONTROLLER_COUNT:
            raise FieldOutOfRange(
                "ambient_color.colors", len(self.colors), CONTROLLER_COUNT, CONTROLLER_COUNT
            )
        buf = bytearray(self.SIZE)
        for i, color in enumerate(self.colors):
            color.write(buf, COLOR_SIZE * i)
        return bytes(buf)

    def to_dict(self) -> dict:
        return {"colors": jsonable(self.colors)}


@dataclass(frozen=True)
class SoundData:
    """Band levels in percent (0-100) for sound-reactive effects."""

    SIZE: ClassVar[int] = SOUND_DATA.size

    levels: tuple[Decimal, ...] = (Decimal("0.00"),) * SOUND_BANDS

    @classmethod
    def from_payload(cls, payload: bytes) -> SoundData:
        raw = SOUND_DATA.unpack(payload)
        return cls(
            levels=tuple(
                SOUND_DATA.field(f"level{i}").decode(raw[f"level{i}"])
                for i in range(SOUND_BANDS)
            )
        )

    def to_payload(self) -> bytes:
        if len(self.levels) != SOUND_BANDS:
            raise FieldOutOfRange("sound_data.levels", len(self.levels), SOUND_BANDS, SOUND_BANDS)
        buf = bytearray(self.SIZE)
        SOUND_DATA.pack(
            encode_fields(SOUND_DATA, {f"level{i}": v for i, v in enumerate(self.levels)}),
            buf,
        )
        return bytes(buf)

    def to_dict(self) -> dict:
        return {"levels": jsonable(self.levels)}
