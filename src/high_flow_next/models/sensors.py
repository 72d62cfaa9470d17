"""Live telemetry from the SENSOR_VALUES report."""

from __future__ import annotations

import re
from dataclasses import dataclass
from decimal import Decimal
from typing import ClassVar, Optional

from ..protocol.errors import FieldOutOfRange
from ..protocol.layouts import SENSOR_VALUES
from .base import decode_fields, encode_fields, jsonable

MEASUREMENTS = (
    "flow",
    "water_temperature",
    "external_temperature",
    "water_quality",
    "power",
    "conductivity",
    "supply_voltage",
    "usb_voltage",
)

SERIAL_PATTERN = re.compile(r"([0-9]{5})-([0-9]{5})")


@dataclass(frozen=True)
class SensorSnapshot:
    """Sensor readings at one point in time.

    A disconnected temperature sensor reads as ``None``.
    """

    SIZE: ClassVar[int] = SENSOR_VALUES.size

    serial_number: str = "00000-00000"
    firmware_version: int = 0
    power_cycles: int = 0
    flow: Decimal = Decimal("0.0")  # l/h
    water_temperature: Optional[Decimal] = None  # °C
    external_temperature: Optional[Decimal] = None  # °C
    water_quality: Decimal = Decimal("0.00")  # %
    power: Decimal = Decimal("0.00")  # W
    conductivity: Decimal = Decimal("0.0")  # µS/cm
    supply_voltage: Decimal = Decimal("0.00")  # V
    usb_voltage: Decimal = Decimal("0.00")  # V

    @classmethod
    def from_payload(cls, payload: bytes) -> SensorSnapshot:
        raw = SENSOR_VALUES.unpack(payload)
        return cls(
            serial_number=f"{raw['serial_part1']:05d}-{raw['serial_part2']:05d}",
            firmware_version=raw["firmware_version"],
            power_cycles=raw["power_cycles"],
            **decode_fields(SENSOR_VALUES, raw, *MEASUREMENTS),
        )

    def to_payload(self) -> bytes:
        buf = bytearray(self.SIZE)
        values = encode_fields(
            SENSOR_VALUES, {name: getattr(self, name) for name in MEASUREMENTS}
        )
        part1, part2 = _split_serial(self.serial_number)
        values.update(
            encode_fields(SENSOR_VALUES, {
                "serial_part1": part1,
                "serial_part2": part2,
                "firmware_version": self.firmware_version,
                "power_cycles": self.power_cycles,
            })
        )
        SENSOR_VALUES.pack(values, buf)
        return bytes(buf)

    def to_dict(self) -> dict:
        result = {
            "serial_number": self.serial_number,
            "firmware_version": self.firmware_version,
            "power_cycles": self.power_cycles,
        }
        for name in MEASUREMENTS:
            field = SENSOR_VALUES.field(name)
            result[name] = {"value": jsonable(getattr(self, name)), "unit": field.unit}
        return result


def _split_serial(serial: str) -> tuple[int, int]:
    """Parse ``NNNNN-NNNNN`` into its two halves."""
    match = SERIAL_PATTERN.fullmatch(serial) if isinstance(serial, str) else None
    if match is None:
        raise FieldOutOfRange("serial_number", serial)
    return int(match.group(1)), int(match.group(2))
