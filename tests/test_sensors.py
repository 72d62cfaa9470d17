"""Tests for the SENSOR_VALUES snapshot."""

import dataclasses
from decimal import Decimal

import pytest

from builders import sensor_payload
from high_flow_next import decode, decode_sensor_values, encode_sensor_values
from high_flow_next.models.sensors import SensorSnapshot
from high_flow_next.protocol.errors import FieldOutOfRange, LengthMismatch
from high_flow_next.protocol.framing import FrameKind, build_frame


def _frame(**kwargs) -> bytes:
    return build_frame(FrameKind.SENSOR_VALUES, bytes(sensor_payload(**kwargs)))


def test_decode_sensor_values():
    snapshot = decode_sensor_values(_frame())
    assert snapshot.serial_number == "12345-00678"
    assert snapshot.firmware_version == 1012
    assert snapshot.power_cycles == 42
    assert snapshot.flow == Decimal("123.4")
    assert snapshot.water_temperature == Decimal("23.50")
    assert snapshot.external_temperature is None
    assert snapshot.water_quality == Decimal("97.50")
    assert snapshot.power == Decimal("1.25")
    assert snapshot.conductivity == Decimal("1.8")
    assert snapshot.supply_voltage == Decimal("12.05")
    assert snapshot.usb_voltage == Decimal("5.05")


def test_negative_temperature():
    snapshot = decode_sensor_values(_frame(water_temperature=-150))
    assert snapshot.water_temperature == Decimal("-1.50")


def test_decode_dispatch():
    decoded = decode(_frame())
    assert decoded.kind == FrameKind.SENSOR_VALUES
    assert isinstance(decoded.value, SensorSnapshot)


def test_roundtrip():
    raw = _frame(external_temperature=2100)
    snapshot = decode_sensor_values(raw)
    assert snapshot.external_temperature == Decimal("21.00")
    assert decode_sensor_values(encode_sensor_values(snapshot)) == snapshot


def test_encode_is_deterministic():
    snapshot = SensorSnapshot(flow=Decimal("80.5"), water_temperature=Decimal("30"))
    assert encode_sensor_values(snapshot) == encode_sensor_values(snapshot)


def test_encode_flow_overflow():
    snapshot = SensorSnapshot(flow=Decimal("7000"))
    with pytest.raises(FieldOutOfRange) as excinfo:
        encode_sensor_values(snapshot)
    assert excinfo.value.field == "flow"


def test_encode_bad_serial():
    with pytest.raises(FieldOutOfRange):
        encode_sensor_values(SensorSnapshot(serial_number="12345"))


def test_truncated_report():
    with pytest.raises(LengthMismatch):
        decode_sensor_values(_frame()[:-1])


def test_to_dict():
    result = decode_sensor_values(_frame()).to_dict()
    assert result["water_temperature"] == {"value": 23.5, "unit": "°C"}
    assert result["external_temperature"] == {"value": None, "unit": "°C"}
    assert result["flow"]["unit"] == "l/h"


def test_snapshot_is_immutable():
    snapshot = SensorSnapshot()
    with pytest.raises(dataclasses.FrozenInstanceError):
        snapshot.flow = Decimal("1")


def test_encode_conductivity_overflowing_width():
    """6553.6 µS/cm needs 65536 tenths, one more than the word holds."""
    with pytest.raises(FieldOutOfRange) as excinfo:
        encode_sensor_values(SensorSnapshot(conductivity=Decimal("6553.6")))
    assert excinfo.value.field == "conductivity"


def test_encode_temperature_matching_disconnected_marker():
    """A real 327.67 °C reading would decode as a disconnected sensor."""
    with pytest.raises(FieldOutOfRange) as excinfo:
        encode_sensor_values(SensorSnapshot(water_temperature=Decimal("327.67")))
    assert excinfo.value.field == "water_temperature"
    snapshot = SensorSnapshot(water_temperature=Decimal("327.66"))
    assert decode_sensor_values(encode_sensor_values(snapshot)) == snapshot


@pytest.mark.parametrize("serial", ["1-2", "+1234-00001", "1_000-00001", "12345-678901", "1234500001"])
def test_encode_rejects_malformed_serial(serial):
    with pytest.raises(FieldOutOfRange) as excinfo:
        encode_sensor_values(SensorSnapshot(serial_number=serial))
    assert excinfo.value.field == "serial_number"


def test_serial_roundtrip():
    snapshot = SensorSnapshot(serial_number="00042-65535")
    assert decode_sensor_values(encode_sensor_values(snapshot)).serial_number == "00042-65535"
