"""Tests for the SETTINGS snapshot."""

import dataclasses
from decimal import Decimal

import pytest

from builders import put_u16, settings_frame, settings_payload
from high_flow_next import decode_settings, encode_settings
from high_flow_next.protocol.errors import ChecksumMismatch, FieldOutOfRange, UnknownFrameType
from high_flow_next.protocol.framing import FrameKind, build_frame, parse_frame
from high_flow_next.models.settings import (
    AlarmFlags,
    ChartSource,
    ConnectorType,
    DisplayBrightness,
    DisplayFlags,
    FlowUnit,
    Medium,
    OutputSignal,
    PageFlags,
    PowerFlags,
    Settings,
    StandbyFlags,
    TemperatureUnit,
)


def test_decode_system_settings():
    system = decode_settings(settings_frame()).system
    assert system.standby_flags == StandbyFlags.NONE
    assert system.aqua_bus_address == 58
    assert system.increased_current_draw is None


def test_decode_sensor_settings():
    sensor = decode_settings(settings_frame()).sensor
    assert sensor.medium == Medium.DP_ULTRA
    assert sensor.connector_type == ConnectorType.INNER_DIAMETER_GT_7MM
    assert [p.flow for p in sensor.flow_correction] == [
        Decimal(v) for v in ("20", "30", "50", "70", "100", "125", "150", "200", "250", "300")
    ]
    assert all(p.correction == 0 for p in sensor.flow_correction)
    assert sensor.water_temp_offset == 0
    assert sensor.external_temp_offset == 0
    assert sensor.conductivity_offset == 0
    assert sensor.water_quality_max == 500
    assert sensor.water_quality_min == 950
    assert sensor.power_flags == PowerFlags.NONE
    assert sensor.power_damping == 0


def test_decode_alarm_settings():
    """Only the enabled water temperature limit is reported."""
    alarms = decode_settings(settings_frame()).alarms
    assert alarms.flags == (
        AlarmFlags.ENABLE_ACUSTIC_INDICATOR
        | AlarmFlags.ENABLE_OPTICAL_INDICATOR
        | AlarmFlags.DISABLE_SIGNAL_OUTPUT_DURING_ALARM
    )
    assert alarms.startup_delay == 10
    assert alarms.flow_limit is None
    assert alarms.water_temperature_limit == Decimal("45.00")
    assert alarms.external_temperature_limit is None
    assert alarms.water_quality_limit is None
    assert alarms.output_signal == OutputSignal.CONSTANT_SPEED


def test_decode_display_settings():
    display = decode_settings(settings_frame()).display
    assert display.temperature_unit == TemperatureUnit.C
    assert display.flow_unit == FlowUnit.LITER
    assert display.display_flags == DisplayFlags.AUTO_INVERT
    assert display.next_page_interval == 10
    assert display.page_flags == (
        PageFlags.DEVICE_INFO | PageFlags.FLOW | PageFlags.WATER_TEMP
        | PageFlags.CONDUCTIVITY | PageFlags.WATER_QUALITY | PageFlags.FLOW_WATERTEMP
        | PageFlags.COND_QUALITY | PageFlags.FLOW_VOLUME | PageFlags.CHART1
        | PageFlags.CHART2 | PageFlags.CHART3 | PageFlags.CHART4
    )
    assert display.display_brightness == DisplayBrightness.LOW
    assert display.idle_display_brightness == DisplayBrightness.LOW
    assert [c.source for c in display.charts] == [
        ChartSource.FLOW,
        ChartSource.WATER_TEMP,
        ChartSource.WATER_QUALITY,
        ChartSource.POWER_CONSUMPTION,
    ]
    assert all(c.interval == Decimal("1.0") for c in display.charts)


def test_decode_version():
    assert decode_settings(settings_frame()).version == 1


def test_reencode_with_template_is_byte_identical():
    raw = settings_frame()
    assert encode_settings(decode_settings(raw), raw) == raw


def test_reencode_without_template_is_stable():
    """Encoding from zeros decodes back to an equal snapshot."""
    settings = decode_settings(settings_frame())
    assert decode_settings(encode_settings(settings)) == settings


def test_default_settings_encode():
    settings = Settings()
    raw = encode_settings(settings)
    assert len(raw) == 682
    decoded = decode_settings(raw)
    assert decoded.display.next_page_interval is None
    assert decoded == settings


def test_template_unknown_bits_survive():
    """Reserved bytes and undefined flag bits come from the template."""
    payload = settings_payload()
    payload[4] = 0x5A            # reserved display byte
    payload[20] |= 0x40          # undefined display flag
    payload[666] |= 0x10         # undefined alarm enable bit
    payload[38] |= 0x80          # undefined current draw flag
    raw = settings_frame(payload)

    settings = decode_settings(raw)
    assert settings.display.display_flags == DisplayFlags.AUTO_INVERT

    display = dataclasses.replace(settings.display, display_flags=DisplayFlags.ROTATE)
    out = parse_frame(encode_settings(dataclasses.replace(settings, display=display), raw)).payload
    assert out[4] == 0x5A
    assert out[20] == 0x41
    assert out[666] == 0x12
    assert out[38] == 0x80


def test_modify_one_field():
    raw = settings_frame()
    settings = decode_settings(raw)
    sensor = dataclasses.replace(settings.sensor, water_temp_offset=Decimal("-1.25"))
    out = encode_settings(dataclasses.replace(settings, sensor=sensor), raw)

    before = parse_frame(raw).payload
    after = parse_frame(out).payload
    changed = [i for i in range(len(before)) if before[i] != after[i]]
    assert changed == [42, 43]
    assert int.from_bytes(after[42:44], "big", signed=True) == -125


def test_disabling_alarm_keeps_stored_limit():
    raw = settings_frame()
    settings = decode_settings(raw)
    alarms = dataclasses.replace(settings.alarms, water_temperature_limit=None)
    out = parse_frame(encode_settings(dataclasses.replace(settings, alarms=alarms), raw)).payload
    assert out[666] == 0x00
    assert int.from_bytes(out[671:673], "big") == 4500


def test_increased_current_draw():
    raw = settings_frame()
    settings = decode_settings(raw)
    system = dataclasses.replace(settings.system, increased_current_draw=1500)
    out = encode_settings(dataclasses.replace(settings, system=system), raw)
    payload = parse_frame(out).payload
    assert payload[38] & 0x01
    assert int.from_bytes(payload[39:41], "big") == 1500
    assert decode_settings(out).system.increased_current_draw == 1500


def test_next_page_disabled():
    payload = settings_payload()
    payload[5] = 0xFE
    raw = settings_frame(payload)
    settings = decode_settings(raw)
    assert settings.display.next_page_interval is None
    # The template's own marker is kept.
    assert encode_settings(settings, raw) == raw
    assert parse_frame(encode_settings(settings)).payload[5] == 0xFF


def test_next_page_below_minimum():
    payload = settings_payload()
    payload[5] = 2
    with pytest.raises(FieldOutOfRange) as excinfo:
        decode_settings(settings_frame(payload))
    assert excinfo.value.field == "next_page_interval"


def test_idle_display_off():
    payload = settings_payload()
    payload[15] = 3
    settings = decode_settings(settings_frame(payload))
    assert settings.display.idle_display_brightness is None


def test_aqua_bus_address_out_of_range():
    payload = settings_payload()
    payload[41] = 57
    with pytest.raises(FieldOutOfRange) as excinfo:
        decode_settings(settings_frame(payload))
    assert excinfo.value.field == "aqua_bus_address"
    assert excinfo.value.value == 57


def test_unknown_enum_code():
    payload = settings_payload()
    payload[46] = 7
    with pytest.raises(FieldOutOfRange) as excinfo:
        decode_settings(settings_frame(payload))
    assert excinfo.value.field == "medium"


def test_disabled_limit_is_not_range_checked():
    """A limit whose alarm is off may hold any value."""
    payload = settings_payload()
    put_u16(payload, 669, 0xFFFF)
    assert decode_settings(settings_frame(payload)).alarms.flow_limit is None


def test_checksum_checked_before_fields():
    payload = settings_payload()
    payload[41] = 0
    frame = bytearray(settings_frame(payload))
    frame[-1] ^= 0x01
    with pytest.raises(ChecksumMismatch):
        decode_settings(bytes(frame))


def test_encode_value_out_of_range():
    settings = decode_settings(settings_frame())
    sensor = dataclasses.replace(settings.sensor, water_temp_offset=Decimal("15.01"))
    with pytest.raises(FieldOutOfRange) as excinfo:
        encode_settings(dataclasses.replace(settings, sensor=sensor))
    assert excinfo.value.field == "water_temp_offset"


def test_encode_wrong_flow_correction_count():
    settings = decode_settings(settings_frame())
    sensor = dataclasses.replace(settings.sensor, flow_correction=settings.sensor.flow_correction[:9])
    with pytest.raises(FieldOutOfRange):
        encode_settings(dataclasses.replace(settings, sensor=sensor))


def test_template_must_be_settings_frame():
    with pytest.raises(UnknownFrameType):
        encode_settings(Settings(), build_frame(FrameKind.SOUND_DATA, bytes(16)))


def test_decode_settings_rejects_other_kinds():
    with pytest.raises(UnknownFrameType):
        decode_settings(build_frame(FrameKind.SOUND_DATA, bytes(16)))


def test_to_dict():
    result = decode_settings(settings_frame()).to_dict()
    assert result["display"]["display_brightness"] == "LOW"
    assert result["alarms"]["water_temperature_limit"] == 45.0
    assert result["alarms"]["flags"] == [
        "DISABLE_SIGNAL_OUTPUT_DURING_ALARM",
        "ENABLE_OPTICAL_INDICATOR",
        "ENABLE_ACUSTIC_INDICATOR",
    ]
    assert result["lighting"]["brightness"] == 255


def test_non_integer_next_page_interval():
    settings = decode_settings(settings_frame())
    display = dataclasses.replace(settings.display, next_page_interval=5.0)
    with pytest.raises(FieldOutOfRange) as excinfo:
        encode_settings(dataclasses.replace(settings, display=display))
    assert excinfo.value.field == "next_page_interval"
