"""Payload layouts of every frame kind.

All offsets are relative to the start of the payload, i.e. one byte
after the report ID. Repeated blocks (charts, flow correction points,
RGBpx controllers, colors) are declared once and embedded.
"""

from __future__ import annotations

from decimal import Decimal

from .framing import PAYLOAD_SIZES, FrameKind
from .schema import Field, Reserved, Schema
from .units import (
    CELSIUS,
    LITERS_PER_HOUR,
    MICROSIEMENS_PER_CM,
    MILLIAMPERE,
    PERCENT,
    SECOND,
    VOLT,
    WATT,
)

CENTI = Decimal("0.01")
DECI = Decimal("0.1")
MILLI = Decimal("0.001")

# Raw value of a disconnected temperature sensor.
TEMPERATURE_ABSENT = 0x7FFF

# ─── SHARED BLOCKS ───────────────────────────────────────────────────

COLOR_SIZE = 4

COLOR = Schema("color", COLOR_SIZE, [
    Field("hue_section", 0),
    Field("hue_offset", 1),
    Field("saturation", 2),
    Field("value", 3),
])

SOURCE_CONTROL_SIZE = 6

SOURCE_CONTROL = Schema("source_control", SOURCE_CONTROL_SIZE, [
    Field("input_min", 0, width=2),
    Field("input_max", 2, width=2),
    Field("output_min", 4),
    Field("output_max", 5),
])

CHART_SIZE = 4
CHART_COUNT = 4

CHART = Schema("chart", CHART_SIZE, [
    Reserved("reserved", 0),
    Field("source", 1, maximum=6),
    Field("interval", 2, width=2, scale=DECI, unit=SECOND, minimum=1, maximum=60_000),
])

# ─── RGBPX CONTROLLER ────────────────────────────────────────────────

CONTROLLER_SIZE = 70
STRIP_CONTROLLERS = 6
SENSOR_CONTROLLERS = 2
CONTROLLER_COUNT = STRIP_CONTROLLERS + SENSOR_CONTROLLERS

SLOT_A_OFFSET = 9
SLOT_B_OFFSET = 15
PARAMS_OFFSET = 21
PARAM_WORDS = 12
PARAMS_SIZE = 2 * PARAM_WORDS
COLORS_OFFSET = 45
COLOR_SLOTS = 6

CONTROLLER = Schema("controller", CONTROLLER_SIZE, [
    Field("offset", 0),
    Field("length", 1),
    Field("effect", 2),
    Field("flags", 3, width=2),
    Field("data_source", 5, width=2),
    Field("attenuation_rising", 7),
    Field("attenuation_falling", 8),
    *SOURCE_CONTROL.embed("slot_a", SLOT_A_OFFSET),
    *SOURCE_CONTROL.embed("slot_b", SLOT_B_OFFSET),
    Reserved("params", PARAMS_OFFSET, PARAMS_SIZE),
    *(
        region
        for i in range(COLOR_SLOTS)
        for region in COLOR.embed(f"color{i}", COLORS_OFFSET + COLOR_SIZE * i)
    ),
    Reserved("padding", 69),
])

# ─── SETTINGS ────────────────────────────────────────────────────────

FLOW_CORRECTION_POINTS = 10
CONTROLLERS_OFFSET = 92

SETTINGS = Schema("settings", PAYLOAD_SIZES[FrameKind.SETTINGS], [
    Field("version", 0, width=2),
    # Display
    Field("temperature_unit", 2, maximum=1),
    Field("flow_unit", 3, maximum=1),
    Reserved("display.reserved4", 4),
    Field("next_page_interval", 5),
    Reserved("display.reserved6", 6, 2),
    Field("page_flags", 8, width=2),
    Reserved("display.reserved10", 10, 4),
    Field("display_brightness", 14, maximum=2),
    Field("idle_display_brightness", 15, maximum=3),
    Reserved("display.reserved16", 16, 4),
    Field("display_flags", 20),
    *(
        region
        for i in range(CHART_COUNT)
        for region in CHART.embed(f"chart{i}", 21 + CHART_SIZE * i)
    ),
    # System
    Reserved("current_draw.reserved", 37),
    Field("current_draw_flags", 38),
    Field("current_draw", 39, width=2, unit=MILLIAMPERE, minimum=500, maximum=2000),
    Field("aqua_bus_address", 41, minimum=58, maximum=61),
    # Sensor calibration
    Field("water_temp_offset", 42, width=2, signed=True, scale=CENTI,
          unit=CELSIUS, minimum=-1500, maximum=1500),
    Field("external_temp_offset", 44, width=2, signed=True, scale=CENTI,
          unit=CELSIUS, minimum=-1500, maximum=1500),
    Field("medium", 46, maximum=1),
    Field("connector_type", 47, maximum=1),
    *(
        Field(f"flow_correction.value{i}", 48 + 2 * i, width=2, signed=True,
              scale=CENTI, unit=PERCENT, minimum=-5000, maximum=5000)
        for i in range(FLOW_CORRECTION_POINTS)
    ),
    *(
        Field(f"flow_correction.flow{i}", 68 + 2 * i, width=2, scale=DECI,
              unit=LITERS_PER_HOUR, minimum=0, maximum=3000)
        for i in range(FLOW_CORRECTION_POINTS)
    ),
    # Lighting
    Field("lighting.brightness", 88),
    Reserved("lighting.reserved89", 89),
    Field("lighting.flags", 90),
    Reserved("lighting.reserved91", 91),
    *(
        region
        for i in range(CONTROLLER_COUNT)
        for region in CONTROLLER.embed(
            f"controller{i}", CONTROLLERS_OFFSET + CONTROLLER_SIZE * i
        )
    ),
    Field("standby_flags", 652),
    Reserved("system.reserved653", 653, 2),
    Field("conductivity_offset", 655, width=2, signed=True, scale=DECI,
          unit=MICROSIEMENS_PER_CM, minimum=-500, maximum=500),
    Field("water_quality_max", 657, width=2, unit=MICROSIEMENS_PER_CM,
          minimum=0, maximum=2000),
    Field("water_quality_min", 659, width=2, unit=MICROSIEMENS_PER_CM,
          minimum=0, maximum=2000),
    Reserved("sensor.reserved661", 661),
    Field("power_flags", 662),
    Field("power_damping", 663, width=2, scale=MILLI, unit=WATT,
          minimum=0, maximum=10_000),
    # Alarms
    Field("alarm.flags", 665),
    Field("alarm.enabled", 666),
    Reserved("alarm.reserved667", 667),
    Field("alarm.startup_delay", 668, unit=SECOND, minimum=0, maximum=100),
    Field("alarm.flow_limit", 669, width=2, scale=DECI, unit=LITERS_PER_HOUR,
          minimum=0, maximum=3000),
    Field("alarm.water_temperature_limit", 671, width=2, scale=CENTI,
          unit=CELSIUS, minimum=0, maximum=10_000),
    Field("alarm.external_temperature_limit", 673, width=2, scale=CENTI,
          unit=CELSIUS, minimum=0, maximum=10_000),
    Field("alarm.water_quality_limit", 675, width=2, scale=CENTI, unit=PERCENT,
          minimum=0, maximum=10_000),
    Field("alarm.output_signal", 677, maximum=5),
    Reserved("alarm.reserved678", 678),
])

CONTROLLER_OFFSETS = tuple(
    CONTROLLERS_OFFSET + CONTROLLER_SIZE * i for i in range(CONTROLLER_COUNT)
)
CHART_OFFSETS = tuple(21 + CHART_SIZE * i for i in range(CHART_COUNT))

# ─── SENSOR VALUES ───────────────────────────────────────────────────

SENSOR_VALUES = Schema("sensor_values", PAYLOAD_SIZES[FrameKind.SENSOR_VALUES], [
    Field("serial_part1", 2, width=2),
    Field("serial_part2", 4, width=2),
    Field("firmware_version", 12, width=2),
    Field("power_cycles", 23, width=4),
    Field("flow", 80, width=2, scale=DECI, unit=LITERS_PER_HOUR),
    Field("water_temperature", 84, width=2, signed=True, scale=CENTI,
          unit=CELSIUS, absent=TEMPERATURE_ABSENT),
    Field("external_temperature", 86, width=2, signed=True, scale=CENTI,
          unit=CELSIUS, absent=TEMPERATURE_ABSENT),
    Field("water_quality", 88, width=2, scale=CENTI, unit=PERCENT),
    Field("power", 90, width=2, signed=True, scale=CENTI, unit=WATT),
    Field("conductivity", 94, width=2, scale=DECI, unit=MICROSIEMENS_PER_CM),
    Field("supply_voltage", 96, width=2, scale=CENTI, unit=VOLT),
    Field("usb_voltage", 98, width=2, scale=CENTI, unit=VOLT),
])

# ─── AMBIENT COLOR / SOUND DATA ──────────────────────────────────────

AMBIENT_COLOR = Schema("ambient_color", PAYLOAD_SIZES[FrameKind.AMBIENT_COLOR], [
    region
    for i in range(CONTROLLER_COUNT)
    for region in COLOR.embed(f"color{i}", COLOR_SIZE * i)
])

SOUND_BANDS = 8

SOUND_DATA = Schema("sound_data", PAYLOAD_SIZES[FrameKind.SOUND_DATA], [
    Field(f"level{i}", 2 * i, width=2, scale=CENTI, unit=PERCENT,
          minimum=0, maximum=10_000)
    for i in range(SOUND_BANDS)
])

SCHEMAS: dict[FrameKind, Schema] = {
    FrameKind.SENSOR_VALUES: SENSOR_VALUES,
    FrameKind.SETTINGS: SETTINGS,
    FrameKind.AMBIENT_COLOR: AMBIENT_COLOR,
    FrameKind.SOUND_DATA: SOUND_DATA,
}
