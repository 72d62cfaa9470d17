"""Settings snapshot: the 679-byte SETTINGS payload.

Decoding reads every raw field through ``protocol.layouts.SETTINGS`` and
range-checks it while converting. Encoding starts from a template
payload (or zeros) and overwrites only what the snapshot models, so
reserved bytes and unknown flag bits are carried over.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import IntEnum, IntFlag
from typing import ClassVar, Mapping, Optional

from ..protocol.errors import FieldOutOfRange
from ..protocol.layouts import CHART_COUNT, FLOW_CORRECTION_POINTS, SETTINGS
from .base import as_enum, decode_fields, encode_fields, jsonable, known_flags, merge_flags
from .lighting import LightingSettings

# Alarm enable bits; a limit is only meaningful when its bit is set.
ALARM_FLOW = 0x01
ALARM_WATER_TEMPERATURE = 0x02
ALARM_EXTERNAL_TEMPERATURE = 0x04
ALARM_WATER_QUALITY = 0x08

CURRENT_DRAW_ENABLED = 0x01

NEXT_PAGE_MIN = 3
NEXT_PAGE_MAX = 60
NEXT_PAGE_DISABLED = 0xFF

IDLE_BRIGHTNESS_OFF = 3


class TemperatureUnit(IntEnum):
    C = 0
    F = 1


class FlowUnit(IntEnum):
    LITER = 0
    GALLONS = 1


class DisplayBrightness(IntEnum):
    MAXIMUM = 0
    MEDIUM = 1
    LOW = 2


class ChartSource(IntEnum):
    FLOW = 0
    WATER_TEMP = 1
    EXTERNAL_TEMP = 2
    CONDUCTIVITY = 3
    WATER_QUALITY = 4
    POWER_CONSUMPTION = 5
    SYSTEM_VOLTAGE = 6


class Medium(IntEnum):
    DP_ULTRA = 0
    DISTILLED_WATER = 1


class ConnectorType(IntEnum):
    INNER_DIAMETER_GT_7MM = 0
    INNER_DIAMETER_LT_7MM = 1


class OutputSignal(IntEnum):
    CONSTANT_SPEED = 0
    HIGH_FLOW_SENSOR = 1
    FAN_FROM_FLOW = 2
    PULSE_ON_ALARM = 3
    PERMANENT_ON = 4
    PERMANENT_OFF = 5


class StandbyFlags(IntFlag):
    NONE = 0
    STANDBY_NO_USB = 0x01
    STANDBY_ON_SUSPEND = 0x02
    STANDBY_ON_ABUS_LOSS = 0x04
    DISABLE_ALARM_DETECT = 0x10
    DISPLAY_OFF = 0x20
    LEDS_DISABLED = 0x40
    DISABLE_VOLUME_COUNTER = 0x80


class AlarmFlags(IntFlag):
    NONE = 0
    DISABLE_SIGNAL_OUTPUT_DURING_ALARM = 0x20
    ENABLE_OPTICAL_INDICATOR = 0x40
    ENABLE_ACUSTIC_INDICATOR = 0x80


class PowerFlags(IntFlag):
    NONE = 0
    AUTOMATIC_POWER_OFFSET_COMPENSATION = 0x01


class DisplayFlags(IntFlag):
    NONE = 0
    ROTATE = 0x01
    INVERT = 0x04
    AUTO_INVERT = 0x08
    DISABLE_BUTTONS = 0x10
    LOCK_MENU = 0x20


class PageFlags(IntFlag):
    NONE = 0
    DEVICE_INFO = 0x0001
    FLOW = 0x0002
    WATER_TEMP = 0x0004
    EXTERNAL_TEMP = 0x0008
    CONDUCTIVITY = 0x0010
    WATER_QUALITY = 0x0020
    VOLUME_COUNT = 0x0040
    POWER_SENSOR = 0x0080
    FLOW_WATERTEMP = 0x0100
    COND_QUALITY = 0x0200
    TEMPERATURES = 0x0400
    FLOW_VOLUME = 0x0800
    CHART1 = 0x1000
    CHART2 = 0x2000
    CHART3 = 0x4000
    CHART4 = 0x8000


# ─── SECTIONS ────────────────────────────────────────────────────────

@dataclass(frozen=True)
class Chart:
    """One display chart page."""

    source: ChartSource = ChartSource.FLOW
    interval: Decimal = Decimal("1.0")  # seconds


@dataclass(frozen=True)
class FlowCorrectionPoint:
    """Correction in percent applied at a given flow rate (l/h)."""

    flow: Decimal
    correction: Decimal = Decimal("0.00")


# Factory calibration points, in l/h.
DEFAULT_FLOW_CORRECTION = tuple(
    FlowCorrectionPoint(flow=Decimal(flow))
    for flow in ("20.0", "30.0", "50.0", "70.0", "100.0", "125.0", "150.0", "200.0", "250.0", "300.0")
)


@dataclass(frozen=True)
class SystemSettings:
    standby_flags: StandbyFlags = StandbyFlags.NONE
    aqua_bus_address: int = 58
    increased_current_draw: Optional[int] = None  # mA


@dataclass(frozen=True)
class SensorSettings:
    """Sensor calibration."""

    medium: Medium = Medium.DP_ULTRA
    connector_type: ConnectorType = ConnectorType.INNER_DIAMETER_GT_7MM
    flow_correction: tuple[FlowCorrectionPoint, ...] = DEFAULT_FLOW_CORRECTION
    water_temp_offset: Decimal = Decimal("0.00")
    external_temp_offset: Decimal = Decimal("0.00")
    conductivity_offset: Decimal = Decimal("0.0")
    water_quality_max: int = 0
    water_quality_min: int = 0
    power_flags: PowerFlags = PowerFlags.NONE
    power_damping: Decimal = Decimal("0.000")


@dataclass(frozen=True)
class AlarmSettings:
    """Alarm configuration; a ``None`` limit means that alarm is disabled."""

    flags: AlarmFlags = AlarmFlags.NONE
    startup_delay: int = 0
    flow_limit: Optional[Decimal] = None
    water_temperature_limit: Optional[Decimal] = None
    external_temperature_limit: Optional[Decimal] = None
    water_quality_limit: Optional[Decimal] = None
    output_signal: OutputSignal = OutputSignal.CONSTANT_SPEED


ALARM_LIMITS = (
    ("flow_limit", "alarm.flow_limit", ALARM_FLOW),
    ("water_temperature_limit", "alarm.water_temperature_limit", ALARM_WATER_TEMPERATURE),
    ("external_temperature_limit", "alarm.external_temperature_limit", ALARM_EXTERNAL_TEMPERATURE),
    ("water_quality_limit", "alarm.water_quality_limit", ALARM_WATER_QUALITY),
)
ALARM_ENABLE_MASK = ALARM_FLOW | ALARM_WATER_TEMPERATURE | ALARM_EXTERNAL_TEMPERATURE | ALARM_WATER_QUALITY


@dataclass(frozen=True)
class DisplaySettings:
    temperature_unit: TemperatureUnit = TemperatureUnit.C
    flow_unit: FlowUnit = FlowUnit.LITER
    display_flags: DisplayFlags = DisplayFlags.NONE
    next_page_interval: Optional[int] = None  # seconds
    page_flags: PageFlags = PageFlags.NONE
    display_brightness: DisplayBrightness = DisplayBrightness.MAXIMUM
    idle_display_brightness: Optional[DisplayBrightness] = None
    charts: tuple[Chart, ...] = (Chart(),) * CHART_COUNT


# ─── SNAPSHOT ────────────────────────────────────────────────────────

@dataclass(frozen=True)
class Settings:
    """Complete device configuration."""

    SIZE: ClassVar[int] = SETTINGS.size

    version: int = 0
    system: SystemSettings = SystemSettings()
    sensor: SensorSettings = SensorSettings()
    alarms: AlarmSettings = AlarmSettings()
    display: DisplaySettings = DisplaySettings()
    lighting: Optional[LightingSettings] = None

    @classmethod
    def from_payload(cls, payload: bytes) -> Settings:
        """Decode a SETTINGS payload.

        Raises:
            FieldOutOfRange: If any modelled field is invalid.
        """
        raw = SETTINGS.unpack(payload)
        return cls(
            version=raw["version"],
            system=_decode_system(raw),
            sensor=_decode_sensor(raw),
            alarms=_decode_alarms(raw),
            display=_decode_display(raw),
            lighting=LightingSettings.from_payload(payload, raw),
        )

    def to_payload(self, template: Optional[bytes] = None) -> bytes:
        """Encode into a SETTINGS payload.

        Args:
            template: A valid SETTINGS payload whose unmodelled bytes are
                kept. Without it those bytes are zero.
        """
        buf = bytearray(template) if template is not None else bytearray(self.SIZE)
        previous = SETTINGS.unpack(buf)

        values: dict[str, int] = {"version": SETTINGS.field("version").encode(self.version)}
        values.update(_encode_system(self.system, previous))
        values.update(_encode_sensor(self.sensor, previous))
        values.update(_encode_alarms(self.alarms, previous))
        values.update(_encode_display(self.display, previous))
        SETTINGS.pack(values, buf)

        LightingSettings.write(self.lighting, buf, previous)
        return bytes(buf)

    def to_dict(self) -> dict:
        """Convert settings to a JSON-serializable dictionary."""
        return {
            "version": self.version,
            "system": jsonable(self.system),
            "sensor": jsonable(self.sensor),
            "alarms": jsonable(self.alarms),
            "display": jsonable(self.display),
            "lighting": self.lighting.to_dict() if self.lighting else None,
        }


# ─── DECODING ────────────────────────────────────────────────────────

def _decode_system(raw: Mapping[str, int]) -> SystemSettings:
    current_draw = None
    if raw["current_draw_flags"] & CURRENT_DRAW_ENABLED:
        current_draw = SETTINGS.field("current_draw").decode(raw["current_draw"])
    return SystemSettings(
        standby_flags=known_flags(StandbyFlags, raw["standby_flags"]),
        aqua_bus_address=SETTINGS.field("aqua_bus_address").decode(raw["aqua_bus_address"]),
        increased_current_draw=current_draw,
    )


def _decode_sensor(raw: Mapping[str, int]) -> SensorSettings:
    values = decode_fields(
        SETTINGS, raw,
        "water_temp_offset", "external_temp_offset", "conductivity_offset",
        "water_quality_max", "water_quality_min", "power_damping",
    )
    points = tuple(
        FlowCorrectionPoint(
            flow=SETTINGS.field(f"flow_correction.flow{i}").decode(raw[f"flow_correction.flow{i}"]),
            correction=SETTINGS.field(f"flow_correction.value{i}").decode(
                raw[f"flow_correction.value{i}"]
            ),
        )
        for i in range(FLOW_CORRECTION_POINTS)
    )
    return SensorSettings(
        medium=as_enum(Medium, raw["medium"], "medium"),
        connector_type=as_enum(ConnectorType, raw["connector_type"], "connector_type"),
        flow_correction=points,
        power_flags=known_flags(PowerFlags, raw["power_flags"]),
        **values,
    )


def _decode_alarms(raw: Mapping[str, int]) -> AlarmSettings:
    enabled = raw["alarm.enabled"]
    limits = {
        attr: SETTINGS.field(name).decode(raw[name]) if enabled & bit else None
        for attr, name, bit in ALARM_LIMITS
    }
    return AlarmSettings(
        flags=known_flags(AlarmFlags, raw["alarm.flags"]),
        startup_delay=SETTINGS.field("alarm.startup_delay").decode(raw["alarm.startup_delay"]),
        output_signal=as_enum(OutputSignal, raw["alarm.output_signal"], "alarm.output_signal"),
        **limits,
    )


def _decode_next_page(raw_value: int) -> Optional[int]:
    # Values above the maximum disable paging; values below the minimum are invalid.
    if raw_value > NEXT_PAGE_MAX:
        return None
    if raw_value < NEXT_PAGE_MIN:
        raise FieldOutOfRange("next_page_interval", raw_value, NEXT_PAGE_MIN, NEXT_PAGE_MAX)
    return raw_value


def _decode_display(raw: Mapping[str, int]) -> DisplaySettings:
    charts = tuple(
        Chart(
            source=as_enum(ChartSource, raw[f"chart{i}.source"], f"chart{i}.source"),
            interval=SETTINGS.field(f"chart{i}.interval").decode(raw[f"chart{i}.interval"]),
        )
        for i in range(CHART_COUNT)
    )
    idle = SETTINGS.field("idle_display_brightness").decode(raw["idle_display_brightness"])
    return DisplaySettings(
        temperature_unit=as_enum(TemperatureUnit, raw["temperature_unit"], "temperature_unit"),
        flow_unit=as_enum(FlowUnit, raw["flow_unit"], "flow_unit"),
        display_flags=known_flags(DisplayFlags, raw["display_flags"]),
        next_page_interval=_decode_next_page(raw["next_page_interval"]),
        page_flags=known_flags(PageFlags, raw["page_flags"]),
        display_brightness=as_enum(
            DisplayBrightness, raw["display_brightness"], "display_brightness"
        ),
        idle_display_brightness=None if idle == IDLE_BRIGHTNESS_OFF else DisplayBrightness(idle),
        charts=charts,
    )


# ─── ENCODING ────────────────────────────────────────────────────────

def _encode_system(system: SystemSettings, previous: Mapping[str, int]) -> dict[str, int]:
    values = encode_fields(SETTINGS, {"aqua_bus_address": system.aqua_bus_address})
    values["standby_flags"] = merge_flags(system.standby_flags, previous["standby_flags"])
    flags = previous["current_draw_flags"]
    if system.increased_current_draw is None:
        values["current_draw_flags"] = flags & ~CURRENT_DRAW_ENABLED
    else:
        values["current_draw_flags"] = flags | CURRENT_DRAW_ENABLED
        values.update(encode_fields(SETTINGS, {"current_draw": system.increased_current_draw}))
    return values


def _encode_sensor(sensor: SensorSettings, previous: Mapping[str, int]) -> dict[str, int]:
    if len(sensor.flow_correction) != FLOW_CORRECTION_POINTS:
        raise FieldOutOfRange(
            "flow_correction", len(sensor.flow_correction),
            FLOW_CORRECTION_POINTS, FLOW_CORRECTION_POINTS,
        )
    physical: dict[str, object] = {
        "water_temp_offset": sensor.water_temp_offset,
        "external_temp_offset": sensor.external_temp_offset,
        "conductivity_offset": sensor.conductivity_offset,
        "water_quality_max": sensor.water_quality_max,
        "water_quality_min": sensor.water_quality_min,
        "power_damping": sensor.power_damping,
        "medium": int(sensor.medium),
        "connector_type": int(sensor.connector_type),
    }
    for i, point in enumerate(sensor.flow_correction):
        physical[f"flow_correction.flow{i}"] = point.flow
        physical[f"flow_correction.value{i}"] = point.correction
    values = encode_fields(SETTINGS, physical)
    values["power_flags"] = merge_flags(sensor.power_flags, previous["power_flags"])
    return values


def _encode_alarms(alarms: AlarmSettings, previous: Mapping[str, int]) -> dict[str, int]:
    values = encode_fields(SETTINGS, {
        "alarm.startup_delay": alarms.startup_delay,
        "alarm.output_signal": int(alarms.output_signal),
    })
    values["alarm.flags"] = merge_flags(alarms.flags, previous["alarm.flags"])
    enabled = previous["alarm.enabled"] & ~ALARM_ENABLE_MASK
    for attr, name, bit in ALARM_LIMITS:
        limit = getattr(alarms, attr)
        if limit is not None:
            enabled |= bit
            values.update(encode_fields(SETTINGS, {name: limit}))
    values["alarm.enabled"] = enabled
    return values


def _encode_display(display: DisplaySettings, previous: Mapping[str, int]) -> dict[str, int]:
    if len(display.charts) != CHART_COUNT:
        raise FieldOutOfRange("charts", len(display.charts), CHART_COUNT, CHART_COUNT)

    interval = display.next_page_interval
    if interval is None:
        # Keep a template's own "disabled" marker.
        next_page = (
            previous["next_page_interval"]
            if previous["next_page_interval"] > NEXT_PAGE_MAX
            else NEXT_PAGE_DISABLED
        )
    elif not NEXT_PAGE_MIN <= interval <= NEXT_PAGE_MAX:
        raise FieldOutOfRange("next_page_interval", interval, NEXT_PAGE_MIN, NEXT_PAGE_MAX)
    else:
        next_page = interval

    idle = display.idle_display_brightness
    physical: dict[str, object] = {
        "temperature_unit": int(display.temperature_unit),
        "flow_unit": int(display.flow_unit),
        "display_brightness": int(display.display_brightness),
        "idle_display_brightness": IDLE_BRIGHTNESS_OFF if idle is None else int(idle),
    }
    for i, chart in enumerate(display.charts):
        physical[f"chart{i}.source"] = int(chart.source)
        physical[f"chart{i}.interval"] = chart.interval
    values = encode_fields(SETTINGS, physical)
    values["next_page_interval"] = next_page
    values["display_flags"] = merge_flags(display.display_flags, previous["display_flags"])
    values["page_flags"] = merge_flags(display.page_flags, previous["page_flags"])
    return values
