"""MCP server entry point for the Aqua Computer high flow NEXT.

Exposes the device's settings, telemetry and lighting reports as tools
via the Model Context Protocol using the official Python MCP SDK with
stdio transport.
"""

from __future__ import annotations

import dataclasses
import json
import logging
from decimal import Decimal
from typing import Any

from mcp.server.fastmcp import FastMCP

from .models.color import Color
from .models.settings import DisplayBrightness
from .protocol.decoder import decode_sensor_values, decode_settings, decode_strings
from .protocol.encoder import encode_ambient_color, encode_settings, encode_sound_data
from .protocol.errors import ProtocolError
from .protocol.framing import FrameKind, frame_size, strip_padding
from .transport.hid_connection import HIDConnection

logger = logging.getLogger(__name__)

mcp = FastMCP(
    "high-flow-next",
    instructions="MCP server for the Aqua Computer high flow NEXT flow sensor",
)

# Global connection state
_connection: HIDConnection | None = None

# Largest STRINGS report the device is asked for; trailing padding is cut.
STRINGS_REPORT_SIZE = 512


def _get_connection() -> HIDConnection:
    """Get the active HID connection, raising if not connected."""
    if _connection is None or not _connection.connected:
        raise RuntimeError(
            "Not connected to device. Use the 'connect' tool first."
        )
    return _connection


def _read_settings_frame(conn: HIDConnection) -> bytes:
    size = frame_size(FrameKind.SETTINGS)
    return strip_padding(conn.get_feature_report(FrameKind.SETTINGS, size))


def _parse_hex_color(value: str) -> Color:
    try:
        return Color.from_rgb_hex(int(value.lstrip("#"), 16))
    except ValueError:
        raise ValueError(f"Invalid color {value!r}, expected #RRGGBB") from None


# ─── CONNECTION TOOLS ─────────────────────────────────────────────────

@mcp.tool()
def connect() -> dict[str, Any]:
    """Establish a USB connection to the high flow NEXT.

    Auto-discovers the device by USB vendor/product ID (0x0C70:0xF012).
    """
    global _connection
    if _connection is not None and _connection.connected:
        return {
            "connected": True,
            "message": "Already connected",
            "model": _connection.device_info.product,
        }

    _connection = HIDConnection()
    info = _connection.open()

    return {
        "connected": True,
        "model": info.product,
        "manufacturer": info.manufacturer,
        "serial_number": info.serial_number,
        "backend": _connection.backend,
    }


@mcp.tool()
def disconnect() -> dict[str, bool]:
    """Close the USB connection to the device."""
    global _connection
    if _connection is None:
        return {"disconnected": True}
    _connection.close()
    _connection = None
    return {"disconnected": True}


# ─── READ TOOLS ───────────────────────────────────────────────────────

@mcp.tool()
def read_settings() -> dict[str, Any]:
    """Read the full device configuration (display, sensor, alarms, lighting)."""
    conn = _get_connection()
    try:
        return decode_settings(_read_settings_frame(conn)).to_dict()
    except ProtocolError as e:
        return {"error": str(e)}


@mcp.tool()
def read_sensors() -> dict[str, Any]:
    """Read one telemetry report: flow, temperatures, water quality, power."""
    conn = _get_connection()
    raw = conn.read(frame_size(FrameKind.SENSOR_VALUES))
    if raw is None:
        return {"error": "No sensor report received"}
    try:
        return decode_sensor_values(strip_padding(raw)).to_dict()
    except ProtocolError as e:
        return {"error": str(e)}


@mcp.tool()
def read_strings() -> dict[str, Any]:
    """Read the device's text labels."""
    conn = _get_connection()
    try:
        raw = conn.get_feature_report(FrameKind.STRINGS, STRINGS_REPORT_SIZE)
        return decode_strings(strip_padding(raw)).to_dict()
    except ProtocolError as e:
        return {"error": str(e)}


# ─── SETTINGS TOOLS ───────────────────────────────────────────────────

@mcp.tool()
def set_display_brightness(
    brightness: str,
    idle_brightness: str | None = None,
) -> dict[str, Any]:
    """Change the display brightness.

    Reads the current configuration first; every other setting is
    written back unchanged.

    Args:
        brightness: One of MAXIMUM, MEDIUM, LOW.
        idle_brightness: Brightness after the idle timeout, same names,
                         or None to switch the display off when idle.
    """
    try:
        level = DisplayBrightness[brightness.upper()]
        idle = DisplayBrightness[idle_brightness.upper()] if idle_brightness else None
    except KeyError as e:
        return {"error": f"Unknown brightness {e.args[0]}"}

    conn = _get_connection()
    try:
        template = _read_settings_frame(conn)
        settings = decode_settings(template)
        display = dataclasses.replace(
            settings.display,
            display_brightness=level,
            idle_display_brightness=idle,
        )
        raw = encode_settings(dataclasses.replace(settings, display=display), template)
    except ProtocolError as e:
        return {"error": str(e)}

    conn.send_feature_report(raw)
    return {
        "display_brightness": level.name,
        "idle_display_brightness": idle.name if idle is not None else None,
    }


@mcp.tool()
def set_temperature_offsets(
    water: float | None = None,
    external: float | None = None,
) -> dict[str, Any]:
    """Calibrate the temperature sensors.

    Args:
        water: Offset for the water temperature sensor in °C (-15..15).
        external: Offset for the external temperature sensor in °C (-15..15).
    """
    conn = _get_connection()
    try:
        template = _read_settings_frame(conn)
        settings = decode_settings(template)
        changes: dict[str, Decimal] = {}
        if water is not None:
            changes["water_temp_offset"] = Decimal(str(water))
        if external is not None:
            changes["external_temp_offset"] = Decimal(str(external))
        sensor = dataclasses.replace(settings.sensor, **changes)
        raw = encode_settings(dataclasses.replace(settings, sensor=sensor), template)
    except ProtocolError as e:
        return {"error": str(e)}

    conn.send_feature_report(raw)
    return {
        "water_temp_offset": float(sensor.water_temp_offset),
        "external_temp_offset": float(sensor.external_temp_offset),
    }


# ─── LIGHTING TOOLS ───────────────────────────────────────────────────

@mcp.tool()
def set_ambient_colors(colors: list[str]) -> dict[str, Any]:
    """Push one color per RGBpx controller for the Ambient effect.

    Args:
        colors: Eight hex colors ("#RRGGBB"), strip controllers first.
    """
    try:
        raw = encode_ambient_color([_parse_hex_color(c) for c in colors])
    except ValueError as e:
        return {"error": str(e)}

    conn = _get_connection()
    conn.write(raw)
    return {"sent": True, "count": len(colors)}


@mcp.tool()
def send_sound_levels(levels: list[float]) -> dict[str, Any]:
    """Push audio levels for the sound-driven effects.

    Args:
        levels: Eight band levels in percent (0-100).
    """
    try:
        raw = encode_sound_data(levels)
    except ProtocolError as e:
        return {"error": str(e)}

    conn = _get_connection()
    conn.write(raw)
    return {"sent": True, "levels": levels}


# ─── MCP RESOURCES ───────────────────────────────────────────────────

@mcp.resource("high-flow-next://device/info")
def resource_device_info() -> str:
    """Device identification and connection state."""
    if _connection is None or not _connection.connected:
        return json.dumps({"connected": False})

    info = _connection.device_info
    return json.dumps({
        "connected": True,
        "manufacturer": info.manufacturer,
        "product": info.product,
        "serial_number": info.serial_number,
        "vendor_id": f"0x{info.vendor_id:04X}",
        "product_id": f"0x{info.product_id:04X}",
    })


# ─── ENTRY POINT ─────────────────────────────────────────────────────

def main():
    """Run the MCP server with stdio transport."""
    logging.basicConfig(level=logging.INFO)
    mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
