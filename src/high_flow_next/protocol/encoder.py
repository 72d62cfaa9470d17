"""Frame encoding: snapshots to framed, checksummed report bytes.

Every function here produces bytes that :func:`~.decoder.decode`
accepts and decodes back to an equal value.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Iterable, Optional, Union

from ..models.color import Color
from ..models.reports import AmbientColor, DeviceStrings, SoundData
from ..models.sensors import SensorSnapshot
from ..models.settings import Settings
from .decoder import SNAPSHOT_TYPES
from .errors import UnknownFrameType
from .framing import FrameKind, build_frame, parse_frame

logger = logging.getLogger(__name__)


def encode(kind: FrameKind, value) -> bytes:
    """Encode ``value`` as a frame of ``kind``.

    Raises:
        TypeError: If ``value`` is not the snapshot type of ``kind``.
        FieldOutOfRange: If a value does not fit its field.
    """
    kind = FrameKind(kind)
    expected = SNAPSHOT_TYPES[kind]
    if not isinstance(value, expected):
        raise TypeError(
            f"{kind.name} frames encode {expected.__name__}, got {type(value).__name__}"
        )
    raw = build_frame(kind, value.to_payload())
    logger.debug("Encoded %s frame (%d bytes)", kind.name, len(raw))
    return raw


def encode_settings(settings: Settings, template: Optional[bytes] = None) -> bytes:
    """Encode a SETTINGS frame.

    Args:
        settings: The configuration to write.
        template: A SETTINGS frame previously read from the device. Bytes
            the snapshot does not model (reserved regions, unknown flag
            bits, disabled alarm limits, unused color slots) are copied
            from it.

    Raises:
        ProtocolError: If ``template`` is not a valid SETTINGS frame.
        FieldOutOfRange: If a value does not fit its field.
    """
    payload = None
    if template is not None:
        frame = parse_frame(template)
        if frame.kind != FrameKind.SETTINGS:
            raise UnknownFrameType(frame.kind)
        # Reject templates that would not decode themselves.
        Settings.from_payload(frame.payload)
        payload = frame.payload
    return build_frame(FrameKind.SETTINGS, settings.to_payload(payload))


def encode_sensor_values(snapshot: SensorSnapshot) -> bytes:
    return encode(FrameKind.SENSOR_VALUES, snapshot)


def encode_strings(strings: Union[DeviceStrings, Iterable[str]]) -> bytes:
    if not isinstance(strings, DeviceStrings):
        strings = DeviceStrings(labels=tuple(strings))
    return encode(FrameKind.STRINGS, strings)


def encode_ambient_color(colors: Union[AmbientColor, Iterable[Color]]) -> bytes:
    """Encode one color per controller slot (eight colors)."""
    if not isinstance(colors, AmbientColor):
        colors = AmbientColor(colors=tuple(colors))
    return encode(FrameKind.AMBIENT_COLOR, colors)


def encode_sound_data(levels: Union[SoundData, Iterable[Union[int, float, Decimal]]]) -> bytes:
    """Encode eight band levels in percent."""
    if not isinstance(levels, SoundData):
        levels = SoundData(levels=tuple(levels))
    return encode(FrameKind.SOUND_DATA, levels)
