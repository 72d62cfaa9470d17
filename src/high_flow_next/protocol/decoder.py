"""Frame decoding: raw report bytes to immutable snapshots."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Union

from ..models.reports import AmbientColor, DeviceStrings, SoundData
from ..models.sensors import SensorSnapshot
from ..models.settings import Settings
from .errors import UnknownFrameType
from .framing import Frame, FrameKind, parse_frame

logger = logging.getLogger(__name__)

Snapshot = Union[Settings, SensorSnapshot, DeviceStrings, AmbientColor, SoundData]

SNAPSHOT_TYPES: dict[FrameKind, type] = {
    FrameKind.SENSOR_VALUES: SensorSnapshot,
    FrameKind.SETTINGS: Settings,
    FrameKind.STRINGS: DeviceStrings,
    FrameKind.AMBIENT_COLOR: AmbientColor,
    FrameKind.SOUND_DATA: SoundData,
}


@dataclass(frozen=True)
class DecodedFrame:
    """A frame kind together with its decoded value."""

    kind: FrameKind
    value: Snapshot

    def __repr__(self) -> str:
        return f"DecodedFrame(kind={self.kind.name}, value={self.value!r})"


def decode_payload(frame: Frame) -> Snapshot:
    """Decode the payload of an already validated frame."""
    return SNAPSHOT_TYPES[frame.kind].from_payload(frame.payload)


def decode(raw: bytes) -> DecodedFrame:
    """Decode any known frame.

    Raises:
        TooShort: Buffer smaller than the frame header.
        UnknownFrameType: Unknown report ID.
        LengthMismatch: Size inconsistent with the frame kind.
        ChecksumMismatch: CRC trailer does not match.
        FieldOutOfRange: A field violates its declared domain.
    """
    frame = parse_frame(raw)
    value = decode_payload(frame)
    logger.debug("Decoded %s frame (%d bytes)", frame.kind.name, len(raw))
    return DecodedFrame(kind=frame.kind, value=value)


def _decode_kind(raw: bytes, kind: FrameKind):
    frame = parse_frame(raw)
    if frame.kind != kind:
        raise UnknownFrameType(frame.kind)
    return decode_payload(frame)


def decode_settings(raw: bytes) -> Settings:
    """Decode a SETTINGS frame; any other kind raises ``UnknownFrameType``."""
    return _decode_kind(raw, FrameKind.SETTINGS)


def decode_sensor_values(raw: bytes) -> SensorSnapshot:
    return _decode_kind(raw, FrameKind.SENSOR_VALUES)


def decode_strings(raw: bytes) -> DeviceStrings:
    return _decode_kind(raw, FrameKind.STRINGS)


def decode_ambient_color(raw: bytes) -> AmbientColor:
    return _decode_kind(raw, FrameKind.AMBIENT_COLOR)


def decode_sound_data(raw: bytes) -> SoundData:
    return _decode_kind(raw, FrameKind.SOUND_DATA)
