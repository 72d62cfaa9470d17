"""Frame builder and parser for high flow NEXT HID reports.

Frame layout::

    +-----------+-------------------+------------------+----------+
    | Report ID |      Length       |     Payload      | Checksum |
    | 1 byte    | 2 bytes (STRINGS) | fixed / variable |  2 bytes |
    +-----------+-------------------+------------------+----------+

- Report ID: selects the frame kind (see :class:`FrameKind`)
- Length: big-endian payload length, present only for STRINGS frames
- Checksum: CRC-16/USB over every byte between report ID and checksum,
  big-endian
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import IntEnum

from ..utils.crc import crc16
from .errors import ChecksumMismatch, LengthMismatch, TooShort, UnknownFrameType

logger = logging.getLogger(__name__)

HEADER_SIZE = 1
LENGTH_FIELD_SIZE = 2
CHECKSUM_SIZE = 2


class FrameKind(IntEnum):
    """Report IDs of the frames exchanged with the device."""

    SENSOR_VALUES = 0x01
    SETTINGS = 0x03
    STRINGS = 0x04
    AMBIENT_COLOR = 0x05
    SOUND_DATA = 0x06


# Payload size per fixed-size kind; STRINGS carries its own length.
PAYLOAD_SIZES: dict[FrameKind, int] = {
    FrameKind.SENSOR_VALUES: 100,
    FrameKind.SETTINGS: 679,
    FrameKind.AMBIENT_COLOR: 32,
    FrameKind.SOUND_DATA: 16,
}

MAX_STRINGS_PAYLOAD = 0xFFFF


def has_length_field(kind: FrameKind) -> bool:
    return kind not in PAYLOAD_SIZES


def header_size(kind: FrameKind) -> int:
    """Bytes before the payload: report ID plus length field where present."""
    return HEADER_SIZE + (LENGTH_FIELD_SIZE if has_length_field(kind) else 0)


def frame_size(kind: FrameKind, payload_len: int | None = None) -> int:
    """Total size on the wire of a frame of ``kind``.

    ``payload_len`` is required for length-prefixed kinds.
    """
    if has_length_field(kind):
        if payload_len is None:
            raise ValueError(f"{kind.name} frames need an explicit payload length")
        return header_size(kind) + payload_len + CHECKSUM_SIZE
    return HEADER_SIZE + PAYLOAD_SIZES[kind] + CHECKSUM_SIZE


@dataclass(frozen=True)
class Frame:
    """A validated protocol frame."""

    kind: FrameKind
    payload: bytes

    def __repr__(self) -> str:
        return (
            f"Frame(kind={self.kind.name}, "
            f"payload={self.payload.hex(' ') if self.payload else '(empty)'})"
        )


def build_frame(kind: FrameKind, payload: bytes = b"") -> bytes:
    """Wrap ``payload`` in a frame of ``kind``.

    Args:
        kind: Frame kind (report ID).
        payload: Frame payload bytes.

    Returns:
        Report ID, length field where applicable, payload and checksum.

    Raises:
        LengthMismatch: If the payload size does not fit the kind.
    """
    kind = FrameKind(kind)
    if has_length_field(kind):
        if len(payload) > MAX_STRINGS_PAYLOAD:
            raise LengthMismatch(kind.name, MAX_STRINGS_PAYLOAD, len(payload))
        body = len(payload).to_bytes(LENGTH_FIELD_SIZE, "big") + payload
    else:
        expected = PAYLOAD_SIZES[kind]
        if len(payload) != expected:
            raise LengthMismatch(kind.name, expected, len(payload))
        body = bytes(payload)
    checksum = crc16(body).to_bytes(CHECKSUM_SIZE, "big")
    return bytes([kind]) + body + checksum


def frame_kind(data: bytes) -> FrameKind:
    """Identify the kind of a raw frame from its report ID.

    Raises:
        TooShort: If ``data`` is empty.
        UnknownFrameType: If the report ID is not a known kind.
    """
    if len(data) < HEADER_SIZE:
        raise TooShort(len(data), HEADER_SIZE)
    try:
        return FrameKind(data[0])
    except ValueError:
        raise UnknownFrameType(data[0]) from None


def strip_padding(data: bytes) -> bytes:
    """Cut transport padding that follows a frame.

    HID backends may return a report padded to its maximum size; only
    the bytes covered by the frame are kept. Buffers too short to hold a
    complete frame are returned unchanged so that :func:`parse_frame`
    reports them.
    """
    kind = frame_kind(data)
    if has_length_field(kind):
        if len(data) < header_size(kind):
            return bytes(data)
        expected = frame_size(kind, int.from_bytes(data[HEADER_SIZE:header_size(kind)], "big"))
    else:
        expected = frame_size(kind)
    return bytes(data[:expected]) if len(data) > expected else bytes(data)


def parse_frame(data: bytes) -> Frame:
    """Validate the envelope of a raw frame and extract its payload.

    Args:
        data: Raw bytes of exactly one frame.

    Returns:
        A ``Frame`` carrying a copy of the payload.

    Raises:
        TooShort: Buffer smaller than the header.
        UnknownFrameType: Report ID is not known.
        LengthMismatch: Buffer size inconsistent with the kind.
        ChecksumMismatch: CRC trailer does not match.
    """
    kind = frame_kind(data)

    if has_length_field(kind):
        minimum = header_size(kind)
        if len(data) < minimum:
            raise TooShort(len(data), minimum)
        declared = int.from_bytes(data[HEADER_SIZE:minimum], "big")
        expected = frame_size(kind, declared)
    else:
        expected = frame_size(kind)

    if len(data) != expected:
        logger.debug(
            "Rejecting %s frame: %d bytes, expected %d", kind.name, len(data), expected
        )
        raise LengthMismatch(kind.name, expected, len(data))

    body = data[HEADER_SIZE:-CHECKSUM_SIZE]
    carried = int.from_bytes(data[-CHECKSUM_SIZE:], "big")
    computed = crc16(body)
    if carried != computed:
        logger.debug(
            "Rejecting %s frame: checksum 0x%04X != 0x%04X",
            kind.name,
            carried,
            computed,
        )
        raise ChecksumMismatch(carried, computed)

    return Frame(kind=kind, payload=bytes(body[header_size(kind) - HEADER_SIZE :]))
