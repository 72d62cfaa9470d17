"""CRC-16/USB checksum used by every frame trailer.

Parameters: polynomial 0x8005 (reflected 0xA001), initial value 0xFFFF,
reflected input and output, final XOR 0xFFFF. The check value for
``b"123456789"`` is 0xB4C8.
"""

from __future__ import annotations

CRC16_POLY_REFLECTED = 0xA001
CRC16_INIT = 0xFFFF
CRC16_XOROUT = 0xFFFF


def _build_table() -> tuple[int, ...]:
    table = []
    for byte in range(256):
        crc = byte
        for _ in range(8):
            if crc & 1:
                crc = (crc >> 1) ^ CRC16_POLY_REFLECTED
            else:
                crc >>= 1
        table.append(crc)
    return tuple(table)


CRC16_TABLE = _build_table()


def crc16(data: bytes) -> int:
    """Compute the CRC-16/USB of ``data``."""
    crc = CRC16_INIT
    for byte in data:
        crc = (crc >> 8) ^ CRC16_TABLE[(crc ^ byte) & 0xFF]
    return crc ^ CRC16_XOROUT


def verify_crc16(data: bytes, expected: int) -> bool:
    """Return True if ``data`` checksums to ``expected``."""
    return crc16(data) == expected
