"""Errors raised by the frame codec.

Every decode or encode attempt either returns a value or raises exactly
one :class:`ProtocolError`. Nothing is retried and no partial result is
ever produced.
"""

from __future__ import annotations


class ProtocolError(ValueError):
    """Base class for frame codec errors."""


class TooShort(ProtocolError):
    """Buffer is smaller than the frame header."""

    def __init__(self, length: int, minimum: int) -> None:
        self.length = length
        self.minimum = minimum
        super().__init__(
            f"Frame too short: {length} bytes (need at least {minimum})"
        )


class UnknownFrameType(ProtocolError):
    """Report ID does not match any known frame kind."""

    def __init__(self, discriminator: int) -> None:
        self.discriminator = discriminator
        super().__init__(f"Unknown frame type 0x{discriminator:02X}")


class LengthMismatch(ProtocolError):
    """Buffer length is inconsistent with the declared frame size."""

    def __init__(self, kind: str, expected: int, actual: int) -> None:
        self.kind = kind
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"{kind} frame must be {expected} bytes, got {actual}"
        )


class ChecksumMismatch(ProtocolError):
    """The CRC trailer does not match the frame contents."""

    def __init__(self, expected: int, actual: int) -> None:
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Checksum mismatch: frame carries 0x{expected:04X}, "
            f"computed 0x{actual:04X}"
        )


class FieldOutOfRange(ProtocolError):
    """A decoded or to-be-encoded value lies outside its field's domain."""

    def __init__(
        self,
        field: str,
        value: object,
        minimum: object = None,
        maximum: object = None,
    ) -> None:
        self.field = field
        self.value = value
        self.minimum = minimum
        self.maximum = maximum
        if minimum is None and maximum is None:
            message = f"Invalid value for {field}: {value!r}"
        else:
            message = (
                f"Value out of range for {field}: {value!r} "
                f"(min={minimum}, max={maximum})"
            )
        super().__init__(message)


class SchemaError(ValueError):
    """A field schema table is malformed (overlap, bounds, width)."""
