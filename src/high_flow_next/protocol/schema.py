"""Declarative field descriptors for fixed-offset binary payloads.

A :class:`Schema` is a table of :class:`Field` (scaled integers) and
:class:`Reserved` (opaque bytes) regions. Tables are validated once at
construction; a malformed table raises :class:`SchemaError`.

Example::

    CHART = Schema("chart", 4, [
        Reserved("reserved", 0),
        Field("source", 1, maximum=6),
        Field("interval", 2, width=2, scale=Decimal("0.1"), unit=SECOND,
              minimum=1, maximum=60_000),
    ])
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from decimal import Decimal
from typing import Iterable, Iterator, Mapping, Union

from .errors import FieldOutOfRange, SchemaError
from .units import ONE, to_physical, to_raw

VALID_WIDTHS = (1, 2, 4, 8)


@dataclass(frozen=True)
class Field:
    """A scaled integer at a fixed offset."""

    name: str
    offset: int
    width: int = 1
    signed: bool = False
    scale: Decimal = ONE
    unit: str = ""
    minimum: int | None = None
    maximum: int | None = None
    absent: int | None = None
    byteorder: str = "big"

    def __post_init__(self) -> None:
        if self.width not in VALID_WIDTHS:
            raise SchemaError(
                f"{self.name}: width must be one of {VALID_WIDTHS}, got {self.width}"
            )
        if self.offset < 0:
            raise SchemaError(f"{self.name}: negative offset {self.offset}")
        if self.byteorder not in ("big", "little"):
            raise SchemaError(f"{self.name}: invalid byte order {self.byteorder!r}")
        if self.scale <= 0:
            raise SchemaError(f"{self.name}: scale must be positive")
        for bound in (self.minimum, self.maximum, self.absent):
            if bound is not None and not self.lowest <= bound <= self.highest:
                raise SchemaError(
                    f"{self.name}: {bound} is not representable in "
                    f"{self.width} byte(s)"
                )
        if (
            self.minimum is not None
            and self.maximum is not None
            and self.minimum > self.maximum
        ):
            raise SchemaError(f"{self.name}: minimum exceeds maximum")

    @property
    def end(self) -> int:
        return self.offset + self.width

    @property
    def lowest(self) -> int:
        """Smallest raw integer the width can hold."""
        return -(1 << (8 * self.width - 1)) if self.signed else 0

    @property
    def highest(self) -> int:
        """Largest raw integer the width can hold."""
        bits = 8 * self.width - 1 if self.signed else 8 * self.width
        return (1 << bits) - 1

    @property
    def bounds(self) -> tuple[int, int]:
        lo = self.lowest if self.minimum is None else self.minimum
        hi = self.highest if self.maximum is None else self.maximum
        return lo, hi

    def read(self, data: bytes, base: int = 0) -> int:
        """Extract the raw integer from ``data``."""
        start = base + self.offset
        return int.from_bytes(
            data[start : start + self.width], self.byteorder, signed=self.signed
        )

    def write(self, buf: bytearray, raw: int, base: int = 0) -> None:
        """Store a raw integer into ``buf``.

        Raises:
            FieldOutOfRange: If ``raw`` is not an integer or does not fit
                the width.
        """
        if not isinstance(raw, int):
            raise FieldOutOfRange(self.name, raw)
        if not self.lowest <= raw <= self.highest:
            raise FieldOutOfRange(self.name, raw, self.lowest, self.highest)
        start = base + self.offset
        buf[start : start + self.width] = raw.to_bytes(
            self.width, self.byteorder, signed=self.signed
        )

    def check(self, raw: int) -> int:
        """Return ``raw`` if it is an integer within the declared range."""
        if not isinstance(raw, int):
            raise FieldOutOfRange(self.name, raw)
        lo, hi = self.bounds
        if not lo <= raw <= hi:
            raise FieldOutOfRange(self.name, raw, lo, hi)
        return raw

    def decode(self, raw: int):
        """Range-check and scale a raw integer into its physical value.

        The ``absent`` sentinel decodes to ``None``.
        """
        if self.absent is not None and raw == self.absent:
            return None
        return to_physical(self.check(raw), self.scale)

    def encode(self, value) -> int:
        """Inverse of :meth:`decode`.

        Raises:
            FieldOutOfRange: If the inverse-scaled value is outside the
                declared range or does not fit the width. A value whose raw
                integer collides with the ``absent`` sentinel is rejected
                too, since it would decode as ``None``.
        """
        if value is None:
            if self.absent is None:
                raise FieldOutOfRange(self.name, None)
            return self.absent
        try:
            raw = to_raw(value, self.scale)
        except (TypeError, ValueError) as e:
            raise FieldOutOfRange(self.name, value) from e
        lo, hi = self.bounds
        if not lo <= raw <= hi:
            raise FieldOutOfRange(self.name, value, lo, hi)
        if raw == self.absent:
            raise FieldOutOfRange(self.name, value)
        return raw

    def shifted(self, prefix: str, base: int) -> Field:
        return replace(self, name=f"{prefix}.{self.name}", offset=self.offset + base)


@dataclass(frozen=True)
class Reserved:
    """An opaque byte region (padding, unions, vendor-private data)."""

    name: str
    offset: int
    width: int = 1

    def __post_init__(self) -> None:
        if self.offset < 0 or self.width < 1:
            raise SchemaError(
                f"{self.name}: invalid region offset={self.offset} width={self.width}"
            )

    @property
    def end(self) -> int:
        return self.offset + self.width

    def read(self, data: bytes, base: int = 0) -> bytes:
        start = base + self.offset
        return bytes(data[start : start + self.width])

    def shifted(self, prefix: str, base: int) -> Reserved:
        return replace(self, name=f"{prefix}.{self.name}", offset=self.offset + base)


Region = Union[Field, Reserved]


class Schema:
    """An ordered, validated table of regions covering a payload of ``size`` bytes."""

    def __init__(self, name: str, size: int, regions: Iterable[Region]) -> None:
        self.name = name
        self.size = size
        self._regions: tuple[Region, ...] = tuple(
            sorted(regions, key=lambda r: r.offset)
        )
        self._by_name: dict[str, Region] = {}
        self._validate()

    def _validate(self) -> None:
        previous: Region | None = None
        for region in self._regions:
            if region.name in self._by_name:
                raise SchemaError(f"{self.name}: duplicate field {region.name!r}")
            self._by_name[region.name] = region
            if region.end > self.size:
                raise SchemaError(
                    f"{self.name}: {region.name} ends at {region.end}, "
                    f"beyond payload size {self.size}"
                )
            if previous is not None and region.offset < previous.end:
                raise SchemaError(
                    f"{self.name}: {region.name} overlaps {previous.name}"
                )
            previous = region

    def __iter__(self) -> Iterator[Region]:
        return iter(self._regions)

    def __len__(self) -> int:
        return len(self._regions)

    def __contains__(self, name: object) -> bool:
        return name in self._by_name

    def __getitem__(self, name: str) -> Region:
        try:
            return self._by_name[name]
        except KeyError:
            raise KeyError(f"{self.name} has no field {name!r}") from None

    def __repr__(self) -> str:
        return f"Schema({self.name!r}, size={self.size}, regions={len(self._regions)})"

    @property
    def fields(self) -> tuple[Field, ...]:
        return tuple(r for r in self._regions if isinstance(r, Field))

    def field(self, name: str) -> Field:
        region = self[name]
        if not isinstance(region, Field):
            raise KeyError(f"{self.name}.{name} is a reserved region")
        return region

    def unpack(self, data: bytes, base: int = 0) -> dict[str, int]:
        """Read every integer field into a name -> raw value mapping."""
        if base + self.size > len(data):
            raise ValueError(
                f"{self.name}: need {self.size} bytes at offset {base}, "
                f"buffer has {len(data)}"
            )
        return {f.name: f.read(data, base) for f in self.fields}

    def pack(self, values: Mapping[str, int], buf: bytearray, base: int = 0) -> None:
        """Write raw integers for the named fields; other bytes are left untouched."""
        for name, raw in values.items():
            self.field(name).write(buf, raw, base)

    def embed(self, prefix: str, base: int) -> list[Region]:
        """Copies of every region renamed ``prefix.name`` and shifted to ``base``."""
        return [r.shifted(prefix, base) for r in self._regions]

    def extend(self, *regions: Region, size: int | None = None) -> Schema:
        """Return a new schema with ``regions`` appended after the existing ones.

        Raises:
            SchemaError: If a new region starts before the current end.
        """
        current_end = max((r.end for r in self._regions), default=0)
        for region in regions:
            if region.offset < current_end:
                raise SchemaError(
                    f"{self.name}: {region.name} at {region.offset} is not appended "
                    f"(existing fields end at {current_end})"
                )
        new_end = max((r.end for r in regions), default=0)
        new_size = size if size is not None else max(self.size, new_end)
        return Schema(self.name, new_size, (*self._regions, *regions))
