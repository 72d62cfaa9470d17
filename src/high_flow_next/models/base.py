"""Helpers shared by the snapshot models."""

from __future__ import annotations

import dataclasses
import enum
from decimal import Decimal
from functools import reduce
from operator import or_
from typing import Mapping, TypeVar

from ..protocol.errors import FieldOutOfRange
from ..protocol.schema import Schema

E = TypeVar("E", bound=enum.IntEnum)
F = TypeVar("F", bound=enum.IntFlag)


def flag_mask(flag_cls: type[enum.IntFlag]) -> int:
    """All bits defined by ``flag_cls``."""
    return reduce(or_, (int(member) for member in flag_cls), 0)


def known_flags(flag_cls: type[F], raw: int) -> F:
    """Build a flag set from ``raw``, dropping undefined bits."""
    return flag_cls(raw & flag_mask(flag_cls))


def merge_flags(flags: enum.IntFlag, previous: int) -> int:
    """Raw flag byte: modelled bits from ``flags``, others from ``previous``."""
    return (previous & ~flag_mask(type(flags))) | int(flags)


def flag_names(flags: enum.IntFlag) -> list[str]:
    return [member.name for member in type(flags) if member and member in flags]


def as_enum(enum_cls: type[E], value: int, field: str) -> E:
    """Look up an enum member, reporting unknown codes as out of range."""
    try:
        return enum_cls(value)
    except ValueError:
        raise FieldOutOfRange(field, value) from None


def decode_fields(schema: Schema, raw: Mapping[str, int], *names: str) -> dict:
    """Range-checked physical values of ``names``."""
    return {name: schema.field(name).decode(raw[name]) for name in names}


def encode_fields(schema: Schema, values: Mapping[str, object]) -> dict[str, int]:
    """Raw integers for physical ``values``."""
    return {name: schema.field(name).encode(value) for name, value in values.items()}


def jsonable(value):
    """Convert snapshot values into JSON-serializable primitives."""
    if isinstance(value, enum.IntFlag):
        return flag_names(value)
    if isinstance(value, enum.Enum):
        return value.name
    if isinstance(value, Decimal):
        return float(value)
    if hasattr(value, "to_dict"):
        return value.to_dict()
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {
            f.name: jsonable(getattr(value, f.name)) for f in dataclasses.fields(value)
        }
    if isinstance(value, (list, tuple)):
        return [jsonable(v) for v in value]
    return value
