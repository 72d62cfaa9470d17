"""Tests for field descriptors and schema tables."""

from decimal import Decimal

import pytest

from high_flow_next.protocol.errors import FieldOutOfRange, SchemaError
from high_flow_next.protocol.layouts import (
    CONTROLLER,
    SCHEMAS,
    SETTINGS,
)
from high_flow_next.protocol.schema import Field, Reserved, Schema
from high_flow_next.protocol.units import to_physical, to_raw

CENTI = Decimal("0.01")


def test_unscaled_field_decodes_to_int():
    field = Field("address", 0, minimum=58, maximum=61)
    value = field.decode(59)
    assert value == 59
    assert isinstance(value, int)


def test_scaled_field_decodes_to_decimal():
    """2350 hundredths of a degree are 23.50 °C."""
    field = Field("temp", 0, width=2, signed=True, scale=CENTI)
    assert field.decode(2350) == Decimal("23.50")
    assert field.encode(Decimal("23.50")) == 2350


def test_encode_rounds_half_away_from_zero():
    field = Field("temp", 0, width=2, signed=True, scale=CENTI)
    assert field.encode(Decimal("0.005")) == 1
    assert field.encode(Decimal("-0.005")) == -1
    assert field.encode(0.125) == 13


def test_decode_out_of_range():
    field = Field("delay", 0, minimum=0, maximum=100)
    with pytest.raises(FieldOutOfRange) as excinfo:
        field.decode(101)
    assert excinfo.value.field == "delay"
    assert excinfo.value.value == 101
    assert excinfo.value.maximum == 100


def test_encode_out_of_range():
    field = Field("offset", 0, width=2, signed=True, scale=CENTI,
                  minimum=-1500, maximum=1500)
    with pytest.raises(FieldOutOfRange):
        field.encode(Decimal("15.01"))


def test_encode_overflowing_width():
    """Without declared bounds the width still limits the raw value."""
    with pytest.raises(FieldOutOfRange):
        Field("byte", 0).encode(256)
    with pytest.raises(FieldOutOfRange):
        Field("word", 0, width=2, signed=True).encode(-32769)


def test_encode_rejects_non_numbers():
    field = Field("byte", 0)
    with pytest.raises(FieldOutOfRange):
        field.encode("12")
    with pytest.raises(FieldOutOfRange):
        field.encode(True)
    with pytest.raises(FieldOutOfRange):
        field.encode(float("nan"))


def test_absent_sentinel():
    field = Field("sensor", 0, width=2, signed=True, scale=CENTI, absent=0x7FFF)
    assert field.decode(0x7FFF) is None
    assert field.encode(None) == 0x7FFF
    with pytest.raises(FieldOutOfRange):
        Field("byte", 0).encode(None)


def test_value_matching_absent_sentinel_is_rejected():
    """327.67 would be stored as 0x7FFF and read back as a missing sensor."""
    field = Field("sensor", 0, width=2, signed=True, scale=CENTI, absent=0x7FFF)
    assert field.encode(Decimal("327.66")) == 0x7FFE
    with pytest.raises(FieldOutOfRange) as excinfo:
        field.encode(Decimal("327.67"))
    assert excinfo.value.field == "sensor"


def test_write_rejects_non_integers():
    buf = bytearray(2)
    with pytest.raises(FieldOutOfRange):
        Field("word", 0, width=2).write(buf, 5.0)
    with pytest.raises(FieldOutOfRange):
        Field("word", 0, width=2).check(5.0)
    assert buf == bytearray(2)


def test_read_write_big_endian():
    field = Field("word", 1, width=2, signed=True)
    buf = bytearray(4)
    field.write(buf, -2)
    assert buf == bytearray(b"\x00\xff\xfe\x00")
    assert field.read(buf) == -2


def test_invalid_width():
    with pytest.raises(SchemaError):
        Field("odd", 0, width=3)


def test_unrepresentable_bounds():
    with pytest.raises(SchemaError):
        Field("byte", 0, maximum=300)
    with pytest.raises(SchemaError):
        Field("byte", 0, minimum=10, maximum=5)


def test_schema_rejects_overlap():
    with pytest.raises(SchemaError):
        Schema("bad", 4, [Field("a", 0, width=2), Field("b", 1)])


def test_schema_rejects_region_beyond_size():
    with pytest.raises(SchemaError):
        Schema("bad", 4, [Field("a", 3, width=2)])


def test_schema_rejects_duplicate_names():
    with pytest.raises(SchemaError):
        Schema("bad", 4, [Field("a", 0), Reserved("a", 1)])


def test_schema_lookup():
    schema = Schema("s", 4, [Field("b", 2, width=2), Reserved("pad", 1), Field("a", 0)])
    assert [r.name for r in schema] == ["a", "pad", "b"]
    assert "pad" in schema
    assert schema.field("b").offset == 2
    assert [f.name for f in schema.fields] == ["a", "b"]
    with pytest.raises(KeyError):
        schema.field("pad")
    with pytest.raises(KeyError):
        schema["missing"]


def test_schema_unpack_and_pack():
    schema = Schema("s", 4, [Field("a", 0), Reserved("pad", 1), Field("b", 2, width=2)])
    buf = bytearray(b"\x01\xaa\x02\x03")
    assert schema.unpack(buf) == {"a": 1, "b": 0x0203}
    schema.pack({"b": 7}, buf)
    assert buf == bytearray(b"\x01\xaa\x00\x07")
    with pytest.raises(ValueError):
        schema.unpack(b"\x00\x00")


def test_schema_embed_shifts_regions():
    inner = Schema("inner", 2, [Field("x", 0), Field("y", 1)])
    outer = Schema("outer", 6, [*inner.embed("p", 2), *inner.embed("q", 4)])
    assert outer.field("p.x").offset == 2
    assert outer.field("q.y").offset == 5


def test_schema_extend():
    base = Schema("s", 2, [Field("a", 0)])
    extended = base.extend(Field("b", 1), size=4)
    assert extended.size == 4
    assert "b" in extended
    with pytest.raises(SchemaError):
        extended.extend(Field("c", 0))


def test_payload_schemas_fit_their_frames():
    """Every payload layout validates and matches its frame size."""
    assert SETTINGS.size == 679
    assert CONTROLLER.size == 70
    assert SETTINGS.field("controller7.color5.value").offset == 92 + 7 * 70 + 68
    for kind, schema in SCHEMAS.items():
        assert schema.size > 0, kind


def test_units():
    assert to_physical(5) == 5
    assert to_physical(5, CENTI) == Decimal("0.05")
    assert to_raw(Decimal("0.05"), CENTI) == 5
    with pytest.raises(TypeError):
        to_raw(True)
    with pytest.raises(ValueError):
        to_raw(float("inf"))
