"""Codec for the Aqua Computer high flow NEXT USB protocol."""

from .models import (
    AmbientColor,
    Color,
    Controller,
    DeviceStrings,
    LightingSettings,
    SensorSnapshot,
    Settings,
    SoundData,
)
from .protocol.decoder import (
    DecodedFrame,
    decode,
    decode_ambient_color,
    decode_sensor_values,
    decode_settings,
    decode_sound_data,
    decode_strings,
)
from .protocol.encoder import (
    encode,
    encode_ambient_color,
    encode_sensor_values,
    encode_settings,
    encode_sound_data,
    encode_strings,
)
from .protocol.errors import (
    ChecksumMismatch,
    FieldOutOfRange,
    LengthMismatch,
    ProtocolError,
    SchemaError,
    TooShort,
    UnknownFrameType,
)
from .protocol.framing import Frame, FrameKind, build_frame, parse_frame
from .utils.crc import crc16, verify_crc16

__version__ = "0.1.0"
