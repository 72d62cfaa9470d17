"""Protocol layer: framing, CRC, field schemas and payload layouts.

The decoder and encoder live in :mod:`.decoder` and :mod:`.encoder`;
they depend on the snapshot models and are re-exported by the top-level
package.
"""

from .errors import (
    ChecksumMismatch,
    FieldOutOfRange,
    LengthMismatch,
    ProtocolError,
    SchemaError,
    TooShort,
    UnknownFrameType,
)
from .framing import Frame, FrameKind, build_frame, parse_frame, strip_padding
from .schema import Field, Reserved, Schema
