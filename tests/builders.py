"""Hand-assembled payloads for the codec tests.

Everything here is written byte by byte at explicit offsets so the
tests do not depend on the layouts they are checking.
"""

from __future__ import annotations

from high_flow_next.protocol.framing import FrameKind, build_frame

SETTINGS_SIZE = 679
CONTROLLER_SIZE = 70
CONTROLLERS_OFFSET = 92

# Colors as (hue section, hue offset, saturation, value)
DARK_RED = (0, 0, 255, 60)
RED = (0, 0, 255, 255)
GREEN = (2, 0, 255, 255)
BLUE = (4, 0, 255, 255)
GREY = (0, 0, 0, 15)
YELLOW = (0, 254, 255, 255)
VIOLET = (3, 233, 255, 255)
TEAL = (3, 11, 255, 51)


def put_u16(buf: bytearray, offset: int, value: int) -> None:
    buf[offset : offset + 2] = value.to_bytes(2, "big", signed=value < 0)


def controller(
    offset: int,
    length: int,
    effect: int,
    flags: int = 0,
    data_source: int = 0xFFFF,
    attenuation: tuple[int, int] = (0, 0),
    words: dict[int, int] | None = None,
    colors: tuple = (),
    slot_a: tuple[int, int, int, int] | None = None,
    slot_b: tuple[int, int, int, int] | None = None,
) -> bytearray:
    """One 70-byte RGBpx controller block."""
    block = bytearray(CONTROLLER_SIZE)
    block[0] = offset
    block[1] = length
    block[2] = effect
    put_u16(block, 3, flags)
    put_u16(block, 5, data_source)
    block[7], block[8] = attenuation
    for base, slot in ((9, slot_a), (15, slot_b)):
        if slot is not None:
            put_u16(block, base, slot[0])
            put_u16(block, base + 2, slot[1])
            block[base + 4] = slot[2]
            block[base + 5] = slot[3]
    for index, value in (words or {}).items():
        put_u16(block, 21 + 2 * index, value)
    for i, color in enumerate(colors):
        block[45 + 4 * i : 49 + 4 * i] = bytes(color)
    return block


def default_controllers() -> list[bytearray]:
    """Factory lighting: four strip effects and a flow wave on the sensor ring."""
    rainbow = controller(
        0, 15, 0x03, attenuation=(15, 25), words={0: 50, 1: 100}, colors=(DARK_RED,)
    )
    scanner = controller(
        15, 10, 0x08, words={0: 25, 1: 40, 2: 20}, colors=(GREY, VIOLET, YELLOW)
    )
    color_sequence = controller(
        25, 10, 0x0B,
        words={0: 30, 1: 40, 3: 6, 4: 80},
        colors=(RED, YELLOW, GREEN, TEAL, BLUE, VIOLET),
    )
    blink = controller(
        35, 5, 0x04,
        flags=0x02 | 0x04,
        words={0: 40, 1: 5},
        colors=(GREY, RED, YELLOW, GREEN, BLUE, VIOLET),
    )
    wave = controller(
        0, 10, 0x0A,
        flags=0x4000 | 0x80 | 0x02,
        data_source=0x00,
        attenuation=(10, 15),
        words={0: 7, 1: 6, 2: 4, 3: 1},
        colors=(TEAL, BLUE),
        slot_a=(0, 150, 0, 30),
    )
    empty = bytearray(CONTROLLER_SIZE)
    return [
        rainbow, scanner, color_sequence, blink, bytearray(empty), bytearray(empty),
        wave, bytearray(empty),
    ]


def settings_payload() -> bytearray:
    """A SETTINGS payload as shipped from the factory."""
    p = bytearray(SETTINGS_SIZE)
    put_u16(p, 0, 1)             # version
    p[2] = 0                     # °C
    p[3] = 0                     # liters
    p[5] = 10                    # next page after 10 s
    put_u16(p, 8, 0xFB37)        # page flags
    p[14] = 2                    # brightness low
    p[15] = 2                    # idle brightness low
    p[20] = 0x08                 # auto invert
    for i, source in enumerate((0, 1, 4, 5)):
        p[21 + 4 * i + 1] = source
        put_u16(p, 21 + 4 * i + 2, 10)
    p[41] = 58                   # aquabus address
    for i, flow in enumerate((200, 300, 500, 700, 1000, 1250, 1500, 2000, 2500, 3000)):
        put_u16(p, 68 + 2 * i, flow)
    p[88] = 255                  # lighting brightness
    for i, block in enumerate(default_controllers()):
        start = CONTROLLERS_OFFSET + CONTROLLER_SIZE * i
        p[start : start + CONTROLLER_SIZE] = block
    put_u16(p, 657, 500)         # water quality max
    put_u16(p, 659, 950)         # water quality min
    p[665] = 0xE0                # acoustic, optical, disable signal output
    p[666] = 0x02                # water temperature alarm
    p[668] = 10                  # startup delay
    put_u16(p, 671, 4500)        # 45.00 °C
    return p


def settings_frame(payload: bytes | None = None) -> bytes:
    return build_frame(FrameKind.SETTINGS, bytes(settings_payload() if payload is None else payload))


def sensor_payload(
    flow: int = 1234,
    water_temperature: int = 2350,
    external_temperature: int = 0x7FFF,
) -> bytearray:
    p = bytearray(100)
    put_u16(p, 2, 12345)
    put_u16(p, 4, 678)
    put_u16(p, 12, 1012)
    p[23:27] = (42).to_bytes(4, "big")
    put_u16(p, 80, flow)
    put_u16(p, 84, water_temperature)
    put_u16(p, 86, external_temperature)
    put_u16(p, 88, 9750)
    put_u16(p, 90, 125)
    put_u16(p, 94, 18)
    put_u16(p, 96, 1205)
    put_u16(p, 98, 505)
    return p
