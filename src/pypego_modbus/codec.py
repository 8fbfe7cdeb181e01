"""Pure helpers converting between 16-bit register words and device values.

Registers travel as unsigned 16-bit integers (0..65535). Registers flagged as
signed hold two's complement values; the vendor table fixes which ones. Scaled
registers carry fixed-point quantities (e.g. 0.1 degC steps).
"""

from fractions import Fraction

from .errors import EncodingError

INT16_MIN = -0x8000
INT16_MAX = 0x7FFF
UINT16_MAX = 0xFFFF


def decode_signed(raw: int, signed: bool) -> int:
    """
    Reconstruct the register value.

    Without conversion the unsigned value is returned as-is. With conversion,
    0..32767 map to themselves and 32768..65535 map to raw - 65536.
    """
    if not 0 <= raw <= UINT16_MAX:
        raise ValueError(f"Register word out of range 0..65535: {raw}")
    if not signed:
        return raw
    return raw - 0x10000 if raw > INT16_MAX else raw


def encode_word(value: int) -> int:
    """Encode a signed or unsigned 16-bit integer as the register word sent on the wire."""
    if not INT16_MIN <= value <= UINT16_MAX:
        raise EncodingError(value)
    return value & UINT16_MAX


def apply_scale(value: int, scale: Fraction) -> float:
    """Convert a register integer to the physical quantity."""
    return float(value * scale)


def unapply_scale(value: float, scale: Fraction) -> int:
    """
    Convert a physical quantity back to the register integer: round(value / scale).

    Best effort for non-integer scales; the result is the nearest representable step.
    Raises EncodingError if the result does not fit a signed 16-bit register.
    """
    try:
        result = round(Fraction(value) / scale)
    except (ValueError, OverflowError) as e:
        # NaN / infinity
        raise EncodingError(value) from e
    if not INT16_MIN <= result <= INT16_MAX:
        raise EncodingError(value, f"Value {value!r} scaled by {scale} is out of 16-bit signed range: {result}")
    return result
