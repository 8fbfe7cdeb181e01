"""Bit-level access to packed status words and the device-status write-intent encoding."""

from .types import Byte


def _check_bit(bit: int) -> None:
    if not 0 <= bit <= 7:
        raise ValueError(f"bit must be 0..7, got {bit}")


def read_flag(word: int, byte: Byte, bit: int) -> bool:
    """Return bit `bit` (0 = least significant) of the low or high byte of `word`."""
    _check_bit(bit)
    shift = bit + 8 if byte == Byte.HIGH else bit
    return bool((word >> shift) & 1)


def encode_write_intent(bit: int, value: bool) -> int:
    """
    Build a device-status command word.

    The high byte is the write mask (this field is being written) and the low
    byte carries the value. Fields whose mask bit is clear are left untouched
    by the firmware, so every other bit is zero.
    """
    _check_bit(bit)
    word = 1 << (bit + 8)
    if value:
        word |= 1 << bit
    return word


def flags_set(word: int) -> list[tuple[Byte, int]]:
    """List (byte, bit) positions set in `word`, low byte first."""
    return [
        (byte, bit)
        for byte in (Byte.LOW, Byte.HIGH)
        for bit in range(8)
        if read_flag(word, byte, bit)
    ]
