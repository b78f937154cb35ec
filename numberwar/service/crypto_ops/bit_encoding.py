from typing import List

from numberwar.config import CRYPTO_CONFIG

# ============================================================================
# Bit-sliced Encoding (one packed slot per bit, little-endian)
# ============================================================================

BIT_WIDTH = CRYPTO_CONFIG["bit_width"]


def u8_to_bits(value: int) -> List[int]:
    """
    Convert an unsigned 8-bit integer to its bit vector.

    Args:
        value: Integer in [0, 255]

    Returns:
        Bit list of length BIT_WIDTH, least significant bit first
        Example: 6 -> [0, 1, 1, 0, 0, 0, 0, 0]
    """
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"euint8 value must be an int, got {type(value).__name__}")
    if not 0 <= value < (1 << BIT_WIDTH):
        raise ValueError(f"euint8 value out of range: {value}")
    return [(value >> i) & 1 for i in range(BIT_WIDTH)]


def bits_to_u8(bits: List[int]) -> int:
    """
    Convert a decrypted bit vector back to an integer.

    Slots beyond BIT_WIDTH hold overflow carries and are ignored (mod 256).
    """
    value = 0
    for i, bit in enumerate(bits[:BIT_WIDTH]):
        if bit not in (0, 1):
            raise ValueError(f"Slot {i} is not a bit: {bit}")
        value |= bit << i
    return value


def is_bit_vector(slots: List[int]) -> bool:
    """True when every slot is 0/1 and no batch slot beyond BIT_WIDTH is set."""
    if any(s not in (0, 1) for s in slots):
        return False
    return not any(slots[BIT_WIDTH:])


def bool_to_bits(value: bool) -> List[int]:
    """ebool encoding: the bit lives in slot 0."""
    return [1 if value else 0]


def bits_to_bool(bits: List[int]) -> bool:
    if bits[0] not in (0, 1):
        raise ValueError(f"Slot 0 is not a bit: {bits[0]}")
    return bits[0] == 1
