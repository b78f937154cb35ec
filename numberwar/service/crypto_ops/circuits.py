from typing import List

from .bit_encoding import BIT_WIDTH
from .context import CARRY_ROTATION

# ============================================================================
# Bit-sliced Circuits (all inputs are packed bit vectors)
# ============================================================================


def encrypted_and(cc, x, y):
    """
    Slot-wise AND of two encrypted bit vectors.

    Formula: x AND y = x * y
    """
    return cc.EvalMult(x, y)


def encrypted_xor(cc, x, y, x_and_y=None):
    """
    Slot-wise XOR of two encrypted bit vectors.

    Formula: x XOR y = x + y - 2xy

    Args:
        cc: CryptoContext
        x, y: Encrypted bit vectors
        x_and_y: Precomputed x * y to save one multiplication

    Returns:
        Encrypted XOR (still encrypted)
    """
    if x_and_y is None:
        x_and_y = encrypted_and(cc, x, y)
    total = cc.EvalAdd(x, y)
    return cc.EvalSub(total, cc.EvalAdd(x_and_y, x_and_y))


def shift_carries(cc, carry):
    """
    Move every carry bit one slot up (bit i -> bit i + 1).

    Nothing reaches the top slot for range-checked operands,
    so the rotation never wraps a carry back into slot 0.
    """
    return cc.EvalRotate(carry, CARRY_ROTATION)


def ripple_carry_add(cc, a, b, carry_rounds: int):
    """
    Add two bit-sliced euint8 ciphertexts homomorphically.

    SIMD ripple-carry: every bit position is processed in parallel and
    each round pushes the pending carries one position further.

        s, c = a XOR b, a AND b
        repeat carry_rounds:
            c = c << 1
            s, c = s XOR c, s AND c

    Exact when the true sum fits in carry_rounds + 1 bits.

    Args:
        cc: CryptoContext
        a, b: Encrypted bit vectors
        carry_rounds: Number of carry propagation rounds

    Returns:
        Encrypted bit vector of a + b (still encrypted)
    """
    if not 0 <= carry_rounds < BIT_WIDTH:
        raise ValueError(f"carry_rounds must be in [0, {BIT_WIDTH - 1}]")

    carry = encrypted_and(cc, a, b)
    total = encrypted_xor(cc, a, b, carry)

    for _ in range(carry_rounds):
        shifted = shift_carries(cc, carry)
        carry = encrypted_and(cc, total, shifted)
        total = encrypted_xor(cc, total, shifted, carry)

    return total


def slot_mask(index: int, size: int = BIT_WIDTH) -> List[int]:
    """Plaintext selector with a single 1 at `index`."""
    mask = [0] * size
    mask[index] = 1
    return mask


def extract_bit(cc, bits, index: int):
    """
    Keep only slot `index` of an encrypted bit vector.

    Uses EvalMult with a plaintext mask, so no plaintext is ever produced.
    """
    mask = cc.MakePackedPlaintext(slot_mask(index))
    return cc.EvalMult(bits, mask)


def encrypted_not_bit(cc, bit, index: int = 0):
    """
    Compute 1 - bit for the bit held in slot `index`.

    Uses EvalNegate + plaintext add (same trick as 1 - vector).
    """
    one = cc.MakePackedPlaintext(slot_mask(index))
    return cc.EvalAdd(cc.EvalNegate(bit), one)
