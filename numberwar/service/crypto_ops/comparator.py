"""
Homomorphic Comparator - sum-parity win predicate

compare(a, b) never decrypts: it runs entirely on ciphertexts inside the
confidential runtime.
"""
from numberwar.config import CRYPTO_CONFIG

from .circuits import ripple_carry_add, extract_bit, encrypted_not_bit

LSB = 0


def compare(cc, a, b):
    """
    Encrypted win predicate for two euint8 operands.

    sum = a + b (encrypted), win = NOT lsb(sum), i.e. true when the sum is even.
    Operands are range-checked to [1, 10] by input verification, so the sum
    never exceeds 20 and the configured carry rounds cover every bit it sets.

    Args:
        cc: CryptoContext
        a: Encrypted bit vector (system number)
        b: Encrypted bit vector (player number)

    Returns:
        Encrypted ebool (bit in slot 0)
    """
    total = ripple_carry_add(cc, a, b, CRYPTO_CONFIG["carry_rounds"])
    lsb = extract_bit(cc, total, LSB)
    return encrypted_not_bit(cc, lsb, LSB)
