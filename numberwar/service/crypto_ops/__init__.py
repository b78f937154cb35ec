"""
Crypto Operations Service - confidential runtime on OpenFHE

Structure:
- context.py: BFV context and runtime keys
- bit_encoding.py: euint8 / ebool slot layout
- circuits.py: encrypted gates and the ripple-carry adder
- comparator.py: encrypted parity verdict
- runtime.py: ConfidentialRuntime (handle store, ACL, randomness)
- input_verifier.py: input attestation and proofs
- input_builder.py: client-side encryption (ComputeClient)
"""

from .runtime import ConfidentialRuntime
from .comparator import compare
from .input_verifier import InputVerifier, recover_attester
from .input_builder import ComputeClient, EncryptedInputBuilder
from .serialization import (
    serialize_crypto_context,
    deserialize_crypto_context,
    serialize_public_key,
    deserialize_public_key,
    serialize_ciphertext,
    deserialize_ciphertext
)
from .bit_encoding import (
    BIT_WIDTH,
    u8_to_bits,
    bits_to_u8,
    bool_to_bits,
    bits_to_bool
)

from .context import create_openfhe_context, generate_runtime_keys

__all__ = [
    'ConfidentialRuntime',
    'compare',
    'InputVerifier',
    'recover_attester',
    'ComputeClient',
    'EncryptedInputBuilder',
    'serialize_crypto_context',
    'deserialize_crypto_context',
    'serialize_public_key',
    'deserialize_public_key',
    'serialize_ciphertext',
    'deserialize_ciphertext',
    'BIT_WIDTH',
    'u8_to_bits',
    'bits_to_u8',
    'bool_to_bits',
    'bits_to_bool',
    'create_openfhe_context',
    'generate_runtime_keys',
]
