"""
User decryption: EIP-712 grants, sealed results, oracle and client
"""

from .client import DecryptionClient
from .oracle import DecryptionOracle, OracleRejection
from .eip712 import create_eip712
from .sealing import generate_keypair, seal, open_sealed

__all__ = [
    'DecryptionClient',
    'DecryptionOracle',
    'OracleRejection',
    'create_eip712',
    'generate_keypair',
    'seal',
    'open_sealed',
]
