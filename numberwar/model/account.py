"""
Account identities are 20-byte addresses kept in checksummed form.
"""
from eth_utils import is_address, to_checksum_address


def normalize_address(value: str) -> str:
    """Checksummed form of `value`; raises ValueError for anything else."""
    if not isinstance(value, str) or not is_address(value):
        raise ValueError(f"Not an account address: {value!r}")
    return to_checksum_address(value)


def same_address(a: str, b: str) -> bool:
    if not isinstance(a, str) or not isinstance(b, str):
        return False
    return a.lower() == b.lower()
