"""
NumberWar Models Package

Value types shared by the ledger, the runtime and the session.
"""

from .handle import (
    CiphertextHandle,
    ZERO_HANDLE,
    EBOOL,
    EUINT8,
    FHE_TYPE_NAMES,
    is_sentinel,
)
from .round import Round

__all__ = [
    "CiphertextHandle",
    "ZERO_HANDLE",
    "EBOOL",
    "EUINT8",
    "FHE_TYPE_NAMES",
    "is_sentinel",
    "Round",
]
