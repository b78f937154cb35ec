"""
NumberWar ledger: the on-ledger round state machine and its HTTP client
"""

from .number_war import NumberWarLedger, LedgerEvent
from .client import HttpLedgerClient
from .transaction import build_transaction, sign_transaction, recover_sender

__all__ = [
    'NumberWarLedger',
    'LedgerEvent',
    'HttpLedgerClient',
    'build_transaction',
    'sign_transaction',
    'recover_sender',
]
