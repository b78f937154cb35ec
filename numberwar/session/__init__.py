"""
Player session: controller and view state
"""

from .controller import RoundSessionController
from .view import RoundView, Phase, parse_decrypted_uint, parse_decrypted_bool

__all__ = [
    'RoundSessionController',
    'RoundView',
    'Phase',
    'parse_decrypted_uint',
    'parse_decrypted_bool',
]
