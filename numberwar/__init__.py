"""
NumberWar - encrypted number-parity game on a confidential ledger
"""

__version__ = "0.1.0"
