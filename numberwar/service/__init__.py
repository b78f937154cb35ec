"""
NumberWar services: confidential runtime, ledger, decryption and wallet
"""
