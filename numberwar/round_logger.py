"""
Round Logger - Records revealed round results to file
Only logs plaintext after decryption, never handles' ciphertexts or keys
"""
import os
from datetime import datetime
from typing import Optional

from numberwar.config import SESSION_CONFIG


class RoundLogger:
    """Appends revealed round results for one account to logs/rounds.log"""

    def __init__(self, account: str, log_dir: Optional[str] = None):
        self.account = account
        self.log_dir = log_dir or SESSION_CONFIG["log_dir"]
        self.log_file = os.path.join(self.log_dir, "rounds.log")

        os.makedirs(self.log_dir, exist_ok=True)

        # Append: rounds from earlier sessions stay in the file
        with open(self.log_file, 'a', encoding='utf-8') as f:
            f.write("=" * 50 + "\n")
            f.write(f"Session for {account}\n")
            f.write(f"Started: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}\n")
            f.write("=" * 50 + "\n")

    def log(self, message: str):
        """Write a log message with timestamp"""
        timestamp = datetime.now().strftime('%H:%M:%S')
        with open(self.log_file, 'a', encoding='utf-8') as f:
            f.write(f"[{timestamp}] {message}\n")

    def log_joined(self):
        self.log("Joined a new round")

    def log_system_number(self, value: int):
        self.log(f"System number (decrypted): {value}")

    def log_submitted(self, value: int):
        self.log(f"Submitted number: {value}")

    def log_outcome(self, won: bool):
        self.log(f"Outcome (decrypted): {'WIN' if won else 'LOSE'}")
