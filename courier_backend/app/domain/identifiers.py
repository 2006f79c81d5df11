"""
Identifier Generator.

Tracking IDs look like CRR-LX3K9Q2A-7F1Z: prefix, epoch milliseconds in
base 36, four random base-36 characters.
"""

import secrets
import string
import time
from typing import Optional
from courier_backend.app.core.config import settings

BASE36_ALPHABET = string.digits + string.ascii_uppercase


def to_base36(number: int) -> str:
    if number < 0:
        raise ValueError("number must be non-negative")
    if number == 0:
        return "0"
    digits = []
    while number:
        number, remainder = divmod(number, 36)
        digits.append(BASE36_ALPHABET[remainder])
    return "".join(reversed(digits))


class IdentifierGenerator:

    @staticmethod
    def generate_tracking_id(prefix: Optional[str] = None, now_ms: Optional[int] = None) -> str:
        prefix = prefix or settings.tracking_id_prefix
        if now_ms is None:
            now_ms = time.time_ns() // 1_000_000
        suffix = "".join(secrets.choice(BASE36_ALPHABET) for _ in range(4))
        return f"{prefix}-{to_base36(now_ms)}-{suffix}"

    @staticmethod
    def invoice_number(tracking_id: str, sequence: int = 1) -> str:
        """INV-<tracking id> for the first invoice, INV-<tracking id>-<n> for re-issues."""
        if sequence <= 1:
            return f"INV-{tracking_id}"
        return f"INV-{tracking_id}-{sequence}"
