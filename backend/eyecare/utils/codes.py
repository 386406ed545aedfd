from __future__ import annotations

import secrets
import string
import time

from eyecare.core.config import settings

_BASE36 = string.digits + string.ascii_lowercase


def _to_base36(value: int) -> str:
    if value == 0:
        return "0"
    digits: list[str] = []
    while value:
        value, remainder = divmod(value, 36)
        digits.append(_BASE36[remainder])
    return "".join(reversed(digits))


def generate_client_code(prefix: str | None = None) -> str:
    """Build a human-facing code such as ``EC-LZ4K1Q2B-7F3KD``."""
    timestamp = _to_base36(int(time.time() * 1000))
    random_part = "".join(secrets.choice(_BASE36) for _ in range(5))
    return f"{prefix or settings.client_code_prefix}-{timestamp}-{random_part}".upper()
