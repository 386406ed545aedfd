from __future__ import annotations

import re
from functools import lru_cache

from email_validator import EmailNotValidError, validate_email

# shape accepted by the old offline app; backups written by it may carry
# addresses such as kim@optics.local
LEGACY_EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


@lru_cache(maxsize=256)
def _validate_format_only(candidate: str, globally_deliverable: bool = True) -> str:
    """Normalize addresses validating only syntax/IDNA information."""
    info = validate_email(
        candidate,
        check_deliverability=False,
        globally_deliverable=globally_deliverable,
    )
    return info.normalized or info.email


def normalize_email(value: str | None, *, lenient: bool = False) -> str | None:
    """Return a normalized email, ``None`` for blank input.

    Records are kept offline, so only the shape of the address is checked.
    ``lenient`` is used when restoring backups: reserved domains are allowed
    and anything the old app accepted is kept as typed.
    """
    candidate = (value or "").strip()
    if not candidate:
        return None
    if lenient:
        if not LEGACY_EMAIL_PATTERN.match(candidate):
            raise ValueError(f"Invalid email: {candidate}")
        try:
            return _validate_format_only(candidate, globally_deliverable=False)
        except EmailNotValidError:
            return candidate
    try:
        return _validate_format_only(candidate)
    except EmailNotValidError as exc:
        raise ValueError(f"Invalid email: {exc}") from exc
