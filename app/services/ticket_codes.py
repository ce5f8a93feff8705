# File: app/services/ticket_codes.py
"""Ticket code generation.

Codes are random, not sequential: uniqueness is enforced by the database and
collisions are absorbed by the allocator's bounded retry.
"""
import secrets
import string
from typing import Optional

from app.core.config import settings

NUMERIC_6 = "numeric6"
NUMERIC_5 = "numeric5"
PREFIXED = "prefixed"

TOKEN_ALPHABET = string.ascii_uppercase + string.digits

ROLE_CODE_STYLES = {
    "visitor": NUMERIC_6,
    "exhibitor": NUMERIC_6,
    "speaker": NUMERIC_5,
    "awardee": NUMERIC_5,
    "partner": PREFIXED,
}


def style_for_role(role: Optional[str]) -> str:
    return ROLE_CODE_STYLES.get((role or "").lower(), PREFIXED)


def generate_ticket_code(style: str = PREFIXED) -> str:
    if style == NUMERIC_6:
        return str(100000 + secrets.randbelow(900000))
    if style == NUMERIC_5:
        return str(10000 + secrets.randbelow(90000))
    token = "".join(secrets.choice(TOKEN_ALPHABET) for _ in range(settings.TICKET_CODE_LENGTH))
    return f"{settings.TICKET_CODE_PREFIX}{token}"


def numeric_projection(code: Optional[str]) -> Optional[int]:
    """Integer form of an all-digit code, None otherwise."""
    if code and code.isdigit():
        return int(code)
    return None
