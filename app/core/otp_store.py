# File: app/core/otp_store.py
"""Short-lived one-time codes for email verification.

Entries are keyed by (role, email). A successful verify swaps the code for a
single-use verification token. Expired entries are dropped by ``sweep``,
which the scheduler runs on an interval.
"""
import logging
import secrets
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Tuple

from app.core.config import settings
from app.core.errors import RateLimitedError, ValidationError

logger = logging.getLogger(__name__)


@dataclass
class OtpEntry:
    code: str
    expires_at: float
    sent_at: float
    attempts: int = 0


@dataclass
class VerifiedEntry:
    role: str
    email: str
    expires_at: float


class OtpStore:
    def __init__(
        self,
        ttl_seconds: int = settings.OTP_TTL_SECONDS,
        cooldown_seconds: int = settings.OTP_RESEND_COOLDOWN_SECONDS,
        max_attempts: int = settings.OTP_MAX_VERIFY_ATTEMPTS,
        verified_ttl_seconds: int = settings.OTP_VERIFIED_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ttl_seconds = ttl_seconds
        self.cooldown_seconds = cooldown_seconds
        self.max_attempts = max_attempts
        self.verified_ttl_seconds = verified_ttl_seconds
        self.clock = clock
        self._codes: Dict[Tuple[str, str], OtpEntry] = {}
        self._verified: Dict[str, VerifiedEntry] = {}
        self._lock = threading.Lock()

    @staticmethod
    def _key(role: str, email: str) -> Tuple[str, str]:
        return (role.strip().lower(), email.strip().lower())

    def issue(self, role: str, email: str) -> str:
        """New 6-digit code for (role, email); refused during the resend cooldown."""
        key = self._key(role, email)
        now = self.clock()
        with self._lock:
            entry = self._codes.get(key)
            if entry is not None and now - entry.sent_at < self.cooldown_seconds:
                wait = int(self.cooldown_seconds - (now - entry.sent_at)) + 1
                raise RateLimitedError(f"Please wait {wait}s before requesting another code", retry_after=wait)
            code = f"{secrets.randbelow(1000000):06d}"
            self._codes[key] = OtpEntry(code=code, expires_at=now + self.ttl_seconds, sent_at=now)
        return code

    def discard(self, role: str, email: str) -> None:
        with self._lock:
            self._codes.pop(self._key(role, email), None)

    def verify(self, role: str, email: str, code: str) -> str:
        """Check a code and return a single-use verification token."""
        key = self._key(role, email)
        now = self.clock()
        with self._lock:
            entry = self._codes.get(key)
            if entry is None or entry.expires_at <= now:
                self._codes.pop(key, None)
                raise ValidationError("OTP expired or not found")
            if entry.attempts >= self.max_attempts:
                self._codes.pop(key, None)
                raise RateLimitedError("Too many attempts, request a new code")
            if not secrets.compare_digest(entry.code, str(code or "").strip()):
                entry.attempts += 1
                if entry.attempts >= self.max_attempts:
                    self._codes.pop(key, None)
                    raise RateLimitedError("Too many attempts, request a new code")
                raise ValidationError("Invalid OTP")

            del self._codes[key]
            token = secrets.token_urlsafe(24)
            self._verified[token] = VerifiedEntry(role=key[0], email=key[1], expires_at=now + self.verified_ttl_seconds)
        return token

    def consume_token(self, token: Optional[str], role: str, email: Optional[str] = None) -> bool:
        """Spend a verification token issued for ``role`` (and ``email`` when given)."""
        if not token:
            return False
        now = self.clock()
        with self._lock:
            entry = self._verified.get(token)
            if entry is None or entry.expires_at <= now:
                self._verified.pop(token, None)
                return False
            if entry.role != role.strip().lower():
                return False
            if email and entry.email != email.strip().lower():
                return False
            del self._verified[token]
        return True

    def sweep(self) -> int:
        now = self.clock()
        with self._lock:
            expired_codes = [k for k, e in self._codes.items() if e.expires_at <= now]
            for key in expired_codes:
                del self._codes[key]
            expired_tokens = [t for t, e in self._verified.items() if e.expires_at <= now]
            for token in expired_tokens:
                del self._verified[token]
        removed = len(expired_codes) + len(expired_tokens)
        if removed:
            logger.info(f"🧹 OTP sweep removed {removed} expired entries")
        return removed


otp_store = OtpStore()
