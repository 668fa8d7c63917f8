# medibook/services/otp.py
"""
One-time passcodes per contact (email or phone).

Lifecycle of a contact:  no code → issued(code, expires_at, attempts)
    issued → consumed   on a correct, unexpired match within the attempt budget
    issued → evicted    on expiry (checked on read) or when attempts run out

The store is injected so a shared backend can replace the in-process one,
and the clock is injected so expiry can be tested without waiting.
"""
from __future__ import annotations
import logging
import secrets
import threading
import time
from dataclasses import dataclass, replace
from typing import Callable, Optional, Protocol

from ..config import settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OtpEntry:
    code: str
    expires_at: float
    attempts: int = 0


@dataclass(frozen=True)
class OtpResult:
    valid: bool
    message: str
    remaining_attempts: Optional[int]

    def to_dict(self) -> dict:
        return {"valid": self.valid, "message": self.message, "remainingAttempts": self.remaining_attempts}


class OtpStore(Protocol):
    def get(self, key: str) -> Optional[OtpEntry]: ...
    def put(self, key: str, entry: OtpEntry) -> None: ...
    def delete(self, key: str) -> None: ...


class InMemoryOtpStore:
    """Process-local store. Lost on restart, which is acceptable for passcodes."""

    def __init__(self):
        self._data: dict[str, OtpEntry] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[OtpEntry]:
        with self._lock:
            return self._data.get(key)

    def put(self, key: str, entry: OtpEntry) -> None:
        with self._lock:
            self._data[key] = entry

    def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    def __len__(self) -> int:
        return len(self._data)


def generate_code() -> str:
    return str(100000 + secrets.randbelow(900000))


def normalize_contact(contact: str) -> str:
    return (contact or "").strip().lower()


class OtpService:
    def __init__(
        self,
        store: Optional[OtpStore] = None,
        clock: Callable[[], float] = time.time,
        ttl_seconds: int = 300,
        max_attempts: int = 5,
        code_factory: Callable[[], str] = generate_code,
    ):
        self.store = store if store is not None else InMemoryOtpStore()
        self.clock = clock
        self.ttl_seconds = ttl_seconds
        self.max_attempts = max_attempts
        self.code_factory = code_factory

    def issue(self, contact: str) -> str:
        """Issues a fresh code, replacing any previous one for the contact."""
        key = normalize_contact(contact)
        code = self.code_factory()
        self.store.put(key, OtpEntry(code=code, expires_at=self.clock() + self.ttl_seconds))
        logger.info("OTP issued for %s (expires in %ss)", key, self.ttl_seconds)
        return code

    def revoke(self, contact: str) -> None:
        self.store.delete(normalize_contact(contact))

    def _live_entry(self, key: str) -> Optional[OtpEntry]:
        entry = self.store.get(key)
        if entry is not None and self.clock() > entry.expires_at:
            self.store.delete(key)
            logger.info("OTP expired and removed for %s", key)
            return None
        return entry

    def verify(self, contact: str, code: str) -> OtpResult:
        key = normalize_contact(contact)
        entry = self.store.get(key)
        if entry is None:
            return OtpResult(False, "OTP not found or expired. Please request a new OTP.", 0)

        if self.clock() > entry.expires_at:
            self.store.delete(key)
            return OtpResult(False, "OTP has expired. Please request a new OTP.", 0)

        if entry.attempts >= self.max_attempts:
            self.store.delete(key)
            return OtpResult(False, "Maximum OTP verification attempts exceeded. Please request a new OTP.", 0)

        if not secrets.compare_digest(entry.code, str(code or "").strip()):
            attempts = entry.attempts + 1
            remaining = self.max_attempts - attempts
            if remaining <= 0:
                self.store.delete(key)
                logger.info("OTP attempts exhausted for %s", key)
            else:
                self.store.put(key, replace(entry, attempts=attempts))
            return OtpResult(False, "Invalid OTP", remaining)

        self.store.delete(key)
        logger.info("OTP verified for %s", key)
        return OtpResult(True, "OTP verified successfully", None)

    def status(self, contact: str) -> Optional[dict]:
        key = normalize_contact(contact)
        entry = self._live_entry(key)
        if entry is None:
            return None
        return {
            "exists": True,
            "remainingTime": max(0, int(entry.expires_at - self.clock() + 0.999)),
            "attempts": entry.attempts,
            "maxAttempts": self.max_attempts,
        }


otp_service = OtpService(
    ttl_seconds=settings.OTP_TTL_SECONDS,
    max_attempts=settings.OTP_MAX_ATTEMPTS,
)


def get_otp_service() -> OtpService:
    return otp_service
