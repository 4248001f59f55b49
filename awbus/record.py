from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING

from .errors import InvalidRecord

if TYPE_CHECKING:
    from .config import Settings

SCHEMA_VERSION = 1
MIN_SESSION_TTL = timedelta(minutes=15)
MAX_SESSION_TTL = timedelta(hours=12)

_ZERO = timedelta(0)


@dataclass
class CredentialRecord:
    """One keyring entry.

    Static records carry a long-lived key pair and no expiration. Delegated
    records name a ``role_arn`` and the static ``source_profile`` whose keys
    are exchanged for short-lived session material; the key fields then hold
    the cached session.
    """

    access_key_id: str = ""
    secret_access_key: str = ""
    session_token: str = ""
    expiration: datetime | None = None
    role_arn: str = ""
    source_profile: str = ""
    session_ttl: timedelta = _ZERO
    skew_pad: timedelta = _ZERO
    version: int = SCHEMA_VERSION

    def is_static(self) -> bool:
        return not self.role_arn

    def validate_static(self, profile: str = "") -> None:
        if self.role_arn:
            raise InvalidRecord(profile, "static validation called on non-static profile")
        if not self.access_key_id or not self.secret_access_key:
            raise InvalidRecord(profile, "static profile missing AccessKeyId or SecretAccessKey")
        if self.expiration is not None:
            raise InvalidRecord(profile, "static profile must not have Expiration")

    def apply_defaults(self, settings: Settings) -> None:
        # Explicit record values win; the clamp applies to them too.
        self.skew_pad = self.skew_pad or settings.skew_pad
        ttl = self.session_ttl or settings.session_ttl
        self.session_ttl = min(max(ttl, MIN_SESSION_TTL), MAX_SESSION_TTL)

    def is_fresh(self, now: datetime) -> bool:
        if self.is_static():
            return True
        if self.expiration is None:
            return False
        # Naive times are UTC, as in the stored timestamp format.
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        expiration = self.expiration
        if expiration.tzinfo is None:
            expiration = expiration.replace(tzinfo=timezone.utc)
        return now + self.skew_pad < expiration

    def projection(self) -> "CredentialRecord":
        """Copy holding only what a credential_process consumer reads."""
        return dataclasses.replace(
            self,
            version=SCHEMA_VERSION,
            role_arn="",
            source_profile="",
            session_ttl=_ZERO,
            skew_pad=_ZERO,
        )


def static_record(access_key_id: str, secret_access_key: str) -> CredentialRecord:
    return CredentialRecord(access_key_id=access_key_id, secret_access_key=secret_access_key)


def delegated_record(role_arn: str, source_profile: str) -> CredentialRecord:
    return CredentialRecord(role_arn=role_arn, source_profile=source_profile)
