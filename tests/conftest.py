from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

import pytest

from awbus.config import Settings
from awbus.identity import AccessKey, ExchangeResult
from awbus.secret_store import MemorySecretStore

NOW = datetime(2026, 3, 1, 12, 0, 0, tzinfo=timezone.utc)


class FakeProvider:
    """Identity provider that records every call."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, Any]] = []
        self.exchange_result: ExchangeResult | None = ExchangeResult(
            access_key_id="ASIANEW",
            secret_access_key="session-secret",
            session_token="session-token",
            expiration=NOW + timedelta(hours=1),
        )
        self.exchange_error: Exception | None = None
        self.created_key: AccessKey | None = AccessKey("AKIANEW", "new-secret")
        self.create_error: Exception | None = None
        self.delete_error: Exception | None = None

    def exchange(self, credentials, role_arn, ttl, session_name):
        self.calls.append(("exchange", (credentials, role_arn, ttl, session_name)))
        if self.exchange_error is not None:
            raise self.exchange_error
        return self.exchange_result

    def create_key(self):
        self.calls.append(("create_key", None))
        if self.create_error is not None:
            raise self.create_error
        return self.created_key

    def delete_key(self, access_key_id):
        self.calls.append(("delete_key", access_key_id))
        if self.delete_error is not None:
            raise self.delete_error

    def names(self) -> list[str]:
        return [name for name, _ in self.calls]


class FailingSetStore(MemorySecretStore):
    def set(self, name: str, data: bytes) -> None:
        raise RuntimeError("keyring locked")


@pytest.fixture
def settings() -> Settings:
    return Settings()


@pytest.fixture
def store() -> MemorySecretStore:
    return MemorySecretStore()


@pytest.fixture
def provider() -> FakeProvider:
    return FakeProvider()
