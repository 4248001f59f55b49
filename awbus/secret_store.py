from __future__ import annotations

from typing import Protocol

import keyring
from keyring.errors import KeyringError, PasswordDeleteError

from .errors import NotFound, SecretStoreError

KEYRING_SERVICE = "awbus"


class SecretStore(Protocol):
    def get(self, name: str) -> bytes: ...

    def set(self, name: str, data: bytes) -> None: ...

    def delete(self, name: str) -> None: ...


class KeyringSecretStore:
    """Profiles as passwords under one keyring service.

    Encryption at rest is whatever the platform backend provides (Secret
    Service, macOS Keychain, Windows Credential Locker).
    """

    def __init__(self, service: str = KEYRING_SERVICE) -> None:
        self.service = service

    def get(self, name: str) -> bytes:
        try:
            raw = keyring.get_password(self.service, name)
        except KeyringError as e:
            raise SecretStoreError(name, f"keyring read failed: {e}") from e
        if raw is None:
            raise NotFound(name)
        return raw.encode("utf-8")

    def set(self, name: str, data: bytes) -> None:
        try:
            keyring.set_password(self.service, name, data.decode("utf-8"))
        except KeyringError as e:
            raise SecretStoreError(name, f"keyring write failed: {e}") from e

    def delete(self, name: str) -> None:
        try:
            keyring.delete_password(self.service, name)
        except PasswordDeleteError as e:
            raise NotFound(name) from e
        except KeyringError as e:
            raise SecretStoreError(name, f"keyring delete failed: {e}") from e


class MemorySecretStore:
    def __init__(self, items: dict[str, bytes] | None = None) -> None:
        self.items: dict[str, bytes] = dict(items or {})

    def get(self, name: str) -> bytes:
        if name not in self.items:
            raise NotFound(name)
        return self.items[name]

    def set(self, name: str, data: bytes) -> None:
        self.items[name] = bytes(data)

    def delete(self, name: str) -> None:
        if self.items.pop(name, None) is None:
            raise NotFound(name)
