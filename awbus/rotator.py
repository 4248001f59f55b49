from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from typing import Any

from .errors import CreateFailed, DeleteFailed, NotStatic, PersistFailed
from .identity import IdentityProvider
from .record_codec import load_record, save_record
from .secret_store import SecretStore


@dataclass(frozen=True)
class RotationResult:
    profile: str
    old_access_key_id: str
    new_access_key_id: str
    delete_error: DeleteFailed | None = None

    @property
    def old_key_deleted(self) -> bool:
        return self.delete_error is None


class Rotator:
    """Replaces a static profile's IAM access key.

    Order matters: the new key is created, then written to the secret store,
    and only then is the old key deleted. A failure at any step leaves the
    stored profile pointing at a key that still exists remotely.
    """

    def __init__(self, store: SecretStore, provider: IdentityProvider) -> None:
        self.store = store
        self.provider = provider

    def rotate(self, name: str, *, event: dict[str, Any] | None = None) -> RotationResult:
        event = event if event is not None else {}
        record = load_record(self.store, name)
        if not record.is_static():
            raise NotStatic(name)
        record.validate_static(name)

        try:
            new_key = self.provider.create_key()
        except Exception as e:
            raise CreateFailed(name, f"create new access key: {e}") from e
        if new_key is None or not new_key.access_key_id or not new_key.secret_access_key:
            raise CreateFailed(name, "create access key returned empty access key")
        event["key_created"] = True

        old_access_key_id = record.access_key_id
        rotated = dataclasses.replace(
            record,
            access_key_id=new_key.access_key_id,
            secret_access_key=new_key.secret_access_key,
        )
        try:
            save_record(self.store, name, rotated)
        except Exception as e:
            event["persisted"] = False
            raise PersistFailed(
                name,
                f"store new credentials: {e} "
                f"(new access key {new_key.access_key_id} left unused, {old_access_key_id} still active)",
            ) from e
        event["persisted"] = True

        delete_error: DeleteFailed | None = None
        try:
            self.provider.delete_key(old_access_key_id)
        except Exception as e:
            delete_error = DeleteFailed(
                name,
                old_access_key_id,
                f"delete old access key {old_access_key_id}: {e}",
            )
            delete_error.__cause__ = e
        event["old_key_deleted"] = delete_error is None

        return RotationResult(
            profile=name,
            old_access_key_id=old_access_key_id,
            new_access_key_id=new_key.access_key_id,
            delete_error=delete_error,
        )
