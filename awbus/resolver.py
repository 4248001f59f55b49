from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from .config import Settings
from .errors import MissingSourceProfile, NotSingleHop, PersistFailed
from .identity import IdentityProvider
from .record import CredentialRecord
from .record_codec import load_record, save_record
from .refresher import Refresher
from .secret_store import SecretStore


class ProfileResolver:
    """Turns a profile name into usable credentials.

    Static profiles are returned as stored. Delegated profiles are served from
    the cached session while it is fresh and otherwise refreshed through a
    single assume-role hop from their static source profile.
    """

    def __init__(self, store: SecretStore, provider: IdentityProvider, settings: Settings) -> None:
        self.store = store
        self.settings = settings
        self.refresher = Refresher(provider)

    def _load(self, name: str) -> CredentialRecord:
        record = load_record(self.store, name)
        record.apply_defaults(self.settings)
        return record

    def resolve(
        self,
        name: str,
        now: datetime | None = None,
        *,
        event: dict[str, Any] | None = None,
    ) -> CredentialRecord:
        event = event if event is not None else {}
        record = self._load(name)

        if record.is_static():
            record.validate_static(name)
            event["kind"] = "static"
            return record

        event["kind"] = "delegated"
        if not record.source_profile:
            raise MissingSourceProfile(name)

        # Checked on every resolve: a source edited into a delegated profile
        # after this one was stored is still rejected.
        base = self._load(record.source_profile)
        if not base.is_static():
            raise NotSingleHop(name, record.source_profile)
        base.validate_static(record.source_profile)

        now = now or datetime.now(timezone.utc)
        if record.is_fresh(now):
            event["cached"] = True
            return record

        refreshed = self.refresher.refresh(base, record, profile=name)
        event["refreshed"] = True
        try:
            save_record(self.store, name, refreshed)
        except Exception as e:
            event["persisted"] = False
            raise PersistFailed(name, f"persist refreshed profile: {e}", record=refreshed) from e
        event["persisted"] = True
        return refreshed
