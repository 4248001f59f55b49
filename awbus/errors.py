from __future__ import annotations

from typing import Any


class AwbusError(Exception):
    pass


class UsageError(AwbusError):
    pass


class ConfigError(UsageError):
    """Raised when environment-derived settings cannot be parsed."""


class OpError(AwbusError):
    pass


class ProfileError(OpError):
    """Operational failure tied to one named profile.

    The profile name is kept on ``.profile`` and prefixed to the message so a
    single stderr line is enough to tell which keyring entry is involved.
    """

    def __init__(self, profile: str, detail: str) -> None:
        self.profile = profile
        self.detail = detail
        super().__init__(f"profile {profile!r}: {detail}")


class NotFound(ProfileError):
    def __init__(self, profile: str, detail: str = "not found in secret store") -> None:
        super().__init__(profile, detail)


class EmptyRecord(ProfileError):
    def __init__(self, profile: str, detail: str = "empty JSON") -> None:
        super().__init__(profile, detail)


class MalformedRecord(ProfileError):
    pass


class InvalidRecord(ProfileError):
    pass


class MissingSourceProfile(ProfileError):
    def __init__(self, profile: str, detail: str = "missing SourceProfile for RoleArn") -> None:
        super().__init__(profile, detail)


class NotSingleHop(ProfileError):
    def __init__(self, profile: str, source_profile: str) -> None:
        self.source_profile = source_profile
        super().__init__(
            profile,
            f"source profile {source_profile!r} is not static (multi-hop not allowed)",
        )


class NotStatic(ProfileError):
    def __init__(
        self,
        profile: str,
        detail: str = "not a static profile (rotation only supported for static credentials)",
    ) -> None:
        super().__init__(profile, detail)


class ExchangeFailed(ProfileError):
    pass


class EmptyExchangeResult(ProfileError):
    def __init__(self, profile: str, detail: str = "assume-role returned empty credentials") -> None:
        super().__init__(profile, detail)


class CreateFailed(ProfileError):
    pass


class DeleteFailed(ProfileError):
    def __init__(self, profile: str, access_key_id: str, detail: str) -> None:
        self.access_key_id = access_key_id
        super().__init__(profile, detail)


class PersistFailed(ProfileError):
    """Raised when a record could not be written back to the secret store.

    After a successful refresh the freshly exchanged record is still valid and
    is attached as ``.record`` so callers can hand it out anyway.
    """

    def __init__(self, profile: str, detail: str, *, record: Any = None) -> None:
        self.record = record
        super().__init__(profile, detail)


class SecretStoreError(ProfileError):
    pass
