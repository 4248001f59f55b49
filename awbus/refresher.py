from __future__ import annotations

import dataclasses

from .errors import EmptyExchangeResult, ExchangeFailed
from .identity import IdentityProvider, StaticCredentials, session_name_for
from .record import CredentialRecord


class Refresher:
    def __init__(self, provider: IdentityProvider) -> None:
        self.provider = provider

    def refresh(
        self,
        base: CredentialRecord,
        target: CredentialRecord,
        *,
        profile: str = "",
    ) -> CredentialRecord:
        """Exchange ``base``'s static keys for a session on ``target.role_arn``.

        Returns a copy of ``target`` carrying the new session material. Only
        the key id, secret, token and expiration change; a missing expiration
        is stored as absent so the next freshness check forces a refresh.
        """
        credentials = StaticCredentials(
            access_key_id=base.access_key_id,
            secret_access_key=base.secret_access_key,
            session_token=base.session_token,
        )
        try:
            out = self.provider.exchange(
                credentials,
                target.role_arn,
                target.session_ttl,
                session_name_for(target.source_profile),
            )
        except Exception as e:
            raise ExchangeFailed(profile, f"assume-role {target.role_arn}: {e}") from e

        if out is None or not out.access_key_id or not out.secret_access_key:
            raise EmptyExchangeResult(profile)

        return dataclasses.replace(
            target,
            access_key_id=out.access_key_id,
            secret_access_key=out.secret_access_key,
            session_token=out.session_token,
            expiration=out.expiration,
        )
