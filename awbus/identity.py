from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Protocol

import boto3
from botocore.config import Config

SESSION_NAME_PREFIX = "awbus"


@dataclass(frozen=True)
class StaticCredentials:
    access_key_id: str
    secret_access_key: str
    session_token: str = ""


@dataclass(frozen=True)
class ExchangeResult:
    access_key_id: str
    secret_access_key: str
    session_token: str
    expiration: datetime | None = None


@dataclass(frozen=True)
class AccessKey:
    access_key_id: str
    secret_access_key: str


class IdentityProvider(Protocol):
    def exchange(
        self,
        credentials: StaticCredentials,
        role_arn: str,
        ttl: timedelta,
        session_name: str,
    ) -> ExchangeResult | None: ...

    def create_key(self) -> AccessKey | None: ...

    def delete_key(self, access_key_id: str) -> None: ...


def session_name_for(profile: str) -> str:
    # STS RoleSessionName: <= 64 chars of [A-Za-z0-9+=,.@_-].
    sanitized = re.sub(r"[^a-zA-Z0-9+=,.@_-]", "", f"{SESSION_NAME_PREFIX}-{profile}")
    return sanitized[:64] or SESSION_NAME_PREFIX


def client_config(*, connect_timeout: float, read_timeout: float) -> Config:
    return Config(
        connect_timeout=connect_timeout,
        read_timeout=read_timeout,
        retries={"mode": "standard"},
    )


class AwsIdentityProvider:
    """STS assume-role plus IAM access-key management.

    ``exchange`` signs with the credentials it is handed. IAM calls use the
    ambient boto3 session, which for a rotated profile is normally awbus
    itself acting as that profile's credential_process.
    """

    def __init__(
        self,
        *,
        region: str,
        session: Any = None,
        config: Config | None = None,
    ) -> None:
        self.region = region
        self._session = session
        self._config = config
        self._iam_client: Any = None

    def _boto_session(self) -> Any:
        # Deferred: boto3 resolves AWS_PROFILE against ~/.aws/config on creation.
        if self._session is None:
            self._session = boto3.session.Session(region_name=self.region)
        return self._session

    def _iam(self) -> Any:
        if self._iam_client is None:
            self._iam_client = self._boto_session().client(
                "iam", region_name=self.region, config=self._config
            )
        return self._iam_client

    def _sts(self, credentials: StaticCredentials) -> Any:
        return self._boto_session().client(
            "sts",
            region_name=self.region,
            aws_access_key_id=credentials.access_key_id,
            aws_secret_access_key=credentials.secret_access_key,
            aws_session_token=credentials.session_token or None,
            config=self._config,
        )

    def exchange(
        self,
        credentials: StaticCredentials,
        role_arn: str,
        ttl: timedelta,
        session_name: str,
    ) -> ExchangeResult | None:
        resp = self._sts(credentials).assume_role(
            RoleArn=role_arn,
            RoleSessionName=session_name,
            DurationSeconds=int(ttl.total_seconds()),
        )
        creds = resp.get("Credentials")
        if not isinstance(creds, dict) or not creds:
            return None
        return ExchangeResult(
            access_key_id=str(creds.get("AccessKeyId") or ""),
            secret_access_key=str(creds.get("SecretAccessKey") or ""),
            session_token=str(creds.get("SessionToken") or ""),
            expiration=creds.get("Expiration"),
        )

    def create_key(self) -> AccessKey | None:
        resp = self._iam().create_access_key()
        key = resp.get("AccessKey")
        if not isinstance(key, dict) or not key:
            return None
        return AccessKey(
            access_key_id=str(key.get("AccessKeyId") or ""),
            secret_access_key=str(key.get("SecretAccessKey") or ""),
        )

    def delete_key(self, access_key_id: str) -> None:
        self._iam().delete_access_key(AccessKeyId=access_key_id)
