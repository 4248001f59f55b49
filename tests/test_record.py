from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from awbus.config import Settings
from awbus.errors import InvalidRecord
from awbus.record import MAX_SESSION_TTL, MIN_SESSION_TTL, CredentialRecord

NOW = datetime(2026, 3, 1, 12, 0, 0, tzinfo=timezone.utc)


def _delegated(**kwargs) -> CredentialRecord:
    base = {"role_arn": "arn:aws:iam::123456789012:role/dev", "source_profile": "base"}
    base.update(kwargs)
    return CredentialRecord(**base)


def test_is_static_depends_only_on_role_arn():
    assert CredentialRecord().is_static()
    assert CredentialRecord(access_key_id="AKIA1", source_profile="x").is_static()
    assert not _delegated().is_static()


@pytest.mark.parametrize("pad", [timedelta(0), timedelta(minutes=2), timedelta(days=365)])
def test_static_records_are_always_fresh(pad):
    rec = CredentialRecord(access_key_id="AKIA1", secret_access_key="s", skew_pad=pad)
    assert rec.is_fresh(NOW)
    assert rec.is_fresh(NOW + timedelta(days=10_000))


def test_delegated_without_expiration_is_never_fresh():
    assert not _delegated(skew_pad=timedelta(0)).is_fresh(NOW)


def test_delegated_freshness_subtracts_skew_pad():
    rec = _delegated(expiration=NOW + timedelta(minutes=5), skew_pad=timedelta(minutes=2))
    assert rec.is_fresh(NOW)
    assert rec.is_fresh(NOW + timedelta(minutes=2, seconds=59))
    # now + pad == expiration is not strictly before it.
    assert not rec.is_fresh(NOW + timedelta(minutes=3))
    assert not rec.is_fresh(NOW + timedelta(minutes=10))


def test_expired_delegated_is_not_fresh():
    rec = _delegated(expiration=NOW - timedelta(seconds=1))
    assert not rec.is_fresh(NOW)


def test_naive_now_is_taken_as_utc():
    rec = _delegated(expiration=NOW + timedelta(minutes=5), skew_pad=timedelta(minutes=2))
    naive = NOW.replace(tzinfo=None)
    assert rec.is_fresh(naive)
    assert not rec.is_fresh(naive + timedelta(minutes=3))


def test_largest_skew_pad_makes_record_stale():
    rec = _delegated(expiration=NOW + timedelta(hours=1), skew_pad=timedelta(hours=2562047))
    assert not rec.is_fresh(NOW)


def test_validate_static_accepts_plain_key_pair():
    CredentialRecord(access_key_id="AKIA1", secret_access_key="s").validate_static("p")
    CredentialRecord(
        access_key_id="AKIA1", secret_access_key="s", session_token="t", source_profile="x"
    ).validate_static("p")


@pytest.mark.parametrize(
    "rec, message",
    [
        (CredentialRecord(access_key_id="A", secret_access_key="s", role_arn="arn"), "non-static"),
        (CredentialRecord(secret_access_key="s"), "missing AccessKeyId"),
        (CredentialRecord(access_key_id="A"), "missing AccessKeyId or SecretAccessKey"),
        (
            CredentialRecord(access_key_id="A", secret_access_key="s", expiration=NOW),
            "must not have Expiration",
        ),
    ],
)
def test_validate_static_rejects(rec, message):
    with pytest.raises(InvalidRecord, match=message) as exc:
        rec.validate_static("work")
    assert exc.value.profile == "work"


def test_apply_defaults_fills_only_zero_values():
    cfg = Settings(session_ttl=timedelta(hours=2), skew_pad=timedelta(minutes=5))

    rec = CredentialRecord()
    rec.apply_defaults(cfg)
    assert rec.session_ttl == timedelta(hours=2)
    assert rec.skew_pad == timedelta(minutes=5)

    explicit = CredentialRecord(session_ttl=timedelta(minutes=30), skew_pad=timedelta(seconds=10))
    explicit.apply_defaults(cfg)
    assert explicit.session_ttl == timedelta(minutes=30)
    assert explicit.skew_pad == timedelta(seconds=10)


@pytest.mark.parametrize(
    "ttl, want",
    [
        (timedelta(hours=24), MAX_SESSION_TTL),
        (timedelta(minutes=5), MIN_SESSION_TTL),
        (timedelta(hours=1), timedelta(hours=1)),
        (MIN_SESSION_TTL, MIN_SESSION_TTL),
        (MAX_SESSION_TTL, MAX_SESSION_TTL),
    ],
)
def test_apply_defaults_clamps_explicit_ttl(ttl, want):
    rec = CredentialRecord(session_ttl=ttl)
    rec.apply_defaults(Settings())
    assert rec.session_ttl == want


def test_apply_defaults_clamps_process_default_too():
    rec = CredentialRecord()
    rec.apply_defaults(Settings(session_ttl=timedelta(minutes=1)))
    assert rec.session_ttl == MIN_SESSION_TTL


def test_projection_strips_delegation_fields_without_mutating_source():
    rec = _delegated(
        access_key_id="ASIA1",
        secret_access_key="s",
        session_token="t",
        expiration=NOW,
        session_ttl=timedelta(hours=1),
        skew_pad=timedelta(minutes=2),
    )
    out = rec.projection()

    assert out.role_arn == ""
    assert out.source_profile == ""
    assert out.session_ttl == timedelta(0)
    assert out.skew_pad == timedelta(0)
    assert out.version == 1
    assert (out.access_key_id, out.secret_access_key, out.session_token) == ("ASIA1", "s", "t")
    assert out.expiration == NOW
    assert rec.role_arn == "arn:aws:iam::123456789012:role/dev"
    assert rec.skew_pad == timedelta(minutes=2)
