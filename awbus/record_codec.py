from __future__ import annotations

import json
import re
from datetime import datetime, timedelta, timezone
from typing import Any

from .errors import EmptyRecord, MalformedRecord
from .record import SCHEMA_VERSION, CredentialRecord

_US_PER_UNIT = {
    "ns": 0.001,
    "us": 1,
    "µs": 1,
    "μs": 1,
    "ms": 1_000,
    "s": 1_000_000,
    "m": 60 * 1_000_000,
    "h": 3600 * 1_000_000,
}
# Largest magnitude an int64 nanosecond count can hold, about 2562047h.
MAX_DURATION_US = (2**63 - 1) // 1_000
_DURATION_PART_RE = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|μs|ms|s|m|h)")
_FRACTION_RE = re.compile(r"\.(\d+)")

_STRING_FIELDS = (
    ("AccessKeyId", "access_key_id"),
    ("SecretAccessKey", "secret_access_key"),
    ("SessionToken", "session_token"),
    ("RoleArn", "role_arn"),
    ("SourceProfile", "source_profile"),
)


def parse_duration(raw: str) -> timedelta:
    """Parse a unit-suffixed duration such as ``1h0m0s``, ``7200s`` or ``1.5h``."""
    text = str(raw or "").strip()
    if not text:
        raise ValueError("empty duration")
    sign = 1
    if text[0] in "+-":
        sign = -1 if text[0] == "-" else 1
        text = text[1:]
    if text == "0":
        return timedelta(0)
    pos = 0
    total_us = 0.0
    while pos < len(text):
        m = _DURATION_PART_RE.match(text, pos)
        if not m:
            raise ValueError(f"invalid duration {raw!r}")
        total_us += float(m.group(1)) * _US_PER_UNIT[m.group(2)]
        if not total_us <= MAX_DURATION_US:
            raise ValueError(f"duration {raw!r} out of range")
        pos = m.end()
    if pos == 0:
        raise ValueError(f"invalid duration {raw!r}")
    return timedelta(microseconds=sign * round(total_us))


def format_duration(value: timedelta) -> str:
    total_us = value // timedelta(microseconds=1)
    if total_us == 0:
        return "0s"
    sign = "-" if total_us < 0 else ""
    total_us = abs(total_us)
    if total_us < 1_000_000:
        if total_us % 1_000 == 0:
            return f"{sign}{total_us // 1_000}ms"
        return f"{sign}{total_us}µs"
    hours, rest = divmod(total_us, 3600 * 1_000_000)
    minutes, rest = divmod(rest, 60 * 1_000_000)
    seconds, frac = divmod(rest, 1_000_000)
    sec_text = str(seconds)
    if frac:
        sec_text += f".{frac:06d}".rstrip("0")
    out = sign
    if hours:
        out += f"{hours}h"
    if hours or minutes:
        out += f"{minutes}m"
    return out + f"{sec_text}s"


def parse_timestamp(raw: str) -> datetime:
    text = str(raw or "").strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    # fromisoformat wants exactly six fractional digits on older interpreters.
    text = _FRACTION_RE.sub(lambda m: "." + m.group(1)[:6].ljust(6, "0"), text, count=1)
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def format_timestamp(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def record_to_doc(record: CredentialRecord) -> dict[str, Any]:
    doc: dict[str, Any] = {"Version": SCHEMA_VERSION}
    for key, attr in _STRING_FIELDS:
        val = getattr(record, attr)
        if val:
            doc[key] = val
    if record.expiration is not None:
        doc["Expiration"] = format_timestamp(record.expiration)
    if record.session_ttl:
        doc["SessionTTL"] = format_duration(record.session_ttl)
    if record.skew_pad:
        doc["SkewPad"] = format_duration(record.skew_pad)
    return doc


def record_from_doc(name: str, doc: Any) -> CredentialRecord:
    if not isinstance(doc, dict):
        raise MalformedRecord(name, "expected JSON object")

    version = doc.get("Version", SCHEMA_VERSION)
    if isinstance(version, bool) or not isinstance(version, int):
        raise MalformedRecord(name, "Version must be an integer")
    if version not in (0, SCHEMA_VERSION):
        raise MalformedRecord(name, f"unsupported Version {version}")

    values: dict[str, Any] = {}
    for key, attr in _STRING_FIELDS:
        val = doc.get(key)
        if val is None:
            continue
        if not isinstance(val, str):
            raise MalformedRecord(name, f"{key} must be a string")
        values[attr] = val

    expiration = doc.get("Expiration")
    if expiration not in (None, ""):
        if not isinstance(expiration, str):
            raise MalformedRecord(name, "Expiration must be a timestamp string")
        try:
            values["expiration"] = parse_timestamp(expiration)
        except ValueError as e:
            raise MalformedRecord(name, f"invalid Expiration: {e}") from e

    for key, attr in (("SessionTTL", "session_ttl"), ("SkewPad", "skew_pad")):
        val = doc.get(key)
        if val in (None, ""):
            continue
        if not isinstance(val, str):
            raise MalformedRecord(name, f"{key} must be a duration string")
        try:
            values[attr] = parse_duration(val)
        except ValueError as e:
            raise MalformedRecord(name, f"invalid {key}: {e}") from e

    return CredentialRecord(**values)


def encode_record(record: CredentialRecord) -> bytes:
    return json.dumps(record_to_doc(record), separators=(",", ":")).encode("utf-8")


def decode_record(name: str, raw: bytes) -> CredentialRecord:
    if not raw or not raw.strip():
        raise EmptyRecord(name)
    try:
        doc = json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, ValueError) as e:
        raise MalformedRecord(name, f"invalid JSON: {e}") from e
    return record_from_doc(name, doc)


def credential_process_json(record: CredentialRecord) -> str:
    return json.dumps(record_to_doc(record.projection()), separators=(",", ":"))


def load_record(store: Any, name: str) -> CredentialRecord:
    return decode_record(name, store.get(name))


def save_record(store: Any, name: str, record: CredentialRecord) -> None:
    store.set(name, encode_record(record))
