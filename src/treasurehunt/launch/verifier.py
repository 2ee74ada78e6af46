"""
Launch-data verification.

The host platform hands the game an opaque, URL-encoded launch payload
(`query_id=...&user=%7B...%7D&auth_date=...&hash=...`). Before any identity in
it is trusted for a score write we check its HMAC:

1. drop `hash` from the fields,
2. sort the rest by key and join them as `key=value` lines,
3. derive `secret_key = HMAC_SHA256(key="WebAppData", msg=secret)`,
4. compare `hex(HMAC_SHA256(key=secret_key, msg=lines))` with `hash` in constant time.

Everything here is a pure function of its inputs: no network, no globals,
no logging. Callers decide how to report failures.
"""

from __future__ import annotations

import hashlib
import hmac
import json
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Mapping
from urllib.parse import parse_qsl, quote, urlencode

from treasurehunt.core.errors import (
    ExpiredPayload,
    IdentityMismatch,
    MalformedPayload,
    MissingSecret,
    SignatureMismatch,
)
from treasurehunt.core.time import ensure_utc, from_unix, utc_now

SIGNING_KEY_SALT = b"WebAppData"
HASH_FIELD = "hash"
USER_FIELD = "user"
AUTH_DATE_FIELD = "auth_date"


@dataclass(frozen=True)
class VerifiedIdentity:
    """Identity claims extracted from a payload whose signature checked out."""

    user_id: int
    username: str | None
    first_name: str | None
    last_name: str | None
    validated_at: datetime
    auth_date: datetime | None = None

    def as_dict(self) -> dict[str, Any]:
        return {
            "user_id": self.user_id,
            "username": self.username,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "validated_at": self.validated_at.isoformat(),
            "auth_date": self.auth_date.isoformat() if self.auth_date else None,
        }


def _secret_bytes(secret: str | bytes | None) -> bytes:
    if secret is None:
        raise MissingSecret("launch secret is not configured")
    raw = secret.encode("utf-8") if isinstance(secret, str) else bytes(secret)
    if not raw.strip():
        raise MissingSecret("launch secret is not configured")
    return raw


def derive_secret_key(secret: str | bytes) -> bytes:
    """Return the signing key derived from the host secret (bot token)."""
    return hmac.new(SIGNING_KEY_SALT, _secret_bytes(secret), hashlib.sha256).digest()


def parse_launch_fields(payload: str) -> dict[str, str]:
    """Parse a URL-encoded payload into a field dict (duplicate keys are rejected)."""
    if not isinstance(payload, str) or not payload.strip():
        raise MalformedPayload("launch payload must be a non-empty string")
    try:
        pairs = parse_qsl(payload.strip(), keep_blank_values=True, strict_parsing=True)
    except ValueError as exc:
        raise MalformedPayload(f"launch payload is not URL-encoded: {exc}") from exc

    fields: dict[str, str] = {}
    for key, value in pairs:
        if key in fields:
            raise MalformedPayload(f"launch payload repeats field '{key}'")
        fields[key] = value
    return fields


def data_check_string(fields: Mapping[str, str]) -> str:
    """Canonical signed form: every field except `hash`, sorted, `key=value` per line."""
    return "\n".join(f"{key}={fields[key]}" for key in sorted(fields) if key != HASH_FIELD)


def compute_hash(fields: Mapping[str, str], secret: str | bytes) -> str:
    return hmac.new(
        derive_secret_key(secret),
        data_check_string(fields).encode("utf-8"),
        hashlib.sha256,
    ).hexdigest()


def _optional_str(user: Mapping[str, Any], key: str) -> str | None:
    value = user.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise MalformedPayload(f"user.{key} must be a string")
    return value


def _parse_user(raw: str) -> dict[str, Any]:
    try:
        user = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise MalformedPayload("user field is not valid JSON") from exc
    if not isinstance(user, dict):
        raise MalformedPayload("user field must be a JSON object")
    if "id" not in user:
        raise MalformedPayload("user field has no id")
    return user


def _parse_user_id(value: Any) -> int:
    # bool is an int subclass; floats would truncate silently.
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, str) and value.isascii() and value.isdigit():
        return int(value)
    raise MalformedPayload("user.id must be an integer")


def _parse_auth_date(value: str | None) -> datetime | None:
    if value is None:
        return None
    try:
        return from_unix(int(value))
    except (ValueError, OverflowError, OSError) as exc:
        raise MalformedPayload("auth_date must be a unix timestamp") from exc


def check_asserted_username(identity: VerifiedIdentity, asserted_username: str) -> VerifiedIdentity:
    """Confirm the caller is acting for the username embedded in the payload."""
    asserted = (asserted_username or "").strip().lstrip("@")
    if not identity.username or identity.username != asserted:
        raise IdentityMismatch("asserted username does not match the signed launch identity")
    return identity


def verify(
    payload: str,
    secret: str | bytes | None,
    *,
    asserted_username: str | None = None,
    max_age_seconds: int | None = None,
    now: datetime | None = None,
) -> VerifiedIdentity:
    """Validate a signed launch payload and return its identity claims.

    Raises:
        MissingSecret: `secret` is empty or not configured.
        MalformedPayload: fields missing or unparsable (`hash`, `user`, `user.id`).
        SignatureMismatch: the recomputed HMAC differs from `hash`.
        ExpiredPayload: `max_age_seconds` given and `auth_date` too old or absent.
        IdentityMismatch: `asserted_username` given and differs from the signed username.
    """
    secret_raw = _secret_bytes(secret)
    fields = parse_launch_fields(payload)

    received_hash = fields.get(HASH_FIELD)
    if not received_hash:
        raise MalformedPayload("launch payload has no hash field")
    if USER_FIELD not in fields:
        raise MalformedPayload("launch payload has no user field")

    calculated = compute_hash(fields, secret_raw)
    if not hmac.compare_digest(calculated.encode("ascii"), received_hash.encode("utf-8")):
        raise SignatureMismatch("launch payload signature does not match")

    # Field contents are only interpreted once the signature holds.
    user = _parse_user(fields[USER_FIELD])
    user_id = _parse_user_id(user["id"])
    auth_date = _parse_auth_date(fields.get(AUTH_DATE_FIELD))

    checked_at = ensure_utc(now) if now is not None else utc_now()
    if max_age_seconds is not None:
        if auth_date is None:
            raise ExpiredPayload("launch payload has no auth_date")
        if (checked_at - auth_date).total_seconds() > max_age_seconds:
            raise ExpiredPayload("launch payload is older than the allowed age")

    identity = VerifiedIdentity(
        user_id=user_id,
        username=_optional_str(user, "username"),
        first_name=_optional_str(user, "first_name"),
        last_name=_optional_str(user, "last_name"),
        validated_at=checked_at,
        auth_date=auth_date,
    )
    if asserted_username is not None:
        check_asserted_username(identity, asserted_username)
    return identity


def sign_launch_data(fields: Mapping[str, Any], secret: str | bytes) -> str:
    """Build a signed, URL-encoded launch payload (for tests and local demos).

    Dict values (the `user` record) are JSON-encoded compactly; everything else
    is stringified. Any `hash` already present in `fields` is replaced.
    """
    encoded: dict[str, str] = {}
    for key, value in fields.items():
        if key == HASH_FIELD:
            continue
        if isinstance(value, Mapping):
            encoded[key] = json.dumps(dict(value), separators=(",", ":"), ensure_ascii=False)
        else:
            encoded[key] = str(value)
    encoded[HASH_FIELD] = compute_hash(encoded, secret)
    return urlencode(encoded, quote_via=quote)
