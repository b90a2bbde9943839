"""Tamper-evident digests over JSON-serialisable snapshots."""

from __future__ import annotations

import hashlib
import hmac
import json
from typing import Any

from src.contracts.cascade import SignedHash
from src.contracts.serialize import to_plain


def canonical_json(data: Any) -> str:
    """Serialise with lexicographically sorted keys and compact separators."""
    return json.dumps(
        to_plain(data),
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
        default=str,
    )


def create_audit_hash(data: Any) -> str:
    """Short (16 hex chars) SHA-256 fingerprint of ``data``."""
    return hashlib.sha256(canonical_json(data).encode("utf-8")).hexdigest()[:16]


def create_signed_hash(data: Any, key: str | bytes) -> SignedHash:
    """Full SHA-256 of ``data`` plus an HMAC-SHA256 of that digest under ``key``."""
    digest = hashlib.sha256(canonical_json(data).encode("utf-8")).hexdigest()
    raw_key = key.encode("utf-8") if isinstance(key, str) else key
    signature = hmac.new(raw_key, digest.encode("utf-8"), hashlib.sha256).hexdigest()
    return SignedHash(sha256=digest, signature=signature)


def verify_signed_hash(data: Any, key: str | bytes, signed: SignedHash) -> bool:
    expected = create_signed_hash(data, key)
    return hmac.compare_digest(expected.sha256, signed.sha256) and hmac.compare_digest(
        expected.signature, signed.signature
    )
