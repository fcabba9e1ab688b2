#!/usr/bin/env python3
"""
statusnet capability tokens

A capability token authorizes ONE operation class on ONE record for a fixed
window. It is self-describing and stateless: validity depends only on the
token's own content, its signature and the current time. There is no
revocation list and no refresh.

Wire form::

    <base64url(canonical JSON payload)>.<base64url(Ed25519 signature)>

The credential service holds the signing key; the record store only needs
the verify key, so it can check tokens but never mint them.

Usage:
    signer = TokenSigner(load_or_create_signing_key(path))
    token = signer.issue("profiles", "US", "alice", Permission.READ_UPDATE)

    verifier = signer.verifier()
    cap = verifier.decode(token)          # None if forged or garbled
    is_authorized(cap, AccessRequest("profiles", "US", "alice", Operation.READ))
"""

from __future__ import annotations

import base64
import json
import secrets
import time
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from pathlib import Path
from typing import Optional

from nacl.encoding import HexEncoder
from nacl.exceptions import BadSignatureError
from nacl.signing import SigningKey, VerifyKey

from .config import get_token_ttl_hours


# =============================================================================
# TYPES
# =============================================================================

class Permission(str, Enum):
    READ = "read"
    READ_UPDATE = "read+update"


class Operation(str, Enum):
    READ = "read"
    UPDATE = "update"


@dataclass(frozen=True)
class CapabilityToken:
    """Decoded token: scope, permission and expiry."""
    table: str
    partition: str
    row: str
    permission: Permission
    expires_at: float
    issued_at: float
    nonce: str = ""

    def allows(self, op: Operation) -> bool:
        if op == Operation.UPDATE:
            return self.permission == Permission.READ_UPDATE
        return True

    def covers(self, table: str, partition: str, row: str) -> bool:
        return (self.table, self.partition, self.row) == (table, partition, row)

    def is_expired(self, now: Optional[float] = None) -> bool:
        return self.expires_at <= (time.time() if now is None else now)

    def to_payload(self) -> dict:
        return {
            "tbl": self.table,
            "pk": self.partition,
            "rk": self.row,
            "perm": self.permission.value,
            "exp": self.expires_at,
            "iat": self.issued_at,
            "nonce": self.nonce,
        }

    @classmethod
    def from_payload(cls, payload: dict) -> "CapabilityToken":
        return cls(
            table=str(payload["tbl"]),
            partition=str(payload["pk"]),
            row=str(payload["rk"]),
            permission=Permission(payload["perm"]),
            expires_at=float(payload["exp"]),
            issued_at=float(payload["iat"]),
            nonce=str(payload.get("nonce", "")),
        )


@dataclass(frozen=True)
class AccessRequest:
    """What a caller wants to do with a token."""
    table: str
    partition: str
    row: str
    op: Operation


def is_authorized(token: Optional[CapabilityToken], request: AccessRequest,
                  now: Optional[float] = None) -> bool:
    """Pure check: permission, exact single-record scope and expiry."""
    if token is None:
        return False
    return (
        token.allows(request.op)
        and token.covers(request.table, request.partition, request.row)
        and not token.is_expired(now)
    )


# =============================================================================
# KEYS
# =============================================================================

def load_or_create_signing_key(path: Path) -> SigningKey:
    """Load the Ed25519 signing key from ``path``, creating it on first use."""
    path.parent.mkdir(parents=True, exist_ok=True)

    if path.exists():
        return SigningKey(path.read_bytes().strip(), encoder=HexEncoder)

    signing_key = SigningKey.generate()
    path.write_bytes(signing_key.encode(encoder=HexEncoder))
    path.chmod(0o600)  # Owner read/write only
    return signing_key


def verify_key_from_hex(verify_key_hex: str) -> VerifyKey:
    return VerifyKey(verify_key_hex.encode(), encoder=HexEncoder)


# =============================================================================
# ENCODING
# =============================================================================

def _b64url(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode()


def _unb64url(s: str) -> bytes:
    return base64.urlsafe_b64decode(s + "=" * (-len(s) % 4))


def _canonical(payload: dict) -> bytes:
    return json.dumps(payload, sort_keys=True, separators=(",", ":")).encode()


class TokenVerifier:
    """Decodes tokens and checks their signature. Holds only the verify key."""

    def __init__(self, verify_key: VerifyKey):
        self._verify_key = verify_key

    def decode(self, token: str) -> Optional[CapabilityToken]:
        """Return the decoded token, or None if it is garbled or forged.

        Expiry is NOT checked here; see ``is_authorized``.
        """
        try:
            payload_b64, signature_b64 = token.split(".")
            message = payload_b64.encode()
            self._verify_key.verify(message, _unb64url(signature_b64))
            return CapabilityToken.from_payload(json.loads(_unb64url(payload_b64)))
        except (ValueError, KeyError, TypeError, BadSignatureError):
            return None


class TokenSigner:
    """Mints capability tokens."""

    def __init__(self, signing_key: SigningKey, ttl_hours: Optional[int] = None):
        self._signing_key = signing_key
        self.ttl = timedelta(hours=ttl_hours if ttl_hours is not None else get_token_ttl_hours())

    @property
    def verify_key_hex(self) -> str:
        return self._signing_key.verify_key.encode(encoder=HexEncoder).decode()

    def verifier(self) -> TokenVerifier:
        return TokenVerifier(self._signing_key.verify_key)

    def mint(self, table: str, partition: str, row: str, permission: Permission,
             now: Optional[datetime] = None) -> CapabilityToken:
        issued = now or datetime.now(timezone.utc)
        return CapabilityToken(
            table=table,
            partition=partition,
            row=row,
            permission=Permission(permission),
            expires_at=(issued + self.ttl).timestamp(),
            issued_at=issued.timestamp(),
            nonce=secrets.token_hex(12),
        )

    def encode(self, token: CapabilityToken) -> str:
        payload_b64 = _b64url(_canonical(token.to_payload()))
        signature = self._signing_key.sign(payload_b64.encode()).signature
        return f"{payload_b64}.{_b64url(signature)}"

    def issue(self, table: str, partition: str, row: str, permission: Permission,
              now: Optional[datetime] = None) -> str:
        return self.encode(self.mint(table, partition, row, permission, now=now))
