#!/usr/bin/env python3
"""
statusnet credential service

Validates a user's id + secret against the stored credential record and mints
a short-lived capability token scoped to that user's profile record.

Security properties:
1. Secrets are stored as SHA-256 hashes and compared in constant time
2. Unknown id and wrong secret raise the same InvalidCredentials
3. Tokens cover exactly one record and one permission, for 24 hours
4. Issuance is stateless: every call re-validates against the store

Usage:
    service = CredentialService(records=RecordStore(db_path), signer=signer)
    service.provision("alice", "pw1", Location("US", "alice"))
    grant = service.issue_token("alice", "pw1", Permission.READ_UPDATE)
"""

import hashlib
import hmac
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, Optional

from .config import (
    AUTH_TABLE_PARTITION,
    DATA_PARTITION_FIELD,
    DATA_ROW_FIELD,
    FRIENDS_FIELD,
    SECRET_HASH_FIELD,
    STATUS_FIELD,
    UPDATES_FIELD,
    get_auth_table,
    get_data_table,
)
from .errors import BadRequest, InvalidCredentials, NotFound
from .friends import Location, validate_location
from .tokens import Permission, TokenSigner

logger = logging.getLogger(__name__)


def hash_secret(secret: str) -> str:
    return hashlib.sha256(secret.encode()).hexdigest()


@dataclass
class TokenGrant:
    """Result of a successful issue_token call."""
    token: str
    location: Location
    permission: Permission
    expires_at: str

    def to_dict(self) -> dict:
        return {
            "token": self.token,
            "partition": self.location.partition,
            "row": self.location.row,
            "permission": self.permission.value,
            "expires_at": self.expires_at,
        }


class CredentialService:
    """
    Token issuance over a record store.

    ``records`` is anything with ``read_entity``/``merge_entity``: the local
    RecordStore or a RecordStoreClient pointed at the record server.
    """

    def __init__(self, records, signer: TokenSigner,
                 auth_table: Optional[str] = None, data_table: Optional[str] = None):
        self.records = records
        self.signer = signer
        self.auth_table = auth_table or get_auth_table()
        self.data_table = data_table or get_data_table()

    def _lookup(self, user_id: str, secret: str) -> Dict:
        try:
            record = self.records.read_entity(self.auth_table, AUTH_TABLE_PARTITION, user_id)
        except NotFound:
            raise InvalidCredentials()

        stored = str(record.get(SECRET_HASH_FIELD, ""))
        if not hmac.compare_digest(stored, hash_secret(secret)):
            raise InvalidCredentials()
        return record

    def issue_token(self, user_id: str, secret: str, permission: Permission) -> TokenGrant:
        """
        Mint a token for the user's home profile record.

        Raises:
            InvalidCredentials: unknown user or wrong secret (indistinguishable)
            BadRequest: credential record carries no home location
        """
        record = self._lookup(user_id, secret)

        partition = record.get(DATA_PARTITION_FIELD)
        row = record.get(DATA_ROW_FIELD)
        if not partition or not row:
            raise BadRequest("Credential record has no home location")

        permission = Permission(permission)
        cap = self.signer.mint(self.data_table, str(partition), str(row), permission)
        logger.info("Issued %s token for %s -> %s/%s", permission.value, user_id, partition, row)

        return TokenGrant(
            token=self.signer.encode(cap),
            location=Location(str(partition), str(row)),
            permission=permission,
            expires_at=datetime.fromtimestamp(cap.expires_at, timezone.utc).isoformat(),
        )

    def provision(self, user_id: str, secret: str, location: Location,
                  profile: Optional[Dict] = None) -> None:
        """
        Out-of-band account setup: credential record plus profile record.

        An existing profile keeps its fields unless ``profile`` overrides them.
        """
        if not user_id or not secret:
            raise BadRequest("user_id and secret are required")
        location = validate_location(Location(*location))

        self.records.merge_entity(self.auth_table, AUTH_TABLE_PARTITION, user_id, {
            SECRET_HASH_FIELD: hash_secret(secret),
            DATA_PARTITION_FIELD: location.partition,
            DATA_ROW_FIELD: location.row,
        })

        try:
            self.records.read_entity(self.data_table, location.partition, location.row)
            fields = {}
        except NotFound:
            fields = {FRIENDS_FIELD: "", STATUS_FIELD: "", UPDATES_FIELD: ""}
        fields.update(profile or {})
        if fields:
            self.records.merge_entity(self.data_table, location.partition, location.row, fields)
        logger.info("Provisioned %s -> %s", user_id, location)
