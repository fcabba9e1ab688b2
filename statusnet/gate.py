"""
Token-scoped access gate.

The record store's restricted entry points. A request is allowed only when the
presented capability token decodes, grants the operation, names exactly the
requested record and has not expired. Scope mismatches, expired tokens and
missing records all surface as the same NotFound.
"""
from __future__ import annotations

import logging
import time
from typing import Dict, Optional

from .errors import Forbidden, NotFound
from .store import RecordStore
from .tokens import AccessRequest, CapabilityToken, Operation, TokenVerifier, is_authorized

logger = logging.getLogger(__name__)


def authorize(token: str, request: AccessRequest, verifier: TokenVerifier,
              now: Optional[float] = None) -> CapabilityToken:
    """Return the decoded token if it admits ``request``; raise otherwise."""
    cap = verifier.decode(token)
    if cap is None:
        raise NotFound()
    if not cap.allows(request.op):
        raise Forbidden("Token does not grant update")
    if not is_authorized(cap, request, now=now):
        raise NotFound()
    return cap


class TokenGate:
    """read-with-token / update-with-token over a RecordStore. No caching."""

    def __init__(self, store: RecordStore, verifier: TokenVerifier):
        self.store = store
        self.verifier = verifier

    def read_with_token(self, token: str, table: str, partition: str, row: str) -> Dict:
        authorize(token, AccessRequest(table, partition, row, Operation.READ),
                  self.verifier, now=time.time())
        return self.store.read_entity(table, partition, row)

    def update_with_token(self, token: str, table: str, partition: str, row: str,
                          fields: Dict) -> None:
        authorize(token, AccessRequest(table, partition, row, Operation.UPDATE),
                  self.verifier, now=time.time())
        if not self.store.exists(table, partition, row):
            raise NotFound()
        self.store.merge_entity(table, partition, row, fields)
        logger.info("Token update %s/%s/%s fields=%s", table, partition, row, sorted(fields))
