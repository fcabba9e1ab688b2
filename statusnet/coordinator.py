#!/usr/bin/env python3
"""
statusnet session coordinator
=============================

Tracks which users are signed on and runs their friend-list and status
operations against the record store, through the token-scoped gate.

Per-user state machine:

    SIGNED_OFF --sign_on--> SIGNED_ON --sign_off--> SIGNED_OFF

Collaborators are duck-typed so the same coordinator runs in-process or over
HTTP:
- credentials: ``issue_token(user_id, secret, permission) -> TokenGrant``
- records:     ``read_with_token`` / ``update_with_token``
- notifier:    ``notify(friends, note, sender=None)``

Failure mapping: an unreachable collaborator is ServiceUnavailable; every
other downstream failure collapses to NotFound, as the callers of these
operations must not learn why a lookup failed.
"""
from __future__ import annotations

import logging
from typing import Dict, List, Optional

from .config import FRIENDS_FIELD, STATUS_FIELD, get_data_table
from .errors import BadRequest, Forbidden, NotFound, ServiceUnavailable, StatusNetError
from .friends import (
    Location,
    add_friend,
    format_friends,
    parse_friends,
    remove_friend,
    validate_location,
)
from .sessions import Session, SessionStore
from .tokens import Permission

logger = logging.getLogger(__name__)


class SessionCoordinator:
    def __init__(self, credentials, records, notifier,
                 sessions: Optional[SessionStore] = None,
                 data_table: Optional[str] = None):
        self.credentials = credentials
        self.records = records
        self.notifier = notifier
        self.sessions = sessions if sessions is not None else SessionStore()
        self.data_table = data_table or get_data_table()

    # =========================================================================
    # SIGN ON / OFF
    # =========================================================================

    def sign_on(self, user_id: str, secret: str) -> Session:
        """
        Validate credentials and open a session.

        Already signed on with valid credentials: success, stored session
        untouched. Bad id or secret: NotFound, existing session untouched.
        The session is stored only after one token-scoped read proves the
        profile record is reachable.
        """
        with self.sessions.hold(user_id):
            try:
                grant = self.credentials.issue_token(user_id, secret, Permission.READ_UPDATE)
            except ServiceUnavailable:
                raise
            except StatusNetError:
                logger.info("Sign-on refused for %s", user_id)
                raise NotFound()

            existing = self.sessions.get(user_id)
            if existing is not None:
                logger.info("%s already signed on", user_id)
                return existing

            session = Session(token=grant.token,
                              partition=grant.location.partition,
                              row=grant.location.row)
            self._read_profile(session)
            self.sessions.add(user_id, session)
            logger.info("%s signed on -> %s", user_id, session.location)
            return session

    def sign_off(self, user_id: str) -> None:
        with self.sessions.hold(user_id):
            if self.sessions.remove(user_id) is None:
                raise NotFound("Not signed on")
        logger.info("%s signed off", user_id)

    def is_signed_on(self, user_id: str) -> bool:
        return user_id in self.sessions

    # =========================================================================
    # FRIENDS
    # =========================================================================

    def read_friends(self, user_id: str) -> str:
        """Encoded friend list of a signed-on user."""
        session = self._require_session(user_id)
        record = self._read_profile(session)
        return str(record.get(FRIENDS_FIELD) or "")

    def list_friends(self, user_id: str) -> List[Location]:
        return parse_friends(self.read_friends(user_id))

    def add_friend(self, user_id: str, location: Location) -> List[Location]:
        location = validate_location(Location(*location))
        with self.sessions.hold(user_id):
            session = self._require_session(user_id)
            current = parse_friends(str(self._read_profile(session).get(FRIENDS_FIELD) or ""))
            updated = add_friend(current, location)
            if updated != current:
                self._update_profile(session, {FRIENDS_FIELD: format_friends(updated)})
        return updated

    def unfriend(self, user_id: str, location: Location) -> List[Location]:
        location = validate_location(Location(*location))
        with self.sessions.hold(user_id):
            session = self._require_session(user_id)
            current = parse_friends(str(self._read_profile(session).get(FRIENDS_FIELD) or ""))
            updated = remove_friend(current, location)
            if updated != current:
                self._update_profile(session, {FRIENDS_FIELD: format_friends(updated)})
        return updated

    # =========================================================================
    # STATUS
    # =========================================================================

    def update_status(self, user_id: str, new_status: str) -> None:
        """
        Write the user's status, then fan it out to their friends.

        The status write is the primary effect and is not rolled back: when
        the notifier is unreachable the caller gets ServiceUnavailable with
        the status already saved. A signed-off caller gets Forbidden before
        the status text is looked at; an empty or multi-line status is
        BadRequest and touches nothing.
        """
        with self.sessions.hold(user_id):
            session = self._require_session(user_id)
            if not new_status:
                raise BadRequest("Missing status")
            if "\n" in new_status:
                raise BadRequest("Status must be a single line")
            record = self._read_profile(session)
            friends = parse_friends(str(record.get(FRIENDS_FIELD) or ""))
            self._update_profile(session, {STATUS_FIELD: new_status})

            try:
                self.notifier.notify(friends, new_status, sender=user_id)
            except ServiceUnavailable:
                logger.warning("Status of %s saved but fan-out to %d friends failed",
                               user_id, len(friends))
                raise ServiceUnavailable("Status saved; friends not notified")
            except StatusNetError as exc:
                logger.warning("Fan-out for %s rejected: %s", user_id, exc.message)
                raise NotFound()
        logger.info("%s updated status, notified %d friends", user_id, len(friends))

    # =========================================================================
    # INTERNALS
    # =========================================================================

    def _require_session(self, user_id: str) -> Session:
        session = self.sessions.get(user_id)
        if session is None:
            raise Forbidden("Not signed on")
        return session

    def _read_profile(self, session: Session) -> Dict:
        try:
            return self.records.read_with_token(session.token, self.data_table,
                                                session.partition, session.row)
        except ServiceUnavailable:
            raise
        except StatusNetError:
            raise NotFound()

    def _update_profile(self, session: Session, fields: Dict) -> None:
        try:
            self.records.update_with_token(session.token, self.data_table,
                                           session.partition, session.row, fields)
        except ServiceUnavailable:
            raise
        except StatusNetError:
            raise NotFound()
