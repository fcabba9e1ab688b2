"""
HTTP clients for the statusnet services.

Each client exposes the same method names as its in-process counterpart
(RecordStore + TokenGate, CredentialService, FanOutNotifier), so the
coordinator and notifier run unchanged against either.

Error mapping: a non-2xx response becomes the matching StatusNetError; a
transport failure (refused connection, timeout) becomes ServiceUnavailable.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Optional
from urllib.parse import quote

import httpx

from .config import get_http_timeout
from .credentials import TokenGrant
from .errors import ServiceUnavailable, error_for_status
from .friends import Location, format_friends
from .tokens import Permission

logger = logging.getLogger(__name__)


def _extract_error_detail(response: httpx.Response) -> str:
    try:
        body = response.json()
    except Exception:
        text = response.text.strip()
        return text if text else response.reason_phrase
    if isinstance(body, dict):
        detail = body.get("detail")
        if detail is None:
            return str(body)
        return str(detail)
    return str(body)


def _raise_for_status(response: httpx.Response) -> None:
    try:
        response.raise_for_status()
    except httpx.HTTPStatusError as exc:
        raise error_for_status(response.status_code, _extract_error_detail(response)) from exc


def _path(*segments: str) -> str:
    return "/" + "/".join(quote(str(s), safe="") for s in segments)


class _ServiceClient:
    service_name = "service"

    def __init__(
        self,
        base_url: str,
        client: Optional[httpx.Client] = None,
        timeout_s: Optional[float] = None,
    ):
        self.base_url = base_url.rstrip("/")
        timeout = timeout_s if timeout_s is not None else get_http_timeout()
        self._client = client or httpx.Client(base_url=self.base_url, timeout=timeout)
        self._owns_client = client is None

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        try:
            r = self._client.request(method, path, **kwargs)
        except httpx.TransportError as exc:
            logger.warning("%s unreachable at %s: %s", self.service_name, self.base_url, exc)
            raise ServiceUnavailable(f"{self.service_name} unreachable") from exc
        _raise_for_status(r)
        return r

    def health_check(self) -> Dict[str, Any]:
        return self._request("GET", "/health").json()


class RecordStoreClient(_ServiceClient):
    """Client for the record server (admin and token-scoped surfaces)."""

    service_name = "record store"

    # --- Admin ---
    def read_entity(self, table: str, partition: str, row: str) -> Dict[str, Any]:
        return self._request("GET", _path("admin", table, partition, row)).json()

    def merge_entity(self, table: str, partition: str, row: str, fields: Dict[str, Any]) -> Dict[str, Any]:
        return self._request("PUT", _path("admin", table, partition, row), json=fields).json()

    def delete_entity(self, table: str, partition: str, row: str) -> None:
        self._request("DELETE", _path("admin", table, partition, row))

    def scan_partition(self, table: str, partition: str) -> List[Dict[str, Any]]:
        return self._request("GET", _path("admin", table, partition)).json()

    def scan_table(self, table: str, has: Optional[Iterable[str]] = None) -> List[Dict[str, Any]]:
        params = [("has", name) for name in (has or ())]
        return self._request("GET", _path("admin", table), params=params).json()

    # --- Token-scoped ---
    def read_with_token(self, token: str, table: str, partition: str, row: str) -> Dict[str, Any]:
        return self._request("GET", _path("auth", table, token, partition, row)).json()

    def update_with_token(self, token: str, table: str, partition: str, row: str,
                          fields: Dict[str, Any]) -> None:
        self._request("PUT", _path("auth", table, token, partition, row), json=fields)


class CredentialClient(_ServiceClient):
    service_name = "credential service"

    def issue_token(self, user_id: str, secret: str, permission: Permission) -> TokenGrant:
        kind = "update" if Permission(permission) == Permission.READ_UPDATE else "read"
        data = self._request("POST", _path("tokens", kind, user_id), json={"secret": secret}).json()
        return TokenGrant(
            token=data["token"],
            location=Location(data["partition"], data["row"]),
            permission=Permission(data.get("permission", permission)),
            expires_at=data.get("expires_at", ""),
        )


class NotifierClient(_ServiceClient):
    service_name = "notifier"

    def notify(self, friends: Iterable[Location], note: str,
               sender: Optional[str] = None) -> Dict[str, Any]:
        payload = {"friends": format_friends(friends), "status": note}
        return self._request("POST", _path("push-status", sender or "anonymous"), json=payload).json()
