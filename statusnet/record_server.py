"""
statusnet record server

FastAPI front for the partitioned record store:
- admin surface: unrestricted read / insert-or-merge / delete, partition and
  table scans
- token surface: read-with-token / update-with-token behind the access gate

Run: uvicorn --factory statusnet.record_server:create_app --port 34568
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, Depends, FastAPI, Query, Request

from .config import RECORDS_PORT, STATUSNET_VERSION, get_db_path, get_signing_key_path, get_verify_key_hex
from .errors import install_error_handlers
from .gate import TokenGate
from .observability import configure_logging, configure_observability, instrument_app
from .store import RecordStore
from .tokens import TokenSigner, TokenVerifier, load_or_create_signing_key, verify_key_from_hex

logger = logging.getLogger(__name__)

router = APIRouter()


# =============================================================================
# DEPENDENCIES
# =============================================================================

def get_store(request: Request) -> RecordStore:
    return request.app.state.store


def get_gate(request: Request) -> TokenGate:
    return request.app.state.gate


def default_verifier() -> TokenVerifier:
    verify_key_hex = get_verify_key_hex()
    if verify_key_hex:
        return TokenVerifier(verify_key_from_hex(verify_key_hex))
    return TokenSigner(load_or_create_signing_key(get_signing_key_path())).verifier()


# =============================================================================
# ADMIN ENDPOINTS
# =============================================================================

@router.get("/admin/{table}")
def scan_table(table: str, has: Optional[List[str]] = Query(None),
               store: RecordStore = Depends(get_store)) -> List[Dict[str, Any]]:
    return store.scan_table(table, has=has)


@router.get("/admin/{table}/{partition}")
def scan_partition(table: str, partition: str,
                   store: RecordStore = Depends(get_store)) -> List[Dict[str, Any]]:
    return store.scan_partition(table, partition)


@router.get("/admin/{table}/{partition}/{row}")
def read_entity(table: str, partition: str, row: str,
                store: RecordStore = Depends(get_store)) -> Dict[str, Any]:
    return store.read_entity(table, partition, row)


@router.put("/admin/{table}/{partition}/{row}")
def merge_entity(table: str, partition: str, row: str,
                 fields: Dict[str, Any] = Body(...),
                 store: RecordStore = Depends(get_store)) -> Dict[str, Any]:
    return store.merge_entity(table, partition, row, fields)


@router.delete("/admin/{table}/{partition}/{row}")
def delete_entity(table: str, partition: str, row: str,
                  store: RecordStore = Depends(get_store)) -> Dict[str, Any]:
    store.delete_entity(table, partition, row)
    return {"deleted": True}


# =============================================================================
# TOKEN-SCOPED ENDPOINTS
# =============================================================================

@router.get("/auth/{table}/{token}/{partition}/{row}")
def read_with_token(table: str, token: str, partition: str, row: str,
                    gate: TokenGate = Depends(get_gate)) -> Dict[str, Any]:
    return gate.read_with_token(token, table, partition, row)


@router.put("/auth/{table}/{token}/{partition}/{row}")
def update_with_token(table: str, token: str, partition: str, row: str,
                      fields: Dict[str, Any] = Body(...),
                      gate: TokenGate = Depends(get_gate)) -> Dict[str, Any]:
    gate.update_with_token(token, table, partition, row, fields)
    return {"updated": True}


@router.get("/health")
def health():
    return {"status": "healthy", "service": "records", "version": STATUSNET_VERSION,
            "timestamp": datetime.now(timezone.utc).isoformat()}


# =============================================================================
# APP
# =============================================================================

def create_app(store: Optional[RecordStore] = None,
               verifier: Optional[TokenVerifier] = None) -> FastAPI:
    configure_observability("records")

    store = store or RecordStore(get_db_path())
    app = FastAPI(title="statusnet record store", version=STATUSNET_VERSION)
    app.state.store = store
    app.state.gate = TokenGate(store, verifier or default_verifier())

    install_error_handlers(app)
    app.include_router(router)
    instrument_app(app)
    return app


def main(host: str = "0.0.0.0", port: int = RECORDS_PORT) -> None:
    import uvicorn

    configure_logging()
    uvicorn.run(create_app(), host=host, port=port)


if __name__ == "__main__":
    main()
