"""
statusnet credential (auth) server

Issues capability tokens for a user's profile record after checking the
user's id + secret.

Run: uvicorn --factory statusnet.auth_server:create_app --port 34570
"""
from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, FastAPI, Request
from pydantic import BaseModel, Field

from .clients import RecordStoreClient
from .config import AUTH_PORT, STATUSNET_VERSION, get_records_url, get_signing_key_path
from .credentials import CredentialService
from .errors import install_error_handlers
from .observability import configure_logging, configure_observability, instrument_app
from .tokens import Permission, TokenSigner, load_or_create_signing_key

router = APIRouter()


# =============================================================================
# PYDANTIC MODELS
# =============================================================================

class SecretRequest(BaseModel):
    secret: str = Field(..., min_length=1, max_length=1000)


class TokenResponse(BaseModel):
    token: str
    partition: str
    row: str
    permission: str
    expires_at: str


def get_service(request: Request) -> CredentialService:
    return request.app.state.credentials


# =============================================================================
# TOKEN ENDPOINTS
# =============================================================================

@router.post("/tokens/read/{user_id}", response_model=TokenResponse)
def read_token(user_id: str, req: SecretRequest,
               service: CredentialService = Depends(get_service)):
    return service.issue_token(user_id, req.secret, Permission.READ).to_dict()


@router.post("/tokens/update/{user_id}", response_model=TokenResponse)
def update_token(user_id: str, req: SecretRequest,
                 service: CredentialService = Depends(get_service)):
    return service.issue_token(user_id, req.secret, Permission.READ_UPDATE).to_dict()


@router.get("/health")
def health():
    return {"status": "healthy", "service": "auth", "version": STATUSNET_VERSION,
            "timestamp": datetime.now(timezone.utc).isoformat()}


# =============================================================================
# APP
# =============================================================================

def create_app(service: Optional[CredentialService] = None) -> FastAPI:
    configure_observability("auth")

    owned = None
    if service is None:
        owned = RecordStoreClient(get_records_url())
        signer = TokenSigner(load_or_create_signing_key(get_signing_key_path()))
        service = CredentialService(records=owned, signer=signer)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        if owned is not None:
            owned.close()

    app = FastAPI(title="statusnet credential service", version=STATUSNET_VERSION,
                  lifespan=lifespan)
    app.state.credentials = service

    install_error_handlers(app)
    app.include_router(router)
    instrument_app(app)
    return app


def main(host: str = "0.0.0.0", port: int = AUTH_PORT) -> None:
    import uvicorn

    configure_logging()
    uvicorn.run(create_app(), host=host, port=port)


if __name__ == "__main__":
    main()
