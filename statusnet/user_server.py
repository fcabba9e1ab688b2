"""
statusnet user server (session coordinator)

FastAPI front for SessionCoordinator:
- sign-on / sign-off
- friend list read, add-friend, unfriend
- status update with fan-out to friends

The session table lives on the coordinator held in ``app.state``; handlers
reach it through dependencies, never through module globals. Handlers are
plain functions so concurrent requests run on the server's thread pool.

Run: uvicorn --factory statusnet.user_server:create_app --port 34572
"""
from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, FastAPI, Request
from pydantic import BaseModel, Field

from .clients import CredentialClient, NotifierClient, RecordStoreClient
from .config import STATUSNET_VERSION, USER_PORT, get_auth_url, get_push_url, get_records_url
from .coordinator import SessionCoordinator
from .errors import install_error_handlers
from .friends import Location, format_friends
from .observability import configure_logging, configure_observability, instrument_app

router = APIRouter()

# First path segment of every per-user route
OPERATIONS = ("sign-on", "sign-off", "friends", "add-friend", "unfriend", "update-status")


# =============================================================================
# PYDANTIC MODELS
# =============================================================================

class SignOnRequest(BaseModel):
    secret: str = Field(..., min_length=1, max_length=1000)


class FriendsResponse(BaseModel):
    friends: str


def get_coordinator(request: Request) -> SessionCoordinator:
    return request.app.state.coordinator


# =============================================================================
# SESSION ENDPOINTS
# =============================================================================

@router.post("/sign-on/{user_id}")
def sign_on(user_id: str, req: SignOnRequest,
            coordinator: SessionCoordinator = Depends(get_coordinator)):
    session = coordinator.sign_on(user_id, req.secret)
    return {"user_id": user_id, "signed_on_at": session.signed_on_at}


@router.post("/sign-off/{user_id}")
def sign_off(user_id: str, coordinator: SessionCoordinator = Depends(get_coordinator)):
    coordinator.sign_off(user_id)
    return {"user_id": user_id, "signed_off": True}


# =============================================================================
# FRIENDS
# =============================================================================

@router.get("/friends/{user_id}", response_model=FriendsResponse)
def read_friend_list(user_id: str, coordinator: SessionCoordinator = Depends(get_coordinator)):
    return FriendsResponse(friends=coordinator.read_friends(user_id))


@router.put("/add-friend/{user_id}/{partition}/{row}", response_model=FriendsResponse)
def add_friend(user_id: str, partition: str, row: str,
               coordinator: SessionCoordinator = Depends(get_coordinator)):
    friends = coordinator.add_friend(user_id, Location(partition, row))
    return FriendsResponse(friends=format_friends(friends))


@router.put("/unfriend/{user_id}/{partition}/{row}", response_model=FriendsResponse)
def unfriend(user_id: str, partition: str, row: str,
             coordinator: SessionCoordinator = Depends(get_coordinator)):
    friends = coordinator.unfriend(user_id, Location(partition, row))
    return FriendsResponse(friends=format_friends(friends))


# =============================================================================
# STATUS
# =============================================================================

@router.put("/update-status/{user_id}/{status:path}")
def update_status(user_id: str, status: str,
                  coordinator: SessionCoordinator = Depends(get_coordinator)):
    coordinator.update_status(user_id, status)
    return {"user_id": user_id, "status": status}


@router.get("/health")
def health(coordinator: SessionCoordinator = Depends(get_coordinator)):
    return {"status": "healthy", "service": "user", "version": STATUSNET_VERSION,
            "sessions": len(coordinator.sessions),
            "timestamp": datetime.now(timezone.utc).isoformat()}


# =============================================================================
# APP
# =============================================================================

def create_app(coordinator: Optional[SessionCoordinator] = None) -> FastAPI:
    configure_observability("user")

    owned = []
    if coordinator is None:
        owned = [
            CredentialClient(get_auth_url()),
            RecordStoreClient(get_records_url()),
            NotifierClient(get_push_url()),
        ]
        coordinator = SessionCoordinator(*owned)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        for client in owned:
            client.close()

    app = FastAPI(title="statusnet user server", version=STATUSNET_VERSION, lifespan=lifespan)
    app.state.coordinator = coordinator

    install_error_handlers(app, operations=OPERATIONS)
    app.include_router(router)
    instrument_app(app)
    return app


def main(host: str = "0.0.0.0", port: int = USER_PORT) -> None:
    import uvicorn

    configure_logging()
    uvicorn.run(create_app(), host=host, port=port)


if __name__ == "__main__":
    main()
