"""
statusnet push (fan-out) server

Receives a user's new status with their encoded friend list and appends the
status line to each friend's update log.

Run: uvicorn --factory statusnet.push_server:create_app --port 34574
"""
from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, FastAPI, Request
from pydantic import BaseModel, Field

from .clients import RecordStoreClient
from .config import PUSH_PORT, STATUSNET_VERSION, get_records_url
from .errors import BadRequest, install_error_handlers
from .friends import parse_friends
from .notifier import FanOutNotifier
from .observability import configure_logging, configure_observability, instrument_app

router = APIRouter()


class PushRequest(BaseModel):
    friends: str = ""
    status: str = Field(..., max_length=10000)


def get_notifier(request: Request) -> FanOutNotifier:
    return request.app.state.notifier


@router.post("/push-status/{user_id}")
def push_status(user_id: str, req: PushRequest,
                notifier: FanOutNotifier = Depends(get_notifier)):
    if "\n" in req.status:
        raise BadRequest("Status must be a single line")
    report = notifier.notify(parse_friends(req.friends), req.status, sender=user_id)
    return report.to_dict()


@router.get("/health")
def health():
    return {"status": "healthy", "service": "push", "version": STATUSNET_VERSION,
            "timestamp": datetime.now(timezone.utc).isoformat()}


def create_app(notifier: Optional[FanOutNotifier] = None) -> FastAPI:
    configure_observability("push")

    owned = None
    if notifier is None:
        owned = RecordStoreClient(get_records_url())
        notifier = FanOutNotifier(records=owned)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        if owned is not None:
            owned.close()

    app = FastAPI(title="statusnet push server", version=STATUSNET_VERSION, lifespan=lifespan)
    app.state.notifier = notifier

    install_error_handlers(app)
    app.include_router(router)
    instrument_app(app)
    return app


def main(host: str = "0.0.0.0", port: int = PUSH_PORT) -> None:
    import uvicorn

    configure_logging()
    uvicorn.run(create_app(), host=host, port=port)


if __name__ == "__main__":
    main()
