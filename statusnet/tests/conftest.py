"""
statusnet test configuration — shared fixtures.

Two wirings of the same four services:
- in-process: coordinator -> CredentialService / TokenGate / FanOutNotifier
  over one RecordStore
- over HTTP: every service is a FastAPI app behind a TestClient, and the
  services talk to each other through the real httpx clients
"""
import httpx
import pytest
from fastapi.testclient import TestClient
from nacl.signing import SigningKey

from statusnet import auth_server, push_server, record_server, user_server
from statusnet.clients import CredentialClient, NotifierClient, RecordStoreClient
from statusnet.config import get_data_table
from statusnet.coordinator import SessionCoordinator
from statusnet.credentials import CredentialService
from statusnet.errors import ServiceUnavailable
from statusnet.friends import Location
from statusnet.gate import TokenGate
from statusnet.notifier import FanOutNotifier
from statusnet.store import RecordStore
from statusnet.tokens import TokenSigner

DATA_TABLE = get_data_table()
ALICE = Location("US", "alice")
BOB = Location("CA", "bob")
CAROL = Location("US", "carol")


# =============================================================================
# IN-PROCESS WIRING
# =============================================================================

@pytest.fixture
def signer():
    return TokenSigner(SigningKey.generate(), ttl_hours=24)


@pytest.fixture
def store(tmp_path):
    return RecordStore(tmp_path / "records_test.db")


@pytest.fixture
def gate(store, signer):
    return TokenGate(store, signer.verifier())


@pytest.fixture
def credentials(store, signer):
    return CredentialService(records=store, signer=signer)


@pytest.fixture
def notifier(store):
    return FanOutNotifier(records=store)


@pytest.fixture
def seeded(credentials):
    """alice/pw1 -> US/alice, bob/pw2 -> CA/bob, carol/pw3 -> US/carol; empty friend lists."""
    credentials.provision("alice", "pw1", ALICE)
    credentials.provision("bob", "pw2", BOB)
    credentials.provision("carol", "pw3", CAROL)
    return credentials


@pytest.fixture
def coordinator(seeded, gate, notifier):
    return SessionCoordinator(credentials=seeded, records=gate, notifier=notifier)


class DownNotifier:
    """Notifier whose process is unreachable."""

    def __init__(self):
        self.calls = 0

    def notify(self, friends, note, sender=None):
        self.calls += 1
        raise ServiceUnavailable("notifier unreachable")


@pytest.fixture
def down_notifier():
    return DownNotifier()


# =============================================================================
# HTTP WIRING
# =============================================================================

def refused_transport() -> httpx.MockTransport:
    """Transport that behaves like a service with nothing listening."""
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("Connection refused", request=request)
    return httpx.MockTransport(handler)


@pytest.fixture
def records_http(store, signer):
    return TestClient(record_server.create_app(store=store, verifier=signer.verifier()))


@pytest.fixture
def auth_http(records_http, signer):
    service = CredentialService(records=RecordStoreClient("http://testserver", client=records_http),
                                signer=signer)
    return TestClient(auth_server.create_app(service=service))


@pytest.fixture
def push_http(records_http):
    notifier = FanOutNotifier(records=RecordStoreClient("http://testserver", client=records_http))
    return TestClient(push_server.create_app(notifier=notifier))


def _user_app(records_http, auth_http, notifier_client):
    coordinator = SessionCoordinator(
        credentials=CredentialClient("http://testserver", client=auth_http),
        records=RecordStoreClient("http://testserver", client=records_http),
        notifier=notifier_client,
    )
    return TestClient(user_server.create_app(coordinator=coordinator))


@pytest.fixture
def user_http(seeded, records_http, auth_http, push_http):
    return _user_app(records_http, auth_http, NotifierClient("http://testserver", client=push_http))


@pytest.fixture
def user_http_push_down(seeded, records_http, auth_http):
    down = httpx.Client(base_url="http://push.invalid", transport=refused_transport())
    return _user_app(records_http, auth_http, NotifierClient("http://push.invalid", client=down))
