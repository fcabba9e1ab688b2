"""
statusnet - Capability-token social status service

Four cooperating HTTP services:
- record_server.py: partitioned key-value record store with admin and
  token-scoped entry points
- auth_server.py: credential check and capability-token issuance
- user_server.py: session coordinator (sign-on/off, friends, status)
- push_server.py: fan-out of status changes into friends' update logs

Components:
- tokens.py: Ed25519-signed single-record capability tokens
- gate.py: token-scoped access gate
- store.py: SQLite record store
- credentials.py: credential records and token issuance
- sessions.py / coordinator.py: session table and per-user state machine
- notifier.py: best-effort fan-out
- friends.py: friend-list codec
- clients.py: httpx clients for every service
"""

__version__ = "0.1.0"

# Lazy imports - only import what's needed when used
def __getattr__(name):
    if name == "Location":
        from .friends import Location
        return Location
    elif name == "CapabilityToken":
        from .tokens import CapabilityToken
        return CapabilityToken
    elif name == "Permission":
        from .tokens import Permission
        return Permission
    elif name == "TokenSigner":
        from .tokens import TokenSigner
        return TokenSigner
    elif name == "RecordStore":
        from .store import RecordStore
        return RecordStore
    elif name == "TokenGate":
        from .gate import TokenGate
        return TokenGate
    elif name == "CredentialService":
        from .credentials import CredentialService
        return CredentialService
    elif name == "SessionCoordinator":
        from .coordinator import SessionCoordinator
        return SessionCoordinator
    elif name == "FanOutNotifier":
        from .notifier import FanOutNotifier
        return FanOutNotifier
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")

__all__ = [
    "__version__",
    # Codec
    "Location",
    # Tokens
    "CapabilityToken",
    "Permission",
    "TokenSigner",
    # Store
    "RecordStore",
    "TokenGate",
    # Services
    "CredentialService",
    "SessionCoordinator",
    "FanOutNotifier",
]
