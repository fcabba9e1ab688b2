"""
statusnet configuration — all environment-driven settings in one place.
"""
from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

_DATA_DIR = Path(__file__).parent.parent / "data"

# --- Database ---
DEFAULT_DB_PATH = _DATA_DIR / "records.db"


def get_db_path() -> Path:
    raw = os.environ.get("STATUSNET_DB_PATH")
    return Path(raw) if raw else DEFAULT_DB_PATH


# --- Token signing ---
DEFAULT_SIGNING_KEY_PATH = _DATA_DIR / ".signing_key"


def get_signing_key_path() -> Path:
    raw = os.environ.get("STATUSNET_SIGNING_KEY")
    return Path(raw) if raw else DEFAULT_SIGNING_KEY_PATH


def get_verify_key_hex() -> Optional[str]:
    """Record servers on another host get the public key here instead of the key file."""
    return os.environ.get("STATUSNET_VERIFY_KEY") or None


def get_token_ttl_hours() -> int:
    return int(os.environ.get("STATUSNET_TOKEN_TTL_HOURS", "24"))


# --- Tables ---
def get_data_table() -> str:
    return os.environ.get("STATUSNET_DATA_TABLE", "profiles")


def get_auth_table() -> str:
    return os.environ.get("STATUSNET_AUTH_TABLE", "credentials")


AUTH_TABLE_PARTITION = "userid"

# Profile record fields
FRIENDS_FIELD = "friends"
STATUS_FIELD = "status"
UPDATES_FIELD = "updates"

# Credential record fields
SECRET_HASH_FIELD = "secret_hash"
DATA_PARTITION_FIELD = "data_partition"
DATA_ROW_FIELD = "data_row"

# --- Services ---
RECORDS_PORT = int(os.environ.get("STATUSNET_RECORDS_PORT", "34568"))
AUTH_PORT = int(os.environ.get("STATUSNET_AUTH_PORT", "34570"))
USER_PORT = int(os.environ.get("STATUSNET_USER_PORT", "34572"))
PUSH_PORT = int(os.environ.get("STATUSNET_PUSH_PORT", "34574"))


def get_records_url() -> str:
    return os.environ.get("STATUSNET_RECORDS_URL", f"http://localhost:{RECORDS_PORT}")


def get_auth_url() -> str:
    return os.environ.get("STATUSNET_AUTH_URL", f"http://localhost:{AUTH_PORT}")


def get_push_url() -> str:
    return os.environ.get("STATUSNET_PUSH_URL", f"http://localhost:{PUSH_PORT}")


def get_http_timeout() -> float:
    return float(os.environ.get("STATUSNET_HTTP_TIMEOUT", "10.0"))


# --- Logging ---
def get_log_level() -> str:
    return os.environ.get("STATUSNET_LOG_LEVEL", "INFO").upper()


STATUSNET_VERSION = "0.1.0"
