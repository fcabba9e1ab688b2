"""
statusnet record store.

Partitioned key-value records addressed by (table, partition, row), each a
flat mapping of field names to JSON scalars. Thin SQLite helpers; tables
exist implicitly once a record has been written into them.

This is the administrative (unrestricted) surface. Token-scoped access goes
through ``statusnet.gate.TokenGate``.
"""
from __future__ import annotations

import json
import logging
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from .errors import BadRequest, NotFound

logger = logging.getLogger(__name__)

_SCALARS = (str, int, float, bool, type(None))


def _check_fields(fields: Dict) -> Dict:
    if not isinstance(fields, dict):
        raise BadRequest("Record fields must be a JSON object")
    for name, value in fields.items():
        if not isinstance(name, str) or not name:
            raise BadRequest("Field names must be non-empty strings")
        if not isinstance(value, _SCALARS):
            raise BadRequest(f"Field {name!r} must be a scalar value")
    return fields


class RecordStore:
    def __init__(self, db_path: Path):
        self.db_path = db_path
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path, isolation_level=None)
        conn.row_factory = sqlite3.Row
        return conn

    def _init(self):
        conn = self._connect()
        try:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS records (
                    table_name TEXT NOT NULL,
                    partition_key TEXT NOT NULL,
                    row_key TEXT NOT NULL,
                    fields TEXT NOT NULL DEFAULT '{}',
                    updated_at TEXT NOT NULL,
                    PRIMARY KEY (table_name, partition_key, row_key)
                )
            """)
        finally:
            conn.close()

    # --- Single records ---

    def read_entity(self, table: str, partition: str, row: str) -> Dict:
        """Fields of one record. NotFound if absent."""
        conn = self._connect()
        try:
            found = conn.execute(
                "SELECT fields FROM records WHERE table_name=? AND partition_key=? AND row_key=?",
                (table, partition, row),
            ).fetchone()
        finally:
            conn.close()
        if not found:
            raise NotFound()
        return json.loads(found["fields"])

    def merge_entity(self, table: str, partition: str, row: str, fields: Dict) -> Dict:
        """Insert the record or merge ``fields`` into it. Returns the merged fields."""
        _check_fields(fields)
        conn = self._connect()
        try:
            conn.execute("BEGIN IMMEDIATE")
            found = conn.execute(
                "SELECT fields FROM records WHERE table_name=? AND partition_key=? AND row_key=?",
                (table, partition, row),
            ).fetchone()
            merged = json.loads(found["fields"]) if found else {}
            merged.update(fields)
            conn.execute(
                "INSERT OR REPLACE INTO records (table_name, partition_key, row_key, fields, updated_at) "
                "VALUES (?, ?, ?, ?, ?)",
                (table, partition, row, json.dumps(merged), datetime.now(timezone.utc).isoformat()),
            )
            conn.execute("COMMIT")
        except Exception:
            if conn.in_transaction:
                conn.execute("ROLLBACK")
            raise
        finally:
            conn.close()
        logger.debug("Merged %s/%s/%s fields=%s", table, partition, row, sorted(fields))
        return merged

    def delete_entity(self, table: str, partition: str, row: str) -> None:
        conn = self._connect()
        try:
            cursor = conn.execute(
                "DELETE FROM records WHERE table_name=? AND partition_key=? AND row_key=?",
                (table, partition, row),
            )
        finally:
            conn.close()
        if cursor.rowcount == 0:
            raise NotFound()

    def exists(self, table: str, partition: str, row: str) -> bool:
        try:
            self.read_entity(table, partition, row)
        except NotFound:
            return False
        return True

    # --- Scans ---

    def scan_partition(self, table: str, partition: str) -> List[Dict]:
        """Every record in one partition, keyed fields included. NotFound if empty."""
        conn = self._connect()
        try:
            rows = conn.execute(
                "SELECT partition_key, row_key, fields FROM records "
                "WHERE table_name=? AND partition_key=? ORDER BY row_key",
                (table, partition),
            ).fetchall()
        finally:
            conn.close()
        if not rows:
            raise NotFound()
        return [self._keyed(r) for r in rows]

    def scan_table(self, table: str, has: Optional[Iterable[str]] = None) -> List[Dict]:
        """Every record in ``table``; with ``has``, only records holding all those fields."""
        required = set(has or ())
        conn = self._connect()
        try:
            rows = conn.execute(
                "SELECT partition_key, row_key, fields FROM records "
                "WHERE table_name=? ORDER BY partition_key, row_key",
                (table,),
            ).fetchall()
        finally:
            conn.close()
        if not rows:
            raise NotFound(f"Unknown table: {table}")
        records = [self._keyed(r) for r in rows]
        if required:
            records = [r for r in records if required <= set(r)]
            if not records:
                raise NotFound()
        return records

    def table_exists(self, table: str) -> bool:
        conn = self._connect()
        try:
            found = conn.execute(
                "SELECT 1 FROM records WHERE table_name=? LIMIT 1", (table,)
            ).fetchone()
        finally:
            conn.close()
        return found is not None

    @staticmethod
    def _keyed(row: sqlite3.Row) -> Dict:
        record = {"partition": row["partition_key"], "row": row["row_key"]}
        record.update(json.loads(row["fields"]))
        return record
