"""
Fan-out notifier.

Appends a status note to the ``updates`` log of every friend record, using
administrative access. Best effort: friends are visited in order, a friend
whose record cannot be read or written is logged and skipped, nothing is
rolled back or retried. Only an unreachable record store aborts the run.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Optional

from .config import UPDATES_FIELD, get_data_table
from .errors import ServiceUnavailable, StatusNetError
from .friends import Location

logger = logging.getLogger(__name__)


@dataclass
class FanOutReport:
    delivered: List[Location] = field(default_factory=list)
    skipped: List[Location] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {"delivered": len(self.delivered), "skipped": len(self.skipped)}


class FanOutNotifier:
    def __init__(self, records, data_table: Optional[str] = None):
        self.records = records
        self.data_table = data_table or get_data_table()

    def notify(self, friends: Iterable[Location], note: str,
               sender: Optional[str] = None) -> FanOutReport:
        report = FanOutReport()
        for friend in friends:
            friend = Location(*friend)
            try:
                record = self.records.read_entity(self.data_table, friend.partition, friend.row)
                updates = str(record.get(UPDATES_FIELD) or "") + note + "\n"
                self.records.merge_entity(self.data_table, friend.partition, friend.row,
                                          {UPDATES_FIELD: updates})
            except ServiceUnavailable:
                raise
            except StatusNetError as exc:
                logger.warning("Skipping update for %s: %s", friend, exc.message)
                report.skipped.append(friend)
                continue
            report.delivered.append(friend)
        logger.info("Fan-out from %s delivered=%d skipped=%d",
                    sender or "?", len(report.delivered), len(report.skipped))
        return report
