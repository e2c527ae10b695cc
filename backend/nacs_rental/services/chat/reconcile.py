"""
Optimistic message reconciliation
Merges locally-sent (pending) chat entries with server-confirmed ones
"""
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import List, Optional, Sequence, Union
import logging

from nacs_rental.core.config import settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Pending:
    """Entry shown before the server has acknowledged it"""
    local_id: str
    sender_id: str
    sender_role: str
    content: str
    timestamp: datetime


@dataclass(frozen=True)
class Confirmed:
    """Entry as stored on the server"""
    server_id: str
    sender_id: str
    sender_role: str
    content: str
    timestamp: datetime


Entry = Union[Pending, Confirmed]


def _matches(pending: Pending, confirmed: Confirmed, window: timedelta) -> bool:
    return (
        confirmed.sender_id == pending.sender_id
        and confirmed.sender_role == pending.sender_role
        and confirmed.content.strip() == pending.content.strip()
        and abs(confirmed.timestamp - pending.timestamp) <= window
    )


def reconcile(
    pending: Sequence[Pending],
    confirmed: Sequence[Confirmed],
    window: Optional[timedelta] = None,
) -> List[Entry]:
    """
    Drop every pending entry the server has confirmed and return the merged list.

    A pending entry is confirmed by the closest-in-time confirmed entry from the
    same sender with the same trimmed content inside `window`. Each confirmed
    entry absorbs at most one pending entry. The result is ordered by timestamp.
    """
    if window is None:
        window = timedelta(seconds=settings.CHAT_RECONCILE_WINDOW_SECONDS)

    claimed = set()
    still_pending: List[Pending] = []
    for entry in sorted(pending, key=lambda p: p.timestamp):
        best = None
        for index, candidate in enumerate(confirmed):
            if index in claimed or not _matches(entry, candidate, window):
                continue
            if best is None or (
                abs(candidate.timestamp - entry.timestamp) < abs(confirmed[best].timestamp - entry.timestamp)
            ):
                best = index
        if best is None:
            still_pending.append(entry)
        else:
            claimed.add(best)

    if claimed:
        logger.debug(f"Reconciled {len(claimed)} pending message(s)")

    merged: List[Entry] = list(confirmed) + still_pending
    # Confirmed entries sort before pending ones sharing a timestamp
    return sorted(merged, key=lambda e: (e.timestamp, isinstance(e, Pending)))
