"""Message history ordering for the patient communication timeline.

Records come from the messages API and are never modified here. Order is
``sent_at`` descending, ties broken by ``id`` ascending, so the same set of
records always renders the same way whatever order the API returned them in.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from itertools import groupby
from zoneinfo import ZoneInfo

from clinicflow.infra.time import parse_timestamp


class MessageDirection(str, Enum):
    OUTBOUND = "outbound"
    INBOUND = "inbound"


@dataclass(frozen=True)
class MessageRecord:
    """Stored message as returned by the messages API (read-only here)."""

    id: str
    sent_at: str | datetime
    body: str
    direction: MessageDirection = MessageDirection.OUTBOUND
    template_type: str | None = None
    channel: str = "whatsapp"
    status: str | None = None
    recipient_name: str | None = None
    recipient_phone: str | None = None


@dataclass(frozen=True)
class TimelineGroup:
    day: date
    records: tuple[MessageRecord, ...]


# ── Sorting ──────────────────────────────────────────────


def _keyed(records: Iterable[MessageRecord]) -> list[tuple[datetime, MessageRecord]]:
    # parse everything first so a bad row fails before any ordering happens
    return [(parse_timestamp(r.sent_at, record_id=r.id), r) for r in records]


def sort_descending(records: Iterable[MessageRecord]) -> list[MessageRecord]:
    """Return records newest first.

    Args:
        records: Snapshot of a patient's messages. Copied before sorting;
            the input is never reordered.

    Returns:
        New list ordered by ``sent_at`` descending, then ``id`` ascending.

    Raises:
        TimestampParseError: If any record's ``sent_at`` is empty or not a
            timestamp. The error carries the offending ``record_id``.
    """
    keyed = _keyed(tuple(records))
    # two stable passes: secondary key first, then primary
    keyed.sort(key=lambda item: item[1].id)
    keyed.sort(key=lambda item: item[0], reverse=True)
    return [record for _, record in keyed]


def is_ordered_descending(records: Sequence[MessageRecord]) -> bool:
    """True when ``sent_at`` never increases along ``records``."""
    stamps = [ts for ts, _ in _keyed(records)]
    return all(earlier >= later for earlier, later in zip(stamps, stamps[1:]))


def group_by_day(
    records: Iterable[MessageRecord],
    timezone: str = "America/Sao_Paulo",
) -> list[TimelineGroup]:
    """Group records by local calendar day, newest day first.

    Records inside a group keep the ``sort_descending`` order.
    """
    tz = ZoneInfo(timezone)

    def local_day(record: MessageRecord) -> date:
        return parse_timestamp(record.sent_at, record_id=record.id).astimezone(tz).date()

    # local days are non-increasing along the sorted list, so groupby sees each day once
    return [
        TimelineGroup(day=day, records=tuple(items))
        for day, items in groupby(sort_descending(records), key=local_day)
    ]


# ── Display catalogues ───────────────────────────────────

CHANNELS: dict[str, dict[str, str]] = {
    "whatsapp": {"icon": "forum", "color": "green"},
    "sms": {"icon": "sms", "color": "blue"},
    "email": {"icon": "mail", "color": "purple"},
    "received": {"icon": "forum", "color": "green"},
}

STATUSES: dict[str, dict[str, str]] = {
    "sent": {"label": "Enviada", "color": "green"},
    "delivered": {"label": "Entregue", "color": "blue"},
    "read": {"label": "Lida", "color": "blue"},
    "confirmed": {"label": "Confirmado", "color": "green"},
    "system": {"label": "Sistema", "color": "gray"},
    "received": {"label": "Recebida", "color": "green"},
}


def get_channel_config(channel: str) -> dict[str, str] | None:
    """Icon/color for a channel; None for channels the timeline does not know."""
    return CHANNELS.get(channel)


def get_status_info(status: str) -> dict[str, str] | None:
    return STATUSES.get(status)
