"""Message history ordering for the communication timeline.

POST /messages/history   → messages newest first
POST /messages/timeline  → messages grouped by local day

The dashboard fetches a patient's messages from the records API and posts
the page here; records are returned reordered, never changed.
"""

from __future__ import annotations

from zoneinfo import ZoneInfoNotFoundError

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, ConfigDict, Field

from clinicflow.domain.messages import (
    MessageDirection,
    MessageRecord,
    group_by_day,
    sort_descending,
)
from clinicflow.infra.clinic_settings import get_clinic_settings
from clinicflow.infra.time import TimestampParseError
from clinicflow.observability.logging import get_logger
from clinicflow.observability.redaction import safe_log_context

router = APIRouter(prefix="/messages", tags=["messages"])

logger = get_logger(__name__)


# ── Schemas ───────────────────────────────────────────────────────────────────


class MessageIn(BaseModel):
    """Message as serialized by the records API (camelCase accepted)."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    # kept as text so parsing errors are reported per record, not by pydantic
    sent_at: str = Field(alias="sentAt")
    body: str = Field(default="", alias="content")
    direction: MessageDirection = MessageDirection.OUTBOUND
    template_type: str | None = Field(default=None, alias="templateType")
    channel: str = "whatsapp"
    status: str | None = None
    recipient_name: str | None = Field(default=None, alias="recipientName")
    recipient_phone: str | None = Field(default=None, alias="recipientPhone")

    def to_record(self) -> MessageRecord:
        return MessageRecord(
            id=self.id,
            sent_at=self.sent_at,
            body=self.body,
            direction=self.direction,
            template_type=self.template_type,
            channel=self.channel,
            status=self.status,
            recipient_name=self.recipient_name,
            recipient_phone=self.recipient_phone,
        )


class HistoryRequest(BaseModel):
    messages: list[MessageIn]


class TimelineRequest(BaseModel):
    messages: list[MessageIn]
    timezone: str | None = None


def _record_to_dict(record: MessageRecord) -> dict:
    return {
        "id": record.id,
        "sent_at": record.sent_at,
        "body": record.body,
        "direction": record.direction.value,
        "template_type": record.template_type,
        "channel": record.channel,
        "status": record.status,
        "recipient_name": record.recipient_name,
        "recipient_phone": record.recipient_phone,
    }


def _invalid_timestamp(e: TimestampParseError) -> HTTPException:
    logger.warning(
        "message history has unparsable sent_at",
        extra={"extra_fields": safe_log_context(record_id=e.record_id or "")},
    )
    return HTTPException(
        status_code=422,
        detail={
            "code": "invalid_timestamp",
            "record_id": e.record_id,
            "message": "sent_at is not a valid timestamp",
        },
    )


# ── Routes ────────────────────────────────────────────────────────────────────


@router.post("/history")
def order_history(body: HistoryRequest) -> dict:
    """Order messages by sent_at descending, ties by id ascending."""
    try:
        ordered = sort_descending(m.to_record() for m in body.messages)
    except TimestampParseError as e:
        raise _invalid_timestamp(e) from e

    return {"messages": [_record_to_dict(r) for r in ordered]}


@router.post("/timeline")
def order_timeline(body: TimelineRequest) -> dict:
    """Group messages by calendar day in the clinic timezone, newest first."""
    timezone = body.timezone or get_clinic_settings().timezone
    try:
        groups = group_by_day((m.to_record() for m in body.messages), timezone=timezone)
    except TimestampParseError as e:
        raise _invalid_timestamp(e) from e
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise HTTPException(
            status_code=422,
            detail={"code": "invalid_timezone", "message": f"Unknown timezone: {timezone}"},
        ) from e

    return {
        "timezone": timezone,
        "groups": [
            {
                "day": group.day.isoformat(),
                "messages": [_record_to_dict(r) for r in group.records],
            }
            for group in groups
        ],
    }
