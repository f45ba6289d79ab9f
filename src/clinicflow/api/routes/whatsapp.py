"""WhatsApp click-to-chat endpoints for the patient screens.

GET  /whatsapp/templates        → template selector options
POST /whatsapp/phone/validate   → phone badge (valid / invalid + message)
POST /whatsapp/link             → rendered message + wa.me link

The dashboard opens the returned URL itself; nothing is sent from here.
"""

from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, ConfigDict

from clinicflow.infra.clinic_settings import get_clinic_settings
from clinicflow.observability.logging import get_logger
from clinicflow.observability.redaction import hash_identifier, safe_log_context
from clinicflow.whatsapp.links import LinkBuildError, build_link
from clinicflow.whatsapp.phone import NormalizationError, format_phone_for_whatsapp, normalize
from clinicflow.whatsapp.templates import (
    TemplateContext,
    TemplateType,
    build_context,
    list_templates,
    missing_fields,
    render,
)

router = APIRouter(prefix="/whatsapp", tags=["whatsapp"])

logger = get_logger(__name__)


# ── Schemas ───────────────────────────────────────────────────────────────────


class ContextRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    patient_name: str | None = None
    guardian_name: str | None = None
    appointment_date: str | None = None
    appointment_time: str | None = None
    professional_name: str | None = None
    clinic_name: str | None = None
    custom_text: str | None = None


class PhoneRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    phone: str


class LinkRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    phone: str
    template_type: TemplateType
    context: ContextRequest = ContextRequest()
    # next appointment instant; formatted in CLINIC_TIMEZONE when the
    # context does not carry date/time strings already
    appointment_at: datetime | None = None
    # text edited by the user in the modal; replaces the rendered template
    message: str | None = None


def _to_context(body: LinkRequest) -> TemplateContext:
    settings = get_clinic_settings()
    given = body.context
    built = build_context(
        patient_name=given.patient_name,
        guardian_name=given.guardian_name,
        appointment_at=body.appointment_at,
        timezone=settings.timezone,
        professional_name=given.professional_name,
        clinic_name=given.clinic_name or settings.clinic_name,
        custom_text=given.custom_text,
    )
    return TemplateContext(
        patient_name=built.patient_name,
        guardian_name=built.guardian_name,
        appointment_date=given.appointment_date or built.appointment_date,
        appointment_time=given.appointment_time or built.appointment_time,
        professional_name=built.professional_name,
        clinic_name=built.clinic_name,
        custom_text=built.custom_text,
    )


# ── Routes ────────────────────────────────────────────────────────────────────


@router.get("/templates")
def get_templates() -> list[dict]:
    """Templates in selector order."""
    return [
        {
            "type": t.type.value,
            "label": t.label,
            "icon": t.icon,
            "expected_fields": list(t.expected),
        }
        for t in list_templates()
    ]


@router.post("/phone/validate")
def validate_phone(body: PhoneRequest) -> dict:
    """Validate a guardian phone. Always 200; ``valid`` tells the outcome."""
    result = format_phone_for_whatsapp(body.phone)
    return {"valid": result.valid, "formatted": result.formatted, "error": result.error}


@router.post("/link")
def create_link(body: LinkRequest) -> dict:
    """Render the selected template and build the wa.me link.

    Returns:
        phone, message, url and the expected fields the context lacked
        (the modal warns about a reminder without an appointment).

    Raises 422 with ``code=invalid_phone`` when the phone cannot be
    normalized, and ``code=invalid_message`` when the text cannot be
    encoded into the link.
    """
    try:
        phone = normalize(body.phone)
    except NormalizationError as e:
        logger.info(
            "chat link rejected",
            extra={
                "extra_fields": safe_log_context(
                    reason=e.reason,
                    digit_count=e.digit_count,
                    template_type=body.template_type.value,
                )
            },
        )
        raise HTTPException(
            status_code=422,
            detail={"code": "invalid_phone", "reason": e.reason, "message": e.user_message},
        ) from e

    context = _to_context(body)
    message = body.message if body.message is not None else render(body.template_type, context)
    try:
        link = build_link(phone, message)
    except LinkBuildError as e:
        raise HTTPException(
            status_code=422,
            detail={"code": "invalid_message", "message": str(e)},
        ) from e

    logger.info(
        "chat link prepared",
        extra={
            "extra_fields": safe_log_context(
                phone_hash=hash_identifier(phone),
                template_type=body.template_type.value,
                edited=body.message is not None,
            )
        },
    )

    return {
        "phone": link.phone,
        "message": link.message,
        "url": link.url,
        "missing_fields": list(missing_fields(body.template_type, context)),
    }
