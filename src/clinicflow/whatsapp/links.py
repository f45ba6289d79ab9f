"""Click-to-chat link building (wa.me).

Nothing is sent from here: the dashboard opens the link and the user sends
the message from their own WhatsApp.

Security: NEVER log the phone or the text. Only log hashes and lengths.
"""

import os
from dataclasses import dataclass
from urllib.parse import parse_qs, quote, urlsplit

from clinicflow.observability.logging import get_logger
from clinicflow.observability.redaction import hash_identifier, safe_log_context

from .phone import is_canonical, normalize
from .templates import TemplateContext, TemplateType, render

logger = get_logger(__name__)

DEFAULT_BASE_URL = "https://wa.me"
TEXT_PARAM = "text"


class LinkBuildError(ValueError):
    """Raised when the phone is not canonical or the text cannot be encoded."""

    pass


@dataclass(frozen=True)
class ChatLink:
    phone: str
    message: str
    url: str

    def __str__(self) -> str:
        return self.url


def _get_base_url() -> str:
    """Link base from WHATSAPP_LINK_BASE_URL (default https://wa.me)."""
    base_url = os.environ.get("WHATSAPP_LINK_BASE_URL", "") or DEFAULT_BASE_URL
    return base_url.rstrip("/")


def encode_message(message: str) -> str:
    """Percent-encode everything but RFC 3986 unreserved characters.

    Space becomes %20 (never "+") and "+" becomes %2B, so form-style
    decoders and strict URI decoders read the same text back.
    """
    return quote(message, safe="", encoding="utf-8", errors="strict")


def build_link(phone: str, message: str) -> ChatLink:
    """Build a wa.me link for a canonical phone and a message.

    Args:
        phone: Canonical phone (output of ``phone.normalize``).
        message: Final message text, possibly edited by the user.

    Returns:
        ChatLink whose ``text`` query parameter decodes back to ``message``.

    Raises:
        LinkBuildError: If ``phone`` is empty or not canonical, or
            ``message`` is not valid UTF-8 text (lone surrogates).
    """
    if not isinstance(phone, str) or not is_canonical(phone):
        logger.warning(
            "rejected non-canonical phone for chat link",
            extra={
                "extra_fields": safe_log_context(
                    phone_hash=hash_identifier(str(phone)),
                    phone_len=len(phone) if isinstance(phone, str) else 0,
                )
            },
        )
        raise LinkBuildError("phone must be canonical (55 + DDD + subscriber)")

    try:
        encoded = encode_message(message)
    except UnicodeEncodeError as e:
        logger.warning(
            "rejected unencodable chat link text",
            extra={"extra_fields": safe_log_context(text_len=len(message))},
        )
        raise LinkBuildError("message is not valid UTF-8 text") from e

    url = f"{_get_base_url()}/{phone}?{TEXT_PARAM}={encoded}"

    logger.info(
        "chat link built",
        extra={
            "extra_fields": safe_log_context(
                phone_hash=hash_identifier(phone),
                text_len=len(message),
                url_len=len(url),
            )
        },
    )
    return ChatLink(phone=phone, message=message, url=url)


def extract_message(url: str) -> str:
    """Decode the ``text`` parameter of a chat link. Missing parameter gives ""."""
    query = parse_qs(urlsplit(url).query, keep_blank_values=True)
    values = query.get(TEXT_PARAM)
    return values[0] if values else ""


def build_link_for(
    raw_phone: str,
    template_type: TemplateType | str,
    context: TemplateContext | None = None,
) -> ChatLink:
    """Normalize a stored phone, render a template and build the link.

    Raises:
        NormalizationError: If the stored phone cannot be normalized.
    """
    return build_link(normalize(raw_phone), render(template_type, context))
