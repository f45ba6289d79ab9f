"""Brazilian phone normalization for click-to-chat links.

Guardians' phones are typed by hand in the patient form, so the stored value
can be anything from ``(11) 98765-4321`` to ``+55 11 8765 4321``. WhatsApp
needs ``55`` + DDD + subscriber, digits only.

Canonical shapes:
    55 DD 9XXXXXXXX   mobile (13 digits)
    55 DD [2-5]XXXXXXX landline (12 digits)

Mobile numbers gained a leading ``9`` in 2012-2016. Old records still carry
the 8-digit form; an 8-digit subscriber starting with 6-9 is a mobile line
and gets the ``9`` back. Subscribers starting with 0 or 1 match neither plan
and are rejected instead of guessed.
"""

import re
from dataclasses import dataclass

COUNTRY_CODE = "55"

# ANATEL area codes (DDD)
AREA_CODES: frozenset[str] = frozenset(
    [str(n) for n in range(11, 20)]
    + ["21", "22", "24", "27", "28"]
    + ["31", "32", "33", "34", "35", "37", "38"]
    + [str(n) for n in range(41, 50)]
    + ["51", "53", "54", "55"]
    + [str(n) for n in range(61, 70)]
    + ["71", "73", "74", "75", "77", "79"]
    + [str(n) for n in range(81, 90)]
    + [str(n) for n in range(91, 100)]
)

NATIONAL_LENGTHS = (10, 11)
INTERNATIONAL_LENGTHS = (12, 13)

_NON_DIGITS = re.compile(r"\D")
_CANONICAL = re.compile(r"^55(\d{2})(9\d{8}|[2-5]\d{7})$")

# pt-BR messages shown next to the phone field in the dashboard
ERROR_MESSAGES: dict[str, str] = {
    "empty": "Número de telefone não informado.",
    "too_short": "Número de telefone inválido. O número deve ter pelo menos 10 dígitos.",
    "too_long": "Número de telefone inválido. Dígitos em excesso.",
    "unknown_country": "Apenas números do Brasil (+55) são suportados.",
    "invalid_area_code": "DDD inválido.",
    "invalid_subscriber": (
        "Número de telefone inválido. Formato esperado: (XX) XXXXX-XXXX ou (XX) XXXX-XXXX."
    ),
}


class NormalizationError(ValueError):
    """Raised when a stored phone does not fit any Brazilian number shape."""

    def __init__(self, reason: str, digit_count: int = 0):
        self.reason = reason
        self.digit_count = digit_count
        super().__init__(f"Cannot normalize phone ({reason}, {digit_count} digits)")

    @property
    def user_message(self) -> str:
        return ERROR_MESSAGES[self.reason]


@dataclass(frozen=True)
class PhoneFormatResult:
    """Validation outcome for the dashboard's phone badge."""

    valid: bool
    formatted: str
    error: str | None = None


def _national_to_canonical(national: str) -> str:
    area_code, subscriber = national[:2], national[2:]

    if area_code not in AREA_CODES:
        raise NormalizationError("invalid_area_code", len(national))

    if len(subscriber) == 9:
        if subscriber[0] != "9":
            raise NormalizationError("invalid_subscriber", len(national))
        return COUNTRY_CODE + area_code + subscriber

    first = subscriber[0]
    if first in "2345":
        return COUNTRY_CODE + area_code + subscriber
    if first in "6789":
        # legacy mobile, restore the ninth digit after the DDD
        return COUNTRY_CODE + area_code + "9" + subscriber
    raise NormalizationError("invalid_subscriber", len(national))


def normalize(raw: str) -> str:
    """Normalize a stored phone into canonical ``55DD...`` digits.

    Args:
        raw: Phone as typed by the user. May contain any punctuation,
            a ``+``, a trunk ``0`` or the ``00`` international prefix.

    Returns:
        Canonical phone, 12 (landline) or 13 (mobile) digits.

    Raises:
        NormalizationError: If the digits fit no known length profile,
            the DDD does not exist or the subscriber part is ambiguous.
    """
    digits = _NON_DIGITS.sub("", raw or "")
    if not digits:
        raise NormalizationError("empty")

    # "+" or "00" means the country code follows, so it must be 55
    international = (raw or "").lstrip().startswith("+") or digits.startswith("00")

    # trunk prefix "0" / international "00"
    digits = digits.lstrip("0")
    count = len(digits)

    if international:
        if not digits.startswith(COUNTRY_CODE):
            raise NormalizationError("unknown_country", count)
        if count in INTERNATIONAL_LENGTHS:
            return _national_to_canonical(digits[len(COUNTRY_CODE):])
        if count < INTERNATIONAL_LENGTHS[0]:
            raise NormalizationError("too_short", count)
        raise NormalizationError("too_long", count)

    if count in INTERNATIONAL_LENGTHS:
        if not digits.startswith(COUNTRY_CODE):
            raise NormalizationError("unknown_country", count)
        return _national_to_canonical(digits[len(COUNTRY_CODE):])

    if count in NATIONAL_LENGTHS:
        return _national_to_canonical(digits)

    if count < NATIONAL_LENGTHS[0]:
        raise NormalizationError("too_short", count)
    raise NormalizationError("too_long", count)


def is_canonical(phone: str) -> bool:
    """True when ``phone`` is exactly what ``normalize`` would return for it."""
    match = _CANONICAL.match(phone or "")
    return match is not None and match.group(1) in AREA_CODES


def format_phone_for_whatsapp(raw: str) -> PhoneFormatResult:
    """Non-raising variant of :func:`normalize` for form validation."""
    try:
        formatted = normalize(raw)
    except NormalizationError as e:
        return PhoneFormatResult(valid=False, formatted="", error=e.user_message)
    return PhoneFormatResult(valid=True, formatted=formatted)


def format_phone_display(phone: str) -> str:
    """Render a canonical phone as ``+55 (11) 98765-4321``.

    Non-canonical input is returned unchanged.
    """
    if not is_canonical(phone):
        return phone
    area_code, subscriber = phone[2:4], phone[4:]
    split = len(subscriber) - 4
    return f"+{COUNTRY_CODE} ({area_code}) {subscriber[:split]}-{subscriber[split:]}"
