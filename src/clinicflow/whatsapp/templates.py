"""WhatsApp message templates for guardian communication.

Every TemplateType has exactly one MessageTemplate. Placeholders are
``{field}`` names from TemplateContext and are checked when the registry is
built, so a typo fails at import instead of leaking into a message.

Rendering never fails: a missing field falls back to the template's default
(or the shared default, or an empty string).
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, fields
from datetime import datetime
from enum import Enum
from string import Formatter
from types import MappingProxyType
from zoneinfo import ZoneInfo

DEFAULT_GUARDIAN_NAME = "Responsável"
DEFAULT_CLINIC_NAME = "Clínica"


class TemplateType(str, Enum):
    REMINDER = "reminder"
    CONFIRMATION = "confirmation"
    ACTIVITY = "activity"
    FEEDBACK = "feedback"
    FOLLOW_UP = "follow_up"
    BIRTHDAY = "birthday"
    FREE = "free"


@dataclass(frozen=True)
class TemplateContext:
    """Values available to templates. Every field is optional."""

    patient_name: str | None = None
    guardian_name: str | None = None
    appointment_date: str | None = None
    appointment_time: str | None = None
    professional_name: str | None = None
    clinic_name: str | None = None
    custom_text: str | None = None

    def value(self, name: str) -> str | None:
        """Field value, with blank strings treated as absent."""
        raw = getattr(self, name)
        if raw is None or not raw.strip():
            return None
        return raw


CONTEXT_FIELDS: frozenset[str] = frozenset(f.name for f in fields(TemplateContext))

# Used when a template does not declare its own default for a field
SHARED_DEFAULTS: Mapping[str, str] = MappingProxyType(
    {
        "guardian_name": DEFAULT_GUARDIAN_NAME,
        "clinic_name": DEFAULT_CLINIC_NAME,
        "patient_name": "seu(sua) filho(a)",
        "professional_name": "sua fonoaudióloga",
    }
)


def _placeholders(text: str) -> frozenset[str]:
    names = set()
    for _, name, spec, conversion in Formatter().parse(text):
        if name is None:
            continue
        if not name.isidentifier() or spec or conversion:
            raise ValueError(f"Unsupported placeholder {{{name}}} in template")
        names.add(name)
    return frozenset(names)


@dataclass(frozen=True)
class MessageTemplate:
    type: TemplateType
    label: str
    icon: str
    text: str
    defaults: Mapping[str, str] = field(default_factory=dict)
    # fields the UI should warn about when absent; rendering still succeeds
    expected: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        placeholders = _placeholders(self.text)
        unknown = placeholders - CONTEXT_FIELDS
        if unknown:
            raise ValueError(f"Unknown placeholders for {self.type.value}: {sorted(unknown)}")
        stray = (set(self.defaults) | set(self.expected)) - placeholders
        if stray:
            raise ValueError(f"Defaults/expected not used by {self.type.value}: {sorted(stray)}")
        object.__setattr__(self, "defaults", MappingProxyType(dict(self.defaults)))

    @property
    def placeholders(self) -> frozenset[str]:
        return _placeholders(self.text)

    def render(self, context: TemplateContext) -> str:
        values = {}
        for name in self.placeholders:
            value = context.value(name)
            if value is None:
                value = self.defaults.get(name, SHARED_DEFAULTS.get(name, ""))
            values[name] = value
        # str.format does not re-parse substituted values
        return self.text.format_map(values)


_TEMPLATE_TABLE: dict[TemplateType, MessageTemplate] = {
    TemplateType.REMINDER: MessageTemplate(
        type=TemplateType.REMINDER,
        label="Lembrete de Sessão",
        icon="calendar_clock",
        text=(
            "Olá {guardian_name}! 😊\n\n"
            "Passando para lembrar da sessão de fonoaudiologia de *{patient_name}*:\n\n"
            "📅 Data: {appointment_date}\n"
            "🕐 Horário: {appointment_time}\n"
            "📍 Local: {clinic_name}\n\n"
            "Por favor, confirme a presença respondendo esta mensagem. Obrigada! 🙏"
        ),
        defaults={"appointment_date": "a confirmar", "appointment_time": "a confirmar"},
        expected=("appointment_date", "appointment_time"),
    ),
    TemplateType.CONFIRMATION: MessageTemplate(
        type=TemplateType.CONFIRMATION,
        label="Confirmar Presença",
        icon="event_available",
        text=(
            "Olá {guardian_name}! 😊\n\n"
            "Podemos confirmar a sessão de *{patient_name}* no dia {appointment_date} "
            "às {appointment_time} com {professional_name}?\n\n"
            "Responda *SIM* para confirmar ou *NÃO* para reagendar. Obrigada! 🙏"
        ),
        defaults={"appointment_date": "combinado", "appointment_time": "horário combinado"},
        expected=("appointment_date", "appointment_time"),
    ),
    TemplateType.ACTIVITY: MessageTemplate(
        type=TemplateType.ACTIVITY,
        label="Instrução de Atividade",
        icon="assignment",
        text=(
            "Olá {guardian_name}! 😊\n\n"
            "Seguem as atividades para praticar em casa com *{patient_name}*:\n\n"
            "{custom_text}\n\n"
            "Qualquer dúvida, estou à disposição! 💜"
        ),
        defaults={
            "custom_text": (
                "📋 *Exercício:* [Nome do exercício]\n"
                "🎯 *Objetivo:* [Descrever objetivo]\n\n"
                "*Instruções:*\n"
                "1. [Passo 1]\n"
                "2. [Passo 2]\n"
                "3. [Passo 3]\n\n"
                "⏱️ *Frequência:* [Ex: 2x ao dia, 5 minutos]"
            )
        },
    ),
    TemplateType.FEEDBACK: MessageTemplate(
        type=TemplateType.FEEDBACK,
        label="Solicitar Feedback",
        icon="rate_review",
        text=(
            "Olá {guardian_name}! 😊\n\n"
            "Gostaria de saber como *{patient_name}* está se saindo com as atividades em casa.\n\n"
            "Poderia me contar:\n"
            "1. Como foram os exercícios esta semana?\n"
            "2. Notou alguma dificuldade?\n"
            "3. Houve alguma melhora?\n\n"
            "Seu feedback é muito importante para o tratamento! 💜"
        ),
    ),
    TemplateType.FOLLOW_UP: MessageTemplate(
        type=TemplateType.FOLLOW_UP,
        label="Acompanhamento",
        icon="forum",
        text=(
            "Olá {guardian_name}! 😊\n\n"
            "Como *{patient_name}* ficou depois da última sessão?\n\n"
            "{custom_text}\n\n"
            "Estamos à disposição. {clinic_name} 💜"
        ),
        defaults={"custom_text": "Percebeu alguma mudança na fala ou na rotina em casa?"},
    ),
    TemplateType.BIRTHDAY: MessageTemplate(
        type=TemplateType.BIRTHDAY,
        label="Aniversário",
        icon="cake",
        text=(
            "Olá {guardian_name}! 🎉\n\n"
            "Hoje é um dia especial! Desejamos um feliz aniversário para *{patient_name}* 🎂\n\n"
            "Com carinho, equipe {clinic_name} 💜"
        ),
    ),
    TemplateType.FREE: MessageTemplate(
        type=TemplateType.FREE,
        label="Mensagem Livre",
        icon="edit_note",
        text="Olá {guardian_name}! 😊\n\n{custom_text}",
    ),
}


def _registry(table: dict[TemplateType, MessageTemplate]) -> Mapping[TemplateType, MessageTemplate]:
    missing = [t.value for t in TemplateType if t not in table]
    if missing:
        raise RuntimeError(f"No template registered for {missing}")
    mismatched = [t.value for t, tpl in table.items() if tpl.type is not t]
    if mismatched:
        raise RuntimeError(f"Template registered under the wrong type: {mismatched}")
    return MappingProxyType(table)


MESSAGE_TEMPLATES = _registry(_TEMPLATE_TABLE)


def get_template(template_type: TemplateType | str) -> MessageTemplate:
    """Look up a template. Raw strings must be TemplateType values."""
    return MESSAGE_TEMPLATES[TemplateType(template_type)]


def list_templates() -> list[MessageTemplate]:
    """Templates in declaration order (the order of the UI selector)."""
    return [MESSAGE_TEMPLATES[t] for t in TemplateType]


def render(template_type: TemplateType | str, context: TemplateContext | None = None) -> str:
    """Render a template with the given context.

    Args:
        template_type: Template identifier.
        context: Substitution values; None renders with defaults only.

    Returns:
        Message text with every placeholder resolved.
    """
    return get_template(template_type).render(context or TemplateContext())


def missing_fields(template_type: TemplateType | str, context: TemplateContext) -> tuple[str, ...]:
    """Expected fields the context does not provide (e.g. reminder without appointment)."""
    template = get_template(template_type)
    return tuple(name for name in template.expected if context.value(name) is None)


_MONTHS_PT_BR = (
    "janeiro",
    "fevereiro",
    "março",
    "abril",
    "maio",
    "junho",
    "julho",
    "agosto",
    "setembro",
    "outubro",
    "novembro",
    "dezembro",
)


def format_date_pt_br(value: datetime) -> str:
    """``15 de março de 2025``."""
    return f"{value.day} de {_MONTHS_PT_BR[value.month - 1]} de {value.year}"


def build_context(
    *,
    patient_name: str | None,
    guardian_name: str | None = None,
    appointment_at: datetime | None = None,
    timezone: str = "America/Sao_Paulo",
    professional_name: str | None = None,
    clinic_name: str | None = None,
    custom_text: str | None = None,
) -> TemplateContext:
    """Build a TemplateContext from patient and next-appointment data.

    The appointment instant is converted to ``timezone`` before formatting;
    naive datetimes are taken as already local. Nothing here reads the clock.
    """
    appointment_date = appointment_time = None
    if appointment_at is not None:
        if appointment_at.tzinfo is not None:
            appointment_at = appointment_at.astimezone(ZoneInfo(timezone))
        appointment_date = format_date_pt_br(appointment_at)
        appointment_time = appointment_at.strftime("%H:%M")

    return TemplateContext(
        patient_name=patient_name,
        guardian_name=guardian_name or DEFAULT_GUARDIAN_NAME,
        appointment_date=appointment_date,
        appointment_time=appointment_time,
        professional_name=professional_name,
        clinic_name=clinic_name or DEFAULT_CLINIC_NAME,
        custom_text=custom_text,
    )
