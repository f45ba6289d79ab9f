"""Clinic-wide defaults used when building WhatsApp messages.

Read from the environment on every call so tests can monkeypatch them.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

from clinicflow.whatsapp.templates import DEFAULT_CLINIC_NAME

DEFAULT_TIMEZONE = "America/Sao_Paulo"


@dataclass(frozen=True)
class ClinicSettings:
    """Clinic defaults.

    Attributes:
        clinic_name: Shown in templates when the request omits it.
        timezone: IANA zone for appointment times and timeline days.
    """

    clinic_name: str = DEFAULT_CLINIC_NAME
    timezone: str = DEFAULT_TIMEZONE


def get_clinic_settings() -> ClinicSettings:
    """Load clinic settings.

    Optional env vars:
    - CLINIC_NAME (default: Clínica)
    - CLINIC_TIMEZONE (default: America/Sao_Paulo)
    """
    return ClinicSettings(
        clinic_name=os.environ.get("CLINIC_NAME", "").strip() or DEFAULT_CLINIC_NAME,
        timezone=os.environ.get("CLINIC_TIMEZONE", "").strip() or DEFAULT_TIMEZONE,
    )
