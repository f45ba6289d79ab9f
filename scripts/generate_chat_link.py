"""Print a wa.me link for a stored phone and a message template.

Usage:
    uv run python scripts/generate_chat_link.py <phone> [template_type] [patient_name] [guardian_name]

Example:
    uv run python scripts/generate_chat_link.py "(11) 8765-4321" reminder "João" "Maria"

For checking how a guardian phone from the dashboard will be dialed and how
a template reads before it is opened in WhatsApp. Nothing is sent.
"""

from __future__ import annotations

import sys


def main(argv: list[str] | None = None) -> None:
    args = sys.argv[1:] if argv is None else argv
    if not args:
        print("Usage: uv run python scripts/generate_chat_link.py <phone> [template_type] [patient_name] [guardian_name]")
        sys.exit(2)

    from clinicflow.whatsapp.links import build_link
    from clinicflow.whatsapp.phone import NormalizationError, format_phone_display, normalize
    from clinicflow.whatsapp.templates import TemplateType, build_context, missing_fields, render

    raw_phone = args[0]
    template_name = args[1] if len(args) > 1 else TemplateType.FREE.value
    patient_name = args[2] if len(args) > 2 else None
    guardian_name = args[3] if len(args) > 3 else None

    try:
        template_type = TemplateType(template_name)
    except ValueError:
        print(f"ERROR: Unknown template: {template_name}")
        print(f"Available: {', '.join(t.value for t in TemplateType)}")
        sys.exit(1)

    try:
        phone = normalize(raw_phone)
    except NormalizationError as e:
        print(f"ERROR: {e.user_message} ({e.reason})")
        sys.exit(1)

    context = build_context(patient_name=patient_name, guardian_name=guardian_name)
    link = build_link(phone, render(template_type, context))

    print()
    print("=== Chat Link ===")
    print(f"  phone:    {format_phone_display(link.phone)}")
    print(f"  template: {template_type.value}")
    missing = missing_fields(template_type, context)
    if missing:
        print(f"  missing:  {', '.join(missing)}")
    print(f"  url:      {link.url}")
    print()
    print(link.message)


if __name__ == "__main__":
    main()
