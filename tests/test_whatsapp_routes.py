"""Tests for the WhatsApp click-to-chat endpoints."""

import logging

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from clinicflow.api.routes.whatsapp import router
from clinicflow.whatsapp.links import LinkBuildError, extract_message
from clinicflow.whatsapp.templates import TemplateType


def create_test_app() -> FastAPI:
    """Create test app with the WhatsApp router only."""
    app = FastAPI()
    app.include_router(router)
    return app


@pytest.fixture
def client():
    return TestClient(create_test_app())


class TestTemplatesEndpoint:
    def test_lists_all_templates_in_order(self, client):
        response = client.get("/whatsapp/templates")
        assert response.status_code == 200
        body = response.json()
        assert [t["type"] for t in body] == [t.value for t in TemplateType]

    def test_reminder_metadata(self, client):
        body = client.get("/whatsapp/templates").json()
        reminder = body[0]
        assert reminder == {
            "type": "reminder",
            "label": "Lembrete de Sessão",
            "icon": "calendar_clock",
            "expected_fields": ["appointment_date", "appointment_time"],
        }


class TestValidatePhone:
    def test_valid(self, client):
        response = client.post("/whatsapp/phone/validate", json={"phone": "(11) 99999-8888"})
        assert response.status_code == 200
        assert response.json() == {"valid": True, "formatted": "5511999998888", "error": None}

    def test_invalid_is_still_200(self, client):
        response = client.post("/whatsapp/phone/validate", json={"phone": "123"})
        assert response.status_code == 200
        body = response.json()
        assert body["valid"] is False
        assert body["formatted"] == ""
        assert body["error"]

    def test_missing_phone_field(self, client):
        response = client.post("/whatsapp/phone/validate", json={})
        assert response.status_code == 422


class TestCreateLink:
    def test_reminder_with_context(self, client):
        response = client.post(
            "/whatsapp/link",
            json={
                "phone": "(11) 98765-4321",
                "template_type": "reminder",
                "context": {
                    "patient_name": "Ana",
                    "guardian_name": "Maria Silva",
                    "appointment_date": "12/03",
                    "appointment_time": "14:00",
                },
            },
        )
        assert response.status_code == 200
        body = response.json()
        assert body["phone"] == "5511987654321"
        assert body["url"].startswith("https://wa.me/5511987654321?text=")
        assert extract_message(body["url"]) == body["message"]
        for expected in ("Ana", "Maria Silva", "12/03", "14:00"):
            assert expected in body["message"]
        assert body["missing_fields"] == []

    def test_appointment_at_formatted_in_clinic_timezone(self, client):
        response = client.post(
            "/whatsapp/link",
            json={
                "phone": "11987654321",
                "template_type": "reminder",
                "context": {"patient_name": "João Pedro"},
                "appointment_at": "2025-03-15T14:30:00Z",
            },
        )
        body = response.json()
        assert "15 de março de 2025" in body["message"]
        assert "11:30" in body["message"]

    def test_clinic_timezone_from_env(self, client, monkeypatch):
        monkeypatch.setenv("CLINIC_TIMEZONE", "UTC")
        response = client.post(
            "/whatsapp/link",
            json={
                "phone": "11987654321",
                "template_type": "reminder",
                "appointment_at": "2025-03-15T14:30:00Z",
            },
        )
        assert "14:30" in response.json()["message"]

    def test_clinic_name_from_env(self, client, monkeypatch):
        monkeypatch.setenv("CLINIC_NAME", "Espaço Fala")
        response = client.post(
            "/whatsapp/link",
            json={"phone": "11987654321", "template_type": "reminder"},
        )
        assert "Local: Espaço Fala" in response.json()["message"]

    def test_reminder_without_appointment_reports_missing_fields(self, client):
        response = client.post(
            "/whatsapp/link",
            json={"phone": "11987654321", "template_type": "reminder"},
        )
        body = response.json()
        assert response.status_code == 200
        assert body["missing_fields"] == ["appointment_date", "appointment_time"]
        assert "Data: a confirmar" in body["message"]

    def test_edited_message_replaces_template(self, client):
        edited = "Olá! Remarcamos para 14h & 30min? 😊\nAbraço"
        response = client.post(
            "/whatsapp/link",
            json={"phone": "11 8765-4321", "template_type": "free", "message": edited},
        )
        body = response.json()
        assert body["phone"] == "5511987654321"
        assert body["message"] == edited
        assert extract_message(body["url"]) == edited

    def test_invalid_phone_is_422(self, client):
        response = client.post(
            "/whatsapp/link",
            json={"phone": "123", "template_type": "free"},
        )
        assert response.status_code == 422
        detail = response.json()["detail"]
        assert detail["code"] == "invalid_phone"
        assert detail["reason"] == "too_short"
        assert detail["message"]

    def test_unencodable_message_is_422(self, client, monkeypatch):
        def reject(phone, message):
            raise LinkBuildError("message is not valid UTF-8 text")

        monkeypatch.setattr("clinicflow.api.routes.whatsapp.build_link", reject)
        response = client.post(
            "/whatsapp/link",
            json={"phone": "11987654321", "template_type": "free", "message": "oi"},
        )
        assert response.status_code == 422
        assert response.json()["detail"]["code"] == "invalid_message"

    def test_unknown_template_type_is_422(self, client):
        response = client.post(
            "/whatsapp/link",
            json={"phone": "11987654321", "template_type": "newsletter"},
        )
        assert response.status_code == 422

    def test_unknown_context_field_is_422(self, client):
        response = client.post(
            "/whatsapp/link",
            json={"phone": "11987654321", "template_type": "free", "context": {"cpf": "1"}},
        )
        assert response.status_code == 422

    def test_logs_contain_no_pii(self, client, caplog):
        logger = logging.getLogger("clinicflow.api.routes.whatsapp")
        logger.addHandler(caplog.handler)
        try:
            with caplog.at_level(logging.DEBUG, logger="clinicflow.api.routes.whatsapp"):
                client.post(
                    "/whatsapp/link",
                    json={
                        "phone": "(11) 98765-4321",
                        "template_type": "free",
                        "context": {"guardian_name": "Maria Silva", "custom_text": "segredo"},
                    },
                )
        finally:
            logger.removeHandler(caplog.handler)

        assert caplog.records, "Expected at least 1 log record"
        all_logs = " ".join(caplog.messages)
        for record in caplog.records:
            all_logs += " " + str(getattr(record, "extra_fields", ""))
        assert "98765" not in all_logs
        assert "Maria Silva" not in all_logs
        assert "segredo" not in all_logs
