"""Tests for scripts/generate_chat_link.py."""

import importlib.util
from pathlib import Path

import pytest

SCRIPT = Path(__file__).resolve().parent.parent / "scripts" / "generate_chat_link.py"


@pytest.fixture
def script():
    spec = importlib.util.spec_from_file_location("generate_chat_link", SCRIPT)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def test_prints_link(script, capsys):
    script.main(["(11) 8765-4321", "reminder", "João", "Maria"])
    out = capsys.readouterr().out
    assert "+55 (11) 98765-4321" in out
    assert "https://wa.me/5511987654321?text=" in out
    assert "missing:  appointment_date, appointment_time" in out
    assert "Olá Maria!" in out


def test_defaults_to_free_template(script, capsys):
    script.main(["11987654321"])
    out = capsys.readouterr().out
    assert "template: free" in out
    assert "Olá Responsável!" in out


def test_invalid_phone_exits_1(script, capsys):
    with pytest.raises(SystemExit) as exc:
        script.main(["123"])
    assert exc.value.code == 1
    assert "too_short" in capsys.readouterr().out


def test_unknown_template_exits_1(script, capsys):
    with pytest.raises(SystemExit) as exc:
        script.main(["11987654321", "newsletter"])
    assert exc.value.code == 1
    assert "Unknown template" in capsys.readouterr().out


def test_no_args_exits_2(script):
    with pytest.raises(SystemExit) as exc:
        script.main([])
    assert exc.value.code == 2
