"""Tests for the command-line entry point."""

import json

import pytest

from stockbatch.cli import main
from stockbatch.config.config import ENV_OVERRIDES


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch, tmp_path):
    for name in ENV_OVERRIDES:
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)
    monkeypatch.chdir(tmp_path)
    return tmp_path / "config.json"


def test_convert_txt(tmp_path, capsys, isolated_settings) -> None:
    txt = tmp_path / "prompts.txt"
    txt.write_text("1. Sun\n2. Moon\n", encoding="utf-8")
    out = tmp_path / "prompts.csv"

    code = main(["--config", str(isolated_settings), "convert-txt", str(txt), "--output", str(out)])

    assert code == 0
    assert "Wrote 2 prompt(s)" in capsys.readouterr().out
    assert out.read_text(encoding="utf-8").splitlines()[0] == "Prompt Text"


def test_export_prompt(tmp_path, isolated_settings) -> None:
    code = main(["--config", str(isolated_settings), "export-prompt", "--marketplace", "freepik",
                 "--prompts", "1. Sun\n2. Moon"])
    assert code == 0
    packet = tmp_path / "master_prompt_packet_freepik.txt"
    text = packet.read_text(encoding="utf-8")
    assert "1. Sun\n2. Moon" in text
    assert "{{" not in text


def test_export_prompt_without_prompts_fails(capsys, isolated_settings) -> None:
    code = main(["--config", str(isolated_settings), "export-prompt", "--marketplace", "freepik"])
    assert code == 1
    assert "No valid prompts found." in capsys.readouterr().err


def test_unknown_marketplace_is_rejected(isolated_settings) -> None:
    with pytest.raises(SystemExit) as exc_info:
        main(["--config", str(isolated_settings), "export-prompt", "--marketplace", "etsy", "--prompts", "a"])
    assert exc_info.value.code == 2


def test_run_without_api_key_fails(make_zip, capsys, isolated_settings) -> None:
    zip_path = make_zip(["a.eps"])
    code = main(["--config", str(isolated_settings), "run", "--source-zip", str(zip_path),
                 "--marketplace", "vecteezy", "--prompts", "1. Sun"])
    assert code == 1
    out = capsys.readouterr().out
    assert "[  5%] Processing started..." in out
    assert "Error: Gemini API Key not provided" in out


def test_config_set_saves_without_environment_values(monkeypatch, capsys, isolated_settings) -> None:
    monkeypatch.setenv("GEMINI_API_KEY", "env-secret-12345")
    code = main(["--config", str(isolated_settings), "config", "--set", "marketplace=freepik",
                 "--set", "target_format = jpg"])
    assert code == 0
    assert f"Saved 2 setting(s) to {isolated_settings}" in capsys.readouterr().out
    data = json.loads(isolated_settings.read_text(encoding="utf-8"))
    assert data["marketplace"] == "freepik"
    assert data["target_format"] == "jpg"
    assert data["gemini_api_key"] == ""


def test_config_show_masks_api_key(monkeypatch, capsys, isolated_settings) -> None:
    monkeypatch.setenv("GEMINI_API_KEY", "env-secret-12345")
    assert main(["--config", str(isolated_settings), "config"]) == 0
    out = capsys.readouterr().out
    assert "gemini_api_key = ...12345" in out
    assert "env-secret" not in out


def test_config_rejects_unknown_key(capsys, isolated_settings) -> None:
    code = main(["--config", str(isolated_settings), "config", "--set", "colour=blue"])
    assert code == 1
    assert "Invalid setting 'colour=blue'" in capsys.readouterr().err
    assert not isolated_settings.exists()


def test_undecodable_custom_master_prompt(tmp_path, capsys, isolated_settings) -> None:
    template = tmp_path / "template.txt"
    template.write_bytes(b"Caf\xe9 {{prompts}}")
    code = main(["--config", str(isolated_settings), "export-prompt", "--marketplace", "freepik",
                 "--prompts", "1. Sun", "--custom-master-prompt-file", str(template)])
    assert code == 1
    assert "is not valid UTF-8 text" in capsys.readouterr().err
