import json

import pytest
from typer.testing import CliRunner

from flowforge.cli import app

runner = CliRunner()


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    monkeypatch.setenv("FLOWFORGE_CONFIG", str(tmp_path / "missing.yaml"))
    for name in ("BACKEND_BASE_URL", "FLOWFORGE_SESSION_BACKEND", "FLOWFORGE_NOTIFIER"):
        monkeypatch.delenv(name, raising=False)


def test_compile_command_prints_workflow(tmp_path):
    plan_file = tmp_path / "plan.json"
    plan_file.write_text(
        json.dumps(
            {
                "heading1_workflow": {
                    "workflowName": "ETH alert",
                    "description": "Alert when ETH is cheap",
                    "steps": [
                        {"blockId": "time-block", "configHints": {"intervalSeconds": "600", "durationSeconds": "3600"}},
                        {"blockId": "chainlink", "configHints": {"feed": "ETH/USD"}},
                        {"blockId": "if", "configHints": {"condition": "ETH/USD < 1750"}},
                        {"blockId": "telegram", "purpose": "ETH is below 1750"},
                    ],
                }
            }
        )
    )

    result = runner.invoke(app, ["compile", str(plan_file), "--chat-id", "42", "--connection-id", "conn-1"])

    assert result.exit_code == 0, result.output
    assert '"type": "TIME_BLOCK"' in result.stdout
    assert '"intervalSeconds": 600' in result.stdout
    assert '"operator": "LESS_THAN"' in result.stdout
    assert '"chatId": "42"' in result.stdout
    assert '"connectionId": "conn-1"' in result.stdout


def test_compile_command_missing_file(tmp_path):
    result = runner.invoke(app, ["compile", str(tmp_path / "nope.json")])

    assert result.exit_code == 1
    assert "Specified path does not exist" in result.output


def test_compile_command_invalid_json(tmp_path):
    plan_file = tmp_path / "plan.json"
    plan_file.write_text("{not json")

    result = runner.invoke(app, ["compile", str(plan_file)])
    assert result.exit_code == 1
    assert "Invalid JSON" in result.output


def test_compile_command_reports_invalid_plan(tmp_path):
    plan_file = tmp_path / "plan.json"
    plan_file.write_text(json.dumps({"steps": [{"blockId": "teleport"}]}))

    result = runner.invoke(app, ["compile", str(plan_file)])
    assert result.exit_code == 1


def test_template_command_compiles_feed():
    result = runner.invoke(app, ["template", "eth", "--chat-id", "42"])

    assert result.exit_code == 0, result.output
    assert "0x639Fe6ab55C921f74e7fac1ee960C0B6293ba612" in result.stdout
    assert "formattedAnswer" in result.stdout


def test_template_command_prompt_only():
    result = runner.invoke(app, ["template", "BTC/USD", "--prompt"])

    assert result.exit_code == 0
    assert 'configHints.feed set to exactly "BTC/USD"' in result.stdout


def test_template_command_unknown_token():
    result = runner.invoke(app, ["template", "DOGE"])

    assert result.exit_code == 1
    assert "Unknown template token DOGE. Choose one of: ETH, BTC, LINK, ARB" in result.output


def test_track_without_backend_fails():
    result = runner.invoke(app, ["track", "exec-1"])

    assert result.exit_code == 1
    assert "BACKEND_BASE_URL" in result.output
