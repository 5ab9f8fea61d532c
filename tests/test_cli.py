from pathlib import Path

import pytest
from click.testing import CliRunner

import glinstaller.cli as cli_module


@pytest.fixture
def captured(monkeypatch):
    captured = {}

    class FakeInstaller:
        def __init__(self, **kwargs):
            captured.update(kwargs)

        def run(self):
            return captured.get("exit_code", 0)

    monkeypatch.setattr(cli_module, "GreenlightInstaller", FakeInstaller)
    return captured


def test_cli_passes_options_to_installer(captured, tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)

    result = CliRunner().invoke(
        cli_module.main,
        ["-s", "gl.school.org", "-e", "admin@school.org", "-b", "bbb.school.org:s3cret"],
    )

    assert result.exit_code == 0
    assert captured["hostname"] == "gl.school.org"
    assert captured["email"] == "admin@school.org"
    assert captured["bigbluebutton"] == "bbb.school.org:s3cret"
    assert captured["system_upgrade"] is True
    assert captured["paths"].data_dir == Path.home() / "greenlight-v3"


def test_cli_help_exits_cleanly(captured):
    result = CliRunner().invoke(cli_module.main, ["-h"])

    assert result.exit_code == 0
    assert "--bigbluebutton" in result.output
    assert captured == {}


def test_cli_requires_hostname(captured, tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)

    result = CliRunner().invoke(cli_module.main, ["-e", "admin@school.org"])

    assert result.exit_code == 1
    assert "Missing required option '-s'" in result.output
    assert captured == {}


def test_cli_uses_config_and_allows_cli_override(captured, tmp_path):
    config_file = tmp_path / "gl.yml"
    config_file.write_text(
        "hostname: config.school.org\n"
        "email: admin@school.org\n"
        "data_dir: /srv/greenlight\n"
        "settle_seconds: 1\n"
        "system_upgrade: true\n",
        encoding="utf-8",
    )

    result = CliRunner().invoke(
        cli_module.main,
        ["--config", str(config_file), "-s", "cli.school.org", "--skip-system-upgrade"],
    )

    assert result.exit_code == 0
    assert captured["hostname"] == "cli.school.org"
    assert captured["email"] == "admin@school.org"
    assert captured["paths"].data_dir == Path("/srv/greenlight")
    assert captured["settle_seconds"] == 1.0
    assert captured["system_upgrade"] is False


def test_cli_uses_default_config_file_when_present(captured, tmp_path, monkeypatch):
    (tmp_path / ".gl-install.yml").write_text(
        "hostname: default.school.org\nemail: admin@school.org\nverbose: true\n",
        encoding="utf-8",
    )
    monkeypatch.chdir(tmp_path)

    result = CliRunner().invoke(cli_module.main, [])

    assert result.exit_code == 0
    assert captured["hostname"] == "default.school.org"
    assert captured["verbose"] is True


def test_cli_reports_invalid_config(captured, tmp_path):
    config_file = tmp_path / "gl.yml"
    config_file.write_text("letsencrypt: true\n", encoding="utf-8")

    result = CliRunner().invoke(cli_module.main, ["--config", str(config_file)])

    assert result.exit_code == 1
    assert "Unknown configuration keys" in result.output


def test_cli_propagates_installer_exit_code(captured, tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    captured["exit_code"] = 1

    result = CliRunner().invoke(cli_module.main, ["-s", "gl.school.org", "-e", "admin@school.org"])

    assert result.exit_code == 1
