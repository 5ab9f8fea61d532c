import pytest

from glinstaller.errors import InvalidParameterError
from glinstaller.services.config_loader import ConfigLoader


def test_config_loader_loads_yaml_mapping(tmp_path):
    config_file = tmp_path / ".gl-install.yml"
    config_file.write_text(
        "hostname: gl.school.org\nemail: admin@school.org\nsettle_seconds: 2\n",
        encoding="utf-8",
    )

    loaded = ConfigLoader().load(str(config_file))

    assert loaded["hostname"] == "gl.school.org"
    assert loaded["email"] == "admin@school.org"
    assert loaded["settle_seconds"] == 2


def test_config_loader_treats_empty_file_as_empty_mapping(tmp_path):
    config_file = tmp_path / ".gl-install.yml"
    config_file.write_text("", encoding="utf-8")

    assert ConfigLoader().load(str(config_file)) == {}


def test_config_loader_rejects_unknown_keys(tmp_path):
    config_file = tmp_path / ".gl-install.yml"
    config_file.write_text("letsencrypt: true\n", encoding="utf-8")

    with pytest.raises(InvalidParameterError, match="Unknown configuration keys: letsencrypt"):
        ConfigLoader().load(str(config_file))


def test_config_loader_rejects_non_mapping(tmp_path):
    config_file = tmp_path / ".gl-install.yml"
    config_file.write_text("- gl.school.org\n", encoding="utf-8")

    with pytest.raises(InvalidParameterError, match="YAML mapping"):
        ConfigLoader().load(str(config_file))


def test_config_loader_requires_existing_file(tmp_path):
    with pytest.raises(InvalidParameterError, match="Config file not found"):
        ConfigLoader().load(str(tmp_path / "missing.yml"))
