import json

import pytest
import yaml

from dnsflow.config_tools import convert_config, generate_config


def test_generate_yaml_contains_template(tmp_path):
    path = tmp_path / "config.yaml"
    generate_config(path)
    data = yaml.safe_load(path.read_text())
    plugin = data["plugins"][0]
    assert plugin["tag"] == "forward_google"
    assert plugin["type"] == "fast_forward"
    assert plugin["args"]["upstream"][0]["addr"] == "https://8.8.8.8/dns-query"
    assert data["servers"][0]["exec"] == "forward_google"


def test_generate_same_content_in_every_format(tmp_path):
    generate_config(tmp_path / "a.yaml")
    generate_config(tmp_path / "a.json")
    assert json.loads((tmp_path / "a.json").read_text()) == yaml.safe_load((tmp_path / "a.yaml").read_text())


def test_generate_overwrites(tmp_path):
    path = tmp_path / "c.yml"
    path.write_text("old: 1\n")
    generate_config(path)
    assert "old" not in yaml.safe_load(path.read_text())


def test_convert_round_trip(tmp_path):
    generate_config(tmp_path / "src.yaml")
    convert_config(tmp_path / "src.yaml", tmp_path / "mid.toml")
    convert_config(tmp_path / "mid.toml", tmp_path / "out.json")
    original = yaml.safe_load((tmp_path / "src.yaml").read_text())
    assert json.loads((tmp_path / "out.json").read_text()) == original


def test_convert_refuses_existing_output(tmp_path):
    generate_config(tmp_path / "src.yaml")
    dst = tmp_path / "dst.json"
    dst.write_text("{}")
    with pytest.raises(FileExistsError):
        convert_config(tmp_path / "src.yaml", dst)
    assert dst.read_text() == "{}"


def test_unsupported_extension(tmp_path):
    with pytest.raises(ValueError, match="unsupported config type"):
        generate_config(tmp_path / "config.xml")


def test_convert_missing_input(tmp_path):
    with pytest.raises(FileNotFoundError):
        convert_config(tmp_path / "missing.yaml", tmp_path / "out.json")