"""Generate and convert configuration files."""

from __future__ import annotations

import json
import os
import tomllib

import tomli_w
import yaml

SUPPORTED_EXTS = ("json", "toml", "yaml", "yml")

_TEMPLATE = {
    "log": {"level": "info", "file": ""},
    "plugins": [
        {
            "tag": "forward_google",
            "type": "fast_forward",
            "args": {"upstream": [{"addr": "https://8.8.8.8/dns-query"}]},
        }
    ],
    "servers": [
        {
            "exec": "forward_google",
            "listeners": [
                {"protocol": "udp", "addr": "127.0.0.1:5533"},
                {"protocol": "tcp", "addr": "127.0.0.1:5533"},
            ],
        }
    ],
}


def _config_type(path) -> str:
    ext = os.path.splitext(os.fspath(path))[1].lstrip(".").lower()
    if ext not in SUPPORTED_EXTS:
        raise ValueError(
            f"unsupported config type {ext!r}, supported extensions: {', '.join(SUPPORTED_EXTS)}"
        )
    return ext


def _read(path) -> dict:
    kind = _config_type(path)
    with open(path, "rb") as f:
        raw = f.read()
    if kind == "json":
        data = json.loads(raw)
    elif kind == "toml":
        data = tomllib.loads(raw.decode("utf-8"))
    else:
        data = yaml.safe_load(raw) or {}
    if not isinstance(data, dict):
        raise ValueError(f"config {path} is not a mapping")
    return data


def _dump(kind: str, data: dict) -> str:
    if kind == "json":
        return json.dumps(data, indent=2) + "\n"
    if kind == "toml":
        return tomli_w.dumps(data)
    return yaml.safe_dump(data, sort_keys=False)


def _write(path, data: dict, exclusive: bool) -> None:
    text = _dump(_config_type(path), data)
    try:
        with open(path, "x" if exclusive else "w", encoding="utf-8") as f:
            f.write(text)
    except FileExistsError:
        raise FileExistsError(f'Config File "{os.fspath(path)}" Already Exists') from None


def convert_config(src, dst) -> None:
    """Convert src to the format given by dst's extension; dst must not exist."""
    _write(dst, _read(src), exclusive=True)


def generate_config(path) -> None:
    """Write a template config in the format given by path's extension."""
    _write(path, _TEMPLATE, exclusive=False)