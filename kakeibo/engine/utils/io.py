"""File helpers for configuration and exported reports."""

from __future__ import annotations

import json
from pathlib import Path

import yaml

__all__ = ["read_yaml", "write_json"]


def read_yaml(path: Path | str) -> object:
    """Read a YAML file and return the corresponding Python object."""

    with Path(path).open("r", encoding="utf-8") as handle:
        return yaml.safe_load(handle)


def write_json(data: object, path: Path | str, *, indent: int = 2) -> Path:
    """Serialise ``data`` as JSON, ending the file with a newline."""

    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    with target.open("w", encoding="utf-8") as handle:
        json.dump(data, handle, indent=indent, sort_keys=True, ensure_ascii=False)
        handle.write("\n")
    return target
