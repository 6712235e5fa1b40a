"""Utility helpers for kakeibo."""

from .io import read_yaml, write_json

__all__ = ["read_yaml", "write_json"]
