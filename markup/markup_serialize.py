from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Optional

import yaml


def detect_format(path: Optional[str] = None, data_hint: Optional[str] = None) -> Optional[str]:
    """
    Returns 'json' or 'yaml' for a context document.
    Uses the file extension first; falls back to simple data sniffing.
    """
    suffix = Path(path).suffix.lower() if path else ""
    if suffix == '.json':
        return 'json'
    if suffix in ('.yaml', '.yml'):
        return 'yaml'
    if data_hint is not None:
        s = data_hint.lstrip()
        if s.startswith('{') or s.startswith('['):
            return 'json'
        return 'yaml'
    return None


def deserialize(data: bytes | bytearray | str, *, fmt: Optional[str] = None) -> Any:
    """
    Convert a JSON or YAML document to plain Python data for use as a render context.
    If fmt is None the format is sniffed; YAML is the fallback since it is a JSON superset.
    """
    text = data.decode('utf-8', errors='replace') if isinstance(data, (bytes, bytearray)) else data
    f = fmt or detect_format(data_hint=text)
    if f == 'json':
        try:
            return json.loads(text)
        except json.JSONDecodeError:
            # Declared JSON but actually YAML-like
            return yaml.safe_load(text)
    if f == 'yaml':
        return yaml.safe_load(text)
    raise ValueError(f"Unsupported context format: {f!r}")


def load_context(path: str) -> Any:
    """Reads a context file (.json, .yaml or .yml); an empty document is an empty mapping."""
    p = Path(path)
    text = p.read_text(encoding='utf-8')
    data = deserialize(text, fmt=detect_format(str(p), text))
    return {} if data is None else data
