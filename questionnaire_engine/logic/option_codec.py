"""Decoding and encoding of multiple-choice answer options.

Stored options come in several legacy shapes: a JSON array, a JSON object,
a newline separated list, a comma separated list, or a bare scalar. `decode`
tries them in a fixed order and always yields an ordered list of strings;
`encode` writes the canonical form (a JSON array of strings).

The heuristic is a compatibility shim for inconsistently authored data, not
a general parser. Its order must not change.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from typing import Any, Iterable, List


def _as_text(value: Any) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, (bool, int, float, list, dict)):
        # JSON spelling, so true stays "true" and 1.0 stays "1.0"
        return json.dumps(value, ensure_ascii=False)
    return str(value)


def _non_empty(values: Iterable[Any]) -> List[str]:
    out: List[str] = []
    for value in values:
        if value is None:
            continue
        text = _as_text(value)
        if text.strip():
            out.append(text)
    return out


def _split(text: str, sep: str) -> List[str]:
    return [part.strip() for part in text.split(sep) if part.strip()]


def decode(raw: Any) -> List[str]:
    """Return the options encoded in ``raw`` as an ordered list of strings.

    Never raises: malformed JSON falls through to the newline, comma and
    scalar rules.
    """
    if raw is None:
        return []
    if isinstance(raw, Mapping):
        return _non_empty(raw.values())
    if isinstance(raw, (list, tuple)):
        return _non_empty(raw)

    text = _as_text(raw).strip()
    if not text:
        return []

    if text[0] in "[{":
        try:
            parsed = json.loads(text)
        except ValueError:
            parsed = None
        if isinstance(parsed, Mapping):
            return _non_empty(parsed.values())
        if isinstance(parsed, list):
            return _non_empty(parsed)

    if "\n" in text:
        return _split(text.replace("\r\n", "\n"), "\n")
    if "," in text:
        return _split(text, ",")
    return [text]


def encode(options: Iterable[Any] | None) -> str:
    """Return the canonical stored form for ``options``."""
    return json.dumps(_non_empty(options or []), ensure_ascii=False)


__all__ = ["decode", "encode"]
