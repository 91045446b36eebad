"""
Structured field normalisation.

Fields arrive at the call boundary in three shapes: a flat key/value
sequence (``"key1", 1, "key2", 2``), a single mapping, or keyword
arguments. They are normalised to a ``dict[str, Any]`` before reaching any
backend.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from .errors import FieldsError

Fields = dict[str, Any]


def to_fields(args: tuple[Any, ...] = (), kwargs: Mapping[str, Any] | None = None) -> Fields:
    """Normalise positional and keyword fields into one dict.

    Args:
        args: Either a single mapping or an even-length flat key/value sequence.
        kwargs: Keyword fields; applied last, so they win on collision.

    Raises:
        FieldsError: If ``args`` has an odd length.
    """
    fields: Fields = {}
    if len(args) == 1 and isinstance(args[0], Mapping):
        fields.update((str(k), v) for k, v in args[0].items())
    elif args:
        if len(args) % 2 != 0:
            raise FieldsError(f"odd number of key/value arguments ({len(args)}); dangling key {args[-1]!r}")
        for i in range(0, len(args), 2):
            fields[str(args[i])] = args[i + 1]
    if kwargs:
        fields.update(kwargs)
    return fields


def merge(base: Mapping[str, Any], override: Mapping[str, Any]) -> Fields:
    """Return ``base`` updated with ``override``; neither input is modified."""
    if not override:
        return dict(base)
    merged = dict(base)
    merged.update(override)
    return merged


def render_value(value: Any) -> str:
    """Render a field value as a label string.

    Booleans and None use their JSON spelling so labels read the same no
    matter which language produced them.
    """
    if isinstance(value, str):
        return value
    if value is True:
        return "true"
    if value is False:
        return "false"
    if value is None:
        return "null"
    return str(value)


def to_labels(fields: Mapping[str, Any]) -> dict[str, str]:
    return {k: render_value(v) for k, v in fields.items()}
