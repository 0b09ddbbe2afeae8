"""Deterministic JSON encoding used as hash input."""

import json
import math
from collections.abc import Mapping


def canonical_serialize(value: object) -> str:
    """Serialize a value tree into its canonical JSON form.

    Mapping keys are sorted by their string form, sequences keep their
    order, and no whitespace is emitted. Two values that compare equal as
    JSON documents always produce the same string, regardless of the
    insertion order of their mappings.
    """
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        if not math.isfinite(value):
            return "null"
        return json.dumps(value)
    if isinstance(value, str):
        return _encode_string(value)
    if isinstance(value, list | tuple):
        return "[" + ",".join(canonical_serialize(item) for item in value) + "]"
    if isinstance(value, Mapping):
        pairs = sorted(
            ((str(key), item) for key, item in value.items()), key=lambda pair: pair[0]
        )
        return (
            "{"
            + ",".join(
                f"{_encode_string(key)}:{canonical_serialize(item)}"
                for key, item in pairs
            )
            + "}"
        )
    raise TypeError(f"Cannot canonicalize value of type {type(value).__name__}")


def _encode_string(value: str) -> str:
    # Non-ASCII stays verbatim, matching digests of existing records.
    return json.dumps(value, ensure_ascii=False)
