"""
Module: inout.canonical
-----------------------
Canonical JSON form and SHA-256 hash of a normalized request.

The canonical form sorts object keys, writes every number as
``repr(float(x))`` and leaves booleans, strings and null untouched, so two
requests that differ only in key order or in ``1`` versus ``1.0`` hash alike.

Functions
---------
- `canonicalize`:
    Recursively convert a JSON-like value to its canonical Python form
- `canonical_json`:
    Compact, key-sorted JSON text of the canonical form
- `request_hash`:
    Hex SHA-256 digest of the canonical JSON
"""

import hashlib
import json
import math
from numbers import Real

import numpy as np
from beartype.typing import Any

from latticelab.errors import InvalidInputError


def canonicalize(value: Any) -> Any:
    """
    Description
    -----------
    Canonical form of a JSON-like value. Tuples and arrays become lists,
    every real number becomes a float.

    Raises
    ------
    - `InvalidInputError`:
        Non-finite number or an unsupported value type
    """
    if value is None or isinstance(value, (bool, str)):
        return value
    if isinstance(value, dict):
        return {str(key): canonicalize(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [canonicalize(item) for item in value]
    if hasattr(value, "shape") and hasattr(value, "tolist"):
        return canonicalize(np.asarray(value).tolist())
    if isinstance(value, Real):
        number = float(value)
        if not math.isfinite(number):
            raise InvalidInputError("non-finite number cannot be hashed", None)
        return number
    raise InvalidInputError(
        f"unsupported value of type {type(value).__name__} in request", None
    )


def canonical_json(value: Any) -> str:
    # json writes floats with float.__repr__, the shortest round-trip form
    return json.dumps(
        canonicalize(value),
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
        allow_nan=False,
    )


def request_hash(value: Any) -> str:
    """SHA-256 hex digest of `canonical_json(value)`."""
    return hashlib.sha256(canonical_json(value).encode("utf-8")).hexdigest()
