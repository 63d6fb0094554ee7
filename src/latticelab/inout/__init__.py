"""
Module: inout
-------------
JSON payload parsing, response serialization and request hashing.

Submodules
----------
- `requests`:
    Payload dicts to typed requests and back to normalized dicts
- `responses`:
    Typed results to JSON response bodies
- `canonical`:
    Canonical JSON and SHA-256 request hash
"""

from .canonical import canonical_json, canonicalize, request_hash
from .requests import (
    normalize_crystal_request,
    normalize_ewald_request,
    normalize_tb_request,
    parse_crystal_request,
    parse_ewald_request,
    parse_tb_request,
)
from .responses import crystal_response, ewald_response, tb_response

__all__ = [
    "canonicalize",
    "canonical_json",
    "request_hash",
    "parse_crystal_request",
    "parse_ewald_request",
    "parse_tb_request",
    "normalize_crystal_request",
    "normalize_ewald_request",
    "normalize_tb_request",
    "crystal_response",
    "ewald_response",
    "tb_response",
]
