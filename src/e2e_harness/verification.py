"""Pure assertion helpers over captured API responses (no network I/O)."""
from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

from e2e_harness.errors import HeaderMismatchError, LatencyExceededError, SchemaMismatchError
from e2e_harness.models import ApiResponseEnvelope

logger = logging.getLogger(__name__)

# Field kind -> runtime check. bool never counts as "number".
_KIND_CHECKS = {
    "string": lambda v: isinstance(v, str),
    "number": lambda v: isinstance(v, (int, float)) and not isinstance(v, bool),
    "object": lambda v: isinstance(v, dict),
    "boolean": lambda v: isinstance(v, bool),
    "array": lambda v: isinstance(v, list),
}


def kind_of(value: Any) -> str:
    for kind, check in _KIND_CHECKS.items():
        if check(value):
            return kind
    return "null" if value is None else type(value).__name__


def verify_schema(envelope: ApiResponseEnvelope, schema: Mapping[str, Optional[str]]) -> ApiResponseEnvelope:
    """Assert every schema key exists in the body with the expected kind.

    A kind of ``None`` only checks presence.

    Raises:
        SchemaMismatchError: Naming the first offending key
    """
    body = envelope.body
    if not isinstance(body, dict):
        first = next(iter(schema), "<body>")
        raise SchemaMismatchError(first, f"Expected a JSON object body, got {kind_of(body)}")

    for key, kind in schema.items():
        if key not in body:
            raise SchemaMismatchError(key, f"Missing field '{key}' in response body")
        if kind is None:
            continue
        check = _KIND_CHECKS.get(kind)
        if check is None:
            raise ValueError(f"Unknown field kind '{kind}' for '{key}' (use one of {sorted(_KIND_CHECKS)})")
        if not check(body[key]):
            raise SchemaMismatchError(key, f"Field '{key}' should be {kind}, got {kind_of(body[key])}")
    return envelope


def verify_headers(envelope: ApiResponseEnvelope, expected_headers: Mapping[str, Optional[str]]) -> ApiResponseEnvelope:
    """Assert headers are present and, when a value is given, contain it.

    Header names are matched case-insensitively.

    Raises:
        HeaderMismatchError: Naming the first offending header
    """
    for header, expected in expected_headers.items():
        if header not in envelope.headers:
            raise HeaderMismatchError(header, f"Missing header '{header.lower()}'")
        if expected is None:
            continue
        actual = envelope.headers.get(header, "")
        if expected not in actual:
            raise HeaderMismatchError(header, f"Header '{header.lower()}' is {actual!r}, expected to contain {expected!r}")
    return envelope


def verify_response_time(envelope: ApiResponseEnvelope, max_millis: float = 2000) -> ApiResponseEnvelope:
    """Assert the response was faster than ``max_millis``.

    Raises:
        LatencyExceededError: If ``duration >= max_millis``
    """
    if envelope.duration >= max_millis:
        raise LatencyExceededError(envelope.duration, max_millis)
    logger.debug("Response time %.0fms (limit %.0fms)", envelope.duration, max_millis)
    return envelope
