"""Extraction of security artifacts from login responses and browser cookies.

Both login strategies end here: the API strategy hands over the raw
``httpx.Response``, the UI strategy hands over the browser's cookie list.
"""
from __future__ import annotations

import json
import logging
import re
from functools import lru_cache
from typing import Any, Iterable, Mapping, Optional

import httpx

from e2e_harness.errors import ExtractionError
from e2e_harness.models import ExtractedArtifacts

logger = logging.getLogger(__name__)


@lru_cache(maxsize=16)
def _cookie_pattern(cookie_name: str) -> re.Pattern[str]:
    # Value runs until ';' or end of string
    return re.compile(rf"(?:^|[;,\s]){re.escape(cookie_name)}=([^;]*)")


def find_cookie_value(set_cookie_headers: Iterable[str], cookie_name: str) -> Optional[str]:
    """Return the first non-empty value of ``cookie_name`` in Set-Cookie headers."""
    pattern = _cookie_pattern(cookie_name)
    for header in set_cookie_headers:
        match = pattern.search(header or "")
        if match and match.group(1).strip():
            return match.group(1).strip()
    return None


def extract_artifacts(
    response: httpx.Response,
    *,
    session_cookie_name: str,
    csrf_header_name: str,
    expect_json: bool = True,
) -> ExtractedArtifacts:
    """Extract the session cookie and CSRF token from a login response.

    Missing artifacts are not errors; the returned value simply lacks them.

    Raises:
        ExtractionError: If ``expect_json`` and the body is not valid JSON
    """
    body: Any = None
    if expect_json:
        try:
            body = response.json()
        except (json.JSONDecodeError, UnicodeDecodeError, ValueError) as exc:
            raise ExtractionError(
                f"Login response from {response.request.url} is not JSON: {response.text[:200]!r}"
            ) from exc
    else:
        body = response.text

    csrf_token = (response.headers.get(csrf_header_name) or "").strip() or None
    session_cookie = find_cookie_value(response.headers.get_list("set-cookie"), session_cookie_name)

    logger.debug(
        "Extracted artifacts: session_cookie=%s csrf_token=%s",
        "yes" if session_cookie else "no",
        "yes" if csrf_token else "no",
    )
    return ExtractedArtifacts(session_cookie=session_cookie, csrf_token=csrf_token, body=body)


def artifacts_from_cookies(
    cookies: Iterable[Mapping[str, Any]],
    *,
    session_cookie_name: str,
    csrf_cookie_name: str,
) -> ExtractedArtifacts:
    """Build artifacts from a Playwright ``context.cookies()`` list."""
    session_cookie = None
    csrf_token = None
    for cookie in cookies:
        name = cookie.get("name")
        value = (cookie.get("value") or "").strip()
        if not value:
            continue
        if name == session_cookie_name:
            session_cookie = value
        elif name == csrf_cookie_name:
            csrf_token = value
    return ExtractedArtifacts(session_cookie=session_cookie, csrf_token=csrf_token)
