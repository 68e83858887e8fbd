"""Logging of outgoing backend requests with secrets masked."""

import json
import logging
from collections.abc import Mapping
from typing import Any

logger = logging.getLogger(__name__)

MASK = "***"
SENSITIVE_HEADERS = frozenset({"authorization", "cookie", "x-api-key"})
# HAFAS sends its access id inside the JSON envelope
SENSITIVE_BODY_KEYS = frozenset({"auth"})
DEFAULT_MAX_BODY_CHARS = 2000

Params = Mapping[str, Any] | list[tuple[str, Any]]


def query_string(params: Params | None) -> str:
    """Render parameters in request order, repeated keys included."""
    if not params:
        return ""
    pairs = params.items() if isinstance(params, Mapping) else params
    return "&".join(f"{key}={value}" for key, value in pairs)


def mask_headers(headers: Mapping[str, str]) -> dict[str, str]:
    return {
        name: MASK if name.lower() in SENSITIVE_HEADERS else value
        for name, value in headers.items()
    }


def mask_body(body: str) -> str:
    """Compact a JSON body and mask its top-level secrets. Other text is kept."""
    try:
        document = json.loads(body)
    except ValueError:
        return body
    if isinstance(document, dict):
        document = {
            key: MASK if key in SENSITIVE_BODY_KEYS else value for key, value in document.items()
        }
    return json.dumps(document, separators=(",", ":"), ensure_ascii=False)


class RequestLogger:
    """Writes one log record per outgoing request when enabled.

    The record holds the method and URL with its query on the first line,
    then the masked headers and the (truncated) body if there is one.
    """

    def __init__(self, enabled: bool = False, max_body_chars: int = DEFAULT_MAX_BODY_CHARS):
        self.enabled = enabled
        self._max_body_chars = max_body_chars

    def describe(
        self,
        method: str,
        url: str,
        params: Params | None = None,
        headers: Mapping[str, str] | None = None,
        body: str | None = None,
    ) -> str:
        query = query_string(params)
        target = f"{url}{'&' if '?' in url else '?'}{query}" if query else url
        lines = [f"{method} {target}"]
        if headers:
            lines.append(f"headers: {json.dumps(mask_headers(headers), sort_keys=True)}")
        if body:
            text = mask_body(body)
            if len(text) > self._max_body_chars:
                text = f"{text[: self._max_body_chars]}... ({len(text)} chars)"
            lines.append(f"body: {text}")
        return "\n".join(lines)

    def log(
        self,
        method: str,
        url: str,
        params: Params | None = None,
        headers: Mapping[str, str] | None = None,
        body: str | None = None,
    ) -> None:
        if not self.enabled:
            return
        logger.info(f"Backend request: {self.describe(method, url, params, headers, body)}")
