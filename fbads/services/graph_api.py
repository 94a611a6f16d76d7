"""Graph API request helper shared by every audience operation.

Responsibilities:
    * Build versioned Graph API URLs
    * Issue a single HTTP call (query string for GET/DELETE, form body for POST)
    * Parse the JSON body and turn Graph ``error`` objects into exceptions
    * Retry transient platform failures and throttle call frequency
"""
from __future__ import annotations

import re
import threading
import time
from typing import Any, Dict, Mapping, Optional

import requests

from fbads import config
from fbads.utils.logging import get_logger

LOG = get_logger("fbads.graph_api")

_METHODS = ("GET", "POST", "DELETE")
# Graph error codes documented as temporary / throttling conditions.
_TRANSIENT_CODES = frozenset({1, 2, 4, 17, 341})
_TOKEN_PATTERN = re.compile(r"(access_token=)[^&\s'\"]+")


class GraphAPIError(RuntimeError):
    """Base error for Graph API failures."""

    def __init__(
        self,
        message: str,
        *,
        status: Optional[int] = None,
        code: Optional[int] = None,
        error_subcode: Optional[int] = None,
        error_type: Optional[str] = None,
        fbtrace_id: Optional[str] = None,
        is_transient: bool = False,
        payload: Any = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status = status
        self.code = code
        self.error_subcode = error_subcode
        self.error_type = error_type
        self.fbtrace_id = fbtrace_id
        self.is_transient = is_transient
        self.payload = payload

    def __str__(self) -> str:
        parts = [self.message]
        if self.code is not None:
            parts.append(f"code={self.code}")
        if self.error_subcode is not None:
            parts.append(f"subcode={self.error_subcode}")
        if self.status is not None:
            parts.append(f"status={self.status}")
        if self.fbtrace_id:
            parts.append(f"fbtrace_id={self.fbtrace_id}")
        return " ".join(parts)


class GraphTransportError(GraphAPIError):
    """Raised when the HTTP call itself failed (connection, timeout)."""


class GraphResponseError(GraphAPIError):
    """Raised for non-2xx responses, Graph error objects or unparsable bodies."""


def redact(text: str) -> str:
    return _TOKEN_PATTERN.sub(r"\1***", text or "")


def graph_url(path: str, *, api_version: Optional[str] = None) -> str:
    version = (api_version or config.graph_api_version()).strip("/")
    clean = str(path or "").lstrip("/")
    return f"{config.graph_api_base()}/{version}/{clean}"


_THROTTLE_LOCK = threading.Lock()
_LAST_API_CALL = 0.0


def _throttle_wait():
    global _LAST_API_CALL
    interval = config.min_request_interval()
    if interval <= 0:
        return
    with _THROTTLE_LOCK:
        now = time.time()
        delta = now - _LAST_API_CALL
        if delta < interval:
            time.sleep(interval - delta)
        _LAST_API_CALL = time.time()


def _as_int(value: Any) -> Optional[int]:
    try:
        return int(value) if value is not None else None
    except (TypeError, ValueError):
        return None


def _error_from_response(status: int, data: Any) -> GraphResponseError:
    err = data.get("error") if isinstance(data, dict) else None
    if not isinstance(err, dict):
        return GraphResponseError(
            "http_error",
            status=status,
            is_transient=status >= 500,
            payload=data,
        )
    code = _as_int(err.get("code"))
    transient = bool(err.get("is_transient")) or code in _TRANSIENT_CODES or status >= 500
    return GraphResponseError(
        str(err.get("message") or "graph_error"),
        status=status,
        code=code,
        error_subcode=_as_int(err.get("error_subcode")),
        error_type=err.get("type"),
        fbtrace_id=err.get("fbtrace_id"),
        is_transient=transient,
        payload=data,
    )


def _send(http: Any, verb: str, url: str, params: Dict[str, Any], timeout: float) -> Any:
    _throttle_wait()
    try:
        if verb == "POST":
            r = http.request(verb, url, data=params, timeout=timeout)
        else:
            r = http.request(verb, url, params=params, timeout=timeout)
    except requests.RequestException as exc:
        raise GraphTransportError(redact(str(exc)), is_transient=True) from exc
    status = r.status_code
    body = r.text or ""
    data: Any = {}
    if body.strip():
        try:
            data = r.json()
        except ValueError as exc:
            raise GraphResponseError(
                "invalid_json",
                status=status,
                is_transient=status >= 500,
                payload={"raw": body[:500]},
            ) from exc
    if not 200 <= status < 300 or (isinstance(data, dict) and isinstance(data.get("error"), dict)):
        raise _error_from_response(status, data)
    return data


def request(
    path: str,
    method: str = "GET",
    params: Optional[Mapping[str, Any]] = None,
    *,
    api_version: Optional[str] = None,
    timeout: Optional[float] = None,
    session: Optional[requests.Session] = None,
) -> Any:
    """Issue one Graph API call and return the parsed JSON body.

    ``session`` may be a ``requests.Session`` (anything with a compatible
    ``request`` method); the module-level ``requests`` API is used otherwise.
    Transient failures are retried up to ``config.max_retries()`` times.
    """
    verb = (method or "GET").upper()
    if verb not in _METHODS:
        raise ValueError(f"unsupported HTTP method: {method!r}")
    url = graph_url(path, api_version=api_version)
    payload = dict(params or {})
    http = session if session is not None else requests
    wait = config.request_timeout() if timeout is None else timeout
    attempts = config.max_retries() + 1
    delay = config.retry_delay()
    for attempt in range(1, attempts + 1):
        LOG.debug("Graph API %s %s (attempt %s/%s)", verb, path, attempt, attempts)
        try:
            return _send(http, verb, url, payload, wait)
        except GraphAPIError as exc:
            if not exc.is_transient or attempt >= attempts:
                LOG.warning("Graph API %s %s failed: %s", verb, path, exc)
                raise
            LOG.warning(
                "Graph API %s %s transient failure, retrying in %.1fs: %s",
                verb, path, delay * attempt, exc,
            )
            time.sleep(delay * attempt)
    raise AssertionError("unreachable")  # pragma: no cover


__all__ = [
    "GraphAPIError",
    "GraphTransportError",
    "GraphResponseError",
    "graph_url",
    "redact",
    "request",
]
