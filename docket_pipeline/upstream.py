"""Outbound HTTP calls with failures normalised into UpstreamResult values.

Nothing in this module raises across its boundary for transport or parse
problems, and nothing retries: the caller decides what a failure means.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union

import httpx

from .config import Settings
from .models import UpstreamResult

logger = logging.getLogger(__name__)

MAX_DETAIL_CHARS = 2000

# Statuses for failures that never got a usable upstream answer. 502 is kept
# apart from anything the upstream itself sends back for a 2xx with a bad body.
BAD_JSON_STATUS = 502
TRANSPORT_ERROR_STATUS = 503
TIMEOUT_STATUS = 504

QueryParams = Union[Mapping[str, Any], Sequence[Tuple[str, Any]]]


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _truncate(text: str, limit: int = MAX_DETAIL_CHARS) -> str:
    return text[:limit]


def _client(settings: Settings, transport: Optional[httpx.BaseTransport]) -> httpx.Client:
    return httpx.Client(
        timeout=settings.timeout_total,
        follow_redirects=True,
        transport=transport,
        headers={"user-agent": settings.user_agent},
    )


def _failure(url: str, status: int, error: str, details: Optional[str] = None,
             data: Any = None) -> UpstreamResult:
    return UpstreamResult(
        ok=False,
        status=status,
        url=url,
        fetched_at=_utc_now(),
        error=error,
        details=details,
        data=data,
    )


def _parse_response(url: str, resp: httpx.Response) -> UpstreamResult:
    text = resp.text

    if not resp.is_success:
        logger.error("HTTP %d for %s", resp.status_code, url)
        try:
            data = resp.json()
        except ValueError:
            data = None
        return _failure(url, resp.status_code, "Upstream error", _truncate(text), data)

    try:
        data = resp.json()
    except ValueError:
        logger.error("Unparsable JSON body (HTTP %d) from %s", resp.status_code, url)
        return _failure(url, BAD_JSON_STATUS, "Bad upstream JSON", _truncate(text))

    logger.info("Fetched OK: %s (HTTP %d)", url, resp.status_code)
    return UpstreamResult(
        ok=True,
        status=resp.status_code,
        url=url,
        fetched_at=_utc_now(),
        data=data,
    )


class UpstreamClient:
    """Thin JSON client over httpx.

    A fresh ``httpx.Client`` is opened per call inside a ``with`` block, so the
    connection is released on success, error and timeout alike.
    """

    def __init__(self, settings: Settings, *, transport: Optional[httpx.BaseTransport] = None) -> None:
        self.settings = settings
        self._transport = transport

    def _send(self, method: str, url: str, *, params: Optional[QueryParams] = None,
              headers: Optional[Dict[str, str]] = None, json_body: Any = None) -> UpstreamResult:
        try:
            with _client(self.settings, self._transport) as client:
                resp = client.request(method, url, params=params, headers=headers, json=json_body)
                return _parse_response(str(resp.request.url), resp)
        except httpx.TimeoutException as exc:
            logger.error("Timeout calling %s: %s", url, exc)
            return _failure(url, TIMEOUT_STATUS, "Upstream timeout", str(exc))
        except httpx.TransportError as exc:
            logger.error("Transport error calling %s: %s", url, exc)
            return _failure(url, TRANSPORT_ERROR_STATUS, "Upstream unreachable", str(exc))

    def fetch_json(self, url: str, token: str, *, params: Optional[QueryParams] = None) -> UpstreamResult:
        """GET a JSON document from the court-records API.

        Args:
            url: Endpoint URL.
            token: API token, sent as ``Authorization: Token <token>``.
            params: Query parameters; a list of pairs allows repeated keys.

        Returns:
            UpstreamResult with ``ok=True`` and parsed ``data``, or ``ok=False``
            with the status, an error string and a truncated raw body.
        """
        logger.info("GET %s", url)
        headers = {
            "authorization": f"Token {token}",
            "accept": "application/json",
            "cache-control": "no-cache",
        }
        return self._send("GET", url, params=params, headers=headers)

    def post_json(self, url: str, body: Any, *, headers: Optional[Dict[str, str]] = None) -> UpstreamResult:
        """POST a JSON body and normalise the JSON answer like fetch_json."""
        logger.info("POST %s", url)
        merged = {"accept": "application/json", "cache-control": "no-cache"}
        merged.update(headers or {})
        return self._send("POST", url, headers=merged, json_body=body)


def results_list(data: Any) -> List[Any]:
    """Return ``data['results']`` when it is a list, else an empty list."""
    if isinstance(data, dict) and isinstance(data.get("results"), list):
        return data["results"]
    return []
