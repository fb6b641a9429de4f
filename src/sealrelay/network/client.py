"""
HTTP client for the external collaborators of the pipeline:

  fetch_envelope()  -> GET the encrypted payload from the data source
  forward(records)  -> POST validated records to the sink ({records, timestamp, action: "process"})
  clear()           -> POST {action: "clear", timestamp} to the sink's clear hook
  check_health()    -> GET the sink's health URL, boolean result only
  fetch_raw()       -> GET the plain data webhook, returned as-is

Every call is bounded twice: by the httpx timeout and by an outer
asyncio.wait_for, so a peer that never answers still fails with TimeoutError.
"""
from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, List, Optional

import httpx

from sealrelay import __version__
from sealrelay.core.config import Settings
from sealrelay.core.exceptions import ConfigurationError, SinkRejectedError, TimeoutError, TransportError
from sealrelay.core.models import DEFAULT_ALGORITHM, UserRecord

logger = logging.getLogger(__name__)

USER_AGENT = f"sealrelay/{__version__}"
MESSAGE_EXCERPT = 200


def _utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


def _body(resp: httpx.Response) -> Any:
    try:
        return resp.json()
    except ValueError:
        return resp.text


def _remote_message(resp: httpx.Response) -> str:
    body = _body(resp)
    if isinstance(body, dict) and isinstance(body.get("message"), str):
        return body["message"][:MESSAGE_EXCERPT]
    return (resp.text or resp.reason_phrase)[:MESSAGE_EXCERPT]


def unwrap_envelope(body: Any) -> Any:
    """Unwrap ``{success, data: {encrypted: {...}, algorithm}}`` into a flat mapping."""
    if not isinstance(body, dict) or not body.get("success"):
        return body
    data = body.get("data")
    if not isinstance(data, dict) or not isinstance(data.get("encrypted"), dict):
        return body
    envelope = dict(data["encrypted"])
    envelope.setdefault("algorithm", data.get("algorithm") or DEFAULT_ALGORITHM)
    return envelope


class WebhookClient:
    def __init__(
        self,
        settings: Settings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.settings = settings
        self._client = httpx.AsyncClient(
            headers={"User-Agent": USER_AGENT, "Accept": "application/json"},
            timeout=settings.request_timeout,
            transport=transport,
        )

    async def __aenter__(self) -> "WebhookClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def close(self) -> None:
        await self._client.aclose()

    async def _request(
        self,
        operation: str,
        method: str,
        url: str,
        timeout: float,
        body: Optional[dict] = None,
    ) -> httpx.Response:
        # error messages reach callers; the URL only goes to the log
        try:
            return await asyncio.wait_for(
                self._client.request(method, url, json=body, timeout=timeout),
                timeout,
            )
        except (asyncio.TimeoutError, httpx.TimeoutException):
            logger.warning("%s %s timed out after %gs", method, url, timeout)
            raise TimeoutError(f"{operation} request timed out after {timeout:g}s") from None
        except httpx.HTTPError as e:
            logger.warning("%s %s failed: %s", method, url, e.__class__.__name__)
            raise TransportError(f"{operation} request failed: {e.__class__.__name__}") from e

    async def fetch_envelope(self) -> Any:
        url = self.settings.encrypted_data_url
        logger.info("fetching encrypted payload")
        resp = await self._request("fetch", "GET", url, self.settings.request_timeout)
        if not resp.is_success:
            raise TransportError(
                f"fetch failed ({resp.status_code}): {_remote_message(resp)}",
                status_code=resp.status_code,
            )
        logger.info("fetched payload (status=%d, bytes=%d)", resp.status_code, len(resp.content))
        return unwrap_envelope(_body(resp))

    async def forward(self, records: List[UserRecord]) -> Any:
        body = {
            "records": [record.to_dict() for record in records],
            "timestamp": _utc_timestamp(),
            "action": "process",
        }
        logger.info("forwarding %d records to sink", len(records))
        resp = await self._request("forward", "POST", self.settings.sink_url, self.settings.request_timeout, body)
        if not resp.is_success:
            raise SinkRejectedError(resp.status_code, _remote_message(resp))
        logger.info("sink accepted records (status=%d)", resp.status_code)
        return _body(resp)

    async def clear(self) -> Any:
        body = {"action": "clear", "timestamp": _utc_timestamp()}
        logger.info("requesting sink clear")
        resp = await self._request("clear", "POST", self.settings.clear_url, self.settings.request_timeout, body)
        if not resp.is_success:
            raise SinkRejectedError(resp.status_code, _remote_message(resp))
        return _body(resp)

    async def check_health(self) -> bool:
        try:
            resp = await self._request(
                "health", "GET", self.settings.resolved_health_url, self.settings.health_timeout
            )
        except TransportError as e:
            logger.warning("sink unavailable: %s", e)
            return False
        if not resp.is_success:
            logger.warning("sink unavailable (status=%d)", resp.status_code)
            return False
        return True

    async def fetch_raw(self) -> Any:
        url = self.settings.data_url
        if not url:
            raise ConfigurationError("SEALRELAY_DATA_URL is not configured")
        resp = await self._request("data fetch", "GET", url, self.settings.request_timeout)
        if not resp.is_success:
            raise TransportError(
                f"data fetch failed ({resp.status_code}): {_remote_message(resp)}",
                status_code=resp.status_code,
            )
        return _body(resp)
