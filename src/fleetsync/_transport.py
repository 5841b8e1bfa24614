"""HTTP transport for the document service."""

from __future__ import annotations

import json
import logging
from typing import Any
from urllib.parse import quote

import aiohttp

from fleetsync._constants import API_PREFIX, USER_AGENT
from fleetsync._redact import redact_for_log, redact_headers
from fleetsync.config import FleetConfig
from fleetsync.exceptions import FleetTransportError

_logger = logging.getLogger(__name__)


class HttpTransport:
    """JSON-over-HTTP transport bound to one project of the document service."""

    def __init__(self, config: FleetConfig, http_session: aiohttp.ClientSession) -> None:
        self._config = config
        self._http = http_session
        self._timeout = aiohttp.ClientTimeout(total=config.request_timeout)

    def collection_path(self, collection: str, doc_id: str | None = None) -> str:
        path = f"{API_PREFIX}/projects/{quote(self._config.project, safe='')}/collections/{quote(collection, safe='')}/documents"
        if doc_id is not None:
            path = f"{path}/{quote(doc_id, safe='')}"
        return path

    def _headers(self) -> dict[str, str]:
        headers = {
            "accept": "application/json",
            "user-agent": USER_AGENT,
        }
        if self._config.api_key:
            headers["authorization"] = f"Bearer {self._config.api_key}"
        return headers

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, str] | None = None,
        payload: dict[str, Any] | None = None,
    ) -> Any:
        """Send one request and return the decoded JSON body (``None`` when empty)."""
        url = f"{self._config.base_url.rstrip('/')}{path}"
        headers = self._headers()

        if self._config.api_trace_enabled:
            _logger.debug(
                "%s %s params=%s headers=%s payload=%s",
                method,
                url,
                params,
                redact_headers(headers),
                redact_for_log(payload),
            )
        else:
            _logger.debug("%s %s", method, url)

        try:
            async with self._http.request(
                method,
                url,
                params=params,
                json=payload,
                headers=headers,
                timeout=self._timeout,
            ) as resp:
                text = await resp.text()
                status = resp.status
        except aiohttp.ClientError as exc:
            raise FleetTransportError(f"Request to {path} failed: {exc}", endpoint=path) from exc
        except TimeoutError as exc:
            raise FleetTransportError(f"Request to {path} timed out", endpoint=path) from exc

        if status >= 400:
            raise FleetTransportError(
                f"HTTP {status} from {path}: {text[:200]}",
                status_code=status,
                endpoint=path,
            )

        if not text.strip():
            return None

        try:
            body = json.loads(text)
        except json.JSONDecodeError as exc:
            raise FleetTransportError(
                f"Invalid JSON from {path}: {text[:200]}",
                status_code=status,
                endpoint=path,
            ) from exc

        if self._config.api_trace_enabled:
            _logger.debug("%s %s -> %s %s", method, url, status, redact_for_log(body))
        return body
