"""GraphQL-over-HTTP transport."""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from typing import Any, Protocol

import aiohttp

from pydevsync._constants import USER_AGENT
from pydevsync._redact import redact_for_log
from pydevsync.config import DevToolsConfig
from pydevsync.exceptions import DevSyncApiError, DevSyncTransportError

_logger = logging.getLogger(__name__)


class Transport(Protocol):
    """Structural transport interface used by the endpoint modules.

    :class:`GraphQLTransport` is the HTTP implementation; the client also
    accepts any object with a matching ``execute``.
    """

    async def execute(
        self,
        query: str,
        variables: Mapping[str, Any] | None = None,
        *,
        operation_name: str | None = None,
    ) -> dict[str, Any]: ...


class GraphQLTransport:
    """POST GraphQL operations and return their ``data`` object."""

    def __init__(self, config: DevToolsConfig, http_session: aiohttp.ClientSession) -> None:
        self._config = config
        self._http = http_session
        self._timeout = aiohttp.ClientTimeout(total=config.request_timeout)

    async def execute(
        self,
        query: str,
        variables: Mapping[str, Any] | None = None,
        *,
        operation_name: str | None = None,
    ) -> dict[str, Any]:
        """Run a query or mutation.

        1. POST ``{"query", "variables", "operationName"}`` as JSON
        2. Reject non-200 replies and non-JSON bodies
        3. Raise :class:`DevSyncApiError` when the reply carries ``errors``
        4. Return the ``data`` object
        """
        url = self._config.graphql_url
        endpoint = operation_name or "graphql"
        body: dict[str, Any] = {"query": query, "variables": dict(variables or {})}
        if operation_name:
            body["operationName"] = operation_name

        headers = {
            "accept": "application/json",
            "content-type": "application/json",
            "user-agent": USER_AGENT,
        }

        if self._config.api_trace_enabled:
            _logger.debug("GraphQL request %s %s", url, redact_for_log(body))
        else:
            _logger.debug("POST %s operation=%s", url, endpoint)

        try:
            async with self._http.post(url, json=body, headers=headers, timeout=self._timeout) as resp:
                text = await resp.text()
                if resp.status != 200:
                    raise DevSyncTransportError(
                        f"HTTP {resp.status} from {endpoint}: {text[:200]}",
                        status_code=resp.status,
                        endpoint=endpoint,
                    )
        except DevSyncTransportError:
            raise
        except (aiohttp.ClientError, TimeoutError) as exc:
            raise DevSyncTransportError(
                f"Request for {endpoint} failed: {exc}",
                endpoint=endpoint,
            ) from exc

        try:
            reply = json.loads(text)
        except json.JSONDecodeError as exc:
            raise DevSyncTransportError(
                f"Invalid JSON from {endpoint}: {text[:200]}",
                endpoint=endpoint,
            ) from exc

        if self._config.api_trace_enabled:
            _logger.debug("GraphQL response %s %s", endpoint, redact_for_log(reply))

        if not isinstance(reply, dict):
            raise DevSyncApiError(f"GraphQL reply for {endpoint} is not an object", operation=endpoint)

        errors = reply.get("errors")
        if errors:
            messages = [str(err.get("message", err)) if isinstance(err, dict) else str(err) for err in errors]
            raise DevSyncApiError(
                f"GraphQL errors from {endpoint}: {'; '.join(messages)}",
                errors=errors,
                operation=endpoint,
            )

        data = reply.get("data")
        if not isinstance(data, dict):
            raise DevSyncApiError(f"GraphQL reply for {endpoint} has no data", operation=endpoint)
        return data
