"""Message subscription (push channel).

Speaks the ``graphql-ws`` WebSocket sub-protocol and translates ``data``
frames into :class:`pydevsync.state.events.MessageEvent`.

Within one open stream, events arrive in server emission order. Nothing is
guaranteed across reopens; the client pairs every reopen with a resync.
"""

from __future__ import annotations

import contextlib
import json
import logging
from collections.abc import AsyncIterator, Mapping
from typing import Any, Protocol

import aiohttp
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from pydevsync._api.queries import MESSAGE_SUBSCRIPTION
from pydevsync._constants import GRAPHQL_WS_PROTOCOL
from pydevsync.config import DevToolsConfig
from pydevsync.exceptions import DevSyncChannelError
from pydevsync.models.message import Message
from pydevsync.state.events import EventKind, MessageEvent

_logger = logging.getLogger(__name__)

_OPERATION_ID = "1"


class PushChannel(Protocol):
    def open(self, resume_cursor: str | None) -> AsyncIterator[MessageEvent]: ...

    async def close(self) -> None: ...


class _MessageEdge(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    type: EventKind
    cursor: str | None = None
    node: dict[str, Any] = Field(...)


class _SubscriptionData(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    messages: _MessageEdge


class _SubscriptionPayload(BaseModel):
    """Minimal Pydantic envelope for ``data`` frame payloads."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    data: _SubscriptionData


def parse_subscription_payload(payload: Mapping[str, Any]) -> MessageEvent | None:
    """Build an event from a ``data`` frame payload, or ``None`` if it is malformed."""
    try:
        envelope = _SubscriptionPayload.model_validate(payload)
        edge = envelope.data.messages
        return MessageEvent(kind=edge.type, cursor=edge.cursor, node=Message.model_validate(edge.node))
    except ValidationError:
        _logger.debug("Skipping malformed subscription payload", exc_info=True)
        return None


async def iter_subscription(
    ws: Any,
    resume_cursor: str | None,
    *,
    logger: logging.Logger | None = None,
) -> AsyncIterator[MessageEvent]:
    """Run the subscription handshake on *ws* and yield events until ``complete``.

    *ws* is an :class:`aiohttp.ClientWebSocketResponse` or anything with the
    same ``send_json`` / async-iteration surface.
    """
    log = logger or _logger
    await ws.send_json({"type": "connection_init", "payload": {}})
    await ws.send_json(
        {
            "id": _OPERATION_ID,
            "type": "start",
            "payload": {
                "query": MESSAGE_SUBSCRIPTION,
                "variables": {"after": resume_cursor},
                "operationName": "MessageSubscription",
            },
        }
    )
    log.debug("Message subscription started after=%s", resume_cursor)

    async for msg in ws:
        if msg.type == aiohttp.WSMsgType.ERROR:
            raise DevSyncChannelError(f"Subscription socket error: {ws.exception()}")
        if msg.type != aiohttp.WSMsgType.TEXT:
            continue

        try:
            frame = json.loads(msg.data)
        except json.JSONDecodeError:
            log.debug("Skipping non-JSON subscription frame: %.64s", msg.data)
            continue
        if not isinstance(frame, dict):
            continue

        frame_type = frame.get("type")
        if frame_type == "ka":
            continue
        if frame_type == "connection_ack":
            log.debug("Subscription connection acknowledged")
            continue
        if frame_type == "connection_error":
            raise DevSyncChannelError(f"Subscription connection rejected: {frame.get('payload')}")
        if frame.get("id") != _OPERATION_ID:
            continue
        if frame_type == "error":
            raise DevSyncChannelError(f"Subscription error: {frame.get('payload')}")
        if frame_type == "complete":
            log.debug("Subscription completed by server")
            return
        if frame_type == "data":
            payload = frame.get("payload")
            if not isinstance(payload, dict):
                continue
            if payload.get("errors"):
                log.warning("Subscription data frame carried errors: %s", payload["errors"])
            event = parse_subscription_payload(payload)
            if event is not None:
                yield event

    raise DevSyncChannelError("Subscription socket closed")


class GraphQLSubscriptionChannel:
    """Push channel backed by an aiohttp WebSocket."""

    def __init__(
        self,
        config: DevToolsConfig,
        http_session: aiohttp.ClientSession,
        *,
        heartbeat: float | None = 30.0,
        logger: logging.Logger | None = None,
    ) -> None:
        self._config = config
        self._http = http_session
        self._heartbeat = heartbeat
        self._logger = logger or _logger
        self._ws: aiohttp.ClientWebSocketResponse | None = None
        self._closed = False

    @property
    def is_open(self) -> bool:
        return self._ws is not None and not self._ws.closed

    async def open(self, resume_cursor: str | None) -> AsyncIterator[MessageEvent]:
        """Open the stream from *resume_cursor*.

        Raises :class:`DevSyncChannelError` when the socket cannot be opened or
        drops. After :meth:`close` the stream simply ends.
        """
        if self._closed:
            return
        url = self._config.subscription_url
        try:
            ws = await self._http.ws_connect(url, protocols=(GRAPHQL_WS_PROTOCOL,), heartbeat=self._heartbeat)
        except (aiohttp.ClientError, TimeoutError) as exc:
            raise DevSyncChannelError(f"Cannot open subscription at {url}: {exc}") from exc

        self._ws = ws
        try:
            async for event in iter_subscription(ws, resume_cursor, logger=self._logger):
                yield event
        except DevSyncChannelError:
            if self._closed:
                return
            raise
        finally:
            self._ws = None
            if not ws.closed:
                with contextlib.suppress(aiohttp.ClientError, ConnectionError, RuntimeError):
                    await ws.send_json({"id": _OPERATION_ID, "type": "stop"})
                    await ws.send_json({"type": "connection_terminate"})
                await ws.close()

    async def close(self) -> None:
        self._closed = True
        ws = self._ws
        if ws is not None and not ws.closed:
            await ws.close()
