"""MCP client that posts JSON-RPC requests and listens for server-sent events."""

from __future__ import annotations

import json
import threading
import uuid
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any, Union

import requests

from mcpcore.client_state import ClientState, Initializer
from mcpcore.context import Context, ContextUpdate, MemoryBlock, new_context
from mcpcore.jsonrpc import JSONRPCRequest, JSONRPCResponse
from mcpcore.logger import Logger
from mcpcore.protocol import MCPNotification

HTTP_TIMEOUT = 30.0
RECONNECT_DELAY = 2.0
_DATA_PREFIX = "data: "

Raw = Union[bytes, str]
MessageHandler = Callable[[str], Any]


class ClientError(Exception):
    """Raised when the client fails to talk to the server or handle a message."""


def _parse_update(raw: Raw) -> ContextUpdate:
    return ContextUpdate.from_dict(json.loads(raw))


class MCPClient:
    """Client that sends requests over HTTP and receives server-sent events.

    Call handshake() after construction to establish the client state.
    """

    def __init__(
        self,
        server_url: str,
        init_url: str,
        client_id: str,
        session: requests.Session | None = None,
        logger: Logger | None = None,
        state: Initializer | None = None,
    ) -> None:
        self.server_url = server_url
        self.init_url = init_url
        self.client_id = client_id
        self.contexts: dict[str, Context] = {}
        self.state: Initializer | None = state
        self._session = session if session is not None else requests.Session()
        self._log = logger if logger is not None else Logger("MCPClient", client_id)
        self._lock = threading.Lock()

    # ---- transport ----

    def send(self, data: JSONRPCRequest) -> None:
        """POST a JSON-RPC request; the server must answer 204."""
        body = json.dumps(data.to_dict(), separators=(",", ":")).encode("utf-8")
        try:
            resp = self._session.post(
                self.server_url,
                data=body,
                headers={"Content-Type": "application/json", "X-Client-ID": self.client_id},
                timeout=HTTP_TIMEOUT,
            )
        except requests.RequestException as exc:
            raise ClientError(str(exc)) from exc
        with resp:
            if resp.status_code != 204:
                raise ClientError(f"received non-204 response: {resp.status_code}")

    def listen(self, handler: MessageHandler, stop: threading.Event | None = None) -> None:
        """Stream server-sent events and pass each data payload to the handler.

        Reconnects after the stream ends until the stop event is set. An
        exception from the handler stops listening and propagates.
        """
        if stop is None:
            stop = threading.Event()
        url = f"{self.server_url}?id={self.client_id}"
        while not stop.is_set():
            try:
                resp = self._session.get(
                    url,
                    headers={"Accept": "text/event-stream"},
                    stream=True,
                    timeout=HTTP_TIMEOUT,
                )
            except requests.RequestException as exc:
                raise ClientError(f"client connection error: {exc}") from exc
            with resp:
                if resp.status_code != 200:
                    raise ClientError(f"received non-200 return code: {resp.status_code}")
                try:
                    for raw_line in resp.iter_lines():
                        if stop.is_set():
                            return
                        line = (
                            raw_line.decode("utf-8")
                            if isinstance(raw_line, bytes)
                            else raw_line
                        )
                        if line.startswith(_DATA_PREFIX):
                            handler(line[len(_DATA_PREFIX):])
                except requests.RequestException as exc:
                    raise ClientError(str(exc)) from exc
            if stop.wait(RECONNECT_DELAY):
                return

    # ---- handshake ----

    def handshake(self) -> None:
        """Run the initialize handshake with the server."""
        if self.state is None:
            self.state = ClientState(self.init_url)
        state = self.state

        try:
            init_request = state.create_initialize_request()
        except Exception as exc:
            raise ClientError(f"client failed to create initialize request: {exc}") from exc

        try:
            init_response = state.send_init_request(init_request)
        except Exception as exc:
            raise ClientError(f"client init request failed: {exc}") from exc

        try:
            response = JSONRPCResponse.from_dict(json.loads(init_response))
        except (TypeError, ValueError):
            response = JSONRPCResponse(jsonrpc="")
        if response.error is not None:
            raise ClientError(f"server returned JSON-RPC error: {response.error!r}")

        try:
            state.process_initialize_response(response)
        except Exception as exc:
            raise ClientError(
                f"client failed to process initialize response: {exc}"
            ) from exc

        if not (state.negotiated_version and state.has_server_info()):
            raise ClientError(
                "client handshake failed. no negotiated version or server info retrieved"
            )

        try:
            notification = state.create_initialized_notification()
        except Exception as exc:
            raise ClientError(
                f"client failed to create initialized notification: {exc}"
            ) from exc
        try:
            state.send_init_notification(notification)
        except Exception as exc:
            raise ClientError(f"client failed to send init notification: {exc}") from exc

        self._log.info(f"HANDSHAKE COMPLETE: Client Initialized: {state.initialized}")
        self._log.info(f"Negotiated Protocol Version: {state.negotiated_version}")

    # ---- notifications ----

    def handle_notification(self, method: MCPNotification | str, raw: Raw) -> None:
        """Dispatch a server notification to the matching handler."""
        handlers = {
            MCPNotification.CONTEXT_UPDATE: self.handle_context_update,
            MCPNotification.CONTEXT_CLEAR: self.handle_context_clear,
            MCPNotification.MEMORY_APPEND: self.handle_memory_append,
            MCPNotification.MEMORY_REPLACE: self.handle_memory_replace,
        }
        name = method.value if isinstance(method, MCPNotification) else method
        try:
            key = MCPNotification(name)
        except ValueError:
            key = None
        handle = handlers.get(key) if key is not None else None
        if handle is None:
            raise ClientError(f"unsupported notification method: {name}")
        handle(raw)

    def handle_context_update(self, raw: Raw) -> None:
        """Apply an update to this client's context, creating it if needed."""
        update = _parse_update(raw)
        with self._lock:
            ctx = self.contexts.get(self.client_id)
            if ctx is None:
                ctx = new_context({})
                self.contexts[self.client_id] = ctx
            ctx.apply_update(update)

    def handle_context_clear(self, raw: Raw) -> None:
        """Replace this client's context with a fresh one keeping its metadata."""
        _parse_update(raw)
        with self._lock:
            ctx = self.contexts.get(self.client_id)
            if ctx is None:
                raise ClientError(f"no context for client {self.client_id!r}")
            self.contexts[self.client_id] = new_context(ctx.metadata)

    def handle_memory_append(self, raw: Raw) -> None:
        """Append memory blocks to this client's context for each matching context id."""
        update = _parse_update(raw)
        blocks = update.append or []
        with self._lock:
            matches = sum(1 for ctx in self.contexts.values() if ctx.id == update.id)
            for _ in range(matches):
                self.contexts[self.client_id].memory.extend(blocks)

    def handle_memory_replace(self, raw: Raw) -> None:
        """Replace the content of memory blocks whose ids match the update's."""
        update = _parse_update(raw)
        replacements = update.append or []
        with self._lock:
            ctx = self.contexts.get(self.client_id)
            if ctx is None:
                return
            for memory in ctx.memory:
                for replacement in replacements:
                    if memory.id == replacement.id:
                        memory.update_content(replacement.content)

    # ---- context access ----

    def client_context(self) -> Context | None:
        """Return this client's context, or None if there is none."""
        with self._lock:
            return self.contexts.get(self.client_id)

    def append_assistant_response(self, content: str) -> None:
        """Record an assistant reply in this client's context, if it has one."""
        with self._lock:
            ctx = self.contexts.get(self.client_id)
            if ctx is None:
                return
            ctx.apply_update(
                ContextUpdate(
                    id=ctx.id,
                    metadata=ctx.metadata,
                    append=[
                        MemoryBlock(
                            id=str(uuid.uuid4()),
                            role="assistant",
                            content=content,
                            time=datetime.now(timezone.utc),
                        )
                    ],
                )
            )