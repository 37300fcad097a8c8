"""MCP method names and a registry that dispatches requests and notifications."""

from __future__ import annotations

import threading
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class MCPMethod(str, Enum):
    """Request methods defined by the protocol."""

    INITIALIZE = "initialize"
    PING = "ping"
    RESOURCES_LIST = "resources/list"
    RESOURCES_TEMPLATES_LIST = "resources/templates/list"
    RESOURCES_READ = "resources/read"
    PROMPTS_LIST = "prompts/list"
    PROMPTS_GET = "prompts/get"
    TOOLS_LIST = "tools/list"
    TOOLS_CALL = "tools/call"


class MCPNotification(str, Enum):
    """Notification methods exchanged between client and server."""

    CONTEXT_UPDATE = "context/update"
    CONTEXT_CLEAR = "context/clear"
    MEMORY_APPEND = "memory/append"
    MEMORY_REPLACE = "memory/replace"
    TOOL_RESPONSE = "tool/response"
    LOG_EVENT = "log/event"


@dataclass
class RequestHandlerExtra:
    """Contextual information handed to a request handler."""

    context: Mapping[str, Any] = field(default_factory=dict)


class HandlerNotFoundError(LookupError):
    """Raised when no handler is registered for a method."""


RequestHandler = Callable[[Any, RequestHandlerExtra], Any]
NotificationHandler = Callable[[Any], Any]


@dataclass(frozen=True)
class _Entry:
    schema: Any
    handler: Callable[..., Any]


def _key(method: str | Enum) -> str:
    return method.value if isinstance(method, Enum) else method


class Protocol:
    """Thread-safe registry of request and notification handlers."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._request_handlers: dict[str, _Entry] = {}
        self._notification_handlers: dict[str, _Entry] = {}

    def set_request_handler(self, method: str, schema: Any, handler: RequestHandler) -> None:
        """Register or replace the handler for a request method."""
        with self._lock:
            self._request_handlers[_key(method)] = _Entry(schema, handler)

    def set_notification_handler(
        self, method: str, schema: Any, handler: NotificationHandler
    ) -> None:
        """Register or replace the handler for a notification method."""
        with self._lock:
            self._notification_handlers[_key(method)] = _Entry(schema, handler)

    def handle_request(
        self, method: str, request: Any, extra: RequestHandlerExtra | None = None
    ) -> Any:
        """Dispatch a request and return what its handler returns."""
        with self._lock:
            entry = self._request_handlers.get(_key(method))
        if entry is None:
            raise HandlerNotFoundError("method not found")
        return entry.handler(request, extra if extra is not None else RequestHandlerExtra())

    def handle_notification(self, method: str, notification: Any) -> None:
        """Dispatch a notification to its handler."""
        with self._lock:
            entry = self._notification_handlers.get(_key(method))
        if entry is None:
            raise HandlerNotFoundError("notification method not found")
        entry.handler(notification)