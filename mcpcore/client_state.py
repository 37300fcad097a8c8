"""Client side of the MCP initialize handshake."""

from __future__ import annotations

import json
import uuid
from typing import Any, Protocol, runtime_checkable

import requests

from mcpcore.jsonrpc import JSONRPCRequest, JSONRPCResponse, Notification
from mcpcore.logger import Logger
from mcpcore.protocol import MCPMethod
from mcpcore.schema import (
    ClientCapabilities,
    ClientInfo,
    InitializeParams,
    InitializeResult,
    RootCapabilities,
    SamplingCapabilities,
    ServerCapabilities,
    ServerInfo,
)

HTTP_TIMEOUT = 30.0
SUPPORTED_VERSIONS = ("2024-10-01", "2024-11-05")


@runtime_checkable
class Initializer(Protocol):
    """What a client needs from a handshake state; real or stand-in."""

    negotiated_version: str
    server_info: ServerInfo | None
    initialized: bool

    def create_initialize_request(self) -> bytes: ...

    def send_init_request(self, init_request: bytes) -> bytes: ...

    def process_initialize_response(self, resp: JSONRPCResponse) -> None: ...

    def create_initialized_notification(self) -> bytes: ...

    def send_init_notification(self, notification: bytes) -> bytes: ...

    def has_server_info(self) -> bool: ...


class HandshakeError(Exception):
    """Raised when a step of the initialize handshake fails."""


def _compact(value: Any) -> bytes:
    return json.dumps(value, separators=(",", ":")).encode("utf-8")


class ClientState:
    """Negotiates the protocol version and records what the server announced."""

    def __init__(
        self,
        init_url: str,
        session: requests.Session | None = None,
        logger: Logger | None = None,
    ) -> None:
        self.init_url = init_url
        self.supported_versions: list[str] = list(SUPPORTED_VERSIONS)
        self.info = ClientInfo(name="Client", version="1.0.0")
        self.capabilities = ClientCapabilities(
            roots=RootCapabilities(list_changed=True),
            sampling=SamplingCapabilities(),
        )
        self.negotiated_version = ""
        self.server_caps: ServerCapabilities | None = ServerCapabilities()
        self.server_info: ServerInfo | None = ServerInfo()
        self.initialized = False
        self._session = session if session is not None else requests.Session()
        self._log = logger if logger is not None else Logger("CLIENT STATE", str(uuid.uuid4()))

    def has_server_info(self) -> bool:
        return self.server_info is not None

    def create_initialize_request(self) -> bytes:
        """Build the initialize request offering the latest supported version."""
        if not self.supported_versions:
            raise HandshakeError("client must support at least one protocol version")
        params = InitializeParams(
            protocol_version=self.supported_versions[-1],
            capabilities=self.capabilities,
            client_info=self.info,
        )
        request = JSONRPCRequest(
            id=str(uuid.uuid4()),
            method=MCPMethod.INITIALIZE.value,
            params=params.to_dict(),
        )
        return _compact(request.to_dict())

    def send_init_request(self, init_request: bytes) -> bytes:
        """POST the initialize request; the server must answer 204."""
        try:
            resp = self._session.post(
                self.init_url,
                data=init_request,
                headers={"Content-Type": "application/json"},
                timeout=HTTP_TIMEOUT,
            )
        except requests.RequestException as exc:
            raise HandshakeError(str(exc)) from exc
        with resp:
            if resp.status_code != 204:
                raise HandshakeError(f"unexpected status: {resp.status_code} {resp.reason}")
            return resp.content

    def process_initialize_response(self, resp: JSONRPCResponse) -> None:
        """Check the server's answer and record the negotiated version."""
        if resp.error is not None:
            raise HandshakeError(
                f"server returned error: code={resp.error.code}, message={resp.error.message}"
            )
        if resp.result is None:
            raise HandshakeError("server response missing 'result' field")
        try:
            result = InitializeResult.from_dict(resp.result)
        except (TypeError, ValueError) as exc:
            raise HandshakeError(f"failed to unmarshal initialize result: {exc}") from exc

        server_version = result.protocol_version
        if server_version not in self.supported_versions:
            self.initialized = False
            self._log.error(
                f"Server responded with unsupported version '{server_version}'. "
                f"Supported: {self.supported_versions}. Disconnecting."
            )
            raise HandshakeError(f"unsupported protocol version '{server_version}' from server")

        self.negotiated_version = server_version
        self.server_caps = result.capabilities
        self.server_info = result.server_info
        self._log.info(f"Handshake successful! Negotiated Version: {self.negotiated_version}")
        self._log.info(f"Server Info: {self.server_info!r}")
        self._log.info(f"Server Capabilities: {self.server_caps!r}")

    def create_initialized_notification(self) -> bytes:
        """Build the initialized notification and mark the client initialized."""
        if not self.negotiated_version or self.server_info is None:
            raise HandshakeError(
                "cannot send initialized notification before successful handshake"
            )
        body = _compact(Notification(method="notifications/initialized").to_dict())
        self._log.info(f"Sending Initialized Notification: {body.decode('utf-8')}")
        self.initialized = True
        return body

    def send_init_notification(self, notification: bytes) -> bytes:
        """POST the initialized notification; the server must answer 200."""
        try:
            resp = self._session.post(self.init_url, data=notification, timeout=HTTP_TIMEOUT)
        except requests.RequestException as exc:
            raise HandshakeError(f"failed to send init notification: {exc}") from exc
        with resp:
            if resp.status_code != 200:
                raise HandshakeError(f"received non-200 response: {resp.status_code}")
            return resp.content