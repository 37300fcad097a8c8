"""Payloads of the MCP initialize handshake."""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass, field, fields
from typing import Any, TypeVar

_T = TypeVar("_T")


def _require_mapping(data: Any, what: str) -> Mapping[str, Any]:
    if not isinstance(data, Mapping):
        raise TypeError(f"{what} must be a JSON object, got {type(data).__name__}")
    return data


def _json_name(f) -> str:
    return f.metadata.get("json", f.name)


def _flags_to_dict(obj: Any) -> dict[str, Any]:
    return {_json_name(f): True for f in fields(obj) if getattr(obj, f.name)}


def _flags_from_dict(cls: type[_T], data: Any) -> _T:
    data = _require_mapping(data, cls.__name__)
    values = {}
    for f in fields(cls):
        value = data.get(_json_name(f))
        if value is None:
            value = False
        if not isinstance(value, bool):
            raise TypeError(f"field {_json_name(f)!r} must be a boolean")
        values[f.name] = value
    return cls(**values)


def _optional(cls: type[_T], data: Mapping[str, Any], key: str) -> _T | None:
    value = data.get(key)
    return None if value is None else _flags_from_dict(cls, value)


def _experimental(data: Mapping[str, Any]) -> dict[str, Any]:
    value = data.get("experimental")
    return dict(_require_mapping(value, "experimental")) if value is not None else {}


def _string(data: Mapping[str, Any], key: str) -> str:
    value = data.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise TypeError(f"field {key!r} must be a string")
    return value


@dataclass
class RootCapabilities:
    list_changed: bool = field(default=False, metadata={"json": "listChanged"})


@dataclass
class SamplingCapabilities:
    """Presence alone signals support."""


@dataclass
class LoggingCapabilities:
    """Presence alone signals support."""


@dataclass
class PromptCapabilities:
    list_changed: bool = field(default=False, metadata={"json": "listChanged"})


@dataclass
class ResourceCapabilities:
    subscribe: bool = field(default=False, metadata={"json": "subscribe"})
    list_changed: bool = field(default=False, metadata={"json": "listChanged"})


@dataclass
class ToolCapabilities:
    list_changed: bool = field(default=False, metadata={"json": "listChanged"})


@dataclass
class ClientCapabilities:
    """Capabilities a client announces during initialization."""

    roots: RootCapabilities | None = None
    sampling: SamplingCapabilities | None = None
    experimental: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {}
        if self.roots is not None:
            out["roots"] = _flags_to_dict(self.roots)
        if self.sampling is not None:
            out["sampling"] = {}
        if self.experimental:
            out["experimental"] = dict(self.experimental)
        return out

    @classmethod
    def from_dict(cls, data: Any) -> "ClientCapabilities":
        data = _require_mapping(data, "capabilities")
        return cls(
            roots=_optional(RootCapabilities, data, "roots"),
            sampling=_optional(SamplingCapabilities, data, "sampling"),
            experimental=_experimental(data),
        )


def new_client_capabilities() -> ClientCapabilities:
    """Capabilities with roots list-change and sampling support enabled."""
    return ClientCapabilities(
        roots=RootCapabilities(list_changed=True),
        sampling=SamplingCapabilities(),
        experimental={},
    )


@dataclass
class ServerCapabilities:
    """Capabilities a server announces in its initialize result."""

    logging: LoggingCapabilities | None = None
    prompts: PromptCapabilities | None = None
    resources: ResourceCapabilities | None = None
    tools: ToolCapabilities | None = None
    experimental: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {}
        for name in ("logging", "prompts", "resources", "tools"):
            value = getattr(self, name)
            if value is not None:
                out[name] = _flags_to_dict(value)
        if self.experimental:
            out["experimental"] = dict(self.experimental)
        return out

    @classmethod
    def from_dict(cls, data: Any) -> "ServerCapabilities":
        data = _require_mapping(data, "capabilities")
        return cls(
            logging=_optional(LoggingCapabilities, data, "logging"),
            prompts=_optional(PromptCapabilities, data, "prompts"),
            resources=_optional(ResourceCapabilities, data, "resources"),
            tools=_optional(ToolCapabilities, data, "tools"),
            experimental=_experimental(data),
        )


@dataclass
class ClientInfo:
    name: str = ""
    version: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "version": self.version}

    @classmethod
    def from_dict(cls, data: Any) -> "ClientInfo":
        data = _require_mapping(data, "clientInfo")
        return cls(name=_string(data, "name"), version=_string(data, "version"))


@dataclass
class ServerInfo:
    name: str = ""
    version: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "version": self.version}

    @classmethod
    def from_dict(cls, data: Any) -> "ServerInfo":
        data = _require_mapping(data, "serverInfo")
        return cls(name=_string(data, "name"), version=_string(data, "version"))


def _sub(data: Mapping[str, Any], key: str) -> Mapping[str, Any]:
    value = data.get(key)
    return {} if value is None else value


@dataclass
class InitializeParams:
    """Parameters of the client's initialize request."""

    protocol_version: str = ""
    capabilities: ClientCapabilities = field(default_factory=ClientCapabilities)
    client_info: ClientInfo = field(default_factory=ClientInfo)

    def to_dict(self) -> dict[str, Any]:
        return {
            "protocolVersion": self.protocol_version,
            "capabilities": self.capabilities.to_dict(),
            "clientInfo": self.client_info.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Any) -> "InitializeParams":
        data = _require_mapping(data, "params")
        return cls(
            protocol_version=_string(data, "protocolVersion"),
            capabilities=ClientCapabilities.from_dict(_sub(data, "capabilities")),
            client_info=ClientInfo.from_dict(_sub(data, "clientInfo")),
        )


@dataclass
class InitializeResult:
    """Result of the server's answer to initialize."""

    protocol_version: str = ""
    capabilities: ServerCapabilities = field(default_factory=ServerCapabilities)
    server_info: ServerInfo = field(default_factory=ServerInfo)

    def to_dict(self) -> dict[str, Any]:
        return {
            "protocolVersion": self.protocol_version,
            "capabilities": self.capabilities.to_dict(),
            "serverInfo": self.server_info.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Any) -> "InitializeResult":
        data = _require_mapping(data, "result")
        return cls(
            protocol_version=_string(data, "protocolVersion"),
            capabilities=ServerCapabilities.from_dict(_sub(data, "capabilities")),
            server_info=ServerInfo.from_dict(_sub(data, "serverInfo")),
        )

    def to_bytes(self) -> bytes:
        """Encode as compact JSON."""
        return json.dumps(self.to_dict(), separators=(",", ":")).encode("utf-8")