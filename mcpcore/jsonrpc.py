"""JSON-RPC 2.0 message types and HTTP helpers for reading and writing them."""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass
from enum import IntEnum
from typing import Any, BinaryIO, Protocol as _TypingProtocol, Union

DEFAULT_PROTOCOL_VERSION = "2024-11-05"
JSONRPC_VERSION = "2.0"


class ErrorCode(IntEnum):
    """Standard JSON-RPC 2.0 error codes."""

    PARSE_ERROR = -32700
    INVALID_REQUEST = -32600
    METHOD_NOT_FOUND = -32601
    INVALID_PARAMS = -32602
    INTERNAL_ERROR = -32603

    def message(self) -> str:
        """Return the standard message for this code."""
        return _ERROR_MESSAGES[self]


_ERROR_MESSAGES = {
    ErrorCode.PARSE_ERROR: "Parse error",
    ErrorCode.INVALID_REQUEST: "Invalid Request",
    ErrorCode.METHOD_NOT_FOUND: "Method not found",
    ErrorCode.INVALID_PARAMS: "Invalid params",
    ErrorCode.INTERNAL_ERROR: "Internal error",
}


def _require_mapping(data: Any, what: str) -> Mapping[str, Any]:
    if not isinstance(data, Mapping):
        raise TypeError(f"{what} must be a JSON object, got {type(data).__name__}")
    return data


def _optional_str(data: Mapping[str, Any], key: str) -> str:
    value = data.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise TypeError(f"field {key!r} must be a string")
    return value


def _dumps(value: Any) -> str:
    return json.dumps(value, separators=(",", ":"))


@dataclass
class RPCError:
    """The error member of a JSON-RPC response."""

    code: int = 0
    message: str = ""
    data: Any = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"code": int(self.code), "message": self.message}
        if self.data is not None:
            out["data"] = self.data
        return out

    @classmethod
    def from_dict(cls, data: Any) -> "RPCError":
        data = _require_mapping(data, "error")
        code = data.get("code", 0)
        if code is None:
            code = 0
        if isinstance(code, bool) or not isinstance(code, int):
            raise TypeError("field 'code' must be an integer")
        return cls(code=code, message=_optional_str(data, "message"), data=data.get("data"))


@dataclass
class JSONRPCRequest:
    """A JSON-RPC request; params hold already decoded JSON."""

    jsonrpc: str = JSONRPC_VERSION
    method: str = ""
    params: Any = None
    id: Any = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "jsonrpc": self.jsonrpc,
            "method": self.method,
            "params": self.params,
            "id": self.id,
        }

    @classmethod
    def from_dict(cls, data: Any) -> "JSONRPCRequest":
        data = _require_mapping(data, "request")
        return cls(
            jsonrpc=_optional_str(data, "jsonrpc"),
            method=_optional_str(data, "method"),
            params=data.get("params"),
            id=data.get("id"),
        )


@dataclass
class JSONRPCResponse:
    """A JSON-RPC response carrying either a result or an error."""

    jsonrpc: str = JSONRPC_VERSION
    result: Any = None
    error: RPCError | None = None
    id: Any = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"jsonrpc": self.jsonrpc}
        if self.result is not None:
            out["result"] = self.result
        if self.error is not None:
            out["error"] = self.error.to_dict()
        out["id"] = self.id
        return out

    @classmethod
    def from_dict(cls, data: Any) -> "JSONRPCResponse":
        data = _require_mapping(data, "response")
        raw_error = data.get("error")
        return cls(
            jsonrpc=_optional_str(data, "jsonrpc"),
            result=data.get("result"),
            error=RPCError.from_dict(raw_error) if raw_error is not None else None,
            id=data.get("id"),
        )

    def to_bytes(self) -> bytes:
        """Encode the result member alone as compact JSON."""
        return _dumps(self.result).encode("utf-8")


@dataclass
class Notification:
    """A JSON-RPC notification: a request that expects no response."""

    jsonrpc: str = JSONRPC_VERSION
    method: str = ""
    params: Any = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"jsonrpc": self.jsonrpc, "method": self.method}
        if self.params is not None:
            out["params"] = self.params
        return out


class _ResponseWriter(_TypingProtocol):
    wfile: BinaryIO

    def send_response(self, code: int, message: str | None = None) -> None: ...

    def send_header(self, keyword: str, value: str) -> None: ...

    def end_headers(self) -> None: ...


def parse_jsonrpc_request(body: Union[bytes, str, BinaryIO]) -> JSONRPCRequest:
    """Decode and check a JSON-RPC request body.

    Raises ValueError for malformed JSON, a wrong protocol version or a
    missing method.
    """
    if hasattr(body, "read"):
        body = body.read()
    request = JSONRPCRequest.from_dict(json.loads(body))
    if request.jsonrpc != JSONRPC_VERSION:
        raise ValueError("invalid jsonrpc version")
    if not request.method:
        raise ValueError("missing method")
    return request


def _write(handler: _ResponseWriter, response: JSONRPCResponse) -> bytes:
    body = (_dumps(response.to_dict()) + "\n").encode("utf-8")
    handler.send_response(200)
    handler.send_header("Content-Type", "application/json")
    handler.send_header("Content-Length", str(len(body)))
    handler.end_headers()
    handler.wfile.write(body)
    return body


def write_jsonrpc_response(handler: _ResponseWriter, result: Any, id: Any) -> bytes:
    """Write a successful JSON-RPC response and return the body written."""
    return _write(handler, JSONRPCResponse(result=result, id=id))


def write_jsonrpc_error(handler: _ResponseWriter, code: int, message: str, id: Any) -> bytes:
    """Write a JSON-RPC error response; an empty message takes the standard one."""
    if not message:
        try:
            message = ErrorCode(code).message()
        except ValueError:
            message = ""
    return _write(handler, JSONRPCResponse(error=RPCError(code=int(code), message=message), id=id))