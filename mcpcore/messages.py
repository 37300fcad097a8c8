"""Conversation messages, tool calls and security metadata."""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any

ZERO_TIME = datetime(1, 1, 1, tzinfo=timezone.utc)

_TIME_RE = re.compile(
    r"^(\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2})(?:\.(\d+))?(Z|[+-]\d{2}:\d{2})$"
)


def _format_time(value: datetime) -> str:
    """Format a datetime as RFC 3339 with trailing fraction zeros dropped."""
    base = value.replace(tzinfo=None, microsecond=0).isoformat(timespec="seconds")
    fraction = f"{value.microsecond:06d}".rstrip("0")
    if fraction:
        base += "." + fraction
    offset = value.utcoffset()
    if not offset:
        return base + "Z"
    sign = "-" if offset < timedelta(0) else "+"
    minutes = abs(int(offset.total_seconds())) // 60
    return f"{base}{sign}{minutes // 60:02d}:{minutes % 60:02d}"


def _parse_time(text: Any) -> datetime:
    """Parse an RFC 3339 timestamp; fractions beyond microseconds are cut."""
    if not isinstance(text, str):
        raise TypeError("timestamp must be a string")
    match = _TIME_RE.match(text)
    if match is None:
        raise ValueError(f"invalid timestamp {text!r}")
    base, fraction, zone = match.groups()
    micro = int((fraction or "").ljust(6, "0")[:6])
    if zone == "Z":
        tz = timezone.utc
    else:
        sign = -1 if zone[0] == "-" else 1
        tz = timezone(sign * timedelta(hours=int(zone[1:3]), minutes=int(zone[4:6])))
    return datetime.fromisoformat(base).replace(microsecond=micro, tzinfo=tz)


def _require_mapping(data: Any, what: str) -> Mapping[str, Any]:
    if not isinstance(data, Mapping):
        raise TypeError(f"{what} must be a JSON object, got {type(data).__name__}")
    return data


def _str(data: Mapping[str, Any], key: str) -> str:
    value = data.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise TypeError(f"field {key!r} must be a string")
    return value


def _time(data: Mapping[str, Any], key: str) -> datetime:
    value = data.get(key)
    return ZERO_TIME if value is None else _parse_time(value)


class Role(str, Enum):
    """Originator of a message in the conversation history."""

    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"
    TOOL = "tool"


class ExecutionStatus(str, Enum):
    """Outcome of a tool execution attempt."""

    SUCCEEDED = "succeeded"
    FAILED = "failed"
    ERROR = "error"


def _role(value: str) -> Role | str:
    try:
        return Role(value)
    except ValueError:
        return value


def _status(value: str) -> ExecutionStatus | str:
    try:
        return ExecutionStatus(value)
    except ValueError:
        return value


def _text(value: Any) -> str:
    return value.value if isinstance(value, Enum) else value


@dataclass
class Request:
    """A message that expects a response."""

    method: str = ""
    params: Any = None


@dataclass
class Error:
    """A failure in handling a request."""

    code: int = 0
    message: str = ""
    data: Any = None


@dataclass
class Notification:
    """A one-way message that expects no response."""

    method: str = ""
    params: Any = None


@dataclass
class ServerInfo:
    name: str = ""
    version: str = ""


@dataclass
class ToolDefinition:
    name: str = ""
    description: str = ""
    parameters: dict[str, Any] = field(default_factory=dict)


@dataclass
class ToolCall:
    """A model's request to run a tool; arguments hold decoded JSON."""

    id: str = ""
    function_name: str = ""
    arguments: Any = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "function_name": self.function_name,
            "arguments": self.arguments,
        }

    @classmethod
    def from_dict(cls, data: Any) -> "ToolCall":
        data = _require_mapping(data, "tool call")
        return cls(
            id=_str(data, "id"),
            function_name=_str(data, "function_name"),
            arguments=data.get("arguments"),
        )


@dataclass
class ToolResultMetadata:
    """Details about the execution of a tool."""

    execution_status: ExecutionStatus | str = ""
    error_message: str = ""
    output_hash: str = ""
    executed_at: datetime = ZERO_TIME
    execution_env: str = ""

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"execution_status": _text(self.execution_status)}
        if self.error_message:
            out["error_message"] = self.error_message
        if self.output_hash:
            out["output_hash"] = self.output_hash
        out["executed_at"] = _format_time(self.executed_at)
        if self.execution_env:
            out["execution_env"] = self.execution_env
        return out

    @classmethod
    def from_dict(cls, data: Any) -> "ToolResultMetadata":
        data = _require_mapping(data, "tool result")
        return cls(
            execution_status=_status(_str(data, "execution_status")),
            error_message=_str(data, "error_message"),
            output_hash=_str(data, "output_hash"),
            executed_at=_time(data, "executed_at"),
            execution_env=_str(data, "execution_env"),
        )


@dataclass
class ChatMessage:
    """One message inside a chat completion request."""

    role: str = ""
    content: str = ""
    tool_calls: list[ToolCall] = field(default_factory=list)


@dataclass
class ChatCompletionRequest:
    model: str = ""
    messages: list[ChatMessage] = field(default_factory=list)
    tools: list[ToolDefinition] = field(default_factory=list)
    stream: bool = False

    def to_dict(self) -> dict[str, Any]:
        messages = []
        for message in self.messages:
            entry: dict[str, Any] = {"role": _text(message.role), "content": message.content}
            if message.tool_calls:
                entry["tool_calls"] = [call.to_dict() for call in message.tool_calls]
            messages.append(entry)
        out: dict[str, Any] = {"model": self.model, "messages": messages}
        if self.tools:
            out["tools"] = [
                {
                    "name": tool.name,
                    "description": tool.description,
                    "parameters": dict(tool.parameters),
                }
                for tool in self.tools
            ]
        if self.stream:
            out["stream"] = True
        return out


@dataclass
class Message:
    """A single turn in the interaction history."""

    id: str = ""
    role: Role | str = ""
    content: str = ""
    timestamp: datetime = ZERO_TIME
    tool_calls: list[ToolCall] = field(default_factory=list)
    tool_call_id: str = ""
    tool_result: ToolResultMetadata | None = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "id": self.id,
            "role": _text(self.role),
            "content": self.content,
            "timestamp": _format_time(self.timestamp),
        }
        if self.tool_calls:
            out["tool_calls"] = [call.to_dict() for call in self.tool_calls]
        if self.tool_call_id:
            out["tool_call_id"] = self.tool_call_id
        if self.tool_result is not None:
            out["tool_result"] = self.tool_result.to_dict()
        return out

    @classmethod
    def from_dict(cls, data: Any) -> "Message":
        data = _require_mapping(data, "message")
        raw_result = data.get("tool_result")
        return cls(
            id=_str(data, "id"),
            role=_role(_str(data, "role")),
            content=_str(data, "content"),
            timestamp=_time(data, "timestamp"),
            tool_calls=[ToolCall.from_dict(c) for c in data.get("tool_calls") or []],
            tool_call_id=_str(data, "tool_call_id"),
            tool_result=(
                ToolResultMetadata.from_dict(raw_result) if raw_result is not None else None
            ),
        )


@dataclass
class SecurityMetadata:
    """Information used to verify the trust and integrity of components."""

    source: str = ""
    signature: str = ""
    public_key_id: str = ""
    version: str = ""
    integrity_hash: str = ""


@dataclass
class UserIdentity:
    user_id: str = ""
    groups: list[str] = field(default_factory=list)
    claims: dict[str, Any] = field(default_factory=dict)


@dataclass
class ContextMetadata:
    """General metadata for a context snapshot."""

    client_id: str = ""
    session_id: str = ""
    trace_id: str = ""
    requesting_user: UserIdentity | None = None
    custom_data: dict[str, str] = field(default_factory=dict)


@dataclass
class SecurityPolicy:
    """Rules and constraints for an interaction."""

    allowed_tools: list[str] = field(default_factory=list)
    disallowed_tools: list[str] = field(default_factory=list)
    required_tool_source: str = ""
    max_tool_calls_per_turn: int = 0
    data_handling_rules: str = ""

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {}
        if self.allowed_tools:
            out["allowed_tools"] = list(self.allowed_tools)
        if self.disallowed_tools:
            out["disallowed_tools"] = list(self.disallowed_tools)
        if self.required_tool_source:
            out["required_tool_source"] = self.required_tool_source
        if self.max_tool_calls_per_turn:
            out["max_tool_calls_per_turn"] = self.max_tool_calls_per_turn
        if self.data_handling_rules:
            out["data_handling_rules"] = self.data_handling_rules
        return out