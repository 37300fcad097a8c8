"""Conversational context: memory, messages and metadata."""

from __future__ import annotations

import uuid
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from mcpcore.messages import ZERO_TIME, Message, _format_time, _parse_time


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


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class MemoryBlock:
    """A single unit of contextual memory within a conversation."""

    id: str = ""
    role: str = ""
    content: str = ""
    time: datetime = ZERO_TIME

    def update_content(self, new_content: str) -> None:
        self.content = new_content

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "role": self.role,
            "content": self.content,
            "time": _format_time(self.time),
        }

    @classmethod
    def from_dict(cls, data: Any) -> "MemoryBlock":
        data = _require_mapping(data, "memory block")
        raw_time = data.get("time")
        return cls(
            id=_str(data, "id"),
            role=_str(data, "role"),
            content=_str(data, "content"),
            time=ZERO_TIME if raw_time is None else _parse_time(raw_time),
        )


@dataclass
class ContextUpdate:
    """An update request to an existing context."""

    id: str = ""
    metadata: dict[str, str] | None = None
    append: list[MemoryBlock] | None = None
    archive: bool | None = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"id": self.id}
        if self.metadata:
            out["metadata"] = dict(self.metadata)
        if self.append:
            out["append"] = [block.to_dict() for block in self.append]
        if self.archive is not None:
            out["archive"] = self.archive
        return out

    @classmethod
    def from_dict(cls, data: Any) -> "ContextUpdate":
        data = _require_mapping(data, "context update")
        raw_metadata = data.get("metadata")
        raw_append = data.get("append")
        archive = data.get("archive")
        if archive is not None and not isinstance(archive, bool):
            raise TypeError("field 'archive' must be a boolean")
        metadata = None
        if raw_metadata is not None:
            metadata = {}
            for key, value in _require_mapping(raw_metadata, "metadata").items():
                if not isinstance(value, str):
                    raise TypeError("metadata values must be strings")
                metadata[key] = value
        return cls(
            id=_str(data, "id"),
            metadata=metadata,
            append=(
                [MemoryBlock.from_dict(b) for b in raw_append] if raw_append is not None else None
            ),
            archive=archive,
        )


@dataclass
class Context:
    """A conversational context with memory, messages and metadata."""

    id: str = ""
    created_at: datetime = ZERO_TIME
    updated_at: datetime = ZERO_TIME
    memory: list[MemoryBlock] = field(default_factory=list)
    messages: list[Message] = field(default_factory=list)
    metadata: dict[str, str] | None = None
    is_archived: bool = False

    def apply_update(self, update: ContextUpdate) -> None:
        """Merge metadata, append memory and set the archive flag."""
        if update.metadata is not None:
            if self.metadata is None:
                self.metadata = {}
            self.metadata.update(update.metadata)
        if update.append is not None:
            self.memory.extend(update.append)
        if update.archive is not None:
            self.is_archived = update.archive
        self.updated_at = _now()

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "id": self.id,
            "created_at": _format_time(self.created_at),
            "updated_at": _format_time(self.updated_at),
            "memory": [block.to_dict() for block in self.memory],
            "messages": [message.to_dict() for message in self.messages],
        }
        if self.metadata:
            out["metadata"] = dict(self.metadata)
        out["is_archived"] = self.is_archived
        return out


def new_context(metadata: dict[str, str] | None) -> Context:
    """Create a context with a fresh id and the given metadata."""
    now = _now()
    return Context(
        id=str(uuid.uuid4()),
        created_at=now,
        updated_at=now,
        memory=[],
        metadata=metadata,
    )