import uuid
from datetime import datetime, timedelta, timezone

import pytest

from mcpcore.context import Context, ContextUpdate, MemoryBlock, new_context
from mcpcore.messages import Message, Role


def test_new_context():
    metadata = {"model": "claude"}
    ctx = new_context(metadata)

    assert ctx.id
    assert abs(datetime.now(timezone.utc) - ctx.created_at) < timedelta(seconds=1)
    assert abs(ctx.updated_at - ctx.created_at) < timedelta(seconds=1)
    assert ctx.metadata == metadata
    assert ctx.memory == []
    assert ctx.is_archived is False


def test_new_context_ids_are_unique():
    ids = {new_context(None).id for _ in range(5)}
    assert len(ids) == 5


def test_apply_update_metadata_append():
    ctx = new_context({"foo": "bar"})
    ctx.apply_update(ContextUpdate(id=ctx.id, metadata={"baz": "qux"}))
    assert ctx.metadata["foo"] == "bar"
    assert ctx.metadata["baz"] == "qux"


def test_apply_update_metadata_on_empty_context():
    ctx = new_context(None)
    ctx.apply_update(ContextUpdate(id=ctx.id, metadata={"k": "v"}))
    assert ctx.metadata == {"k": "v"}


def test_apply_update_append_memory():
    ctx = new_context(None)
    mem = MemoryBlock(
        id=str(uuid.uuid4()),
        role="user",
        content="Hello!",
        time=datetime.now(timezone.utc),
    )
    ctx.apply_update(ContextUpdate(id=ctx.id, append=[mem]))
    assert len(ctx.memory) == 1
    assert ctx.memory[0].content == mem.content


def test_apply_update_archive():
    ctx = new_context(None)
    ctx.apply_update(ContextUpdate(id=ctx.id, archive=True))
    assert ctx.is_archived is True


def test_apply_update_touches_updated_at():
    ctx = new_context(None)
    before = ctx.updated_at
    ctx.apply_update(ContextUpdate(id=ctx.id))
    assert ctx.updated_at >= before
    assert ctx.is_archived is False


def test_memory_block_update_content():
    block = MemoryBlock(
        id=str(uuid.uuid4()),
        role="assistant",
        content="Hi there!",
        time=datetime.now(timezone.utc),
    )
    block.update_content("Updated content")
    assert block.content == "Updated content"


def test_memory_block_round_trip():
    block = MemoryBlock(
        id="m1",
        role="user",
        content="hello",
        time=datetime(2024, 3, 4, 5, 6, 7, 890000, tzinfo=timezone.utc),
    )
    assert MemoryBlock.from_dict(block.to_dict()) == block


def test_context_update_round_trip():
    update = ContextUpdate(
        id="ctx1",
        metadata={"a": "b"},
        append=[MemoryBlock(id="m1", content="test content")],
        archive=False,
    )
    assert ContextUpdate.from_dict(update.to_dict()) == update


def test_context_update_omits_empty_fields():
    assert ContextUpdate(id="ctx1").to_dict() == {"id": "ctx1"}
    assert ContextUpdate.from_dict({"id": "ctx1"}) == ContextUpdate(id="ctx1")


def test_context_update_rejects_bad_archive():
    with pytest.raises(TypeError):
        ContextUpdate.from_dict({"id": "x", "archive": "yes"})


def test_context_update_rejects_bad_metadata():
    with pytest.raises(TypeError):
        ContextUpdate.from_dict({"id": "x", "metadata": {"k": 1}})


def test_context_to_dict():
    ctx = new_context({"foo": "bar"})
    ctx.memory.append(MemoryBlock(id="m1", content="keep this"))
    ctx.messages.append(Message(id="msg", role=Role.USER, content="hello"))
    out = ctx.to_dict()
    assert out["id"] == ctx.id
    assert out["metadata"] == {"foo": "bar"}
    assert out["memory"][0]["content"] == "keep this"
    assert out["messages"][0]["content"] == "hello"
    assert out["is_archived"] is False


def test_context_to_dict_omits_empty_metadata():
    out = Context(id="c").to_dict()
    assert "metadata" not in out
    assert out["memory"] == []