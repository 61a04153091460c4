import pytest

from ragchat_server.conversations import InMemoryConversationStore, SqlConversationStore
from ragchat_server.conversations.models import ChatMessage, DocumentRecord, MessageMetadata
from ragchat_server.db.session import create_session_factory


async def make_store(kind, tmp_path):
    if kind == "memory":
        return InMemoryConversationStore()

    engine, factory = create_session_factory(f"sqlite+aiosqlite:///{tmp_path}/conversations.db")
    store = SqlConversationStore(factory, engine=engine)
    await store.initialize()
    return store


def msg(i, sender="user", text=None, **meta):
    return ChatMessage(
        id=i,
        sender=sender,
        message=text or f"message {i}",
        metadata=MessageMetadata(**meta),
    )


STORES = pytest.mark.parametrize("kind", ["memory", "sql"])


@STORES
@pytest.mark.asyncio
async def test_messages_round_trip_in_order(kind, tmp_path):
    store = await make_store(kind, tmp_path)
    await store.upsert_conversation("c1", "u1")

    await store.add_message("c1", msg(1), "u1")
    await store.add_message("c1", msg(2, sender="bot", rag_context=True, chunks=3), "u1")

    history = await store.get_history("c1")

    assert [(m.id, m.sender) for m in history] == [(1, "user"), (2, "bot")]
    assert history[1].metadata.rag_context is True
    assert history[1].metadata.chunks == 3
    await store.close()


@STORES
@pytest.mark.asyncio
async def test_history_limit_keeps_most_recent(kind, tmp_path):
    store = await make_store(kind, tmp_path)
    for i in range(1, 6):
        await store.add_message("c1", msg(i), "u1")

    history = await store.get_history("c1", limit=2)

    assert [m.id for m in history] == [4, 5]
    await store.close()


@STORES
@pytest.mark.asyncio
async def test_clear_messages_and_last_upload(kind, tmp_path):
    store = await make_store(kind, tmp_path)
    await store.upsert_conversation("c1", "u1")
    await store.add_message("c1", msg(1), "u1")

    await store.clear_messages("c1")
    await store.set_last_upload("c1", msg(0).ts)

    assert await store.get_history("c1") == []
    assert await store.get_last_upload("c1") is not None
    await store.close()


@STORES
@pytest.mark.asyncio
async def test_missing_conversation_reads_empty(kind, tmp_path):
    store = await make_store(kind, tmp_path)

    await store.clear_messages("nope")

    assert await store.get_history("nope") == []
    assert await store.get_documents("nope") == []
    assert await store.get_last_upload("nope") is None
    await store.close()


@STORES
@pytest.mark.asyncio
async def test_document_metadata_appends(kind, tmp_path):
    store = await make_store(kind, tmp_path)
    await store.upsert_conversation("c1", "u1")

    await store.append_document_metadata("c1", DocumentRecord(filename="a.txt", chunks=2, words=700))
    await store.append_document_metadata(
        "c1",
        DocumentRecord(filename="b.pdf", chunks=1, words=10, storage_url="https://files.test/b.pdf"),
    )

    docs = await store.get_documents("c1")

    assert [(d.filename, d.chunks, d.words) for d in docs] == [("a.txt", 2, 700), ("b.pdf", 1, 10)]
    assert docs[1].storage_url == "https://files.test/b.pdf"
    await store.close()


@STORES
@pytest.mark.asyncio
async def test_list_conversations_per_user(kind, tmp_path):
    store = await make_store(kind, tmp_path)
    await store.upsert_conversation("c1", "u1")
    await store.upsert_conversation("c2", "u1")
    await store.upsert_conversation("other", "u2")
    await store.add_message("c1", msg(1, text="latest words"), "u1")
    await store.append_document_metadata("c2", DocumentRecord(filename="a.txt", chunks=1, words=1))
    await store.add_message("c1", msg(2, text="even later"), "u1")

    summaries = await store.list_conversations("u1")

    assert [s.convo_id for s in summaries] == ["c1", "c2"]
    assert summaries[0].message_count == 2
    assert summaries[0].last_message == "even later"
    assert summaries[0].has_documents is False
    assert summaries[1].last_message == "No messages"
    assert summaries[1].has_documents is True
    await store.close()


@pytest.mark.asyncio
async def test_in_memory_store_caps_messages():
    store = InMemoryConversationStore(max_messages_per_conversation=3)
    for i in range(1, 6):
        await store.add_message("c1", msg(i))

    assert [m.id for m in await store.get_history("c1")] == [3, 4, 5]


@pytest.mark.asyncio
async def test_in_memory_history_is_a_copy():
    store = InMemoryConversationStore()
    await store.add_message("c1", msg(1))

    history = await store.get_history("c1")
    history.clear()

    assert len(await store.get_history("c1")) == 1


@pytest.mark.asyncio
async def test_sql_store_ping(tmp_path):
    store = await make_store("sql", tmp_path)

    assert await store.ping() is True
    await store.close()
