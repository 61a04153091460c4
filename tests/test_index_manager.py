import pytest

from ragchat_server.core.errors import (
    IndexCreateError,
    IndexNotFoundError,
    IndexQueryError,
    IndexWriteError,
)
from ragchat_server.vectorstore import CollectionRef


@pytest.mark.asyncio
async def test_delete_missing_index_is_idempotent(index_manager, faiss_backend):
    await index_manager.delete_index("rag_none")
    await index_manager.delete_index("rag_none")

    assert faiss_backend.collection_names() == []


@pytest.mark.asyncio
async def test_create_then_get_returns_same_collection(index_manager):
    created = await index_manager.create_index("rag_a")
    fetched = await index_manager.get_index("rag_a")

    assert created.collection == fetched.collection


@pytest.mark.asyncio
async def test_create_existing_index_raises(index_manager):
    await index_manager.create_index("rag_a")

    with pytest.raises(IndexCreateError):
        await index_manager.create_index("rag_a")


@pytest.mark.asyncio
async def test_get_missing_index_raises_not_found(index_manager):
    with pytest.raises(IndexNotFoundError):
        await index_manager.get_index("rag_missing")


@pytest.mark.asyncio
async def test_delete_then_recreate_starts_empty(index_manager):
    handle = await index_manager.create_index("rag_a")
    await handle.add("old", [1.0, 0.0], "old text", {})

    await index_manager.delete_index("rag_a")
    fresh = await index_manager.create_index("rag_a")

    assert await fresh.query([1.0, 0.0], 5) == []


@pytest.mark.asyncio
async def test_stale_handle_after_delete_is_not_found(index_manager):
    handle = await index_manager.create_index("rag_a")
    await index_manager.delete_index("rag_a")

    with pytest.raises(IndexNotFoundError):
        await handle.query([1.0], 1)


@pytest.mark.asyncio
async def test_query_orders_by_similarity(index_manager):
    handle = await index_manager.create_index("rag_a")
    await handle.add("x", [1.0, 0.0, 0.0], "x axis", {"file": "a.txt"})
    await handle.add("y", [0.0, 1.0, 0.0], "y axis", {"file": "a.txt"})
    await handle.add("xy", [0.7, 0.7, 0.0], "diagonal", {"file": "b.txt"})

    matches = await handle.query([0.9, 0.1, 0.0], 3)

    assert [m.id for m in matches] == ["x", "xy", "y"]
    assert matches[0].score >= matches[1].score >= matches[2].score
    assert matches[1].metadata == {"file": "b.txt"}


@pytest.mark.asyncio
async def test_query_caps_at_k_and_collection_size(index_manager):
    handle = await index_manager.create_index("rag_a")
    await handle.add("one", [1.0, 0.0], "one", {})
    await handle.add("two", [0.0, 1.0], "two", {})

    assert len(await handle.query([1.0, 1.0], 1)) == 1
    assert len(await handle.query([1.0, 1.0], 10)) == 2


@pytest.mark.asyncio
async def test_repeated_queries_are_deterministic(index_manager):
    handle = await index_manager.create_index("rag_a")
    for i in range(10):
        await handle.add(f"c{i}", [float(i), 1.0, float(i % 3)], f"text {i}", {})

    first = await handle.query([3.0, 1.0, 2.0], 4)
    second = await handle.query([3.0, 1.0, 2.0], 4)

    assert [m.id for m in first] == [m.id for m in second]


@pytest.mark.asyncio
async def test_add_with_wrong_dimension_raises(index_manager):
    handle = await index_manager.create_index("rag_a")
    await handle.add("a", [1.0, 0.0], "a", {})

    with pytest.raises(IndexWriteError):
        await handle.add("b", [1.0, 0.0, 0.0], "b", {})


@pytest.mark.asyncio
async def test_add_duplicate_id_raises(index_manager):
    handle = await index_manager.create_index("rag_a")
    await handle.add("a", [1.0, 0.0], "a", {})

    with pytest.raises(IndexWriteError):
        await handle.add("a", [0.0, 1.0], "again", {})


@pytest.mark.asyncio
async def test_add_non_scalar_metadata_raises(index_manager):
    handle = await index_manager.create_index("rag_a")

    with pytest.raises(IndexWriteError):
        await handle.add("a", [1.0], "a", {"tags": ["x", "y"]})


@pytest.mark.asyncio
async def test_query_with_wrong_dimension_raises(index_manager):
    handle = await index_manager.create_index("rag_a")
    await handle.add("a", [1.0, 0.0], "a", {})

    with pytest.raises(IndexQueryError):
        await handle.query([1.0, 0.0, 0.0], 1)


@pytest.mark.asyncio
async def test_indexes_are_isolated(index_manager):
    a = await index_manager.create_index("rag_a")
    b = await index_manager.create_index("rag_b")
    await a.add("only-a", [1.0, 0.0], "belongs to a", {})

    assert await b.query([1.0, 0.0], 5) == []
    assert [m.id for m in await a.query([1.0, 0.0], 5)] == ["only-a"]


@pytest.mark.asyncio
async def test_unknown_collection_ref_is_not_found(faiss_backend):
    with pytest.raises(IndexNotFoundError):
        await faiss_backend.query(CollectionRef(id="nope", name="rag_x"), [1.0], 1)
