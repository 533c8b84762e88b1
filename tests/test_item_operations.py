"""Tests for the built-in item tools and their backing store."""

import json

import pytest

from mcp_template_server.models.item import Item
from mcp_template_server.persistence.item_store import (
    ItemNotFound,
    ItemStore,
    StorageLimitExceeded,
)
from mcp_template_server.registry import ExecutionFailed


async def add(item_operations, name, description, **extra):
    result = await item_operations.add_item({"name": name, "description": description, **extra})
    return result["item"]


# ========== add_item / list_items Tests ==========

@pytest.mark.asyncio
async def test_add_then_list(item_operations):
    await add(item_operations, "Existing", "already there")

    result = await item_operations.add_item({"name": "A", "description": "d"})
    listed = await item_operations.list_items({})

    assert result["success"] is True
    assert result["message"] == "Item 'A' added successfully"
    assert "A" in [item["name"] for item in listed["items"]]
    assert listed["count"] == 2


@pytest.mark.asyncio
async def test_added_item_shape(item_operations):
    item = await add(item_operations, "A", "d", metadata={"color": "red"})

    assert set(item) == {"id", "name", "description", "metadata", "createdAt"}
    assert item["metadata"] == {"color": "red"}
    assert item["createdAt"].endswith("Z")


@pytest.mark.asyncio
async def test_metadata_defaults_to_empty(item_operations):
    item = await add(item_operations, "A", "d")

    assert item["metadata"] == {}


@pytest.mark.asyncio
async def test_successive_adds_have_distinct_ids(item_operations):
    first = await add(item_operations, "A", "d")
    second = await add(item_operations, "A", "d")

    assert first["id"] != second["id"]


@pytest.mark.asyncio
async def test_add_requires_name_and_description(item_operations):
    with pytest.raises(ValueError, match="description"):
        await item_operations.add_item({"name": "A"})


@pytest.mark.asyncio
async def test_list_on_missing_document(item_operations, store):
    assert not store.path.exists()

    assert await item_operations.list_items({}) == {"items": [], "count": 0}


@pytest.mark.asyncio
async def test_list_filter_is_case_insensitive_regex(item_operations):
    await add(item_operations, "Alpha", "first letter")
    await add(item_operations, "Beta", "second LETTER")
    await add(item_operations, "Gamma", "third")

    by_name = await item_operations.list_items({"filter": "^al"})
    by_description = await item_operations.list_items({"filter": "letter"})

    assert [item["name"] for item in by_name["items"]] == ["Alpha"]
    assert by_description["count"] == 2


@pytest.mark.asyncio
async def test_list_filter_invalid_regex_is_literal(item_operations):
    await add(item_operations, "f(x)", "function")
    await add(item_operations, "g", "other")

    result = await item_operations.list_items({"filter": "f("})

    assert [item["name"] for item in result["items"]] == ["f(x)"]


@pytest.mark.asyncio
async def test_list_limit_truncates(item_operations):
    for index in range(4):
        await add(item_operations, f"item-{index}", "d")

    result = await item_operations.list_items({"limit": 2})

    assert [item["name"] for item in result["items"]] == ["item-0", "item-1"]
    assert result["count"] == 2


@pytest.mark.asyncio
async def test_list_is_idempotent(item_operations):
    await add(item_operations, "A", "d")
    await add(item_operations, "B", "e")

    assert await item_operations.list_items({}) == await item_operations.list_items({})


# ========== remove_item Tests ==========

@pytest.mark.asyncio
async def test_remove_existing_item(item_operations):
    item = await add(item_operations, "A", "d")
    await add(item_operations, "B", "e")

    result = await item_operations.remove_item({"id": item["id"]})
    listed = await item_operations.list_items({})

    assert result == {"success": True, "message": f"Item '{item['id']}' removed successfully"}
    assert [entry["name"] for entry in listed["items"]] == ["B"]


@pytest.mark.asyncio
async def test_remove_unknown_id_leaves_collection_unchanged(item_operations, store):
    await add(item_operations, "A", "d")
    before = store.read()

    with pytest.raises(ItemNotFound):
        await item_operations.remove_item({"id": "does-not-exist"})

    assert store.read() == before
    assert len(store.all()) == 1


@pytest.mark.asyncio
async def test_remove_on_missing_document(item_operations, store):
    with pytest.raises(ItemNotFound):
        await item_operations.remove_item({"id": "x"})

    assert not store.path.exists()


@pytest.mark.asyncio
async def test_remove_unknown_through_dispatcher(dispatcher):
    with pytest.raises(ExecutionFailed) as exc_info:
        await dispatcher.execute("remove_item", {"id": "nope"})

    assert isinstance(exc_info.value.__cause__, ItemNotFound)

    response = await dispatcher.dispatch("remove_item", {"id": "nope"})
    assert response["error"]["details"]["cause"] == "ItemNotFound"
    assert "Item with ID 'nope' not found" in response["error"]["message"]


# ========== search_items Tests ==========

@pytest.mark.asyncio
async def test_search_no_matches(item_operations):
    await add(item_operations, "Alpha", "first")

    assert await item_operations.search_items({"query": "foo"}) == {"results": [], "count": 0}


@pytest.mark.asyncio
async def test_search_single_match(item_operations):
    await add(item_operations, "FOOD", "groceries")
    await add(item_operations, "Tools", "hardware")

    result = await item_operations.search_items({"query": "foo"})

    assert [item["name"] for item in result["results"]] == ["FOOD"]
    assert result["count"] == 1


@pytest.mark.asyncio
async def test_search_many_matches_across_fields(item_operations):
    await add(item_operations, "Foo", "x")
    await add(item_operations, "Bar", "has a fOo inside")
    await add(item_operations, "Baz", "nothing")

    result = await item_operations.search_items({"query": "foo"})

    assert sorted(item["name"] for item in result["results"]) == ["Bar", "Foo"]


@pytest.mark.asyncio
async def test_search_restricted_fields(item_operations):
    await add(item_operations, "Foo", "x")
    await add(item_operations, "Bar", "foo in description")

    result = await item_operations.search_items({"query": "foo", "fields": ["name"]})

    assert [item["name"] for item in result["results"]] == ["Foo"]


@pytest.mark.asyncio
async def test_search_object_fields(item_operations):
    await add(item_operations, "Tagged", "x", metadata={"tags": ["Urgent"]})
    await add(item_operations, "Plain", "x")

    result = await item_operations.search_items({"query": "urgent", "fields": ["metadata"]})

    assert [item["name"] for item in result["results"]] == ["Tagged"]


@pytest.mark.asyncio
async def test_search_object_fields_non_ascii(item_operations):
    await add(item_operations, "Office", "x", metadata={"city": "Zürich"})
    await add(item_operations, "Depot", "x", metadata={"city": "Basel"})

    result = await item_operations.search_items({"query": "zürich", "fields": ["metadata"]})

    assert [item["name"] for item in result["results"]] == ["Office"]


@pytest.mark.asyncio
async def test_search_requires_query(item_operations):
    with pytest.raises(ValueError, match="query"):
        await item_operations.search_items({})


# ========== get_status Tests ==========

@pytest.mark.asyncio
async def test_get_status(item_operations, config):
    await add(item_operations, "A", "d")

    status = await item_operations.get_status({})

    assert status["serverName"] == "test-server"
    assert status["version"] == "9.9.9"
    assert status["uptime"] >= 0
    assert status["statistics"] == {"totalItems": 1, "registeredTools": 5}
    assert status["configuration"] == {
        "dataDir": str(config.data_dir),
        "outputDir": str(config.output_dir),
        "debug": False,
    }


# ========== ItemStore Tests ==========

class TestItemStore:

    def test_document_written_with_items_key(self, store):
        store.add(Item(name="A", description="d"))

        with open(store.path) as f:
            document = json.load(f)

        assert list(document) == ["items"]
        assert document["items"][0]["name"] == "A"

    def test_document_without_items_key_is_empty(self, store):
        store.data_dir.mkdir(parents=True, exist_ok=True)
        store.path.write_text("{}")

        assert store.all() == []

    def test_size_limit_refuses_write(self, tmp_path):
        store = ItemStore(tmp_path, max_file_size=400)
        store.add(Item(name="A", description="d"))
        before = store.path.read_text()

        with pytest.raises(StorageLimitExceeded):
            store.add(Item(name="B", description="x" * 500))

        assert store.path.read_text() == before
