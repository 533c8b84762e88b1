"""
Built-in item operations.

Five tools over the single item collection kept by ItemStore:
list_items, add_item, remove_item, search_items and get_status.
"""

import json
import logging
import re
import time
from typing import Any, Dict, List, Mapping, Optional

from ...config.settings import ServerConfig
from ...models.item import Item
from ...persistence.item_store import ItemStore
from ..operation_registry import OperationDescriptor, OperationRegistry

logger = logging.getLogger(__name__)

DEFAULT_SEARCH_FIELDS = ["name", "description"]


def _require(args: Mapping[str, Any], *names: str) -> None:
    missing = [name for name in names if args.get(name) is None]
    if missing:
        raise ValueError(f"Missing required argument(s): {', '.join(missing)}")


def _compile_filter(pattern: str) -> "re.Pattern[str]":
    """Compile a case-insensitive filter, treating invalid regexes as literals."""
    try:
        return re.compile(pattern, re.IGNORECASE)
    except re.error:
        return re.compile(re.escape(pattern), re.IGNORECASE)


def _field_matches(value: Any, query: str) -> bool:
    if isinstance(value, str):
        return query in value.lower()
    if isinstance(value, (dict, list)):
        return query in json.dumps(value, separators=(",", ":"), ensure_ascii=False).lower()
    return False


class ItemOperations:
    """Handlers for the built-in tools, bound to a store and a configuration."""

    def __init__(
        self,
        store: ItemStore,
        config: ServerConfig,
        registry: OperationRegistry,
        started_at: Optional[float] = None,
    ):
        self.store = store
        self.config = config
        self.registry = registry
        self.started_at = time.monotonic() if started_at is None else started_at

    # ========================================================================
    # Operation Handlers
    # ========================================================================

    async def list_items(self, args: Mapping[str, Any]) -> Dict[str, Any]:
        items = self.store.all()

        pattern = args.get("filter")
        if pattern:
            regex = _compile_filter(str(pattern))
            items = [
                item for item in items
                if regex.search(str(item.get("name", "")))
                or regex.search(str(item.get("description", "")))
            ]

        limit = args.get("limit")
        if limit:
            items = items[:int(limit)]

        return {"items": items, "count": len(items)}

    async def add_item(self, args: Mapping[str, Any]) -> Dict[str, Any]:
        _require(args, "name", "description")

        item = Item(
            name=args["name"],
            description=args["description"],
            metadata=args.get("metadata") or {},
        )
        record = self.store.add(item)

        return {
            "success": True,
            "item": record,
            "message": f"Item '{args['name']}' added successfully",
        }

    async def remove_item(self, args: Mapping[str, Any]) -> Dict[str, Any]:
        _require(args, "id")

        self.store.remove(args["id"])

        return {
            "success": True,
            "message": f"Item '{args['id']}' removed successfully",
        }

    async def search_items(self, args: Mapping[str, Any]) -> Dict[str, Any]:
        _require(args, "query")

        query = str(args["query"]).lower()
        fields = args.get("fields") or DEFAULT_SEARCH_FIELDS
        if isinstance(fields, str) or not isinstance(fields, list):
            raise ValueError("fields must be an array of field names")

        results = [
            item for item in self.store.all()
            if any(_field_matches(item.get(field), query) for field in fields)
        ]

        return {"results": results, "count": len(results)}

    async def get_status(self, args: Mapping[str, Any]) -> Dict[str, Any]:
        return {
            "serverName": self.config.server_name,
            "version": self.config.version,
            "uptime": time.monotonic() - self.started_at,
            "statistics": {
                "totalItems": self.store.count(),
                "registeredTools": len(self.registry),
            },
            "configuration": {
                "dataDir": str(self.config.data_dir),
                "outputDir": str(self.config.output_dir),
                "debug": self.config.debug,
            },
        }

    # ========================================================================
    # Operation Descriptors
    # ========================================================================

    def get_operations(self) -> List[OperationDescriptor]:
        """Descriptors for the built-in tools, in advertisement order."""
        return [
            OperationDescriptor(
                name="list_items",
                description="List all items in the system",
                input_schema={
                    "type": "object",
                    "properties": {
                        "filter": {
                            "type": "string",
                            "description": "Optional filter pattern"
                        },
                        "limit": {
                            "type": "number",
                            "description": "Maximum number of items to return"
                        }
                    }
                },
                handler=self.list_items,
            ),
            OperationDescriptor(
                name="add_item",
                description="Add a new item to the system",
                input_schema={
                    "type": "object",
                    "properties": {
                        "name": {
                            "type": "string",
                            "description": "Item name"
                        },
                        "description": {
                            "type": "string",
                            "description": "Item description"
                        },
                        "metadata": {
                            "type": "object",
                            "description": "Additional metadata"
                        }
                    },
                    "required": ["name", "description"]
                },
                handler=self.add_item,
            ),
            OperationDescriptor(
                name="remove_item",
                description="Remove an item from the system",
                input_schema={
                    "type": "object",
                    "properties": {
                        "id": {
                            "type": "string",
                            "description": "Item ID to remove"
                        }
                    },
                    "required": ["id"]
                },
                handler=self.remove_item,
            ),
            OperationDescriptor(
                name="search_items",
                description="Search items with advanced query",
                input_schema={
                    "type": "object",
                    "properties": {
                        "query": {
                            "type": "string",
                            "description": "Search query"
                        },
                        "fields": {
                            "type": "array",
                            "items": {"type": "string"},
                            "description": "Fields to search in"
                        }
                    },
                    "required": ["query"]
                },
                handler=self.search_items,
            ),
            OperationDescriptor(
                name="get_status",
                description="Get system status and statistics",
                input_schema={
                    "type": "object",
                    "properties": {}
                },
                handler=self.get_status,
            ),
        ]


def register_item_operations(
    registry: OperationRegistry,
    store: ItemStore,
    config: ServerConfig,
    started_at: Optional[float] = None,
) -> List[str]:
    """
    Register the built-in item tools.

    Returns:
        Names of the registered tools
    """
    operations = ItemOperations(store, config, registry, started_at).get_operations()
    registry.register_all(operations)
    logger.info(f"Registered {len(operations)} built-in tools")
    return [op.name for op in operations]
