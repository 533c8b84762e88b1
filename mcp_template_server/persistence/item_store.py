"""File-backed persistence for the item collection.

The whole collection lives in a single JSON document, ``{"items": [...]}``,
which is read and rewritten on every mutation. A missing document is an
empty collection.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from ..models.item import Item

logger = logging.getLogger(__name__)

DEFAULT_FILENAME = "items.json"


class StorageError(Exception):
    """Base exception for item storage errors."""
    pass


class ItemNotFound(StorageError, LookupError):
    """No item matches the requested id."""

    def __init__(self, item_id: str):
        self.item_id = item_id
        super().__init__(f"Item with ID '{item_id}' not found")


class StorageLimitExceeded(StorageError):
    """The serialized document would exceed the configured size limit."""
    pass


def json_dump(data: Any, file_path: Path, **kwargs) -> None:
    """Write JSON with two-space indentation.

    Args:
        data: Data to serialize
        file_path: Path to write to
        **kwargs: Additional arguments passed to json.dump
    """
    with open(file_path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2, **kwargs)


class ItemStore:
    """Reads and writes the item document under a data directory."""

    def __init__(
        self,
        data_dir: Union[str, Path],
        max_file_size: Optional[int] = None,
        filename: str = DEFAULT_FILENAME,
    ):
        """
        Args:
            data_dir: Directory holding the document
            max_file_size: Largest serialized document in bytes (None = unbounded)
            filename: Document file name
        """
        self.data_dir = Path(data_dir)
        self.max_file_size = max_file_size
        self.path = self.data_dir / filename

    # ========================================================================
    # Document access
    # ========================================================================

    def read(self) -> Dict[str, Any]:
        """Load the document, or an empty collection if it does not exist."""
        if not self.path.exists():
            return {"items": []}

        with open(self.path, "r", encoding="utf-8") as f:
            data = json.load(f)

        if not isinstance(data, dict):
            raise StorageError(f"Data document {self.path} must contain an object")
        if not isinstance(data.get("items"), list):
            data["items"] = []
        return data

    def write(self, data: Dict[str, Any]) -> None:
        """
        Overwrite the document.

        Raises:
            StorageLimitExceeded: If the serialized document is larger than
                ``max_file_size``; the existing document is left untouched
        """
        if self.max_file_size is not None:
            size = len(json.dumps(data, indent=2).encode("utf-8"))
            if size > self.max_file_size:
                raise StorageLimitExceeded(
                    f"Data document would be {size} bytes "
                    f"(limit {self.max_file_size})"
                )

        self.data_dir.mkdir(parents=True, exist_ok=True)
        json_dump(data, self.path)

    # ========================================================================
    # Collection operations
    # ========================================================================

    def all(self) -> List[Dict[str, Any]]:
        return self.read()["items"]

    def count(self) -> int:
        return len(self.all())

    def add(self, item: Item) -> Dict[str, Any]:
        """Append an item and persist the document.

        Returns:
            The stored record
        """
        data = self.read()
        record = item.to_record()
        data["items"].append(record)
        self.write(data)
        logger.debug(f"Added item {record['id']} to {self.path}")
        return record

    def remove(self, item_id: str) -> Dict[str, Any]:
        """Delete the item with ``item_id`` and persist the document.

        Returns:
            The removed record

        Raises:
            ItemNotFound: If no item has that id
        """
        data = self.read()
        items = data["items"]
        remaining = [item for item in items if item.get("id") != item_id]

        if len(remaining) == len(items):
            raise ItemNotFound(item_id)

        removed = next(item for item in items if item.get("id") == item_id)
        data["items"] = remaining
        self.write(data)
        logger.debug(f"Removed item {item_id} from {self.path}")
        return removed
