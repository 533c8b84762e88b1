"""Item record stored in the data document."""

from datetime import datetime, timezone
from typing import Any, Dict
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field


def utc_timestamp() -> str:
    """Current UTC time as ISO-8601 with millisecond precision and a ``Z`` suffix."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class Item(BaseModel):
    """A single entry of the item collection."""
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(default_factory=lambda: uuid4().hex)
    name: str
    description: str
    metadata: Dict[str, Any] = Field(default_factory=dict)
    created_at: str = Field(default_factory=utc_timestamp, alias="createdAt")

    def to_record(self) -> Dict[str, Any]:
        """Serialized form used in the data document and tool results."""
        return self.model_dump(by_alias=True)
