"""
Operation Registry - catalog of invocable tools.

Provides:
- Immutable operation descriptors (name, description, input schema, handler)
- Registration with descriptor validation
- Lookup and enumeration for tool advertisement
- The error kinds shared by the loader and the dispatcher
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Union

logger = logging.getLogger(__name__)

# Type aliases
JSONSchema = Dict[str, Any]
Handler = Callable[[Mapping[str, Any]], Any]


def _empty_schema() -> JSONSchema:
    return {"type": "object", "properties": {}}


# ============================================================================
# Data Classes
# ============================================================================

@dataclass(frozen=True)
class OperationDescriptor:
    """
    Describes an invocable operation (an MCP tool).

    The input schema is advertised verbatim to clients; the registry never
    evaluates it.
    """
    name: str                                   # Tool identifier (e.g., "list_items")
    handler: Handler                            # Called with the raw argument mapping
    description: str = ""                       # Human-readable description
    input_schema: JSONSchema = field(default_factory=_empty_schema)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "OperationDescriptor":
        """
        Build a descriptor from a plain mapping.

        Accepts the shape exported by custom tool modules:
        ``{"name", "description", "inputSchema", "handler"}``.

        Args:
            data: Mapping with at least ``name`` and ``handler``

        Returns:
            OperationDescriptor
        """
        schema = data.get("inputSchema", data.get("input_schema"))
        return cls(
            name=data.get("name"),
            handler=data.get("handler"),
            description=data.get("description") or "",
            input_schema=schema if schema is not None else _empty_schema(),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Advertised form of the descriptor (handler excluded)."""
        return {
            "name": self.name,
            "description": self.description,
            "inputSchema": self.input_schema,
        }


# ============================================================================
# Exceptions
# ============================================================================

class OperationRegistryError(Exception):
    """Base exception for registry errors."""
    pass


class InvalidOperationDescriptor(OperationRegistryError):
    """Invalid operation descriptor."""
    pass


class OperationAlreadyRegistered(OperationRegistryError):
    """Operation already registered (only raised when overwrites are disabled)."""
    pass


class LoadFailure(OperationRegistryError):
    """A custom tool file could not be loaded."""

    def __init__(self, path: str, message: str):
        self.path = path
        self.message = message
        super().__init__(f"Failed to load custom tool {path}: {message}")


class DispatchError(OperationRegistryError):
    """Normalized failure of a single dispatched request."""

    code = "DISPATCH_ERROR"

    def __init__(self, operation: str, message: str):
        self.operation = operation
        self.message = message
        super().__init__(message)


class OperationNotFound(DispatchError):
    """Operation not found in registry."""

    code = "OPERATION_NOT_FOUND"

    def __init__(self, operation: str):
        super().__init__(operation, f"Tool '{operation}' not found")


class ArgumentValidationError(DispatchError):
    """Arguments do not satisfy the operation's input schema."""

    code = "INVALID_ARGUMENTS"

    def __init__(self, operation: str, message: str):
        super().__init__(operation, f"Invalid arguments for tool '{operation}': {message}")


class ExecutionFailed(DispatchError):
    """The operation's handler raised."""

    code = "EXECUTION_FAILED"

    def __init__(self, operation: str, message: str):
        self.original_message = message
        super().__init__(operation, f"Tool '{operation}' execution failed: {message}")


class OperationTimeout(DispatchError):
    """The operation's handler did not finish in time."""

    code = "OPERATION_TIMEOUT"

    def __init__(self, operation: str, timeout: float):
        self.timeout = timeout
        super().__init__(operation, f"Tool '{operation}' timed out after {timeout:g}s")


# ============================================================================
# Operation Registry
# ============================================================================

class OperationRegistry:
    """
    In-memory registry of operations, keyed by name.

    Duplicate names replace the earlier entry unless the registry is built
    with ``allow_overwrite=False``.
    """

    def __init__(self, allow_overwrite: bool = True):
        """Initialize registry."""
        self.allow_overwrite = allow_overwrite
        self._operations: Dict[str, OperationDescriptor] = {}

    # ========================================================================
    # Registration
    # ========================================================================

    def register(
        self,
        operation: Union[OperationDescriptor, Mapping[str, Any]]
    ) -> OperationDescriptor:
        """
        Register an operation, replacing any entry with the same name.

        Args:
            operation: Descriptor, or a mapping with the descriptor shape

        Returns:
            The registered descriptor

        Raises:
            InvalidOperationDescriptor: If name or handler is missing
            OperationAlreadyRegistered: If the name exists and overwrites are disabled
        """
        if isinstance(operation, Mapping):
            operation = OperationDescriptor.from_mapping(operation)
        elif not isinstance(operation, OperationDescriptor):
            raise InvalidOperationDescriptor(
                f"Expected an operation descriptor, got {type(operation).__name__}"
            )

        self._validate_descriptor(operation)

        if operation.name in self._operations:
            if not self.allow_overwrite:
                raise OperationAlreadyRegistered(
                    f"Operation '{operation.name}' already registered"
                )
            logger.warning(f"Replacing registered operation: {operation.name}")

        self._operations[operation.name] = operation
        logger.debug(f"Registered operation: {operation.name}")
        return operation

    def register_all(
        self,
        operations: Iterable[Union[OperationDescriptor, Mapping[str, Any]]]
    ) -> None:
        """
        Register multiple operations in order.

        Args:
            operations: Descriptors to register
        """
        for operation in operations:
            self.register(operation)

    # ========================================================================
    # Retrieval
    # ========================================================================

    def get(self, name: str) -> OperationDescriptor:
        """
        Retrieve an operation by name.

        Raises:
            OperationNotFound: If operation doesn't exist
        """
        operation = self._operations.get(name)
        if operation is None:
            raise OperationNotFound(name)
        return operation

    def lookup(self, name: str) -> Optional[OperationDescriptor]:
        """Return the operation registered under ``name``, or None."""
        return self._operations.get(name)

    def list(self) -> List[Dict[str, Any]]:
        """
        Snapshot of the advertised operations, in registration order.

        Returns:
            List of ``{"name", "description", "inputSchema"}`` dictionaries
        """
        return [op.to_dict() for op in self._operations.values()]

    def names(self) -> List[str]:
        return list(self._operations)

    def exists(self, name: str) -> bool:
        """Check if operation exists."""
        return name in self._operations

    def __contains__(self, name: object) -> bool:
        return name in self._operations

    def __len__(self) -> int:
        return len(self._operations)

    # ========================================================================
    # Internal Helpers
    # ========================================================================

    def _validate_descriptor(self, operation: OperationDescriptor) -> None:
        """
        Validate operation descriptor.

        Raises:
            InvalidOperationDescriptor: If validation fails
        """
        if not operation.name or not isinstance(operation.name, str):
            raise InvalidOperationDescriptor("Tool must have a name and handler")

        if operation.handler is None or not callable(operation.handler):
            raise InvalidOperationDescriptor(
                f"Tool '{operation.name}' must have a callable handler"
            )

        if not isinstance(operation.input_schema, Mapping):
            raise InvalidOperationDescriptor(
                f"Tool '{operation.name}' input schema must be a mapping"
            )
