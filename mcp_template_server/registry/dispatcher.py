"""
Dispatcher - resolves tool calls against the registry and normalizes outcomes.

Every failure that reaches the caller is a DispatchError subclass:
OperationNotFound, ArgumentValidationError, ExecutionFailed or
OperationTimeout. Handler exceptions never escape un-normalized.
"""

import asyncio
import inspect
import logging
from typing import Any, Dict, Mapping, Optional

from jsonschema import exceptions as jsonschema_exceptions, validators as jsonschema_validators

from ..utils.response import error_response, success_response
from .operation_registry import (
    ArgumentValidationError,
    DispatchError,
    ExecutionFailed,
    OperationDescriptor,
    OperationNotFound,
    OperationRegistry,
    OperationTimeout,
)

logger = logging.getLogger(__name__)


class _HandlerExited(Exception):
    """Carries a handler's SystemExit out of its task."""


async def _contain_exit(awaitable: Any) -> Any:
    try:
        return await awaitable
    except SystemExit as e:
        raise _HandlerExited() from e


class Dispatcher:
    """Executes registered operations by name."""

    def __init__(
        self,
        registry: OperationRegistry,
        timeout: Optional[float] = None,
        validate_arguments: bool = False,
    ):
        """
        Args:
            registry: Fully loaded operation registry
            timeout: Seconds an async handler may run before it is cancelled
                (None disables the bound)
            validate_arguments: Check arguments against each operation's
                input schema before invoking the handler
        """
        self.registry = registry
        self.timeout = timeout
        self.validate_arguments = validate_arguments

    async def execute(self, name: str, args: Mapping[str, Any]) -> Any:
        """
        Execute an operation and return its result unmodified.

        Args:
            name: Operation name
            args: Raw argument mapping, passed to the handler as received

        Returns:
            Whatever the handler returned

        Raises:
            OperationNotFound: If no operation is registered under ``name``
            ArgumentValidationError: If validation is enabled and fails
            ExecutionFailed: If the handler raised
            OperationTimeout: If the handler exceeded the timeout
        """
        operation = self.registry.lookup(name)
        if operation is None:
            logger.error(f"Unknown tool requested: {name}")
            raise OperationNotFound(name)

        if self.validate_arguments:
            try:
                self._validate_args(operation, args)
            except ArgumentValidationError as e:
                logger.warning(str(e))
                raise

        logger.debug(f"Executing tool: {name}")
        try:
            result = operation.handler(args)
            if inspect.isawaitable(result):
                result = await self._await_result(name, result)
        except OperationTimeout:
            logger.error(f"Tool {name} timed out after {self.timeout}s")
            raise
        except (Exception, SystemExit) as e:
            message = f"handler exited with status {e.code}" if isinstance(e, SystemExit) else str(e)
            logger.error(f"Error executing tool {name}: {message}")
            raise ExecutionFailed(name, message) from e

        return result

    async def dispatch(self, name: str, args: Mapping[str, Any]) -> Dict[str, Any]:
        """
        Execute an operation and wrap the outcome in a response envelope.

        Returns:
            ``{"ok": True, "data": ...}`` or ``{"ok": False, "error": {...}}``
        """
        try:
            result = await self.execute(name, args)
        except DispatchError as e:
            details = {"operation": e.operation}
            if e.__cause__ is not None:
                details["cause"] = type(e.__cause__).__name__
            return error_response(e.message, code=e.code, details=details)

        return success_response(result)

    # ========================================================================
    # Internal Helpers
    # ========================================================================

    async def _await_result(self, name: str, awaitable: Any) -> Any:
        """Await a handler result, cancelling it once the timeout elapses."""
        if self.timeout is None:
            return await awaitable

        task = asyncio.ensure_future(_contain_exit(awaitable))
        done, _ = await asyncio.wait({task}, timeout=self.timeout)
        if task not in done:
            task.cancel()
            raise OperationTimeout(name, self.timeout)
        try:
            return task.result()
        except _HandlerExited as e:
            raise e.__cause__

    def _validate_args(self, operation: OperationDescriptor, args: Mapping[str, Any]) -> None:
        try:
            validator_cls = jsonschema_validators.validator_for(operation.input_schema)
            validator_cls.check_schema(operation.input_schema)
            validator_cls(operation.input_schema).validate(args)
        except jsonschema_exceptions.ValidationError as e:
            raise ArgumentValidationError(operation.name, e.message) from e
        except jsonschema_exceptions.SchemaError as e:
            raise ArgumentValidationError(
                operation.name, f"input schema is invalid: {e.message}"
            ) from e
