"""
Operation Registry for the MCP template server.

Provides the tool catalog, the startup loader and the dispatcher.
"""

from .operation_registry import (
    OperationRegistry,
    OperationDescriptor,
    # Exceptions
    OperationRegistryError,
    InvalidOperationDescriptor,
    OperationAlreadyRegistered,
    LoadFailure,
    DispatchError,
    OperationNotFound,
    ArgumentValidationError,
    ExecutionFailed,
    OperationTimeout,
)
from .dispatcher import Dispatcher
from .loader import LoadReport, OperationLoader

__all__ = [
    'OperationRegistry',
    'OperationDescriptor',
    'Dispatcher',
    'OperationLoader',
    'LoadReport',
    # Exceptions
    'OperationRegistryError',
    'InvalidOperationDescriptor',
    'OperationAlreadyRegistered',
    'LoadFailure',
    'DispatchError',
    'OperationNotFound',
    'ArgumentValidationError',
    'ExecutionFailed',
    'OperationTimeout',
]
