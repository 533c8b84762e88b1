"""
Built-in operation registrations.

Registers the default tool surface with a registry.
"""

from .item_operations import ItemOperations, register_item_operations


def register_builtin_operations(registry, store, config, started_at=None):
    """Register all built-in operations and return their names."""
    return register_item_operations(registry, store, config, started_at)


__all__ = [
    'ItemOperations',
    'register_builtin_operations',
    'register_item_operations',
]
