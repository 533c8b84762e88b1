"""Persistence for the built-in item tools."""

from .item_store import ItemNotFound, ItemStore, StorageError, StorageLimitExceeded

__all__ = ['ItemNotFound', 'ItemStore', 'StorageError', 'StorageLimitExceeded']
