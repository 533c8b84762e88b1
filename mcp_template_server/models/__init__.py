"""Data models."""

from .item import Item, utc_timestamp

__all__ = ['Item', 'utc_timestamp']
