"""Shared utilities."""

from .ttl_cache import BoundedTTLCache

__all__ = ["BoundedTTLCache"]
