"""Namespace reserved for Incus API support; it holds no modules yet."""

__all__ = []