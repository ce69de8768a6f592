"""
Reference backends for Rested.

Production storage lives outside this package; anything exposing
read/list/create/update/patch/remove can be registered as a backend.
"""

from .memory import MemoryBackend

__all__ = [
    "MemoryBackend",
]
