"""
Rested Runtime Layer.

Connects resource declarations to a running FastAPI application:

    1. A loader discovers declarations (memory, modules, JSON files)
    2. Each declaration becomes a Resource
    3. On start, each resource's endpoints are mounted on the app
    4. On stop, they are unmounted

Components:
    - ResourceLoader implementations (Memory, Module, File)
    - EndpointRegistry: mounts descriptors as FastAPI routes
"""

from .loaders import (
    ChainedResourceLoader,
    FileResourceLoader,
    MemoryResourceLoader,
    ModuleResourceLoader,
    ResourceLoader,
)
from .registry import EndpointRegistry

__all__ = [
    "ChainedResourceLoader",
    "EndpointRegistry",
    "FileResourceLoader",
    "MemoryResourceLoader",
    "ModuleResourceLoader",
    "ResourceLoader",
]
