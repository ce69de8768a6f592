"""
Resource Loaders.

Loaders discover resource declarations, build Resource instances and tie
them to the application lifecycle:

    start(registry)  - await each resource's endpoints and mount them
    stop(registry)   - unmount them again

Implementations differ only in WHERE declarations come from:
- MemoryResourceLoader: added programmatically (testing, small apps)
- ModuleResourceLoader: Python modules exposing RESOURCE / RESOURCES
- FileResourceLoader: *.resource.json / *.resource.yaml files in a directory

File Format (resources/widgets.resource.json):
    {
        "key": "widgets",
        "backend": {"ref": "memory", "config": {}},
        "schema": "widgets",
        "pre": [{"op": "create", "priority": 1, "fn": "myapp.hooks:stamp_owner"}]
    }

The same declaration may be written in YAML (widgets.resource.yaml). A file
may also hold a list of declarations.
"""

from __future__ import annotations

import importlib
import json
import logging
from abc import ABC, abstractmethod
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import TYPE_CHECKING, Any

import yaml

from rested.resource.errors import ConfigurationError
from rested.resource.resource import Resource
from rested.resource.spec import ResourceSpec

if TYPE_CHECKING:
    from rested.config import AppSettings
    from rested.pipeline.endpoints import EndpointDescriptor
    from rested.resource.capabilities import CapabilityRegistry

    from .registry import EndpointRegistry

logger = logging.getLogger(__name__)


class ResourceLoader(ABC):
    """
    Base class for resource loaders.

    Subclasses implement load_declarations(); the base class builds the
    resources and handles endpoint registration.
    """

    def __init__(
        self,
        *,
        capabilities: CapabilityRegistry | None = None,
        settings: AppSettings | None = None,
    ):
        self._capabilities = capabilities
        self._settings = settings
        self._resources: list[Resource] | None = None
        self._registered: dict[str, list[EndpointDescriptor]] = {}

    @abstractmethod
    async def load_declarations(self) -> list[Any]:
        """Return the raw resource declarations."""
        ...

    @property
    def resources(self) -> list[Resource]:
        """Loaded resources (empty before load())."""
        return list(self._resources or [])

    def get(self, key: str) -> Resource | None:
        for resource in self._resources or []:
            if resource.key == key:
                return resource
        return None

    async def load(self) -> list[Resource]:
        """
        Build a Resource for each declaration.

        Raises:
            ConfigurationError: If a declaration is invalid or keys collide
        """
        declarations = await self.load_declarations()
        resources: list[Resource] = []
        seen: set[str] = set()

        for declaration in declarations:
            resource = Resource(declaration, capabilities=self._capabilities)
            if resource.key in seen:
                raise ConfigurationError(f"duplicate resource key '{resource.key}'")
            seen.add(resource.key)
            resources.append(resource)

        self._resources = resources
        logger.debug(f"{len(resources)} resource(s) were successfully loaded")
        return resources

    async def start(self, registry: EndpointRegistry) -> int:
        """
        Mount the endpoints of every resource.

        Returns:
            Number of routes mounted

        Raises:
            ResourceNotReadyError: If a resource fails to initialize
        """
        if self._resources is None:
            await self.load()

        logger.info(f"Registering {len(self._resources)} resource(s) on startup")
        count = 0
        for resource in self._resources:
            descriptors = await resource.endpoints(self._settings)
            count += registry.register(descriptors)
            self._registered[resource.key] = descriptors
            logger.info(f"Registered resource '{resource.key}' at {resource.url_path}")
        return count

    async def stop(self, registry: EndpointRegistry) -> int:
        """
        Unmount every endpoint mounted by start().

        Returns:
            Number of routes removed
        """
        logger.info(f"Unregistering {len(self._registered)} resource(s) on shutdown")
        count = 0
        for key, descriptors in self._registered.items():
            count += registry.unregister(descriptors)
            logger.debug(f"Unregistered resource '{key}'")
        self._registered.clear()
        return count


class MemoryResourceLoader(ResourceLoader):
    """
    Holds declarations in memory.

    Usage:
        loader = MemoryResourceLoader()
        loader.add({"key": "widgets", "backend": "memory"})
    """

    def __init__(self, declarations: Iterable[Any] = (), **kwargs: Any):
        super().__init__(**kwargs)
        self._declarations: list[Any] = list(declarations)

    def add(self, declaration: ResourceSpec | Mapping[str, Any]) -> None:
        self._declarations.append(declaration)

    async def load_declarations(self) -> list[Any]:
        return list(self._declarations)


class ModuleResourceLoader(ResourceLoader):
    """
    Collects declarations from Python modules.

    Each module exposes either RESOURCES (an iterable of declarations) or
    RESOURCE (a single declaration).
    """

    def __init__(self, module_names: Iterable[str], **kwargs: Any):
        super().__init__(**kwargs)
        self._module_names = list(module_names)

    async def load_declarations(self) -> list[Any]:
        declarations: list[Any] = []
        for module_name in self._module_names:
            try:
                module = importlib.import_module(module_name)
            except ImportError as e:
                raise ConfigurationError(f"cannot import resource module '{module_name}': {e}") from e

            if hasattr(module, "RESOURCES"):
                declarations.extend(module.RESOURCES)
            elif hasattr(module, "RESOURCE"):
                declarations.append(module.RESOURCE)
            else:
                raise ConfigurationError(
                    f"module '{module_name}' defines neither RESOURCES nor RESOURCE"
                )
            logger.debug(f"[loader] Loaded declarations from module: {module_name}")
        return declarations


DEFAULT_FILE_PATTERNS = ("*.resource.json", "*.resource.yaml", "*.resource.yml")
_YAML_SUFFIXES = (".yaml", ".yml")


def _read_declaration_file(file_path: Path) -> Any:
    """Parse a JSON or YAML declaration file."""
    text = file_path.read_text()
    try:
        if file_path.suffix in _YAML_SUFFIXES:
            return yaml.safe_load(text)
        return json.loads(text)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise ConfigurationError(f"invalid declaration file {file_path}: {e}") from e


class FileResourceLoader(ResourceLoader):
    """
    Reads *.resource.json and *.resource.yaml files from a directory.

    Files are read in name order. A missing directory yields no resources,
    and so does an empty YAML file.
    """

    def __init__(
        self,
        base_dir: str | Path,
        *,
        patterns: Iterable[str] = DEFAULT_FILE_PATTERNS,
        **kwargs: Any,
    ):
        super().__init__(**kwargs)
        self._base_dir = Path(base_dir)
        self._patterns = tuple(patterns)

    async def load_declarations(self) -> list[Any]:
        if not self._base_dir.exists():
            logger.warning(f"[loader] Resource directory not found: {self._base_dir}")
            return []

        files = sorted({path for pattern in self._patterns for path in self._base_dir.glob(pattern)})
        declarations: list[Any] = []
        for file_path in files:
            data = _read_declaration_file(file_path)
            if data is None:
                continue
            if isinstance(data, list):
                declarations.extend(data)
            else:
                declarations.append(data)
            logger.debug(f"[loader] Loaded declarations from file: {file_path}")
        return declarations


class ChainedResourceLoader(ResourceLoader):
    """Concatenates the declarations of several loaders, in order."""

    def __init__(self, loaders: Iterable[ResourceLoader], **kwargs: Any):
        super().__init__(**kwargs)
        self._loaders = list(loaders)

    async def load_declarations(self) -> list[Any]:
        declarations: list[Any] = []
        for loader in self._loaders:
            declarations.extend(await loader.load_declarations())
        return declarations
