"""
ModHost - Remotes
Remote registration and the import-based dynamic loading capability.
"""

from pathlib import Path
from types import ModuleType
from typing import Any, Dict, Iterable, Mapping, Protocol, Tuple, Union
import importlib
import importlib.util
import logging
import sys

import httpx

from .errors import RemoteLoadError, RemotesError

logger = logging.getLogger(__name__)


class RemoteLoader(Protocol):
    """Anything that can turn ``"<remote>/<module path>"`` into a container."""

    async def load_remote(self, key: str) -> Any:
        ...


async def fetch_remotes(client: httpx.AsyncClient, path: str = "/remotes.json") -> Dict[str, str]:
    """
    Fetch the ``{remoteName: entry}`` manifest.

    Raises:
        RemotesError: If the manifest is unreachable or malformed
    """
    try:
        response = await client.get(path)
        response.raise_for_status()
        data = response.json()
    except (httpx.HTTPError, ValueError) as e:
        raise RemotesError(f"Failed to fetch remotes manifest {path}: {e}") from e

    if not isinstance(data, dict) or not all(
        isinstance(name, str) and isinstance(entry, str) for name, entry in data.items()
    ):
        raise RemotesError(f"Remotes manifest {path} must map names to entries")

    return data


def parse_remote_key(key: str) -> Tuple[str, str]:
    """Split ``"billing/./lifecycle"`` into ``("billing", "lifecycle")``."""
    remote, sep, module_path = key.partition("/")
    if not remote or not sep:
        raise RemoteLoadError(f"Invalid remote key: {key!r}")

    parts = [p for p in module_path.split("/") if p not in ("", ".")]
    if not parts or ".." in parts:
        raise RemoteLoadError(f"Invalid module path in remote key: {key!r}")

    return remote, ".".join(parts)


class ImportRemoteLoader:
    """
    Load remote modules with importlib.

    An entry is either a directory on disk (``<dir>/lifecycle.py`` or
    ``<dir>/lifecycle/__init__.py``) or a dotted package name
    (``<entry>.lifecycle``).
    """

    def __init__(self, remotes: Mapping[str, str] = None):
        self.remotes: Dict[str, str] = {}
        self._loaded: Dict[str, ModuleType] = {}
        if remotes:
            self.register_remotes(remotes)

    def register_remotes(self, remotes: Union[Mapping[str, str], Iterable[Tuple[str, str]]]) -> None:
        """Register remotes; re-registering a name replaces its entry."""
        items = remotes.items() if isinstance(remotes, Mapping) else remotes
        for name, entry in items:
            if self.remotes.get(name, entry) != entry:
                logger.info(f"Replacing remote {name}: {self.remotes[name]} -> {entry}")
                self._forget(name)
            self.remotes[name] = entry
            logger.debug(f"Registered remote: {name} -> {entry}")

    async def load_remote(self, key: str) -> ModuleType:
        """Import the module behind a remote key."""
        if key in self._loaded:
            return self._loaded[key]

        remote, module_path = parse_remote_key(key)
        if remote not in self.remotes:
            raise RemoteLoadError(f"Remote not registered: {remote}")

        entry = self.remotes[remote]
        try:
            if Path(entry).is_dir():
                module = self._load_from_dir(remote, Path(entry), module_path)
            else:
                module = importlib.import_module(f"{entry}.{module_path}")
        except RemoteLoadError:
            raise
        except Exception as e:
            raise RemoteLoadError(f"Failed to load {key}: {e}") from e

        self._loaded[key] = module
        return module

    def _load_from_dir(self, remote: str, root: Path, module_path: str) -> ModuleType:
        relative = Path(*module_path.split("."))
        candidates = [root / relative.with_suffix(".py"), root / relative / "__init__.py"]
        location = next((c for c in candidates if c.is_file()), None)
        if location is None:
            raise RemoteLoadError(f"Entry point not found for {remote}: {root / relative}")

        module_name = f"modhost_remote_{remote}_{module_path}".replace(".", "_").replace("-", "_")
        spec = importlib.util.spec_from_file_location(module_name, location)
        if spec is None or spec.loader is None:
            raise RemoteLoadError(f"Failed to create module spec for {location}")

        module = importlib.util.module_from_spec(spec)
        sys.modules[module_name] = module
        try:
            spec.loader.exec_module(module)
        except Exception:
            del sys.modules[module_name]
            raise
        return module

    def _forget(self, remote: str) -> None:
        prefix = f"{remote}/"
        for key in [k for k in self._loaded if k.startswith(prefix)]:
            del self._loaded[key]
