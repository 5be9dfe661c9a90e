"""
ModHost - Configuration Loader
Discover module configs from the host's config endpoint.

The manifest ``<config_path>/modules.json`` lists module names; each name has a
``<config_path>/module-<name>.json`` document. Failures never propagate: a missing
manifest yields no configs, a broken module document skips that module only.
"""

from typing import Any, List, Optional
import logging

import httpx

from .lifecycle import ModuleHostConfig

logger = logging.getLogger(__name__)


class ConfigLoader:
    """Fetch and filter module host configurations."""

    def __init__(self, client: httpx.AsyncClient, config_path: str = "/config"):
        self.client = client
        self.config_path = config_path.rstrip("/")

    @property
    def manifest_path(self) -> str:
        return f"{self.config_path}/modules.json"

    def module_config_path(self, name: str) -> str:
        return f"{self.config_path}/module-{name}.json"

    async def load_module_configs(self) -> List[ModuleHostConfig]:
        """Return the enabled module configs in manifest order."""
        try:
            names = await self._fetch_manifest()
        except Exception as e:
            logger.error(f"Failed to load module configurations: {e}")
            return []

        configs = []
        for name in names:
            try:
                config = await self._fetch_module_config(name)
            except Exception as e:
                logger.error(f"Error loading config for module {name}: {e}")
                continue

            if config is None:
                continue

            if not config.enabled:
                logger.info(f"Module {config.id} is disabled, skipping")
                continue

            configs.append(config)
            logger.info(f"Loaded config for module: {config.id}")

        return configs

    async def _fetch_manifest(self) -> List[str]:
        response = await self.client.get(self.manifest_path)
        response.raise_for_status()
        data = response.json()

        modules = data.get("modules") if isinstance(data, dict) else None
        if not isinstance(modules, list):
            raise ValueError(f"{self.manifest_path} has no 'modules' list")

        return [str(name) for name in modules]

    async def _fetch_module_config(self, name: str) -> Optional[ModuleHostConfig]:
        path = self.module_config_path(name)
        response = await self.client.get(path)

        if response.is_error:
            logger.warning(f"Config file not found: {path} ({response.status_code})")
            return None

        data: Any = response.json()
        if not isinstance(data, dict):
            raise ValueError(f"{path} is not a JSON object")

        return ModuleHostConfig.from_dict(data)
