"""
ModHost - Lifecycle Manager
Load configured remote modules and run them through every lifecycle phase.
"""

from typing import Any, Mapping, Optional
import logging

from .config import ConfigLoader
from .errors import ModuleValidationError
from .lifecycle import (
    HookInvoker,
    LifecycleReport,
    LifecycleState,
    ModuleHostConfig,
    ModuleLifecyclePhase,
    PhaseOrchestrator,
    RemoteModule,
    read_field,
)
from .remotes import RemoteLoader

logger = logging.getLogger(__name__)

DEFAULT_ENTRY_PATH = "./lifecycle"


class ModuleLoader:
    """Resolve a remote into a module and register it."""

    def __init__(self, remote_loader: RemoteLoader, state: LifecycleState):
        self.remote_loader = remote_loader
        self.state = state

    async def load_and_register(
        self,
        remote_name: str,
        entry_path: str,
        host_config: ModuleHostConfig
    ) -> Optional[RemoteModule]:
        """Load ``remote_name/entry_path``; returns None when loading fails."""
        remote_key = f"{remote_name}/{entry_path}"
        logger.info(f"Loading module: {remote_key}")

        try:
            container = await self.remote_loader.load_remote(remote_key)
            module = self.validate(remote_key, container)

            module_id = read_field(module, "id")
            if module_id != host_config.id:
                logger.warning(
                    f'Module ID mismatch: expected "{host_config.id}", got "{module_id}"'
                )

            self.state.registry.register(module, host_config)
        except Exception as e:
            logger.error(f"Failed to load module {remote_key}: {e}")
            return None

        logger.info(f"Registered module: {module_id} ({read_field(module, 'name')})")
        return module

    @staticmethod
    def validate(remote_key: str, container: Any) -> RemoteModule:
        """Return the container's default export if it has an id and a name."""
        module = read_field(container, "default") if container is not None else None
        if module is None:
            raise ModuleValidationError(f"Module {remote_key} does not export a default module")

        for name in ("id", "name"):
            value = read_field(module, name)
            if not isinstance(value, str) or not value:
                raise ModuleValidationError(
                    f"Module {remote_key} is missing required field '{name}' (non-empty string)"
                )

        return module


class ModuleLifecycle:
    """High-level module lifecycle management."""

    def __init__(
        self,
        config_loader: ConfigLoader,
        remote_loader: RemoteLoader,
        entry_path: str = DEFAULT_ENTRY_PATH,
        hook_timeout: Optional[float] = None
    ):
        self.config_loader = config_loader
        self.entry_path = entry_path
        self.state = LifecycleState()
        self.loader = ModuleLoader(remote_loader, self.state)
        self.invoker = HookInvoker(self.state.registry, hook_timeout=hook_timeout)
        self.orchestrator = PhaseOrchestrator(self.state, self.invoker)

    @property
    def current_phase(self) -> Optional[ModuleLifecyclePhase]:
        """Phase being executed; stays at POST_INIT once the run completes."""
        return self.state.current_phase

    @property
    def registered_modules(self) -> Mapping[str, RemoteModule]:
        return self.state.registry.modules

    def get_module_config(self, module_id: str) -> Optional[ModuleHostConfig]:
        return self.state.registry.get_config(module_id)

    async def initialize(self, host: Any) -> LifecycleReport:
        """Load configs, load modules, then run all phases."""
        logger.info("Starting module lifecycle initialization")

        configs = await self.config_loader.load_module_configs()
        if not configs:
            logger.info("No enabled modules found")
            return {}

        for config in configs:
            await self.loader.load_and_register(config.remote_name, self.entry_path, config)

        if len(self.state.registry) == 0:
            logger.info("No modules successfully loaded")
            return {}

        report = await self.orchestrator.run_all_phases(host)
        logger.info("Module lifecycle initialization complete")
        return report
