"""
ModHost - Module Lifecycle
Module registry, hook dispatch, and phase orchestration for loaded remote modules.
"""

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Callable, Dict, List, Mapping, Optional, Protocol, Sequence, Tuple, runtime_checkable
import asyncio
import inspect
import logging
import threading

logger = logging.getLogger(__name__)


class ModuleLifecyclePhase(str, Enum):
    """Lifecycle phases, in execution order."""
    SETUP = "setup"
    CONFIGURE = "configure"
    INITIALIZE = "initialize"
    READY = "ready"
    POST_INIT = "post_init"

    @property
    def hook_name(self) -> str:
        return f"on_{self.value}"


PHASE_ORDER: List[ModuleLifecyclePhase] = list(ModuleLifecyclePhase)


@dataclass(frozen=True)
class ModuleLifecycleResult:
    """Outcome of one phase for one module."""
    success: bool
    error: Optional[str] = None

    @classmethod
    def ok(cls) -> "ModuleLifecycleResult":
        return cls(success=True)

    @classmethod
    def failed(cls, error: str) -> "ModuleLifecycleResult":
        return cls(success=False, error=error)


@dataclass(frozen=True)
class ModuleHostConfig:
    """Host-side configuration for a single module."""
    id: str
    remote_name: str
    enabled: bool = True
    extra: Mapping[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ModuleHostConfig":
        """Build a config from its JSON document (``remoteName`` key)."""
        if not isinstance(data.get("id"), str) or not data["id"]:
            raise ValueError("module config is missing 'id'")
        if not isinstance(data.get("remoteName"), str) or not data["remoteName"]:
            raise ValueError(f"module config {data['id']!r} is missing 'remoteName'")

        extra = {
            key: value for key, value in data.items()
            if key not in ("id", "remoteName", "enabled")
        }
        return cls(
            id=data["id"],
            remote_name=data["remoteName"],
            enabled=bool(data.get("enabled", False)),
            extra=MappingProxyType(extra),
        )

    def get(self, key: str, default: Any = None) -> Any:
        """Look up an opaque config field."""
        return self.extra.get(key, default)


@dataclass
class HostContext:
    """Host handle passed unchanged to every hook."""
    name: str = "modhost"
    data: Dict[str, Any] = field(default_factory=dict)


@runtime_checkable
class RemoteModule(Protocol):
    """
    Shape of a loaded module.

    Only ``id`` and ``name`` are required. Any of ``on_setup``, ``on_configure``,
    ``on_initialize``, ``on_ready`` and ``on_post_init`` may be provided, sync or
    async. Mappings with the same keys are accepted too.
    """
    id: str
    name: str


def read_field(obj: Any, name: str) -> Any:
    """Read a field from an object or a mapping (modules, containers, hook results)."""
    if isinstance(obj, Mapping):
        return obj.get(name)
    return getattr(obj, name, None)


class ModuleRegistry:
    """Loaded modules and their host configs, keyed by the module's own id."""

    def __init__(self):
        self._modules: Dict[str, RemoteModule] = {}
        self._configs: Dict[str, ModuleHostConfig] = {}
        self._lock = threading.Lock()

    def register(self, module: RemoteModule, config: ModuleHostConfig) -> None:
        """Register a module; an existing entry with the same id is replaced."""
        module_id = read_field(module, "id")
        with self._lock:
            if module_id in self._modules:
                logger.info(f"Replacing registered module: {module_id}")
            self._modules[module_id] = module
            self._configs[module_id] = config

    def get(self, module_id: str) -> Optional[RemoteModule]:
        return self._modules.get(module_id)

    def get_config(self, module_id: str) -> Optional[ModuleHostConfig]:
        return self._configs.get(module_id)

    def snapshot(self) -> Dict[str, RemoteModule]:
        """Copy of the module mapping, safe to iterate while loading continues."""
        with self._lock:
            return dict(self._modules)

    @property
    def modules(self) -> Mapping[str, RemoteModule]:
        return MappingProxyType(self._modules)

    def __len__(self) -> int:
        return len(self._modules)

    def __contains__(self, module_id: str) -> bool:
        return module_id in self._modules


class _HookTimedOut(Exception):
    """A hook call exceeded the invoker deadline."""


@dataclass
class LifecycleState:
    """Registry plus the phase currently being executed."""
    registry: ModuleRegistry = field(default_factory=ModuleRegistry)
    current_phase: Optional[ModuleLifecyclePhase] = None


class HookInvoker:
    """Call a module's hook for a phase and normalize the outcome."""

    def __init__(self, registry: ModuleRegistry, hook_timeout: Optional[float] = None):
        self.registry = registry
        self.hook_timeout = hook_timeout

    async def invoke(
        self,
        module: RemoteModule,
        phase: ModuleLifecyclePhase,
        host: Any
    ) -> ModuleLifecycleResult:
        """Run one hook. Never raises for hook failures."""
        module_id = read_field(module, "id")
        hook = read_field(module, phase.hook_name)

        if not callable(hook):
            logger.debug(f"{module_id}: {phase.value} hook not implemented, skipping")
            return ModuleLifecycleResult.ok()

        args = [host]
        if phase is ModuleLifecyclePhase.CONFIGURE:
            config = self.registry.get_config(module_id)
            if config is None:
                logger.debug(f"{module_id}: no host config, skipping {phase.value}")
                return ModuleLifecycleResult.ok()
            args.append(config)

        logger.debug(f"{module_id}: executing {phase.value} phase")
        try:
            result = await self._call(hook, args)
        except _HookTimedOut:
            logger.error(f"{module_id}: {phase.value} phase timed out")
            return ModuleLifecycleResult.failed(
                f"{phase.value} phase timed out after {self.hook_timeout}s"
            )
        except Exception as e:
            logger.error(f"{module_id}: error in {phase.value} phase: {e!r}")
            return ModuleLifecycleResult.failed(str(e) or repr(e))

        return self._normalize(module_id, phase, result)

    async def _call(self, hook: Callable, args: Sequence[Any]) -> Any:
        if self.hook_timeout is None:
            return await self._run(hook, args, threaded=False)

        # Hook errors are carried out as values so that only the deadline raises TimeoutError here.
        try:
            result, error = await asyncio.wait_for(self._settle(hook, args), self.hook_timeout)
        except asyncio.TimeoutError:
            raise _HookTimedOut() from None
        if error is not None:
            raise error
        return result

    async def _settle(self, hook: Callable, args: Sequence[Any]) -> Tuple[Any, Optional[Exception]]:
        try:
            return await self._run(hook, args, threaded=True), None
        except Exception as e:
            return None, e

    @staticmethod
    async def _run(hook: Callable, args: Sequence[Any], threaded: bool) -> Any:
        # Sync hooks run in a worker thread under a deadline; the thread itself is not interrupted.
        if threaded and not inspect.iscoroutinefunction(hook):
            result = await asyncio.to_thread(hook, *args)
        else:
            result = hook(*args)
        if inspect.isawaitable(result):
            result = await result
        return result

    def _normalize(self, module_id: str, phase: ModuleLifecyclePhase, result: Any) -> ModuleLifecycleResult:
        success = read_field(result, "success")
        if not isinstance(success, bool):
            logger.warning(
                f"{module_id}: {phase.value} phase returned invalid result, treating as success"
            )
            return ModuleLifecycleResult.ok()

        if success:
            return ModuleLifecycleResult.ok()

        error = read_field(result, "error")
        if not error:
            error = f"{phase.value} phase failed without an error message"
        return ModuleLifecycleResult.failed(str(error))


LifecycleReport = Dict[ModuleLifecyclePhase, Dict[str, ModuleLifecycleResult]]


class PhaseOrchestrator:
    """Drive every registered module through the phases, one phase at a time."""

    def __init__(self, state: LifecycleState, invoker: HookInvoker):
        self.state = state
        self.invoker = invoker

    async def run_all_phases(self, host: Any) -> LifecycleReport:
        """Run all phases in order; an empty registry runs nothing."""
        modules = self.state.registry.snapshot()
        report: LifecycleReport = {}

        if not modules:
            logger.info("No registered modules, skipping lifecycle phases")
            return report

        for phase in PHASE_ORDER:
            report[phase] = await self.run_phase(phase, modules, host)

        return report

    async def run_phase(
        self,
        phase: ModuleLifecyclePhase,
        modules: Mapping[str, RemoteModule],
        host: Any
    ) -> Dict[str, ModuleLifecycleResult]:
        """Run one phase for all modules and wait for every one of them to settle."""
        self.state.current_phase = phase
        logger.info(f"Starting {phase.value} phase for {len(modules)} modules")

        outcomes = await asyncio.gather(
            *(self.invoker.invoke(module, phase, host) for module in modules.values()),
            return_exceptions=True
        )

        results: Dict[str, ModuleLifecycleResult] = {}
        for module_id, outcome in zip(modules, outcomes):
            if isinstance(outcome, BaseException):
                logger.error(f"{module_id}: {phase.value} phase rejected: {outcome!r}")
                results[module_id] = ModuleLifecycleResult.failed(str(outcome) or repr(outcome))
            else:
                if not outcome.success:
                    logger.warning(f"{module_id}: {phase.value} phase failed: {outcome.error}")
                results[module_id] = outcome

        logger.info(f"Completed {phase.value} phase")
        return results
