"""
ModHost - Remote Module Lifecycle Host

Discovers module configurations, loads remote modules, and drives every module
through the setup, configure, initialize, ready and post_init phases. A failing
module never blocks the others.

Example:
    >>> import httpx
    >>> from modhost import ConfigLoader, HostContext, ImportRemoteLoader, ModuleLifecycle
    >>>
    >>> async with httpx.AsyncClient(base_url="http://localhost:8080") as client:
    ...     lifecycle = ModuleLifecycle(
    ...         ConfigLoader(client),
    ...         ImportRemoteLoader({"billing": "./remotes/billing"}),
    ...     )
    ...     report = await lifecycle.initialize(HostContext())
"""

from .config import ConfigLoader
from .errors import ModHostError, ModuleValidationError, RemoteLoadError, RemotesError
from .lifecycle import (
    HookInvoker,
    HostContext,
    LifecycleReport,
    LifecycleState,
    ModuleHostConfig,
    ModuleLifecyclePhase,
    ModuleLifecycleResult,
    ModuleRegistry,
    PHASE_ORDER,
    PhaseOrchestrator,
    RemoteModule,
)
from .manager import ModuleLifecycle, ModuleLoader
from .remotes import ImportRemoteLoader, RemoteLoader, fetch_remotes

__version__ = "0.1.0"
__all__ = [
    # Data model
    "ModuleHostConfig",
    "ModuleLifecyclePhase",
    "ModuleLifecycleResult",
    "RemoteModule",
    "HostContext",
    "PHASE_ORDER",
    "LifecycleReport",
    # State and orchestration
    "LifecycleState",
    "ModuleRegistry",
    "HookInvoker",
    "PhaseOrchestrator",
    # Loading
    "ConfigLoader",
    "ModuleLoader",
    "ImportRemoteLoader",
    "RemoteLoader",
    "fetch_remotes",
    # Management
    "ModuleLifecycle",
    # Errors
    "ModHostError",
    "RemotesError",
    "RemoteLoadError",
    "ModuleValidationError",
]
