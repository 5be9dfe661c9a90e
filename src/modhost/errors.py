"""Exceptions raised while registering remotes and loading modules."""


class ModHostError(Exception):
    """Base exception for modhost errors."""


class RemotesError(ModHostError):
    """Raised when the remotes manifest cannot be fetched or parsed."""


class RemoteLoadError(ModHostError):
    """Raised when a remote entry cannot be resolved or imported."""


class ModuleValidationError(ModHostError):
    """Raised when a loaded remote does not export a usable module."""
