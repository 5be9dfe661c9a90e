"""Test doubles for modhost tests."""


class FakeModule:
    """Module double that records every hook call."""

    def __init__(self, module_id, name=None, calls=None, **hooks):
        self.id = module_id
        self.name = name or module_id.title()
        self.calls = calls if calls is not None else []
        for hook_name, hook in hooks.items():
            setattr(self, hook_name, hook)


class DictRemoteLoader:
    """Remote loader backed by a dict of remote key -> container."""

    def __init__(self, containers=None):
        self.containers = dict(containers or {})
        self.requested = []

    async def load_remote(self, key):
        self.requested.append(key)
        container = self.containers[key]
        if isinstance(container, Exception):
            raise container
        return container


async def aclose_all(clients):
    """Close every client that is still open."""
    for client in clients:
        if not client.is_closed:
            await client.aclose()
