"""Shared fixtures for modhost tests."""

import asyncio
import json

import httpx
import pytest

from helpers import aclose_all


@pytest.fixture
def mock_client():
    """Factory for AsyncClients serving JSON documents from a route table.

    Values may be a JSON-serializable document, a raw str body, an int status
    code, or an exception instance to raise from the transport. Clients left
    open by the test are closed on teardown.
    """
    clients = []

    def factory(routes):
        def handler(request):
            route = routes.get(request.url.path)
            if route is None:
                return httpx.Response(404)
            if isinstance(route, Exception):
                raise route
            if isinstance(route, int):
                return httpx.Response(route)
            if isinstance(route, str):
                return httpx.Response(200, text=route)
            return httpx.Response(200, text=json.dumps(route))

        client = httpx.AsyncClient(
            base_url="http://host.test",
            transport=httpx.MockTransport(handler),
        )
        clients.append(client)
        return client

    yield factory

    if any(not client.is_closed for client in clients):
        loop = asyncio.new_event_loop()
        try:
            loop.run_until_complete(aclose_all(clients))
        finally:
            loop.close()
