"""Pytest configuration and fixtures for solgate testing.

Gateway tests talk HTTP end to end: a real aiohttp "validator" app runs on an
ephemeral port and the gateway under test forwards to it. Every fixture
closes what it opened so no sockets outlive a test.
"""

import asyncio
import json
import socket
from collections.abc import AsyncGenerator, Callable
from pathlib import Path
from typing import Any

import pytest
import pytest_asyncio
from aiohttp import web
from aiohttp.test_utils import TestClient, TestServer
from loguru import logger
from yarl import URL

from solgate.config import GatewaySettings
from solgate.core.registry import ValidatorRegistry
from solgate.datastructures.validator import Validator
from solgate.server import GatewayServer

# Small cap so oversize tests do not allocate 32 MiB.
TEST_BODY_LIMIT = 4096
TEST_REQUEST_TIMEOUT = 0.5


class AsyncTestContext:
    """Context manager for async test operations with automatic cleanup."""

    def __init__(self) -> None:
        self.servers: list[TestServer] = []
        self.clients: list[TestClient] = []

    async def __aenter__(self) -> "AsyncTestContext":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Ensure all resources are cleaned up properly."""
        for client in self.clients:
            try:
                await client.close()
            except Exception as e:
                logger.warning(f"Error closing test client: {e}")

        for server in self.servers:
            try:
                await server.close()
            except Exception as e:
                logger.warning(f"Error closing test server: {e}")

        self.servers.clear()
        self.clients.clear()

    async def start_server(self, app: web.Application) -> TestServer:
        server = TestServer(app)
        await server.start_server()
        self.servers.append(server)
        return server

    async def start_client(self, app: web.Application) -> TestClient:
        client = TestClient(TestServer(app))
        await client.start_server()
        self.clients.append(client)
        return client


def build_upstream_app() -> web.Application:
    """A fake validator with one behaviour per path."""

    async def echo(request: web.Request) -> web.Response:
        body = await request.read()
        return web.Response(body=body, content_type="application/json")

    async def headers(request: web.Request) -> web.Response:
        return web.json_response(
            {
                "headers": {k.lower(): v for k, v in request.headers.items()},
                "method": request.method,
                "query": request.query_string,
            }
        )

    async def unavailable(request: web.Request) -> web.Response:
        return web.json_response({"error": "node is behind"}, status=503)

    async def oversized(request: web.Request) -> web.Response:
        return web.Response(body=b"x" * (TEST_BODY_LIMIT + 1))

    async def oversized_chunked(request: web.Request) -> web.StreamResponse:
        response = web.StreamResponse()
        response.enable_chunked_encoding()
        await response.prepare(request)
        for _ in range(4):
            await response.write(b"y" * (TEST_BODY_LIMIT // 2))
        await response.write_eof()
        return response

    async def exact_limit(request: web.Request) -> web.Response:
        return web.Response(body=b"z" * TEST_BODY_LIMIT)

    async def slow(request: web.Request) -> web.Response:
        await asyncio.sleep(TEST_REQUEST_TIMEOUT * 4)
        return web.Response(text="too late")

    async def plain(request: web.Request) -> web.Response:
        return web.Response(body=b"\x00\x01")

    app = web.Application()
    app.router.add_route("*", "/", echo)
    app.router.add_route("*", "/headers", headers)
    app.router.add_post("/unavailable", unavailable)
    app.router.add_post("/oversized", oversized)
    app.router.add_post("/oversized-chunked", oversized_chunked)
    app.router.add_post("/exact-limit", exact_limit)
    app.router.add_post("/slow", slow)
    app.router.add_post("/plain", plain)
    return app


def free_port() -> int:
    """A port nothing is listening on (bound then released)."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return int(sock.getsockname()[1])


def make_validator(name: str, location: str, url: str | URL) -> Validator:
    return Validator(name=name, location=location, rpc_url=URL(url))


def make_settings(**overrides: Any) -> GatewaySettings:
    values: dict[str, Any] = {
        "bind_address": "127.0.0.1:0",
        "validators_csv": Path("unused.csv"),
        "request_timeout": TEST_REQUEST_TIMEOUT,
        "max_upstream_body": TEST_BODY_LIMIT,
    }
    values.update(overrides)
    return GatewaySettings(**values)


@pytest_asyncio.fixture
async def test_context() -> AsyncGenerator[AsyncTestContext, None]:
    """Provides a clean async test context with automatic resource cleanup."""
    async with AsyncTestContext() as ctx:
        yield ctx


@pytest_asyncio.fixture
async def upstream(test_context: AsyncTestContext) -> TestServer:
    """A running fake validator."""
    return await test_context.start_server(build_upstream_app())


@pytest.fixture
def fleet(upstream: TestServer) -> ValidatorRegistry:
    """Validators pointing at the fake validator's paths."""
    return ValidatorRegistry(
        [
            make_validator("upstream-1", "lab", upstream.make_url("/")),
            make_validator("Headers", "lab", upstream.make_url("/headers")),
            make_validator("unavailable", "edge", upstream.make_url("/unavailable")),
            make_validator("oversized", "edge", upstream.make_url("/oversized")),
            make_validator(
                "oversized-chunked", "edge", upstream.make_url("/oversized-chunked")
            ),
            make_validator("exact-limit", "edge", upstream.make_url("/exact-limit")),
            make_validator("slow", "edge", upstream.make_url("/slow")),
            make_validator("plain", "edge", upstream.make_url("/plain")),
            make_validator("down", "void", f"http://127.0.0.1:{free_port()}/"),
        ]
    )


@pytest_asyncio.fixture
async def gateway_factory(
    test_context: AsyncTestContext,
) -> Callable[..., Any]:
    """Start a gateway over any registry and return a client for it."""

    async def _create(registry: ValidatorRegistry, **kwargs: Any) -> TestClient:
        gateway = GatewayServer(
            settings=make_settings(), registry=registry, rng=kwargs.get("rng")
        )
        return await test_context.start_client(gateway.app)

    return _create


@pytest_asyncio.fixture
async def gateway(
    gateway_factory: Callable[..., Any], fleet: ValidatorRegistry
) -> TestClient:
    """A gateway in front of the fake validator fleet."""
    client: TestClient = await gateway_factory(fleet)
    return client


JSON_RPC_PAYLOAD = {"jsonrpc": "2.0", "id": 1, "method": "getVersion", "params": []}
JSON_RPC_BODY = json.dumps(JSON_RPC_PAYLOAD, separators=(",", ":"))
