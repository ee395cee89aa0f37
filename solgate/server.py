"""
HTTP front door for the validator gateway.

Routes:

- ``GET /health``: liveness, always ``{"status": "ok"}``.
- ``GET /validators``: name and location of every configured validator.
- ``GET /info``: what this service is and how to call it.
- ``GET|POST /``: pick a validator from ``?validator=`` (alias ``server``)
  or ``?location=`` (alias ``region``), or at random, and relay the request.

Errors always come back as ``{"error": "<message>"}``: 400 for bad input or
failed selection, 502 when the validator could not be reached, 500 for
anything unexpected.
"""

from __future__ import annotations

import asyncio
import time
import uuid
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import TypeAlias

from aiohttp import hdrs, web
from loguru import logger
from multidict import MultiMapping

from .config import GatewaySettings
from .core.errors import (
    BadRequestError,
    GatewayError,
    InternalError,
    SelectionError,
    SelectionFailedError,
)
from .core.forwarder import Forwarder
from .core.registry import ValidatorRegistry
from .core.selection import RandomSource, select
from .datastructures.type_aliases import JsonDict, LocationName, ValidatorName

Handler: TypeAlias = Callable[[web.Request], Awaitable[web.StreamResponse]]

SERVICE_NAME = "solgate"
REQUEST_ID_HEADER = "X-Request-Id"

# Canonical query field -> accepted spellings.
QUERY_ALIASES: dict[str, tuple[str, ...]] = {
    "validator": ("validator", "server"),
    "location": ("location", "region"),
}


@dataclass(frozen=True, slots=True)
class SelectionQuery:
    """Selection hints parsed from the query string."""

    validator: ValidatorName | None = None
    location: LocationName | None = None

    @classmethod
    def from_query(cls, query: MultiMapping[str]) -> SelectionQuery:
        values: dict[str, str | None] = {}
        for canonical, aliases in QUERY_ALIASES.items():
            found = [value for alias in aliases for value in query.getall(alias, [])]
            if len(found) > 1:
                raise BadRequestError(f"duplicate field `{canonical}`")
            values[canonical] = found[0] if found else None
        return cls(validator=values["validator"], location=values["location"])


def index_info() -> JsonDict:
    return {
        "name": SERVICE_NAME,
        "description": (
            "Provides a single, stable access point to a fleet of validators. "
            "Standard JSON-RPC requests are routed to a validator chosen by "
            "name, by location, or at random."
        ),
        "usage": (
            "POST /?server=<name>, /?location=<region>, or / for a random "
            "validator with a JSON-RPC body. See /validators for options."
        ),
        "health": "/health",
        "validators": "/validators",
        "example": (
            "curl -X POST 'http://localhost/?server=frankfurt-1' "
            "-H 'Content-Type: application/json' "
            '-d \'{"jsonrpc":"2.0","id":1,"method":"getVersion","params":[]}\''
        ),
    }


@web.middleware
async def access_log_middleware(
    request: web.Request, handler: Handler
) -> web.StreamResponse:
    """Log method, path, status and duration of every request.

    Everything logged while the request is handled is bound to its request id.
    """
    request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex[:12]
    start_time = time.perf_counter()
    with logger.contextualize(request_id=request_id):
        try:
            response = await handler(request)
        except web.HTTPException as e:
            duration_ms = (time.perf_counter() - start_time) * 1000.0
            logger.info(
                f"{request.method} {request.path_qs} {e.status} {duration_ms:.1f}ms"
            )
            raise
        duration_ms = (time.perf_counter() - start_time) * 1000.0
        logger.info(
            f"{request.method} {request.path_qs} {response.status} {duration_ms:.1f}ms"
        )
        return response


@web.middleware
async def error_middleware(
    request: web.Request, handler: Handler
) -> web.StreamResponse:
    """Render failures as ``{"error": message}`` with the matching status."""
    try:
        return await handler(request)
    except GatewayError as e:
        return web.json_response(e.to_dict(), status=e.status)
    except web.HTTPException as e:
        if e.status < 400:
            raise
        headers = {}
        if hdrs.ALLOW in e.headers:
            headers[hdrs.ALLOW] = e.headers[hdrs.ALLOW]
        return web.json_response({"error": e.reason}, status=e.status, headers=headers)
    except Exception as e:
        logger.exception(f"Unhandled error serving {request.method} {request.path}")
        error = InternalError(str(e) or type(e).__name__)
        return web.json_response(error.to_dict(), status=error.status)


@dataclass(slots=True)
class GatewayServer:
    """The aiohttp application plus its runner/site lifecycle."""

    settings: GatewaySettings
    registry: ValidatorRegistry
    rng: RandomSource | None = None

    forwarder: Forwarder = field(init=False)
    app: web.Application = field(init=False)
    runner: web.AppRunner | None = field(default=None, init=False)
    site: web.TCPSite | None = field(default=None, init=False)
    port: int | None = field(default=None, init=False)

    def __post_init__(self) -> None:
        self.forwarder = Forwarder(
            request_timeout=self.settings.request_timeout,
            max_body_size=self.settings.max_upstream_body,
        )
        self.app = web.Application(
            client_max_size=self.settings.max_upstream_body,
            middlewares=[access_log_middleware, error_middleware],
        )
        self.app.on_startup.append(self._on_startup)
        self.app.on_cleanup.append(self._on_cleanup)
        self._setup_routes()

    def _setup_routes(self) -> None:
        self.app.router.add_get("/health", self._health_check)
        self.app.router.add_get("/validators", self._list_validators)
        self.app.router.add_get("/info", self._index_info)
        self.app.router.add_get("/", self._proxy_rpc, allow_head=False)
        self.app.router.add_post("/", self._proxy_rpc)

    async def _on_startup(self, app: web.Application) -> None:
        await self.forwarder.start()

    async def _on_cleanup(self, app: web.Application) -> None:
        await self.forwarder.close()

    async def _health_check(self, request: web.Request) -> web.Response:
        return web.json_response({"status": "ok"})

    async def _list_validators(self, request: web.Request) -> web.Response:
        return web.json_response(
            {"validators": [s.to_dict() for s in self.registry.summaries()]}
        )

    async def _index_info(self, request: web.Request) -> web.Response:
        return web.json_response(index_info())

    async def _proxy_rpc(self, request: web.Request) -> web.Response:
        query = SelectionQuery.from_query(request.query)
        try:
            selected = select(
                self.registry, query.validator, query.location, rng=self.rng
            )
        except SelectionError as e:
            raise SelectionFailedError(e) from e

        with logger.contextualize(validator=selected.name):
            logger.info(
                f"Forwarding json-rpc request to {selected.name} "
                f"(location={selected.location})"
            )
            body = await request.read()
            return await self.forwarder.forward(
                selected, request.method, request.headers, body
            )

    async def start(self) -> None:
        """Bind the listening socket and start serving."""
        host, port = self.settings.bind_parts()
        self.runner = web.AppRunner(self.app, access_log=None)
        await self.runner.setup()
        self.site = web.TCPSite(self.runner, host=host, port=port)
        await self.site.start()

        self.port = port
        server = self.site._server
        if port == 0 and server is not None and server.sockets:
            self.port = server.sockets[0].getsockname()[1]

        logger.info(
            f"Starting server on {host}:{self.port} "
            f"(csv={self.settings.validators_csv}, validators={len(self.registry)})"
        )

    async def stop(self) -> None:
        if self.site:
            await self.site.stop()
            self.site = None
        if self.runner:
            await self.runner.cleanup()
            self.runner = None
        logger.debug("Gateway server stopped")

    async def serve_forever(self) -> None:
        await self.start()
        try:
            await asyncio.Event().wait()
        finally:
            await self.stop()

    def run(self) -> None:
        try:
            asyncio.run(self.serve_forever())
        except KeyboardInterrupt:
            logger.warning("Interrupted, shutting down")


def bootstrap(
    settings: GatewaySettings, rng: RandomSource | None = None
) -> GatewayServer:
    """Load the registry and build a server, or raise a load-time error.

    Raises:
        ConfigError: the bind address is malformed or the CSV is missing.
        RegistryError: the CSV is unreadable, a row is invalid, names collide,
            or no validators were configured.
    """
    settings.bind_parts()
    csv_path = settings.ensure_validators_csv()
    registry = ValidatorRegistry.from_csv(csv_path)
    return GatewayServer(settings=settings, registry=registry, rng=rng)
