"""
Relay one HTTP request/response pair to a selected validator.

The forwarder owns a single ``aiohttp.ClientSession`` for the life of the
server. Every attempt is bounded by one total timeout (connect, send and
body read together) and is never retried: transport failures, timeouts and
oversized bodies all surface as ``UpstreamError`` (502).
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

import aiohttp
from aiohttp import hdrs, web
from loguru import logger
from multidict import CIMultiDict

from ..datastructures.type_aliases import ByteCount, DurationSeconds
from ..datastructures.validator import Validator
from .errors import UpstreamError

DEFAULT_REQUEST_TIMEOUT: DurationSeconds = 15.0
MAX_UPSTREAM_BODY: ByteCount = 32 * 1024 * 1024  # 32 MiB
READ_CHUNK_SIZE: ByteCount = 64 * 1024

# RFC 9110 hop-by-hop headers plus framing headers the client recomputes.
EXCLUDED_REQUEST_HEADERS = frozenset(
    {
        "connection",
        "keep-alive",
        "proxy-authenticate",
        "proxy-authorization",
        "te",
        "trailer",
        "trailers",
        "transfer-encoding",
        "upgrade",
        "content-length",
    }
)


def build_outbound_headers(
    inbound: Mapping[str, str], validator: Validator
) -> CIMultiDict[str]:
    """Copy inbound headers and point ``Host`` at the validator."""
    headers: CIMultiDict[str] = CIMultiDict()
    for key, value in inbound.items():
        if key.lower() in EXCLUDED_REQUEST_HEADERS:
            continue
        headers.add(key, value)

    host = validator.host_header()
    if host is not None:
        headers[hdrs.HOST] = host
    return headers


@dataclass(slots=True)
class Forwarder:
    """Sends inbound requests to validators and buffers capped responses."""

    request_timeout: DurationSeconds = DEFAULT_REQUEST_TIMEOUT
    max_body_size: ByteCount = MAX_UPSTREAM_BODY
    _session: aiohttp.ClientSession | None = field(default=None, init=False)

    async def start(self) -> None:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.request_timeout),
            )

    async def close(self) -> None:
        if self._session is not None:
            await self._session.close()
            self._session = None

    async def __aenter__(self) -> Forwarder:
        await self.start()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    @property
    def session(self) -> aiohttp.ClientSession:
        if self._session is None:
            raise RuntimeError("Forwarder used before start()")
        return self._session

    async def forward(
        self,
        validator: Validator,
        method: str,
        headers: Mapping[str, str],
        body: bytes,
    ) -> web.Response:
        """Relay one request and return the upstream status and body.

        Only ``Content-Type`` is carried back from the upstream headers.
        """
        outbound_headers = build_outbound_headers(headers, validator)

        try:
            async with self.session.request(
                method,
                validator.rpc_url,
                headers=outbound_headers,
                data=body,
                allow_redirects=False,
            ) as upstream:
                status = upstream.status
                content_type = upstream.headers.get(hdrs.CONTENT_TYPE)
                payload = await self._read_capped(validator, upstream)
        except UpstreamError as e:
            logger.warning(f"Upstream {validator.name} failed: {e.detail}")
            raise
        except TimeoutError as e:
            detail = f"request timed out after {self.request_timeout:g}s"
            logger.warning(f"Upstream {validator.name} failed: {detail}")
            raise UpstreamError(validator.name, detail) from e
        except aiohttp.ClientError as e:
            detail = str(e) or type(e).__name__
            logger.warning(f"Upstream {validator.name} failed: {detail}")
            raise UpstreamError(validator.name, detail) from e

        response = web.Response(status=status, body=payload)
        if content_type is not None:
            response.headers[hdrs.CONTENT_TYPE] = content_type
        return response

    async def _read_capped(
        self, validator: Validator, upstream: aiohttp.ClientResponse
    ) -> bytes:
        declared = upstream.content_length
        if declared is not None and declared > self.max_body_size:
            raise UpstreamError(
                validator.name,
                f"payload of {declared} bytes exceeds limit of {self.max_body_size} bytes",
            )

        payload = bytearray()
        async for chunk in upstream.content.iter_chunked(READ_CHUNK_SIZE):
            payload.extend(chunk)
            if len(payload) > self.max_body_size:
                raise UpstreamError(
                    validator.name,
                    f"payload reached size limit of {self.max_body_size} bytes",
                )
        return bytes(payload)
