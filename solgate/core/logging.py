"""Central logging configuration helpers for solgate."""

from __future__ import annotations

import sys
from collections.abc import Iterable, Mapping
from typing import Any

from loguru import logger

DEFAULT_LOG_FORMAT = (
    "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | "
    "{name}:{function}:{line} - {message}"
)

# Request-scoped fields bound by the server middleware, in display order.
CONTEXT_FIELDS = ("request_id", "validator")


def format_record(record: Mapping[str, Any]) -> str:
    """Build the loguru template for one record.

    Records emitted while serving a request carry their request id, and the
    chosen validator once one is picked, as a trailing ``[key=value]`` block.
    """
    extra = record.get("extra") or {}
    bound = " ".join(
        f"{key}={{extra[{key}]}}" for key in CONTEXT_FIELDS if key in extra
    )
    suffix = f" [{bound}]" if bound else ""
    return f"{DEFAULT_LOG_FORMAT}{suffix}\n{{exception}}"


def scope_matches(record_name: str, scopes: Iterable[str]) -> bool:
    """True when a module name falls under one of the debug scopes.

    A bare scope such as ``core.forwarder`` also matches
    ``solgate.core.forwarder``.
    """
    for scope in scopes:
        if record_name.startswith(scope):
            return True
        if not scope.startswith("solgate.") and record_name.startswith(
            f"solgate.{scope}"
        ):
            return True
    return False


def configure_logging(
    level: str,
    *,
    debug_scopes: Iterable[str] = (),
    colorize: bool = False,
) -> tuple[int, ...]:
    """Configure loguru with module-based debug filtering."""
    logger.remove()

    handler_ids: list[int] = [
        logger.add(
            sys.stderr,
            level=level,
            format=format_record,
            colorize=colorize,
        )
    ]

    level_upper = level.upper()
    scopes = tuple(scope.strip() for scope in debug_scopes if scope.strip())
    if scopes and level_upper != "DEBUG":

        def _debug_filter(record: object) -> bool:
            if not isinstance(record, Mapping):
                return False
            level = record.get("level")
            if getattr(level, "name", None) != "DEBUG":
                return False
            return scope_matches(record.get("name") or "", scopes)

        handler_ids.append(
            logger.add(
                sys.stderr,
                level="DEBUG",
                format=format_record,
                colorize=colorize,
                filter=_debug_filter,
            )
        )

    return tuple(handler_ids)
