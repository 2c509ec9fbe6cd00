"""Loguru setup for the clusterjoin command line.

Every record carries a ``controller`` extra: join controllers bind their name
(``lan`` / ``wan``), everything else logs as ``-``. DEBUG output can be opened
up for chosen controllers while the rest of the process stays at ``level``.
"""

from __future__ import annotations

import sys
from collections.abc import Callable, Iterable
from typing import Any

from loguru import logger

from clusterjoin.datastructures.type_aliases import ControllerName

DEFAULT_LOG_FORMAT = (
    "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | "
    "{extra[controller]: <4} | {name}:{function}:{line} - {message}"
)
UNBOUND_CONTROLLER = "-"


def configure_logging(
    level: str,
    *,
    debug_controllers: Iterable[ControllerName] = (),
    colorize: bool = False,
) -> tuple[int, ...]:
    """Replace all loguru handlers with a stderr handler at ``level``.

    ``debug_controllers`` adds a second handler passing only the DEBUG records
    of the named controllers, e.g. ``("lan",)`` to trace the LAN state machine
    without the WAN noise. Returns the ids of the installed handlers.
    """
    level = level.upper()
    logger.remove()
    logger.configure(extra={"controller": UNBOUND_CONTROLLER})

    handler_ids = [
        logger.add(sys.stderr, level=level, format=DEFAULT_LOG_FORMAT, colorize=colorize)
    ]

    names = frozenset(
        name.strip().lower() for name in debug_controllers if name.strip()
    )
    if names and logger.level(level).no > logger.level("DEBUG").no:
        handler_ids.append(
            logger.add(
                sys.stderr,
                level="DEBUG",
                format=DEFAULT_LOG_FORMAT,
                colorize=colorize,
                filter=_controller_debug_filter(names),
            )
        )

    return tuple(handler_ids)


def _controller_debug_filter(
    names: frozenset[ControllerName],
) -> Callable[[dict[str, Any]], bool]:
    def _filter(record: dict[str, Any]) -> bool:
        return (
            record["level"].name == "DEBUG"
            and record["extra"].get("controller") in names
        )

    return _filter
