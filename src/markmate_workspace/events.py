"""Domain events for file-tree changes and a synchronous dispatcher.

Components that react to moves and deletions (open tabs, caches) register
handlers on an ``EventBus`` passed to them at construction; nothing is
global.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from pydantic import BaseModel

logger = logging.getLogger(__name__)


class PathRenamed(BaseModel):
    """A file or folder was moved from ``old_path`` to ``new_path``."""

    old_path: str
    new_path: str
    is_folder: bool = False

    model_config = {"frozen": True}


class PathDeleted(BaseModel):
    """A file or folder was removed."""

    path: str
    is_folder: bool = False

    model_config = {"frozen": True}


Handler = Callable[[Any], None]


class EventBus:
    """Deliver events synchronously to handlers registered for their type.

    Handlers run in registration order.  A failing handler is logged and the
    remaining handlers still run; the failures are returned from
    ``publish``.
    """

    def __init__(self) -> None:
        self._handlers: dict[type, list[Handler]] = {}

    def subscribe(self, event_type: type, handler: Handler) -> Callable[[], None]:
        """Register ``handler`` for ``event_type``.

        Returns:
            A callable that unregisters the handler.
        """
        handlers = self._handlers.setdefault(event_type, [])
        handlers.append(handler)

        def unsubscribe() -> None:
            if handler in handlers:
                handlers.remove(handler)

        return unsubscribe

    def publish(self, event: BaseModel) -> list[Exception]:
        errors: list[Exception] = []
        for handler in list(self._handlers.get(type(event), [])):
            try:
                handler(event)
            except Exception as exc:
                logger.exception(
                    "Handler %r failed for %s", handler, type(event).__name__
                )
                errors.append(exc)
        return errors
