"""Development reload channel.

In dev mode the app serves ``GET /__reload`` as an SSE stream and runs a
watch loop over the pages, actions and static directories:

- the first client to connect after the server starts gets
  ``hardReset`` (the server restarted, reload everything);
- a change under the static directory sends ``relinkStaticResources``;
- any other change sends ``remergePage`` and invalidates the live route
  table's actions cache.

The watch loop runs as a background task started by the lifespan and is
cancelled at shutdown.
"""

import asyncio
import logging
from collections.abc import AsyncIterator, Callable, Iterable
from pathlib import Path

from watchfiles import awatch

logger = logging.getLogger("zen.reload")

HARD_RESET = "hardReset"
REMERGE_PAGE = "remergePage"
RELINK_STATIC = "relinkStaticResources"

RELOAD_PATH = "/__reload"


class ReloadBroadcaster:
    """Fan reload messages out to every connected client."""

    __slots__ = ("_greeted", "_subscribers")

    def __init__(self) -> None:
        self._subscribers: set[asyncio.Queue[str]] = set()
        self._greeted = False

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def publish(self, message: str) -> None:
        logger.debug("Reload -> %s (%d clients)", message, len(self._subscribers))
        for queue in self._subscribers:
            queue.put_nowait(message)

    async def subscribe(self) -> AsyncIterator[str]:
        """Messages for one client, until it disconnects."""
        queue: asyncio.Queue[str] = asyncio.Queue()
        self._subscribers.add(queue)
        try:
            if not self._greeted:
                self._greeted = True
                yield HARD_RESET
            while True:
                yield await queue.get()
        finally:
            self._subscribers.discard(queue)


def reload_message(changed: Path, static_root: Path) -> str:
    """Which reload a changed file calls for."""
    if changed.resolve().is_relative_to(static_root.resolve()):
        return RELINK_STATIC
    return REMERGE_PAGE


async def watch_for_changes(
    directories: Iterable[Path],
    static_root: Path,
    broadcaster: ReloadBroadcaster,
    *,
    debounce_ms: int = 20,
    on_change: Callable[[], None] | None = None,
) -> None:
    """Publish a reload message for every batch of file changes.

    *on_change* runs before page reloads are published (the app passes
    the live route table's ``invalidate``). Missing directories are
    skipped; with none left there is nothing to watch.
    """
    watched = [str(d) for d in directories if d.is_dir()]
    if not watched:
        logger.info("No directories to watch, reload channel idle")
        return

    logger.info("Watching %s", ", ".join(watched))
    async for changes in awatch(*watched, debounce=debounce_ms):
        messages = {reload_message(Path(path), static_root) for _, path in changes}
        if REMERGE_PAGE in messages and on_change is not None:
            on_change()
        for message in sorted(messages):
            broadcaster.publish(message)
