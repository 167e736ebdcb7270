from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

LOGGER = logging.getLogger(__name__)

WatchRunner = Callable[[str], Awaitable[None]]


class WatcherSupervisor:
    """Owns the single background watch task for the active project.

    Without a runner (a backend that cannot watch) `start` refuses and the
    watcher is never reported as running.
    """

    def __init__(self, runner: WatchRunner | None) -> None:
        self._runner = runner
        self._task: asyncio.Task[None] | None = None
        self._path: str | None = None

    @property
    def path(self) -> str | None:
        return self._path if self.is_running() else None

    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self, path: str) -> bool:
        if self._runner is None:
            LOGGER.info("Search backend cannot watch; watcher not started")
            return False
        if self.is_running():
            return False
        self._path = path
        self._task = asyncio.create_task(
            self._run(self._runner, path), name=f"watcher:{path}"
        )
        return True

    async def stop(self) -> None:
        if self._task is None:
            return
        task = self._task
        self._task = None
        self._path = None
        if not task.done():
            task.cancel()
        await asyncio.gather(task, return_exceptions=True)

    async def _run(self, runner: WatchRunner, path: str) -> None:
        try:
            await runner(path)
        except asyncio.CancelledError:
            raise
        except Exception as exc:  # noqa: BLE001
            LOGGER.warning("Watcher exited", extra={"path": path}, exc_info=exc)


class SessionLifecycle:
    def __init__(self, watcher: WatcherSupervisor) -> None:
        self.watcher = watcher

    def on_session_created(self, session_id: str, directory: str) -> bool:
        started = self.watcher.start(directory)
        LOGGER.info(
            "Session created",
            extra={"session_id": session_id, "watcher_started": started},
        )
        return started

    async def on_session_deleted(self, session_id: str) -> None:
        await self.watcher.stop()
        LOGGER.info("Session deleted", extra={"session_id": session_id})
