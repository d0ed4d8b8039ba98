# promptpacks/app/lifecycle.py
from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from promptpacks.app.runtime import PackRuntime

logger = logging.getLogger(__name__)

CHANGE_POLL_SECONDS = 2.0



async def _watchChanges(runtime: PackRuntime, intervalSeconds: float) -> None:
    while True:
        await asyncio.sleep(intervalSeconds)
        try:
            runtime.pollChanges()
        except Exception:
            logger.exception("Reload after sync failed")



@asynccontextmanager
async def life(app: FastAPI) -> AsyncIterator[None]:
    # --------------- Startup ---------------
    runtime: PackRuntime = app.state.runtime
    runtime.startup()

    tasks: list[asyncio.Task] = []
    if getattr(app.state, "autoSync", True):
        runtime.startSync()
        tasks.append(asyncio.create_task(_watchChanges(runtime, CHANGE_POLL_SECONDS), name="promptpacks.watch"))
        logger.info(
            "Periodic sync every %.1fh (first run in %.0fs) from %s",
            runtime.settings.intervalHours, runtime.settings.initialDelaySeconds, runtime.settings.indexUrl,
        )
    yield

    # --------------- Shutdown ---------------
    for task in tasks:
        task.cancel()
    for task in tasks:
        try:
            await task
        except asyncio.CancelledError:
            pass
    await runtime.stopSync()
