# promptpacks/app/factory.py
from __future__ import annotations
import logging
from collections.abc import Sequence

from fastapi import APIRouter, FastAPI

from promptpacks.app.lifecycle import life
from promptpacks.app.runtime import PackRuntime
from promptpacks.app.web import router as webRouter



def createApp(
    runtime: PackRuntime | None = None,
    *,
    autoSync: bool = True,
    extraRouters: Sequence[APIRouter] = (),
) -> FastAPI:
    """
    Local API for the UI process. Without an explicit runtime, one is built from
    the user's settings and logging is configured from them.
    """
    if runtime is None:
        runtime = PackRuntime.build()
        runtime.configureLogging()

    logger = logging.getLogger(__name__)

    app = FastAPI(title="promptpacks", lifespan=life)
    app.state.runtime = runtime
    app.state.autoSync = autoSync

    app.include_router(webRouter)
    for router in extraRouters:
        app.include_router(router)

    logger.info("Local API initialized (user dir '%s')", runtime.roots.userBase)
    return app
