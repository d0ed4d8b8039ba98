# promptpacks/server.py
from __future__ import annotations

import logging

from promptpacks.app.factory import createApp

# Basic logging setup, before settings are read; createApp() replaces it
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)
logger.info("Basic logging initiated...")


app = createApp()



def main() -> None:
    import uvicorn
    uvicorn.run(app, host="127.0.0.1", port=8765, log_config=None)
