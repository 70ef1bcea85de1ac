# backend/gdd_studio/__main__.py
"""
Process bootstrap: validate configuration, serve the app, open the browser
once the socket is listening.

    python -m gdd_studio
"""

import logging
import sys
import threading
import time
import webbrowser
from typing import Optional

import uvicorn

from gdd_studio.config import CONFIG, missing_required

logger = logging.getLogger("gdd_studio")


def open_browser(url: str) -> None:
    try:
        opened = webbrowser.open(url)
    except webbrowser.Error:
        opened = False
    if not opened:
        logger.info("Unable to open browser automatically. Please visit %s manually.", url)


def open_browser_when_ready(server: uvicorn.Server, url: str, interval: float = 0.1) -> None:
    """Wait for the server to bind; give up if it shuts down first (e.g. port in use)."""
    while not server.started:
        if server.should_exit:
            return
        time.sleep(interval)
    open_browser(url)


def main(config: Optional[dict] = None) -> None:
    if config is None:
        config = CONFIG
    logging.basicConfig(level=logging.INFO)

    missing = missing_required(config)
    if missing:
        logger.error("Missing required environment variables: %s", ", ".join(missing))
        sys.exit(1)

    port = config["PORT"]
    url = f"http://localhost:{port}"
    server = uvicorn.Server(uvicorn.Config("gdd_studio.main:app", host=config["HOST"], port=port))

    if config["GDD_OPEN_BROWSER"]:
        threading.Thread(target=open_browser_when_ready, args=(server, url), daemon=True).start()

    logger.info("Server running on port %s", port)
    server.run()


if __name__ == "__main__":
    main()
