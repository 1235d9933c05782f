from __future__ import annotations

import logging

import uvicorn

from voicestudio.api.server import create_app
from voicestudio.core.config import Settings

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: int = logging.INFO) -> None:
    # uvicorn only sets up its own loggers; ours need a handler too
    logger = logging.getLogger("voicestudio")
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)
    logger.setLevel(level)


def main() -> None:
    settings = Settings()  # env and .env
    configure_logging()
    uvicorn.run(
        create_app(settings),
        host=settings.APP_HOST,
        port=settings.APP_PORT,
        log_level="info",
    )


if __name__ == "__main__":
    main()
