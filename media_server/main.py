# File: media_server/main.py

import logging

import uvicorn

from media_server.api.app import create_app
from media_server.core.config.settings import settings
from media_server.core.log_config import configure_logging

logger = logging.getLogger(__name__)


def main():
    configure_logging(settings.LOG_LEVEL)
    logger.info(f"Starting media server on {settings.HOST}:{settings.PORT}")

    app = create_app(settings)
    uvicorn.run(app, host=settings.HOST, port=settings.PORT, log_config=None)


if __name__ == "__main__":
    main()
