"""Run the proxy: ``python -m code_retriever --dsn ... --apikey ... --rpc ...``."""

import sys

import uvicorn

from code_retriever.api.app import create_app
from code_retriever.config.settings import load_settings
from code_retriever.core.errors import ConfigError
from code_retriever.core.logging import get_logger, setup_logging

logger = get_logger(__name__)


def main() -> int:
    setup_logging()
    try:
        settings = load_settings()
    except ConfigError as e:
        logger.error(str(e))
        return 1

    logger.info(f"Server starting on {settings.host}:{settings.port}...")
    uvicorn.run(create_app(settings=settings), host=settings.host, port=settings.port, log_config=None)
    return 0


if __name__ == "__main__":
    sys.exit(main())
