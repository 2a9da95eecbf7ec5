"""Application entry point for the Threadline comments server."""

import structlog

from threadline.app import App
from threadline.config import Config
from threadline.logging import setup_logging
from threadline.web.runner import run_server

logger = structlog.get_logger(__name__)


def main() -> None:
    config = Config()
    setup_logging(config.debug)
    logger.info(
        "threadline_starting",
        host=config.host,
        port=config.port,
        store="memory" if config.database_url.startswith("memory://") else "mongodb",
        telegram_alerts=bool(config.telegram_bot_token and config.telegram_chat_id),
    )
    app = App(config)
    run_server(app, config)


if __name__ == "__main__":
    main()
