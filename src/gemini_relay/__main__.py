"""Entry point: ``python -m gemini_relay``."""

import uvicorn

from gemini_relay.app import create_app
from gemini_relay.configs.config import get_app_config
from gemini_relay.infra.logging import setup_logging


def main() -> None:
    config = get_app_config()
    setup_logging(config.logging)
    uvicorn.run(
        create_app(config),
        host=config.host,
        port=config.port,
        log_config=None,
    )


if __name__ == "__main__":
    main()
