"""Run the customs document OCR API with uvicorn."""

import uvicorn

from src.api.app import app, get_config
from src.utils.logger import setup_logging


def main() -> None:
    config = get_config()
    setup_logging(config.log_level)
    uvicorn.run(app, host=config.server.host, port=config.server.port)


if __name__ == "__main__":
    main()
