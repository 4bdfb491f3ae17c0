# smartlink/main.py
"""
SmartLink - Main entry point.
Runs the extraction API with uvicorn.
"""
import logging
import sys

import uvicorn

from smartlink.api.app import create_app
from smartlink.config import config

logging.basicConfig(
    level=logging.DEBUG if config.debug else logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)]
)
logger = logging.getLogger(__name__)

app = create_app(config)


def main() -> None:
    if not config.openai.api_key:
        logger.warning("OPENAI_API_KEY is not set! Extraction requests will fail with 503")

    logger.info(f"Starting SmartLink API on port {config.port}...")
    uvicorn.run(
        app,
        host="0.0.0.0",
        port=config.port,
        log_level="debug" if config.debug else "info"
    )


if __name__ == "__main__":
    main()
