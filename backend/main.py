import os
import logging
import uvicorn

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)

if os.environ.get("DEBUG", "0") == "1":
    logging.getLogger().setLevel(logging.DEBUG)

from api import create_app
from config import get_config

config = get_config()
app = create_app()

if __name__ == "__main__":
    logger.info(f"Starting Minute on {config.host}:{config.port}")
    if not config.vault_root:
        logger.warning("VAULT_ROOT is not set; meetings cannot be written")
    uvicorn.run(app, host=config.host, port=config.port)
