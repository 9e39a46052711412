import uvicorn
from constants import HOST, PORT, RELOAD, LOG_LEVEL, LOG_FILE, LOG_FORMAT
from logging_config import setup_logging

# Setup logging before importing app
setup_logging(log_level=LOG_LEVEL, log_file=LOG_FILE, log_format=LOG_FORMAT)

from app import app
from logging_config import get_logger

logger = get_logger(__name__)

if __name__ == "__main__":
    logger.info(f"Starting room relay on {HOST}:{PORT}")
    if RELOAD:
        uvicorn.run("app:app", host=HOST, port=PORT, reload=True, log_config=None)
    else:
        uvicorn.run(app, host=HOST, port=PORT, log_config=None)
