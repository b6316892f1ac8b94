import logging
import os
from pathlib import Path

import uvicorn
from dotenv import load_dotenv

# Get project root directory
PROJECT_ROOT = Path(__file__).parent
LOGS_DIR = PROJECT_ROOT / 'logs'
DATA_DIR = PROJECT_ROOT / 'data'


def setup_directories():
    """Create required directories for the application"""
    for directory in (LOGS_DIR, DATA_DIR / 'datasets'):
        directory.mkdir(parents=True, exist_ok=True)


def setup_logging(level: str = "INFO"):
    """Configure logging to file and console"""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.FileHandler(LOGS_DIR / 'main.log'),
            logging.StreamHandler()
        ]
    )
    logging.getLogger('httpx').setLevel(logging.WARNING)


if __name__ == "__main__":
    load_dotenv(override=True)
    setup_directories()
    setup_logging(os.getenv("LOG_LEVEL", "INFO"))

    uvicorn.run(
        "api.main:app",
        host=os.getenv("API_HOST", "0.0.0.0"),
        port=int(os.getenv("API_PORT", "8000")),
        reload=os.getenv("ENVIRONMENT", "development") == "development"
    )
