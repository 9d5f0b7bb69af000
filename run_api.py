#!/usr/bin/env python
"""
Fleet Telemetry API Server Runner.

Usage:
    python run_api.py

Or with PM2:
    pm2 start run_api.py --interpreter python
"""

import sys
import logging
import uvicorn

from core.config import get_settings
from database.engine import initialize_database

settings = get_settings()

# Setup logging
logging.basicConfig(
    level=getattr(logging, settings.log_level, logging.INFO),
    format='%(asctime)s | %(levelname)s | %(name)s | %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S'
)

logger = logging.getLogger(__name__)


def main():
    """Run the fleet telemetry API server."""
    logger.info(f"Starting Fleet Telemetry API on {settings.api_host}:{settings.api_port}")

    try:
        initialize_database()
        uvicorn.run(
            "api.main:app",
            host=settings.api_host,
            port=settings.api_port,
            reload=settings.is_development,
            log_level=settings.log_level.lower(),
            access_log=True,
        )
    except Exception as e:
        logger.error(f"Failed to start API: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
