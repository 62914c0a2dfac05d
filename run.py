#!/usr/bin/env python3
"""
Associate Loan Ledger Entry Point

Starts the FastAPI server with host, port and logging taken from LEDGER_*
environment settings.
"""

import sys
from pathlib import Path

# Add the project root to Python path
project_root = Path(__file__).parent
sys.path.insert(0, str(project_root))

from associate_ledger.api import run_server
from associate_ledger.config import get_config
from associate_ledger.logging_config import setup_logging


if __name__ == "__main__":
    config = get_config()
    logger = setup_logging(config.log_level, log_format=config.log_format, log_file=config.log_file)
    logger.info("Starting Associate Loan Ledger on %s:%s", config.api_host, config.api_port)
    logger.info("Database: %s", config.database_url)

    try:
        run_server(
            host=config.api_host,
            port=config.api_port,
            debug=config.log_level.upper() == "DEBUG"
        )
    except KeyboardInterrupt:
        logger.info("Shutting down Associate Loan Ledger")
    except Exception as e:
        logger.error("Error starting server: %s", e)
        sys.exit(1)
