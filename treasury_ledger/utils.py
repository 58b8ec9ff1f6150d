"""
Utility functions for the ledger engine.

This module contains helpers that are used across the engine but are not
directly related to transaction processing: logging setup and environment
based configuration.
"""

import os
import logging

logger = logging.getLogger(__name__)

def setup_logging(debug=False, log_level=None):
    """Configure logging for the application.

    Args:
        debug (bool): Force DEBUG level regardless of log_level
        log_level (str, optional): Level name. Defaults to the LOG_LEVEL
            environment variable, then 'info'.

    Returns:
        str: Path of the log file in use
    """
    config = load_config()

    # Determine log level
    if debug:
        level = logging.DEBUG
    else:
        level_name = log_level or config['log_level']
        level = getattr(logging, level_name.upper(), logging.INFO)

    format = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

    log_file = config['log_file']

    # Create log directory if needed
    log_dir = os.path.dirname(log_file)
    if log_dir and not os.path.exists(log_dir):
        os.makedirs(log_dir, exist_ok=True)

    # Set up logging to file and console
    logging.basicConfig(
        level=level,
        format=format,
        handlers=[
            logging.FileHandler(log_file),
            logging.StreamHandler()
        ]
    )

    return log_file

def load_config():
    """Read engine settings from the environment.

    Returns:
        dict: Settings with keys:
            - log_file (str): LOG_FILE, default 'debug.log'
            - log_level (str): LOG_LEVEL, default 'info'
            - opening_balance (str): OPENING_BALANCE, default '0'

    Notes:
        - The opening balance is returned as text; callers parse it leniently
          so a malformed value behaves like 0 instead of failing at startup.
    """
    return {
        'log_file': os.getenv('LOG_FILE', 'debug.log'),
        'log_level': os.getenv('LOG_LEVEL', 'info'),
        'opening_balance': os.getenv('OPENING_BALANCE', '0'),
    }
