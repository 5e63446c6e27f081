"""Helpers shared by the command line scripts."""

import argparse
import logging
import os

from settings_store import DEFAULT_ENV_PATH, DEFAULT_SETTINGS_PATH


def setup_logging() -> logging.Logger:
    """
    Set up logging configuration for a helper script.

    Returns:
        logging.Logger: The root logger
    """
    # Get log level from environment variable, default to INFO
    log_level = os.environ.get('LOG_LEVEL', 'INFO').upper()

    logging.basicConfig(
        level=getattr(logging, log_level, logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    return logging.getLogger()


def build_parser(description: str) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description=description)
    parser.add_argument('--settings', default=DEFAULT_SETTINGS_PATH,
                        help="Path of the settings file written by the setup script")
    parser.add_argument('--env-file', default=DEFAULT_ENV_PATH,
                        help="Path of the function's environment file")
    return parser
