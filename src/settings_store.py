"""
Settings shared between the helper scripts.

The setup script resolves the resource names once and writes them to
``settings.json``; every other script loads that file at start and passes the
Settings along. The function's own configuration lives in ``.env`` and is
deployed together with the function.
"""

import json
import logging
import os
from dataclasses import asdict, dataclass
from typing import Dict

from dotenv import dotenv_values, load_dotenv

logger = logging.getLogger(__name__)

DEFAULT_SETTINGS_PATH = "settings.json"
DEFAULT_ENV_PATH = ".env"


@dataclass(frozen=True)
class Settings:
    function_name: str
    input_bucket_name: str
    output_bucket_name: str


def save_settings(settings: Settings, path: str = DEFAULT_SETTINGS_PATH) -> None:
    with open(path, "w", encoding="utf-8") as settings_file:
        json.dump(asdict(settings), settings_file, indent=2)
        settings_file.write("\n")
    logger.info("Wrote settings to %s", path)


def load_settings(path: str = DEFAULT_SETTINGS_PATH) -> Settings:
    """
    Load the settings written by the setup script.

    Raises:
        ValueError: If the file is missing or incomplete
    """
    if not os.path.exists(path):
        raise ValueError(f"Settings file {path} not found. Run the setup script first.")

    with open(path, encoding="utf-8") as settings_file:
        data = json.load(settings_file)

    missing = [name for name in ('function_name', 'input_bucket_name', 'output_bucket_name') if not data.get(name)]
    if missing:
        raise ValueError(f"Settings file {path} is missing: {', '.join(missing)}")

    return Settings(
        function_name=data['function_name'],
        input_bucket_name=data['input_bucket_name'],
        output_bucket_name=data['output_bucket_name'],
    )


def write_env_file(output_bucket_name: str, path: str = DEFAULT_ENV_PATH) -> None:
    """Write the function's environment file."""
    with open(path, "w", encoding="utf-8") as env_file:
        env_file.write("# Settings the function needs to run. They're deployed together with the function.\n")
        env_file.write("\n")
        env_file.write("# The name of the bucket where the function stores its output.\n")
        env_file.write(f"OUTPUT_BUCKET={output_bucket_name}\n")
    logger.info("Wrote function environment to %s", path)


def read_env_file(path: str = DEFAULT_ENV_PATH) -> Dict[str, str]:
    """Parse the environment file into the variables the function is deployed with."""
    if not os.path.exists(path):
        raise ValueError(f"Environment file {path} not found. Run the setup script first.")
    return {name: value for name, value in dotenv_values(path).items() if value is not None}


def apply_env_file(path: str = DEFAULT_ENV_PATH) -> None:
    """Load the environment file into os.environ, overriding existing values."""
    if not os.path.exists(path):
        raise ValueError(f"Environment file {path} not found. Run the setup script first.")
    load_dotenv(path, override=True)
