"""
Deploy script: package the handler and create or update the function.

The function gets its environment from the ``.env`` file written by the setup
script. Needs LAMBDA_ROLE_ARN set to the function's execution role.
"""

import io
import logging
import os
import sys
import zipfile
from typing import List, Mapping, Optional

from platform_clients import ErrorKind, FunctionsClient, PlatformConfig, PlatformError, create_clients
from script_support import build_parser, setup_logging
from settings_store import load_settings, read_env_file

logger = logging.getLogger(__name__)

# Maximum execution duration of the function, in seconds.
TIMEOUT = 900

HANDLER_PATH = os.path.join(os.path.dirname(os.path.abspath(__file__)), "handler.py")


def build_package(handler_path: str = HANDLER_PATH) -> bytes:
    """
    Create the deployment package in ZIP format in an in-memory buffer.

    The handler module is stored at the root of the archive so the runtime can
    import it as ``handler``.
    """
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED, compresslevel=9) as zipped:
        zipped.write(handler_path, arcname=os.path.basename(handler_path))
    return buffer.getvalue()


def deploy(
    functions: FunctionsClient,
    function_name: str,
    package: bytes,
    environment: Mapping[str, str],
    timeout: int = TIMEOUT,
) -> str:
    """
    Create the function, or update it if it already exists.

    Returns:
        str: ARN of the deployed function
    """
    try:
        return functions.create_function(function_name, package, timeout, environment)
    except PlatformError as error:
        if error.kind is not ErrorKind.CONFLICT:
            raise

    logger.info("Function %s exists, updating it", function_name)
    return functions.update_function(function_name, package, timeout, environment)


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser("Deploy the notification handler.")
    args = parser.parse_args(argv)

    setup_logging()

    try:
        settings = load_settings(args.settings)
        environment = read_env_file(args.env_file)
        _, functions = create_clients(PlatformConfig.from_environment())
        deploy(functions, settings.function_name, build_package(), environment)
    except ValueError as e:
        logger.error(f"Configuration error: {e}")
        return 1
    except PlatformError as e:
        logger.error(f"Deployment failed: {e}")
        return 1

    return 0


if __name__ == '__main__':
    sys.exit(main())
