"""
Setup script: create the demo buckets and record their names.

The function isn't created here; the deploy script does that, so the code can be
redeployed without recreating the buckets.

Usage:
    python src/provision.py [--with-notification]
"""

import logging
import random
import sys
from typing import List, Optional

from platform_clients import (
    BucketNotifications,
    BucketsClient,
    FunctionNotification,
    FunctionsClient,
    PlatformConfig,
    PlatformError,
    create_clients,
)
from resource_names import (
    FUNCTION_BASE_NAME,
    INPUT_BUCKET_BASE_NAME,
    OUTPUT_BUCKET_BASE_NAME,
    NamesExhaustedError,
    resolve_names,
)
from script_support import build_parser, setup_logging
from settings_store import DEFAULT_ENV_PATH, DEFAULT_SETTINGS_PATH, Settings, save_settings, write_env_file

logger = logging.getLogger(__name__)


def provision(
    buckets: BucketsClient,
    functions: FunctionsClient,
    settings_path: str = DEFAULT_SETTINGS_PATH,
    env_path: str = DEFAULT_ENV_PATH,
    input_bucket_base_name: str = INPUT_BUCKET_BASE_NAME,
    output_bucket_base_name: str = OUTPUT_BUCKET_BASE_NAME,
    function_base_name: str = FUNCTION_BASE_NAME,
    with_notification: bool = False,
    rng: Optional[random.Random] = None,
) -> Settings:
    """
    Resolve unique names, create both buckets and persist the settings.

    Args:
        buckets (BucketsClient): Bucket API
        functions (FunctionsClient): Function API, only used to probe the name
        settings_path (str): Where to write the settings for the other scripts
        env_path (str): Where to write the function's environment file
        input_bucket_base_name (str): Preferred input bucket name
        output_bucket_base_name (str): Preferred output bucket name
        function_base_name (str): Preferred function name
        with_notification (bool): Attach the function to the input bucket right
            away. The function must already exist under the resolved name; if
            it doesn't, the input bucket is created but the call fails.
        rng (random.Random): Source of randomness for name suffixes

    Returns:
        Settings: The names that were created and persisted

    Raises:
        NamesExhaustedError: If no free bucket names were found
        PlatformError: If probing or creating a bucket failed
    """
    names = resolve_names(
        buckets,
        functions,
        input_bucket_base_name=input_bucket_base_name,
        output_bucket_base_name=output_bucket_base_name,
        function_base_name=function_base_name,
        rng=rng,
    )

    settings = Settings(
        function_name=names.function_name,
        input_bucket_name=names.input_bucket_name,
        output_bucket_name=names.output_bucket_name,
    )

    # Saved before anything is created, so the clean script can remove whatever
    # a failed run left behind.
    save_settings(settings, settings_path)
    # The function only needs the output bucket. It learns the input bucket from
    # each notification.
    write_env_file(settings.output_bucket_name, env_path)

    input_notifications = None
    if with_notification:
        input_notifications = BucketNotifications(functions=[FunctionNotification(names.function_name)])

    buckets.create_bucket(names.input_bucket_name, notifications=input_notifications)
    buckets.create_bucket(names.output_bucket_name)
    return settings


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser("Create the input and output buckets for the notification demo.")
    parser.add_argument('--input-bucket', default=INPUT_BUCKET_BASE_NAME, help="Base name of the input bucket")
    parser.add_argument('--output-bucket', default=OUTPUT_BUCKET_BASE_NAME, help="Base name of the output bucket")
    parser.add_argument('--function', default=FUNCTION_BASE_NAME, help="Base name of the function")
    parser.add_argument('--with-notification', action='store_true',
                        help="Attach the function to the input bucket on creation. The function must "
                             "already be deployed under the resolved name; otherwise run demo-clean and "
                             "use demo-notification after deploying")
    args = parser.parse_args(argv)

    setup_logging()
    buckets, functions = create_clients(PlatformConfig.from_environment())

    try:
        settings = provision(
            buckets,
            functions,
            settings_path=args.settings,
            env_path=args.env_file,
            input_bucket_base_name=args.input_bucket,
            output_bucket_base_name=args.output_bucket,
            function_base_name=args.function,
            with_notification=args.with_notification,
        )
    except NamesExhaustedError as e:
        logger.error(f"Configuration error: {e}")
        return 1
    except PlatformError as e:
        logger.error(f"Setup failed: {e}. Run the clean script to remove what was created.")
        return 1

    logger.info(f"Input bucket: {settings.input_bucket_name}")
    logger.info(f"Output bucket: {settings.output_bucket_name}")
    logger.info(f"Function: {settings.function_name}")
    return 0


if __name__ == '__main__':
    sys.exit(main())
