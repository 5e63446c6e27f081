"""
Notification script: make the input bucket notify the function.

Existing notifications on the bucket are kept. Running the script again is a
no-op once the function is registered.
"""

import logging
import sys
from typing import List, Optional

from platform_clients import (
    BucketNotifications,
    BucketsClient,
    ErrorKind,
    FunctionNotification,
    PlatformConfig,
    PlatformError,
    create_clients,
)
from script_support import build_parser, setup_logging
from settings_store import load_settings

logger = logging.getLogger(__name__)


def ensure_notification(buckets: BucketsClient, bucket_name: str, function_name: str) -> bool:
    """
    Add the function to the bucket's notification registration.

    The registration is read first and written back whole, so bindings added
    through other means survive. If the bucket doesn't exist it is created with
    a registration holding just this function.

    Args:
        buckets (BucketsClient): Bucket API
        bucket_name (str): Bucket that should trigger the function
        function_name (str): Function to register

    Returns:
        bool: True if the registration changed, False if it was already there

    Raises:
        PlatformError: For any failure other than a missing bucket
    """
    try:
        bucket = buckets.read_bucket(bucket_name)
    except PlatformError as error:
        if error.kind is not ErrorKind.NOT_FOUND:
            raise

        logger.info("Bucket %s doesn't exist, creating it with the notification", bucket_name)
        buckets.create_bucket(
            bucket_name,
            notifications=BucketNotifications(functions=[FunctionNotification(function_name)]),
        )
        return True

    notifications = bucket.notifications
    if notifications.has_function(function_name):
        logger.info("Function %s is already registered on bucket %s", function_name, bucket_name)
        return False

    notifications.functions.append(FunctionNotification(function_name))
    buckets.update_bucket(bucket_name, notifications)
    return True


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser("Register the function for notifications on the input bucket.")
    args = parser.parse_args(argv)

    setup_logging()

    try:
        settings = load_settings(args.settings)
        buckets, _ = create_clients(PlatformConfig.from_environment())
        ensure_notification(buckets, settings.input_bucket_name, settings.function_name)
    except ValueError as e:
        logger.error(f"Configuration error: {e}")
        return 1
    except PlatformError as e:
        logger.error(f"Registering the notification failed: {e}")
        return 1

    return 0


if __name__ == '__main__':
    sys.exit(main())
