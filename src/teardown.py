"""
Clean script: delete both buckets, including their objects, and the function.

Resources that are already gone count as deleted. Any other failure is logged,
and the remaining deletions still run.
"""

import logging
import sys
from functools import partial
from typing import List, Optional

from fanout import settle_all
from platform_clients import (
    BucketsClient,
    ErrorKind,
    FunctionsClient,
    PlatformConfig,
    PlatformError,
    create_clients,
)
from script_support import build_parser, setup_logging
from settings_store import Settings, load_settings

logger = logging.getLogger(__name__)


def empty_bucket(buckets: BucketsClient, bucket_name: str) -> int:
    """
    Delete every object in the bucket, one listing page at a time.

    Deletes within a page run concurrently. Individual delete failures are
    ignored; deleting the bucket afterwards fails if anything was left behind.

    Returns:
        int: Number of delete calls issued
    """
    issued = 0
    continuation_token = None
    while True:
        page = buckets.list_objects(bucket_name, continuation_token)

        outcomes = settle_all([partial(buckets.delete_object, bucket_name, key) for key in page.keys])
        issued += len(outcomes)
        for key, outcome in zip(page.keys, outcomes):
            if not outcome.ok:
                logger.debug("Couldn't delete %s from %s: %s", key, bucket_name, outcome.error)

        continuation_token = page.next_token
        if continuation_token is None:
            break

    return issued


def delete_bucket_fully(buckets: BucketsClient, bucket_name: str) -> None:
    empty_bucket(buckets, bucket_name)
    buckets.delete_bucket(bucket_name)


def is_reportable(error: BaseException) -> bool:
    """Everything except 'already gone' is worth telling the operator about."""
    if isinstance(error, PlatformError):
        return error.kind is not ErrorKind.NOT_FOUND
    return True


def teardown(buckets: BucketsClient, functions: FunctionsClient, settings: Settings) -> List[BaseException]:
    """
    Delete the input bucket, the output bucket and the function concurrently.

    Returns:
        List[BaseException]: The failures that were reported, empty on success
    """
    outcomes = settle_all([
        partial(delete_bucket_fully, buckets, settings.input_bucket_name),
        partial(delete_bucket_fully, buckets, settings.output_bucket_name),
        partial(functions.delete_function, settings.function_name),
    ])

    reported = []
    for outcome in outcomes:
        if outcome.ok:
            continue
        if is_reportable(outcome.error):
            logger.error("Teardown failed: %s", outcome.error)
            reported.append(outcome.error)
        else:
            logger.info("Already gone: %s", outcome.error)
    return reported


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser("Delete the buckets and the function of the notification demo.")
    args = parser.parse_args(argv)

    setup_logging()

    try:
        settings = load_settings(args.settings)
    except ValueError as e:
        logger.error(f"Configuration error: {e}")
        return 1

    buckets, functions = create_clients(PlatformConfig.from_environment())
    return 1 if teardown(buckets, functions, settings) else 0


if __name__ == '__main__':
    sys.exit(main())
