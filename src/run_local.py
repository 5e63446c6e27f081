"""
Local script: run the handler on this machine against the real buckets.

The function reads from the actual input bucket, so ``local.txt`` (or the key
given on the command line) must already be in it.
"""

import logging
import sys
from typing import Any, Dict, List, Optional

from handler import lambda_handler
from script_support import build_parser, setup_logging
from settings_store import apply_env_file, load_settings

logger = logging.getLogger(__name__)

LOCAL_KEY = "local.txt"


def build_event(bucket_name: str, key: str = LOCAL_KEY) -> Dict[str, Any]:
    """
    Build a notification like the bucket would send it.

    A real notification carries more data; this one only has the fields the
    handler reads.
    """
    return {
        "Records": [{
            "eventName": "ObjectCreated:Put",
            "s3": {
                "bucket": {"name": bucket_name},
                "object": {"key": key}
            }
        }]
    }


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser("Invoke the handler locally with a sample notification.")
    parser.add_argument('--key', default=LOCAL_KEY, help="Form-encoded key of an object in the input bucket")
    args = parser.parse_args(argv)

    setup_logging()

    try:
        settings = load_settings(args.settings)
        # The same environment the function sees when it runs on the platform.
        apply_env_file(args.env_file)
    except ValueError as e:
        logger.error(f"Configuration error: {e}")
        return 1

    response = lambda_handler(build_event(settings.input_bucket_name, args.key), None)
    logger.info(f"Handler returned: {response}")
    return 0


if __name__ == '__main__':
    sys.exit(main())
