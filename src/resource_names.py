"""
Unique resource names for the demo buckets and function.

Bucket names are global, so the base names are probably taken. When they are,
a random suffix is appended to both bucket names and the pair is probed again.
The suffix alternates consonants and vowels so it stays easy to read and type.
"""

import logging
import random
from dataclasses import dataclass
from typing import Optional

from platform_clients import BucketsClient, ErrorKind, FunctionsClient, PlatformError

logger = logging.getLogger(__name__)

CONSONANTS = "bcdfghjklmnpqrstvwxyz"
VOWELS = "aeiou"
SUFFIX_PAIRS = 4
MAX_ATTEMPTS = 25

INPUT_BUCKET_BASE_NAME = "demo-notification-input"
OUTPUT_BUCKET_BASE_NAME = "demo-notification-output"
FUNCTION_BASE_NAME = "demo-notification"


class NamesExhaustedError(RuntimeError):
    """No free bucket name pair was found within the attempt ceiling."""

    def __init__(self, attempts: int, input_bucket_name: str, output_bucket_name: str):
        self.attempts = attempts
        super().__init__(
            f"No free bucket names after {attempts} attempts "
            f"(last tried {input_bucket_name} and {output_bucket_name})"
        )


@dataclass(frozen=True)
class ResolvedNames:
    input_bucket_name: str
    output_bucket_name: str
    function_name: str
    suffix: Optional[str] = None


def generate_suffix(rng: Optional[random.Random] = None) -> str:
    """
    Generate a suffix of four consonant/vowel pairs, e.g. ``bavotike``.

    The suffix is random, not guaranteed to be unique.
    """
    rng = rng or random.Random()
    return "".join(rng.choice(CONSONANTS) + rng.choice(VOWELS) for _ in range(SUFFIX_PAIRS))


def with_suffix(base_name: str, suffix: Optional[str]) -> str:
    return f"{base_name}-{suffix}" if suffix else base_name


def bucket_exists(buckets: BucketsClient, bucket_name: str) -> bool:
    try:
        buckets.read_bucket(bucket_name)
    except PlatformError as error:
        if error.kind is ErrorKind.NOT_FOUND:
            return False
        if error.kind is ErrorKind.CONFLICT:
            # owned by somebody else
            return True
        raise
    return True


def function_exists(functions: FunctionsClient, function_name: str) -> bool:
    try:
        functions.read_function(function_name)
    except PlatformError as error:
        if error.kind is ErrorKind.NOT_FOUND:
            return False
        raise
    return True


def resolve_names(
    buckets: BucketsClient,
    functions: FunctionsClient,
    input_bucket_base_name: str = INPUT_BUCKET_BASE_NAME,
    output_bucket_base_name: str = OUTPUT_BUCKET_BASE_NAME,
    function_base_name: str = FUNCTION_BASE_NAME,
    max_attempts: int = MAX_ATTEMPTS,
    rng: Optional[random.Random] = None,
) -> ResolvedNames:
    """
    Find free names for both buckets and the function.

    Both buckets always share the same suffix. The function keeps its base name
    unless a function with that name exists; then it takes the bucket suffix,
    or a fresh one if the buckets didn't need a suffix.

    Args:
        buckets (BucketsClient): Used to probe bucket names
        functions (FunctionsClient): Used to probe the function name
        input_bucket_base_name (str): Preferred input bucket name
        output_bucket_base_name (str): Preferred output bucket name
        function_base_name (str): Preferred function name
        max_attempts (int): Number of bucket name pairs to probe before giving up
        rng (random.Random): Source of randomness for suffixes

    Returns:
        ResolvedNames: The free names and the suffix used, if any

    Raises:
        NamesExhaustedError: If every probed bucket name pair was taken
        PlatformError: If probing failed for any reason other than absence
    """
    rng = rng or random.Random()
    suffix = None
    input_bucket_name = input_bucket_base_name
    output_bucket_name = output_bucket_base_name

    for attempt in range(1, max_attempts + 1):
        if not bucket_exists(buckets, input_bucket_name) and not bucket_exists(buckets, output_bucket_name):
            break

        logger.info("Bucket names %s / %s are taken (attempt %d)", input_bucket_name, output_bucket_name, attempt)
        suffix = generate_suffix(rng)
        input_bucket_name = with_suffix(input_bucket_base_name, suffix)
        output_bucket_name = with_suffix(output_bucket_base_name, suffix)
    else:
        raise NamesExhaustedError(max_attempts, input_bucket_name, output_bucket_name)

    function_name = function_base_name
    if function_exists(functions, function_name):
        suffix = suffix or generate_suffix(rng)
        function_name = with_suffix(function_base_name, suffix)
        logger.info("Function %s exists, using %s", function_base_name, function_name)

    return ResolvedNames(
        input_bucket_name=input_bucket_name,
        output_bucket_name=output_bucket_name,
        function_name=function_name,
        suffix=suffix,
    )
