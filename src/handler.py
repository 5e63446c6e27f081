"""
Bucket Notification Lambda Handler

This module contains the Lambda handler that is invoked when a new object is
put into the input bucket. It reads the object, converts its contents to upper
case and stores the result under the same key in the output bucket.
"""

import json
import logging
import os
from typing import Dict, Any, List
from urllib.parse import unquote_plus
import boto3


# The only event the buckets send at the moment; other kinds are ignored.
OBJECT_CREATED_PREFIX = 'ObjectCreated:'


def setup_logging() -> logging.Logger:
    """
    Set up logging configuration for the Lambda function.

    Returns:
        logging.Logger: Configured logger instance
    """
    # Get log level from environment variable, default to INFO
    log_level = os.environ.get('LOG_LEVEL', 'INFO').upper()

    # Configure logging
    logging.basicConfig(
        level=getattr(logging, log_level, logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    logger = logging.getLogger(__name__)
    return logger


def validate_environment() -> str:
    """
    Validate required environment variables.

    Returns:
        str: Name of the output bucket

    Raises:
        ValueError: If required environment variables are missing
    """
    output_bucket = os.environ.get('OUTPUT_BUCKET')

    if not output_bucket:
        raise ValueError("OUTPUT_BUCKET environment variable is required but not set")

    return output_bucket


def decode_key(key: str) -> str:
    """
    Decode an object key as it appears in a notification.

    Notifications carry form-encoded keys (a space arrives as '+'), but the
    object API expects the literal key. Pluses become spaces first, then the
    percent escapes are decoded.

    Decoding is lenient: a malformed escape is kept as literal text instead of
    raising, so such a key is looked up as written.

    Examples:
        decode_key("a+b%20c") -> "a b c"
        decode_key("100%2B1.txt") -> "100+1.txt"
        decode_key("50%+off") -> "50% off"
    """
    return unquote_plus(key)


def parse_notifications(event: Dict[str, Any]) -> List[Dict[str, str]]:
    """
    Extract the object-created notifications from an invocation event.

    Args:
        event (Dict[str, Any]): Invocation event with a 'Records' list

    Returns:
        List[Dict[str, str]]: One dict with 'bucket_name' and decoded 'key' per
                              object-created record, in event order
    """
    notifications = []
    for record in event.get('Records', []):
        if not record.get('eventName', '').startswith(OBJECT_CREATED_PREFIX):
            continue

        notifications.append({
            # Several buckets can notify the same function; the record says which one.
            'bucket_name': record['s3']['bucket']['name'],
            'key': decode_key(record['s3']['object']['key']),
        })
    return notifications


def transform_contents(contents: str) -> str:
    """Transform the input. For this demo, convert it to upper case."""
    return contents.upper()


def process_notification(s3_client: Any, notification: Dict[str, str], output_bucket: str) -> bool:
    """
    Fetch, transform and store one uploaded object.

    Writing into the bucket that triggered the function would trigger it again,
    so notifications from the output bucket are logged and skipped.

    Args:
        s3_client: boto3 S3 client
        notification (Dict[str, str]): 'bucket_name' and decoded 'key'
        output_bucket (str): Bucket that receives the transformed object

    Returns:
        bool: True if the object was stored, False if it was skipped
    """
    logger = logging.getLogger(__name__)

    bucket_name = notification['bucket_name']
    key = notification['key']

    if bucket_name == output_bucket:
        logger.error(f"Input and output bucket are the same ({bucket_name}) for {key}")
        return False

    response = s3_client.get_object(Bucket=bucket_name, Key=key)
    # Invalid UTF-8 is replaced with U+FFFD rather than failing the batch.
    contents = response['Body'].read().decode('utf-8', errors='replace')

    # Store the output under the same key as the input object.
    s3_client.put_object(
        Bucket=output_bucket,
        Key=key,
        Body=transform_contents(contents).encode('utf-8')
    )
    logger.info(f"Stored {bucket_name}/{key} as {output_bucket}/{key}")
    return True


def lambda_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    Main Lambda handler for processing bucket notifications.

    Notifications are handled one after the other, in the order they arrive.
    Failures are not caught: the first one ends the invocation and is reported
    to the platform, which decides about retries.

    Args:
        event (Dict[str, Any]): Notification event with a 'Records' list
        context (Any): Lambda context object, None when run locally

    Returns:
        Dict[str, Any]: Response with status code and processing counts

    Raises:
        ValueError: If environment variables are invalid
        ClientError: If reading or writing an object fails
    """
    logger = setup_logging()

    request_id = getattr(context, 'aws_request_id', 'local')
    logger.info(f"Lambda function started. Request ID: {request_id}")

    output_bucket = validate_environment()
    notifications = parse_notifications(event)
    logger.info(f"Received {len(event.get('Records', []))} records, {len(notifications)} object-created notifications")

    s3_client = boto3.client('s3')

    processed: List[str] = []
    skipped: List[str] = []
    for notification in notifications:
        if process_notification(s3_client, notification, output_bucket):
            processed.append(notification['key'])
        else:
            skipped.append(notification['key'])

    logger.info(f"Processed {len(processed)} objects, skipped {len(skipped)}")

    return {
        'statusCode': 200,
        'body': json.dumps({
            'processed_count': len(processed),
            'processed_keys': processed,
            'skipped_keys': skipped
        })
    }
