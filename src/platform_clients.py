"""
Platform clients for the bucket notification demo.

This module wraps the boto3 ``s3`` and ``lambda`` clients behind the small
bucket/function API the helper scripts need. Every remote failure is translated
into a PlatformError carrying a closed ErrorKind, so callers branch on the kind
of failure instead of inspecting error codes themselves.
"""

import enum
import logging
import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple

import boto3
from botocore.exceptions import ClientError

logger = logging.getLogger(__name__)

DEFAULT_REGION = "us-east-1"
DEFAULT_RUNTIME = "python3.12"
DEFAULT_HANDLER = "handler.lambda_handler"

# Bucket notifications only fire the function for new objects.
DEFAULT_EVENTS = ["s3:ObjectCreated:*"]

NOT_FOUND_CODES = frozenset({
    "404",
    "NotFound",
    "NoSuchBucket",
    "NoSuchKey",
    "ResourceNotFoundException",
})

CONFLICT_CODES = frozenset({
    "BucketAlreadyExists",
    "BucketAlreadyOwnedByYou",
    "BucketNotEmpty",
    "ResourceConflictException",
})

# head_bucket answers 403 for another account's bucket and 301 for a bucket in another region.
TAKEN_CODES = frozenset({"301", "PermanentRedirect", "403", "Forbidden", "AccessDenied"})


class ErrorKind(enum.Enum):
    """The kinds of remote failure the scripts distinguish."""

    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    OTHER = "other"


class PlatformError(Exception):
    """
    A failed call to the storage or function platform.

    Attributes:
        kind (ErrorKind): Classified failure kind
        operation (str): Name of the client operation that failed
        resource (str): Bucket or function name the operation targeted
        code (str): Raw error code reported by the platform
    """

    def __init__(self, kind: ErrorKind, operation: str, resource: str, code: str = "Unknown", message: str = ""):
        self.kind = kind
        self.operation = operation
        self.resource = resource
        self.code = code
        super().__init__(f"{operation} failed for '{resource}' ({code}): {message or kind.value}")


def error_code(error: ClientError) -> str:
    return error.response.get('Error', {}).get('Code', 'Unknown')


def classify_client_error(error: ClientError) -> ErrorKind:
    """
    Map a botocore ClientError onto an ErrorKind.

    Args:
        error (ClientError): Error raised by a boto3 client call

    Returns:
        ErrorKind: NOT_FOUND, CONFLICT or OTHER
    """
    code = error_code(error)
    if code in NOT_FOUND_CODES:
        return ErrorKind.NOT_FOUND
    if code in CONFLICT_CODES:
        return ErrorKind.CONFLICT
    return ErrorKind.OTHER


def _platform_error(error: ClientError, operation: str, resource: str, kind: Optional[ErrorKind] = None) -> PlatformError:
    message = error.response.get('Error', {}).get('Message', str(error))
    return PlatformError(kind or classify_client_error(error), operation, resource, error_code(error), message)


def function_name_from_arn(function_arn: str) -> str:
    """
    Extract the function name from a Lambda function ARN.

    Expected format: arn:aws:lambda:region:account-id:function:name[:qualifier]
    Anything that doesn't look like a function ARN is returned unchanged.
    """
    arn_parts = function_arn.split(':')
    if len(arn_parts) >= 7 and arn_parts[5] == 'function':
        return arn_parts[6]
    return function_arn


@dataclass
class PlatformConfig:
    """Connection settings shared by every helper script."""

    region: str = DEFAULT_REGION
    role_arn: Optional[str] = None
    runtime: str = DEFAULT_RUNTIME
    handler_name: str = DEFAULT_HANDLER

    @classmethod
    def from_environment(cls, environ: Optional[Mapping[str, str]] = None) -> "PlatformConfig":
        environ = os.environ if environ is None else environ
        region = environ.get('AWS_REGION') or environ.get('AWS_DEFAULT_REGION') or DEFAULT_REGION
        return cls(
            region=region,
            role_arn=environ.get('LAMBDA_ROLE_ARN') or None,
            runtime=environ.get('LAMBDA_RUNTIME') or DEFAULT_RUNTIME,
        )

    def require_role_arn(self) -> str:
        """
        Return the execution role for new functions.

        Raises:
            ValueError: If LAMBDA_ROLE_ARN is missing or not an IAM role ARN
        """
        if not self.role_arn:
            raise ValueError("LAMBDA_ROLE_ARN environment variable is required to create the function")

        # Expected format: arn:aws:iam::account-id:role/role-name
        if not self.role_arn.startswith('arn:aws:iam::') or ':role/' not in self.role_arn:
            raise ValueError(f"Invalid IAM role ARN format: {self.role_arn}")

        return self.role_arn


@dataclass
class FunctionNotification:
    """
    One function binding in a bucket's notification registration.

    ``configuration`` holds the entry exactly as it was read from the bucket;
    it is None for bindings that haven't been written yet.
    """

    function_name: str
    configuration: Optional[Dict[str, Any]] = None


@dataclass
class BucketNotifications:
    """The notification registration of a bucket."""

    functions: List[FunctionNotification] = field(default_factory=list)
    # Topic, queue and EventBridge configurations, kept verbatim.
    other_configurations: Dict[str, Any] = field(default_factory=dict)

    @property
    def function_names(self) -> List[str]:
        return [notification.function_name for notification in self.functions]

    def has_function(self, function_name: str) -> bool:
        return any(notification.function_name == function_name for notification in self.functions)


@dataclass
class BucketInfo:
    name: str
    notifications: BucketNotifications


@dataclass
class ObjectPage:
    """One page of a bucket listing. ``next_token`` is None on the last page."""

    keys: List[str]
    next_token: Optional[str] = None


@dataclass
class FunctionInfo:
    name: str
    arn: str
    timeout: Optional[int] = None
    environment: Dict[str, str] = field(default_factory=dict)


class FunctionsClient:
    """Function management on top of a boto3 ``lambda`` client."""

    def __init__(self, lambda_client, config: Optional[PlatformConfig] = None):
        self._client = lambda_client
        self._config = config or PlatformConfig()

    def read_function(self, function_name: str) -> FunctionInfo:
        try:
            response = self._client.get_function(FunctionName=function_name)
        except ClientError as error:
            raise _platform_error(error, 'read_function', function_name) from error

        configuration = response['Configuration']
        return FunctionInfo(
            name=configuration['FunctionName'],
            arn=configuration['FunctionArn'],
            timeout=configuration.get('Timeout'),
            environment=configuration.get('Environment', {}).get('Variables', {}),
        )

    def create_function(self, function_name: str, package: bytes, timeout: int, environment: Mapping[str, str]) -> str:
        """
        Create the function from an in-memory zip package.

        Args:
            function_name (str): Name of the function
            package (bytes): Zip archive with the handler module at its root
            timeout (int): Maximum execution duration in seconds
            environment (Mapping[str, str]): Environment variables of the function

        Returns:
            str: ARN of the new function

        Raises:
            PlatformError: CONFLICT if the function already exists
        """
        args = {
            'FunctionName': function_name,
            'Runtime': self._config.runtime,
            'Role': self._config.require_role_arn(),
            'Handler': self._config.handler_name,
            'Code': {'ZipFile': package},
            'Timeout': timeout,
            'Environment': {'Variables': dict(environment)},
            # do not publish a version, use $LATEST
            'Publish': False,
        }
        try:
            response = self._client.create_function(**args)
            self._wait('function_active', function_name)
        except ClientError as error:
            raise _platform_error(error, 'create_function', function_name) from error

        logger.info("Created function '%s' with ARN: '%s'.", function_name, response['FunctionArn'])
        return response['FunctionArn']

    def update_function(self, function_name: str, package: bytes, timeout: int, environment: Mapping[str, str]) -> str:
        """Overwrite code, timeout and environment of an existing function."""
        try:
            response = self._client.update_function_code(FunctionName=function_name, ZipFile=package, Publish=False)
            # configuration updates are rejected while the code update is in progress
            self._wait('function_updated', function_name)
            self._client.update_function_configuration(
                FunctionName=function_name,
                Timeout=timeout,
                Environment={'Variables': dict(environment)},
            )
            self._wait('function_updated', function_name)
        except ClientError as error:
            raise _platform_error(error, 'update_function', function_name) from error

        logger.info("Updated function '%s' with ARN: '%s'.", function_name, response['FunctionArn'])
        return response['FunctionArn']

    def delete_function(self, function_name: str) -> None:
        try:
            self._client.delete_function(FunctionName=function_name)
        except ClientError as error:
            raise _platform_error(error, 'delete_function', function_name) from error
        logger.info("Function %s successfully deleted.", function_name)

    def grant_bucket_invoke(self, function_name: str, bucket_name: str) -> bool:
        """
        Allow the bucket to invoke the function.

        Returns:
            bool: True if a permission was added, False if it was already there
        """
        try:
            self._client.add_permission(
                FunctionName=function_name,
                StatementId=f"s3-invoke-{bucket_name}",
                Action='lambda:InvokeFunction',
                Principal='s3.amazonaws.com',
                SourceArn=f"arn:aws:s3:::{bucket_name}",
            )
        except ClientError as error:
            if classify_client_error(error) is ErrorKind.CONFLICT:
                logger.debug("Bucket %s may already invoke function %s", bucket_name, function_name)
                return False
            raise _platform_error(error, 'grant_bucket_invoke', function_name) from error
        return True

    def _wait(self, waiter_name: str, function_name: str) -> None:
        # support wide-range of boto versions by checking the existence
        if waiter_name in self._client.waiter_names:
            self._client.get_waiter(waiter_name).wait(FunctionName=function_name)


class BucketsClient:
    """
    Bucket management on top of a boto3 ``s3`` client.

    Writing a notification registration that binds a new function needs the
    function's ARN and an invoke permission, which are obtained through the
    FunctionsClient given at construction time.
    """

    def __init__(self, s3_client, functions: Optional[FunctionsClient] = None, region: str = DEFAULT_REGION):
        self._client = s3_client
        self._functions = functions
        self._region = region

    def read_bucket(self, bucket_name: str) -> BucketInfo:
        """
        Read a bucket and its notification registration.

        Raises:
            PlatformError: NOT_FOUND if the bucket doesn't exist, CONFLICT if the
                name is taken by another owner or region
        """
        try:
            self._client.head_bucket(Bucket=bucket_name)
        except ClientError as error:
            if error_code(error) in TAKEN_CODES:
                raise _platform_error(error, 'read_bucket', bucket_name, ErrorKind.CONFLICT) from error
            raise _platform_error(error, 'read_bucket', bucket_name) from error

        try:
            configuration = self._client.get_bucket_notification_configuration(Bucket=bucket_name)
        except ClientError as error:
            raise _platform_error(error, 'read_bucket', bucket_name) from error

        return BucketInfo(name=bucket_name, notifications=parse_notifications(configuration))

    def create_bucket(self, bucket_name: str, notifications: Optional[BucketNotifications] = None) -> None:
        """
        Create a bucket, optionally with an initial notification registration.

        Raises:
            PlatformError: CONFLICT if the name is already taken
        """
        args = {'Bucket': bucket_name}
        if self._region != 'us-east-1':
            args['CreateBucketConfiguration'] = {'LocationConstraint': self._region}

        try:
            self._client.create_bucket(**args)
            self._client.get_waiter('bucket_exists').wait(Bucket=bucket_name)
        except ClientError as error:
            raise _platform_error(error, 'create_bucket', bucket_name) from error

        logger.info("Created bucket '%s' in region=%s", bucket_name, self._region)

        if notifications is not None and (notifications.functions or notifications.other_configurations):
            self.update_bucket(bucket_name, notifications)

    def update_bucket(self, bucket_name: str, notifications: BucketNotifications) -> None:
        """Replace the bucket's whole notification registration."""
        configuration = dict(notifications.other_configurations)
        function_configurations = [
            notification.configuration or self._new_function_configuration(bucket_name, notification.function_name)
            for notification in notifications.functions
        ]
        if function_configurations:
            configuration['LambdaFunctionConfigurations'] = function_configurations

        try:
            self._client.put_bucket_notification_configuration(
                Bucket=bucket_name,
                NotificationConfiguration=configuration,
            )
        except ClientError as error:
            raise _platform_error(error, 'update_bucket', bucket_name) from error

        logger.info("Bucket notification updated successfully! bucket: %s functions: %s",
                    bucket_name, notifications.function_names)

    def list_objects(self, bucket_name: str, continuation_token: Optional[str] = None) -> ObjectPage:
        args = {'Bucket': bucket_name}
        if continuation_token:
            args['ContinuationToken'] = continuation_token

        try:
            response = self._client.list_objects_v2(**args)
        except ClientError as error:
            raise _platform_error(error, 'list_objects', bucket_name) from error

        keys = [item['Key'] for item in response.get('Contents', [])]
        next_token = response.get('NextContinuationToken') if response.get('IsTruncated') else None
        return ObjectPage(keys=keys, next_token=next_token)

    def delete_object(self, bucket_name: str, key: str) -> None:
        try:
            self._client.delete_object(Bucket=bucket_name, Key=key)
        except ClientError as error:
            raise _platform_error(error, 'delete_object', f"{bucket_name}/{key}") from error

    def delete_bucket(self, bucket_name: str) -> None:
        """
        Delete an empty bucket.

        Raises:
            PlatformError: NOT_FOUND if the bucket is gone, CONFLICT if it still
                holds objects
        """
        try:
            self._client.delete_bucket(Bucket=bucket_name)
        except ClientError as error:
            raise _platform_error(error, 'delete_bucket', bucket_name) from error
        logger.info("Bucket %s successfully deleted.", bucket_name)

    def _new_function_configuration(self, bucket_name: str, function_name: str) -> Dict[str, Any]:
        if self._functions is None:
            raise ValueError(f"Cannot bind function {function_name} without a functions client")

        function_arn = self._functions.read_function(function_name).arn
        self._functions.grant_bucket_invoke(function_name, bucket_name)
        return {'LambdaFunctionArn': function_arn, 'Events': list(DEFAULT_EVENTS)}


def parse_notifications(configuration: Mapping[str, Any]) -> BucketNotifications:
    """Split a raw notification configuration into function bindings and the rest."""
    functions = [
        FunctionNotification(function_name_from_arn(entry['LambdaFunctionArn']), entry)
        for entry in configuration.get('LambdaFunctionConfigurations', [])
    ]
    other_configurations = {
        name: value for name, value in configuration.items()
        if name not in ('LambdaFunctionConfigurations', 'ResponseMetadata')
    }
    return BucketNotifications(functions=functions, other_configurations=other_configurations)


def create_clients(config: PlatformConfig) -> Tuple[BucketsClient, FunctionsClient]:
    """Build both platform clients from one boto3 session."""
    session = boto3.session.Session(region_name=config.region)
    functions = FunctionsClient(session.client('lambda'), config)
    buckets = BucketsClient(session.client('s3'), functions, config.region)
    return buckets, functions
