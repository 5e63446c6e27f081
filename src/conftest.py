"""In-memory stand-ins for the bucket and function APIs."""

import copy
import threading

import pytest

from platform_clients import (
    BucketInfo,
    BucketNotifications,
    ErrorKind,
    FunctionInfo,
    ObjectPage,
    PlatformError,
)


class FakeBuckets:
    """
    Buckets held in a dict. ``failures`` maps (operation, name) to the
    ErrorKind that call should fail with.
    """

    def __init__(self, page_size=1000):
        self.buckets = {}
        self.objects = {}
        self.failures = {}
        self.calls = []
        self.page_size = page_size
        self._lock = threading.Lock()

    def add_bucket(self, name, notifications=None, keys=()):
        self.buckets[name] = copy.deepcopy(notifications) if notifications else BucketNotifications()
        self.objects[name] = list(keys)

    def _record(self, operation, name, *args):
        with self._lock:
            self.calls.append((operation, name) + args)
        kind = self.failures.get((operation, name))
        if kind is not None:
            raise PlatformError(kind, operation, name)

    def _require(self, operation, name):
        if name not in self.buckets:
            raise PlatformError(ErrorKind.NOT_FOUND, operation, name)

    def read_bucket(self, name):
        self._record('read_bucket', name)
        self._require('read_bucket', name)
        return BucketInfo(name=name, notifications=copy.deepcopy(self.buckets[name]))

    def create_bucket(self, name, notifications=None):
        self._record('create_bucket', name)
        if name in self.buckets:
            raise PlatformError(ErrorKind.CONFLICT, 'create_bucket', name)
        self.add_bucket(name, notifications)

    def update_bucket(self, name, notifications):
        self._record('update_bucket', name)
        self._require('update_bucket', name)
        self.buckets[name] = copy.deepcopy(notifications)

    def list_objects(self, name, continuation_token=None):
        self._record('list_objects', name, continuation_token)
        self._require('list_objects', name)
        # The token is the last key handed out, so deletes don't shift the cursor.
        with self._lock:
            remaining = sorted(key for key in self.objects[name] if continuation_token is None or key > continuation_token)
        keys = remaining[:self.page_size]
        next_token = keys[-1] if len(remaining) > self.page_size else None
        return ObjectPage(keys=keys, next_token=next_token)

    def delete_object(self, name, key):
        self._record('delete_object', name, key)
        self._require('delete_object', name)
        with self._lock:
            if key in self.objects[name]:
                self.objects[name].remove(key)

    def delete_bucket(self, name):
        self._record('delete_bucket', name)
        self._require('delete_bucket', name)
        if self.objects[name]:
            raise PlatformError(ErrorKind.CONFLICT, 'delete_bucket', name)
        del self.buckets[name]
        del self.objects[name]


class FakeFunctions:

    def __init__(self):
        self.functions = {}
        self.failures = {}
        self.calls = []

    def _record(self, operation, name):
        self.calls.append((operation, name))
        kind = self.failures.get((operation, name))
        if kind is not None:
            raise PlatformError(kind, operation, name)

    def add_function(self, name, environment=None):
        self.functions[name] = FunctionInfo(
            name=name,
            arn=f"arn:aws:lambda:us-east-1:123456789012:function:{name}",
            timeout=900,
            environment=dict(environment or {}),
        )

    def read_function(self, name):
        self._record('read_function', name)
        if name not in self.functions:
            raise PlatformError(ErrorKind.NOT_FOUND, 'read_function', name)
        return self.functions[name]

    def create_function(self, name, package, timeout, environment):
        self._record('create_function', name)
        if name in self.functions:
            raise PlatformError(ErrorKind.CONFLICT, 'create_function', name)
        self.add_function(name, environment)
        return self.functions[name].arn

    def update_function(self, name, package, timeout, environment):
        self._record('update_function', name)
        if name not in self.functions:
            raise PlatformError(ErrorKind.NOT_FOUND, 'update_function', name)
        self.add_function(name, environment)
        return self.functions[name].arn

    def delete_function(self, name):
        self._record('delete_function', name)
        if name not in self.functions:
            raise PlatformError(ErrorKind.NOT_FOUND, 'delete_function', name)
        del self.functions[name]


@pytest.fixture
def buckets():
    return FakeBuckets()


@pytest.fixture
def functions():
    return FakeFunctions()
