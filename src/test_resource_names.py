"""
Tests for unique resource naming

Uses the in-memory bucket and function APIs from conftest as the existence
oracle.
"""

import random
import re

import pytest
from hypothesis import given, strategies as st, settings

from conftest import FakeBuckets, FakeFunctions
from platform_clients import ErrorKind, PlatformError
from resource_names import (
    NamesExhaustedError,
    bucket_exists,
    function_exists,
    generate_suffix,
    resolve_names,
    with_suffix,
)

SUFFIX_PATTERN = re.compile(r'^(?:[bcdfghjklmnpqrstvwxyz][aeiou]){4}$')


class TestSuffixProperties:
    """Property-based tests for suffix generation."""

    @given(seed=st.integers())
    @settings(max_examples=300, deadline=None)
    def test_suffix_is_four_consonant_vowel_pairs(self, seed: int):
        assert SUFFIX_PATTERN.match(generate_suffix(random.Random(seed)))

    def test_with_suffix(self):
        assert with_suffix('demo-notification', 'bavotike') == 'demo-notification-bavotike'
        assert with_suffix('demo-notification', None) == 'demo-notification'


class TestExistenceProbing:

    def test_missing_bucket(self, buckets):
        assert bucket_exists(buckets, 'free') is False

    def test_own_bucket(self, buckets):
        buckets.add_bucket('mine')
        assert bucket_exists(buckets, 'mine') is True

    def test_foreign_bucket(self, buckets):
        buckets.failures[('read_bucket', 'theirs')] = ErrorKind.CONFLICT
        assert bucket_exists(buckets, 'theirs') is True

    def test_other_failures_are_rethrown(self, buckets):
        buckets.failures[('read_bucket', 'broken')] = ErrorKind.OTHER
        with pytest.raises(PlatformError):
            bucket_exists(buckets, 'broken')

    def test_function(self, functions):
        functions.add_function('taken')
        assert function_exists(functions, 'taken') is True
        assert function_exists(functions, 'free') is False


class TestResolveNames:
    """Tests for resolving the three resource names."""

    def test_free_base_names_are_kept(self, buckets, functions):
        names = resolve_names(buckets, functions, 'in', 'out', 'fn')

        assert (names.input_bucket_name, names.output_bucket_name, names.function_name) == ('in', 'out', 'fn')
        assert names.suffix is None

    def test_collision_applies_shared_suffix(self, buckets, functions):
        buckets.add_bucket('out')

        names = resolve_names(buckets, functions, 'in', 'out', 'fn', rng=random.Random(7))

        assert names.input_bucket_name == f"in-{names.suffix}"
        assert names.output_bucket_name == f"out-{names.suffix}"
        assert SUFFIX_PATTERN.match(names.suffix)
        assert not bucket_exists(buckets, names.input_bucket_name)
        assert not bucket_exists(buckets, names.output_bucket_name)
        # the function name was free
        assert names.function_name == 'fn'

    def test_taken_function_reuses_bucket_suffix(self, buckets, functions):
        buckets.add_bucket('in')
        functions.add_function('fn')

        names = resolve_names(buckets, functions, 'in', 'out', 'fn', rng=random.Random(1))

        assert names.function_name == f"fn-{names.suffix}"
        assert names.input_bucket_name.endswith(names.suffix)

    def test_taken_function_gets_fresh_suffix(self, buckets, functions):
        functions.add_function('fn')

        names = resolve_names(buckets, functions, 'in', 'out', 'fn', rng=random.Random(1))

        assert names.input_bucket_name == 'in'
        assert names.output_bucket_name == 'out'
        assert SUFFIX_PATTERN.match(names.function_name[len('fn-'):])

    def test_exhaustion_is_an_error(self, functions):
        class AlwaysTaken(FakeBuckets):
            def read_bucket(self, name):
                self._record('read_bucket', name)
                return None

        taken = AlwaysTaken()

        with pytest.raises(NamesExhaustedError) as excinfo:
            resolve_names(taken, functions, 'in', 'out', 'fn', max_attempts=25)

        assert excinfo.value.attempts == 25
        probed = {call[1] for call in taken.calls}
        assert 'in' in probed
        # the function name is never probed when buckets can't be resolved
        assert functions.calls == []

    @given(taken=st.sets(st.sampled_from(['in', 'out']), min_size=1), seed=st.integers())
    @settings(max_examples=50, deadline=None)
    def test_any_collision_yields_free_suffixed_pair(self, taken, seed):
        fake_buckets = FakeBuckets()
        for name in taken:
            fake_buckets.add_bucket(name)

        names = resolve_names(fake_buckets, FakeFunctions(), 'in', 'out', 'fn', rng=random.Random(seed))

        assert names.suffix is not None
        assert names.input_bucket_name == f"in-{names.suffix}"
        assert names.output_bucket_name == f"out-{names.suffix}"
        assert not bucket_exists(fake_buckets, names.input_bucket_name)
        assert not bucket_exists(fake_buckets, names.output_bucket_name)
