"""
Tests for the deletion strategy library.
"""

import threading
import time

import pytest

from cloudnuke.core.context import RunContext
from cloudnuke.core.exceptions import (
    EBSVolumeDeleteTimeoutError,
    RunCancelledError,
)
from cloudnuke.core.resource import Scope
from cloudnuke.core.strategies import (
    MAX_BATCH_SIZE_LIMIT,
    NukeResult,
    NukeResults,
    bulk_deleter,
    cancelled_results,
    chunked,
    concurrent_delete_then_wait_all,
    delete_then_wait,
    multi_step_deleter,
    sequential_deleter,
    simple_batch_deleter,
)

SCOPE = Scope("us-east-1")


def failing_for(*bad):
    """Delete function that fails for the given identifiers."""
    calls = []
    lock = threading.Lock()

    def delete(ctx, client, identifier):
        with lock:
            calls.append(identifier)
        if identifier in bad:
            raise RuntimeError(f"cannot delete {identifier}")

    delete.calls = calls
    return delete


def summary(results):
    return [(r.identifier, r.ok) for r in results]


class TestChunked:
    """Tests for chunked."""

    def test_even_split(self):
        """Test splitting into chunks of a given size."""
        assert list(chunked(["a", "b", "c", "d"], 2)) == [["a", "b"], ["c", "d"]]

    def test_cap(self):
        """Test that chunks never exceed the global cap."""
        chunks = list(chunked([str(i) for i in range(250)], 500))
        assert [len(c) for c in chunks] == [MAX_BATCH_SIZE_LIMIT, MAX_BATCH_SIZE_LIMIT, 50]

    def test_empty(self):
        """Test that nothing is yielded for no items."""
        assert list(chunked([], 10)) == []


class TestNukeResult:
    """Tests for NukeResult and NukeResults."""

    def test_error_message_includes_step(self):
        """Test that the failing step is shown in the message."""
        result = NukeResult("vpc-1", RuntimeError("boom"), step=3)
        assert result.error_message == "step 3: boom"
        assert not result.ok

    def test_failed_and_succeeded(self):
        """Test the failed/succeeded partitions."""
        results = NukeResults([NukeResult("a", RuntimeError("x")), NukeResult("b")])
        assert [r.identifier for r in results.failed] == ["a"]
        assert [r.identifier for r in results.succeeded] == ["b"]
        assert results.errors == []


class TestSimpleBatchDeleter:
    """Tests for simple_batch_deleter."""

    def test_independent_failures(self):
        """Test that 'a' failing does not affect 'b' and both are reported."""
        nuker = simple_batch_deleter(failing_for("a"))

        results = nuker(RunContext(), None, SCOPE, "eip", ["a", "b"])

        assert summary(results) == [("a", False), ("b", True)]
        assert "cannot delete a" in results[0].error_message

    def test_one_result_per_identifier_in_order(self):
        """Test that results come back in input order for many identifiers."""
        identifiers = [f"id-{i}" for i in range(25)]
        nuker = simple_batch_deleter(failing_for("id-3", "id-17"), batch_size=7)

        results = nuker(RunContext(), None, SCOPE, "eip", identifiers)

        assert [r.identifier for r in results] == identifiers
        assert [r.identifier for r in results.failed] == ["id-3", "id-17"]

    def test_batch_size_bounds_concurrency(self):
        """Test that no more than batch_size deletes are in flight at once."""
        in_flight = 0
        peak = 0
        lock = threading.Lock()

        def delete(ctx, client, identifier):
            nonlocal in_flight, peak
            with lock:
                in_flight += 1
                peak = max(peak, in_flight)
            time.sleep(0.01)
            with lock:
                in_flight -= 1

        nuker = simple_batch_deleter(delete, batch_size=3)
        results = nuker(RunContext(), None, SCOPE, "eip", [str(i) for i in range(10)])

        assert len(results) == 10
        assert peak <= 3

    def test_empty_input(self):
        """Test that no identifiers means no calls and no results."""
        delete = failing_for()
        results = simple_batch_deleter(delete)(RunContext(), None, SCOPE, "eip", [])
        assert list(results) == []
        assert delete.calls == []

    def test_client_is_passed_through(self):
        """Test that the nuker hands its client to the delete function."""
        seen = []
        nuker = simple_batch_deleter(lambda ctx, client, i: seen.append(client))
        nuker(RunContext(), "handle", SCOPE, "eip", ["a"])
        assert seen == ["handle"]


class TestSequentialDeleter:
    """Tests for sequential_deleter."""

    def test_order_and_continue_on_error(self):
        """Test that identifiers run in order and errors do not stop the loop."""
        delete = failing_for("b")
        results = sequential_deleter(delete)(RunContext(), None, SCOPE, "iam-role", ["a", "b", "c"])

        assert delete.calls == ["a", "b", "c"]
        assert summary(results) == [("a", True), ("b", False), ("c", True)]


class TestBulkDeleter:
    """Tests for bulk_deleter."""

    def test_chunks_and_shared_failure(self):
        """Test that each chunk is one call and a failed call fails the chunk."""
        calls = []

        def bulk(ctx, client, identifiers):
            calls.append(list(identifiers))
            if "c" in identifiers:
                raise RuntimeError("bulk failed")

        nuker = bulk_deleter(bulk, batch_size=2)
        results = nuker(RunContext(), None, SCOPE, "cloudwatch-dashboard", ["a", "b", "c", "d", "e"])

        assert calls == [["a", "b"], ["c", "d"], ["e"]]
        assert summary(results) == [
            ("a", True), ("b", True), ("c", False), ("d", False), ("e", True),
        ]


class TestConcurrentDeleteThenWaitAll:
    """Tests for concurrent_delete_then_wait_all."""

    def test_wait_timeout_is_a_batch_error(self):
        """Test that a wait timeout leaves x and y successful and adds one error."""
        waited = []

        def wait_all(ctx, client, identifiers):
            waited.append(sorted(identifiers))
            raise EBSVolumeDeleteTimeoutError("ebs", identifiers, 60, 5.0)

        nuker = concurrent_delete_then_wait_all(failing_for(), wait_all)
        results = nuker(RunContext(), None, SCOPE, "ebs", ["x", "y"])

        assert summary(results) == [("x", True), ("y", True)]
        assert waited == [["x", "y"]]
        assert len(results.errors) == 1
        assert isinstance(results.errors[0], EBSVolumeDeleteTimeoutError)

    def test_only_survivors_are_waited_on(self):
        """Test that failed deletes are excluded from the wait."""
        waited = []
        nuker = concurrent_delete_then_wait_all(
            failing_for("x"), lambda ctx, client, ids: waited.append(list(ids))
        )

        results = nuker(RunContext(), None, SCOPE, "ebs", ["x", "y"])

        assert summary(results) == [("x", False), ("y", True)]
        assert waited == [["y"]]
        assert results.errors == []

    def test_no_wait_when_everything_failed(self):
        """Test that the wait is skipped when no delete succeeded."""
        waited = []
        nuker = concurrent_delete_then_wait_all(
            failing_for("x"), lambda ctx, client, ids: waited.append(ids)
        )
        nuker(RunContext(), None, SCOPE, "ebs", ["x"])
        assert waited == []


class TestDeleteThenWait:
    """Tests for delete_then_wait."""

    def test_wait_failure_fails_only_that_identifier(self):
        """Test that a failed wait is attributed to its identifier."""

        def wait(ctx, client, identifier):
            if identifier == "b":
                raise RuntimeError("still deleting")

        nuker = delete_then_wait(failing_for(), wait)
        results = nuker(RunContext(), None, SCOPE, "nat-gateway", ["a", "b"])

        assert summary(results) == [("a", True), ("b", False)]

    def test_no_wait_after_failed_delete(self):
        """Test that the wait is not run when the delete fails."""
        waited = []
        nuker = delete_then_wait(failing_for("a"), lambda ctx, c, i: waited.append(i))
        nuker(RunContext(), None, SCOPE, "nat-gateway", ["a"])
        assert waited == []


class TestMultiStepDeleter:
    """Tests for multi_step_deleter."""

    def test_steps_run_in_order(self):
        """Test that every step runs per identifier, in order."""
        calls = []

        def step(n):
            return lambda ctx, client, identifier: calls.append((identifier, n))

        nuker = multi_step_deleter(step(1), step(2), step(3))
        results = nuker(RunContext(), None, SCOPE, "vpc", ["v1", "v2"])

        assert all(r.ok for r in results)
        assert calls == [
            ("v1", 1), ("v1", 2), ("v1", 3),
            ("v2", 1), ("v2", 2), ("v2", 3),
        ]

    def test_failure_stops_the_pipeline(self):
        """Test that step N+1 never runs after step N fails."""
        calls = []

        def ok(ctx, client, identifier):
            calls.append("first")

        def bad(ctx, client, identifier):
            calls.append("second")
            raise RuntimeError("dependency")

        def never(ctx, client, identifier):
            calls.append("third")

        results = multi_step_deleter(ok, bad, never)(RunContext(), None, SCOPE, "vpc", ["v1"])

        assert calls == ["first", "second"]
        assert results[0].step == 2
        assert results[0].error_message == "step 2: dependency"

    def test_needs_steps(self):
        """Test that an empty pipeline is rejected."""
        with pytest.raises(ValueError):
            multi_step_deleter()


class TestCancellation:
    """Tests for cancellation across strategies."""

    def test_cancelled_context_issues_no_deletes(self):
        """Test that a cancelled run records every identifier as cancelled."""
        ctx = RunContext()
        ctx.cancel()
        delete = failing_for()

        results = sequential_deleter(delete)(ctx, None, SCOPE, "iam-role", ["a", "b"])

        assert delete.calls == []
        assert all(isinstance(r.error, RunCancelledError) for r in results)

    def test_cancel_midway(self):
        """Test that identifiers after a cancel are not attempted."""
        ctx = RunContext()
        calls = []

        def delete(ctx_, client, identifier):
            calls.append(identifier)
            ctx.cancel()

        results = sequential_deleter(delete)(ctx, None, SCOPE, "iam-role", ["a", "b", "c"])

        assert calls == ["a"]
        assert summary(results) == [("a", True), ("b", False), ("c", False)]

    def test_cancelled_results(self):
        """Test the helper used for identifiers the engine never submitted."""
        results = cancelled_results(["a", "b"], "ebs")
        assert [r.identifier for r in results] == ["a", "b"]
        assert all(isinstance(r.error, RunCancelledError) for r in results)
