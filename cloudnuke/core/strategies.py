"""
Deletion Strategy Library
=========================

Named execution patterns that turn a per-resource delete function into a
nuker. Every nuker has the same outward contract::

    nuker(ctx, client, scope, resource_type, identifiers) -> NukeResults

and returns exactly one :class:`NukeResult` per input identifier, in input
order, whether or not the delete succeeded.

Strategies
----------
simple_batch_deleter
    Chunks of ``batch_size``; identifiers in a chunk are deleted in
    parallel and fail independently.
sequential_deleter
    One identifier at a time, in order; errors never stop the loop.
bulk_deleter
    One bulk API call per chunk; a failed call fails every identifier in
    that chunk.
concurrent_delete_then_wait_all
    Parallel deletes, then one blocking wait over the survivors. A wait
    timeout is reported as a batch error, not as per-identifier failure.
delete_then_wait
    Per identifier, delete then wait until gone.
multi_step_deleter
    Per identifier, an ordered pipeline of steps; step N+1 never runs
    once step N has failed.

Example
-------
>>> def delete_address(ctx, ec2, allocation_id):
...     ec2.release_address(AllocationId=allocation_id)
>>> nuker = simple_batch_deleter(delete_address)
>>> results = nuker(ctx, ec2, scope, "eip", ["eipalloc-1", "eipalloc-2"])
>>> [r.ok for r in results]
[True, True]
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import (
    TYPE_CHECKING,
    Any,
    Callable,
    Iterable,
    Iterator,
    List,
    Optional,
    Sequence,
)

from cloudnuke.core.context import RunContext
from cloudnuke.core.exceptions import RunCancelledError, describe_client_error

if TYPE_CHECKING:
    from cloudnuke.core.resource import Scope

# Module logger
logger = logging.getLogger(__name__)

# Default number of concurrent deletions within one chunk
DEFAULT_MAX_CONCURRENT = 10

# Largest chunk any strategy will submit at once
MAX_BATCH_SIZE_LIMIT = 100

# (ctx, client, identifier) -> None, raises on failure
DeleteFunc = Callable[[RunContext, Any, str], None]

# (ctx, client, identifiers) -> None, raises on failure
BulkDeleteFunc = Callable[[RunContext, Any, List[str]], None]

Nuker = Callable[[RunContext, Any, "Scope", str, List[str]], "NukeResults"]


@dataclass
class NukeResult:
    """
    Outcome of nuking one identifier.

    Attributes
    ----------
    identifier : str
        The identifier that was submitted.
    error : Exception, optional
        Why the nuke failed; None on success.
    step : int, optional
        1-based pipeline step that failed, for multi-step nukers.
    """

    identifier: str
    error: Optional[BaseException] = None
    step: Optional[int] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def error_message(self) -> Optional[str]:
        if self.error is None:
            return None
        message = describe_client_error(self.error)
        if self.step is not None:
            return f"step {self.step}: {message}"
        return message


class NukeResults(list):
    """
    List of :class:`NukeResult` plus batch-level errors.

    ``errors`` holds failures that belong to the batch rather than to any
    single identifier, such as a wait-all timeout.
    """

    def __init__(
        self,
        results: Iterable[NukeResult] = (),
        errors: Iterable[BaseException] = (),
    ) -> None:
        super().__init__(results)
        self.errors: List[BaseException] = list(errors)

    @property
    def failed(self) -> List[NukeResult]:
        return [r for r in self if not r.ok]

    @property
    def succeeded(self) -> List[NukeResult]:
        return [r for r in self if r.ok]

    def extend_results(self, other: "NukeResults") -> None:
        self.extend(other)
        self.errors.extend(other.errors)


# =============================================================================
# Helpers
# =============================================================================


def chunked(items: Sequence[str], size: Optional[int]) -> Iterator[List[str]]:
    """Yield consecutive chunks of at most ``size`` items."""
    size = min(size or MAX_BATCH_SIZE_LIMIT, MAX_BATCH_SIZE_LIMIT)
    size = max(size, 1)
    for start in range(0, len(items), size):
        yield list(items[start:start + size])


def _log_start(count: int, resource_type: str, scope: Any) -> bool:
    if count == 0:
        logger.debug(f"No {resource_type} to nuke in {scope}")
        return False
    logger.info(f"Deleting {count} {resource_type} in {scope}")
    return True


def _log_result(resource_type: str, result: NukeResult) -> None:
    if result.ok:
        logger.debug(f"[OK] Deleted {resource_type}: {result.identifier}")
    else:
        logger.error(
            f"[Failed] {resource_type} {result.identifier}: {result.error_message}"
        )


def _attempt(
    ctx: RunContext,
    delete_fn: DeleteFunc,
    client: Any,
    identifier: str,
) -> NukeResult:
    """Run one delete, turning any exception into a failed result."""
    try:
        ctx.check()
        delete_fn(ctx, client, identifier)
    except Exception as e:
        return NukeResult(identifier, e)
    return NukeResult(identifier)


def _run_concurrently(
    ctx: RunContext,
    delete_fn: DeleteFunc,
    client: Any,
    identifiers: List[str],
    max_workers: int,
) -> List[NukeResult]:
    if len(identifiers) == 1:
        return [_attempt(ctx, delete_fn, client, identifiers[0])]
    workers = max(1, min(max_workers, len(identifiers)))
    with ThreadPoolExecutor(max_workers=workers) as executor:
        futures = [
            executor.submit(_attempt, ctx, delete_fn, client, identifier)
            for identifier in identifiers
        ]
        return [future.result() for future in futures]


# =============================================================================
# Strategies
# =============================================================================


def simple_batch_deleter(
    delete_fn: DeleteFunc,
    batch_size: Optional[int] = None,
    max_workers: int = DEFAULT_MAX_CONCURRENT,
) -> Nuker:
    """
    Delete identifiers concurrently, one chunk at a time.

    Parameters
    ----------
    delete_fn : callable
        ``(ctx, client, identifier)``; raises on failure.
    batch_size : int, optional
        Chunk size. At most this many deletes are in flight at once.
    max_workers : int
        Thread cap within a chunk.
    """

    def nuke(ctx, client, scope, resource_type, identifiers):
        results = NukeResults()
        if not _log_start(len(identifiers), resource_type, scope):
            return results
        for chunk in chunked(identifiers, batch_size):
            workers = min(max_workers, batch_size or max_workers)
            for result in _run_concurrently(ctx, delete_fn, client, chunk, workers):
                _log_result(resource_type, result)
                results.append(result)
        return results

    return nuke


def sequential_deleter(delete_fn: DeleteFunc) -> Nuker:
    """Delete identifiers one at a time, in input order."""

    def nuke(ctx, client, scope, resource_type, identifiers):
        results = NukeResults()
        if not _log_start(len(identifiers), resource_type, scope):
            return results
        for identifier in identifiers:
            result = _attempt(ctx, delete_fn, client, identifier)
            _log_result(resource_type, result)
            results.append(result)
        return results

    return nuke


def bulk_deleter(
    bulk_delete_fn: BulkDeleteFunc,
    batch_size: Optional[int] = None,
) -> Nuker:
    """
    Delete each chunk with a single bulk API call.

    Parameters
    ----------
    bulk_delete_fn : callable
        ``(ctx, client, identifiers)``; raises on failure.
    batch_size : int, optional
        Provider cap on identifiers per call.
    """

    def nuke(ctx, client, scope, resource_type, identifiers):
        results = NukeResults()
        if not _log_start(len(identifiers), resource_type, scope):
            return results
        for chunk in chunked(identifiers, batch_size):
            error: Optional[BaseException] = None
            try:
                ctx.check()
                bulk_delete_fn(ctx, client, chunk)
            except Exception as e:
                error = e
            for identifier in chunk:
                result = NukeResult(identifier, error)
                _log_result(resource_type, result)
                results.append(result)
        return results

    return nuke


def concurrent_delete_then_wait_all(
    delete_fn: DeleteFunc,
    wait_all_fn: BulkDeleteFunc,
    max_workers: int = DEFAULT_MAX_CONCURRENT,
) -> Nuker:
    """
    Issue all deletes concurrently, then wait once for all of them.

    Only identifiers whose delete succeeded are waited on. A failed wait
    (typically a :class:`WaitTimeoutError`) lands in ``results.errors`` and
    leaves the per-identifier results untouched.
    """

    def nuke(ctx, client, scope, resource_type, identifiers):
        results = NukeResults()
        if not _log_start(len(identifiers), resource_type, scope):
            return results
        for result in _run_concurrently(ctx, delete_fn, client, list(identifiers), max_workers):
            _log_result(resource_type, result)
            results.append(result)

        survivors = [r.identifier for r in results if r.ok]
        if survivors:
            try:
                wait_all_fn(ctx, client, survivors)
            except Exception as e:
                logger.error(f"[Failed] waiting for {resource_type} in {scope}: {e}")
                results.errors.append(e)
        return results

    return nuke


def delete_then_wait(
    delete_fn: DeleteFunc,
    wait_fn: DeleteFunc,
    max_workers: int = DEFAULT_MAX_CONCURRENT,
) -> Nuker:
    """
    Per identifier, delete and then wait until the resource is gone.

    Identifiers are processed concurrently; a wait failure fails only the
    identifier being waited on.
    """

    def delete_and_wait(ctx, client, identifier):
        delete_fn(ctx, client, identifier)
        wait_fn(ctx, client, identifier)

    def nuke(ctx, client, scope, resource_type, identifiers):
        results = NukeResults()
        if not _log_start(len(identifiers), resource_type, scope):
            return results
        for result in _run_concurrently(ctx, delete_and_wait, client, list(identifiers), max_workers):
            _log_result(resource_type, result)
            results.append(result)
        return results

    return nuke


def multi_step_deleter(*steps: DeleteFunc) -> Nuker:
    """
    Run an ordered pipeline of steps for each identifier.

    Identifiers are processed sequentially. The first failing step ends
    that identifier's pipeline; the failing step number is kept on the
    result.
    """
    if not steps:
        raise ValueError("multi_step_deleter needs at least one step")

    def nuke(ctx, client, scope, resource_type, identifiers):
        results = NukeResults()
        if not _log_start(len(identifiers), resource_type, scope):
            return results
        for identifier in identifiers:
            result = NukeResult(identifier)
            for number, step in enumerate(steps, start=1):
                try:
                    ctx.check()
                    step(ctx, client, identifier)
                except Exception as e:
                    result = NukeResult(identifier, e, step=number)
                    break
            _log_result(resource_type, result)
            results.append(result)
        return results

    return nuke


def cancelled_results(identifiers: Iterable[str], resource_type: str) -> NukeResults:
    """Results for identifiers that were never attempted because the run stopped."""
    return NukeResults(
        NukeResult(i, RunCancelledError(resource_id=i, resource_type=resource_type))
        for i in identifiers
    )
