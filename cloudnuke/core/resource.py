"""
Resource Descriptor Module
==========================

Defines the contract every nukeable resource type implements.

A :class:`ResourceType` binds together, for one type of AWS resource:

- ``name`` and ``batch_size`` / ``is_global`` policy
- ``init_client`` building the per-scope client handle
- ``list_candidates`` (the lister), paging to exhaustion
- ``nuker``, a strategy from :mod:`cloudnuke.core.strategies`
- optionally, a dry-run permission check via :class:`PermissionVerifier`

The nuker only sees the client handle, so any state it needs from the
lister (lookup tables, run settings) travels in that handle, built by
``init_client`` and filled by ``list_candidates``.

A fresh instance is created per (resource type, scope) for each run and is
owned by the engine for that run. ``client`` and ``scope`` are set exactly
once, by :meth:`ResourceType.init`.

Example
-------
>>> class Dashboards(ResourceType):
...     name = "cloudwatch-dashboard"
...     def init_client(self, aws_client):
...         return aws_client.get_client("cloudwatch")
...     def list_candidates(self, ctx):
...         ...
...     nuker = bulk_deleter(delete_dashboards)
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, ClassVar, Dict, List, Optional

from cloudnuke.core.config import NukeConfig, RunSettings
from cloudnuke.core.context import RunContext
from cloudnuke.core.exceptions import (
    PermissionDeniedError,
    StructuralError,
    is_dry_run_success,
    is_permission_error,
)
from cloudnuke.core.filters import ResourceFilter, ResourceValue
from cloudnuke.core.strategies import Nuker, NukeResult, NukeResults

if TYPE_CHECKING:
    from cloudnuke.core.aws_client import AWSClient

# Module logger
logger = logging.getLogger(__name__)

GLOBAL_REGION = "global"
DEFAULT_BATCH_SIZE = 10


@dataclass(frozen=True)
class Scope:
    """
    Partition a resource type is evaluated in.

    Attributes
    ----------
    region : str
        AWS region, or ``"global"`` for account-wide resources.
    is_global : bool
    """

    region: str
    is_global: bool = False

    @classmethod
    def global_scope(cls) -> "Scope":
        return cls(region=GLOBAL_REGION, is_global=True)

    def __str__(self) -> str:
        return self.region


@dataclass
class Candidate:
    """
    A listed resource, before filtering.

    Attributes
    ----------
    identifier : str
        Handle used for deletion (ID, name or ARN).
    value : ResourceValue
        Filter input built from the resource's name, time and tags.
    details : dict
        Extra display fields for inventory reports.
    """

    identifier: str
    value: ResourceValue = field(default_factory=ResourceValue)
    details: Dict[str, Any] = field(default_factory=dict)


class ResourceType(ABC):
    """
    Abstract base class for a nukeable resource type.

    Subclasses must set ``name`` and ``nuker`` and implement
    :meth:`init_client` and :meth:`list_candidates`.

    Attributes
    ----------
    name : str
        Unique resource type name, also the config key.
    batch_size : int
        Max identifiers handed to the nuker at once.
    is_global : bool
        Evaluated once per run in the global scope instead of per region.
    client : Any
        Handle returned by :meth:`init_client`.
    scope : Scope
    settings : RunSettings
    """

    name: ClassVar[str] = ""
    batch_size: ClassVar[int] = DEFAULT_BATCH_SIZE
    is_global: ClassVar[bool] = False
    nuker: ClassVar[Optional[Nuker]] = None

    def __init__(self) -> None:
        self.client: Any = None
        self.scope: Optional[Scope] = None
        self.settings: RunSettings = RunSettings()

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def init(
        self,
        aws_client: "AWSClient",
        scope: Scope,
        settings: Optional[RunSettings] = None,
    ) -> None:
        """
        Bind this instance to a scope and build its client.

        Raises
        ------
        RuntimeError
            If called twice.
        AWSClientError
            If the client cannot be built.
        """
        if self.scope is not None:
            raise RuntimeError(f"{self.name} is already initialised for {self.scope}")
        self.settings = settings or RunSettings()
        self.client = self.init_client(aws_client)
        self.scope = scope

    @abstractmethod
    def init_client(self, aws_client: "AWSClient") -> Any:
        """Build the per-scope client handle."""

    def get_filter(self, config: NukeConfig) -> ResourceFilter:
        """Return this type's filter rules (the config getter)."""
        return config.for_resource(self.name)

    # =========================================================================
    # Listing
    # =========================================================================

    @abstractmethod
    def list_candidates(self, ctx: RunContext) -> List[Candidate]:
        """
        List every resource of this type in the bound scope.

        Must page to exhaustion. Any paging error must propagate so the
        whole listing is discarded.
        """

    def list_included(self, ctx: RunContext, config: NukeConfig) -> List[Candidate]:
        """List candidates and keep only those the filter accepts."""
        rule = self.get_filter(config)
        return [c for c in self.list_candidates(ctx) if rule.should_include(c.value)]

    # =========================================================================
    # Nuking
    # =========================================================================

    def nuke(self, ctx: RunContext, identifiers: List[str]) -> NukeResults:
        """
        Hand ``identifiers`` to this type's nuker.

        Returns one result per identifier. A type without a nuker fails
        every identifier with a :class:`StructuralError`.
        """
        if not identifiers:
            return NukeResults()

        nuker = type(self).nuker
        if nuker is None:
            return NukeResults(
                NukeResult(
                    identifier,
                    StructuralError(
                        f"No nuker configured for {self.name}",
                        resource_id=identifier,
                        resource_type=self.name,
                    ),
                )
                for identifier in identifiers
            )

        results = nuker(ctx, self.client, self.scope, self.name, list(identifiers))
        return _ensure_complete(results, identifiers, self.name)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r}, scope={self.scope})"


class PermissionVerifier(ABC):
    """
    Optional capability: dry-run check of a delete before committing.

    Resource types that can verify permissions inherit from this mixin
    alongside :class:`ResourceType`.
    """

    @abstractmethod
    def verify_permission(self, ctx: RunContext, identifier: str) -> None:
        """
        Raise :class:`PermissionDeniedError` if ``identifier`` cannot be
        deleted with the current credentials.
        """


def check_dry_run(call: Any, identifier: str, resource_type: str, **kwargs: Any) -> None:
    """
    Run an EC2-style API call with ``DryRun=True`` and interpret the result.

    AWS signals "would have succeeded" with a ``DryRunOperation`` error, so
    that error means success. A permission error becomes
    :class:`PermissionDeniedError`; anything else propagates.
    """
    try:
        call(DryRun=True, **kwargs)
    except Exception as e:
        if is_dry_run_success(e):
            return
        if is_permission_error(e):
            raise PermissionDeniedError(
                f"Insufficient permission to delete {resource_type} {identifier}",
                resource_id=identifier,
                resource_type=resource_type,
            ) from e
        raise


def _ensure_complete(
    results: Optional[NukeResults],
    identifiers: List[str],
    resource_type: str,
) -> NukeResults:
    """Guarantee one result per submitted identifier."""
    results = results if results is not None else NukeResults()
    seen = {r.identifier for r in results}
    for identifier in identifiers:
        if identifier not in seen:
            results.append(
                NukeResult(
                    identifier,
                    StructuralError(
                        f"Nuker returned no result for {identifier}",
                        resource_id=identifier,
                        resource_type=resource_type,
                    ),
                )
            )
    return results
