"""
Nuke Engine
===========

Runs the per-type pipeline across every target scope::

    registry -> init client -> list -> filter -> verify permission -> nuke -> report

Discovery fans out across regions in parallel; inside a region, resource
types are listed one after another in registry order. The global scope is
inspected exactly once per run.

Nuking is strictly ordered: scopes one at a time, and inside a scope each
resource type finishes completely (including waits) before the next one
starts. Identifier-level parallelism is left to each type's strategy.

Failures stay local. A client or listing error is recorded against the
type and scope and the run moves on; a deletion error is recorded against
its identifier only.

Example
-------
>>> runner = NukeRunner(registry, config, RegionManager(), dry_run=True)
>>> report = runner.run(["us-east-1", "eu-west-1"])
>>> report.counts()
{'deleted': 0, 'failed': 0, 'skipped-permission': 1, 'skipped-filtered': 4, 'dry-run': 12}
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence, Type

from cloudnuke.core.config import NukeConfig
from cloudnuke.core.context import RunContext
from cloudnuke.core.exceptions import ListingError, RunCancelledError, describe_client_error
from cloudnuke.core.region_manager import DEFAULT_REGION, RegionManager
from cloudnuke.core.registry import Registry
from cloudnuke.core.report import ReportCollector
from cloudnuke.core.resource import (
    Candidate,
    PermissionVerifier,
    ResourceType,
    Scope,
)
from cloudnuke.core.strategies import NukeResult, NukeResults, cancelled_results

# Module logger
logger = logging.getLogger(__name__)


@dataclass
class TypeInventory:
    """Survivors of filtering and permission checks for one type in one scope."""

    resource: ResourceType
    candidates: List[Candidate] = field(default_factory=list)

    @property
    def identifiers(self) -> List[str]:
        return [c.identifier for c in self.candidates]


@dataclass
class ScopeInventory:
    """Everything found in one scope, in registry order."""

    scope: Scope
    entries: List[TypeInventory] = field(default_factory=list)

    @property
    def total(self) -> int:
        return sum(len(e.candidates) for e in self.entries)


class NukeRunner:
    """
    Orchestrates discovery and deletion for one run.

    Parameters
    ----------
    registry : Registry
        Resource types to process, already narrowed to the selection.
    config : NukeConfig
        Filter rules and run settings.
    region_manager : RegionManager
        Supplies per-region clients and parallel fan-out.
    collector : ReportCollector, optional
        Where outcomes are recorded. A new one is created if omitted.
    ctx : RunContext, optional
        Cancellation and deadline. A new unbounded one if omitted.
    dry_run : bool, default=False
        Stop after discovery and record survivors as ``dry-run``.
    progress_callback : callable, optional
        Called with ``(region, status)`` during discovery.
    """

    def __init__(
        self,
        registry: Registry,
        config: NukeConfig,
        region_manager: RegionManager,
        collector: Optional[ReportCollector] = None,
        ctx: Optional[RunContext] = None,
        dry_run: bool = False,
        progress_callback: Optional[Callable[[str, str], None]] = None,
    ) -> None:
        self.registry = registry
        self.config = config
        self.region_manager = region_manager
        self.collector = collector or ReportCollector()
        self.ctx = ctx or RunContext()
        self.dry_run = dry_run
        self.progress_callback = progress_callback

    # =========================================================================
    # Discovery
    # =========================================================================

    def discover(self, regions: Sequence[str]) -> List[ScopeInventory]:
        """
        List, filter and permission-check every selected type.

        Parameters
        ----------
        regions : sequence of str
            Target regions for regional types.

        Returns
        -------
        list of ScopeInventory
            Regional scopes in ``regions`` order, then the global scope.
        """
        inventories: List[ScopeInventory] = []
        regional = self.registry.regional()
        global_types = self.registry.global_types()

        if regional and regions:
            logger.info(
                f"Inspecting {len(regional)} regional resource type(s) "
                f"across {len(regions)} region(s)"
            )
            outcomes = self.region_manager.map_regions(
                lambda region: self._inspect_scope(Scope(region), regional),
                list(regions),
                progress_callback=self.progress_callback,
            )
            for region, outcome in outcomes.items():
                if outcome.ok:
                    inventories.append(outcome.value)
                else:
                    self.collector.record_general_error(
                        "*", region, "Failed to inspect region", outcome.error
                    )

        if global_types and not self.ctx.done:
            logger.info(f"Inspecting {len(global_types)} global resource type(s)")
            # Global clients are bound to the first target region
            client_region = regions[0] if regions else DEFAULT_REGION
            inventories.append(
                self._inspect_scope(Scope.global_scope(), global_types, client_region)
            )

        return inventories

    def _inspect_scope(
        self,
        scope: Scope,
        resource_types: List[Type[ResourceType]],
        client_region: Optional[str] = None,
    ) -> ScopeInventory:
        inventory = ScopeInventory(scope=scope)
        aws_client = self.region_manager.get_client_for_region(client_region or scope.region)

        for resource_type in resource_types:
            if self.ctx.done:
                logger.warning(f"Run stopped; skipping remaining inspection in {scope}")
                break

            resource = resource_type()
            try:
                resource.init(aws_client, scope, self.config.settings)
            except Exception as e:
                self.collector.record_general_error(
                    resource_type.name, scope.region, "Failed to initialise client", e
                )
                continue

            try:
                candidates = self._list(resource)
            except RunCancelledError:
                break
            except ListingError as e:
                self.collector.record_general_error(
                    resource_type.name, scope.region, "Failed to list resources", e
                )
                continue

            survivors = self._filter(resource, candidates)
            if isinstance(resource, PermissionVerifier):
                survivors = self._verify_permissions(resource, survivors)

            logger.debug(
                f"{resource.name} in {scope}: {len(candidates)} listed, "
                f"{len(survivors)} selected"
            )
            self.collector.record_found(resource.name, scope.region, survivors)
            inventory.entries.append(TypeInventory(resource=resource, candidates=survivors))

        return inventory

    def _list(self, resource: ResourceType) -> List[Candidate]:
        """List candidates, wrapping any lister failure in a ListingError."""
        try:
            return resource.list_candidates(self.ctx)
        except RunCancelledError:
            raise
        except Exception as e:
            raise ListingError(
                describe_client_error(e),
                resource_type=resource.name,
                region=str(resource.scope),
            ) from e

    def _filter(self, resource: ResourceType, candidates: List[Candidate]) -> List[Candidate]:
        rule = resource.get_filter(self.config)
        survivors = []
        for candidate in candidates:
            if rule.should_include(candidate.value):
                survivors.append(candidate)
            else:
                self.collector.record_filtered(resource.name, str(resource.scope), candidate)
        return survivors

    def _verify_permissions(
        self,
        resource: ResourceType,
        candidates: List[Candidate],
    ) -> List[Candidate]:
        allowed = []
        for index, candidate in enumerate(candidates):
            try:
                self.ctx.check()
                resource.verify_permission(self.ctx, candidate.identifier)
            except RunCancelledError:
                # Unchecked candidates still need an outcome
                unchecked = [c.identifier for c in candidates[index:]]
                names = {c.identifier: c.value.name for c in candidates[index:]}
                self._record(
                    resource.scope, resource, cancelled_results(unchecked, resource.name), names
                )
                break
            except Exception as e:
                logger.warning(
                    f"Skipping {resource.name} {candidate.identifier}: "
                    f"permission check failed ({e})"
                )
                self.collector.record_permission_skip(
                    resource.name, str(resource.scope), candidate, e
                )
                continue
            allowed.append(candidate)
        return allowed

    # =========================================================================
    # Nuking
    # =========================================================================

    def nuke(self, inventories: List[ScopeInventory]) -> ReportCollector:
        """
        Delete everything in ``inventories``, in order.

        In dry-run mode nothing is deleted and every survivor is recorded
        as ``dry-run``.
        """
        for inventory in inventories:
            for entry in inventory.entries:
                if self.dry_run:
                    for candidate in entry.candidates:
                        self.collector.record_dry_run(
                            entry.resource.name, inventory.scope.region, candidate
                        )
                    continue
                self._nuke_type(inventory.scope, entry)

        self.collector.complete()
        return self.collector

    def _nuke_type(self, scope: Scope, entry: TypeInventory) -> None:
        resource = entry.resource
        names = {c.identifier: c.value.name for c in entry.candidates}
        identifiers = entry.identifiers
        batch_size = max(1, resource.batch_size)

        for start in range(0, len(identifiers), batch_size):
            batch = identifiers[start:start + batch_size]
            if self.ctx.done:
                logger.warning(
                    f"Run stopped; {len(identifiers) - start} {resource.name} "
                    f"in {scope} not attempted"
                )
                self._record(scope, resource, cancelled_results(identifiers[start:], resource.name), names)
                return

            try:
                results = resource.nuke(self.ctx, batch)
            except Exception as e:
                results = NukeResults(NukeResult(identifier, e) for identifier in batch)
            self._record(scope, resource, results, names)

    def _record(
        self,
        scope: Scope,
        resource: ResourceType,
        results: NukeResults,
        names: Dict[str, Optional[str]],
    ) -> None:
        for result in results:
            self.collector.record_result(
                resource.name, scope.region, result, name=names.get(result.identifier)
            )
        for error in results.errors:
            self.collector.record_general_error(
                resource.name, scope.region, "Deletion did not complete", error
            )

    # =========================================================================
    # Entry Point
    # =========================================================================

    def run(self, regions: Sequence[str]) -> ReportCollector:
        """Discover then nuke; returns the populated collector."""
        inventories = self.discover(regions)
        return self.nuke(inventories)
