"""
Region Manager Module
=====================

Resolves which regions a run targets, hands out per-region AWS clients and
fans work out across regions in parallel.

This module handles:

- Dynamic discovery of enabled AWS regions
- Include/exclude region selection and validation
- The synthetic ``global`` scope for account-wide resources
- Parallel per-region execution with a thread pool

Example
-------
>>> manager = RegionManager(profile="sandbox", max_workers=8)
>>> regions = manager.resolve_regions(exclude=["ap-south-1"])
>>> results = manager.map_regions(inspect_region, regions)
>>> for region, outcome in results.items():
...     print(region, outcome.error or "ok")

Notes
-----
Each region runs in its own thread with an independent :class:`AWSClient`.
The ``global`` scope uses a client bound to the default region.

See Also
--------
AWSClient : Client created for each region.
NukeRunner : Main consumer of region fan-out.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from typing import Callable, Dict, Generic, Iterable, List, Optional, TypeVar

from cloudnuke.core.aws_client import AWSClient
from cloudnuke.core.exceptions import AWSClientError, RegionError
from cloudnuke.core.resource import GLOBAL_REGION

# Module logger
logger = logging.getLogger(__name__)

DEFAULT_REGION = "us-east-1"

T = TypeVar("T")


@dataclass
class RegionOutcome(Generic[T]):
    """
    Result of running a callable for one region.

    Attributes
    ----------
    region : str
    value : Any, optional
        Return value on success.
    error : Exception, optional
        Exception raised by the callable.
    """

    region: str
    value: Optional[T] = None
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class RegionManager:
    """
    Manages region selection and multi-region execution.

    Parameters
    ----------
    profile : str, optional
        AWS profile name from ~/.aws/credentials.
    max_workers : int, default=10
        Maximum number of regions processed in parallel.
    max_retries : int, default=3
        Maximum retries for failed API calls.
    timeout : int, default=30
        Request timeout in seconds.
    default_region : str, default="us-east-1"
        Region used for region discovery and for global-scope clients.

    Examples
    --------
    >>> manager = RegionManager(profile="sandbox")
    >>> manager.get_all_regions()[:2]
    ['af-south-1', 'ap-east-1']

    >>> client = manager.get_client_for_region("global")
    >>> client.region
    'us-east-1'
    """

    def __init__(
        self,
        profile: Optional[str] = None,
        max_workers: int = 10,
        max_retries: int = 3,
        timeout: int = 30,
        default_region: str = DEFAULT_REGION,
    ) -> None:
        """Initialize region manager with the specified configuration."""
        self.profile = profile
        self.max_workers = max_workers
        self.max_retries = max_retries
        self.timeout = timeout
        self.default_region = default_region

        self._base_client = AWSClient(
            region=default_region,
            profile=profile,
            max_retries=max_retries,
            timeout=timeout,
        )

        logger.debug(f"Initialized RegionManager with max_workers={max_workers}")

    @property
    def base_client(self) -> AWSClient:
        return self._base_client

    def get_all_regions(self) -> List[str]:
        """
        Fetch all regions enabled for the account.

        Returns
        -------
        list of str
            Sorted region names.

        Raises
        ------
        AWSClientError
            If unable to fetch the region list.
        """
        try:
            ec2 = self._base_client.get_client("ec2")
            response = ec2.describe_regions(AllRegions=False)
            regions = sorted(r["RegionName"] for r in response["Regions"])
            logger.info(f"Discovered {len(regions)} enabled AWS regions")
            return regions
        except AWSClientError:
            raise
        except Exception as e:
            logger.exception("Failed to fetch AWS regions")
            raise AWSClientError(f"Failed to fetch AWS regions: {e}")

    def resolve_regions(
        self,
        include: Optional[Iterable[str]] = None,
        exclude: Optional[Iterable[str]] = None,
    ) -> List[str]:
        """
        Work out the target regions for a run.

        Parameters
        ----------
        include : iterable of str, optional
            Regions to target. Defaults to every enabled region.
        exclude : iterable of str, optional
            Regions to leave out.

        Returns
        -------
        list of str
            Target regions, in the order given or sorted when defaulted.

        Raises
        ------
        RegionError
            If a named region is not enabled, or nothing is left to target.
        """
        enabled = self.get_all_regions()
        include = [r for r in (include or []) if r and r != GLOBAL_REGION]
        exclude = [r for r in (exclude or []) if r]

        unknown = [r for r in include + exclude if r not in enabled]
        if unknown:
            raise RegionError(
                f"Invalid or disabled region(s): {', '.join(unknown)}",
                details={"enabled_regions": enabled},
            )

        targets = [r for r in (include or enabled) if r not in exclude]
        if not targets:
            raise RegionError("No target regions left after exclusions")
        return targets

    def get_client_for_region(self, region: str) -> AWSClient:
        """
        Create an AWSClient for a region.

        The ``global`` pseudo-region maps to ``default_region``.
        """
        actual = self.default_region if region == GLOBAL_REGION else region
        return self._base_client.with_region(actual)

    def map_regions(
        self,
        fn: Callable[[str], T],
        regions: List[str],
        progress_callback: Optional[Callable[[str, str], None]] = None,
    ) -> Dict[str, RegionOutcome[T]]:
        """
        Run ``fn(region)`` for every region in parallel.

        Parameters
        ----------
        fn : callable
            Work to run for a region. Exceptions are captured per region.
        regions : list of str
            Regions to run over.
        progress_callback : callable, optional
            Called with ``(region, status)``; status is one of
            ``'running'``, ``'complete'``, ``'error'``.

        Returns
        -------
        dict
            Region name to :class:`RegionOutcome`, in ``regions`` order.
        """
        def run(region: str) -> RegionOutcome[T]:
            if progress_callback:
                progress_callback(region, "running")
            try:
                value = fn(region)
            except Exception as e:
                logger.error(f"Error processing {region}: {e}")
                if progress_callback:
                    progress_callback(region, "error")
                return RegionOutcome(region=region, error=e)
            if progress_callback:
                progress_callback(region, "complete")
            return RegionOutcome(region=region, value=value)

        outcomes: Dict[str, RegionOutcome[T]] = {}
        if not regions:
            return outcomes

        workers = max(1, min(self.max_workers, len(regions)))
        with ThreadPoolExecutor(max_workers=workers) as executor:
            futures = {executor.submit(run, region): region for region in regions}
            for future in as_completed(futures):
                outcome = future.result()
                outcomes[outcome.region] = outcome

        return {region: outcomes[region] for region in regions}

    def __repr__(self) -> str:
        """Return string representation."""
        return (
            f"RegionManager(profile={self.profile!r}, "
            f"max_workers={self.max_workers})"
        )
