"""
Core Engine Components
======================

This module provides the resource orchestration engine:

- :class:`ResourceType` - Contract every nukeable resource type implements
- :class:`Registry` - Ordered set of resource types
- Deletion strategies - Reusable nuker patterns
- :class:`ResourceFilter` - Include/exclude predicate over name, time, tags
- First-seen tags - Stable ages for resources without a creation time
- :class:`NukeRunner` - The list, filter, verify, nuke loop
- Exception hierarchy for error handling

Classes
-------
AWSClient
    Thread-safe AWS client wrapper with retry logic and credential management.
RegionManager
    Region selection and parallel per-region execution.
RunContext
    Cancellation and deadline for one run.
NukeConfig
    Per-resource filter rules plus run settings.
ReportCollector
    Thread-safe store of per-identifier outcomes.

Exceptions
----------
CloudNukeError
    Base exception for all cloudnuke errors.
AWSClientError
    Base exception for AWS client errors.
ConfigError
    Raised for invalid configuration.
NukeError
    Base exception for deletion errors.

Example
-------
>>> from cloudnuke.core import RunContext, simple_batch_deleter
>>>
>>> nuker = simple_batch_deleter(delete_address)
>>> results = nuker(RunContext(), ec2, scope, "eip", ["eipalloc-1"])

See Also
--------
cloudnuke.resources : Concrete resource type bindings.
cloudnuke.reporters : Output formatters.
"""

from cloudnuke.core.exceptions import (
    AWSClientError,
    CloudNukeError,
    ConfigError,
    CredentialsError,
    DeleteError,
    FirstSeenTagError,
    InvalidDurationError,
    ListingError,
    NukeError,
    PermissionDeniedError,
    RegionError,
    RunCancelledError,
    ServiceError,
    StructuralError,
    WaitTimeoutError,
)
from cloudnuke.core.aws_client import AWSClient
from cloudnuke.core.config import NukeConfig, RunSettings, config_from_dict, load_config
from cloudnuke.core.context import RunContext
from cloudnuke.core.engine import NukeRunner
from cloudnuke.core.filters import FilterRule, ResourceFilter, ResourceValue
from cloudnuke.core.first_seen import FIRST_SEEN_TAG_KEY, get_or_create_first_seen
from cloudnuke.core.region_manager import RegionManager
from cloudnuke.core.registry import Registry
from cloudnuke.core.report import OutcomeStatus, ReportCollector
from cloudnuke.core.resource import Candidate, PermissionVerifier, ResourceType, Scope
from cloudnuke.core.strategies import (
    NukeResult,
    NukeResults,
    bulk_deleter,
    concurrent_delete_then_wait_all,
    delete_then_wait,
    multi_step_deleter,
    sequential_deleter,
    simple_batch_deleter,
)

__all__ = [
    # Client and regions
    "AWSClient",
    "RegionManager",
    # Engine
    "NukeRunner",
    "RunContext",
    "Registry",
    "ResourceType",
    "PermissionVerifier",
    "Candidate",
    "Scope",
    # Filters and config
    "FilterRule",
    "ResourceFilter",
    "ResourceValue",
    "NukeConfig",
    "RunSettings",
    "config_from_dict",
    "load_config",
    "FIRST_SEEN_TAG_KEY",
    "get_or_create_first_seen",
    # Strategies
    "NukeResult",
    "NukeResults",
    "simple_batch_deleter",
    "sequential_deleter",
    "bulk_deleter",
    "concurrent_delete_then_wait_all",
    "delete_then_wait",
    "multi_step_deleter",
    # Reporting
    "OutcomeStatus",
    "ReportCollector",
    # Exceptions - Base
    "CloudNukeError",
    # Exceptions - AWS Client
    "AWSClientError",
    "CredentialsError",
    "RegionError",
    "ServiceError",
    # Exceptions - Config and listing
    "ConfigError",
    "InvalidDurationError",
    "ListingError",
    "FirstSeenTagError",
    # Exceptions - Nuke
    "NukeError",
    "DeleteError",
    "StructuralError",
    "PermissionDeniedError",
    "RunCancelledError",
    "WaitTimeoutError",
]
