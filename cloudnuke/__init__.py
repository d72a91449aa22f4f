"""
cloudnuke: Filter-Driven AWS Resource Destruction
=================================================

Discovers AWS resources matching user-supplied filters, across resource
types and regions, and deletes them while respecting each type's deletion
hazards: dependency ordering, asynchronous completion and permission
checks.

Modules
-------
core
    The orchestration engine (strategies, filters, first-seen tags,
    registry, run loop, reporting model, AWS client plumbing)
resources
    Concrete AWS resource type bindings and the default registry
reporters
    Output formatters (CLI, JSON)

Example
-------
>>> from cloudnuke.core import NukeRunner, RegionManager, config_from_dict
>>> from cloudnuke.resources import build_default_registry
>>>
>>> registry = build_default_registry().select(include=["ebs", "eip"])
>>> config = config_from_dict({"ebs": {"exclude": {"tags": {"keep": "true"}}}})
>>> runner = NukeRunner(registry, config, RegionManager(), dry_run=True)
>>> report = runner.run(["us-east-1"])
>>> report.counts()["dry-run"]
3

Notes
-----
Requires AWS credentials configured via:
- Environment variables (AWS_ACCESS_KEY_ID, AWS_SECRET_ACCESS_KEY)
- AWS credentials file (~/.aws/credentials)
- IAM role (when running on AWS infrastructure)

See Also
--------
boto3 : AWS SDK for Python
"""

__version__ = "0.1.0"
__author__ = "cloudnuke Team"
__license__ = "MIT"

# Public API
from cloudnuke.core.aws_client import AWSClient
from cloudnuke.core.engine import NukeRunner
from cloudnuke.core.exceptions import AWSClientError, CloudNukeError
from cloudnuke.core.region_manager import RegionManager

__all__ = [
    # Version info
    "__version__",
    "__author__",
    "__license__",
    # Core classes
    "AWSClient",
    "AWSClientError",
    "CloudNukeError",
    "NukeRunner",
    "RegionManager",
]
