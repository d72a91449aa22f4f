"""
AWS Resource Bindings
=====================

One :class:`~cloudnuke.core.resource.ResourceType` per supported kind of
AWS resource, and the registry that fixes the order they are processed in.

Ordering
--------
Dependents come before what they depend on: ECS services before their
clusters, NAT gateways before the Elastic IPs they hold, and everything
that can live inside a VPC (volumes, addresses, NAT gateways) before the
VPC teardown. Global types come last.

Example
-------
>>> registry = build_default_registry()
>>> registry.names[:2]
['ecsserv', 'ecscluster']
"""

from cloudnuke.core.registry import Registry
from cloudnuke.resources.cloudwatch_dashboard import CloudWatchDashboards
from cloudnuke.resources.default_security_group import DefaultSecurityGroups
from cloudnuke.resources.ebs import EBSVolumes
from cloudnuke.resources.ecs import ECSClusters, ECSServices
from cloudnuke.resources.eip import ElasticIPs
from cloudnuke.resources.iam_role import IAMRoles
from cloudnuke.resources.nat_gateway import NatGateways
from cloudnuke.resources.s3 import S3Buckets
from cloudnuke.resources.vpc import DefaultVPCs, VPCs

RESOURCE_TYPES = [
    ECSServices,
    ECSClusters,
    EBSVolumes,
    NatGateways,
    ElasticIPs,
    CloudWatchDashboards,
    VPCs,
    S3Buckets,
    IAMRoles,
]


def build_default_registry() -> Registry:
    """Return a registry of every supported resource type, in nuke order."""
    return Registry(RESOURCE_TYPES)


def build_defaults_registry(sg_only: bool = False) -> Registry:
    """
    Return the registry used by ``defaults-aws``.

    Default VPCs take their default security groups with them; with
    ``sg_only`` the VPCs stay and only the groups' rules are revoked.
    """
    if sg_only:
        return Registry([DefaultSecurityGroups])
    return Registry([DefaultVPCs])


__all__ = [
    "RESOURCE_TYPES",
    "build_default_registry",
    "build_defaults_registry",
    "CloudWatchDashboards",
    "DefaultSecurityGroups",
    "DefaultVPCs",
    "EBSVolumes",
    "ECSClusters",
    "ECSServices",
    "ElasticIPs",
    "IAMRoles",
    "NatGateways",
    "S3Buckets",
    "VPCs",
]
