"""
VPC Teardown
============

A VPC cannot be deleted while anything still lives in it, so nuking one is
a fixed pipeline of steps, each clearing one kind of dependency::

    1. internet gateways      detach, then delete
    2. egress-only gateways   delete
    3. network interfaces     detach (forced), then delete
    4. VPC endpoints          delete, then wait until gone
    5. subnets                delete
    6. route tables           delete all but the main table
    7. network ACLs           delete all but the default ACL
    8. security groups        drop cross-references, delete all but default
    9. DHCP options           reset to ``default``
   10. the VPC itself

The first failing step stops the pipeline for that VPC and is recorded
against it; other VPCs in the batch carry on.

Describe calls inside the pipeline go through :func:`best_effort`. By
default a failed describe fails the step. With ``best_effort_describe``
set, it is logged as a warning and treated as "nothing found", and the
pipeline continues.

The ``vpc`` type never lists default VPCs; :class:`DefaultVPCs` lists only
them and runs the same teardown. It backs the ``defaults-aws`` command.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List

from cloudnuke.core.context import RunContext
from cloudnuke.core.exceptions import DeleteError, VPCEndpointDeleteTimeoutError
from cloudnuke.core.filters import ResourceValue
from cloudnuke.core.first_seen import ec2_tag_writer
from cloudnuke.core.resource import Candidate, ResourceType
from cloudnuke.core.strategies import multi_step_deleter
from cloudnuke.core.waiters import poll_until
from cloudnuke.resources.common import best_effort, first_seen_or_skip, tags_to_dict

# Module logger
logger = logging.getLogger(__name__)

ENDPOINT_WAIT_INTERVAL = 10.0
ENDPOINT_WAIT_MAX_ATTEMPTS = 30

ENI_WAIT_INTERVAL = 2.0
ENI_WAIT_MAX_ATTEMPTS = 30

# Endpoint states that no longer block VPC deletion
ENDPOINT_GONE_STATES = {"deleted", "rejected", "failed", "expired"}


@dataclass
class VPCClient:
    """
    Client handle for ``vpc``.

    Attributes:
        ec2: boto3 EC2 client
        best_effort_describe: Degrade failed describe calls to empty lists
    """

    ec2: Any
    best_effort_describe: bool = False

    def describe(self, description: str, fn: Callable[[], List[Dict[str, Any]]]) -> List[Dict[str, Any]]:
        return best_effort(self.best_effort_describe, description, fn)


def _vpc_filter(vpc_id: str, name: str = "vpc-id") -> List[Dict[str, Any]]:
    return [{"Name": name, "Values": [vpc_id]}]


# =============================================================================
# Teardown Steps
# =============================================================================


def delete_internet_gateways(ctx: RunContext, handle: VPCClient, vpc_id: str) -> None:
    ec2 = handle.ec2
    gateways = handle.describe(
        f"internet gateways of {vpc_id}",
        lambda: ec2.describe_internet_gateways(
            Filters=_vpc_filter(vpc_id, "attachment.vpc-id")
        )["InternetGateways"],
    )
    for gateway in gateways:
        gateway_id = gateway["InternetGatewayId"]
        ctx.check()
        ec2.detach_internet_gateway(InternetGatewayId=gateway_id, VpcId=vpc_id)
        ec2.delete_internet_gateway(InternetGatewayId=gateway_id)
        logger.debug(f"Deleted internet gateway {gateway_id} of {vpc_id}")


def delete_egress_only_gateways(ctx: RunContext, handle: VPCClient, vpc_id: str) -> None:
    ec2 = handle.ec2

    def attached() -> List[Dict[str, Any]]:
        gateways = []
        paginator = ec2.get_paginator("describe_egress_only_internet_gateways")
        for page in paginator.paginate():
            for gateway in page.get("EgressOnlyInternetGateways", []):
                if any(a.get("VpcId") == vpc_id for a in gateway.get("Attachments", [])):
                    gateways.append(gateway)
        return gateways

    for gateway in handle.describe(f"egress-only internet gateways of {vpc_id}", attached):
        gateway_id = gateway["EgressOnlyInternetGatewayId"]
        ctx.check()
        ec2.delete_egress_only_internet_gateway(EgressOnlyInternetGatewayId=gateway_id)
        logger.debug(f"Deleted egress-only internet gateway {gateway_id} of {vpc_id}")


def delete_network_interfaces(ctx: RunContext, handle: VPCClient, vpc_id: str) -> None:
    ec2 = handle.ec2
    interfaces = handle.describe(
        f"network interfaces of {vpc_id}",
        lambda: ec2.describe_network_interfaces(Filters=_vpc_filter(vpc_id))["NetworkInterfaces"],
    )
    for interface in interfaces:
        interface_id = interface["NetworkInterfaceId"]
        attachment = interface.get("Attachment") or {}
        ctx.check()

        if attachment.get("AttachmentId") and attachment.get("Status") != "detached":
            ec2.detach_network_interface(AttachmentId=attachment["AttachmentId"], Force=True)
            _wait_for_interface_available(ctx, ec2, interface_id)

        ec2.delete_network_interface(NetworkInterfaceId=interface_id)
        logger.debug(f"Deleted network interface {interface_id} of {vpc_id}")


def _wait_for_interface_available(ctx: RunContext, ec2: Any, interface_id: str) -> None:
    def available() -> bool:
        response = ec2.describe_network_interfaces(NetworkInterfaceIds=[interface_id])
        return all(i.get("Status") == "available" for i in response["NetworkInterfaces"])

    poll_until(
        ctx,
        available,
        lambda attempts, interval: DeleteError(
            f"Network interface {interface_id} still attached after {attempts} attempts",
            resource_id=interface_id,
            resource_type="vpc",
        ),
        interval=ENI_WAIT_INTERVAL,
        max_attempts=ENI_WAIT_MAX_ATTEMPTS,
        description=f"{interface_id} to detach",
    )


def delete_vpc_endpoints(ctx: RunContext, handle: VPCClient, vpc_id: str) -> None:
    ec2 = handle.ec2

    def live_endpoints() -> List[Dict[str, Any]]:
        endpoints = ec2.describe_vpc_endpoints(Filters=_vpc_filter(vpc_id))["VpcEndpoints"]
        return [e for e in endpoints if e.get("State", "").lower() not in ENDPOINT_GONE_STATES]

    endpoints = handle.describe(f"VPC endpoints of {vpc_id}", live_endpoints)
    if not endpoints:
        return

    endpoint_ids = [e["VpcEndpointId"] for e in endpoints]
    ctx.check()
    ec2.delete_vpc_endpoints(VpcEndpointIds=endpoint_ids)
    logger.debug(f"Deleting {len(endpoint_ids)} VPC endpoint(s) of {vpc_id}")

    poll_until(
        ctx,
        lambda: not live_endpoints(),
        lambda attempts, interval: VPCEndpointDeleteTimeoutError(
            "vpc", endpoint_ids, attempts, interval
        ),
        interval=ENDPOINT_WAIT_INTERVAL,
        max_attempts=ENDPOINT_WAIT_MAX_ATTEMPTS,
        description=f"VPC endpoints of {vpc_id} to be deleted",
    )


def delete_subnets(ctx: RunContext, handle: VPCClient, vpc_id: str) -> None:
    ec2 = handle.ec2
    subnets = handle.describe(
        f"subnets of {vpc_id}",
        lambda: ec2.describe_subnets(Filters=_vpc_filter(vpc_id))["Subnets"],
    )
    for subnet in subnets:
        ctx.check()
        ec2.delete_subnet(SubnetId=subnet["SubnetId"])
        logger.debug(f"Deleted subnet {subnet['SubnetId']} of {vpc_id}")


def delete_route_tables(ctx: RunContext, handle: VPCClient, vpc_id: str) -> None:
    ec2 = handle.ec2
    tables = handle.describe(
        f"route tables of {vpc_id}",
        lambda: ec2.describe_route_tables(Filters=_vpc_filter(vpc_id))["RouteTables"],
    )
    for table in tables:
        # The main route table goes with the VPC
        if any(a.get("Main") for a in table.get("Associations", [])):
            continue
        ctx.check()
        for association in table.get("Associations", []):
            if association.get("RouteTableAssociationId"):
                ec2.disassociate_route_table(
                    AssociationId=association["RouteTableAssociationId"]
                )
        ec2.delete_route_table(RouteTableId=table["RouteTableId"])
        logger.debug(f"Deleted route table {table['RouteTableId']} of {vpc_id}")


def delete_network_acls(ctx: RunContext, handle: VPCClient, vpc_id: str) -> None:
    ec2 = handle.ec2
    acls = handle.describe(
        f"network ACLs of {vpc_id}",
        lambda: ec2.describe_network_acls(Filters=_vpc_filter(vpc_id))["NetworkAcls"],
    )
    for acl in acls:
        if acl.get("IsDefault"):
            continue
        ctx.check()
        ec2.delete_network_acl(NetworkAclId=acl["NetworkAclId"])
        logger.debug(f"Deleted network ACL {acl['NetworkAclId']} of {vpc_id}")


def delete_security_groups(ctx: RunContext, handle: VPCClient, vpc_id: str) -> None:
    """
    Delete every non-default security group of a VPC.

    A group cannot be deleted while another group's rule references it, so
    every rule pointing at a doomed group is revoked first. The default
    group stays; it is removed along with the VPC.
    """
    ec2 = handle.ec2
    groups = handle.describe(
        f"security groups of {vpc_id}",
        lambda: ec2.describe_security_groups(Filters=_vpc_filter(vpc_id))["SecurityGroups"],
    )
    doomed = {g["GroupId"] for g in groups if g.get("GroupName") != "default"}

    for group in groups:
        ingress = _rules_referencing(group.get("IpPermissions", []), doomed)
        egress = _rules_referencing(group.get("IpPermissionsEgress", []), doomed)
        if ingress or egress:
            ctx.check()
        if ingress:
            ec2.revoke_security_group_ingress(GroupId=group["GroupId"], IpPermissions=ingress)
        if egress:
            ec2.revoke_security_group_egress(GroupId=group["GroupId"], IpPermissions=egress)

    for group_id in sorted(doomed):
        ctx.check()
        ec2.delete_security_group(GroupId=group_id)
        logger.debug(f"Deleted security group {group_id} of {vpc_id}")


def _rules_referencing(rules: List[Dict[str, Any]], group_ids: set) -> List[Dict[str, Any]]:
    return [
        rule for rule in rules
        if any(p.get("GroupId") in group_ids for p in rule.get("UserIdGroupPairs", []))
    ]


def reset_dhcp_options(ctx: RunContext, handle: VPCClient, vpc_id: str) -> None:
    ec2 = handle.ec2
    vpcs = handle.describe(
        f"DHCP options of {vpc_id}",
        lambda: ec2.describe_vpcs(VpcIds=[vpc_id])["Vpcs"],
    )
    for vpc in vpcs:
        if vpc.get("DhcpOptionsId", "default") == "default":
            continue
        ctx.check()
        ec2.associate_dhcp_options(DhcpOptionsId="default", VpcId=vpc_id)
        logger.debug(f"Reset DHCP options of {vpc_id}")


def delete_vpc(ctx: RunContext, handle: VPCClient, vpc_id: str) -> None:
    handle.ec2.delete_vpc(VpcId=vpc_id)


TEARDOWN_STEPS = (
    delete_internet_gateways,
    delete_egress_only_gateways,
    delete_network_interfaces,
    delete_vpc_endpoints,
    delete_subnets,
    delete_route_tables,
    delete_network_acls,
    delete_security_groups,
    reset_dhcp_options,
    delete_vpc,
)


# =============================================================================
# Resource Type
# =============================================================================


class VPCs(ResourceType):
    """Non-default VPCs, aged by first-seen tag."""

    name = "vpc"
    default_only = False
    batch_size = 10
    nuker = multi_step_deleter(*TEARDOWN_STEPS)

    def init_client(self, aws_client):
        return VPCClient(
            ec2=aws_client.get_client("ec2"),
            best_effort_describe=self.settings.best_effort_describe,
        )

    def list_candidates(self, ctx: RunContext) -> List[Candidate]:
        ec2 = self.client.ec2
        writer = ec2_tag_writer(ec2)
        candidates = []

        paginator = ec2.get_paginator("describe_vpcs")
        is_default = "true" if self.default_only else "false"
        pages = paginator.paginate(Filters=[{"Name": "is-default", "Values": [is_default]}])
        for page in pages:
            ctx.check()
            for vpc in page.get("Vpcs", []):
                if bool(vpc.get("IsDefault")) != self.default_only:
                    continue
                vpc_id = vpc["VpcId"]
                tags = tags_to_dict(vpc.get("Tags"))
                keep, first_seen = first_seen_or_skip(
                    vpc_id, tags, writer, self.settings.exclude_first_seen, self.name
                )
                if not keep:
                    continue
                candidates.append(
                    Candidate(
                        identifier=vpc_id,
                        value=ResourceValue(name=tags.get("Name"), time=first_seen, tags=tags),
                        details={"cidr_block": vpc.get("CidrBlock")},
                    )
                )

        return candidates


class DefaultVPCs(VPCs):
    """
    Default VPCs, torn down with the same pipeline as any other VPC.

    The default security group, main route table and default network ACL
    go away with the VPC itself.
    """

    name = "default-vpc"
    default_only = True
