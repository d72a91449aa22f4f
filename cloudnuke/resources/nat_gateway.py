"""
NAT gateways.

Each gateway is deleted and then waited on individually, since a gateway
holds its Elastic IP and ENI until it reaches ``deleted``.
"""

from __future__ import annotations

import logging
from typing import Any, List

from cloudnuke.core.context import RunContext
from cloudnuke.core.exceptions import NatGatewayDeleteTimeoutError
from cloudnuke.core.filters import ResourceValue
from cloudnuke.core.resource import Candidate, ResourceType
from cloudnuke.core.strategies import delete_then_wait
from cloudnuke.core.waiters import poll_until
from cloudnuke.resources.common import tags_to_dict

# Module logger
logger = logging.getLogger(__name__)

# Gateways in these states are already on their way out
SKIPPED_STATES = {"deleting", "deleted"}

WAIT_INTERVAL = 10.0
WAIT_MAX_ATTEMPTS = 60


def delete_nat_gateway(ctx: RunContext, ec2: Any, nat_gateway_id: str) -> None:
    ec2.delete_nat_gateway(NatGatewayId=nat_gateway_id)


def wait_for_nat_gateway_deleted(ctx: RunContext, ec2: Any, nat_gateway_id: str) -> None:
    def deleted() -> bool:
        response = ec2.describe_nat_gateways(NatGatewayIds=[nat_gateway_id])
        gateways = response.get("NatGateways", [])
        return all(g.get("State") == "deleted" for g in gateways)

    poll_until(
        ctx,
        deleted,
        lambda attempts, interval: NatGatewayDeleteTimeoutError(
            "nat-gateway", [nat_gateway_id], attempts, interval
        ),
        interval=WAIT_INTERVAL,
        max_attempts=WAIT_MAX_ATTEMPTS,
        description=f"deletion of {nat_gateway_id}",
    )


class NatGateways(ResourceType):
    """NAT gateways that are not already deleting."""

    name = "nat-gateway"
    nuker = delete_then_wait(delete_nat_gateway, wait_for_nat_gateway_deleted)

    def init_client(self, aws_client):
        return aws_client.get_client("ec2")

    def list_candidates(self, ctx: RunContext) -> List[Candidate]:
        candidates = []
        paginator = self.client.get_paginator("describe_nat_gateways")
        for page in paginator.paginate():
            ctx.check()
            for gateway in page.get("NatGateways", []):
                if gateway.get("State") in SKIPPED_STATES:
                    continue
                tags = tags_to_dict(gateway.get("Tags"))
                candidates.append(
                    Candidate(
                        identifier=gateway["NatGatewayId"],
                        value=ResourceValue(
                            name=tags.get("Name"),
                            time=gateway.get("CreateTime"),
                            tags=tags,
                        ),
                        details={
                            "vpc_id": gateway.get("VpcId"),
                            "subnet_id": gateway.get("SubnetId"),
                            "state": gateway.get("State"),
                        },
                    )
                )
        return candidates
