"""
Elastic IP addresses.

Addresses carry no creation time, so the first-seen tag stands in for it.
"""

from __future__ import annotations

import logging
from typing import Any, List

from cloudnuke.core.context import RunContext
from cloudnuke.core.first_seen import ec2_tag_writer
from cloudnuke.core.filters import ResourceValue
from cloudnuke.core.resource import (
    Candidate,
    PermissionVerifier,
    ResourceType,
    check_dry_run,
)
from cloudnuke.core.strategies import simple_batch_deleter
from cloudnuke.resources.common import first_seen_or_skip, tags_to_dict

# Module logger
logger = logging.getLogger(__name__)


def release_address(ctx: RunContext, ec2: Any, allocation_id: str) -> None:
    ec2.release_address(AllocationId=allocation_id)


class ElasticIPs(ResourceType, PermissionVerifier):
    """Elastic IPs allocated in a VPC, identified by allocation ID."""

    name = "eip"
    batch_size = 49
    nuker = simple_batch_deleter(release_address)

    def init_client(self, aws_client):
        return aws_client.get_client("ec2")

    def list_candidates(self, ctx: RunContext) -> List[Candidate]:
        candidates = []
        writer = ec2_tag_writer(self.client)

        # DescribeAddresses is not paginated
        response = self.client.describe_addresses()
        for address in response.get("Addresses", []):
            allocation_id = address.get("AllocationId")
            if not allocation_id:
                continue

            tags = tags_to_dict(address.get("Tags"))
            keep, first_seen = first_seen_or_skip(
                allocation_id, tags, writer, self.settings.exclude_first_seen, self.name
            )
            if not keep:
                continue

            candidates.append(
                Candidate(
                    identifier=allocation_id,
                    value=ResourceValue(name=tags.get("Name"), time=first_seen, tags=tags),
                    details={
                        "public_ip": address.get("PublicIp"),
                        "association_id": address.get("AssociationId"),
                    },
                )
            )

        logger.debug(f"Found {len(candidates)} {self.name} in {self.scope}")
        return candidates

    def verify_permission(self, ctx: RunContext, identifier: str) -> None:
        check_dry_run(
            self.client.release_address, identifier, self.name, AllocationId=identifier
        )
