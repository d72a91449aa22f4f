"""
Default Security Groups
=======================

Every VPC owns a security group named ``default`` that cannot be deleted
while the VPC exists. Nuking one means revoking all of its ingress and
egress rules, which leaves it harmless. Used by ``defaults-aws --sg-only``.
"""

from __future__ import annotations

import logging
from typing import Any, List

from botocore.exceptions import ClientError

from cloudnuke.core.context import RunContext
from cloudnuke.core.filters import ResourceValue
from cloudnuke.core.resource import Candidate, ResourceType
from cloudnuke.core.strategies import sequential_deleter
from cloudnuke.resources.common import tags_to_dict

# Module logger
logger = logging.getLogger(__name__)

DEFAULT_GROUP_NAME = "default"

# Rule already gone
PERMISSION_NOT_FOUND = "InvalidPermission.NotFound"


def _revoke(call: Any, group_id: str, rules: List[dict]) -> None:
    if not rules:
        return
    try:
        call(GroupId=group_id, IpPermissions=rules)
    except ClientError as e:
        if e.response.get("Error", {}).get("Code") != PERMISSION_NOT_FOUND:
            raise
        logger.debug(f"Rules of {group_id} already revoked")


def revoke_default_group_rules(ctx: RunContext, ec2: Any, group_id: str) -> None:
    """Revoke every ingress and egress rule of a default security group."""
    groups = ec2.describe_security_groups(GroupIds=[group_id])["SecurityGroups"]
    for group in groups:
        ctx.check()
        _revoke(ec2.revoke_security_group_ingress, group_id, group.get("IpPermissions", []))
        _revoke(ec2.revoke_security_group_egress, group_id, group.get("IpPermissionsEgress", []))
        logger.debug(f"Revoked all rules of default security group {group_id}")


class DefaultSecurityGroups(ResourceType):
    name = "default-security-group"
    nuker = sequential_deleter(revoke_default_group_rules)

    def init_client(self, aws_client):
        return aws_client.get_client("ec2")

    def list_candidates(self, ctx: RunContext) -> List[Candidate]:
        candidates = []
        paginator = self.client.get_paginator("describe_security_groups")
        pages = paginator.paginate(
            Filters=[{"Name": "group-name", "Values": [DEFAULT_GROUP_NAME]}]
        )
        for page in pages:
            ctx.check()
            for group in page.get("SecurityGroups", []):
                if group.get("GroupName") != DEFAULT_GROUP_NAME:
                    continue
                candidates.append(
                    Candidate(
                        identifier=group["GroupId"],
                        value=ResourceValue(
                            name=group["GroupName"], tags=tags_to_dict(group.get("Tags"))
                        ),
                        details={"vpc_id": group.get("VpcId")},
                    )
                )
        return candidates
