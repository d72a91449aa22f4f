"""
EBS volumes.

Deletes are issued concurrently, then one wait covers the whole batch.
Only unattached volumes (``available``, ``creating`` or ``error``) are
listed; in-use volumes go away with their instances.
"""

from __future__ import annotations

import logging
from typing import Any, List

from cloudnuke.core.context import RunContext
from cloudnuke.core.exceptions import EBSVolumeDeleteTimeoutError
from cloudnuke.core.filters import ResourceValue
from cloudnuke.core.resource import (
    Candidate,
    PermissionVerifier,
    ResourceType,
    check_dry_run,
)
from cloudnuke.core.strategies import concurrent_delete_then_wait_all
from cloudnuke.core.waiters import poll_until
from cloudnuke.resources.common import tags_to_dict

# Module logger
logger = logging.getLogger(__name__)

LISTED_STATES = ["available", "creating", "error"]

WAIT_INTERVAL = 5.0
WAIT_MAX_ATTEMPTS = 60


def delete_volume(ctx: RunContext, ec2: Any, volume_id: str) -> None:
    ec2.delete_volume(VolumeId=volume_id)


def wait_for_volumes_deleted(ctx: RunContext, ec2: Any, volume_ids: List[str]) -> None:
    """Block until none of ``volume_ids`` is returned by DescribeVolumes."""

    def all_gone() -> bool:
        # A filter, unlike VolumeIds, does not fail on already-deleted IDs
        response = ec2.describe_volumes(
            Filters=[{"Name": "volume-id", "Values": list(volume_ids)}]
        )
        return not response.get("Volumes")

    poll_until(
        ctx,
        all_gone,
        lambda attempts, interval: EBSVolumeDeleteTimeoutError(
            "ebs", volume_ids, attempts, interval
        ),
        interval=WAIT_INTERVAL,
        max_attempts=WAIT_MAX_ATTEMPTS,
        description=f"deletion of {len(volume_ids)} EBS volume(s)",
    )


class EBSVolumes(ResourceType, PermissionVerifier):
    """Unattached EBS volumes."""

    name = "ebs"
    batch_size = 50
    nuker = concurrent_delete_then_wait_all(delete_volume, wait_for_volumes_deleted)

    def init_client(self, aws_client):
        return aws_client.get_client("ec2")

    def list_candidates(self, ctx: RunContext) -> List[Candidate]:
        candidates = []
        paginator = self.client.get_paginator("describe_volumes")
        pages = paginator.paginate(Filters=[{"Name": "status", "Values": LISTED_STATES}])
        for page in pages:
            ctx.check()
            for volume in page.get("Volumes", []):
                tags = tags_to_dict(volume.get("Tags"))
                candidates.append(
                    Candidate(
                        identifier=volume["VolumeId"],
                        value=ResourceValue(
                            name=tags.get("Name"),
                            time=volume.get("CreateTime"),
                            tags=tags,
                        ),
                        details={
                            "size_gb": volume.get("Size"),
                            "volume_type": volume.get("VolumeType"),
                            "state": volume.get("State"),
                        },
                    )
                )
        return candidates

    def verify_permission(self, ctx: RunContext, identifier: str) -> None:
        check_dry_run(self.client.delete_volume, identifier, self.name, VolumeId=identifier)
