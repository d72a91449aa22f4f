"""
S3 Buckets
==========

Buckets are listed once per run from the global scope, but each bucket
lives in a region and must be emptied and deleted through a client for
that region. The lister looks up every bucket's region and tags in
parallel and records the region in the :class:`S3Client` handle.

Nuking a bucket is a four-step pipeline:

1. delete every object version and delete marker, 1000 keys per call
2. delete the bucket policy
3. delete the lifecycle configuration
4. delete the bucket and wait until HeadBucket reports it missing
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from botocore.exceptions import ClientError

from cloudnuke.core.context import RunContext
from cloudnuke.core.exceptions import DeleteError, S3BucketDeleteTimeoutError, client_error_code
from cloudnuke.core.filters import ResourceValue
from cloudnuke.core.resource import Candidate, ResourceType
from cloudnuke.core.strategies import multi_step_deleter
from cloudnuke.core.waiters import poll_until
from cloudnuke.resources.common import tags_to_dict

if TYPE_CHECKING:
    from cloudnuke.core.aws_client import AWSClient

# Module logger
logger = logging.getLogger(__name__)

# DeleteObjects accepts at most 1000 keys per call
DELETE_OBJECTS_LIMIT = 1000

# Parallel bucket inspections during listing
INSPECT_WORKERS = 10

WAIT_INTERVAL = 2.0
WAIT_MAX_ATTEMPTS = 30

MISSING_BUCKET_CODES = {"404", "NoSuchBucket", "NotFound"}


def bucket_region(location: Optional[str]) -> str:
    """Normalise a GetBucketLocation constraint to a region name."""
    if not location:
        return "us-east-1"
    if location == "EU":
        return "eu-west-1"
    return location


@dataclass
class S3Client:
    """
    Client handle for ``s3``.

    Attributes:
        aws_client: Factory for region-bound clients
        s3: Client used for account-wide calls (ListBuckets)
        regions: Bucket name to region, filled by the lister
    """

    aws_client: "AWSClient"
    s3: Any
    regions: Dict[str, str] = field(default_factory=dict)
    _clients: Dict[str, Any] = field(default_factory=dict, repr=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def remember(self, bucket: str, region: str) -> None:
        with self._lock:
            self.regions[bucket] = region

    def for_region(self, region: Optional[str]) -> Any:
        if not region or region == self.aws_client.region:
            return self.s3
        with self._lock:
            if region not in self._clients:
                self._clients[region] = self.aws_client.with_region(region).get_client("s3")
            return self._clients[region]

    def for_bucket(self, bucket: str) -> Any:
        with self._lock:
            region = self.regions.get(bucket)
        return self.for_region(region)


# =============================================================================
# Teardown Steps
# =============================================================================


def empty_bucket(ctx: RunContext, handle: S3Client, bucket: str) -> None:
    """Delete every object version and delete marker in ``bucket``."""
    s3 = handle.for_bucket(bucket)
    paginator = s3.get_paginator("list_object_versions")
    pending: List[Dict[str, str]] = []
    deleted = 0

    for page in paginator.paginate(Bucket=bucket):
        ctx.check()
        for entry in page.get("Versions", []) + page.get("DeleteMarkers", []):
            pending.append({"Key": entry["Key"], "VersionId": entry["VersionId"]})
            if len(pending) == DELETE_OBJECTS_LIMIT:
                deleted += _delete_objects(ctx, s3, bucket, pending)
                pending = []

    if pending:
        deleted += _delete_objects(ctx, s3, bucket, pending)
    logger.debug(f"Emptied bucket {bucket} ({deleted} object version(s))")


def _delete_objects(ctx: RunContext, s3: Any, bucket: str, objects: List[Dict[str, str]]) -> int:
    ctx.check()
    response = s3.delete_objects(Bucket=bucket, Delete={"Objects": objects, "Quiet": True})
    errors = response.get("Errors", [])
    if errors:
        first = errors[0]
        raise DeleteError(
            f"Failed to delete {len(errors)} object(s) from {bucket}: "
            f"{first.get('Key')}: {first.get('Message')}",
            resource_id=bucket,
            resource_type="s3",
            details={"errors": errors},
        )
    return len(objects)


def delete_bucket_policy(ctx: RunContext, handle: S3Client, bucket: str) -> None:
    handle.for_bucket(bucket).delete_bucket_policy(Bucket=bucket)


def delete_bucket_lifecycle(ctx: RunContext, handle: S3Client, bucket: str) -> None:
    handle.for_bucket(bucket).delete_bucket_lifecycle(Bucket=bucket)


def delete_bucket(ctx: RunContext, handle: S3Client, bucket: str) -> None:
    s3 = handle.for_bucket(bucket)
    s3.delete_bucket(Bucket=bucket)

    def missing() -> bool:
        try:
            s3.head_bucket(Bucket=bucket)
        except ClientError as e:
            if client_error_code(e) in MISSING_BUCKET_CODES:
                return True
            raise
        return False

    poll_until(
        ctx,
        missing,
        lambda attempts, interval: S3BucketDeleteTimeoutError(
            "s3", [bucket], attempts, interval
        ),
        interval=WAIT_INTERVAL,
        max_attempts=WAIT_MAX_ATTEMPTS,
        description=f"bucket {bucket} to disappear",
    )


# =============================================================================
# Resource Type
# =============================================================================


class S3Buckets(ResourceType):
    """All buckets owned by the account."""

    name = "s3"
    is_global = True
    batch_size = 50
    nuker = multi_step_deleter(
        empty_bucket,
        delete_bucket_policy,
        delete_bucket_lifecycle,
        delete_bucket,
    )

    def init_client(self, aws_client):
        return S3Client(aws_client=aws_client, s3=aws_client.get_client("s3"))

    def list_candidates(self, ctx: RunContext) -> List[Candidate]:
        buckets = self.client.s3.list_buckets().get("Buckets", [])
        if not buckets:
            return []

        workers = max(1, min(INSPECT_WORKERS, len(buckets)))
        with ThreadPoolExecutor(max_workers=workers) as executor:
            futures = [executor.submit(self._inspect_bucket, ctx, b) for b in buckets]
            inspected = [future.result() for future in futures]

        return [candidate for candidate in inspected if candidate is not None]

    def _inspect_bucket(self, ctx: RunContext, bucket: Dict[str, Any]) -> Optional[Candidate]:
        name = bucket["Name"]
        ctx.check()
        try:
            location = self.client.s3.get_bucket_location(Bucket=name).get("LocationConstraint")
            region = bucket_region(location)
            self.client.remember(name, region)
            tags = self._bucket_tags(name)
        except ClientError as e:
            # Usually deleted or handed over between ListBuckets and now
            logger.warning(f"Skipping bucket {name}: unable to inspect ({e})")
            return None

        return Candidate(
            identifier=name,
            value=ResourceValue(name=name, time=bucket.get("CreationDate"), tags=tags),
            details={"region": region},
        )

    def _bucket_tags(self, bucket: str) -> Dict[str, str]:
        try:
            response = self.client.for_bucket(bucket).get_bucket_tagging(Bucket=bucket)
        except ClientError as e:
            if client_error_code(e) == "NoSuchTagSet":
                return {}
            raise
        return tags_to_dict(response.get("TagSet"))
