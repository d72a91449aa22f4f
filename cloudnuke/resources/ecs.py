"""
ECS services and clusters.

Services must be gone before their cluster can be deleted, so ``ecsserv``
is registered ahead of ``ecscluster``.

DeleteService needs the cluster a service lives in, which the service ARN
alone does not reliably give. The service lister records each service's
cluster in the per-scope :class:`ECSServiceClient`, and the nuker reads it
from there.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Dict, List

from cloudnuke.core.context import RunContext
from cloudnuke.core.exceptions import ECSServiceDeleteTimeoutError, StructuralError
from cloudnuke.core.filters import ResourceValue
from cloudnuke.core.first_seen import ecs_tag_writer
from cloudnuke.core.resource import Candidate, ResourceType
from cloudnuke.core.strategies import chunked, delete_then_wait, simple_batch_deleter
from cloudnuke.core.waiters import poll_until
from cloudnuke.resources.common import first_seen_or_skip, tags_to_dict

# Module logger
logger = logging.getLogger(__name__)

# DescribeServices accepts at most 10 services per call
DESCRIBE_SERVICES_LIMIT = 10

# DescribeClusters accepts at most 100 clusters per call
DESCRIBE_CLUSTERS_LIMIT = 100

WAIT_INTERVAL = 5.0
WAIT_MAX_ATTEMPTS = 60


# =============================================================================
# Services
# =============================================================================


@dataclass
class ServiceRef:
    """Where a listed service lives and how it is scheduled."""

    cluster_arn: str
    scheduling_strategy: str = "REPLICA"


@dataclass
class ECSServiceClient:
    """
    Client handle for ``ecsserv``.

    Attributes:
        ecs: boto3 ECS client
        services: Service ARN to :class:`ServiceRef`, filled by the lister
    """

    ecs: Any
    services: Dict[str, ServiceRef] = field(default_factory=dict)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def remember(self, service_arn: str, ref: ServiceRef) -> None:
        with self._lock:
            self.services[service_arn] = ref

    def lookup(self, service_arn: str) -> ServiceRef:
        with self._lock:
            ref = self.services.get(service_arn)
        if ref is None:
            raise StructuralError(
                f"Cluster not found for service {service_arn}",
                resource_id=service_arn,
                resource_type=ECSServices.name,
            )
        return ref


def drain_and_delete_service(ctx: RunContext, handle: ECSServiceClient, service_arn: str) -> None:
    """Scale a replica service to zero, then delete it."""
    ref = handle.lookup(service_arn)
    if ref.scheduling_strategy != "DAEMON":
        handle.ecs.update_service(cluster=ref.cluster_arn, service=service_arn, desiredCount=0)
        ctx.check()
    handle.ecs.delete_service(cluster=ref.cluster_arn, service=service_arn)


def wait_for_service_inactive(ctx: RunContext, handle: ECSServiceClient, service_arn: str) -> None:
    ref = handle.lookup(service_arn)

    def inactive() -> bool:
        response = handle.ecs.describe_services(cluster=ref.cluster_arn, services=[service_arn])
        services = response.get("services", [])
        # A service that is no longer returned at all counts as gone
        return all(s.get("status") == "INACTIVE" for s in services)

    poll_until(
        ctx,
        inactive,
        lambda attempts, interval: ECSServiceDeleteTimeoutError(
            "ecsserv", [service_arn], attempts, interval
        ),
        interval=WAIT_INTERVAL,
        max_attempts=WAIT_MAX_ATTEMPTS,
        description=f"{service_arn} to become INACTIVE",
    )


class ECSServices(ResourceType):
    """Active ECS services in every cluster of the region."""

    name = "ecsserv"
    batch_size = 49
    nuker = delete_then_wait(drain_and_delete_service, wait_for_service_inactive)

    def init_client(self, aws_client):
        return ECSServiceClient(ecs=aws_client.get_client("ecs"))

    def list_candidates(self, ctx: RunContext) -> List[Candidate]:
        ecs = self.client.ecs
        candidates = []

        for cluster_arn in _list_cluster_arns(ctx, ecs):
            service_arns = []
            paginator = ecs.get_paginator("list_services")
            for page in paginator.paginate(cluster=cluster_arn):
                ctx.check()
                service_arns.extend(page.get("serviceArns", []))

            for chunk in chunked(service_arns, DESCRIBE_SERVICES_LIMIT):
                response = ecs.describe_services(
                    cluster=cluster_arn, services=chunk, include=["TAGS"]
                )
                for service in response.get("services", []):
                    if service.get("status") == "INACTIVE":
                        continue
                    arn = service["serviceArn"]
                    self.client.remember(
                        arn,
                        ServiceRef(
                            cluster_arn=cluster_arn,
                            scheduling_strategy=service.get("schedulingStrategy", "REPLICA"),
                        ),
                    )
                    candidates.append(
                        Candidate(
                            identifier=arn,
                            value=ResourceValue(
                                name=service.get("serviceName"),
                                time=service.get("createdAt"),
                                tags=tags_to_dict(service.get("tags"), "key", "value"),
                            ),
                            details={"cluster": cluster_arn},
                        )
                    )

        return candidates


# =============================================================================
# Clusters
# =============================================================================


def delete_cluster(ctx: RunContext, ecs: Any, cluster_arn: str) -> None:
    ecs.delete_cluster(cluster=cluster_arn)


class ECSClusters(ResourceType):
    """
    Active ECS clusters.

    Clusters expose no creation time, so they are aged by first-seen tag.
    """

    name = "ecscluster"
    batch_size = 49
    nuker = simple_batch_deleter(delete_cluster, batch_size=49)

    def init_client(self, aws_client):
        return aws_client.get_client("ecs")

    def list_candidates(self, ctx: RunContext) -> List[Candidate]:
        writer = ecs_tag_writer(self.client)
        candidates = []

        for chunk in chunked(_list_cluster_arns(ctx, self.client), DESCRIBE_CLUSTERS_LIMIT):
            response = self.client.describe_clusters(clusters=chunk, include=["TAGS"])
            for cluster in response.get("clusters", []):
                if cluster.get("status") != "ACTIVE":
                    continue
                arn = cluster["clusterArn"]
                tags = tags_to_dict(cluster.get("tags"), "key", "value")
                keep, first_seen = first_seen_or_skip(
                    arn, tags, writer, self.settings.exclude_first_seen, self.name
                )
                if not keep:
                    continue
                candidates.append(
                    Candidate(
                        identifier=arn,
                        value=ResourceValue(
                            name=cluster.get("clusterName"), time=first_seen, tags=tags
                        ),
                        details={
                            "running_tasks": cluster.get("runningTasksCount", 0),
                            "active_services": cluster.get("activeServicesCount", 0),
                        },
                    )
                )

        return candidates


def _list_cluster_arns(ctx: RunContext, ecs: Any) -> List[str]:
    arns = []
    paginator = ecs.get_paginator("list_clusters")
    for page in paginator.paginate():
        ctx.check()
        arns.extend(page.get("clusterArns", []))
    return arns
