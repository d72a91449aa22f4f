"""
Tests for the ECS service and cluster resource types.
"""

from unittest.mock import MagicMock

import boto3
import pytest

from cloudnuke.core.exceptions import ECSServiceDeleteTimeoutError, StructuralError
from cloudnuke.core.first_seen import FIRST_SEEN_TAG_KEY
from cloudnuke.resources import ecs as ecs_module
from cloudnuke.resources.ecs import (
    ECSClusters,
    ECSServiceClient,
    ECSServices,
    ServiceRef,
    drain_and_delete_service,
    wait_for_service_inactive,
)

CLUSTER = "arn:aws:ecs:us-east-1:123456789012:cluster/apps"
SERVICE = "arn:aws:ecs:us-east-1:123456789012:service/apps/web"


@pytest.fixture
def no_wait(monkeypatch):
    """Make waiters poll without sleeping."""
    monkeypatch.setattr(ecs_module, "WAIT_INTERVAL", 0)
    monkeypatch.setattr(ecs_module, "WAIT_MAX_ATTEMPTS", 3)


@pytest.fixture
def ecs_client(mock_aws_environment):
    """Create a boto3 ECS client for setting up test resources."""
    return boto3.client("ecs", region_name="us-east-1")


def stub_ecs(services_by_cluster):
    """ECS client stub serving list_clusters/list_services/describe_services."""
    ecs = MagicMock()

    def paginator(name):
        pager = MagicMock()
        if name == "list_clusters":
            pager.paginate.return_value = [{"clusterArns": list(services_by_cluster)}]
        else:
            pager.paginate.side_effect = lambda cluster: [
                {"serviceArns": [s["serviceArn"] for s in services_by_cluster[cluster]]}
            ]
        return pager

    def describe_services(cluster, services, include=None):
        return {
            "services": [
                s for s in services_by_cluster[cluster] if s["serviceArn"] in services
            ]
        }

    ecs.get_paginator.side_effect = paginator
    ecs.describe_services.side_effect = describe_services
    return ecs


class TestECSServices:
    """Tests for the ecsserv resource type."""

    def test_list_records_cluster(self, run_ctx):
        """Test that the lister records each active service's cluster."""
        other_cluster = CLUSTER.replace("apps", "batch")
        ecs = stub_ecs({
            CLUSTER: [
                {"serviceArn": SERVICE, "serviceName": "web", "status": "ACTIVE",
                 "tags": [{"key": "team", "value": "qa"}]},
                {"serviceArn": SERVICE + "-old", "serviceName": "old", "status": "INACTIVE"},
            ],
            other_cluster: [
                {"serviceArn": "svc-daemon", "serviceName": "agent", "status": "ACTIVE",
                 "schedulingStrategy": "DAEMON"},
            ],
        })
        resource = ECSServices()
        resource.client = ECSServiceClient(ecs=ecs)

        candidates = resource.list_candidates(run_ctx)

        assert [c.identifier for c in candidates] == [SERVICE, "svc-daemon"]
        assert candidates[0].value.tags == {"team": "qa"}
        assert resource.client.lookup(SERVICE) == ServiceRef(CLUSTER, "REPLICA")
        assert resource.client.lookup("svc-daemon").cluster_arn == other_cluster

    def test_drain_then_delete(self, run_ctx):
        """Test that a replica service is scaled to zero before deletion."""
        handle = ECSServiceClient(ecs=MagicMock())
        handle.remember(SERVICE, ServiceRef(CLUSTER))

        drain_and_delete_service(run_ctx, handle, SERVICE)

        handle.ecs.update_service.assert_called_once_with(
            cluster=CLUSTER, service=SERVICE, desiredCount=0
        )
        handle.ecs.delete_service.assert_called_once_with(cluster=CLUSTER, service=SERVICE)

    def test_daemon_is_not_scaled(self, run_ctx):
        """Test that daemon services are deleted without a scale-down."""
        handle = ECSServiceClient(ecs=MagicMock())
        handle.remember(SERVICE, ServiceRef(CLUSTER, "DAEMON"))

        drain_and_delete_service(run_ctx, handle, SERVICE)

        handle.ecs.update_service.assert_not_called()
        handle.ecs.delete_service.assert_called_once()

    def test_unknown_cluster_is_structural_error(self, run_ctx):
        """Test that a service with no recorded cluster fails without API calls."""
        handle = ECSServiceClient(ecs=MagicMock())

        with pytest.raises(StructuralError, match="Cluster not found"):
            drain_and_delete_service(run_ctx, handle, SERVICE)
        handle.ecs.delete_service.assert_not_called()

    def test_wait_until_inactive(self, run_ctx, no_wait):
        """Test that the wait ends when the service reports INACTIVE."""
        handle = ECSServiceClient(ecs=MagicMock())
        handle.remember(SERVICE, ServiceRef(CLUSTER))
        handle.ecs.describe_services.side_effect = [
            {"services": [{"serviceArn": SERVICE, "status": "DRAINING"}]},
            {"services": [{"serviceArn": SERVICE, "status": "INACTIVE"}]},
        ]

        wait_for_service_inactive(run_ctx, handle, SERVICE)

        assert handle.ecs.describe_services.call_count == 2

    def test_wait_timeout(self, run_ctx, no_wait):
        """Test that a service stuck draining raises the ECS timeout."""
        handle = ECSServiceClient(ecs=MagicMock())
        handle.remember(SERVICE, ServiceRef(CLUSTER))
        handle.ecs.describe_services.return_value = {
            "services": [{"serviceArn": SERVICE, "status": "DRAINING"}]
        }

        with pytest.raises(ECSServiceDeleteTimeoutError):
            wait_for_service_inactive(run_ctx, handle, SERVICE)

    def test_nuke_after_listing(self, run_ctx, no_wait):
        """Test that the nuker finds the cluster the lister recorded."""
        ecs = stub_ecs({
            CLUSTER: [{"serviceArn": SERVICE, "serviceName": "web", "status": "ACTIVE"}],
        })
        resource = ECSServices()
        resource.client = ECSServiceClient(ecs=ecs)
        identifiers = [c.identifier for c in resource.list_candidates(run_ctx)]
        ecs.describe_services.side_effect = None
        ecs.describe_services.return_value = {"services": [{"status": "INACTIVE"}]}

        results = resource.nuke(run_ctx, identifiers + ["never-listed"])

        assert [r.ok for r in results] == [True, False]
        assert isinstance(results[1].error, StructuralError)
        ecs.delete_service.assert_called_once_with(cluster=CLUSTER, service=SERVICE)


class TestECSClusters:
    """Tests for the ecscluster resource type."""

    def test_list_tags_first_seen(self, ecs_client, bind_resource, run_ctx):
        """Test that active clusters are listed and stamped with first-seen."""
        arn = ecs_client.create_cluster(clusterName="apps")["cluster"]["clusterArn"]

        candidates = bind_resource(ECSClusters).list_candidates(run_ctx)

        assert [c.identifier for c in candidates] == [arn]
        assert candidates[0].value.name == "apps"
        tags = ecs_client.list_tags_for_resource(resourceArn=arn)["tags"]
        assert FIRST_SEEN_TAG_KEY in {t["key"] for t in tags}

    def test_nuke_clusters(self, ecs_client, bind_resource, run_ctx):
        """Test that clusters are deleted."""
        arns = [
            ecs_client.create_cluster(clusterName=name)["cluster"]["clusterArn"]
            for name in ("one", "two")
        ]

        results = bind_resource(ECSClusters).nuke(run_ctx, arns)

        assert all(r.ok for r in results)
        remaining = ecs_client.describe_clusters(clusters=arns)["clusters"]
        assert all(c["status"] == "INACTIVE" for c in remaining)
