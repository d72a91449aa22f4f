"""
Tests for the VPC teardown pipeline.
"""

from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError

from cloudnuke.core.config import RunSettings
from cloudnuke.core.exceptions import VPCEndpointDeleteTimeoutError
from cloudnuke.core.first_seen import FIRST_SEEN_TAG_KEY
from cloudnuke.core.resource import Scope
from cloudnuke.resources import vpc as vpc_module
from cloudnuke.resources.vpc import (
    TEARDOWN_STEPS,
    VPCClient,
    VPCs,
    delete_network_interfaces,
    delete_route_tables,
    delete_security_groups,
    delete_vpc_endpoints,
    reset_dhcp_options,
)


def access_denied(operation):
    return ClientError(
        {"Error": {"Code": "UnauthorizedOperation", "Message": "denied"}}, operation
    )


@pytest.fixture
def no_wait(monkeypatch):
    """Make waiters poll without sleeping."""
    monkeypatch.setattr(vpc_module, "ENDPOINT_WAIT_INTERVAL", 0)
    monkeypatch.setattr(vpc_module, "ENDPOINT_WAIT_MAX_ATTEMPTS", 3)
    monkeypatch.setattr(vpc_module, "ENI_WAIT_INTERVAL", 0)
    monkeypatch.setattr(vpc_module, "ENI_WAIT_MAX_ATTEMPTS", 3)


class TestListing:
    """Tests for VPC listing."""

    def test_default_vpc_is_never_listed(self, ec2_client, vpc, bind_resource, run_ctx):
        """Test that only the created, non-default VPC is listed."""
        candidates = bind_resource(VPCs).list_candidates(run_ctx)
        assert [c.identifier for c in candidates] == [vpc]

    def test_first_seen_tag_written(self, ec2_client, vpc, bind_resource, run_ctx):
        """Test that listing stamps the VPC with a first-seen tag."""
        candidate = bind_resource(VPCs).list_candidates(run_ctx)[0]

        tags = ec2_client.describe_tags(
            Filters=[{"Name": "resource-id", "Values": [vpc]}]
        )["Tags"]
        assert FIRST_SEEN_TAG_KEY in {t["Key"] for t in tags}
        assert candidate.value.time is not None

    def test_existing_tag_is_reused(self, ec2_client, vpc, bind_resource, run_ctx):
        """Test that a second listing reads back the same first-seen time."""
        first = bind_resource(VPCs).list_candidates(run_ctx)[0]
        second = bind_resource(VPCs).list_candidates(run_ctx)[0]
        assert first.value.time == second.value.time

    def test_name_tag(self, ec2_client, vpc, bind_resource, run_ctx):
        """Test that the Name tag becomes the filter name."""
        ec2_client.create_tags(Resources=[vpc], Tags=[{"Key": "Name", "Value": "sandbox"}])
        candidate = bind_resource(VPCs).list_candidates(run_ctx)[0]
        assert candidate.value.name == "sandbox"


class TestTeardownAgainstMoto:
    """End-to-end teardown of a populated VPC."""

    def test_teardown(self, ec2_client, vpc, subnet, bind_resource, run_ctx):
        """Test that a VPC with children is torn down completely."""
        igw = ec2_client.create_internet_gateway()["InternetGateway"]["InternetGatewayId"]
        ec2_client.attach_internet_gateway(InternetGatewayId=igw, VpcId=vpc)

        table = ec2_client.create_route_table(VpcId=vpc)["RouteTable"]["RouteTableId"]
        ec2_client.associate_route_table(RouteTableId=table, SubnetId=subnet)

        ec2_client.create_network_acl(VpcId=vpc)
        ec2_client.create_security_group(GroupName="app", Description="app", VpcId=vpc)

        results = bind_resource(VPCs).nuke(run_ctx, [vpc])

        assert results[0].ok, results[0].error_message
        assert ec2_client.describe_vpcs(
            Filters=[{"Name": "vpc-id", "Values": [vpc]}]
        )["Vpcs"] == []
        attached = ec2_client.describe_internet_gateways(
            Filters=[{"Name": "attachment.vpc-id", "Values": [vpc]}]
        )["InternetGateways"]
        assert attached == []

    def test_failure_stops_pipeline(self, ec2_client, vpc, bind_resource, run_ctx):
        """Test that a failing step leaves the VPC in place and names the step."""
        resource = bind_resource(VPCs)
        real_ec2 = resource.client.ec2
        failing = MagicMock(wraps=real_ec2)
        failing.describe_subnets.side_effect = access_denied("DescribeSubnets")
        resource.client = VPCClient(ec2=failing)

        results = resource.nuke(run_ctx, [vpc])

        assert not results[0].ok
        assert results[0].step == TEARDOWN_STEPS.index(vpc_module.delete_subnets) + 1
        failing.delete_vpc.assert_not_called()
        assert len(real_ec2.describe_vpcs(VpcIds=[vpc])["Vpcs"]) == 1


class TestBestEffortDescribe:
    """Tests for the best_effort_describe setting."""

    def test_failed_describe_fails_step_by_default(self, run_ctx):
        """Test that describe errors propagate without the setting."""
        ec2 = MagicMock()
        ec2.describe_network_interfaces.side_effect = access_denied("DescribeNetworkInterfaces")

        with pytest.raises(ClientError):
            delete_network_interfaces(run_ctx, VPCClient(ec2=ec2), "vpc-1")

    def test_failed_describe_is_empty_when_enabled(self, run_ctx, caplog):
        """Test that describe errors become an empty list and a warning."""
        ec2 = MagicMock()
        ec2.describe_network_interfaces.side_effect = access_denied("DescribeNetworkInterfaces")

        with caplog.at_level("WARNING"):
            delete_network_interfaces(
                run_ctx, VPCClient(ec2=ec2, best_effort_describe=True), "vpc-1"
            )

        ec2.delete_network_interface.assert_not_called()
        assert "Best-effort describe" in caplog.text

    def test_setting_reaches_client(self, aws_client):
        """Test that init_client carries the run setting into the handle."""
        resource = VPCs()
        resource.init(aws_client, Scope("us-east-1"), RunSettings(best_effort_describe=True))
        assert resource.client.best_effort_describe is True


class TestSteps:
    """Tests for individual teardown steps against a stubbed client."""

    def test_network_interfaces_detached_then_deleted(self, run_ctx, no_wait):
        """Test that an attached interface is force-detached before deletion."""
        ec2 = MagicMock()
        ec2.describe_network_interfaces.side_effect = [
            {"NetworkInterfaces": [{
                "NetworkInterfaceId": "eni-1",
                "Attachment": {"AttachmentId": "attach-1", "Status": "attached"},
            }]},
            {"NetworkInterfaces": [{"NetworkInterfaceId": "eni-1", "Status": "available"}]},
        ]

        delete_network_interfaces(run_ctx, VPCClient(ec2=ec2), "vpc-1")

        ec2.detach_network_interface.assert_called_once_with(AttachmentId="attach-1", Force=True)
        ec2.delete_network_interface.assert_called_once_with(NetworkInterfaceId="eni-1")

    def test_endpoints_deleted_and_awaited(self, run_ctx, no_wait):
        """Test that live endpoints are deleted and polled until gone."""
        ec2 = MagicMock()
        ec2.describe_vpc_endpoints.side_effect = [
            {"VpcEndpoints": [
                {"VpcEndpointId": "vpce-1", "State": "available"},
                {"VpcEndpointId": "vpce-2", "State": "deleted"},
            ]},
            {"VpcEndpoints": [{"VpcEndpointId": "vpce-1", "State": "deleting"}]},
            {"VpcEndpoints": []},
        ]

        delete_vpc_endpoints(run_ctx, VPCClient(ec2=ec2), "vpc-1")

        ec2.delete_vpc_endpoints.assert_called_once_with(VpcEndpointIds=["vpce-1"])
        assert ec2.describe_vpc_endpoints.call_count == 3

    def test_endpoint_wait_timeout(self, run_ctx, no_wait):
        """Test that endpoints that never go away raise the endpoint timeout."""
        ec2 = MagicMock()
        ec2.describe_vpc_endpoints.return_value = {
            "VpcEndpoints": [{"VpcEndpointId": "vpce-1", "State": "deleting"}]
        }

        with pytest.raises(VPCEndpointDeleteTimeoutError):
            delete_vpc_endpoints(run_ctx, VPCClient(ec2=ec2), "vpc-1")

    def test_no_endpoints(self, run_ctx):
        """Test that nothing is deleted when there are no endpoints."""
        ec2 = MagicMock()
        ec2.describe_vpc_endpoints.return_value = {"VpcEndpoints": []}
        delete_vpc_endpoints(run_ctx, VPCClient(ec2=ec2), "vpc-1")
        ec2.delete_vpc_endpoints.assert_not_called()

    def test_main_route_table_is_kept(self, run_ctx):
        """Test that the main route table is skipped and others disassociated."""
        ec2 = MagicMock()
        ec2.describe_route_tables.return_value = {"RouteTables": [
            {"RouteTableId": "rtb-main", "Associations": [{"Main": True}]},
            {"RouteTableId": "rtb-1", "Associations": [
                {"Main": False, "RouteTableAssociationId": "rtbassoc-1"},
            ]},
        ]}

        delete_route_tables(run_ctx, VPCClient(ec2=ec2), "vpc-1")

        ec2.disassociate_route_table.assert_called_once_with(AssociationId="rtbassoc-1")
        ec2.delete_route_table.assert_called_once_with(RouteTableId="rtb-1")

    def test_security_group_references_revoked(self, run_ctx):
        """Test that rules referencing doomed groups are revoked first."""
        reference = {
            "IpProtocol": "tcp", "FromPort": 443, "ToPort": 443,
            "UserIdGroupPairs": [{"GroupId": "sg-b"}],
        }
        cidr_rule = {"IpProtocol": "-1", "IpRanges": [{"CidrIp": "0.0.0.0/0"}]}
        ec2 = MagicMock()
        ec2.describe_security_groups.return_value = {"SecurityGroups": [
            {"GroupId": "sg-default", "GroupName": "default",
             "IpPermissions": [reference], "IpPermissionsEgress": [cidr_rule]},
            {"GroupId": "sg-a", "GroupName": "a",
             "IpPermissions": [reference, cidr_rule], "IpPermissionsEgress": []},
            {"GroupId": "sg-b", "GroupName": "b",
             "IpPermissions": [], "IpPermissionsEgress": [cidr_rule]},
        ]}

        delete_security_groups(run_ctx, VPCClient(ec2=ec2), "vpc-1")

        revoked = [c.kwargs["GroupId"] for c in ec2.revoke_security_group_ingress.call_args_list]
        assert revoked == ["sg-default", "sg-a"]
        ec2.revoke_security_group_ingress.assert_any_call(
            GroupId="sg-a", IpPermissions=[reference]
        )
        ec2.revoke_security_group_egress.assert_not_called()
        deleted = [c.kwargs["GroupId"] for c in ec2.delete_security_group.call_args_list]
        assert deleted == ["sg-a", "sg-b"]

    def test_custom_dhcp_options_reset(self, run_ctx):
        """Test that a custom DHCP option set is swapped for the default."""
        ec2 = MagicMock()
        ec2.describe_vpcs.return_value = {"Vpcs": [{"VpcId": "vpc-1", "DhcpOptionsId": "dopt-1"}]}

        reset_dhcp_options(run_ctx, VPCClient(ec2=ec2), "vpc-1")

        ec2.associate_dhcp_options.assert_called_once_with(DhcpOptionsId="default", VpcId="vpc-1")

    def test_default_dhcp_options_untouched(self, run_ctx):
        """Test that a VPC already on default options is left alone."""
        ec2 = MagicMock()
        ec2.describe_vpcs.return_value = {"Vpcs": [{"VpcId": "vpc-1", "DhcpOptionsId": "default"}]}
        reset_dhcp_options(run_ctx, VPCClient(ec2=ec2), "vpc-1")
        ec2.associate_dhcp_options.assert_not_called()
