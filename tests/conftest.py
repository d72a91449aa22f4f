"""
Pytest configuration and shared fixtures for testing.
"""

import boto3
import pytest
from moto import mock_aws

from cloudnuke.core.aws_client import AWSClient
from cloudnuke.core.config import RunSettings
from cloudnuke.core.context import RunContext
from cloudnuke.core.resource import Scope


@pytest.fixture
def aws_credentials(monkeypatch):
    """Mock AWS credentials for moto."""
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")
    monkeypatch.setenv("AWS_SECURITY_TOKEN", "testing")
    monkeypatch.setenv("AWS_SESSION_TOKEN", "testing")
    monkeypatch.setenv("AWS_DEFAULT_REGION", "us-east-1")


@pytest.fixture
def mock_aws_environment(aws_credentials):
    """Create a mocked AWS environment."""
    with mock_aws():
        yield


@pytest.fixture
def aws_client(mock_aws_environment):
    """Create an AWSClient instance for testing."""
    return AWSClient(region="us-east-1")


@pytest.fixture
def ec2_client(mock_aws_environment):
    """Create a boto3 EC2 client for setting up test resources."""
    return boto3.client("ec2", region_name="us-east-1")


@pytest.fixture
def s3_client(mock_aws_environment):
    """Create a boto3 S3 client for setting up test resources."""
    return boto3.client("s3", region_name="us-east-1")


@pytest.fixture
def iam_client(mock_aws_environment):
    """Create a boto3 IAM client for setting up test resources."""
    return boto3.client("iam", region_name="us-east-1")


@pytest.fixture
def cloudwatch_client(mock_aws_environment):
    """Create a boto3 CloudWatch client for setting up test resources."""
    return boto3.client("cloudwatch", region_name="us-east-1")


@pytest.fixture
def vpc(ec2_client):
    """Create a VPC for testing."""
    response = ec2_client.create_vpc(CidrBlock="10.0.0.0/16")
    return response["Vpc"]["VpcId"]


@pytest.fixture
def subnet(ec2_client, vpc):
    """Create a subnet for testing."""
    response = ec2_client.create_subnet(
        VpcId=vpc,
        CidrBlock="10.0.1.0/24",
        AvailabilityZone="us-east-1a",
    )
    return response["Subnet"]["SubnetId"]


@pytest.fixture
def run_ctx():
    """A fresh, unbounded run context."""
    return RunContext()


@pytest.fixture
def scope():
    return Scope("us-east-1")


@pytest.fixture
def bind_resource(aws_client):
    """Factory that builds and initialises a resource type against moto."""

    def bind(resource_cls, settings=None, region="us-east-1"):
        resource = resource_cls()
        scope = Scope.global_scope() if resource_cls.is_global else Scope(region)
        resource.init(aws_client.with_region(region), scope, settings or RunSettings())
        return resource

    return bind
