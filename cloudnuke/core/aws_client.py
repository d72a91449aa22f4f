"""
AWS Client Module
=================

Thread-safe wrapper around boto3 that owns one session per region and
caches service clients with retry and timeout configuration.

Classes
-------
AWSClient
    Session and client factory for one region.

Example
-------
>>> from cloudnuke.core.aws_client import AWSClient
>>>
>>> client = AWSClient(region="us-east-1", profile="sandbox")
>>> client.validate_credentials()
True
>>> ec2 = client.get_client("ec2")
>>> eu = client.with_region("eu-west-1")

Notes
-----
Sessions and clients are created lazily on first use. Resource types in
different regions each get their own ``AWSClient`` via :meth:`with_region`,
so no botocore client is shared across regions.

See Also
--------
boto3 : AWS SDK for Python
RegionManager : Builds one client per target region.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Dict, Optional

import boto3
from botocore.config import Config
from botocore.exceptions import (
    ClientError,
    NoCredentialsError,
    NoRegionError,
    ProfileNotFound,
)

from cloudnuke.core.exceptions import (
    AWSClientError,
    CredentialsError,
    RegionError,
    ServiceError,
)

# Module logger
logger = logging.getLogger(__name__)


class AWSClient:
    """
    Thread-safe AWS client wrapper with retry logic and credential management.

    Parameters
    ----------
    region : str, default="us-east-1"
        AWS region to connect to.
    profile : str, optional
        AWS profile name from ~/.aws/credentials.
    max_retries : int, default=3
        Maximum number of attempts for throttled or failed API calls.
    timeout : int, default=30
        Connect and read timeout in seconds.

    Raises
    ------
    CredentialsError
        If AWS credentials are not found or invalid.
    RegionError
        If the specified region is invalid.
    ServiceError
        If unable to create a service client.
    """

    def __init__(
        self,
        region: str = "us-east-1",
        profile: Optional[str] = None,
        max_retries: int = 3,
        timeout: int = 30,
    ) -> None:
        """Initialize AWS client with the specified configuration."""
        self.region = region
        self.profile = profile
        self.max_retries = max_retries
        self.timeout = timeout

        self._session: Optional[boto3.Session] = None
        self._clients: Dict[str, Any] = {}
        self._lock = threading.RLock()

        self._config = self._create_config()

        logger.debug(f"Initialized AWSClient for {region} (profile={profile})")

    def _create_config(self) -> Config:
        """
        Create boto3 configuration with retry and timeout settings.

        Notes
        -----
        Adaptive retry mode adds client-side rate limiting on top of the
        standard exponential backoff, which keeps large batches from
        tripping throttling.
        """
        return Config(
            retries={
                "max_attempts": self.max_retries,
                "mode": "adaptive",
            },
            connect_timeout=self.timeout,
            read_timeout=self.timeout,
        )

    @property
    def session(self) -> boto3.Session:
        """Get or create the boto3 session (lazy initialization)."""
        with self._lock:
            if self._session is None:
                self._session = self._create_session()
            return self._session

    def _create_session(self) -> boto3.Session:
        """
        Create a new boto3 session with the configured profile and region.

        Raises
        ------
        CredentialsError
            If the specified profile is not found.
        RegionError
            If the region is invalid or missing.
        AWSClientError
            For other session creation failures.
        """
        try:
            session_kwargs = {"region_name": self.region}
            if self.profile:
                session_kwargs["profile_name"] = self.profile

            session = boto3.Session(**session_kwargs)
            logger.debug(f"Created boto3 session for region {self.region}")
            return session

        except ProfileNotFound:
            raise CredentialsError(
                f"AWS profile '{self.profile}' not found",
                details={
                    "profile": self.profile,
                    "hint": "Check ~/.aws/credentials for available profiles",
                },
            )
        except NoRegionError:
            raise RegionError(
                f"Invalid or missing region: {self.region}",
                region=self.region,
                details={"hint": "Specify a valid AWS region like 'us-east-1'"},
            )
        except Exception as e:
            logger.exception("Failed to create AWS session")
            raise AWSClientError(
                f"Failed to create AWS session: {e}",
                region=self.region,
            )

    def get_client(self, service_name: str) -> Any:
        """
        Get or create a cached boto3 client for a service.

        Parameters
        ----------
        service_name : str
            Name of the AWS service (e.g., 'ec2', 's3').

        Returns
        -------
        botocore.client.BaseClient

        Raises
        ------
        CredentialsError
            If credentials are not found.
        ServiceError
            If unable to create the client.
        """
        with self._lock:
            if service_name in self._clients:
                return self._clients[service_name]

            try:
                client = self.session.client(service_name, config=self._config)
            except NoCredentialsError:
                raise CredentialsError(
                    "AWS credentials not found",
                    details={
                        "hint": (
                            "Configure credentials using 'aws configure' or set "
                            "AWS_ACCESS_KEY_ID and AWS_SECRET_ACCESS_KEY environment variables"
                        ),
                    },
                )
            except AWSClientError:
                raise
            except Exception as e:
                logger.exception(f"Failed to create {service_name} client")
                raise ServiceError(
                    f"Failed to create {service_name} client: {e}",
                    service=service_name,
                    region=self.region,
                )

            self._clients[service_name] = client
            logger.debug(f"Created {service_name} client for {self.region}")
            return client

    # =========================================================================
    # Credential and Account Operations
    # =========================================================================

    def validate_credentials(self) -> bool:
        """
        Validate AWS credentials by calling STS GetCallerIdentity.

        Returns
        -------
        bool
            True if credentials are valid.

        Raises
        ------
        CredentialsError
            If credentials are invalid, expired, or missing.
        """
        try:
            identity = self.get_client("sts").get_caller_identity()
            logger.info(f"Credentials validated for account {identity['Account']}")
            return True

        except ClientError as e:
            error_code = e.response.get("Error", {}).get("Code", "Unknown")
            if error_code in ("InvalidClientTokenId", "SignatureDoesNotMatch", "ExpiredToken"):
                raise CredentialsError(
                    "Invalid AWS credentials",
                    details={
                        "error_code": error_code,
                        "hint": "Check your access key and secret key",
                    },
                )
            raise CredentialsError(f"Failed to validate credentials: {e}")
        except AWSClientError:
            raise
        except Exception as e:
            logger.exception("Credential validation failed")
            raise CredentialsError(f"Failed to validate credentials: {e}")

    def get_account_id(self) -> str:
        """
        Get the AWS account ID for the current credentials.

        Raises
        ------
        AWSClientError
            If unable to retrieve the account ID.
        """
        try:
            return self.get_client("sts").get_caller_identity()["Account"]
        except AWSClientError:
            raise
        except Exception as e:
            logger.exception("Failed to get account ID")
            raise AWSClientError(f"Failed to get account ID: {e}")

    # =========================================================================
    # Factory Methods
    # =========================================================================

    def with_region(self, region: str) -> AWSClient:
        """
        Create a new AWSClient for a different region.

        The new client inherits profile, retries and timeout.
        """
        return AWSClient(
            region=region,
            profile=self.profile,
            max_retries=self.max_retries,
            timeout=self.timeout,
        )

    def __enter__(self) -> AWSClient:
        """Enter context manager."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Exit context manager and drop cached clients."""
        with self._lock:
            self._clients.clear()
            self._session = None

    def __repr__(self) -> str:
        """Return string representation of the client."""
        return (
            f"AWSClient(region='{self.region}', "
            f"profile={self.profile!r}, "
            f"max_retries={self.max_retries})"
        )
