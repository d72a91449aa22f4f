"""
Custom Exceptions for cloudnuke
===============================

This module defines the exception hierarchy used throughout cloudnuke
for consistent error handling and reporting.

Exception Hierarchy
-------------------
::

    CloudNukeError (base)
    ├── AWSClientError
    │   ├── CredentialsError
    │   ├── RegionError
    │   └── ServiceError
    ├── ListingError
    ├── FirstSeenTagError
    ├── ConfigError
    │   └── InvalidDurationError
    └── NukeError
        ├── DeleteError
        ├── StructuralError
        ├── PermissionDeniedError
        ├── RunCancelledError
        └── WaitTimeoutError
            ├── EBSVolumeDeleteTimeoutError
            ├── NatGatewayDeleteTimeoutError
            ├── ECSServiceDeleteTimeoutError
            ├── VPCEndpointDeleteTimeoutError
            └── S3BucketDeleteTimeoutError

Example
-------
>>> from cloudnuke.core.exceptions import NukeError, WaitTimeoutError
>>>
>>> try:
...     runner.nuke()
... except WaitTimeoutError as e:
...     print(f"Deletes were issued but never settled: {e}")
... except NukeError as e:
...     print(f"Nuke failed: {e}")
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from botocore.exceptions import ClientError


class CloudNukeError(Exception):
    """
    Base exception for all cloudnuke errors.

    Parameters
    ----------
    message : str
        Human-readable error message.
    details : dict, optional
        Additional context about the error.

    Attributes
    ----------
    message : str
        The error message.
    details : dict
        Additional error details.

    Example
    -------
    >>> raise CloudNukeError("Something went wrong", details={"code": 500})
    """

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} (Details: {self.details})"
        return self.message

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert exception to dictionary for serialization.

        Returns
        -------
        dict
            Dictionary representation of the error.
        """
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "details": self.details,
        }


# =============================================================================
# AWS Client Exceptions
# =============================================================================


class AWSClientError(CloudNukeError):
    """
    Base exception for AWS client-related errors.

    Raised when a session or service client cannot be constructed, or when
    credentials cannot be validated. The engine treats it as fatal for the
    resource type that needed the client, and only for that type.

    Parameters
    ----------
    message : str
        Human-readable error message.
    service : str, optional
        The AWS service that caused the error.
    region : str, optional
        The AWS region where the error occurred.
    details : dict, optional
        Additional context about the error.
    """

    def __init__(
        self,
        message: str,
        service: Optional[str] = None,
        region: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.service = service
        self.region = region
        full_details = details or {}
        if service:
            full_details["service"] = service
        if region:
            full_details["region"] = region
        super().__init__(message, full_details)


class CredentialsError(AWSClientError):
    """
    Raised when AWS credentials are invalid, missing, or expired.

    Example
    -------
    >>> raise CredentialsError(
    ...     "AWS credentials not found",
    ...     details={"hint": "Run 'aws configure' to set up credentials"}
    ... )
    """

    pass


class RegionError(AWSClientError):
    """
    Raised when a requested region is unknown or not enabled.

    Example
    -------
    >>> raise RegionError("Invalid region specified", region="us-invalid-1")
    """

    pass


class ServiceError(AWSClientError):
    """Raised when a client for a specific AWS service cannot be created."""

    pass


# =============================================================================
# Discovery Exceptions
# =============================================================================


class ListingError(CloudNukeError):
    """
    Raised when a resource lister fails.

    Listing is all-or-nothing: a paging error aborts the whole listing for
    the resource type in that scope.

    Parameters
    ----------
    message : str
        Human-readable error message.
    resource_type : str, optional
        The resource type being listed.
    region : str, optional
        The scope the listing ran in.
    details : dict, optional
        Additional context about the error.
    """

    def __init__(
        self,
        message: str,
        resource_type: Optional[str] = None,
        region: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.resource_type = resource_type
        self.region = region
        full_details = details or {}
        if resource_type:
            full_details["resource_type"] = resource_type
        if region:
            full_details["region"] = region
        super().__init__(message, full_details)


class FirstSeenTagError(CloudNukeError):
    """
    Raised when the first-seen marker tag cannot be written or parsed.

    The affected resource is skipped for the current run.
    """

    def __init__(
        self,
        message: str,
        resource_id: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.resource_id = resource_id
        full_details = details or {}
        if resource_id:
            full_details["resource_id"] = resource_id
        super().__init__(message, full_details)


# =============================================================================
# Configuration Exceptions
# =============================================================================


class ConfigError(CloudNukeError):
    """
    Raised for unreadable config files, bad regexes or bad time values.

    Example
    -------
    >>> raise ConfigError(
    ...     "Invalid regex in s3.exclude.names_regex",
    ...     details={"pattern": "prod-["}
    ... )
    """

    pass


class InvalidDurationError(ConfigError):
    """Raised when a duration string such as ``1h30m`` cannot be parsed."""

    pass


# =============================================================================
# Nuke Exceptions
# =============================================================================


class NukeError(CloudNukeError):
    """
    Base exception for errors attached to a single identifier.

    Parameters
    ----------
    message : str
        Human-readable error message.
    resource_id : str, optional
        The identifier the error belongs to.
    resource_type : str, optional
        The resource type being nuked.
    details : dict, optional
        Additional context about the error.
    """

    def __init__(
        self,
        message: str,
        resource_id: Optional[str] = None,
        resource_type: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.resource_id = resource_id
        self.resource_type = resource_type
        full_details = details or {}
        if resource_id:
            full_details["resource_id"] = resource_id
        if resource_type:
            full_details["resource_type"] = resource_type
        super().__init__(message, full_details)


class DeleteError(NukeError):
    """
    Raised when a provider delete call fails.

    Example
    -------
    >>> raise DeleteError(
    ...     "Failed to delete volume",
    ...     resource_id="vol-123456",
    ...     resource_type="ebs"
    ... )
    """

    pass


class StructuralError(NukeError):
    """
    Raised for malformed identifiers or missing cross-references.

    Structural errors are hard per-identifier failures and are never
    retried, e.g. an ECS service whose cluster is unknown.
    """

    pass


class PermissionDeniedError(NukeError):
    """Raised when a dry-run permission check rejects a delete."""

    pass


class RunCancelledError(NukeError):
    """Raised when the run was interrupted or its deadline has passed."""

    def __init__(
        self,
        message: str = "Run cancelled before the operation was issued",
        resource_id: Optional[str] = None,
        resource_type: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, resource_id, resource_type, details)


class WaitTimeoutError(NukeError):
    """
    Raised when a waiter exceeds its attempt ceiling.

    A timeout never invalidates deletes that were already issued. Each
    resource type that waits raises its own subclass so callers can tell
    them apart.

    Parameters
    ----------
    resource_type : str
        The resource type being waited on.
    identifiers : list of str
        The identifiers that had not settled.
    attempts : int
        Number of polls made.
    interval : float
        Seconds between polls.
    """

    def __init__(
        self,
        resource_type: str,
        identifiers: List[str],
        attempts: int,
        interval: float,
    ) -> None:
        self.identifiers = list(identifiers)
        self.attempts = attempts
        self.interval = interval
        super().__init__(
            f"Timed out waiting for {resource_type} deletion to complete "
            f"after {attempts} attempts",
            resource_type=resource_type,
            details={
                "identifiers": self.identifiers,
                "attempts": attempts,
                "interval_seconds": interval,
            },
        )


class EBSVolumeDeleteTimeoutError(WaitTimeoutError):
    """EBS volumes did not disappear in time."""


class NatGatewayDeleteTimeoutError(WaitTimeoutError):
    """A NAT gateway did not reach the deleted state in time."""


class ECSServiceDeleteTimeoutError(WaitTimeoutError):
    """An ECS service did not become inactive in time."""


class VPCEndpointDeleteTimeoutError(WaitTimeoutError):
    """VPC endpoints were still deleting when the waiter gave up."""


class S3BucketDeleteTimeoutError(WaitTimeoutError):
    """An S3 bucket was still reported after deletion."""


# =============================================================================
# Client Error Translation
# =============================================================================

DRY_RUN_SUCCESS_MESSAGE = "Request would have succeeded, but DryRun flag is set."

PERMISSION_ERROR_CODES = frozenset(
    {
        "UnauthorizedOperation",
        "AccessDenied",
        "AccessDeniedException",
        "UnauthorizedAccess",
    }
)

# Common error codes and user-friendly messages
ERROR_MESSAGES = {
    "UnauthorizedOperation": "Insufficient permission to perform this operation",
    "AccessDenied": "Insufficient permission to perform this operation",
    "AccessDeniedException": "Insufficient permission to perform this operation",
    "DependencyViolation": "Resource is still in use by another resource",
    "RequestLimitExceeded": "Request was throttled by AWS",
    "Throttling": "Request was throttled by AWS",
    "ThrottlingException": "Request was throttled by AWS",
}


def client_error_code(error: BaseException) -> Optional[str]:
    """Return the AWS error code of a ``ClientError``, or None."""
    if isinstance(error, ClientError):
        return error.response.get("Error", {}).get("Code")
    return None


def is_dry_run_success(error: BaseException) -> bool:
    """
    Check whether an error is the success signal of a DryRun request.

    Parameters
    ----------
    error : Exception
        The exception raised by a boto3 call made with ``DryRun=True``.

    Returns
    -------
    bool
        True when AWS reported that the real call would have succeeded.
    """
    return client_error_code(error) == "DryRunOperation"


def is_permission_error(error: BaseException) -> bool:
    """Check whether an error means the caller lacks IAM permission."""
    return client_error_code(error) in PERMISSION_ERROR_CODES


def describe_client_error(error: BaseException) -> str:
    """
    Render an exception as a short, user-facing message.

    Known AWS error codes are mapped to friendly text; anything else falls
    back to the AWS message or ``str(error)``.

    Parameters
    ----------
    error : Exception
        The exception to describe.

    Returns
    -------
    str
        Message suitable for reports.
    """
    if isinstance(error, ClientError):
        err = error.response.get("Error", {})
        code = err.get("Code", "Unknown")
        if code == "DryRunOperation":
            return DRY_RUN_SUCCESS_MESSAGE
        friendly = ERROR_MESSAGES.get(code)
        if friendly:
            return f"{friendly} ({code})"
        return f"{code}: {err.get('Message', str(error))}"
    if isinstance(error, CloudNukeError):
        return error.message
    return str(error)
