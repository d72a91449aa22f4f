"""
First-Seen Tag Manager
======================

Some AWS resources (Elastic IPs, ECS clusters, VPCs) expose no creation
time, which would make age-based filters useless for them. cloudnuke
stamps such resources with a ``cloud-nuke-first-seen`` tag the first time
it sees them and reads the tag back on later runs.

The tag is the only state cloudnuke persists between runs, and it lives on
the resource itself. Once written it is never updated.

Concurrent first observations may both write the tag; the last write wins
and both values are "now", so later runs converge on whichever survived.

Example
-------
>>> writer = ec2_tag_writer(ec2)
>>> seen = get_or_create_first_seen("eipalloc-123", tags, writer)
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Mapping, Optional

from cloudnuke.core.exceptions import FirstSeenTagError
from cloudnuke.core.filters import ensure_utc

# Module logger
logger = logging.getLogger(__name__)

FIRST_SEEN_TAG_KEY = "cloud-nuke-first-seen"

# RFC3339 at second precision, always UTC
FIRST_SEEN_FORMAT = "%Y-%m-%dT%H:%M:%SZ"

# Format written by older releases
LEGACY_FIRST_SEEN_FORMAT = "%Y-%m-%d %H:%M:%S"

# (identifier, key, value) -> None; raises on failure
TagWriter = Callable[[str, str, str], None]


def format_first_seen(value: datetime) -> str:
    """Format a timestamp the way it is stored in the tag."""
    return ensure_utc(value).strftime(FIRST_SEEN_FORMAT)


def parse_first_seen(value: str) -> datetime:
    """
    Parse a first-seen tag value.

    Accepts RFC3339 (``2024-01-15T10:30:00Z``, with or without fractional
    seconds or an explicit offset) and the legacy ``YYYY-MM-DD HH:MM:SS``
    format.

    Parameters
    ----------
    value : str
        Raw tag value.

    Returns
    -------
    datetime
        Timezone-aware UTC timestamp.

    Raises
    ------
    FirstSeenTagError
        If the value matches neither format.
    """
    raw = value.strip()
    iso = raw[:-1] + "+00:00" if raw.endswith(("Z", "z")) else raw
    try:
        return ensure_utc(datetime.fromisoformat(iso))
    except ValueError:
        pass

    try:
        return datetime.strptime(raw, LEGACY_FIRST_SEEN_FORMAT).replace(
            tzinfo=timezone.utc
        )
    except ValueError:
        raise FirstSeenTagError(
            f"Unparseable {FIRST_SEEN_TAG_KEY} tag value: {value!r}",
            details={"value": value},
        )


def get_or_create_first_seen(
    identifier: str,
    tags: Optional[Mapping[str, str]],
    tag_writer: TagWriter,
    exclude: bool = False,
    now: Optional[Callable[[], datetime]] = None,
) -> Optional[datetime]:
    """
    Return the stable first-seen time of a resource, tagging it if needed.

    Parameters
    ----------
    identifier : str
        Resource identifier passed to ``tag_writer``.
    tags : mapping, optional
        Tags currently on the resource.
    tag_writer : callable
        Writes ``(identifier, key, value)`` onto the resource.
    exclude : bool, default=False
        When True no tag is read or written and None is returned, leaving
        the resource unfilterable by time.
    now : callable, optional
        Clock returning an aware datetime, injectable for tests.

    Returns
    -------
    datetime or None
        The persisted first-seen time.

    Raises
    ------
    FirstSeenTagError
        If the existing tag cannot be parsed or the new tag cannot be
        written. Callers skip the resource for this run.
    """
    if exclude:
        return None

    existing = (tags or {}).get(FIRST_SEEN_TAG_KEY)
    if existing:
        return parse_first_seen(existing)

    current = (now or (lambda: datetime.now(timezone.utc)))()
    value = format_first_seen(current)
    try:
        tag_writer(identifier, FIRST_SEEN_TAG_KEY, value)
    except Exception as e:
        raise FirstSeenTagError(
            f"Failed to tag {identifier} with {FIRST_SEEN_TAG_KEY}: {e}",
            resource_id=identifier,
        ) from e

    logger.debug(f"Tagged {identifier} with {FIRST_SEEN_TAG_KEY}={value}")
    # Round-trip through the stored format so the first and later reads agree
    return parse_first_seen(value)


# =============================================================================
# Tag Writers
# =============================================================================


def ec2_tag_writer(ec2_client: Any) -> TagWriter:
    """Tag writer for EC2 resources (EIPs, VPCs, volumes)."""

    def write(identifier: str, key: str, value: str) -> None:
        ec2_client.create_tags(
            Resources=[identifier],
            Tags=[{"Key": key, "Value": value}],
        )

    return write


def ecs_tag_writer(ecs_client: Any) -> TagWriter:
    """Tag writer for ECS resources, addressed by ARN."""

    def write(identifier: str, key: str, value: str) -> None:
        ecs_client.tag_resource(
            resourceArn=identifier,
            tags=[{"key": key, "value": value}],
        )

    return write
