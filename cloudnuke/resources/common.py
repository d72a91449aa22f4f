"""
Helpers shared by the resource bindings.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, TypeVar

from botocore.exceptions import ClientError

from cloudnuke.core.exceptions import FirstSeenTagError
from cloudnuke.core.first_seen import TagWriter, get_or_create_first_seen

# Module logger
logger = logging.getLogger(__name__)

T = TypeVar("T")


def tags_to_dict(
    tags: Optional[Iterable[Mapping[str, Any]]],
    key_field: str = "Key",
    value_field: str = "Value",
) -> Dict[str, str]:
    """Convert an AWS tag list into a plain dict."""
    return {
        str(tag[key_field]): str(tag.get(value_field, ""))
        for tag in (tags or [])
        if key_field in tag
    }


def best_effort(
    enabled: bool,
    description: str,
    fn: Callable[[], List[T]],
) -> List[T]:
    """
    Run a describe call, optionally degrading API failures to ``[]``.

    Parameters
    ----------
    enabled : bool
        When False, errors propagate unchanged.
    description : str
        What is being described, for the warning.
    fn : callable
        The describe call.
    """
    try:
        return fn()
    except ClientError as e:
        if not enabled:
            raise
        logger.warning(f"Best-effort describe: treating failed {description} as empty ({e})")
        return []


def first_seen_or_skip(
    identifier: str,
    tags: Mapping[str, str],
    writer: TagWriter,
    exclude: bool,
    resource_type: str,
) -> tuple:
    """
    Resolve the first-seen time of a listed resource.

    Returns
    -------
    tuple
        ``(keep, time)``. ``keep`` is False when the tag could not be
        written or parsed, in which case the resource is left out of this
        run.
    """
    try:
        return True, get_or_create_first_seen(identifier, tags, writer, exclude=exclude)
    except FirstSeenTagError as e:
        logger.warning(f"Skipping {resource_type} {identifier} for this run: {e.message}")
        return False, None
