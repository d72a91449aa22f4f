"""
Filter Engine
=============

Decides whether a listed candidate should be nuked, from its name,
creation (or first-seen) time and tags.

Rules
-----
Evaluation order, first match wins:

1. any exclude name regex matches the name          -> keep (not nuked)
2. any exclude tag regex matches a present tag      -> keep
3. exclude time window contains the time            -> keep
4. include rule has names/tags and none match       -> keep
5. include time window excludes the time            -> keep
6. otherwise                                        -> nuke

Exclusion therefore always wins over inclusion. A missing name never
matches a name regex and a missing time is never filtered by time. Tag
keys are compared exactly and tag regexes are case-sensitive.

Regexes are unanchored (``re.search``); write ``^prod-`` to anchor.

Example
-------
>>> f = ResourceFilter(exclude=FilterRule(names_regex=[re.compile("^prod-")]))
>>> f.should_include(ResourceValue(name="prod-db"))
False
>>> f.should_include(ResourceValue(name="dev-db"))
True
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, Mapping, Optional, Pattern

# Resources carrying this tag with value "true" are never nuked unless the
# exclude rule defines its own tag filters.
DEFAULT_EXCLUDE_TAG = "cloud-nuke-excluded"
DEFAULT_EXCLUDE_TAG_VALUE = "true"


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Return ``value`` as a timezone-aware UTC datetime (naive means UTC)."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


@dataclass(frozen=True)
class ResourceValue:
    """
    Filter input for one candidate.

    Attributes
    ----------
    name : str, optional
        Human name of the resource (bucket name, ``Name`` tag, ...).
    time : datetime, optional
        Native creation time or first-seen time.
    tags : mapping
        Tag key to value.
    """

    name: Optional[str] = None
    time: Optional[datetime] = None
    tags: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "time", ensure_utc(self.time))
        object.__setattr__(self, "tags", dict(self.tags or {}))


@dataclass
class FilterRule:
    """
    One side (include or exclude) of a resource filter.

    Attributes
    ----------
    names_regex : list of Pattern
        Name patterns; any match counts.
    tags : dict
        Tag key to value pattern; any match counts.
    time_after : datetime, optional
        Upper bound of interest: times strictly after it match.
    time_before : datetime, optional
        Lower bound of interest: times strictly before it match.
    """

    names_regex: List[Pattern] = field(default_factory=list)
    tags: Dict[str, Pattern] = field(default_factory=dict)
    time_after: Optional[datetime] = None
    time_before: Optional[datetime] = None

    def __post_init__(self) -> None:
        self.time_after = ensure_utc(self.time_after)
        self.time_before = ensure_utc(self.time_before)

    @property
    def has_match_rules(self) -> bool:
        return bool(self.names_regex or self.tags)

    @property
    def is_empty(self) -> bool:
        return not (
            self.has_match_rules
            or self.time_after is not None
            or self.time_before is not None
        )

    def matches_name(self, name: Optional[str]) -> bool:
        if name is None:
            return False
        return any(pattern.search(name) for pattern in self.names_regex)

    def matches_tags(self, tags: Mapping[str, str]) -> bool:
        for key, pattern in self.tags.items():
            value = tags.get(key)
            if value is not None and pattern.search(value):
                return True
        return False

    def is_after(self, value: Optional[datetime]) -> bool:
        return (
            value is not None
            and self.time_after is not None
            and value > self.time_after
        )

    def is_before(self, value: Optional[datetime]) -> bool:
        return (
            value is not None
            and self.time_before is not None
            and value < self.time_before
        )


@dataclass
class ResourceFilter:
    """
    Include/exclude rule pair for one resource type.

    Attributes
    ----------
    include : FilterRule
    exclude : FilterRule
    protect_excluded_tag : bool, default=True
        Honour the ``cloud-nuke-excluded=true`` tag when the exclude rule
        has no tag filters of its own.
    """

    include: FilterRule = field(default_factory=FilterRule)
    exclude: FilterRule = field(default_factory=FilterRule)
    protect_excluded_tag: bool = True

    def should_include(self, value: ResourceValue) -> bool:
        """
        Return True iff the candidate should be nuked.

        Pure function of the rule pair and ``value``.
        """
        if self.is_excluded(value):
            return False

        if self.include.has_match_rules and not (
            self.include.matches_name(value.name)
            or self.include.matches_tags(value.tags)
        ):
            return False

        if value.time is not None:
            if self.include.time_after is not None and not self.include.is_after(value.time):
                return False
            if self.include.time_before is not None and not self.include.is_before(value.time):
                return False

        return True

    def is_excluded(self, value: ResourceValue) -> bool:
        if self.exclude.matches_name(value.name):
            return True

        if self.exclude.tags:
            if self.exclude.matches_tags(value.tags):
                return True
        elif self.protect_excluded_tag:
            if value.tags.get(DEFAULT_EXCLUDE_TAG) == DEFAULT_EXCLUDE_TAG_VALUE:
                return True

        return self.exclude.is_after(value.time) or self.exclude.is_before(value.time)


def compile_patterns(patterns: List[str]) -> List[Pattern]:
    """Compile a list of regex strings, raising ``re.error`` on bad input."""
    return [re.compile(p) for p in patterns]
