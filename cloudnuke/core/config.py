"""
Configuration Module
====================

Loads per-resource-type filter rules from YAML and merges them with
command-line overrides.

File Format
-----------
::

    settings:
      exclude_first_seen: false
      best_effort_describe: false
      protect_excluded_tag: true

    s3:
      include:
        names_regex: ["^test-"]
      exclude:
        names_regex: ["^prod-"]
        tags:
          team: "^finance$"
        time_after: "2024-06-01T00:00:00Z"

    ebs:
      exclude:
        time_before: "2023-01-01 00:00:00"

Top-level keys other than ``settings`` are resource type names as shown
by ``cloudnuke aws --list-resource-types``. Each may hold an ``include``
and/or ``exclude`` block with ``names_regex``, ``tags``, ``time_after`` and
``time_before``. Empty files, empty blocks and null values all mean "no
filter".

Example
-------
>>> config = load_config("nuke.yaml")
>>> config.add_exclude_after(datetime.now(timezone.utc) - parse_duration("24h"))
>>> rule = config.for_resource("s3")
"""

from __future__ import annotations

import copy
import logging
import re
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Union

import yaml

from cloudnuke.core.exceptions import ConfigError, InvalidDurationError
from cloudnuke.core.filters import FilterRule, ResourceFilter, ensure_utc

# Module logger
logger = logging.getLogger(__name__)

SETTINGS_KEY = "settings"
RULE_KEYS = frozenset({"names_regex", "tags", "time_after", "time_before"})

_DURATION_UNITS = {
    "ns": timedelta(microseconds=0.001),
    "us": timedelta(microseconds=1),
    "µs": timedelta(microseconds=1),
    "ms": timedelta(milliseconds=1),
    "s": timedelta(seconds=1),
    "m": timedelta(minutes=1),
    "h": timedelta(hours=1),
    "d": timedelta(days=1),
}
_DURATION_PART = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|ms|s|m|h|d)")


def parse_duration(value: str) -> timedelta:
    """
    Parse a Go-style duration string.

    Supports ``ns``, ``us``, ``ms``, ``s``, ``m``, ``h`` plus ``d`` for days,
    combined as in ``1h30m`` or ``1.5h``. A bare ``0`` is zero.

    Parameters
    ----------
    value : str
        Duration text.

    Returns
    -------
    timedelta

    Raises
    ------
    InvalidDurationError
        If the text is not a valid, non-negative duration.

    Examples
    --------
    >>> parse_duration("90s")
    datetime.timedelta(seconds=90)
    >>> parse_duration("1h30m")
    datetime.timedelta(seconds=5400)
    """
    text = (value or "").strip()
    if text == "0":
        return timedelta(0)
    if not text:
        raise InvalidDurationError("Empty duration", details={"value": value})

    total = timedelta(0)
    position = 0
    for match in _DURATION_PART.finditer(text):
        if match.start() != position:
            break
        total += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
        position = match.end()

    if position != len(text) or position == 0:
        raise InvalidDurationError(
            f"Invalid duration {value!r} (expected e.g. 90s, 10m, 8h, 1h30m, 2d)",
            details={"value": value},
        )
    return total


def parse_time(value: Union[str, datetime, date, None], where: str = "") -> Optional[datetime]:
    """
    Parse a config time value into an aware UTC datetime.

    Accepts RFC3339 strings, ``YYYY-MM-DD HH:MM:SS`` strings, and the
    ``datetime``/``date`` objects YAML produces for unquoted timestamps.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return ensure_utc(value)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    text = str(value).strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        return ensure_utc(datetime.fromisoformat(text))
    except ValueError:
        raise ConfigError(
            f"Invalid time value {value!r} in {where or 'config'}",
            details={"value": str(value)},
        )


@dataclass
class RunSettings:
    """
    Run-wide switches that are not per-resource filters.

    Attributes
    ----------
    exclude_first_seen : bool
        Never read or write the first-seen tag.
    best_effort_describe : bool
        During compound teardowns, treat failed describe calls as "nothing
        found" (logged as a warning) instead of failing the identifier.
    protect_excluded_tag : bool
        Honour the ``cloud-nuke-excluded=true`` tag.
    """

    exclude_first_seen: bool = False
    best_effort_describe: bool = False
    protect_excluded_tag: bool = True


@dataclass
class NukeConfig:
    """
    Filter rules for every resource type plus run settings.

    Attributes
    ----------
    resources : dict
        Resource type name to configured :class:`ResourceFilter`.
    settings : RunSettings
    exclude_after : datetime, optional
        Run-wide override for ``exclude.time_after`` (``--older-than``).
    include_after : datetime, optional
        Run-wide override for ``include.time_after`` (``--newer-than``).
    """

    resources: Dict[str, ResourceFilter] = field(default_factory=dict)
    settings: RunSettings = field(default_factory=RunSettings)
    exclude_after: Optional[datetime] = None
    include_after: Optional[datetime] = None

    def add_exclude_after(self, value: datetime) -> None:
        self.exclude_after = ensure_utc(value)

    def add_include_after(self, value: datetime) -> None:
        self.include_after = ensure_utc(value)

    def for_resource(self, name: str) -> ResourceFilter:
        """
        Return the effective filter for one resource type.

        The stored rule is copied, so callers may not mutate shared
        state. Run-wide time overrides replace per-type values.
        """
        configured = self.resources.get(name)
        rule = copy.deepcopy(configured) if configured else ResourceFilter()
        if self.exclude_after is not None:
            rule.exclude.time_after = self.exclude_after
        if self.include_after is not None:
            rule.include.time_after = self.include_after
        rule.protect_excluded_tag = self.settings.protect_excluded_tag
        return rule

    def unknown_resources(self, known: Iterable[str]) -> List[str]:
        """Configured resource keys that no registered type uses."""
        known_set = set(known)
        return sorted(name for name in self.resources if name not in known_set)


# =============================================================================
# Loading
# =============================================================================


def _compile(pattern: Any, where: str) -> re.Pattern:
    try:
        return re.compile(str(pattern))
    except re.error as e:
        raise ConfigError(
            f"Invalid regex {pattern!r} in {where}: {e}",
            details={"pattern": str(pattern)},
        )


def _parse_rule(data: Any, where: str) -> FilterRule:
    if data is None:
        return FilterRule()
    if not isinstance(data, dict):
        raise ConfigError(f"{where} must be a mapping")

    unknown = set(data) - RULE_KEYS
    if unknown:
        raise ConfigError(
            f"Unknown keys in {where}: {', '.join(sorted(unknown))}",
            details={"allowed": sorted(RULE_KEYS)},
        )

    names = data.get("names_regex") or []
    if isinstance(names, str):
        names = [names]
    tags = data.get("tags") or {}
    if not isinstance(tags, dict):
        raise ConfigError(f"{where}.tags must be a mapping of tag key to regex")

    return FilterRule(
        names_regex=[_compile(p, f"{where}.names_regex") for p in names],
        tags={
            str(key): _compile(pattern, f"{where}.tags.{key}")
            for key, pattern in tags.items()
        },
        time_after=parse_time(data.get("time_after"), f"{where}.time_after"),
        time_before=parse_time(data.get("time_before"), f"{where}.time_before"),
    )


def _parse_settings(data: Any) -> RunSettings:
    if data is None:
        return RunSettings()
    if not isinstance(data, dict):
        raise ConfigError(f"{SETTINGS_KEY} must be a mapping")
    defaults = RunSettings()
    return RunSettings(
        exclude_first_seen=bool(data.get("exclude_first_seen", defaults.exclude_first_seen)),
        best_effort_describe=bool(data.get("best_effort_describe", defaults.best_effort_describe)),
        protect_excluded_tag=bool(data.get("protect_excluded_tag", defaults.protect_excluded_tag)),
    )


def config_from_dict(data: Optional[Dict[str, Any]]) -> NukeConfig:
    """
    Build a :class:`NukeConfig` from already-parsed YAML data.

    Raises
    ------
    ConfigError
        On any structural, regex or time error.
    """
    if data is None:
        return NukeConfig()
    if not isinstance(data, dict):
        raise ConfigError("Config root must be a mapping of resource type to rules")

    config = NukeConfig(settings=_parse_settings(data.get(SETTINGS_KEY)))
    for name, block in data.items():
        if name == SETTINGS_KEY or block is None:
            continue
        if not isinstance(block, dict):
            raise ConfigError(f"{name} must be a mapping with include/exclude")
        unknown = set(block) - {"include", "exclude"}
        if unknown:
            raise ConfigError(
                f"Unknown keys in {name}: {', '.join(sorted(unknown))}",
                details={"allowed": ["include", "exclude"]},
            )
        config.resources[str(name)] = ResourceFilter(
            include=_parse_rule(block.get("include"), f"{name}.include"),
            exclude=_parse_rule(block.get("exclude"), f"{name}.exclude"),
        )
    return config


def load_config(path: Union[str, Path]) -> NukeConfig:
    """
    Load a filter config file.

    Parameters
    ----------
    path : str or Path
        YAML file path.

    Returns
    -------
    NukeConfig

    Raises
    ------
    ConfigError
        If the file is missing, not valid YAML or structurally invalid.
    """
    config_path = Path(path)
    if not config_path.exists():
        raise ConfigError(f"Config file not found: {config_path}")
    try:
        with config_path.open("r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {config_path}: {e}")

    config = config_from_dict(data)
    logger.debug(
        f"Loaded config {config_path} with rules for {len(config.resources)} resource type(s)"
    )
    return config
