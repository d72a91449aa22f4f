"""
Tests for configuration loading and duration parsing.
"""

from datetime import datetime, timedelta, timezone

import pytest

from cloudnuke.core.config import (
    NukeConfig,
    RunSettings,
    config_from_dict,
    load_config,
    parse_duration,
    parse_time,
)
from cloudnuke.core.exceptions import ConfigError, InvalidDurationError
from cloudnuke.core.filters import DEFAULT_EXCLUDE_TAG, ResourceValue

CONFIG_YAML = """
settings:
  exclude_first_seen: true
  best_effort_describe: true

s3:
  include:
    names_regex: ["^test-"]
  exclude:
    names_regex:
      - "^test-keep"
    tags:
      team: "^finance$"
    time_after: "2024-06-01T00:00:00Z"

ebs:
  exclude:
    time_before: "2023-01-01 00:00:00"

eip:
"""


class TestParseDuration:
    """Tests for parse_duration."""

    @pytest.mark.parametrize(
        "text,expected",
        [
            ("90s", timedelta(seconds=90)),
            ("10m", timedelta(minutes=10)),
            ("1h30m", timedelta(hours=1, minutes=30)),
            ("1.5h", timedelta(minutes=90)),
            ("2d", timedelta(days=2)),
            ("500ms", timedelta(milliseconds=500)),
            ("0", timedelta(0)),
        ],
    )
    def test_valid(self, text, expected):
        """Test accepted duration strings."""
        assert parse_duration(text) == expected

    @pytest.mark.parametrize("text", ["", "abc", "10", "1h-5m", "h", "5 m", "-1h"])
    def test_invalid(self, text):
        """Test rejected duration strings."""
        with pytest.raises(InvalidDurationError):
            parse_duration(text)


class TestParseTime:
    """Tests for parse_time."""

    def test_rfc3339(self):
        """Test a Z-suffixed timestamp."""
        assert parse_time("2024-06-01T00:00:00Z") == datetime(2024, 6, 1, tzinfo=timezone.utc)

    def test_space_separated(self):
        """Test the space-separated format as UTC."""
        assert parse_time("2023-01-01 00:00:00") == datetime(2023, 1, 1, tzinfo=timezone.utc)

    def test_none(self):
        """Test that empty values mean no bound."""
        assert parse_time(None) is None
        assert parse_time("") is None

    def test_invalid(self):
        """Test that a bad value raises ConfigError."""
        with pytest.raises(ConfigError):
            parse_time("last tuesday", "s3.exclude.time_after")


class TestLoadConfig:
    """Tests for load_config and config_from_dict."""

    def test_load_file(self, tmp_path):
        """Test loading rules and settings from YAML."""
        path = tmp_path / "nuke.yaml"
        path.write_text(CONFIG_YAML)

        config = load_config(path)

        assert config.settings.exclude_first_seen is True
        assert config.settings.best_effort_describe is True
        assert sorted(config.resources) == ["ebs", "s3"]

        s3 = config.for_resource("s3")
        assert [p.pattern for p in s3.include.names_regex] == ["^test-"]
        assert s3.exclude.tags["team"].pattern == "^finance$"
        assert s3.exclude.time_after == datetime(2024, 6, 1, tzinfo=timezone.utc)
        assert config.for_resource("ebs").exclude.time_before == datetime(
            2023, 1, 1, tzinfo=timezone.utc
        )

    def test_loaded_rules_filter(self, tmp_path):
        """Test that a loaded rule filters candidates as configured."""
        path = tmp_path / "nuke.yaml"
        path.write_text(CONFIG_YAML)
        rule = load_config(path).for_resource("s3")
        old = datetime(2024, 1, 1, tzinfo=timezone.utc)

        assert rule.should_include(ResourceValue(name="test-bucket", time=old))
        assert not rule.should_include(ResourceValue(name="test-keep-bucket", time=old))
        assert not rule.should_include(ResourceValue(name="prod-bucket", time=old))

    def test_empty_file(self, tmp_path):
        """Test that an empty file yields an empty config."""
        path = tmp_path / "empty.yaml"
        path.write_text("")
        config = load_config(path)
        assert config.resources == {}
        assert config.settings == RunSettings()

    def test_missing_file(self, tmp_path):
        """Test that a missing file raises ConfigError."""
        with pytest.raises(ConfigError, match="not found"):
            load_config(tmp_path / "nope.yaml")

    def test_invalid_yaml(self, tmp_path):
        """Test that malformed YAML raises ConfigError."""
        path = tmp_path / "bad.yaml"
        path.write_text("s3: [unclosed")
        with pytest.raises(ConfigError, match="Invalid YAML"):
            load_config(path)

    def test_invalid_regex(self):
        """Test that a bad regex is reported with its location."""
        with pytest.raises(ConfigError, match="s3.exclude.names_regex"):
            config_from_dict({"s3": {"exclude": {"names_regex": ["prod-["]}}})

    def test_unknown_rule_key(self):
        """Test that unknown keys inside a rule are rejected."""
        with pytest.raises(ConfigError, match="Unknown keys"):
            config_from_dict({"s3": {"exclude": {"name_regex": ["x"]}}})

    def test_unknown_block_key(self):
        """Test that unknown keys beside include/exclude are rejected."""
        with pytest.raises(ConfigError):
            config_from_dict({"s3": {"delete": {}}})

    def test_single_string_regex(self):
        """Test that a bare string is accepted as a one-item list."""
        config = config_from_dict({"s3": {"exclude": {"names_regex": "^prod-"}}})
        assert [p.pattern for p in config.for_resource("s3").exclude.names_regex] == ["^prod-"]

    def test_unknown_resources(self):
        """Test reporting of config keys no resource type uses."""
        config = config_from_dict({"s3": {}, "lambda": {"exclude": {}}})
        assert config.unknown_resources(["s3", "ebs"]) == ["lambda"]


class TestNukeConfig:
    """Tests for NukeConfig overrides."""

    def test_older_than_override(self):
        """Test that exclude_after replaces every type's exclude.time_after."""
        config = config_from_dict({"s3": {"exclude": {"time_after": "2020-01-01T00:00:00Z"}}})
        cutoff = datetime(2024, 1, 1, tzinfo=timezone.utc)
        config.add_exclude_after(cutoff)

        assert config.for_resource("s3").exclude.time_after == cutoff
        assert config.for_resource("ebs").exclude.time_after == cutoff

    def test_newer_than_override(self):
        """Test that include_after sets include.time_after."""
        config = NukeConfig()
        cutoff = datetime(2024, 1, 1, tzinfo=timezone.utc)
        config.add_include_after(cutoff)
        assert config.for_resource("eip").include.time_after == cutoff

    def test_for_resource_returns_copy(self):
        """Test that mutating a returned rule does not change the config."""
        config = config_from_dict({"s3": {"exclude": {"names_regex": ["^a"]}}})
        config.for_resource("s3").exclude.names_regex.clear()
        assert len(config.for_resource("s3").exclude.names_regex) == 1

    def test_protect_setting_flows_into_rules(self):
        """Test that protect_excluded_tag=false disables the protection tag."""
        config = config_from_dict({"settings": {"protect_excluded_tag": False}})
        value = ResourceValue(name="x", tags={DEFAULT_EXCLUDE_TAG: "true"})
        assert config.for_resource("s3").should_include(value)
