"""
JSON Reporter Module
====================

Exports run results to JSON for programmatic access and pipelines.

Classes
-------
JSONReporter
    Main reporter class for JSON export.

Example
-------
>>> from cloudnuke.reporters import JSONReporter
>>>
>>> reporter = JSONReporter(output_path="nuke-report.json")
>>> filepath = reporter.report(collector, regions=["us-east-1"])
>>>
>>> # Or get as string
>>> json_str = reporter.to_string(collector)

Output Structure
----------------
::

    {
      "metadata": {
        "regions": ["us-east-1"],
        "dry_run": false,
        "start_time": "2024-01-15T10:30:00+00:00",
        "end_time": "2024-01-15T10:31:12+00:00",
        "summary": {"deleted": 4, "failed": 1, ...}
      },
      "found": [...],
      "outcomes": [...],
      "general_errors": [...]
    }

See Also
--------
CLIReporter : For terminal display.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from cloudnuke.core.report import ReportCollector

# Module logger
logger = logging.getLogger(__name__)


class JSONReporter:
    """
    Reporter for exporting run results to JSON format.

    Parameters
    ----------
    output_path : str, optional
        Path for the output file. If not provided, generates a
        timestamped filename in the current directory.
    indent : int, default=2
        JSON indentation level. None for compact output.

    Examples
    --------
    >>> reporter = JSONReporter(output_path="report.json")
    >>> reporter.report(collector)
    'report.json'

    >>> JSONReporter(indent=None).to_string(collector)
    '{"metadata": {...}, ...}'
    """

    def __init__(
        self,
        output_path: Optional[str] = None,
        indent: Optional[int] = 2,
    ) -> None:
        """Initialize the JSON reporter with optional output path and indentation."""
        self.output_path = output_path
        self.indent = indent
        logger.debug(f"Initialized JSONReporter (output_path={output_path})")

    def _get_output_path(self) -> Path:
        if self.output_path:
            return Path(self.output_path)

        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        return Path(f"cloudnuke_report_{timestamp}.json")

    def report(
        self,
        collector: ReportCollector,
        regions: Optional[Sequence[str]] = None,
        dry_run: bool = False,
    ) -> str:
        """
        Write the run results to a JSON file.

        Returns
        -------
        str
            Path to the created JSON file.
        """
        output_path = self._get_output_path()
        data = self.to_dict(collector, regions, dry_run)

        logger.info(f"Exporting {len(data['outcomes'])} outcome(s) to {output_path}")
        with open(output_path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=self.indent, default=str)

        logger.info(f"JSON export complete: {output_path}")
        return str(output_path)

    def to_string(
        self,
        collector: ReportCollector,
        regions: Optional[Sequence[str]] = None,
        dry_run: bool = False,
    ) -> str:
        """Convert run results to a JSON string without writing a file."""
        return json.dumps(self.to_dict(collector, regions, dry_run), indent=self.indent, default=str)

    def to_dict(
        self,
        collector: ReportCollector,
        regions: Optional[Sequence[str]] = None,
        dry_run: bool = False,
    ) -> Dict[str, Any]:
        """
        Convert run results to a Python dictionary.

        Parameters
        ----------
        collector : ReportCollector
            Populated collector.
        regions : sequence of str, optional
            Regions the run targeted.
        dry_run : bool, default=False
            Whether the run was a dry run.
        """
        report = collector.to_dict()
        return {
            "metadata": {
                "regions": list(regions or []),
                "dry_run": dry_run,
                "start_time": report["start_time"],
                "end_time": report["end_time"],
                "summary": report["summary"],
            },
            "found": self._build_found(collector),
            "outcomes": report["outcomes"],
            "general_errors": report["general_errors"],
        }

    @staticmethod
    def _build_found(collector: ReportCollector) -> List[Dict[str, Any]]:
        found = []
        for (resource_type, region), candidates in collector.found.items():
            for candidate in candidates:
                found.append(
                    {
                        "resource_type": resource_type,
                        "region": region,
                        "identifier": candidate.identifier,
                        "name": candidate.value.name,
                        "time": candidate.value.time.isoformat() if candidate.value.time else None,
                        "tags": dict(candidate.value.tags),
                        "details": candidate.details,
                    }
                )
        return found

    def __repr__(self) -> str:
        """Return string representation."""
        return f"JSONReporter(output_path={self.output_path!r}, indent={self.indent})"
