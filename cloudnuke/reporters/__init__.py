"""
Report Generators
=================

Output formatters for discovery and nuke results.

Available Reporters
-------------------
CLIReporter
    Rich terminal output with formatted tables and progress indicators.
JSONReporter
    JSON export for pipelines and programmatic access.

Example
-------
>>> from cloudnuke.reporters import CLIReporter, JSONReporter
>>>
>>> CLIReporter().report_outcomes(collector)
>>> json_str = JSONReporter().to_string(collector)

See Also
--------
cloudnuke.core.report.ReportCollector : Input data structure.
"""

from cloudnuke.reporters.cli_reporter import CLIReporter
from cloudnuke.reporters.json_reporter import JSONReporter

__all__ = [
    "CLIReporter",
    "JSONReporter",
]
