"""Report writers."""

from dsadopt.reporters.csv_reporter import CSVReporter
from dsadopt.reporters.json_reporter import JSONReporter

__all__ = ["CSVReporter", "JSONReporter"]
