"""Report aggregation and rendering."""

from .aggregator import ReportAggregator
from .report import REPORT_SCHEMA_VERSION, DocumentReport, Report

__all__ = [
    "REPORT_SCHEMA_VERSION",
    "DocumentReport",
    "Report",
    "ReportAggregator",
]
