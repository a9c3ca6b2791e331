"""fhirgate aggregation: batch summaries and reports."""

from fhirgate.aggregation.aggregator import (
    build_report,
    performance_metrics,
    single_result_report,
    summarize,
)

__all__ = ["build_report", "performance_metrics", "single_result_report", "summarize"]
