"""Diagnostic tables built from delineation results."""

from .diagnostics import peak_metrics_frame, rules_hit_frame, summarize_results

__all__ = [
    "peak_metrics_frame",
    "rules_hit_frame",
    "summarize_results",
]
