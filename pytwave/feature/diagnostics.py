from typing import Iterable, Optional, Sequence

import pandas as pd

from pytwave.processing.candidate import DelineationResult


def rules_hit_frame(result: DelineationResult) -> pd.DataFrame:
    """One row per rule with the number of candidates it touched."""
    return pd.DataFrame(
        {"rule": list(result.rules_hit.keys()), "count": list(result.rules_hit.values())}
    )


def peak_metrics_frame(result: DelineationResult) -> pd.DataFrame:
    """
    Per-peak shape metrics.

    Returns
    -------
    pd.DataFrame
        Columns ``peak``, ``flatness``, ``distortion``, ``skewness``; one row per
        delineated peak (main peak first in time order).
    """
    return pd.DataFrame({
        "peak": pd.Series(result.peak, dtype="int64"),
        "flatness": pd.Series(result.flatness, dtype=float),
        "distortion": pd.Series(result.distortion, dtype=float),
        "skewness": pd.Series(result.skewness, dtype=float),
    })


def summarize_results(
    results: Iterable[DelineationResult],
    ids: Optional[Sequence[str]] = None,
) -> pd.DataFrame:
    """
    Stack several delineations, one row each.

    Rule counters become columns prefixed with ``rule_``; missing counters are NaN.
    """
    rows = []
    for k, res in enumerate(results):
        row = {
            "id": ids[k] if ids is not None else k,
            "on": res.on,
            "off": res.off,
            "tpeak": res.peak[0] if res.peak else -1,
            "tppeak": res.peak[1] if len(res.peak) > 1 else -1,
            "n_peaks": len(res.peak),
            "non_measurable": res.non_measurable,
        }
        row.update({f"rule_{name}": count for name, count in res.rules_hit.items()})
        rows.append(row)
    return pd.DataFrame(rows)
