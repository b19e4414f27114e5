"""
Benchmark Engine
----------------
Peer statistics for KPI values across a portfolio.

Cohorts:
- all
- state:<state>
- region:<region or Unknown>
- setting:<setting>

Non-"all" cohorts are only published once they hold min_cohort_size values.
"""

from typing import Dict, Iterable, List, Mapping, Optional

import numpy as np
import pandas as pd

from snfkpi.core.types import (
    Anomaly,
    AnomalyType,
    Benchmark,
    BenchmarkStats,
    Facility,
    KPIResult,
    Severity,
)
from snfkpi.utils.logger import get_logger

log = get_logger("snfkpi.benchmarks")


# =====================================================
# STATS
# =====================================================

def calculate_benchmark_stats(values: Iterable[Optional[float]]) -> Optional[BenchmarkStats]:
    arr = np.array([v for v in values if v is not None], dtype=float)
    arr = arr[np.isfinite(arr)]

    if arr.size == 0:
        return None

    # linear interpolation between closest ranks
    p25, median, p75 = np.percentile(arr, [25, 50, 75])

    return BenchmarkStats(
        count=int(arr.size),
        min=float(arr.min()),
        p25=float(p25),
        median=float(median),
        p75=float(p75),
        max=float(arr.max()),
        mean=float(arr.mean()),
        std_dev=float(arr.std()) if arr.size >= 2 else 0.0,
    )


def results_frame(
    facility_results: Mapping[str, Iterable[KPIResult]],
    facilities: Iterable[Facility],
) -> pd.DataFrame:
    """
    Long frame of (facility, cohort attributes, kpi_id, value) for every
    non-null KPI value of a known facility.
    """
    lookup = {f.facility_id: f for f in facilities}
    rows = []

    for facility_id, results in facility_results.items():
        facility = lookup.get(facility_id)
        if facility is None:
            continue
        for result in results:
            if result.value is None:
                continue
            rows.append({
                "facility_id": facility_id,
                "state": facility.state,
                "region": facility.region or "Unknown",
                "setting": getattr(facility.setting, "value", facility.setting),
                "kpi_id": result.kpi_id,
                "value": result.value,
            })

    return pd.DataFrame(
        rows,
        columns=["facility_id", "state", "region", "setting", "kpi_id", "value"],
    )


def generate_benchmarks(
    facility_results: Mapping[str, Iterable[KPIResult]],
    facilities: Iterable[Facility],
    period_id: str,
    min_cohort_size: int = 2,
) -> List[Benchmark]:
    df = results_frame(facility_results, facilities)
    benchmarks: List[Benchmark] = []

    if df.empty:
        log.info("No KPI values to benchmark for %s", period_id)
        return benchmarks

    for kpi_id, kpi_df in df.groupby("kpi_id", sort=False):
        stats = calculate_benchmark_stats(kpi_df["value"])
        if stats:
            benchmarks.append(Benchmark(kpi_id, "all", period_id, stats))

        for attribute in ("state", "region", "setting"):
            for group, group_df in kpi_df.groupby(attribute, sort=False):
                stats = calculate_benchmark_stats(group_df["value"])
                if stats and stats.count >= min_cohort_size:
                    benchmarks.append(
                        Benchmark(kpi_id, f"{attribute}:{group}", period_id, stats)
                    )

    return benchmarks


def get_benchmarks_for_facility(
    benchmarks: Iterable[Benchmark],
    facility: Facility,
    kpi_id: str,
) -> Dict[str, BenchmarkStats]:
    setting = getattr(facility.setting, "value", facility.setting)
    wanted = {
        "all": "all",
        f"state:{facility.state}": f"state_{facility.state}",
        f"region:{facility.region}": f"region_{facility.region}",
        f"setting:{setting}": f"setting_{setting}",
    }

    result: Dict[str, BenchmarkStats] = {}
    for benchmark in benchmarks:
        if benchmark.kpi_id == kpi_id and benchmark.cohort in wanted:
            result[wanted[benchmark.cohort]] = benchmark.stats
    return result


# =====================================================
# RANKING
# =====================================================

def get_percentile_rank(value: float, stats: BenchmarkStats) -> float:
    """Approximate percentile rank by interpolating within quartiles."""
    if stats.count == 0:
        return 50.0

    if value <= stats.min:
        return 0.0
    if value >= stats.max:
        return 100.0

    bands = (
        (stats.min, stats.p25, 0.0),
        (stats.p25, stats.median, 25.0),
        (stats.median, stats.p75, 50.0),
        (stats.p75, stats.max, 75.0),
    )
    for low, high, base in bands:
        if value <= high:
            if high == low:
                return base
            return base + 25.0 * (value - low) / (high - low)
    return 100.0


def get_performance_label(percentile_rank: float, higher_is_better: bool) -> str:
    adjusted = percentile_rank if higher_is_better else 100 - percentile_rank

    if adjusted >= 75:
        return "Top Quartile"
    if adjusted >= 50:
        return "Above Median"
    if adjusted >= 25:
        return "Below Median"
    return "Bottom Quartile"


# =====================================================
# OUTLIERS
# =====================================================

def detect_outliers(
    facility_results: Mapping[str, Iterable[KPIResult]],
    benchmarks: Iterable[Benchmark],
    k: float = 1.5,
) -> Dict[str, List[Anomaly]]:
    """
    Tukey fences on the portfolio-wide ("all") benchmark.
    Returns facility_id -> outlier anomalies.
    """
    fences = {}
    for benchmark in benchmarks:
        if benchmark.cohort != "all" or benchmark.stats.count < 4:
            continue
        s = benchmark.stats
        iqr = s.p75 - s.p25
        fences[benchmark.kpi_id] = (s.p25 - k * iqr, s.p75 + k * iqr)

    flagged: Dict[str, List[Anomaly]] = {}
    for facility_id, results in facility_results.items():
        for result in results:
            if result.value is None or result.kpi_id not in fences:
                continue
            low, high = fences[result.kpi_id]
            if low <= result.value <= high:
                continue
            flagged.setdefault(facility_id, []).append(Anomaly(
                type=AnomalyType.OUTLIER,
                severity=Severity.WARNING,
                message=(
                    f"{result.kpi_id} value {result.value:.2f} is outside the "
                    f"portfolio range {low:.2f} to {high:.2f}"
                ),
                field=result.kpi_id,
                expected=f"{low:.2f}..{high:.2f}",
                actual=result.value,
            ))

    return flagged
