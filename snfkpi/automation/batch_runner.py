from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from snfkpi.benchmark.engine import detect_outliers, generate_benchmarks
from snfkpi.config.loader import get_setting, merge_config
from snfkpi.core.denominators import resolve_denominators
from snfkpi.core.types import (
    CensusFact,
    Facility,
    FinanceFact,
    OccupancyFact,
    StaffingFact,
)
from snfkpi.kpi.calculator import calculate_all_kpis
from snfkpi.reporting.bundle import (
    generate_facility_month_bundle,
    write_bundle,
    write_combined_kpi_table,
)
from snfkpi.utils.logger import get_logger
from snfkpi.utils.periods import days_in_period

log = get_logger("batch-runner")


# =====================================================
# PORTFOLIO RUN
# =====================================================

def run_portfolio(
    finance_facts: Iterable[FinanceFact],
    census_facts: Iterable[CensusFact],
    facilities: Iterable[Facility],
    period_ids: Iterable[str],
    *,
    occupancy_facts: Optional[Iterable[OccupancyFact]] = None,
    staffing_facts: Optional[Iterable[StaffingFact]] = None,
    kpi_ids: Optional[Iterable[str]] = None,
    config: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """
    Portfolio Run Contract:

    - One independent calculation per facility/period
    - Days in month come from the period id (never the 30-day default)
    - Benchmarks and outliers are computed per period across facilities
    - Outlier anomalies are appended to the facility's own bundle

    Returns {"bundles": [...], "benchmarks": {period: [Benchmark]},
             "anomalies": {(facility_id, period): [Anomaly]}}
    """
    finance_facts = list(finance_facts)
    census_facts = list(census_facts)
    facilities = list(facilities)
    occupancy_facts = list(occupancy_facts or [])
    staffing_facts = list(staffing_facts or [])
    kpi_ids = list(kpi_ids) if kpi_ids is not None else None

    min_cohort_size = get_setting(config, "benchmarks", "min_cohort_size")
    outlier_k = get_setting(config, "benchmarks", "outlier_k")

    bundles: List[Dict[str, Any]] = []
    all_benchmarks: Dict[str, list] = {}
    all_anomalies: Dict[tuple, list] = {}

    for period_id in period_ids:
        month_days = days_in_period(period_id)
        calculations = {}

        for facility in facilities:
            calculations[facility.facility_id] = calculate_all_kpis(
                finance_facts,
                census_facts,
                facility.facility_id,
                period_id,
                kpi_ids=kpi_ids,
                occupancy_facts=occupancy_facts,
                days_in_month=month_days,
                staffing_facts=staffing_facts,
                config=config,
            )

        facility_results = {
            facility_id: calc["results"] for facility_id, calc in calculations.items()
        }
        benchmarks = generate_benchmarks(
            facility_results, facilities, period_id, min_cohort_size=min_cohort_size
        )
        outliers = detect_outliers(facility_results, benchmarks, k=outlier_k)
        all_benchmarks[period_id] = benchmarks

        for facility in facilities:
            calc = calculations[facility.facility_id]
            anomalies = calc["anomalies"] + outliers.get(facility.facility_id, [])
            all_anomalies[(facility.facility_id, period_id)] = anomalies

            # denominators are cheap to re-resolve; anomalies already collected
            denominators, _ = resolve_denominators(
                census_facts, facility.facility_id, period_id, config=config
            )

            bundles.append(generate_facility_month_bundle(
                facility,
                period_id,
                denominators,
                calc["results"],
                anomalies,
                benchmarks,
                _source_files(
                    facility.facility_id, period_id,
                    finance_facts, census_facts, occupancy_facts, staffing_facts,
                ),
                accounting_basis=get_setting(config, "metadata", "accounting_basis"),
            ))

        log.info(
            "Period %s: %d facilities, %d benchmarks, %d outlier facilities",
            period_id, len(facilities), len(benchmarks), len(outliers),
        )

    return {
        "bundles": bundles,
        "benchmarks": all_benchmarks,
        "anomalies": all_anomalies,
    }


def _source_files(facility_id: str, period_id: str, *fact_lists) -> List[str]:
    return sorted({
        fact.source_file
        for facts in fact_lists
        for fact in facts
        if fact.facility_id == facility_id
        and fact.period_id == period_id
        and fact.source_file
    })


# =====================================================
# OUTPUT
# =====================================================

def write_portfolio(run: Dict[str, Any], output_dir: Optional[str] = None,
                    config: Optional[Dict[str, Any]] = None) -> Path:
    """Write every bundle plus kpis_all.json under output_dir."""
    output_dir = Path(output_dir or merge_config(config)["output_dir"])

    for bundle in run["bundles"]:
        write_bundle(bundle, output_dir)
    combined = write_combined_kpi_table(run["bundles"], output_dir)

    log.info("Portfolio written: %d bundles -> %s", len(run["bundles"]), output_dir)
    return combined
