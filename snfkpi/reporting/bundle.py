"""
Facility-Month Bundles
----------------------
Self-describing JSON documents for one facility and period:
meta, denominators, KPI results, peer benchmarks, anomalies and the
glossary needed to read them.

Rules:
- Bundles are plain dicts (json.dump ready)
- Glossary carries denominator terms plus KPIs that produced a value
- State benchmark preferred, portfolio ("all") otherwise
"""

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from snfkpi.benchmark.engine import get_benchmarks_for_facility
from snfkpi.core.denominators import DENOMINATOR_GLOSSARY
from snfkpi.core.types import (
    Anomaly,
    Benchmark,
    Denominators,
    Facility,
    KPIResult,
)
from snfkpi.kpi.registry import KPI_REGISTRY, KPIRegistry
from snfkpi.utils.logger import get_logger

log = get_logger("snfkpi.bundle")

DEFAULT_ACCOUNTING_BASIS = "accrual"


def generate_facility_month_bundle(
    facility: Facility,
    period_id: str,
    denominators: Denominators,
    results: List[KPIResult],
    anomalies: List[Anomaly],
    benchmarks: Iterable[Benchmark],
    source_files: Iterable[str],
    registry: Optional[KPIRegistry] = None,
    accounting_basis: str = DEFAULT_ACCOUNTING_BASIS,
) -> Dict[str, Any]:
    registry = KPI_REGISTRY if registry is None else registry
    benchmarks = list(benchmarks)

    glossary = [
        {
            "term": term["term"],
            "abbreviation": term["abbreviation"],
            "definition": term["definition"],
            "denominator_type": term["denominator_type"],
            "payer_scope": term.get("payer_scope"),
        }
        for term in DENOMINATOR_GLOSSARY
    ]
    glossary.extend(
        registry.glossary([r.kpi_id for r in results if r.value is not None])
    )

    bundle_benchmarks: Dict[str, Dict[str, Any]] = {}
    for result in results:
        cohorts = get_benchmarks_for_facility(benchmarks, facility, result.kpi_id)
        chosen = cohorts.get(f"state_{facility.state}") or cohorts.get("all")
        if chosen is not None:
            bundle_benchmarks[result.kpi_id] = chosen.to_dict()

    return {
        "meta": {
            "facility_id": facility.facility_id,
            "facility_name": facility.name,
            "period": period_id,
            "state": facility.state,
            "setting": getattr(facility.setting, "value", facility.setting),
            "therapy_delivery_model": facility.therapy_delivery_model,
            "accounting_basis": accounting_basis,
            "source_files": sorted(set(source_files)),
            "generated_at": datetime.now(timezone.utc).isoformat(),
        },
        "denominators": denominators.to_dict(),
        "kpis": [r.to_dict() for r in results],
        "benchmarks": bundle_benchmarks,
        "anomalies": [a.to_dict() for a in anomalies],
        "glossary": glossary,
    }


def combined_kpi_table(bundles: Iterable[Dict[str, Any]]) -> Dict[str, Any]:
    """One row per facility/period with KPI values and anomaly counts."""
    bundles = list(bundles)
    return {
        "generated_at": datetime.now(timezone.utc).isoformat(),
        "periods": sorted({b["meta"]["period"] for b in bundles}),
        "facilities": sorted({b["meta"]["facility_id"] for b in bundles}),
        "data": [
            {
                "facility_id": b["meta"]["facility_id"],
                "facility_name": b["meta"]["facility_name"],
                "period": b["meta"]["period"],
                "state": b["meta"]["state"],
                "setting": b["meta"]["setting"],
                "kpis": {k["kpi_id"]: k["value"] for k in b["kpis"]},
                "anomaly_count": len(b["anomalies"]),
            }
            for b in bundles
        ],
    }


# =====================================================
# FILE OUTPUT
# =====================================================

def write_bundle(bundle: Dict[str, Any], output_dir) -> Path:
    """<output_dir>/<facility_id>/<yyyy_mm>/bundle.json"""
    meta = bundle["meta"]
    path = Path(output_dir) / meta["facility_id"] / meta["period"].replace("-", "_")
    path.mkdir(parents=True, exist_ok=True)

    out = path / "bundle.json"
    with open(out, "w", encoding="utf-8") as f:
        json.dump(bundle, f, indent=2)

    log.info("Bundle written: %s", out)
    return out


def write_combined_kpi_table(bundles: Iterable[Dict[str, Any]], output_dir) -> Path:
    path = Path(output_dir)
    path.mkdir(parents=True, exist_ok=True)

    out = path / "kpis_all.json"
    with open(out, "w", encoding="utf-8") as f:
        json.dump(combined_kpi_table(bundles), f, indent=2)

    return out
