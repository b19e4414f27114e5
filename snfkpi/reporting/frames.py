"""
DataFrame adapters.

Fact tables arrive already parsed (one column per fact field); this module
only converts between them and the engine's dataclasses.
"""

from typing import Any, Dict, Iterable, List

import pandas as pd

from snfkpi.core.types import (
    Anomaly,
    CensusFact,
    FinanceFact,
    KPIResult,
    OccupancyFact,
    StaffingFact,
)

FACT_TYPES = {
    "finance": FinanceFact,
    "census": CensusFact,
    "occupancy": OccupancyFact,
    "staffing": StaffingFact,
}

REQUIRED_COLUMNS = {
    "finance": ["facility_id", "period_id", "account_category", "account_subcategory", "amount"],
    "census": ["facility_id", "period_id", "payer_category", "days"],
    "occupancy": ["facility_id", "period_id", "total_patient_days", "total_unit_days", "operational_occupancy"],
    "staffing": ["facility_id", "period_id", "department", "hours"],
}


def facts_from_frame(df: pd.DataFrame, fact_type: str) -> List[Any]:
    if fact_type not in FACT_TYPES:
        raise ValueError(
            f"Unknown fact type '{fact_type}'. Expected one of: {', '.join(FACT_TYPES)}"
        )

    missing = [c for c in REQUIRED_COLUMNS[fact_type] if c not in df.columns]
    if missing:
        raise ValueError(f"{fact_type} facts missing columns: {missing}")

    # ids are labels, not numbers ("101" must stay "101")
    df = df.astype({"facility_id": str, "period_id": str})
    records = df.astype(object).where(pd.notna(df), None).to_dict("records")

    cls = FACT_TYPES[fact_type]
    return [cls.from_dict(_clean(record)) for record in records]


def _clean(record: Dict[str, Any]) -> Dict[str, Any]:
    cleaned = {}
    for key, value in record.items():
        if isinstance(value, str) and not value.strip():
            value = None
        cleaned[key] = value
    return cleaned


def results_to_frame(results: Iterable[KPIResult]) -> pd.DataFrame:
    rows = []
    for result in results:
        row = result.to_dict()
        row["warnings"] = "; ".join(row["warnings"])
        rows.append(row)

    return pd.DataFrame(
        rows,
        columns=[
            "kpi_id", "value", "numerator_value", "denominator_value",
            "denominator_type", "payer_scope", "unit", "warnings",
        ],
    )


def anomalies_to_frame(anomalies: Iterable[Anomaly]) -> pd.DataFrame:
    return pd.DataFrame(
        [a.to_dict() for a in anomalies],
        columns=["type", "severity", "message", "field", "expected", "actual"],
    )
