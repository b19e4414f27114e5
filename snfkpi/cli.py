"""
SNF KPI Engine CLI
Single facility/period KPI calculation from parsed fact tables.
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

import pandas as pd

from snfkpi.__version__ import __version__
from snfkpi.config.loader import load_config
from snfkpi.kpi.calculator import calculate_all_kpis, calculation_to_dict
from snfkpi.kpi.registry import MVP_KPI_IDS
from snfkpi.reporting.frames import facts_from_frame
from snfkpi.utils.logger import get_logger, set_log_level

logger = get_logger(__name__)


# -------------------------------------------------
# PROGRAMMATIC ENTRY
# -------------------------------------------------
def read_facts(path: Optional[str], fact_type: str) -> List[Any]:
    if not path:
        return []

    csv_path = Path(path)
    if not csv_path.exists():
        raise FileNotFoundError(csv_path)

    # ids stay text ("0101" is not 101)
    df = pd.read_csv(csv_path, dtype={"facility_id": str, "period_id": str})
    facts = facts_from_frame(df, fact_type)
    logger.info("Loaded %d %s facts from %s", len(facts), fact_type, csv_path.name)
    return facts


def run_calculation(
    finance_path: str,
    census_path: str,
    facility_id: str,
    period_id: str,
    occupancy_path: Optional[str] = None,
    staffing_path: Optional[str] = None,
    kpi_ids: Optional[List[str]] = None,
    days_in_month: Optional[int] = None,
    config: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    calculation = calculate_all_kpis(
        read_facts(finance_path, "finance"),
        read_facts(census_path, "census"),
        facility_id,
        period_id,
        kpi_ids=kpi_ids,
        occupancy_facts=read_facts(occupancy_path, "occupancy") or None,
        days_in_month=days_in_month,
        staffing_facts=read_facts(staffing_path, "staffing") or None,
        config=config,
    )
    return calculation_to_dict(calculation)


# -------------------------------------------------
# CLI ENTRY
# -------------------------------------------------
def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        description=f"SNF KPI Engine v{__version__}"
    )

    parser.add_argument("--finance", help="Finance facts CSV")
    parser.add_argument("--census", help="Census facts CSV")
    parser.add_argument("--occupancy", help="Occupancy facts CSV")
    parser.add_argument("--staffing", help="Staffing facts CSV")

    parser.add_argument("--facility", help="Facility id")
    parser.add_argument("--period", help="Period id (YYYY-MM)")
    parser.add_argument("--kpi", action="append", dest="kpis", help="KPI id (repeatable)")
    parser.add_argument("--mvp", action="store_true", help="Only the MVP KPI set")
    parser.add_argument("--days-in-month", type=int, help="Calendar days for RevPOR")

    parser.add_argument("--config", required=False, help="Path to config YAML")
    parser.add_argument("--version", action="store_true")
    parser.add_argument("-v", "--verbose", action="store_true")

    args = parser.parse_args(argv)

    # ---- VERSION ----
    if args.version:
        print(f"SNF KPI Engine v{__version__}")
        return 0

    # ---- LOGGING ----
    set_log_level(logging.DEBUG if args.verbose else logging.INFO)

    # ---- INPUT VALIDATION ----
    for name in ("finance", "census", "facility", "period"):
        if not getattr(args, name):
            parser.error(f"--{name} is required")

    if args.mvp and args.kpis:
        parser.error("--mvp and --kpi are mutually exclusive")

    config = load_config(args.config)
    kpi_ids = list(MVP_KPI_IDS) if args.mvp else args.kpis

    output = run_calculation(
        finance_path=args.finance,
        census_path=args.census,
        facility_id=args.facility,
        period_id=args.period,
        occupancy_path=args.occupancy,
        staffing_path=args.staffing,
        kpi_ids=kpi_ids,
        days_in_month=args.days_in_month,
        config=config,
    )

    print(json.dumps(output, indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
