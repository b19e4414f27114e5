"""
Financial aggregation.

Reduces finance (and staffing) facts for one facility/period into a
fixed-shape FinancialTotals record. Subcategory labels are free text, so
classification runs through an explicit mapping table; labels outside the
table surface as unmapped_account anomalies instead of disappearing.
"""

from dataclasses import asdict, dataclass, fields
from typing import Dict, Iterable, List, Optional, Tuple

from snfkpi.core.types import (
    Anomaly,
    AnomalyType,
    FinanceFact,
    PayerCategory,
    Severity,
    StaffingFact,
    parse_payer,
)
from snfkpi.utils.logger import get_logger

log = get_logger("snfkpi.aggregation")

REVENUE = "Revenue"
EXPENSE = "Expense"


@dataclass
class FinancialTotals:
    total_revenue: float = 0.0
    skilled_revenue: float = 0.0
    non_skilled_revenue: float = 0.0
    medicare_a_revenue: float = 0.0
    ma_revenue: float = 0.0
    medicaid_revenue: float = 0.0
    private_revenue: float = 0.0
    hospice_revenue: float = 0.0
    va_revenue: float = 0.0
    other_revenue: float = 0.0

    total_operating_expenses: float = 0.0
    total_nursing_expenses: float = 0.0
    nursing_wages: float = 0.0
    nursing_agency_contract: float = 0.0
    total_nursing_hours: float = 0.0
    total_therapy_expenses: float = 0.0
    total_ancillary_expenses: float = 0.0
    total_dietary_expenses: float = 0.0
    total_administration_expenses: float = 0.0
    total_plant_expenses: float = 0.0
    total_housekeeping_expenses: float = 0.0
    total_laundry_expenses: float = 0.0
    total_social_services_expenses: float = 0.0
    total_activities_expenses: float = 0.0
    total_medical_records_expenses: float = 0.0
    bad_debt: float = 0.0
    bed_tax: float = 0.0

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)


TOTAL_FIELDS = frozenset(f.name for f in fields(FinancialTotals))


# =====================================================
# MAPPING TABLE
# =====================================================

# (account_category, account_subcategory) -> field, payer ignored
LINE_RULES: Dict[Tuple[str, str], str] = {
    (REVENUE, "Total"): "total_revenue",
    (REVENUE, "Total Skilled"): "skilled_revenue",
    (REVENUE, "Total Non-Skilled"): "non_skilled_revenue",
    (REVENUE, "Total Other"): "other_revenue",
    (EXPENSE, "Total Operating"): "total_operating_expenses",
    (EXPENSE, "Total Nursing"): "total_nursing_expenses",
    (EXPENSE, "Nursing Contract Labor"): "nursing_agency_contract",
    (EXPENSE, "Total Therapy"): "total_therapy_expenses",
    (EXPENSE, "Total Ancillary"): "total_ancillary_expenses",
    (EXPENSE, "Total Dietary"): "total_dietary_expenses",
    (EXPENSE, "Total Administration"): "total_administration_expenses",
    (EXPENSE, "Total Plant"): "total_plant_expenses",
    (EXPENSE, "Total Housekeeping"): "total_housekeeping_expenses",
    (EXPENSE, "Total Laundry"): "total_laundry_expenses",
    (EXPENSE, "Total Social Services"): "total_social_services_expenses",
    (EXPENSE, "Total Activities"): "total_activities_expenses",
    (EXPENSE, "Total Medical Records"): "total_medical_records_expenses",
}

# (account_category, account_subcategory) -> {payer -> field}
PAYER_LINE_RULES: Dict[Tuple[str, str], Dict[PayerCategory, str]] = {
    (REVENUE, "Skilled"): {
        PayerCategory.MEDICARE_A: "medicare_a_revenue",
        PayerCategory.MEDICARE_ADVANTAGE: "ma_revenue",
        PayerCategory.VA: "va_revenue",
    },
    (REVENUE, "Non-Skilled"): {
        PayerCategory.MEDICAID: "medicaid_revenue",
        PayerCategory.PRIVATE_PAY: "private_revenue",
        PayerCategory.HOSPICE: "hospice_revenue",
    },
}

# Expense detail lines matched by text, checked in order
TEXT_RULES: Tuple[Tuple[str, str], ...] = (
    ("Bad Debt", "bad_debt"),
    ("Bed Tax", "bed_tax"),
)

NURSING_DETAIL = "Nursing"
OTHER_DETAIL = "Other"
WAGES_MARKER = "Wages"

# Gap-filler for total_operating_expenses (all department totals)
OPERATING_COMPONENTS = (
    "total_nursing_expenses",
    "total_therapy_expenses",
    "total_ancillary_expenses",
    "total_dietary_expenses",
    "total_administration_expenses",
    "total_plant_expenses",
    "total_housekeeping_expenses",
    "total_laundry_expenses",
    "total_social_services_expenses",
    "total_activities_expenses",
    "total_medical_records_expenses",
    "bad_debt",
    "bed_tax",
)

REVENUE_COMPONENTS = ("skilled_revenue", "non_skilled_revenue", "other_revenue")


def _validate_table():
    targets = set(LINE_RULES.values())
    for by_payer in PAYER_LINE_RULES.values():
        targets.update(by_payer.values())
    targets.update(target for _, target in TEXT_RULES)
    targets.update(OPERATING_COMPONENTS)
    targets.update(REVENUE_COMPONENTS)
    unknown = targets - TOTAL_FIELDS
    if unknown:
        raise ValueError(f"Mapping table targets unknown totals: {sorted(unknown)}")


_validate_table()


def classify_line(fact: FinanceFact) -> Tuple[Optional[str], bool]:
    """
    Map one finance line to a FinancialTotals field.

    Returns (field, recognized):
    - (field, True): accumulate into field
    - (None, True): known label that carries no total (e.g. benefits detail)
    - (None, False): label outside the mapping table
    """
    category = (fact.account_category or "").strip()
    subcategory = (fact.account_subcategory or "").strip()
    key = (category, subcategory)

    if key in LINE_RULES:
        return LINE_RULES[key], True

    if key in PAYER_LINE_RULES:
        payer = parse_payer(fact.payer_category)
        return PAYER_LINE_RULES[key].get(payer), True

    if category != EXPENSE:
        return None, False

    if subcategory == NURSING_DETAIL:
        department = str(fact.department or "")
        return ("nursing_wages" if WAGES_MARKER in department else None), True

    text = subcategory
    if subcategory == OTHER_DETAIL:
        text = str(fact.department or "")

    for marker, target in TEXT_RULES:
        if marker in text:
            return target, True

    return None, subcategory == OTHER_DETAIL


# =====================================================
# AGGREGATION
# =====================================================

def aggregate_financials(
    finance_facts: Iterable[FinanceFact],
    facility_id: str,
    period_id: str,
    staffing_facts: Optional[Iterable[StaffingFact]] = None,
) -> Tuple[FinancialTotals, List[Anomaly]]:
    totals = FinancialTotals()
    anomalies: List[Anomaly] = []
    unmapped: Dict[Tuple[str, str], int] = {}

    for fact in finance_facts:
        if fact.facility_id != facility_id or fact.period_id != period_id:
            continue

        target, recognized = classify_line(fact)
        if target is not None:
            setattr(totals, target, getattr(totals, target) + fact.amount)
        elif not recognized:
            key = (fact.account_category, fact.account_subcategory)
            unmapped[key] = unmapped.get(key, 0) + 1

    for (category, subcategory), count in unmapped.items():
        anomalies.append(Anomaly(
            type=AnomalyType.UNMAPPED_ACCOUNT,
            severity=Severity.WARNING,
            message=(
                f"Unrecognized finance line '{category} / {subcategory}' "
                f"({count} fact{'s' if count != 1 else ''}) was not aggregated"
            ),
            field="account_subcategory",
            actual=subcategory,
        ))

    if unmapped:
        log.debug(
            "Facility %s %s: %d unmapped finance labels",
            facility_id, period_id, len(unmapped),
        )

    totals.total_nursing_hours = sum_nursing_hours(
        staffing_facts or [], facility_id, period_id
    )

    # -------------------------------------------------
    # GAP FILLERS (explicit totals always win)
    # -------------------------------------------------
    if totals.total_revenue == 0:
        totals.total_revenue = sum(getattr(totals, f) for f in REVENUE_COMPONENTS)

    if totals.total_operating_expenses == 0:
        totals.total_operating_expenses = sum(
            getattr(totals, f) for f in OPERATING_COMPONENTS
        )

    return totals, anomalies


def sum_nursing_hours(
    staffing_facts: Iterable[StaffingFact],
    facility_id: str,
    period_id: str,
) -> float:
    return sum(
        f.hours for f in staffing_facts
        if f.facility_id == facility_id
        and f.period_id == period_id
        and NURSING_DETAIL in str(f.department or "")
    )
