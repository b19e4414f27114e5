"""
Denominator Resolver
--------------------
Turns census facts into the canonical Denominators for one
facility/period and reports data-quality anomalies.

Business rules:
- resident_days = all patient days (all payers, all skill levels)
- skilled_days = Medicare A + Medicare Advantage (HMO) + Commercial + VA + ISNP
- VA is skilled
- Inconsistent facts become anomalies, never exceptions
"""

from typing import Any, Dict, Iterable, List, Optional, Tuple

from snfkpi.config.loader import get_setting
from snfkpi.core.types import (
    SKILLED_PAYERS,
    Anomaly,
    AnomalyType,
    CensusFact,
    DenominatorType,
    Denominators,
    PayerCategory,
    Severity,
)


def resolve_denominators(
    census_facts: Iterable[CensusFact],
    facility_id: str,
    period_id: str,
    config: Optional[Dict[str, Any]] = None,
) -> Tuple[Denominators, List[Anomaly]]:
    anomalies: List[Anomaly] = []
    epsilon = get_setting(config, "denominators", "payer_days_epsilon")
    flag_tolerance = get_setting(config, "denominators", "skilled_reconciliation_tolerance")

    facts = [
        f for f in census_facts
        if f.facility_id == facility_id and f.period_id == period_id
    ]

    payer_days = {payer: 0.0 for payer in PayerCategory}
    flagged_skilled = {payer: 0.0 for payer in PayerCategory}
    derived_skilled = {payer: 0.0 for payer in PayerCategory}
    checked = set()
    resident_days = 0.0
    vent_days = 0.0

    for fact in facts:
        resident_days += fact.days

        if fact.days < 0:
            anomalies.append(Anomaly(
                type=AnomalyType.NEGATIVE_VALUE,
                severity=Severity.ERROR,
                message=(
                    f"Negative census days ({fact.days}) for payer "
                    f"{_label(fact.payer_category)} in {fact.source_file or 'unknown source'}"
                ),
                field="days",
                expected=">= 0",
                actual=fact.days,
            ))

        payer = _known_payer(fact.payer_category)
        if payer is not None:
            payer_days[payer] += fact.days
            # facts without a flag have nothing to reconcile
            if fact.is_skilled is not None:
                checked.add(payer)
                if fact.is_skilled:
                    flagged_skilled[payer] += fact.days
                if payer in SKILLED_PAYERS:
                    derived_skilled[payer] += fact.days

        if fact.is_vent:
            vent_days += fact.days

    skilled_days = sum(payer_days[p] for p in SKILLED_PAYERS)

    # -------------------------------------------------
    # is_skilled flag vs payer classification
    # -------------------------------------------------
    for payer in PayerCategory:
        if payer not in checked:
            continue
        derived = derived_skilled[payer]
        flagged = flagged_skilled[payer]
        if abs(flagged - derived) > flag_tolerance:
            anomalies.append(Anomaly(
                type=AnomalyType.PAYER_DAYS_MISMATCH,
                severity=Severity.WARNING,
                message=(
                    f"{payer.value}: {flagged:g} days flagged skilled but payer "
                    f"classification implies {derived:g} skilled days"
                ),
                field=f"payer_days.{payer.value}",
                expected=derived,
                actual=flagged,
            ))

    if skilled_days > resident_days and resident_days > 0:
        anomalies.append(Anomaly(
            type=AnomalyType.SKILLED_EXCEEDS_TOTAL,
            severity=Severity.ERROR,
            message=f"Skilled days ({skilled_days:g}) exceed total resident days ({resident_days:g})",
            field="skilled_days",
            expected=f"<= {resident_days:g}",
            actual=skilled_days,
        ))

    payer_total = sum(payer_days.values())
    if abs(payer_total - resident_days) > epsilon:
        anomalies.append(Anomaly(
            type=AnomalyType.PAYER_DAYS_MISMATCH,
            severity=Severity.WARNING,
            message=f"Sum of payer days ({payer_total:g}) does not match total resident days ({resident_days:g})",
            field="payer_days",
            expected=resident_days,
            actual=payer_total,
        ))

    if not facts:
        anomalies.append(Anomaly(
            type=AnomalyType.MISSING_DATA,
            severity=Severity.WARNING,
            message=f"No census data found for facility {facility_id} period {period_id}",
            field="census_facts",
        ))

    denominators = Denominators(
        resident_days=resident_days,
        skilled_days=skilled_days,
        vent_days=vent_days,
        payer_days=payer_days,
        occupied_units=None,  # senior living, derived from occupancy facts
    )
    return denominators, anomalies


def _known_payer(value) -> Optional[PayerCategory]:
    if isinstance(value, PayerCategory):
        return value
    try:
        return PayerCategory(value)
    except ValueError:
        return None


def _label(value) -> str:
    return value.value if isinstance(value, PayerCategory) else str(value)


# =====================================================
# RECONCILIATION & HELPERS
# =====================================================

def validate_skilled_days_reconciliation(
    denominators: Denominators,
    tolerance: Optional[float] = None,
    config: Optional[Dict[str, Any]] = None,
) -> Optional[Anomaly]:
    """
    skilled_days must equal the sum of skilled payer days.
    Returns the anomaly, or None when the two agree.
    """
    if tolerance is None:
        tolerance = get_setting(config, "denominators", "skilled_reconciliation_tolerance")
    calculated = sum(denominators.payer_days.get(p, 0.0) for p in SKILLED_PAYERS)

    if abs(denominators.skilled_days - calculated) > tolerance:
        return Anomaly(
            type=AnomalyType.RECONCILIATION_MISMATCH,
            severity=Severity.ERROR,
            message=(
                f"Skilled days ({denominators.skilled_days:g}) does not equal "
                f"sum of skilled payer days ({calculated:g})"
            ),
            field="skilled_days",
            expected=calculated,
            actual=denominators.skilled_days,
        )
    return None


def compute_skilled_mix(denominators: Denominators) -> Optional[float]:
    if denominators.resident_days == 0:
        return None
    return denominators.skilled_days / denominators.resident_days * 100


def get_denominator_value(
    denominators: Denominators,
    denominator_type,
    payer_category: Optional[PayerCategory] = None,
) -> float:
    try:
        kind = DenominatorType(denominator_type)
    except ValueError:
        return 0.0

    if kind is DenominatorType.RESIDENT_DAYS:
        return denominators.resident_days
    if kind is DenominatorType.SKILLED_DAYS:
        return denominators.skilled_days
    if kind is DenominatorType.VENT_DAYS:
        return denominators.vent_days
    if kind is DenominatorType.OCCUPIED_UNITS:
        return denominators.occupied_units or 0.0
    if payer_category is not None:
        payer = _known_payer(payer_category)
        return denominators.payer_days.get(payer, 0.0) if payer else 0.0
    return 0.0


# =====================================================
# GLOSSARY
# =====================================================

DENOMINATOR_GLOSSARY: List[Dict[str, str]] = [
    dict(
        term="Per Patient Day",
        abbreviation="PPD",
        definition="Metric calculated using total resident/patient days as the denominator. Includes all payers.",
        denominator_type="resident_days",
    ),
    dict(
        term="Per Skilled Day",
        abbreviation="PSD",
        definition=(
            "Metric calculated using skilled days as the denominator. Skilled days = "
            "Medicare A + Medicare Advantage (HMO) + Commercial + VA + ISNP days."
        ),
        denominator_type="skilled_days",
    ),
    dict(
        term="Per Vent Day",
        abbreviation="PVD",
        definition="Metric calculated using ventilator patient days as the denominator.",
        denominator_type="vent_days",
    ),
    dict(
        term="Skilled Days",
        abbreviation="SD",
        definition=(
            "Total days for patients covered by skilled payers: Medicare Part A, Medicare "
            "Advantage (MA/HMO), Commercial skilled, VA skilled, and ISNP."
        ),
        denominator_type="skilled_days",
    ),
    dict(
        term="Resident Days",
        abbreviation="RD",
        definition="Total patient days across all payer types for the period.",
        denominator_type="resident_days",
    ),
    dict(
        term="Skilled Mix",
        abbreviation="SM%",
        definition="Percentage of total resident days that are skilled days. Formula: (Skilled Days / Resident Days) x 100.",
        denominator_type="skilled_days",
        payer_scope="skilled",
    ),
]
