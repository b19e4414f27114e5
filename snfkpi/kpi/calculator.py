"""
KPI Calculator
--------------
Evaluates registry KPIs for one facility/period.

Contract:
- Every requested (registered) KPI yields a KPIResult, never an exception
- value is None whenever the denominator is zero
- percentage KPIs are scaled x100 after the division
- data problems travel as warnings (per KPI) or anomalies (per period)
"""

from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from snfkpi.config.loader import get_setting
from snfkpi.core.denominators import resolve_denominators
from snfkpi.core.kpi_warnings import (
    NURSING_HOURS_ESTIMATED,
    DefaultedDaysInMonth,
    KPIWarning,
    MissingNumerator,
    MissingOccupancy,
    UnknownKpi,
    ZeroDenominator,
)
from snfkpi.core.types import (
    CensusFact,
    Denominators,
    FinanceFact,
    KPIDefinition,
    KPIResult,
    OccupancyFact,
    PayerCategory,
    StaffingFact,
)
from snfkpi.kpi.aggregation import FinancialTotals, aggregate_financials
from snfkpi.kpi.registry import KPI_REGISTRY, MVP_KPI_IDS, KPIRegistry
from snfkpi.utils.logger import get_logger

log = get_logger("snfkpi.calculator")


@dataclass(frozen=True)
class OccupancyData:
    operational_beds: float
    licensed_beds: float
    total_patient_days: float
    total_unit_days: float
    second_occupant_days: float
    operational_occupancy: float
    days_in_month: int
    days_in_month_defaulted: bool = False


def build_occupancy(
    occupancy_facts: Optional[Iterable[OccupancyFact]],
    facility_id: str,
    period_id: str,
    days_in_month: Optional[int] = None,
    config: Optional[Dict[str, Any]] = None,
) -> Optional[OccupancyData]:
    """First occupancy fact for the facility/period, projected for KPI use."""
    if not occupancy_facts:
        return None

    fact = next(
        (o for o in occupancy_facts
         if o.facility_id == facility_id and o.period_id == period_id),
        None,
    )
    if fact is None:
        return None

    defaulted = not days_in_month
    return OccupancyData(
        operational_beds=fact.operational_beds,
        licensed_beds=fact.licensed_beds,
        total_patient_days=fact.total_patient_days,
        total_unit_days=fact.total_unit_days,
        second_occupant_days=fact.second_occupant_days,
        operational_occupancy=fact.operational_occupancy,
        days_in_month=(
            get_setting(config, "occupancy", "default_days_in_month")
            if defaulted else days_in_month
        ),
        days_in_month_defaulted=defaulted,
    )


# =====================================================
# KPI CONTEXT
# =====================================================

@dataclass
class _Context:
    totals: FinancialTotals
    denominators: Denominators
    occupancy: Optional[OccupancyData]
    config: Optional[Dict[str, Any]]
    warnings: List[KPIWarning]

    def payer_days(self, payer: PayerCategory) -> float:
        return self.denominators.payer_days.get(payer, 0.0)

    def patient_days(self) -> float:
        """Occupancy patient days when available, census resident days otherwise."""
        if self.occupancy and self.occupancy.total_patient_days > 0:
            return self.occupancy.total_patient_days
        return self.denominators.resident_days


Formula = Callable[[_Context], Tuple[float, float]]


def _ratio(numerator: str, denominator: str) -> Formula:
    """Financial total over a census denominator."""
    def formula(ctx: _Context):
        return getattr(ctx.totals, numerator), getattr(ctx.denominators, denominator)
    return formula


def _per_payer_day(numerator: str, payer: PayerCategory) -> Formula:
    def formula(ctx: _Context):
        return getattr(ctx.totals, numerator), ctx.payer_days(payer)
    return formula


def _payer_mix(payer: PayerCategory) -> Formula:
    def formula(ctx: _Context):
        return ctx.payer_days(payer), ctx.denominators.resident_days
    return formula


def _per_patient_day(numerator: str) -> Formula:
    def formula(ctx: _Context):
        return getattr(ctx.totals, numerator), ctx.patient_days()
    return formula


def _operating_margin(ctx: _Context):
    t = ctx.totals
    return t.total_revenue - t.total_operating_expenses, t.total_revenue


def _skilled_margin(ctx: _Context):
    t = ctx.totals
    margin = t.skilled_revenue - t.total_therapy_expenses - t.total_ancillary_expenses
    return margin, t.skilled_revenue


def _skilled_mix(ctx: _Context):
    return ctx.denominators.skilled_days, ctx.denominators.resident_days


def _contract_labor(ctx: _Context):
    return ctx.totals.nursing_agency_contract, ctx.totals.total_nursing_expenses


def _nursing_hours(ctx: _Context):
    """
    Observed staffing hours win. Without them, hours are estimated as
    nursing expenses x wage ratio / blended hourly rate (0.70 and $35
    by default) and the result is flagged.
    """
    t = ctx.totals
    hours = 0.0
    if t.total_nursing_hours and t.total_nursing_hours > 0:
        hours = t.total_nursing_hours
    elif t.total_nursing_expenses > 0:
        wage_ratio = get_setting(ctx.config, "estimation", "nursing_wage_ratio")
        hourly_rate = get_setting(ctx.config, "estimation", "blended_hourly_rate")
        hours = t.total_nursing_expenses * wage_ratio / hourly_rate
        ctx.warnings.append(NURSING_HOURS_ESTIMATED)
    return hours, ctx.denominators.resident_days


def _occupancy_pct(ctx: _Context):
    if ctx.occupancy is None:
        ctx.warnings.append(MissingOccupancy())
        return 0.0, 0.0
    # already a fraction; the percentage unit scales it
    return ctx.occupancy.operational_occupancy, 1.0


def _revpor(ctx: _Context):
    occ = ctx.occupancy
    if occ is None or occ.total_unit_days <= 0:
        ctx.warnings.append(MissingOccupancy("RevPOR"))
        return 0.0, 0.0

    if occ.days_in_month_defaulted and get_setting(ctx.config, "occupancy", "warn_on_default_days"):
        ctx.warnings.append(DefaultedDaysInMonth(occ.days_in_month))

    avg_occupied_units = occ.total_unit_days / occ.days_in_month
    return ctx.totals.total_revenue, avg_occupied_units


def _private_pay_pct(ctx: _Context):
    return ctx.payer_days(PayerCategory.PRIVATE_PAY), ctx.patient_days()


KPI_FORMULAS: Dict[str, Formula] = {
    # revenue
    "snf_total_revenue_ppd": _ratio("total_revenue", "resident_days"),
    "snf_skilled_revenue_psd": _ratio("skilled_revenue", "skilled_days"),
    "snf_medicare_a_revenue_psd": _per_payer_day("medicare_a_revenue", PayerCategory.MEDICARE_A),
    "snf_ma_revenue_psd": _per_payer_day("ma_revenue", PayerCategory.MEDICARE_ADVANTAGE),
    "snf_medicaid_revenue_ppd": _per_payer_day("medicaid_revenue", PayerCategory.MEDICAID),

    # mix
    "snf_skilled_mix_pct": _skilled_mix,
    "snf_medicare_a_mix_pct": _payer_mix(PayerCategory.MEDICARE_A),
    "snf_ma_mix_pct": _payer_mix(PayerCategory.MEDICARE_ADVANTAGE),

    # expense
    "snf_total_cost_ppd": _ratio("total_operating_expenses", "resident_days"),
    "snf_nursing_cost_ppd": _ratio("total_nursing_expenses", "resident_days"),
    "snf_therapy_cost_psd": _ratio("total_therapy_expenses", "skilled_days"),
    "snf_ancillary_cost_psd": _ratio("total_ancillary_expenses", "skilled_days"),
    "snf_dietary_cost_ppd": _ratio("total_dietary_expenses", "resident_days"),
    "snf_admin_cost_ppd": _ratio("total_administration_expenses", "resident_days"),

    # labor
    "snf_contract_labor_pct_nursing": _contract_labor,
    "snf_total_nurse_hprd_paid": _nursing_hours,

    # margin
    "snf_operating_margin_pct": _operating_margin,
    "snf_skilled_margin_pct": _skilled_margin,

    # senior living
    "sl_occupancy_pct": _occupancy_pct,
    "sl_revpor": _revpor,
    "sl_revenue_prd": _per_patient_day("total_revenue"),
    "sl_expense_prd": _per_patient_day("total_operating_expenses"),
    "sl_private_pay_pct": _private_pay_pct,
    "sl_operating_margin_pct": _operating_margin,
    "sl_nursing_prd": _per_patient_day("total_nursing_expenses"),
    "sl_dietary_prd": _per_patient_day("total_dietary_expenses"),
    "sl_admin_prd": _per_patient_day("total_administration_expenses"),
}


# =====================================================
# SINGLE KPI
# =====================================================

def calculate_kpi(
    definition: KPIDefinition,
    totals: FinancialTotals,
    denominators: Denominators,
    occupancy: Optional[OccupancyData] = None,
    config: Optional[Dict[str, Any]] = None,
) -> KPIResult:
    ctx = _Context(
        totals=totals,
        denominators=denominators,
        occupancy=occupancy,
        config=config,
        warnings=[],
    )

    formula = KPI_FORMULAS.get(definition.kpi_id)
    if formula is None:
        ctx.warnings.append(UnknownKpi(definition.kpi_id))
        numerator, denominator = 0.0, 0.0
    else:
        numerator, denominator = formula(ctx)

    value = None
    if denominator != 0:
        value = numerator / denominator
        if definition.unit == "percentage":
            value = value * 100
    else:
        ctx.warnings.append(ZeroDenominator(definition.kpi_id))

    if numerator == 0:
        ctx.warnings.append(MissingNumerator(definition.numerator))

    return KPIResult(
        kpi_id=definition.kpi_id,
        value=value,
        numerator_value=numerator,
        denominator_value=denominator,
        denominator_type=definition.denominator_type,
        payer_scope=definition.payer_scope_label,
        unit=definition.unit,
        warnings=[w.render() for w in ctx.warnings],
    )


# =====================================================
# FACILITY / PERIOD
# =====================================================

def calculate_all_kpis(
    finance_facts: Iterable[FinanceFact],
    census_facts: Iterable[CensusFact],
    facility_id: str,
    period_id: str,
    kpi_ids: Optional[Iterable[str]] = None,
    occupancy_facts: Optional[Iterable[OccupancyFact]] = None,
    days_in_month: Optional[int] = None,
    *,
    staffing_facts: Optional[Iterable[StaffingFact]] = None,
    registry: Optional[KPIRegistry] = None,
    config: Optional[Dict[str, Any]] = None,
) -> Dict[str, list]:
    """
    Calculate KPIs for one facility and period.

    Returns {"results": [KPIResult], "anomalies": [Anomaly]}.
    kpi_ids not present in the registry are skipped.
    """
    registry = KPI_REGISTRY if registry is None else registry
    finance_facts = list(finance_facts)
    census_facts = list(census_facts)

    denominators, anomalies = resolve_denominators(
        census_facts, facility_id, period_id, config=config
    )

    totals, finance_anomalies = aggregate_financials(
        finance_facts, facility_id, period_id, staffing_facts=staffing_facts
    )
    anomalies.extend(finance_anomalies)

    occupancy = build_occupancy(
        occupancy_facts, facility_id, period_id, days_in_month, config=config
    )

    definitions = registry.select(kpi_ids)
    results = [
        calculate_kpi(d, totals, denominators, occupancy, config=config)
        for d in definitions
    ]

    log.debug(
        "Facility %s %s: %d KPIs, %d anomalies",
        facility_id, period_id, len(results), len(anomalies),
    )

    return {"results": results, "anomalies": anomalies}


def calculate_mvp_kpis(
    finance_facts: Iterable[FinanceFact],
    census_facts: Iterable[CensusFact],
    facility_id: str,
    period_id: str,
    **kwargs,
) -> Dict[str, list]:
    return calculate_all_kpis(
        finance_facts, census_facts, facility_id, period_id,
        kpi_ids=MVP_KPI_IDS, **kwargs,
    )


def calculation_to_dict(calculation: Dict[str, list]) -> Dict[str, List[Dict[str, Any]]]:
    """JSON-ready copy of a calculate_all_kpis() result."""
    return {
        "results": [r.to_dict() for r in calculation["results"]],
        "anomalies": [a.to_dict() for a in calculation["anomalies"]],
    }
