"""
KPI Registry
------------
Static KPI definitions keyed by kpi_id.

The registry is built once and never mutated; the calculator receives it
as an argument (KPI_REGISTRY is only the default).
"""

from types import MappingProxyType
from collections.abc import Mapping
from typing import Dict, Iterable, Iterator, List, Optional

from snfkpi.core.types import (
    DenominatorType,
    KPIDefinition,
    PayerCategory,
    SettingType,
)


class KPIRegistry(Mapping):
    """Immutable kpi_id -> KPIDefinition lookup."""

    def __init__(self, definitions: Iterable[KPIDefinition]):
        table: Dict[str, KPIDefinition] = {}
        for definition in definitions:
            if definition.kpi_id in table:
                raise ValueError(f"Duplicate KPI id in registry: {definition.kpi_id}")
            table[definition.kpi_id] = definition
        self._table = MappingProxyType(table)

    def __getitem__(self, kpi_id: str) -> KPIDefinition:
        return self._table[kpi_id]

    def __iter__(self) -> Iterator[str]:
        return iter(self._table)

    def __len__(self) -> int:
        return len(self._table)

    def __repr__(self) -> str:
        return f"KPIRegistry({len(self)} KPIs)"

    def select(self, kpi_ids: Optional[Iterable[str]] = None) -> List[KPIDefinition]:
        """
        Definitions for the requested ids, in request order.
        Ids missing from the registry are skipped.
        """
        if kpi_ids is None:
            return list(self._table.values())
        return [self._table[k] for k in kpi_ids if k in self._table]

    def for_setting(self, setting) -> List[KPIDefinition]:
        setting = SettingType(setting)
        return [d for d in self._table.values() if setting in d.settings]

    def glossary(self, kpi_ids: Optional[Iterable[str]] = None) -> List[Dict[str, str]]:
        return [
            {
                "term": d.name,
                "abbreviation": d.kpi_id,
                "definition": f"{d.description}. Formula: {d.formula}",
                "denominator_type": d.denominator_type.value,
                "payer_scope": d.payer_scope_label.replace(",", ", "),
            }
            for d in self.select(kpi_ids)
        ]


_SNF = (SettingType.SNF,)
_SENIOR_LIVING = (SettingType.SENIOR_LIVING, SettingType.ALF, SettingType.ILF)


def _kpi(kpi_id, name, description, formula, numerator, denominator_type,
         payer_scope, unit, settings, higher_is_better) -> KPIDefinition:
    return KPIDefinition(
        kpi_id=kpi_id,
        name=name,
        description=description,
        formula=formula,
        numerator=numerator,
        denominator_type=DenominatorType(denominator_type),
        payer_scope=payer_scope,
        unit=unit,
        settings=settings,
        higher_is_better=higher_is_better,
    )


# =====================================================
# DEFAULT DEFINITIONS
# =====================================================

_DEFINITIONS = [
    # -------------------------
    # REVENUE
    # -------------------------
    _kpi("snf_total_revenue_ppd", "Total Revenue PPD",
         "Total revenue per patient day across all payers",
         "Total Revenue / Resident Days",
         "total_revenue", "resident_days", "all", "currency", _SNF, True),
    _kpi("snf_skilled_revenue_psd", "Skilled Revenue PSD",
         "Revenue from skilled payers per skilled day. Skilled = Medicare A + MA + Commercial + VA + ISNP.",
         "Skilled Revenue / Skilled Days",
         "skilled_revenue", "skilled_days", "skilled", "currency", _SNF, True),
    _kpi("snf_medicare_a_revenue_psd", "Medicare A Revenue PSD",
         "Medicare Part A revenue per Medicare A day",
         "Medicare A Revenue / Medicare A Days",
         "medicare_a_revenue", "payer_days", (PayerCategory.MEDICARE_A,), "currency", _SNF, True),
    _kpi("snf_ma_revenue_psd", "Medicare Advantage Revenue PSD",
         "Medicare Advantage (HMO) revenue per MA day",
         "MA Revenue / MA Days",
         "ma_revenue", "payer_days", (PayerCategory.MEDICARE_ADVANTAGE,), "currency", _SNF, True),
    _kpi("snf_medicaid_revenue_ppd", "Medicaid Revenue PPD",
         "Medicaid revenue per Medicaid day",
         "Medicaid Revenue / Medicaid Days",
         "medicaid_revenue", "payer_days", (PayerCategory.MEDICAID,), "currency", _SNF, True),

    # -------------------------
    # MIX
    # -------------------------
    _kpi("snf_skilled_mix_pct", "Skilled Mix %",
         "Percentage of total patient days that are skilled days",
         "(Skilled Days / Resident Days) x 100",
         "skilled_days", "resident_days", "skilled", "percentage", _SNF, True),
    _kpi("snf_medicare_a_mix_pct", "Medicare A Mix %",
         "Percentage of total patient days that are Medicare A days",
         "(Medicare A Days / Resident Days) x 100",
         "medicare_a_days", "resident_days", (PayerCategory.MEDICARE_A,), "percentage", _SNF, True),
    _kpi("snf_ma_mix_pct", "Medicare Advantage Mix %",
         "Percentage of total patient days that are MA/HMO days",
         "(MA Days / Resident Days) x 100",
         "ma_days", "resident_days", (PayerCategory.MEDICARE_ADVANTAGE,), "percentage", _SNF, True),

    # -------------------------
    # EXPENSE
    # -------------------------
    _kpi("snf_total_cost_ppd", "Total Operating Cost PPD",
         "Total operating expenses per patient day",
         "Total Operating Expenses / Resident Days",
         "total_operating_expenses", "resident_days", "all", "currency", _SNF, False),
    _kpi("snf_nursing_cost_ppd", "Nursing Cost PPD",
         "Total nursing department expenses per patient day",
         "Total Nursing Expenses / Resident Days",
         "total_nursing_expenses", "resident_days", "all", "currency", _SNF, False),
    _kpi("snf_therapy_cost_psd", "Therapy Cost PSD",
         "Therapy expenses per skilled day",
         "Total Therapy Expenses / Skilled Days",
         "total_therapy_expenses", "skilled_days", "skilled", "currency", _SNF, False),
    _kpi("snf_ancillary_cost_psd", "Ancillary Cost PSD",
         "Ancillary expenses (pharmacy, lab, radiology) per skilled day",
         "Total Ancillary Expenses / Skilled Days",
         "total_ancillary_expenses", "skilled_days", "skilled", "currency", _SNF, False),
    _kpi("snf_dietary_cost_ppd", "Dietary Cost PPD",
         "Dietary expenses per patient day",
         "Total Dietary Expenses / Resident Days",
         "total_dietary_expenses", "resident_days", "all", "currency", _SNF, False),
    _kpi("snf_admin_cost_ppd", "Administration Cost PPD",
         "Administration expenses per patient day",
         "Total Administration Expenses / Resident Days",
         "total_administration_expenses", "resident_days", "all", "currency", _SNF, False),

    # -------------------------
    # LABOR
    # -------------------------
    # denominator_type is nominal for the contract-labor ratio
    _kpi("snf_contract_labor_pct_nursing", "Contract Labor % (Nursing)",
         "Percentage of nursing labor costs from agency/contract staff",
         "(Nursing Agency/Contract Cost / Total Nursing Expenses) x 100",
         "nursing_agency_contract", "resident_days", "all", "percentage", _SNF, False),
    _kpi("snf_total_nurse_hprd_paid", "Nursing Hours PPD",
         "Total nursing hours per patient day (paid hours)",
         "Total Nursing Hours / Patient Days",
         "total_nursing_hours", "resident_days", "all", "hours", _SNF, True),

    # -------------------------
    # MARGIN
    # -------------------------
    _kpi("snf_operating_margin_pct", "Operating Margin %",
         "Operating income as percentage of total revenue",
         "((Total Revenue - Total Operating Expenses) / Total Revenue) x 100",
         "operating_income", "resident_days", "all", "percentage", _SNF, True),
    _kpi("snf_skilled_margin_pct", "Skilled Margin %",
         "Margin on skilled payer revenue after therapy and ancillary costs",
         "((Skilled Revenue - Therapy Cost - Ancillary Cost) / Skilled Revenue) x 100",
         "skilled_margin", "skilled_days", "skilled", "percentage", _SNF, True),

    # -------------------------
    # SENIOR LIVING (ALF / ILF)
    # -------------------------
    _kpi("sl_occupancy_pct", "Occupancy %",
         "Operational occupancy percentage",
         "Total Unit Days / (Operational Beds x Days in Month) x 100",
         "total_unit_days", "occupied_units", "all", "percentage", _SENIOR_LIVING, True),
    _kpi("sl_revpor", "RevPOR (Monthly)",
         "Revenue per occupied room per month",
         "Total Revenue / (Total Unit Days / Days in Month)",
         "total_revenue", "occupied_units", "all", "currency", _SENIOR_LIVING, True),
    _kpi("sl_revenue_prd", "Revenue PPD",
         "Total revenue per patient day",
         "Total Revenue / Total Patient Days",
         "total_revenue", "resident_days", "all", "currency", _SENIOR_LIVING, True),
    _kpi("sl_expense_prd", "Expense PPD",
         "Total operating expense per patient day",
         "Total Operating Expenses / Total Patient Days",
         "total_operating_expenses", "resident_days", "all", "currency", _SENIOR_LIVING, False),
    _kpi("sl_private_pay_pct", "Private Pay %",
         "Percentage of patient days from private pay residents",
         "(Private Pay Days / Total Patient Days) x 100",
         "private_pay_days", "resident_days", (PayerCategory.PRIVATE_PAY,), "percentage", _SENIOR_LIVING, True),
    _kpi("sl_operating_margin_pct", "Operating Margin %",
         "Operating income as percentage of total revenue",
         "((Total Revenue - Total Operating Expenses) / Total Revenue) x 100",
         "operating_income", "resident_days", "all", "percentage", _SENIOR_LIVING, True),
    _kpi("sl_nursing_prd", "Nursing Cost PPD",
         "Nursing expenses per patient day",
         "Total Nursing Expenses / Total Patient Days",
         "total_nursing_expenses", "resident_days", "all", "currency", _SENIOR_LIVING, False),
    _kpi("sl_dietary_prd", "Dietary Cost PPD",
         "Dietary expenses per patient day",
         "Total Dietary Expenses / Total Patient Days",
         "total_dietary_expenses", "resident_days", "all", "currency", _SENIOR_LIVING, False),
    _kpi("sl_admin_prd", "Admin Cost PPD",
         "Administration expenses per patient day",
         "Total Administration Expenses / Total Patient Days",
         "total_administration_expenses", "resident_days", "all", "currency", _SENIOR_LIVING, False),
]

KPI_REGISTRY = KPIRegistry(_DEFINITIONS)

MVP_KPI_IDS = (
    "snf_total_revenue_ppd",
    "snf_skilled_revenue_psd",
    "snf_skilled_mix_pct",
    "snf_total_cost_ppd",
    "snf_nursing_cost_ppd",
    "snf_contract_labor_pct_nursing",
    "snf_operating_margin_pct",
)


def get_kpis_for_setting(setting, registry: Optional[KPIRegistry] = None) -> List[KPIDefinition]:
    return _default(registry).for_setting(setting)


def get_mvp_kpis(registry: Optional[KPIRegistry] = None) -> List[KPIDefinition]:
    return _default(registry).select(MVP_KPI_IDS)


def get_kpi_glossary(registry: Optional[KPIRegistry] = None) -> List[Dict[str, str]]:
    return _default(registry).glossary()


def _default(registry: Optional[KPIRegistry]) -> KPIRegistry:
    return KPI_REGISTRY if registry is None else registry
