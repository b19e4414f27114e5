from .registry import (
    KPI_REGISTRY,
    MVP_KPI_IDS,
    KPIRegistry,
    get_kpi_glossary,
    get_kpis_for_setting,
    get_mvp_kpis,
)
from .aggregation import FinancialTotals, aggregate_financials
from .calculator import (
    calculate_all_kpis,
    calculate_kpi,
    calculate_mvp_kpis,
    calculation_to_dict,
)
