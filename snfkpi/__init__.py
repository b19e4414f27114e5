"""
SNF KPI Engine v1.0

Denominator resolution, KPI calculation and peer benchmarking for
skilled nursing and senior living portfolios.
"""

from .__version__ import __version__

# Keep package init lightweight; reporting / batch modules are imported explicitly

from .core.denominators import resolve_denominators
from .core.types import (
    Anomaly,
    CensusFact,
    Denominators,
    Facility,
    FinanceFact,
    KPIResult,
    OccupancyFact,
    StaffingFact,
)
from .kpi.calculator import calculate_all_kpis, calculate_mvp_kpis
from .kpi.registry import KPI_REGISTRY, KPIRegistry

__all__ = [
    "__version__",
    "resolve_denominators",
    "calculate_all_kpis",
    "calculate_mvp_kpis",
    "KPI_REGISTRY",
    "KPIRegistry",
    "Anomaly",
    "CensusFact",
    "Denominators",
    "Facility",
    "FinanceFact",
    "KPIResult",
    "OccupancyFact",
    "StaffingFact",
]
