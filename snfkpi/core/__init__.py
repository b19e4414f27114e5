from .types import (
    Anomaly,
    AnomalyType,
    CensusFact,
    DenominatorType,
    Denominators,
    Facility,
    FinanceFact,
    KPIDefinition,
    KPIResult,
    OccupancyFact,
    PayerCategory,
    SKILLED_PAYERS,
    SettingType,
    Severity,
    StaffingFact,
)
from .denominators import (
    DENOMINATOR_GLOSSARY,
    compute_skilled_mix,
    get_denominator_value,
    resolve_denominators,
    validate_skilled_days_reconciliation,
)
