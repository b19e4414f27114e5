"""
Core Data Contracts
-------------------
Fact, denominator, KPI and anomaly contracts shared by the resolver,
the calculator and the reporting layer.

Rules:
- Facts are immutable (produced upstream, consumed read-only)
- Output objects are plain data and serialize via to_dict()
- No formatting / locale concerns live here
"""

import math
from dataclasses import asdict, dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union


# =====================================================
# ENUMS
# =====================================================

class PayerCategory(str, Enum):
    MEDICARE_A = "MEDICARE_A"
    MEDICARE_ADVANTAGE = "MEDICARE_ADVANTAGE"  # HMO / MA plans
    MANAGED_CARE = "MANAGED_CARE"              # non-MA managed care
    COMMERCIAL = "COMMERCIAL"
    VA = "VA"
    MEDICAID = "MEDICAID"
    MANAGED_MEDICAID = "MANAGED_MEDICAID"
    PRIVATE_PAY = "PRIVATE_PAY"
    HOSPICE = "HOSPICE"
    ISNP = "ISNP"                              # Institutional Special Needs Plan
    OTHER = "OTHER"


# Skilled payers define the PSD denominator
SKILLED_PAYERS: Tuple[PayerCategory, ...] = (
    PayerCategory.MEDICARE_A,
    PayerCategory.MEDICARE_ADVANTAGE,
    PayerCategory.COMMERCIAL,
    PayerCategory.VA,
    PayerCategory.ISNP,
)


class DenominatorType(str, Enum):
    RESIDENT_DAYS = "resident_days"
    SKILLED_DAYS = "skilled_days"
    PAYER_DAYS = "payer_days"
    OCCUPIED_UNITS = "occupied_units"
    VENT_DAYS = "vent_days"


class AnomalyType(str, Enum):
    RECONCILIATION_MISMATCH = "reconciliation_mismatch"
    SKILLED_EXCEEDS_TOTAL = "skilled_exceeds_total"
    PAYER_DAYS_MISMATCH = "payer_days_mismatch"
    MISSING_DATA = "missing_data"
    OUTLIER = "outlier"
    NEGATIVE_VALUE = "negative_value"
    UNMAPPED_ACCOUNT = "unmapped_account"


class Severity(str, Enum):
    WARNING = "warning"
    ERROR = "error"


class SettingType(str, Enum):
    SNF = "SNF"
    ALF = "ALF"
    ILF = "ILF"
    SENIOR_LIVING = "SeniorLiving"


KPI_UNITS = ("currency", "percentage", "ratio", "hours", "days")


def parse_payer(value: Any) -> Optional[PayerCategory]:
    """
    Lenient payer coercion used at the fact boundary.
    Unknown labels return None (callers decide how to report them).
    """
    if value is None or isinstance(value, PayerCategory):
        return value
    if isinstance(value, float) and math.isnan(value):
        return None
    try:
        return PayerCategory(str(value).strip().upper())
    except ValueError:
        return None


def _as_bool(value: Any) -> bool:
    # CSV sources hand over "true"/"0"/"yes"; bool("False") would be True
    if value is None:
        return False
    if isinstance(value, str):
        return value.strip().lower() in ("true", "1", "yes", "y", "t")
    if isinstance(value, float) and math.isnan(value):
        return False
    return bool(value)


def _as_flag(value: Any) -> Optional[bool]:
    # blank cell or no column: flag unknown, not False
    if value is None or (isinstance(value, float) and math.isnan(value)):
        return None
    return _as_bool(value)


def _as_text(value: Any) -> Optional[str]:
    # numeric codes come back from read_csv as int, or float when a cell is blank
    if value is None or (isinstance(value, float) and math.isnan(value)):
        return None
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _jsonable(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, Mapping):
        return {_jsonable(k): _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    return value


# =====================================================
# FACTS (UPSTREAM, READ-ONLY)
# =====================================================

@dataclass(frozen=True)
class FinanceFact:
    facility_id: str
    period_id: str  # yyyy-mm
    account_category: str
    account_subcategory: str
    amount: float
    department: Optional[str] = None
    payer_category: Optional[Union[PayerCategory, str]] = None
    source_file: str = ""

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "FinanceFact":
        return cls(
            facility_id=str(data["facility_id"]),
            period_id=str(data["period_id"]),
            account_category=str(data["account_category"]),
            account_subcategory=str(data["account_subcategory"]),
            amount=float(data.get("amount") or 0.0),
            department=_as_text(data.get("department")),
            payer_category=parse_payer(data.get("payer_category")),
            source_file=str(data.get("source_file") or ""),
        )


@dataclass(frozen=True)
class CensusFact:
    facility_id: str
    period_id: str
    payer_category: Union[PayerCategory, str]
    days: float
    is_skilled: Optional[bool] = None  # None: source carries no flag
    is_vent: bool = False
    source_file: str = ""

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "CensusFact":
        raw_payer = data.get("payer_category")
        return cls(
            facility_id=str(data["facility_id"]),
            period_id=str(data["period_id"]),
            # keep unknown labels as text so the resolver can flag them
            payer_category=parse_payer(raw_payer) or str(raw_payer),
            days=float(data.get("days") or 0.0),
            is_skilled=_as_flag(data.get("is_skilled")),
            is_vent=_as_bool(data.get("is_vent")),
            source_file=str(data.get("source_file") or ""),
        )


@dataclass(frozen=True)
class OccupancyFact:
    facility_id: str
    period_id: str
    operational_beds: float
    licensed_beds: float
    total_patient_days: float
    total_unit_days: float
    second_occupant_days: float
    operational_occupancy: float  # fraction, 0.895 = 89.5%
    source_file: str = ""

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "OccupancyFact":
        return cls(
            facility_id=str(data["facility_id"]),
            period_id=str(data["period_id"]),
            operational_beds=float(data.get("operational_beds") or 0.0),
            licensed_beds=float(data.get("licensed_beds") or 0.0),
            total_patient_days=float(data.get("total_patient_days") or 0.0),
            total_unit_days=float(data.get("total_unit_days") or 0.0),
            second_occupant_days=float(data.get("second_occupant_days") or 0.0),
            operational_occupancy=float(data.get("operational_occupancy") or 0.0),
            source_file=str(data.get("source_file") or ""),
        )


@dataclass(frozen=True)
class StaffingFact:
    facility_id: str
    period_id: str
    department: str
    staff_type: str  # RN, LPN, CNA, Contract ...
    hours: float
    cost: float = 0.0
    fte: Optional[float] = None
    is_contract_labor: bool = False
    source_file: str = ""

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "StaffingFact":
        fte = data.get("fte")
        return cls(
            facility_id=str(data["facility_id"]),
            period_id=str(data["period_id"]),
            department=str(data.get("department") or ""),
            staff_type=str(data.get("staff_type") or ""),
            hours=float(data.get("hours") or 0.0),
            cost=float(data.get("cost") or 0.0),
            fte=None if fte is None else float(fte),
            is_contract_labor=_as_bool(data.get("is_contract_labor")),
            source_file=str(data.get("source_file") or ""),
        )


@dataclass(frozen=True)
class Facility:
    facility_id: str
    name: str
    state: str
    setting: SettingType = SettingType.SNF
    region: Optional[str] = None
    therapy_delivery_model: str = "UNKNOWN"
    licensed_beds: Optional[int] = None
    operational_beds: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return _jsonable(asdict(self))


# =====================================================
# DENOMINATORS
# =====================================================

@dataclass(frozen=True)
class Denominators:
    resident_days: float
    skilled_days: float
    vent_days: float
    payer_days: Mapping[PayerCategory, float]
    occupied_units: Optional[float] = None

    def __post_init__(self):
        # every category present, read-only after construction
        filled = {payer: 0.0 for payer in PayerCategory}
        for payer, days in self.payer_days.items():
            filled[PayerCategory(payer)] = days
        object.__setattr__(self, "payer_days", MappingProxyType(filled))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "resident_days": self.resident_days,
            "skilled_days": self.skilled_days,
            "vent_days": self.vent_days,
            "occupied_units": self.occupied_units,
            "payer_days": _jsonable(dict(self.payer_days)),
        }


# =====================================================
# KPI CONTRACTS
# =====================================================

PayerScope = Union[str, Tuple[PayerCategory, ...]]


@dataclass(frozen=True)
class KPIDefinition:
    kpi_id: str
    name: str
    description: str
    formula: str
    numerator: str
    denominator_type: DenominatorType
    payer_scope: PayerScope
    unit: str
    settings: Tuple[SettingType, ...]
    higher_is_better: bool

    def __post_init__(self):
        if self.unit not in KPI_UNITS:
            raise ValueError(f"Invalid unit '{self.unit}' for KPI {self.kpi_id}")

    @property
    def payer_scope_label(self) -> str:
        if isinstance(self.payer_scope, (list, tuple)):
            return ",".join(_jsonable(p) for p in self.payer_scope)
        return str(self.payer_scope)


@dataclass
class KPIResult:
    kpi_id: str
    value: Optional[float]
    numerator_value: float
    denominator_value: float
    denominator_type: DenominatorType
    payer_scope: str
    unit: str
    warnings: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return _jsonable(asdict(self))


@dataclass
class Anomaly:
    type: AnomalyType
    severity: Severity
    message: str
    field: str
    expected: Optional[Union[float, str]] = None
    actual: Optional[Union[float, str]] = None

    def to_dict(self) -> Dict[str, Any]:
        data = _jsonable(asdict(self))
        # optional keys are omitted rather than null
        for key in ("expected", "actual"):
            if data[key] is None:
                data.pop(key)
        return data


@dataclass(frozen=True)
class BenchmarkStats:
    count: int
    min: float
    p25: float
    median: float
    p75: float
    max: float
    mean: float
    std_dev: float

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class Benchmark:
    kpi_id: str
    cohort: str  # all | state:ID | region:West | setting:SNF
    period_id: str
    stats: BenchmarkStats

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kpi_id": self.kpi_id,
            "cohort": self.cohort,
            "period_id": self.period_id,
            "stats": self.stats.to_dict(),
        }
