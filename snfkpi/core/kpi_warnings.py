"""
KPI warning contracts.

Warnings are typed so callers can branch on them, but KPIResult carries the
rendered text: downstream consumers match on these exact strings.
"""

from dataclasses import dataclass


class KPIWarning:
    def render(self) -> str:
        raise NotImplementedError("KPI warnings must implement render()")

    def __str__(self) -> str:
        return self.render()


@dataclass(frozen=True)
class ZeroDenominator(KPIWarning):
    kpi_id: str

    def render(self) -> str:
        return f"Denominator is zero for {self.kpi_id}"


@dataclass(frozen=True)
class MissingNumerator(KPIWarning):
    description: str

    def render(self) -> str:
        return f"No data for numerator: {self.description}"


@dataclass(frozen=True)
class EstimatedFromProxy(KPIWarning):
    metric: str
    proxy: str
    reason: str

    def render(self) -> str:
        return f"{self.metric} estimated from {self.proxy} ({self.reason})"


@dataclass(frozen=True)
class UnknownKpi(KPIWarning):
    kpi_id: str

    def render(self) -> str:
        return f"Unknown KPI: {self.kpi_id}"


@dataclass(frozen=True)
class MissingOccupancy(KPIWarning):
    purpose: str = ""

    def render(self) -> str:
        if self.purpose:
            return f"No occupancy data available for {self.purpose} calculation"
        return "No occupancy data available"


@dataclass(frozen=True)
class DefaultedDaysInMonth(KPIWarning):
    days: int

    def render(self) -> str:
        return f"Days in month not supplied; defaulting to {self.days}"


NURSING_HOURS_ESTIMATED = EstimatedFromProxy(
    metric="Nursing hours",
    proxy="expenses",
    reason="no staffing data",
)
