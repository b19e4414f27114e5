import pytest

from snfkpi.core.types import (
    CensusFact,
    Facility,
    FinanceFact,
    OccupancyFact,
    PayerCategory,
    SettingType,
)

FACILITY = "101"
PERIOD = "2024-11"


def census(payer, days, is_skilled=None, is_vent=False, facility_id=FACILITY, period_id=PERIOD):
    if is_skilled is None:
        is_skilled = payer in (
            PayerCategory.MEDICARE_A,
            PayerCategory.MEDICARE_ADVANTAGE,
            PayerCategory.COMMERCIAL,
            PayerCategory.VA,
            PayerCategory.ISNP,
        )
    return CensusFact(facility_id, period_id, payer, days, is_skilled, is_vent, "test.xlsx")


def line(category, subcategory, amount, payer=None, department=None,
         facility_id=FACILITY, period_id=PERIOD):
    return FinanceFact(
        facility_id, period_id, category, subcategory, amount,
        department=department, payer_category=payer, source_file="test.xlsx",
    )


def find(results, kpi_id):
    return next(r for r in results if r.kpi_id == kpi_id)


@pytest.fixture
def census_facts():
    """
    500 resident days, 175 skilled (Medicare A + MA + VA).
    """
    return [
        census(PayerCategory.MEDICARE_A, 100),
        census(PayerCategory.MEDICARE_ADVANTAGE, 50),
        census(PayerCategory.VA, 25),
        census(PayerCategory.MEDICAID, 200),
        census(PayerCategory.PRIVATE_PAY, 125),
    ]


@pytest.fixture
def finance_facts():
    return [
        line("Revenue", "Total", 500000),
        line("Revenue", "Total Skilled", 350000),
        line("Revenue", "Skilled", 200000, payer=PayerCategory.MEDICARE_A),
        line("Revenue", "Skilled", 100000, payer=PayerCategory.MEDICARE_ADVANTAGE),
        line("Revenue", "Non-Skilled", 120000, payer=PayerCategory.MEDICAID),
        line("Expense", "Total Operating", 400000),
        line("Expense", "Total Nursing", 150000, department="711"),
        line("Expense", "Nursing Contract Labor", 30000, department="711"),
        line("Expense", "Total Therapy", 50000, department="683"),
        line("Expense", "Total Ancillary", 40000, department="700"),
        line("Expense", "Total Dietary", 60000, department="831"),
    ]


@pytest.fixture
def occupancy_facts():
    return [
        OccupancyFact(
            facility_id=FACILITY,
            period_id=PERIOD,
            operational_beds=100,
            licensed_beds=110,
            total_patient_days=2700,
            total_unit_days=2400,
            second_occupant_days=300,
            operational_occupancy=0.9,
            source_file="occupancy.xlsx",
        )
    ]


@pytest.fixture
def facilities():
    return [
        Facility("101", "Cedar Grove", "ID", SettingType.SNF, region="West"),
        Facility("102", "Pine Ridge", "ID", SettingType.SNF, region="West"),
        Facility("103", "Lakeview", "WA", SettingType.SNF, region="West"),
        Facility("104", "Maple Court", "MT", SettingType.SNF),
    ]
