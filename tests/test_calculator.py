import pytest

from conftest import FACILITY, PERIOD, census, find, line
from snfkpi.core.types import (
    DenominatorType,
    KPIDefinition,
    PayerCategory,
    SettingType,
    StaffingFact,
)
from snfkpi.kpi.calculator import (
    KPI_FORMULAS,
    build_occupancy,
    calculate_all_kpis,
    calculate_mvp_kpis,
    calculation_to_dict,
)
from snfkpi.kpi.registry import KPI_REGISTRY, MVP_KPI_IDS, KPIRegistry


def calculate(finance, census_facts, kpi_ids=None, **kwargs):
    return calculate_all_kpis(finance, census_facts, FACILITY, PERIOD, kpi_ids, **kwargs)


# -------------------------------------------------
# Fixture portfolio values
# -------------------------------------------------

@pytest.mark.parametrize("kpi_id,expected", [
    ("snf_total_revenue_ppd", 1000.0),            # 500000 / 500
    ("snf_skilled_revenue_psd", 2000.0),          # 350000 / 175
    ("snf_medicare_a_revenue_psd", 2000.0),       # 200000 / 100
    ("snf_ma_revenue_psd", 2000.0),               # 100000 / 50
    ("snf_medicaid_revenue_ppd", 600.0),          # 120000 / 200
    ("snf_skilled_mix_pct", 35.0),
    ("snf_medicare_a_mix_pct", 20.0),
    ("snf_ma_mix_pct", 10.0),
    ("snf_total_cost_ppd", 800.0),
    ("snf_nursing_cost_ppd", 300.0),
    ("snf_therapy_cost_psd", 285.714),
    ("snf_ancillary_cost_psd", 228.571),
    ("snf_dietary_cost_ppd", 120.0),
    ("snf_contract_labor_pct_nursing", 20.0),
    ("snf_operating_margin_pct", 20.0),
    ("snf_skilled_margin_pct", 74.286),           # (350000 - 50000 - 40000) / 350000
])
def test_fixture_kpi_values(finance_facts, census_facts, kpi_id, expected):
    result = find(calculate(finance_facts, census_facts, [kpi_id])["results"], kpi_id)

    assert result.value == pytest.approx(expected, rel=1e-4)


def test_result_carries_definition_metadata(finance_facts, census_facts):
    result = calculate(finance_facts, census_facts, ["snf_total_revenue_ppd"])["results"][0]

    assert result.denominator_type == DenominatorType.RESIDENT_DAYS
    assert result.numerator_value == 500000
    assert result.denominator_value == 500
    assert result.unit == "currency"
    assert result.payer_scope == "all"
    assert result.warnings == []


def test_payer_scope_tuple_is_flattened(finance_facts, census_facts):
    result = calculate(finance_facts, census_facts, ["snf_medicare_a_revenue_psd"])["results"][0]
    assert result.payer_scope == "MEDICARE_A"


def test_every_registered_kpi_has_a_formula():
    assert set(KPI_REGISTRY) == set(KPI_FORMULAS)


def test_all_kpis_returned_in_registry_order(finance_facts, census_facts):
    results = calculate(finance_facts, census_facts)["results"]
    assert [r.kpi_id for r in results] == list(KPI_REGISTRY)


def test_requested_order_is_kept(finance_facts, census_facts):
    ids = ["snf_operating_margin_pct", "snf_total_revenue_ppd"]
    results = calculate(finance_facts, census_facts, ids)["results"]
    assert [r.kpi_id for r in results] == ids


# -------------------------------------------------
# Scenarios
# -------------------------------------------------

def test_mvp_revenue_ppd():
    finance = [line("Revenue", "Total", 50000)]
    census_facts = [
        census(PayerCategory.MEDICARE_A, 50),
        census(PayerCategory.MEDICAID, 100),
    ]

    calc = calculate_mvp_kpis(finance, census_facts, FACILITY, PERIOD)

    assert [r.kpi_id for r in calc["results"]] == list(MVP_KPI_IDS)
    assert find(calc["results"], "snf_total_revenue_ppd").value == pytest.approx(333.33, abs=0.01)


def test_unregistered_kpi_id_is_skipped(finance_facts, census_facts):
    calc = calculate(finance_facts, census_facts, ["nonexistent_kpi"])
    assert calc["results"] == []


def test_skilled_mix_scaled_to_percent():
    census_facts = [
        census(PayerCategory.MEDICARE_A, 25),
        census(PayerCategory.MEDICAID, 75),
    ]
    result = calculate([], census_facts, ["snf_skilled_mix_pct"])["results"][0]

    assert result.value == 25.0


def test_percentage_kpis_scale_after_division(finance_facts, census_facts):
    for result in calculate(finance_facts, census_facts)["results"]:
        if result.unit == "percentage" and result.denominator_value != 0:
            expected = result.numerator_value / result.denominator_value * 100
            assert result.value == pytest.approx(expected)


def test_nursing_hours_estimated_from_expenses():
    finance = [line("Expense", "Total Nursing", 100000)]
    census_facts = [census(PayerCategory.MEDICAID, 400)]

    result = calculate(finance, census_facts, ["snf_total_nurse_hprd_paid"])["results"][0]

    assert result.numerator_value == pytest.approx(2000)
    assert result.value == pytest.approx(5.0)
    assert "Nursing hours estimated from expenses (no staffing data)" in result.warnings
    assert any("estimated from expenses" in w for w in result.warnings)


def test_observed_staffing_hours_win():
    finance = [line("Expense", "Total Nursing", 100000)]
    census_facts = [census(PayerCategory.MEDICAID, 400)]
    staffing = [StaffingFact(FACILITY, PERIOD, "Nursing", "RN", 1600)]

    result = calculate(
        finance, census_facts, ["snf_total_nurse_hprd_paid"], staffing_facts=staffing
    )["results"][0]

    assert result.numerator_value == 1600
    assert result.value == 4.0
    assert result.warnings == []


def test_estimation_constants_configurable():
    finance = [line("Expense", "Total Nursing", 100000)]
    census_facts = [census(PayerCategory.MEDICAID, 400)]
    config = {"estimation": {"nursing_wage_ratio": 0.5, "blended_hourly_rate": 25.0}}

    result = calculate(
        finance, census_facts, ["snf_total_nurse_hprd_paid"], config=config
    )["results"][0]

    assert result.numerator_value == pytest.approx(2000)


def test_zero_denominator_gives_none(finance_facts):
    results = calculate(finance_facts, [])["results"]
    result = find(results, "snf_total_revenue_ppd")

    assert result.value is None
    assert result.denominator_value == 0
    assert "Denominator is zero for snf_total_revenue_ppd" in result.warnings


def test_zero_numerator_warns_alongside_value(finance_facts, census_facts):
    result = calculate(finance_facts, census_facts, ["snf_admin_cost_ppd"])["results"][0]

    assert result.value == 0
    assert result.warnings == ["No data for numerator: total_administration_expenses"]


def test_zero_numerator_and_denominator_both_warn():
    result = calculate([], [], ["snf_dietary_cost_ppd"])["results"][0]

    assert result.value is None
    assert result.warnings == [
        "Denominator is zero for snf_dietary_cost_ppd",
        "No data for numerator: total_dietary_expenses",
    ]


def test_negative_margin_allowed():
    finance = [
        line("Revenue", "Total", 100),
        line("Expense", "Total Operating", 150),
    ]
    result = calculate(finance, [], ["snf_operating_margin_pct"])["results"][0]

    assert result.value == pytest.approx(-50.0)


def test_explicit_total_overrides_components():
    finance = [
        line("Revenue", "Total", 1000),
        line("Revenue", "Total Skilled", 600),
        line("Revenue", "Total Non-Skilled", 600),
    ]
    census_facts = [census(PayerCategory.MEDICAID, 10)]

    result = calculate(finance, census_facts, ["snf_total_revenue_ppd"])["results"][0]

    assert result.numerator_value == 1000


def test_registered_kpi_without_formula_is_unknown(finance_facts, census_facts):
    custom = KPIDefinition(
        kpi_id="snf_laundry_cost_ppd",
        name="Laundry Cost PPD",
        description="Laundry expenses per patient day",
        formula="Total Laundry Expenses / Resident Days",
        numerator="total_laundry_expenses",
        denominator_type=DenominatorType.RESIDENT_DAYS,
        payer_scope="all",
        unit="currency",
        settings=(SettingType.SNF,),
        higher_is_better=False,
    )
    registry = KPIRegistry([custom])

    calc = calculate(finance_facts, census_facts, registry=registry)

    assert len(calc["results"]) == 1
    result = calc["results"][0]
    assert result.value is None
    assert result.warnings[0] == "Unknown KPI: snf_laundry_cost_ppd"
    assert "Denominator is zero for snf_laundry_cost_ppd" in result.warnings


def test_anomalies_collected_from_census_and_finance(finance_facts):
    finance = finance_facts + [line("Revenue", "Interest Income", 10)]
    calc = calculate(finance, [census(PayerCategory.MEDICAID, -1)])

    kinds = {a.type.value for a in calc["anomalies"]}
    assert {"negative_value", "unmapped_account"} <= kinds


# -------------------------------------------------
# Senior living
# -------------------------------------------------

SL_FALLBACK_KPIS = [
    "sl_revenue_prd", "sl_expense_prd", "sl_private_pay_pct",
    "sl_nursing_prd", "sl_dietary_prd", "sl_admin_prd",
]


def test_sl_kpis_fall_back_to_resident_days(finance_facts, census_facts):
    results = calculate(finance_facts, census_facts, SL_FALLBACK_KPIS)["results"]

    for result in results:
        assert result.denominator_value == 500
    assert find(results, "sl_revenue_prd").value == pytest.approx(1000)
    assert find(results, "sl_private_pay_pct").value == pytest.approx(25.0)


def test_sl_kpis_use_patient_days_from_occupancy(finance_facts, census_facts, occupancy_facts):
    results = calculate(
        finance_facts, census_facts, SL_FALLBACK_KPIS,
        occupancy_facts=occupancy_facts, days_in_month=30,
    )["results"]

    assert find(results, "sl_revenue_prd").value == pytest.approx(500000 / 2700)
    assert find(results, "sl_private_pay_pct").value == pytest.approx(125 / 2700 * 100)


def test_occupancy_kpis_without_occupancy(finance_facts, census_facts):
    results = calculate(finance_facts, census_facts, ["sl_occupancy_pct", "sl_revpor"])["results"]

    occupancy = find(results, "sl_occupancy_pct")
    assert occupancy.value is None
    assert "No occupancy data available" in occupancy.warnings

    revpor = find(results, "sl_revpor")
    assert revpor.value is None
    assert "No occupancy data available for RevPOR calculation" in revpor.warnings


def test_occupancy_pct(finance_facts, census_facts, occupancy_facts):
    result = calculate(
        finance_facts, census_facts, ["sl_occupancy_pct"], occupancy_facts=occupancy_facts
    )["results"][0]

    assert result.value == pytest.approx(90.0)


def test_revpor_with_supplied_days(finance_facts, census_facts, occupancy_facts):
    result = calculate(
        finance_facts, census_facts, ["sl_revpor"],
        occupancy_facts=occupancy_facts, days_in_month=30,
    )["results"][0]

    # 2400 unit days / 30 = 80 occupied units
    assert result.denominator_value == pytest.approx(80)
    assert result.value == pytest.approx(6250)
    assert result.warnings == []


def test_revpor_defaults_to_thirty_days_with_warning(finance_facts, census_facts, occupancy_facts):
    result = calculate(
        finance_facts, census_facts, ["sl_revpor"], occupancy_facts=occupancy_facts
    )["results"][0]

    assert result.value == pytest.approx(6250)
    assert result.warnings == ["Days in month not supplied; defaulting to 30"]


def test_default_days_warning_can_be_disabled(finance_facts, census_facts, occupancy_facts):
    config = {"occupancy": {"warn_on_default_days": False}}
    result = calculate(
        finance_facts, census_facts, ["sl_revpor"],
        occupancy_facts=occupancy_facts, config=config,
    )["results"][0]

    assert result.warnings == []


def test_build_occupancy_matches_facility_and_period(occupancy_facts):
    assert build_occupancy(occupancy_facts, "999", PERIOD) is None
    assert build_occupancy([], FACILITY, PERIOD) is None

    occupancy = build_occupancy(occupancy_facts, FACILITY, PERIOD, days_in_month=31)
    assert occupancy.days_in_month == 31
    assert occupancy.days_in_month_defaulted is False


# -------------------------------------------------
# Serialization
# -------------------------------------------------

def test_calculation_to_dict_is_plain_data(finance_facts, census_facts):
    data = calculation_to_dict(calculate(finance_facts, [census(PayerCategory.MEDICAID, -1)]))

    first = data["results"][0]
    assert first["denominator_type"] == "resident_days"
    assert isinstance(first["warnings"], list)

    anomaly = data["anomalies"][0]
    assert anomaly["type"] == "negative_value"
    assert anomaly["severity"] == "error"
