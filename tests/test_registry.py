import pytest

from snfkpi.core.types import DenominatorType, KPIDefinition, PayerCategory, SettingType
from snfkpi.kpi.registry import (
    KPI_REGISTRY,
    MVP_KPI_IDS,
    KPIRegistry,
    get_kpi_glossary,
    get_kpis_for_setting,
    get_mvp_kpis,
)


def _definition(kpi_id, unit="currency"):
    return KPIDefinition(
        kpi_id=kpi_id,
        name=kpi_id,
        description="test",
        formula="a / b",
        numerator="a",
        denominator_type=DenominatorType.RESIDENT_DAYS,
        payer_scope="all",
        unit=unit,
        settings=(SettingType.SNF,),
        higher_is_better=True,
    )


def test_registry_size_and_keys():
    assert len(KPI_REGISTRY) == 27
    for kpi_id, definition in KPI_REGISTRY.items():
        assert definition.kpi_id == kpi_id


def test_registry_is_immutable():
    with pytest.raises(TypeError):
        KPI_REGISTRY["snf_total_revenue_ppd"] = None


def test_duplicate_ids_rejected():
    with pytest.raises(ValueError, match="Duplicate KPI id"):
        KPIRegistry([_definition("x"), _definition("x")])


def test_invalid_unit_rejected():
    with pytest.raises(ValueError, match="Invalid unit"):
        _definition("x", unit="furlongs")


def test_select_skips_unknown_and_keeps_order():
    selected = KPI_REGISTRY.select(["snf_ma_mix_pct", "nope", "snf_total_revenue_ppd"])
    assert [d.kpi_id for d in selected] == ["snf_ma_mix_pct", "snf_total_revenue_ppd"]


def test_mvp_set():
    assert [d.kpi_id for d in get_mvp_kpis()] == list(MVP_KPI_IDS)
    assert len(MVP_KPI_IDS) == 7


def test_skilled_kpis_use_skilled_days():
    for kpi_id in ("snf_skilled_revenue_psd", "snf_therapy_cost_psd", "snf_ancillary_cost_psd"):
        assert KPI_REGISTRY[kpi_id].denominator_type == DenominatorType.SKILLED_DAYS


def test_payer_kpis_scope_their_payer():
    assert KPI_REGISTRY["snf_medicare_a_revenue_psd"].payer_scope == (PayerCategory.MEDICARE_A,)
    assert KPI_REGISTRY["snf_ma_revenue_psd"].payer_scope_label == "MEDICARE_ADVANTAGE"


def test_kpis_for_setting():
    snf = get_kpis_for_setting(SettingType.SNF)
    alf = get_kpis_for_setting("ALF")

    assert all(d.kpi_id.startswith("snf_") for d in snf)
    assert all(d.kpi_id.startswith("sl_") for d in alf)
    assert len(snf) + len(alf) == len(KPI_REGISTRY)


def test_injected_registry_used_by_helpers():
    registry = KPIRegistry([_definition("custom")])

    assert [d.kpi_id for d in get_kpis_for_setting("SNF", registry)] == ["custom"]
    assert get_mvp_kpis(registry) == []


def test_empty_registry_is_respected():
    assert get_kpi_glossary(KPIRegistry([])) == []


def test_glossary_entries():
    glossary = get_kpi_glossary()
    entry = next(g for g in glossary if g["abbreviation"] == "snf_total_revenue_ppd")

    assert len(glossary) == len(KPI_REGISTRY)
    assert entry["term"] == "Total Revenue PPD"
    assert "Formula: Total Revenue / Resident Days" in entry["definition"]
    assert entry["denominator_type"] == "resident_days"
