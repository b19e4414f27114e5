import pytest

from snfkpi.config import DEFAULT_CONFIG, get_setting, load_config
from snfkpi.config.loader import merge_config
from snfkpi.utils.periods import days_in_period, parse_period


def test_defaults_without_file():
    config = load_config()

    assert config == DEFAULT_CONFIG
    assert config is not DEFAULT_CONFIG


def test_user_config_merges_over_defaults(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(
        "estimation:\n"
        "  blended_hourly_rate: 40.0\n"
        "output_dir: out\n"
    )

    config = load_config(str(path))

    assert config["estimation"]["blended_hourly_rate"] == 40.0
    assert config["estimation"]["nursing_wage_ratio"] == 0.70
    assert config["output_dir"] == "out"
    assert config["benchmarks"]["min_cohort_size"] == 2


def test_empty_config_file_is_defaults(tmp_path):
    path = tmp_path / "empty.yaml"
    path.write_text("")

    assert load_config(str(path)) == DEFAULT_CONFIG


def test_missing_config_file():
    with pytest.raises(FileNotFoundError):
        load_config("does/not/exist.yaml")


def test_non_mapping_config_rejected(tmp_path):
    path = tmp_path / "list.yaml"
    path.write_text("- a\n- b\n")

    with pytest.raises(ValueError):
        load_config(str(path))


def test_merge_does_not_mutate_defaults():
    merge_config({"occupancy": {"default_days_in_month": 31}})
    assert DEFAULT_CONFIG["occupancy"]["default_days_in_month"] == 30


def test_get_setting_falls_back():
    assert get_setting(None, "benchmarks", "outlier_k") == 1.5
    assert get_setting({"benchmarks": {}}, "benchmarks", "outlier_k") == 1.5
    assert get_setting({"benchmarks": {"outlier_k": 3}}, "benchmarks", "outlier_k") == 3
    assert get_setting({"occupancy": {"warn_on_default_days": False}},
                       "occupancy", "warn_on_default_days") is False


@pytest.mark.parametrize("period_id,days", [
    ("2024-02", 29),
    ("2023-02", 28),
    ("2024-11", 30),
    ("2024-12", 31),
])
def test_days_in_period(period_id, days):
    assert days_in_period(period_id) == days


@pytest.mark.parametrize("bad", ["2024", "2024-13", "Nov-2024", "2024-11-01"])
def test_bad_period_ids(bad):
    with pytest.raises(ValueError):
        parse_period(bad)


@pytest.mark.parametrize("overrides", [
    {"estimation": {"blended_hourly_rate": 0}},
    {"benchmarks": {"outlier_k": -1}},
    {"occupancy": {"default_days_in_month": "thirty"}},
    {"denominators": "loose"},
])
def test_invalid_numbers_rejected(overrides):
    with pytest.raises(ValueError):
        merge_config(overrides)


def test_zero_epsilon_allowed():
    config = merge_config({"denominators": {"payer_days_epsilon": 0}})
    assert config["denominators"]["payer_days_epsilon"] == 0
