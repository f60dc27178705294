import pytest

from landtrendr.config import (
    DEFAULT_RUN_PARAMS,
    load_config,
    make_boolean,
    validate_change_params,
    validate_export_params,
    validate_run_params,
)


@pytest.mark.parametrize(
    "value, expected",
    [(True, True), (False, False), ("false", False), ("False", False), ("true", True), (None, False)],
)
def test_make_boolean(value, expected):
    assert make_boolean(value) is expected


def test_run_params_defaults():
    assert validate_run_params() == DEFAULT_RUN_PARAMS


def test_run_params_merge():
    params = validate_run_params({"maxSegments": 8, "preventOneYearRecovery": "false"})
    assert params["maxSegments"] == 8
    assert params["preventOneYearRecovery"] is False
    assert params["spikeThreshold"] == DEFAULT_RUN_PARAMS["spikeThreshold"]


def test_run_params_unknown_key():
    with pytest.raises(ValueError, match="maxSegs"):
        validate_run_params({"maxSegs": 4})


@pytest.mark.parametrize(
    "params",
    [{"maxSegments": 0}, {"maxSegments": 2.5}, {"spikeThreshold": 1.5}, {"pvalThreshold": "low"}],
)
def test_run_params_out_of_range(params):
    with pytest.raises(ValueError):
        validate_run_params(params)


def test_change_params_defaults_turn_filters_off():
    params = validate_change_params()
    assert params["delta"] == "loss"
    assert params["sort"] == "greatest"
    assert all(params[f] is None for f in ["year", "mag", "dur", "preval", "mmu"])


def test_unchecked_filter_is_dropped():
    params = validate_change_params({"mag": {"checked": False, "value": 200}})
    assert params["mag"] is None


def test_change_params_normalizes_case_and_operator():
    params = validate_change_params(
        {"delta": "GAIN", "sort": "Newest", "dur": {"value": 4}}
    )
    assert params["delta"] == "gain"
    assert params["sort"] == "newest"
    assert params["dur"]["operator"] == ">"


@pytest.mark.parametrize(
    "params",
    [
        {"delta": "up"},
        {"sort": "biggest"},
        {"index": "FOO"},
        {"year": {"start": 2010}},
        {"year": {"start": 2010, "end": 2000}},
        {"mag": {"value": 100, "operator": "=="}},
        {"mag": {"year1": 100}},
        {"dur": {"operator": "<"}},
        {"mmu": {"value": 2048}},
        {"mmu": {"value": 0}},
        {"colour": "red"},
    ],
)
def test_change_params_rejected(params):
    with pytest.raises((ValueError, RuntimeError)):
        validate_change_params(params)


def test_export_asset_needs_root():
    with pytest.raises(ValueError, match="asset_root"):
        validate_export_params({"destination": "asset"})


def test_load_config(tmp_path):
    cfg = tmp_path / "lt.yaml"
    cfg.write_text(
        "run_params:\n"
        "  maxSegments: 8\n"
        "change_params:\n"
        "  index: NDVI\n"
        "  sort: newest\n"
        "  mmu: {value: 11}\n"
        "export:\n"
        "  folder: lt_out\n"
    )
    config = load_config(cfg)
    assert config["run_params"]["maxSegments"] == 8
    assert config["change_params"]["index"] == "NDVI"
    assert config["change_params"]["mmu"] == {"value": 11}
    assert config["export"]["folder"] == "lt_out"
    assert config["export"]["scale"] == 30


def test_load_empty_config(tmp_path):
    cfg = tmp_path / "empty.yaml"
    cfg.write_text("")
    config = load_config(cfg)
    assert config["run_params"] == DEFAULT_RUN_PARAMS


def test_load_missing_config(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_config(tmp_path / "nope.yaml")


@pytest.mark.parametrize(
    "mag", [{"year1": "100", "year20": 290}, {"year1": 100, "year20": None}]
)
def test_duration_dependent_mag_needs_numbers(mag):
    with pytest.raises(ValueError, match="year"):
        validate_change_params({"mag": mag})


def test_duration_dependent_mag_accepted():
    params = validate_change_params({"mag": {"year1": 100, "year20": 290}})
    assert params["mag"] == {"year1": 100, "year20": 290}
