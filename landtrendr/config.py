"""
Configuration for LandTrendr runs and for the change maps built from their
outputs.

Parameters can come from a YAML file with up to three top-level sections:

    run_params:       # passed to ee.Algorithms.TemporalSegmentation.LandTrendr
      maxSegments: 6
    change_params:    # see landtrendr.change.get_change_map
      index: NBR
      delta: loss
      sort: greatest
      year: {start: 1990, end: 2020}
      mag: {value: 200, operator: ">", dsnr: false}
      dur: {value: 4, operator: "<"}
      preval: {value: 300, operator: ">"}
      mmu: {value: 11}
    export:           # see landtrendr.export
      folder: landtrendr
      scale: 30
      crs: EPSG:5070

Anything not given falls back to the defaults below. Segmentation parameter
defaults are the ones recommended in the LT-GEE guide:
https://emapr.github.io/LT-GEE/lt-gee-requirements.html#lt-parameters
"""

import copy
import logging
import math
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

from .indices import get_index_info

logger = logging.getLogger(__name__)

DEFAULT_RUN_PARAMS = {
    "maxSegments": 6,
    "spikeThreshold": 0.9,
    "vertexCountOvershoot": 3,
    "preventOneYearRecovery": True,
    "recoveryThreshold": 0.25,
    "pvalThreshold": 0.05,
    "bestModelProportion": 0.75,
    "minObservationsNeeded": 6,
}

DEFAULT_CHANGE_PARAMS = {
    "index": "NBR",
    "delta": "loss",
    "sort": "greatest",
    "year": None,
    "mag": None,
    "dur": None,
    "preval": None,
    "mmu": None,
}

DEFAULT_EXPORT_PARAMS = {
    "destination": "drive",
    "folder": "landtrendr",
    "asset_root": None,
    "scale": 30,
    "crs": "EPSG:5070",
    "max_pixels": 1e13,
}

DELTAS = ["all", "loss", "gain"]
SORTS = ["greatest", "least", "newest", "oldest", "fastest", "slowest"]
OPERATORS = [">", ">=", "<", "<="]

# connectedPixelCount refuses neighborhoods larger than this
MAX_MMU = 1024


def make_boolean(value: Union[bool, str, None]) -> bool:
    """Interpret flags coming from YAML or the command line; 'false' is False."""
    if value is None:
        return False
    if not isinstance(value, bool):
        value = str(value).strip().lower() not in ("false", "0", "no", "off", "")
    return value


def filter_enabled(spec: Optional[Dict[str, Any]]) -> bool:
    """A change filter is on when it is a dict that is not explicitly unchecked."""
    if not spec:
        return False
    return make_boolean(spec.get("checked", True))


def _check_number(name: str, value: Any, low: float, high: float, integer: bool = False):
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"Parameter '{name}' must be numeric; received {value!r}.")
    if integer and int(value) != value:
        raise ValueError(f"Parameter '{name}' must be an integer; received {value!r}.")
    if value < low or value > high:
        raise ValueError(
            f"Parameter '{name}' must be between {low} and {high}; received {value}."
        )


def validate_run_params(params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """
    Merge user supplied LandTrendr segmentation parameters with the defaults and
    check them.

    Parameters
    ----------
    params: dict
        Any subset of the keys of DEFAULT_RUN_PARAMS.

    Returns
    -------
    dict
        A complete, validated set of run parameters.
    """
    merged = copy.deepcopy(DEFAULT_RUN_PARAMS)
    unknown = set(params or {}) - set(DEFAULT_RUN_PARAMS)
    if unknown:
        raise ValueError(
            "Unrecognized LandTrendr parameter(s): " + ", ".join(sorted(unknown))
        )
    merged.update(params or {})

    _check_number("maxSegments", merged["maxSegments"], 1, 100, integer=True)
    _check_number("spikeThreshold", merged["spikeThreshold"], 0, 1)
    _check_number("vertexCountOvershoot", merged["vertexCountOvershoot"], 0, 100, integer=True)
    _check_number("recoveryThreshold", merged["recoveryThreshold"], 0, 1)
    _check_number("pvalThreshold", merged["pvalThreshold"], 0, 1)
    _check_number("bestModelProportion", merged["bestModelProportion"], 0, 1)
    _check_number("minObservationsNeeded", merged["minObservationsNeeded"], 1, 1000, integer=True)
    merged["preventOneYearRecovery"] = make_boolean(merged["preventOneYearRecovery"])
    merged["maxSegments"] = int(merged["maxSegments"])
    merged["vertexCountOvershoot"] = int(merged["vertexCountOvershoot"])
    merged["minObservationsNeeded"] = int(merged["minObservationsNeeded"])
    return merged


def _validate_comparison(name: str, spec: Dict[str, Any]) -> None:
    if "value" not in spec:
        raise ValueError(f"The '{name}' filter needs a 'value'.")
    _check_number(f"{name}.value", spec["value"], -math.inf, math.inf)
    operator = spec.get("operator", ">")
    if operator not in OPERATORS:
        raise ValueError(
            f"Unsupported operator '{operator}' for the '{name}' filter. "
            "Expected one of: " + ", ".join(OPERATORS)
        )
    spec["operator"] = operator


def validate_change_params(params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """
    Merge change map parameters with DEFAULT_CHANGE_PARAMS and check them.

    Filters (year, mag, dur, preval, mmu) are optional dicts; a filter that is
    missing, None, or has ``checked: false`` is returned as None so that callers
    only need to test for truthiness.
    """
    merged = copy.deepcopy(DEFAULT_CHANGE_PARAMS)
    unknown = set(params or {}) - set(DEFAULT_CHANGE_PARAMS)
    if unknown:
        raise ValueError(
            "Unrecognized change map parameter(s): " + ", ".join(sorted(unknown))
        )
    merged.update(copy.deepcopy(params or {}))

    get_index_info(merged["index"])

    merged["delta"] = str(merged["delta"]).lower()
    if merged["delta"] not in DELTAS:
        raise ValueError(
            f"Unsupported delta '{merged['delta']}'. Expected one of: " + ", ".join(DELTAS)
        )
    merged["sort"] = str(merged["sort"]).lower()
    if merged["sort"] not in SORTS:
        raise ValueError(
            f"Unsupported sort '{merged['sort']}'. Expected one of: " + ", ".join(SORTS)
        )

    for name in ["year", "mag", "dur", "preval", "mmu"]:
        if not filter_enabled(merged[name]):
            merged[name] = None

    year = merged["year"]
    if year:
        if "start" not in year or "end" not in year:
            raise ValueError("The 'year' filter needs both 'start' and 'end'.")
        if year["start"] > year["end"]:
            raise ValueError(
                f"The 'year' filter start ({year['start']}) is after its end ({year['end']})."
            )

    mag = merged["mag"]
    if mag:
        if "year1" in mag or "year20" in mag:
            if "year1" not in mag or "year20" not in mag:
                raise ValueError("A duration dependent 'mag' filter needs 'year1' and 'year20'.")
            _check_number("mag.year1", mag["year1"], -math.inf, math.inf)
            _check_number("mag.year20", mag["year20"], -math.inf, math.inf)
        else:
            _validate_comparison("mag", mag)
            mag["dsnr"] = make_boolean(mag.get("dsnr", False))

    for name in ["dur", "preval"]:
        if merged[name]:
            _validate_comparison(name, merged[name])

    mmu = merged["mmu"]
    if mmu:
        _check_number("mmu.value", mmu.get("value"), 1, MAX_MMU, integer=True)
        mmu["value"] = int(mmu["value"])

    return merged


def validate_export_params(params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    merged = copy.deepcopy(DEFAULT_EXPORT_PARAMS)
    unknown = set(params or {}) - set(DEFAULT_EXPORT_PARAMS)
    if unknown:
        raise ValueError("Unrecognized export parameter(s): " + ", ".join(sorted(unknown)))
    merged.update(params or {})
    if merged["destination"] not in ("drive", "asset"):
        raise ValueError(
            f"Export destination must be 'drive' or 'asset'; received {merged['destination']!r}."
        )
    if merged["destination"] == "asset" and not merged["asset_root"]:
        raise ValueError("Exporting to an asset requires 'asset_root'.")
    _check_number("scale", merged["scale"], 0.1, 1e6)
    return merged


def load_config(path: Union[str, Path]) -> Dict[str, Dict[str, Any]]:
    """
    Read a YAML configuration file and return the validated run_params,
    change_params and export sections.

    Parameters
    ----------
    path: str or Path
        Location of the YAML file.

    Returns
    -------
    dict
        {"run_params": ..., "change_params": ..., "export": ...}
    """
    cfg_path = Path(path)
    if not cfg_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {cfg_path}")

    with cfg_path.open("r", encoding="utf-8") as f:
        cfg = yaml.safe_load(f) or {}

    if not isinstance(cfg, dict):
        raise ValueError(f"Expected a mapping at the top level of {cfg_path}.")

    unknown = set(cfg) - {"run_params", "change_params", "export"}
    if unknown:
        logger.warning(
            "Ignoring unknown section(s) in %s: %s", cfg_path, ", ".join(sorted(unknown))
        )

    config = {
        "run_params": validate_run_params(cfg.get("run_params")),
        "change_params": validate_change_params(cfg.get("change_params")),
        "export": validate_export_params(cfg.get("export")),
    }
    logger.info("Loaded configuration from %s", cfg_path)
    return config
