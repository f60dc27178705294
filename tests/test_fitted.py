from unittest.mock import MagicMock

import pytest

from landtrendr import fitted
from landtrendr.fitted import (
    get_fitted_data,
    get_source_data,
    get_vertex_stack,
    get_year_band_names,
)


def test_year_band_names():
    assert get_year_band_names(1985, 1988) == ["1985", "1986", "1987", "1988"]
    assert get_year_band_names(2000, 2001, "NBR_") == ["NBR_2000", "NBR_2001"]
    assert get_year_band_names(2000, 2000) == ["2000"]


def test_year_band_names_reversed():
    with pytest.raises(ValueError):
        get_year_band_names(2001, 2000)


def test_fitted_data_from_ftv_band():
    lt = MagicMock()
    get_fitted_data(lt, 2000, 2002, band="B4")
    lt.select.assert_called_once_with("ftv_B4_fit")
    lt.select.return_value.arrayFlatten.assert_called_once_with([["2000", "2001", "2002"]])


def test_fitted_data_from_segmented_index():
    lt = MagicMock()
    get_fitted_data(lt, 2000, 2001)
    lt.select.assert_called_once_with("LandTrendr")
    lt.select.return_value.arraySlice.assert_called_once_with(0, 2, 3)
    projected = lt.select.return_value.arraySlice.return_value.arrayProject
    projected.assert_called_once_with([1])
    projected.return_value.arrayFlatten.assert_called_once_with([["2000", "2001"]])


def test_source_data_uses_row_one():
    lt = MagicMock()
    get_source_data(lt, 2000, 2001)
    lt.select.return_value.arraySlice.assert_called_once_with(0, 1, 2)


def test_vertex_stack_labels(monkeypatch):
    fake_ee = MagicMock()
    monkeypatch.setattr(fitted, "ee", fake_ee)
    lt = MagicMock()
    get_vertex_stack(lt, 3)

    fake_ee.Array.assert_called_once_with([[0] * 4, [0] * 4, [0] * 4])
    masked = lt.select.return_value.arrayMask.return_value
    masked.arraySlice.assert_called_once_with(0, 0, 3)
    padded = masked.arraySlice.return_value.addBands.return_value.toArray
    padded.assert_called_once_with(1)
    padded.return_value.arraySlice.assert_called_once_with(1, 0, 4)
    padded.return_value.arraySlice.return_value.arrayFlatten.assert_called_once_with(
        [["yrs_", "src_", "fit_"], ["vert_0", "vert_1", "vert_2", "vert_3"]], ""
    )


def test_vertex_stack_needs_a_segment():
    with pytest.raises(ValueError):
        get_vertex_stack(MagicMock(), 0)
