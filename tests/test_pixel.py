from unittest.mock import MagicMock

import geopandas as gp
import numpy as np
import pandas as pd
import pytest

from landtrendr import pixel
from landtrendr.pixel import (
    df_to_geojson,
    frame_segments,
    get_pixel_array,
    lt_array_to_frame,
    pixel_frames_to_df,
    pixel_frames_to_file,
)
from landtrendr.segments import SEGMENT_ROWS

from conftest import LT_RMSE


def test_lt_array_to_frame(lt_array):
    frame = lt_array_to_frame(lt_array)
    assert list(frame.columns) == ["year", "source", "fitted", "is_vertex"]
    assert frame["year"].tolist() == [2000, 2001, 2002, 2003, 2004, 2005]
    assert frame["is_vertex"].tolist() == [True, True, True, False, False, True]
    assert frame["fitted"].iloc[2] == 400.0


def test_lt_array_to_frame_bad_shape():
    with pytest.raises(ValueError, match="4 rows"):
        lt_array_to_frame([[2000, 2001], [1, 2]])


def test_frame_segments(lt_array):
    segs = frame_segments(lt_array_to_frame(lt_array), rmse=LT_RMSE)
    assert list(segs.columns) == SEGMENT_ROWS
    assert segs["startYear"].tolist() == [2000, 2001, 2002]
    assert segs["endYear"].tolist() == [2001, 2002, 2005]
    assert segs["mag"].tolist() == [0.0, 300.0, -300.0]
    assert segs["dur"].tolist() == [1, 1, 3]
    assert segs["rate"].tolist() == [0.0, 300.0, -100.0]
    assert segs["dsnr"].tolist() == [0.0, 6.0, -6.0]


def test_frame_segments_natural_orientation(lt_array):
    segs = frame_segments(lt_array_to_frame(lt_array), dist_dir=-1)
    assert segs["startVal"].tolist() == [-100.0, -100.0, -400.0]
    assert segs["mag"].tolist() == [0.0, -300.0, 300.0]
    assert segs["dsnr"].isna().all()


def test_frame_segments_single_vertex(lt_array):
    lt_array[3] = [1.0, 0.0, 0.0, 0.0, 0.0, 0.0]
    segs = frame_segments(lt_array_to_frame(lt_array))
    assert segs.empty
    assert list(segs.columns) == SEGMENT_ROWS


def test_frame_segments_bad_direction(lt_array):
    with pytest.raises(ValueError):
        frame_segments(lt_array_to_frame(lt_array), dist_dir=2)


def test_get_pixel_array_masked(monkeypatch):
    monkeypatch.setattr(pixel, "ee", MagicMock())
    lt = MagicMock()
    lt.select.return_value.reduceRegion.return_value.getInfo.return_value = {
        "LandTrendr": None,
        "rmse": None,
    }
    with pytest.raises(RuntimeError, match="masked"):
        get_pixel_array(lt, MagicMock())


def test_get_pixel_array(monkeypatch, lt_array):
    monkeypatch.setattr(pixel, "ee", MagicMock())
    lt = MagicMock()
    lt.select.return_value.reduceRegion.return_value.getInfo.return_value = {
        "LandTrendr": lt_array,
        "rmse": LT_RMSE,
    }
    array, rmse = get_pixel_array(lt, MagicMock(), scale=60)
    assert array == lt_array
    assert rmse == LT_RMSE
    lt.select.assert_called_once_with(["LandTrendr", "rmse"])
    assert lt.select.return_value.reduceRegion.call_args.kwargs["scale"] == 60


def test_pixel_frames_to_df(lt_array):
    frame = lt_array_to_frame(lt_array)
    df = pixel_frames_to_df([frame, frame], [(-122.5, 44.5), (-122.4, 44.6)])
    assert len(df) == 12
    assert list(df.columns[:3]) == ["point_id", "lon", "lat"]
    assert df.loc[df["point_id"] == 1, "lat"].unique().tolist() == [44.6]


def test_pixel_frames_to_df_mismatch(lt_array):
    with pytest.raises(ValueError):
        pixel_frames_to_df([lt_array_to_frame(lt_array)], [])


def test_pixel_frames_to_csv(tmp_path, lt_array):
    frame = lt_array_to_frame(lt_array)
    filename = pixel_frames_to_file([frame], [(-122.5, 44.5)], str(tmp_path / "px"), "CSV")
    assert filename.endswith("px.csv")
    df = pd.read_csv(filename)
    assert len(df) == 6
    assert np.allclose(df["fitted"], frame["fitted"])


def test_pixel_frames_unknown_filetype(tmp_path, lt_array):
    with pytest.raises(ValueError, match="unsupported file type"):
        pixel_frames_to_file(
            [lt_array_to_frame(lt_array)], [(0.0, 0.0)], str(tmp_path / "px"), "xlsx"
        )


def test_pixel_frames_to_parquet(tmp_path, lt_array):
    frame = lt_array_to_frame(lt_array)
    filename = pixel_frames_to_file(
        [frame], [(-122.5, 44.5)], str(tmp_path / "px"), "parquet"
    )
    assert filename.endswith("px.parquet.gzip")
    df = pd.read_parquet(filename)
    assert len(df) == 6
    assert df["is_vertex"].tolist() == frame["is_vertex"].tolist()


def test_pixel_frames_to_geojson(tmp_path, lt_array):
    frame = lt_array_to_frame(lt_array)
    filename = pixel_frames_to_file(
        [frame], [(-122.5, 44.5)], str(tmp_path / "px"), "GeoJSON"
    )
    assert filename.endswith("px.geojson")
    gdf = gp.read_file(filename)
    assert len(gdf) == 6
    assert "lon" not in gdf.columns
    assert gdf.geometry.x.unique().tolist() == [-122.5]
    assert gdf.geometry.y.unique().tolist() == [44.5]


def test_segment_table_to_geojson(tmp_path, lt_array):
    segs = frame_segments(lt_array_to_frame(lt_array), rmse=LT_RMSE)
    df = pixel_frames_to_df([segs], [(10.0, 20.0)])
    outfile = str(tmp_path / "segs.geojson")
    df_to_geojson(df, outfile)
    gdf = gp.read_file(outfile)
    assert len(gdf) == 3
    assert gdf["mag"].tolist() == [0.0, 300.0, -300.0]
