"""
Client-side inspection of LandTrendr results for individual pixels.

A pixel's 'LandTrendr' array is fetched with getInfo() and unpacked into a
pd.DataFrame with one row per year, which is convenient for plotting the source
and fitted trajectories or for checking server-side segment recipes against a
local computation.
"""

import logging
import os
from typing import List, Optional, Sequence, Tuple

import ee
import geopandas as gp
import numpy as np
import pandas as pd
from shapely.geometry import Point

from .segments import SEGMENT_ROWS

logger = logging.getLogger(__name__)

FRAME_COLUMNS = ["year", "source", "fitted", "is_vertex"]


def get_pixel_array(
    lt: ee.Image, point: ee.Geometry, scale: float = 30
) -> Tuple[List[List[float]], Optional[float]]:
    """
    Fetch the 'LandTrendr' array and the fit RMSE for the pixel under a point.

    Parameters
    ----------
    lt: ee.Image
        The Landtrendr output as an ee.Image object.
    point: ee.Geometry
        The location of interest.
    scale: float
        The scale, in meters, at which to sample the image.

    Returns
    -------
    tuple
        The 4 x N nested list stored in the pixel and the RMSE.
    """
    values = (
        lt.select(["LandTrendr", "rmse"])
        .reduceRegion(reducer=ee.Reducer.first(), geometry=point, scale=scale)
        .getInfo()
    )
    array = values.get("LandTrendr")
    if array is None:
        raise RuntimeError("The LandTrendr output is masked at the requested point.")
    return array, values.get("rmse")


def lt_array_to_frame(array: Sequence[Sequence[float]]) -> pd.DataFrame:
    """
    Convert the 4 x N array of a single pixel into a pd.DataFrame with columns
    year, source, fitted and is_vertex.
    """
    a = np.asarray(array, dtype=float)
    if a.ndim != 2 or a.shape[0] != 4:
        raise ValueError(
            f"Expected a LandTrendr array with 4 rows; received shape {a.shape}."
        )
    return pd.DataFrame(
        {
            "year": a[0].astype(int),
            "source": a[1],
            "fitted": a[2],
            "is_vertex": a[3] == 1,
        }
    )


def frame_segments(
    frame: pd.DataFrame, rmse: Optional[float] = None, dist_dir: int = 1
) -> pd.DataFrame:
    """
    Compute the segment table of a single pixel locally. This mirrors
    segments.get_segment_data with delta='all': one row per segment and one
    column per entry of SEGMENT_ROWS.

    Parameters
    ----------
    frame: pd.DataFrame
        The output of lt_array_to_frame.
    rmse: float
        RMSE of the fit; without it the dsnr column is NaN.
    dist_dir: int
        Pass the index's dist_dir to report values in the index's natural
        orientation, the same as right=True server side.

    Returns
    -------
    pd.DataFrame
        The segments of the pixel, in chronological order.
    """
    if dist_dir not in (1, -1):
        raise ValueError(f"dist_dir must be 1 or -1; received {dist_dir}.")
    vertices = frame[frame["is_vertex"]]
    if len(vertices) < 2:
        return pd.DataFrame(columns=SEGMENT_ROWS)

    years = vertices["year"].to_numpy()
    fitted = vertices["fitted"].to_numpy(dtype=float)

    dur = np.diff(years)
    mag = np.diff(fitted) * dist_dir
    rate = mag / dur
    dsnr = mag / rmse if rmse else np.full(len(mag), np.nan)

    return pd.DataFrame(
        {
            "startYear": years[:-1],
            "endYear": years[1:],
            "startVal": fitted[:-1] * dist_dir,
            "endVal": fitted[1:] * dist_dir,
            "mag": mag,
            "dur": dur,
            "rate": rate,
            "dsnr": dsnr,
        },
        columns=SEGMENT_ROWS,
    )


def pixel_frames_to_df(
    frames: List[pd.DataFrame], points: List[Tuple[float, float]]
) -> pd.DataFrame:
    """Stack per-pixel frames, tagging each row with the lon/lat it came from."""
    if len(frames) != len(points):
        raise ValueError(
            f"Received {len(frames)} frames but {len(points)} points."
        )
    tagged = []
    for point_id, (frame, (lon, lat)) in enumerate(zip(frames, points)):
        tmp_df = frame.copy()
        tmp_df.insert(0, "lat", lat)
        tmp_df.insert(0, "lon", lon)
        tmp_df.insert(0, "point_id", point_id)
        tagged.append(tmp_df)
    if not tagged:
        return pd.DataFrame(columns=["point_id", "lon", "lat"] + FRAME_COLUMNS)
    return pd.concat(tagged, ignore_index=True)


def df_to_geojson(df: pd.DataFrame, outfile: str) -> None:
    """
    Convert the stacked pixel time series to a GeoJSON file of points, which
    can be useful when working locally in GIS software.
    """
    geometry = [Point(lon, lat) for lon, lat in zip(df["lon"], df["lat"])]
    GeoDF = gp.GeoDataFrame(
        df.drop(columns=["lon", "lat"]), geometry=geometry, crs="EPSG:4326"
    )
    GeoDF.to_file(outfile, driver="GeoJSON")


def pixel_frames_to_file(
    frames: List[pd.DataFrame],
    points: List[Tuple[float, float]],
    outfile: str,
    filetype: str = "csv",
) -> str:
    """
    Write the time series of several pixels to a single file.

    Parameters
    ----------
    frames: List[pd.DataFrame]
        One frame per pixel, e.g. from lt_array_to_frame.
    points: List[Tuple[float, float]]
        The (lon, lat) of each pixel, in the same order as frames.
    outfile: str
        The path of the output file, without file extension.
    filetype: str
        One of csv, parquet or GeoJSON.

    Returns
    -------
    str
        The name of the file that was written.
    """
    df = pixel_frames_to_df(frames, points)
    filetype = filetype.lower()
    if filetype == "csv":
        filename = outfile + ".csv"
        df.to_csv(filename, index=False)
    elif filetype == "parquet":
        filename = outfile + ".parquet.gzip"
        df.to_parquet(filename, compression="gzip")
    elif filetype == "geojson":
        filename = outfile + ".geojson"
        df_to_geojson(df, filename)
    else:
        raise ValueError(
            f"Received unsupported file type {filetype}. Please provide one of: csv, parquet, or GeoJSON."
        )
    logger.info("Wrote %d rows to %s", len(df), os.path.abspath(filename))
    return filename
