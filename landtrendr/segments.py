"""
Array recipes for pulling segment information out of a LandTrendr result.

Everything here operates on the 'LandTrendr' band, a per-pixel 2-D array of
4 rows by one column per year:

    row 0: year
    row 1: source value
    row 2: fitted value
    row 3: is vertex (1) or not (0)

A good deal of this follows section 6 "Working with Outputs" of the LT-GEE
documentation and the getSegmentData function of the LT-GEE API.

See:
    https://emapr.github.io/LT-GEE/api.html#getsegmentdata
    https://emapr.github.io/LT-GEE/working-with-outputs.html
"""

from typing import Dict, List, Optional

import ee

from .config import filter_enabled, make_boolean
from .indices import index_flipper

# Row order of the segment arrays returned by get_segment_data
SEGMENT_ROWS = [
    "startYear",
    "endYear",
    "startVal",
    "endVal",
    "mag",
    "dur",
    "rate",
    "dsnr",
]
SEGMENT_ROW = {name: i for i, name in enumerate(SEGMENT_ROWS)}

OPERATOR_METHODS = {">": "gt", ">=": "gte", "<": "lt", "<=": "lte"}

# sort name -> (row to sort on, factor); arraySort is ascending
SORT_KEYS = {
    "greatest": ("mag", -1),
    "least": ("mag", 1),
    "newest": ("startYear", -1),
    "oldest": ("startYear", 1),
    "fastest": ("dur", 1),
    "slowest": ("dur", -1),
}


def _row(seg_info: ee.Image, name: str) -> ee.Image:
    i = SEGMENT_ROW[name]
    return seg_info.arraySlice(0, i, i + 1)


def get_vertex_mask(lt: ee.Image) -> ee.Image:
    """Slice out the 'is vertex' row of the LandTrendr array."""
    return lt.select("LandTrendr").arraySlice(0, 3, 4)


def get_vertices(lt: ee.Image) -> ee.Image:
    """Return the LandTrendr array with every non-vertex year dropped."""
    return lt.select("LandTrendr").arrayMask(get_vertex_mask(lt))


def get_segment_data(
    lt: ee.Image, index: str, delta: str = "all", right: bool = False
) -> ee.Image:
    """
    Given a Landtrendr output, the index of interest, the kind of change to keep
    and a boolean flag denoting whether or not to reorient inverted index values,
    return an ee.Image whose pixels hold one column per segment and one row per
    entry of SEGMENT_ROWS.

    Parameters
    ----------
    lt: ee.Image
        The Landtrendr output as an ee.Image object.
    index: str
        The spectral index for which Landtrendr was run.
    delta: str
        'all' to keep every segment, 'loss' to keep segments whose magnitude
        is positive in the Landtrendr orientation, 'gain' for negative ones.
        For 'loss' and 'gain' mag, rate and dsnr are absolute values.
    right: boolean
        Whether or not to correct the orientation of the index if it has been
        inverted in the process of preparing the Landtrendr collection (see:
        https://emapr.github.io/LT-GEE/api.html#buildltcollection)

    Returns
    -------
    ee.Image
        An image with information on the segments as array-valued pixels.
    """
    delta = delta.lower()
    if delta not in ("all", "loss", "gain"):
        raise ValueError(
            f"Unsupported delta '{delta}'. Expected one of: all, loss, gain."
        )
    dist_dir = index_flipper(index) if right else 1

    vertex_mask = get_vertex_mask(lt)
    vertices = get_vertices(lt)

    left = vertices.arraySlice(1, 0, -1)
    right_side = vertices.arraySlice(1, 1, None)
    start_year = left.arraySlice(0, 0, 1)
    start_val = left.arraySlice(0, 2, 3)
    end_year = right_side.arraySlice(0, 0, 1)
    end_val = right_side.arraySlice(0, 2, 3)

    dur = end_year.subtract(start_year)
    mag = end_val.subtract(start_val)
    rate = mag.divide(dur)
    dsnr = mag.divide(lt.select("rmse"))

    change_mask = None
    if delta == "loss":
        change_mask = mag.gt(0)
    elif delta == "gain":
        change_mask = mag.lt(0)

    if change_mask is not None:
        mag, rate, dsnr = mag.abs(), rate.abs(), dsnr.abs()
    elif dist_dir == -1:
        mag, rate, dsnr = mag.multiply(-1), rate.multiply(-1), dsnr.multiply(-1)

    if dist_dir == -1:
        start_val = start_val.multiply(-1)
        end_val = end_val.multiply(-1)

    seg_info = (
        ee.Image.cat([start_year, end_year, start_val, end_val, mag, dur, rate, dsnr])
        .toArray(0)
        .updateMask(vertex_mask.mask())
    )

    if change_mask is not None:
        seg_info = seg_info.arrayMask(change_mask)
    return seg_info


def get_segment_count(lt: ee.Image) -> ee.Image:
    """Number of segments found in each pixel: the vertex count minus one."""
    return (
        get_vertex_mask(lt)
        .arrayReduce(ee.Reducer.sum(), [1])
        .arrayProject([0])
        .arrayFlatten([["n_segments"]])
        .subtract(1)
    )


def get_segment(seg_info: ee.Image, n: int) -> ee.Image:
    """The n-th segment, in chronological order, of a get_segment_data image."""
    if n < 0:
        raise ValueError(f"Segment position must be zero or positive; received {n}.")
    return seg_info.arraySlice(1, n, n + 1)


def _compare(values: ee.Image, operator: str, value: float) -> ee.Image:
    try:
        method = OPERATOR_METHODS[operator]
    except KeyError:
        raise ValueError(
            f"Unsupported operator '{operator}'. Expected one of: "
            + ", ".join(OPERATOR_METHODS)
        )
    return getattr(values, method)(value)


def filter_segments(
    seg_info: ee.Image,
    year: Optional[Dict] = None,
    mag: Optional[Dict] = None,
    dur: Optional[Dict] = None,
    preval: Optional[Dict] = None,
) -> ee.Image:
    """
    Drop the segments of a get_segment_data image which do not pass the given
    filters. Filters left as None (or with 'checked' false) are not applied.

    Parameters
    ----------
    seg_info: ee.Image
        Segment data, assumed to be the output of get_segment_data.
    year: dict
        {'start': int, 'end': int}; inclusive bounds on the year of detection,
        which is the year after the segment's start vertex.
    mag: dict
        {'value': float, 'operator': str, 'dsnr': bool} to compare magnitude
        (or DSNR) against a fixed value, or {'year1': float, 'year20': float}
        for a threshold that grows linearly from year1 for one year long
        segments to year20 for twenty year long segments.
    dur: dict
        {'value': float, 'operator': str} on segment duration.
    preval: dict
        {'value': float, 'operator': str} on the value at segment start.

    Returns
    -------
    ee.Image
        The segment data with failing segments removed.
    """
    if filter_enabled(year):
        yod = _row(seg_info, "startYear").add(1)
        seg_info = seg_info.arrayMask(
            yod.gte(year["start"]).And(yod.lte(year["end"]))
        )

    if filter_enabled(mag):
        if "year1" in mag:
            slope = (mag["year20"] - mag["year1"]) / 19.0
            threshold = _row(seg_info, "dur").subtract(1).multiply(slope).add(mag["year1"])
            seg_info = seg_info.arrayMask(threshold.lte(_row(seg_info, "mag")))
        else:
            row = "dsnr" if make_boolean(mag.get("dsnr", False)) else "mag"
            seg_info = seg_info.arrayMask(
                _compare(_row(seg_info, row), mag.get("operator", ">"), mag["value"])
            )

    if filter_enabled(dur):
        seg_info = seg_info.arrayMask(
            _compare(_row(seg_info, "dur"), dur.get("operator", ">"), dur["value"])
        )

    if filter_enabled(preval):
        seg_info = seg_info.arrayMask(
            _compare(_row(seg_info, "startVal"), preval.get("operator", ">"), preval["value"])
        )

    return seg_info


def sort_segments(seg_info: ee.Image, sort: str) -> ee.Image:
    """Sort the segments (columns) so that the one of interest comes first."""
    try:
        row, factor = SORT_KEYS[sort.lower()]
    except KeyError:
        raise ValueError(
            f"Unsupported sort '{sort}'. Expected one of: " + ", ".join(SORT_KEYS)
        )
    sort_by = _row(seg_info, row)
    if factor == -1:
        # factor of -1 to flip the key, since arraySort is ascending
        sort_by = sort_by.multiply(-1)
    return seg_info.arraySort(sort_by)


def flatten_segment(segment: ee.Image, names: Optional[List[str]] = None) -> ee.Image:
    """Turn a single segment (one column) into one scalar band per row."""
    names = names or SEGMENT_ROWS
    if len(names) != len(SEGMENT_ROWS):
        raise ValueError(
            f"Expected {len(SEGMENT_ROWS)} band names, received {len(names)}."
        )
    return segment.arrayProject([0]).arrayFlatten([names])
