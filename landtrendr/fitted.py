"""
Turn the array-valued LandTrendr outputs into ordinary band stacks: one band
per year for fitted (or source) values, or one band per vertex slot.

See:
    https://emapr.github.io/LT-GEE/api.html#getfitteddata
    https://emapr.github.io/LT-GEE/api.html#getltvertstack
"""

from typing import List, Optional

import ee

from .collection import ftv_band_name

VERTEX_ROWS = ["yrs_", "src_", "fit_"]


def get_year_band_names(start_year: int, end_year: int, prefix: str = "") -> List[str]:
    """Band names for a series of years, e.g. ['1985', '1986', ...]."""
    if start_year > end_year:
        raise ValueError(
            f"start_year ({start_year}) must not be after end_year ({end_year})."
        )
    return [prefix + str(year) for year in range(start_year, end_year + 1)]


def _row_to_bands(lt: ee.Image, row: int, band_names: List[str]) -> ee.Image:
    return (
        lt.select("LandTrendr")
        .arraySlice(0, row, row + 1)
        .arrayProject([1])
        .arrayFlatten([band_names])
    )


def get_fitted_data(
    lt: ee.Image,
    start_year: int,
    end_year: int,
    band: Optional[str] = None,
    prefix: str = "",
) -> ee.Image:
    """
    Given a Landtrendr output and the span of years it was run over, return an
    image with one band of fitted values per year.

    Parameters
    ----------
    lt: ee.Image
        The Landtrendr output as an ee.Image object.
    start_year: int
        First year of the collection Landtrendr was run on.
    end_year: int
        Last year of the collection Landtrendr was run on.
    band: str
        Name of a band or index passed as FTV to build_lt_collection. When
        omitted the fitted values of the segmented index itself are returned,
        still in the Landtrendr orientation.
    prefix: str
        Prepended to every year to form the band names.

    Returns
    -------
    ee.Image
        The fitted values, one band per year.
    """
    band_names = get_year_band_names(start_year, end_year, prefix)
    if band is None:
        return _row_to_bands(lt, 2, band_names)
    return lt.select(ftv_band_name(band, fitted=True)).arrayFlatten([band_names])


def get_source_data(
    lt: ee.Image, start_year: int, end_year: int, prefix: str = ""
) -> ee.Image:
    """The source (unfitted) values of the segmented index, one band per year."""
    return _row_to_bands(lt, 1, get_year_band_names(start_year, end_year, prefix))


def get_vertex_stack(lt: ee.Image, max_segments: int) -> ee.Image:
    """
    Given a Landtrendr output and the maxSegments parameter it was run with,
    return the vertex years, source values and fitted values as bands.

    Pixels with fewer than max_segments + 1 vertices are padded with zeros so
    that every pixel has the same number of bands: yrs_vert_0 ... yrs_vert_N,
    then src_vert_0 ..., then fit_vert_0 ...

    Parameters
    ----------
    lt: ee.Image
        The Landtrendr output as an ee.Image object.
    max_segments: int
        The maxSegments parameter the segmentation was run with.

    Returns
    -------
    ee.Image
        3 * (max_segments + 1) bands.
    """
    if max_segments < 1:
        raise ValueError(f"max_segments must be at least 1; received {max_segments}.")
    n_vertices = max_segments + 1
    empty = [0] * n_vertices
    vert_labels = ["vert_" + str(i) for i in range(n_vertices)]
    zeros = ee.Image(ee.Array([empty, empty, empty]))

    lt_output = lt.select("LandTrendr")
    vertex_mask = lt_output.arraySlice(0, 3, 4)

    # pad with the zeros, then cut back to exactly n_vertices columns
    return (
        lt_output.arrayMask(vertex_mask)
        .arraySlice(0, 0, 3)
        .addBands(zeros)
        .toArray(1)
        .arraySlice(1, 0, n_vertices)
        .arrayFlatten([VERTEX_ROWS, vert_labels], "")
    )
