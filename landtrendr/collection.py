"""
Prepare an annual composite collection for LandTrendr and run the segmentation.

The compositing itself (medoids, cloud masking, sensor harmonization) is
expected to have happened upstream; the input here is one TM-equivalent image
per year with bands B1, B2, B3, B4, B5, B7 and a system:time_start property.

See:
    https://emapr.github.io/LT-GEE/api.html#buildltcollection
    https://emapr.github.io/LT-GEE/running-lt-gee.html
"""

import logging
from typing import Dict, List, Optional

import ee

from .config import validate_run_params
from .indices import compute_index, get_index_info

logger = logging.getLogger(__name__)


def ftv_band_name(name: str, fitted: bool = False) -> str:
    """Name of the FTV band for a band or index, in the input collection or,
    with fitted=True, in the LandTrendr output."""
    band = "ftv_" + name
    return band + "_fit" if fitted else band


def build_lt_collection(
    collection: ee.ImageCollection, index: str, ftv_list: Optional[List[str]] = None
) -> ee.ImageCollection:
    """
    Given a collection of annual composites, the spectral index of interest, and
    a list of bands or indices to fit to vertices, produce a collection for
    Landtrendr.

    The first band will be the index of interest, scaled so that an increase
    in the band value indicates vegetation loss. The FTV bands follow, named
    'ftv_<name>' and left in their natural orientation.

    Parameters
    ----------
    collection: ee.ImageCollection
        The annual composites to prepare for Landtrendr.
    index: str
        The spectral index to segment on.
    ftv_list: List[str]
        Bands or indices whose values should be fit to the vertices found
        for the index of interest.

    Returns
    -------
    ee.ImageCollection
        The collection, ready to be handed to run_landtrendr.
    """
    dist_dir = get_index_info(index)["dist_dir"]
    ftv_list = list(ftv_list or [])
    for ftv in ftv_list:
        get_index_info(ftv)
    ftv_bands = [ftv_band_name(name) for name in ftv_list]

    def _format_images(image):
        image = ee.Image(image)
        idx = compute_index(image, index).multiply(dist_dir)
        for name, band_name in zip(ftv_list, ftv_bands):
            idx = idx.addBands(compute_index(image, name).rename(band_name))
        return idx.set("system:time_start", image.get("system:time_start"))

    return collection.map(_format_images)


def run_landtrendr(
    collection: ee.ImageCollection, run_params: Optional[Dict] = None
) -> ee.Image:
    """
    Run LandTrendr on a collection produced by build_lt_collection.

    Parameters
    ----------
    collection: ee.ImageCollection
        The prepared annual collection; the first band is segmented.
    run_params: dict
        LandTrendr segmentation parameters, see config.DEFAULT_RUN_PARAMS.
        Missing entries take their default values.

    Returns
    -------
    ee.Image
        The LandTrendr output with bands 'LandTrendr', 'rmse' and one
        '<ftv band>_fit' band per FTV band in the collection.
    """
    params = validate_run_params(run_params)
    logger.info("Running LandTrendr with %s", params)
    return ee.Algorithms.TemporalSegmentation.LandTrendr(timeSeries=collection, **params)
