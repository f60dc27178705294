"""
Change maps from LandTrendr results: pick one segment per pixel (the greatest
loss, the most recent gain, ...), flatten its attributes to bands and mask out
pixels that do not qualify.

See:
    https://emapr.github.io/LT-GEE/api.html#getchangemap
    https://emapr.github.io/LT-GEE/working-with-outputs.html
"""

import logging
from typing import Dict

import ee

from .config import validate_change_params
from .segments import (
    SEGMENT_ROW,
    filter_segments,
    flatten_segment,
    get_segment,
    get_segment_data,
    sort_segments,
)

logger = logging.getLogger(__name__)

CHANGE_BANDS = ["yod", "mag", "dur", "preval", "rate", "dsnr"]
EVENT_BANDS = ["yod", "endYr", "startVal", "endVal", "mag", "dur", "rate", "dsnr"]


def apply_mmu(change_img: ee.Image, mmu: int) -> ee.Image:
    """
    Mask pixels belonging to patches smaller than the minimum mapping unit. A
    patch is a group of 8-connected pixels sharing the same year of detection.
    """
    if mmu <= 1:
        return change_img
    mmu_mask = change_img.select("yod").connectedPixelCount(mmu, True).gte(mmu)
    return change_img.updateMask(mmu_mask)


def get_change_map(lt: ee.Image, change_params: Dict) -> ee.Image:
    """
    Given a Landtrendr output and a dict of change parameters, return an image
    describing one segment of interest per pixel.

    Parameters
    ----------
    lt: ee.Image
        The Landtrendr output as an ee.Image object.
    change_params: dict
        See config.DEFAULT_CHANGE_PARAMS. For example:
        {
            'index': 'NBR',
            'delta': 'loss',
            'sort': 'greatest',
            'year': {'start': 1990, 'end': 2020},
            'mag': {'value': 200, 'operator': '>', 'dsnr': False},
            'dur': {'value': 4, 'operator': '<'},
            'preval': {'value': 300, 'operator': '>'},
            'mmu': {'value': 11},
        }

    Returns
    -------
    ee.Image
        Bands yod, mag, dur, preval, rate and dsnr. Pixels without a segment
        passing every filter are masked.
    """
    params = validate_change_params(change_params)
    if params["delta"] == "all":
        raise ValueError("A change map needs delta to be either 'loss' or 'gain'.")
    logger.debug("Building change map with %s", params)

    seg_info = get_segment_data(lt, params["index"], params["delta"], right=True)
    seg_info = filter_segments(
        seg_info,
        year=params["year"],
        mag=params["mag"],
        dur=params["dur"],
        preval=params["preval"],
    )
    seg_info = sort_segments(seg_info, params["sort"])

    change_img = flatten_segment(get_segment(seg_info, 0))
    yod = change_img.select("startYear").add(1).toInt16().rename("yod")
    change_img = change_img.addBands(yod).select(
        ["yod", "mag", "dur", "startVal", "rate", "dsnr"], CHANGE_BANDS
    )
    change_img = change_img.updateMask(change_img.select("mag").gt(0))

    if params["mmu"]:
        change_img = apply_mmu(change_img, params["mmu"]["value"])

    return change_img


def extract_deforestation_events(
    LT_segments: ee.Image, start_year: int, end_year: int, dsnr_threshold: float
) -> ee.Image:
    """
    Given an image with information about loss segments, assumed to be the
    output of get_segment_data with delta='loss', bounds on start and end year,
    and a threshold on the disturbance signal-to-noise ratio (DSNR), filter to
    only events within the years of interest which pass the DSNR threshold.

    Note: the decision to extract the most recent event, rather than the
    selecting the largest or using a different selection mechanism, is made
    because this was written with the goal of identifying deforestation events
    followed by a recovery period.

    Parameters
    ----------
    LT_segments: ee.Image
        Landtrendr segment data, assumed to be the output of get_segment_data
    start_year: int
        The first year to consider for deforestation events.
    end_year: int
        The last year to consider for deforestation events.
    dsnr_threshold: float
        The threshold on the disturbance signal-to-noise ratio (DSNR) for the
        deforestation segments.

    Returns
    -------
    ee.Image
        The input image reduced to the most recent event in each pixel which
        passes the given threshold, as a single column array.
    """
    if start_year > end_year:
        raise ValueError(
            f"start_year ({start_year}) must not be after end_year ({end_year})."
        )
    start_row = SEGMENT_ROW["startYear"]
    end_row = SEGMENT_ROW["endYear"]
    dsnr_row = SEGMENT_ROW["dsnr"]

    yod = LT_segments.arraySlice(0, start_row, start_row + 1).add(1)
    end_years = LT_segments.arraySlice(0, end_row, end_row + 1)
    dsnr = LT_segments.arraySlice(0, dsnr_row, dsnr_row + 1)
    mask = (
        yod.gte(ee.Image(start_year))
        .And(end_years.lte(ee.Image(end_year)))
        .And(dsnr.gte(ee.Image(dsnr_threshold)))
    )

    masked_segments = LT_segments.arrayMask(mask)
    return get_segment(sort_segments(masked_segments, "newest"), 0)


def extract_deforested_regions(
    LT_result: ee.Image,
    index: str,
    start_year: int,
    end_year: int,
    dsnr_threshold: float,
) -> ee.Image:
    """
    Given the output of Landtrendr as an image, the index of interest, bounds on
    the beginning and end of the period to identify events, and a threshold on
    the DSNR, return a flattened image containing information about the most
    recent deforestation event in each pixel which passes the specified DSNR
    threshold.

    Parameters
    ----------
    LT_result: ee.Image
        The Landtrendr output as an ee.Image object.
    index: str
        The spectral index for which Landtrendr was run.
    start_year: int
        The first year to consider for deforestation events.
    end_year: int
        The last year to consider for deforestation events.
    dsnr_threshold: float
        The threshold on the disturbance signal-to-noise ratio (DSNR) for the
        deforestation segments.

    Returns
    -------
    ee.Image
        Bands yod, endYr, startVal, endVal, mag, dur, rate and dsnr.
    """
    LT_segments = get_segment_data(LT_result, index, "loss", True)
    events = extract_deforestation_events(
        LT_segments, start_year, end_year, dsnr_threshold
    )
    flattened = flatten_segment(events, EVENT_BANDS)
    return flattened.addBands(flattened.select("yod").add(1), overwrite=True)
