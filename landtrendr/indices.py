"""
Spectral indices understood by the LandTrendr helpers in this package, with the
direction in which each one moves when vegetation is lost.

LandTrendr expects the segmentation band to be oriented so that a disturbance
shows up as a positive delta. An index whose values drop with vegetation loss
(NBR, NDVI, ...) is therefore multiplied by -1 before segmentation, and the
"dist_dir" recorded here is that factor.

See:
    https://emapr.github.io/LT-GEE/api.html#buildltcollection
"""

import math

import ee

INDEX_DICT = {
    "NBR": {"dist_dir": -1, "bands": ["B4", "B7"]},
    "NDVI": {"dist_dir": -1, "bands": ["B4", "B3"]},
    "NDSI": {"dist_dir": -1, "bands": ["B2", "B5"]},
    "NDMI": {"dist_dir": -1, "bands": ["B4", "B5"]},
    "NBR2": {"dist_dir": -1, "bands": ["B5", "B7"]},
    "TCB": {"dist_dir": 1, "bands": ["B1", "B2", "B3", "B4", "B5", "B7"]},
    "TCG": {"dist_dir": -1, "bands": ["B1", "B2", "B3", "B4", "B5", "B7"]},
    "TCW": {"dist_dir": -1, "bands": ["B1", "B2", "B3", "B4", "B5", "B7"]},
    "TCA": {"dist_dir": -1, "bands": ["B1", "B2", "B3", "B4", "B5", "B7"]},
    "B1": {"dist_dir": 1, "bands": ["B1"]},
    "B2": {"dist_dir": 1, "bands": ["B2"]},
    "B3": {"dist_dir": 1, "bands": ["B3"]},
    "B4": {"dist_dir": -1, "bands": ["B4"]},
    "B5": {"dist_dir": 1, "bands": ["B5"]},
    "B7": {"dist_dir": 1, "bands": ["B7"]},
}

# Indices that show up in the LT-GEE docs but that we have no recipe for.
KNOWN_UNSUPPORTED = ["ENC", "ENC1", "TCC", "NBRz", "B5z"]

NORMALIZED_DIFFERENCES = ["NBR", "NDVI", "NDSI", "NDMI", "NBR2"]

# Crist (1985) TM tasseled cap coefficients, ordered as B1, B2, B3, B4, B5, B7
TC_COEFFS = {
    "TCB": [0.2043, 0.4158, 0.5524, 0.5741, 0.3124, 0.2303],
    "TCG": [-0.1603, -0.2819, -0.4934, 0.7940, -0.0002, -0.1446],
    "TCW": [0.0315, 0.2021, 0.3102, 0.1594, -0.6806, -0.6109],
}


def get_index_info(index: str) -> dict:
    """Return the INDEX_DICT entry for the given index name.

    Raises NotImplementedError for recognized indices that are not supported and
    RuntimeError for anything else."""
    try:
        return INDEX_DICT[index]
    except KeyError:
        if index in KNOWN_UNSUPPORTED:
            # If users provide a valid spectral index, they should get a more helpful
            # exception explaining the source of the issue than just a random KeyError
            raise NotImplementedError(
                f"The index '{index}' is not currently supported. Supported indices are: "
                + ", ".join(list(INDEX_DICT.keys()))
            )
        else:
            raise RuntimeError(
                f"The value '{index}' was not recognized as a standard spectral index."
            )


def index_flipper(index: str) -> int:
    """Return the factor (1 or -1) that makes vegetation loss a positive delta."""
    return get_index_info(index)["dist_dir"]


def _tasseled_cap(image: ee.Image, component: str) -> ee.Image:
    bands = image.select(INDEX_DICT[component]["bands"])
    coeffs = ee.Image.constant(TC_COEFFS[component])
    return bands.multiply(coeffs).reduce(ee.Reducer.sum())


def compute_index(image: ee.Image, index: str) -> ee.Image:
    """
    Given an ee.Image with TM-equivalent bands (B1, B2, B3, B4, B5, B7), return a
    single band ee.Image holding the requested index, named after the index.

    Normalized differences are scaled by 1000 and the tasseled cap angle is given
    in degrees times 100, so that both live on an integer-friendly range, the
    same as in LT-GEE. The index is
    NOT reoriented here; see build_lt_collection for that.

    Parameters
    ----------
    image: ee.Image
        The surface reflectance image.
    index: str
        Name of the index, one of the keys of INDEX_DICT.

    Returns
    -------
    ee.Image
        The index as a single band image.
    """
    index_info = get_index_info(index)

    if index in NORMALIZED_DIFFERENCES:
        idx = image.normalizedDifference(index_info["bands"]).multiply(1000)
    elif index in TC_COEFFS:
        idx = _tasseled_cap(image, index)
    elif index == "TCA":
        brightness = _tasseled_cap(image, "TCB")
        greenness = _tasseled_cap(image, "TCG")
        idx = greenness.divide(brightness).atan().multiply(180 / math.pi).multiply(100)
    else:
        idx = image.select(index_info["bands"])

    return idx.rename(index)
