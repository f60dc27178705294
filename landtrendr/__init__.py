"""Post-processing of LandTrendr results computed in Google Earth Engine."""

__version__ = "0.1.0"
