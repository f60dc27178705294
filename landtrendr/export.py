"""
Earth Engine session and export helpers.

Exports are started and returned immediately; Earth Engine runs them as batch
tasks, which can be monitored with task.status() or in the Code Editor's Tasks
tab.
"""

import logging
from typing import Optional

import ee

logger = logging.getLogger(__name__)


def ee_init(project: Optional[str] = None) -> None:
    """
    Initialize the Earth Engine API.
    Usage:
        ee_init()                  # default credentials
        ee_init(project="ee-xyz")  # with explicit project
    """
    try:
        if project:
            ee.Initialize(project=project)
        else:
            ee.Initialize()
    except Exception as e:
        raise RuntimeError(f"Failed to initialize Earth Engine: {e}") from e
    logger.info(
        "Initialized Earth Engine API%s.", f" (project={project})" if project else ""
    )


def export_image_to_drive(
    image: ee.Image,
    description: str,
    region: ee.Geometry,
    *,
    folder: str = "landtrendr",
    scale: float = 30,
    crs: str = "EPSG:5070",
    max_pixels: float = 1e13,
) -> ee.batch.Task:
    """
    Start a Google Drive export; returns the created ee.batch.Task.
    """
    try:
        task = ee.batch.Export.image.toDrive(
            image=image,
            description=description,
            folder=folder,
            fileNamePrefix=description,
            region=region,
            scale=scale,
            crs=crs,
            maxPixels=max_pixels,
        )
        task.start()
    except ee.EEException as e:
        raise RuntimeError(f"Failed to start Drive export '{description}': {e}") from e
    logger.info(
        "Drive export started: desc=%s, folder=%s, scale=%s, crs=%s, task_id=%s",
        description,
        folder,
        scale,
        crs,
        task.id,
    )
    return task


def export_image_to_asset(
    image: ee.Image,
    description: str,
    asset_id: str,
    region: ee.Geometry,
    *,
    scale: float = 30,
    crs: str = "EPSG:5070",
    max_pixels: float = 1e13,
) -> ee.batch.Task:
    """
    Start an export to an Earth Engine asset; returns the created ee.batch.Task.
    Array-valued bands (e.g. the raw 'LandTrendr' band) can only be exported
    this way.
    """
    try:
        task = ee.batch.Export.image.toAsset(
            image=image,
            description=description,
            assetId=asset_id,
            region=region,
            scale=scale,
            crs=crs,
            maxPixels=max_pixels,
        )
        task.start()
    except ee.EEException as e:
        raise RuntimeError(f"Failed to start asset export '{description}': {e}") from e
    logger.info(
        "Asset export started: desc=%s, asset=%s, scale=%s, crs=%s, task_id=%s",
        description,
        asset_id,
        scale,
        crs,
        task.id,
    )
    return task
