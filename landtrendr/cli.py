#!/usr/bin/env python
"""
Run LandTrendr on a collection of annual composites and post-process the result.

To Run
----------
lt-outputs change-map -c ASSET -i NBR -s 1985 -e 2020 -b xmin,ymin,xmax,ymax [--config FILE]
lt-outputs pixel-series -c ASSET -i NBR -s 1985 -e 2020 -p lon,lat [-p lon,lat ...] -o Filename -f Filetype

Arguments
-------
    -c,--collection : str
        Asset id of an ee.ImageCollection holding one TM-equivalent composite
        (bands B1, B2, B3, B4, B5, B7) per year.
    -i,--index : str
        The spectral index to segment on. Default value is NBR, or the index
        of the change_params section of --config.
    -s,--start-year, -e,--end-year : int
        The span of years, inclusive, to run LandTrendr over.
    --ftv : str (optional)
        Comma separated bands or indices to fit to vertices.
    --config : str (optional)
        YAML file with run_params, change_params and export sections; command
        line flags win over the file.
    --project : str (optional)
        Cloud project to initialize Earth Engine with.

change-map
    -b,--bbox : str
        The region to export. In format xmin,ymin,xmax,ymax (lon/lat).
    -d,--description : str (optional)
        Export task description and file name. Default value is
        'lt_change_map'.
    --delta, --sort, --mmu (optional)
        Override the matching change_params entries.

pixel-series
    -p,--point : str
        lon,lat of a pixel to extract; may be repeated.
    -o,--outfile : str (optional)
        The stem of the name of the output file, without file extension.
        Default value is 'lt_pixels'.
    -f,--filetype : str (optional)
        csv, parquet, or GeoJSON. Default value is csv.
    --segments (optional)
        Write each pixel's segment table instead of its yearly time series.

Outputs
-------
change-map starts an Earth Engine export task; pixel-series writes a file.
"""

import argparse
import logging
import sys
from typing import List, Optional, Tuple

import ee

from .change import get_change_map
from .collection import build_lt_collection, run_landtrendr
from .config import (
    DEFAULT_CHANGE_PARAMS,
    load_config,
    validate_change_params,
    validate_export_params,
    validate_run_params,
)
from .export import ee_init, export_image_to_asset, export_image_to_drive
from .indices import get_index_info, index_flipper
from .pixel import frame_segments, get_pixel_array, lt_array_to_frame, pixel_frames_to_file

logger = logging.getLogger(__name__)

SEPARATOR = "------------------------------------------"


def parse_pair(value: str, name: str) -> Tuple[float, float]:
    parts = value.split(",")
    if len(parts) != 2:
        raise argparse.ArgumentTypeError(f"{name} must be given as lon,lat; received {value!r}")
    try:
        return float(parts[0]), float(parts[1])
    except ValueError:
        raise argparse.ArgumentTypeError(f"{name} must be numeric; received {value!r}")


def parse_bbox(value: str) -> List[float]:
    parts = value.split(",")
    try:
        bbox = [float(b) for b in parts]
    except ValueError:
        raise argparse.ArgumentTypeError(f"bbox must be numeric; received {value!r}")
    if len(bbox) != 4:
        raise argparse.ArgumentTypeError(
            f"bbox must be given as xmin,ymin,xmax,ymax; received {value!r}"
        )
    return bbox


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="lt-outputs",
        description="Run LandTrendr in Earth Engine and post-process its outputs.",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Log debug messages.")
    subparsers = parser.add_subparsers(dest="command")
    subparsers.required = True

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "-c",
        "--collection",
        required=True,
        help="Asset id of the annual composite collection.",
    )
    common.add_argument(
        "-i", "--index", default=None, help="The spectral index to segment on."
    )
    common.add_argument("-s", "--start-year", type=int, required=True)
    common.add_argument("-e", "--end-year", type=int, required=True)
    common.add_argument(
        "--ftv", default="", help="Comma separated bands or indices to fit to vertices."
    )
    common.add_argument("--config", default=None, help="YAML configuration file.")
    common.add_argument("--project", default=None, help="Earth Engine cloud project.")

    change = subparsers.add_parser(
        "change-map", parents=[common], help="Export a change map."
    )
    change.add_argument(
        "-b",
        "--bbox",
        type=parse_bbox,
        required=True,
        help="The region to export, in format xmin,ymin,xmax,ymax",
    )
    change.add_argument("-d", "--description", default="lt_change_map")
    change.add_argument("--delta", choices=["loss", "gain"], default=None)
    change.add_argument("--sort", default=None)
    change.add_argument("--mmu", type=int, default=None)

    pixels = subparsers.add_parser(
        "pixel-series", parents=[common], help="Write pixel time series to a file."
    )
    pixels.add_argument(
        "-p",
        "--point",
        action="append",
        required=True,
        type=lambda v: parse_pair(v, "point"),
        help="lon,lat of a pixel; may be repeated.",
    )
    pixels.add_argument("-o", "--outfile", default="lt_pixels")
    pixels.add_argument("-f", "--filetype", default="csv")
    pixels.add_argument("--scale", type=float, default=30)
    pixels.add_argument("--segments", action="store_true")
    return parser


def resolve_config(args: argparse.Namespace) -> dict:
    """Load --config when given and apply command line overrides on top."""
    if args.config:
        config = load_config(args.config)
    else:
        config = {
            "run_params": validate_run_params(),
            "change_params": validate_change_params(),
            "export": validate_export_params(),
        }

    change_params = dict(config["change_params"])
    if args.index:
        change_params["index"] = args.index
    for key in ("delta", "sort"):
        value = getattr(args, key, None)
        if value is not None:
            change_params[key] = value
    mmu = getattr(args, "mmu", None)
    if mmu is not None:
        change_params["mmu"] = {"value": mmu}
    config["change_params"] = validate_change_params(
        {k: v for k, v in change_params.items() if k in DEFAULT_CHANGE_PARAMS}
    )

    config["ftv"] = [b.strip() for b in args.ftv.split(",") if b.strip()]
    for name in config["ftv"]:
        get_index_info(name)
    return config


def _run(args: argparse.Namespace, config: dict) -> ee.Image:
    index = config["change_params"]["index"]
    ftv_list = config.get("ftv", [])
    annual = ee.ImageCollection(args.collection).filter(
        ee.Filter.calendarRange(args.start_year, args.end_year, "year")
    )
    lt_collection = build_lt_collection(annual, index, ftv_list)
    return run_landtrendr(lt_collection, config["run_params"])


def change_map(args: argparse.Namespace, config: dict) -> ee.batch.Task:
    lt = _run(args, config)
    change_img = get_change_map(lt, config["change_params"])
    region = ee.Geometry.Rectangle(args.bbox)
    export = config["export"]
    if export["destination"] == "asset":
        return export_image_to_asset(
            change_img,
            args.description,
            export["asset_root"].rstrip("/") + "/" + args.description,
            region,
            scale=export["scale"],
            crs=export["crs"],
            max_pixels=export["max_pixels"],
        )
    return export_image_to_drive(
        change_img,
        args.description,
        region,
        folder=export["folder"],
        scale=export["scale"],
        crs=export["crs"],
        max_pixels=export["max_pixels"],
    )


def pixel_series(args: argparse.Namespace, config: dict) -> str:
    lt = _run(args, config)
    dist_dir = index_flipper(config["change_params"]["index"])
    frames = []
    for lon, lat in args.point:
        print(f"Extracting pixel at {lon}, {lat}")
        array, rmse = get_pixel_array(lt, ee.Geometry.Point([lon, lat]), args.scale)
        frame = lt_array_to_frame(array)
        if args.segments:
            frame = frame_segments(frame, rmse, dist_dir)
        frames.append(frame)
    return pixel_frames_to_file(frames, args.point, args.outfile, args.filetype)


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="[%(asctime)s] %(levelname)s %(name)s: %(message)s",
    )

    print(SEPARATOR)
    try:
        config = resolve_config(args)
    except (FileNotFoundError, ValueError, NotImplementedError, RuntimeError) as e:
        parser.error(str(e))

    try:
        ee_init(args.project)
    except RuntimeError as e:
        parser.exit(1, f"{parser.prog}: error: {e}\n")

    if args.command == "change-map":
        task = change_map(args, config)
        print(f"Started export task {task.id}")
    else:
        filename = pixel_series(args, config)
        print(f"Wrote {filename}")
    print("Job Complete!")
    print(SEPARATOR)
    return 0


if __name__ == "__main__":
    sys.exit(main())
