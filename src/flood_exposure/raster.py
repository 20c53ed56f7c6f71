# -*- coding: utf-8 -*-

"""
Hazard rasters and point-in-flood-zone queries.

A hazard tier is fetched once per analysis as an RGBA image covering a WGS84
bounding box. Coloured, non-transparent pixels mark the flood zone.
"""

import asyncio
import io
import logging
import math
import os
from dataclasses import dataclass

import numpy as np
import rasterio
from PIL import Image, UnidentifiedImageError
from rasterio.enums import Resampling
from rasterio.errors import RasterioIOError
from rasterio.windows import from_bounds

from .errors import MalformedResponse, NetworkError, ServiceTimeout
from .models import BoundingBox, HazardTier

logger = logging.getLogger(__name__)

NOISE_THRESHOLD = 10


@dataclass(frozen=True, eq=False)
class RasterSample:
    """
    Decoded hazard image for one tier.

    ``pixels`` is a read-only uint8 array of shape (height, width, 4).
    """

    tier: HazardTier
    bbox: BoundingBox
    pixels: np.ndarray

    def __post_init__(self):
        if self.pixels.ndim != 3 or self.pixels.shape[2] != 4:
            raise ValueError(f"Expected an RGBA array, got shape {self.pixels.shape}")
        self.pixels.setflags(write=False)

    @property
    def width(self):
        return self.pixels.shape[1]

    @property
    def height(self):
        return self.pixels.shape[0]

    @classmethod
    def from_image(cls, tier, bbox, image):
        """Build a sample from a PIL image of any mode."""
        rgba = np.array(image.convert("RGBA"), dtype=np.uint8)
        return cls(tier=HazardTier(tier), bbox=bbox, pixels=rgba)

    @classmethod
    def from_bytes(cls, tier, bbox, data):
        try:
            with Image.open(io.BytesIO(data)) as image:
                return cls.from_image(tier, bbox, image)
        except (UnidentifiedImageError, OSError) as e:
            raise MalformedResponse(
                f"Failed to decode hazard image for tier {HazardTier(tier).value}: {e}"
            ) from e

    def pixel_at(self, lat, lon):
        """(px, py) of a point, or None when it falls outside the image."""
        bbox = self.bbox
        px = math.floor((lon - bbox.west) / (bbox.east - bbox.west) * self.width)
        py = math.floor((bbox.north - lat) / (bbox.north - bbox.south) * self.height)
        if px < 0 or px >= self.width or py < 0 or py >= self.height:
            return None
        return px, py


def is_flooded(lat, lon, sample, threshold=NOISE_THRESHOLD):
    """
    Check whether a point lies in the flood zone of a raster sample.

    A pixel counts as flooded when its alpha exceeds the noise threshold and
    at least one colour channel does too; this keeps anti-aliased, nearly
    transparent edge pixels out. Points outside the image are not flooded.

    Parameters:
    -----------
    lat : float
        Latitude of the point
    lon : float
        Longitude of the point
    sample : RasterSample
        Decoded hazard image
    threshold : int
        Noise threshold for alpha and colour channels

    Returns:
    --------
    bool
    """
    pixel = sample.pixel_at(lat, lon)
    if pixel is None:
        return False

    px, py = pixel
    r, g, b, a = (int(v) for v in sample.pixels[py, px])
    return a > threshold and (r > threshold or g > threshold or b > threshold)


class WMSRasterSource:
    """Loads hazard tiers with WMS GetMap requests."""

    def __init__(self, transport, url, layers, width=800, height=800):
        self.transport = transport
        self.url = url
        self.layers = layers
        self.width = width
        self.height = height

    def request_params(self, tier, bbox):
        tier = HazardTier(tier)
        return {
            "SERVICE": "WMS",
            "VERSION": "1.1.1",
            "REQUEST": "GetMap",
            "LAYERS": self.layers[tier.value],
            "STYLES": "",
            "BBOX": f"{bbox.west},{bbox.south},{bbox.east},{bbox.north}",
            "WIDTH": str(self.width),
            "HEIGHT": str(self.height),
            "FORMAT": "image/png",
            "TRANSPARENT": "TRUE",
            "SRS": "EPSG:4326",
        }

    async def load_tier(self, tier, bbox):
        """
        Fetch and decode the hazard image of one tier.

        Raises:
        -------
        NetworkError
            The service answered with an error status or could not be reached
        MalformedResponse
            The body is not a decodable image
        """
        tier = HazardTier(tier)
        response = await self.transport.request("GET", self.url, params=self.request_params(tier, bbox))

        if not response.ok:
            error_cls = ServiceTimeout if response.status in (503, 504) else NetworkError
            raise error_cls(
                f"Failed to load WMS image for layer {self.layers[tier.value]} "
                f"(status {response.status})",
                status=response.status,
                endpoint=self.url,
            )

        sample = RasterSample.from_bytes(tier, bbox, response.body)
        logger.info("Loaded %s hazard raster (%dx%d)", tier.value, sample.width, sample.height)
        return sample


class GeoTiffRasterSource:
    """
    Loads hazard tiers from local RGBA GeoTIFFs, one file per tier.

    Files are looked up as ``<directory>/<tier>.tif``. The window covering the
    bounding box is resampled to the configured grid, so queries behave as
    they would against the WMS image.
    """

    def __init__(self, directory, width=800, height=800):
        self.directory = directory
        self.width = width
        self.height = height

    def path_for(self, tier):
        return os.path.join(self.directory, f"{HazardTier(tier).value}.tif")

    def read(self, tier, bbox):
        path = self.path_for(tier)
        try:
            with rasterio.open(path) as src:
                window = from_bounds(bbox.west, bbox.south, bbox.east, bbox.north,
                                     transform=src.transform)
                bands = min(src.count, 4)
                data = src.read(
                    list(range(1, bands + 1)),
                    window=window,
                    out_shape=(bands, self.height, self.width),
                    boundless=True,
                    fill_value=0,
                    resampling=Resampling.nearest,
                )
        except RasterioIOError as e:
            raise MalformedResponse(f"Failed to read hazard raster {path}: {e}") from e

        if bands < 4:
            # Single band masks: non-zero cells become opaque blue
            mask = data[0] > 0
            rgba = np.zeros((self.height, self.width, 4), dtype=np.uint8)
            rgba[mask] = (0, 0, 255, 255)
        else:
            rgba = np.moveaxis(data, 0, -1).astype(np.uint8)

        return RasterSample(tier=HazardTier(tier), bbox=bbox, pixels=rgba)

    async def load_tier(self, tier, bbox):
        return await asyncio.to_thread(self.read, tier, bbox)


async def load_tiers(source, tiers, bbox):
    """
    Load several tiers concurrently.

    Returns:
    --------
    dict
        HazardTier -> RasterSample
    """
    tiers = [HazardTier(t) for t in tiers]
    samples = await asyncio.gather(*(source.load_tier(t, bbox) for t in tiers))
    return dict(zip(tiers, samples))
