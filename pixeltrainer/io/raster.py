# -*- coding: utf-8 -*-
"""Serves pixel regions from raster images, either held in memory or read from disk with rasterio.

Image servers answer RegionRequests: a region in full-resolution pixel coordinates plus a downsample.
Regions that overhang the image are zero-padded; regions that miss the image entirely raise IOError.
ImageData pairs a server with the annotation hierarchy drawn on top of it.
"""

import os
import uuid

import numpy as np
import rasterio
from rasterio.errors import RasterioIOError
from rasterio.windows import Window
from skimage.transform import resize

from ..core.hierarchy import AnnotationHierarchy


def read_raster(raster_path):
    """Read a raster file and return its data, transform, and CRS.

    Parameters:
    -----------
    raster_path : str
        Path to the raster file

    Returns:
    --------
    image_data : numpy.ndarray
        Array with raster data values
    transform : affine.Affine
        Affine transformation for the raster
    crs : rasterio.crs.CRS
        Coordinate reference system
    """
    with rasterio.open(raster_path) as src:
        image_data = src.read()
        transform = src.transform
        crs = src.crs

    return image_data, transform, crs


def _clip_request(request, width, height):
    x0, y0 = max(request.x, 0), max(request.y, 0)
    x1, y1 = min(request.x + request.width, width), min(request.y + request.height, height)
    if x0 >= x1 or y0 >= y1:
        raise IOError(f"{request} lies outside the image ({width} x {height})")
    return x0, y0, x1, y1


class ImageServer:
    """Base class for image servers."""

    def __init__(self, path, width, height, n_bands):
        self.path = path
        self.width = int(width)
        self.height = int(height)
        self.n_bands = int(n_bands)

    def read_region(self, request):
        """Read a region.

        Parameters:
        -----------
        request : RegionRequest
            Region to read

        Returns:
        --------
        pixels : numpy.ndarray
            Array with shape (bands, request.output_height, request.output_width)
        """
        raise NotImplementedError

    def __repr__(self):
        return f"{type(self).__name__}('{self.path}', {self.width} x {self.height}, bands={self.n_bands})"


class ArrayImageServer(ImageServer):
    """Serves regions from an in-memory (bands, height, width) array."""

    def __init__(self, image_data, path=None):
        if image_data.ndim == 2:
            image_data = image_data.reshape(1, *image_data.shape)
        if image_data.ndim != 3:
            raise ValueError(f"Expected image data with shape (bands, height, width), got {image_data.shape}")
        n_bands, height, width = image_data.shape
        super().__init__(path if path else f"memory://{uuid.uuid4()}", width, height, n_bands)
        self.image_data = image_data

    def read_region(self, request):
        x0, y0, x1, y1 = _clip_request(request, self.width, self.height)

        region = np.zeros((self.n_bands, request.height, request.width), dtype=np.float32)
        region[:, y0 - request.y : y1 - request.y, x0 - request.x : x1 - request.x] = self.image_data[:, y0:y1, x0:x1]

        out_shape = (self.n_bands, request.output_height, request.output_width)
        if region.shape != out_shape:
            region = resize(
                region,
                out_shape,
                order=1,
                anti_aliasing=request.downsample > 1,
                preserve_range=True,
            ).astype(np.float32)
        return region


class RasterioImageServer(ImageServer):
    """Serves regions read on demand from a raster file."""

    def __init__(self, raster_path):
        try:
            with rasterio.open(raster_path) as src:
                width, height, count = src.width, src.height, src.count
        except RasterioIOError as e:
            raise IOError(f"Unable to open {raster_path}: {e}") from e
        super().__init__(os.path.abspath(raster_path), width, height, count)

    def read_region(self, request):
        x0, y0, x1, y1 = _clip_request(request, self.width, self.height)
        inside = (x0, y0, x1, y1) == (request.x, request.y, request.x + request.width, request.y + request.height)
        window = Window(request.x, request.y, request.width, request.height)
        out_shape = (self.n_bands, request.output_height, request.output_width)
        try:
            with rasterio.open(self.path) as src:
                pixels = src.read(window=window, out_shape=out_shape, boundless=not inside, fill_value=0)
        except RasterioIOError as e:
            raise IOError(f"Unable to read {request}: {e}") from e
        return pixels.astype(np.float32)


class ImageData:
    """An image server together with the annotations drawn on it."""

    def __init__(self, server, hierarchy=None):
        """Initialize the image data.

        Parameters:
        -----------
        server : ImageServer
            Source of pixels
        hierarchy : AnnotationHierarchy, optional
            Annotations; an empty hierarchy is created if None
        """
        self.server = server
        self.hierarchy = hierarchy if hierarchy is not None else AnnotationHierarchy()

    @property
    def server_path(self):
        return self.server.path

    def __str__(self):
        """String representation of the image data."""
        return f"ImageData '{self.server_path}' (annotations: {len(self.hierarchy)})"
