# -*- coding: utf-8 -*-
"""Splits a ROI's bounding box into fixed-size feature extraction windows.

Tiles stride across the bounding box without looking at the shape itself, so sparse or diagonal
shapes produce some tiles that the mask later discards entirely.
"""

import math

from .objects import RegionRequest


def tile_size(input_width, input_height, downsample):
    """Size of one extraction window in full-resolution pixels.

    Parameters:
    -----------
    input_width, input_height : int
        Native input size of the feature calculator
    downsample : float
        Downsample at which features are calculated

    Returns:
    --------
    (tw, th) : tuple of int
    """
    tw = int(round(input_width * downsample))
    th = int(round(input_height * downsample))
    if tw <= 0 or th <= 0:
        raise ValueError(f"Tile size must be positive, got {tw} x {th} (downsample={downsample})")
    return tw, th


def tile_roi(roi, path, input_width, input_height, downsample):
    """Create the region requests covering a ROI's bounding box.

    Tiles start at the floored top-left corner of the box, step by the tile size and continue while
    the tile origin is inside the ceiling-rounded extent (for lines, up to and including the pixel
    holding the floored far edge). Every tile has the full tile size, so the last row and column may
    extend past the ROI.

    Parameters:
    -----------
    roi : ROI
        Region to cover
    path : str
        Image server path recorded in each request
    input_width, input_height : int
        Native input size of the feature calculator
    downsample : float
        Downsample at which features are calculated

    Returns:
    --------
    requests : list of RegionRequest
        Row-major list of tiles
    """
    tw, th = tile_size(input_width, input_height, downsample)
    bx, by, bw, bh = roi.bounds

    x_start, y_start = int(math.floor(bx)), int(math.floor(by))
    if roi.is_line:
        # A line on an integer coordinate burns the pixel after it, so the last column or row
        # containing that pixel must be tiled too.
        x_end = int(math.floor(bx + bw)) + 1
        y_end = int(math.floor(by + bh)) + 1
    else:
        x_end = max(int(math.ceil(bx + bw)), x_start + 1)
        y_end = max(int(math.ceil(by + bh)), y_start + 1)

    requests = []
    for y in range(y_start, y_end, th):
        for x in range(x_start, x_end, tw):
            requests.append(RegionRequest(path, downsample, x, y, tw, th, roi.z, roi.t))
    return requests
