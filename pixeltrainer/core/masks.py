# -*- coding: utf-8 -*-
"""Rasterizes ROI shapes into binary masks aligned with feature calculation results.

A feature calculator may pool or resample internally, so the result grid can be smaller than the
requested region. Masks are therefore drawn at the resolution of the result rather than the request,
using an effective downsample derived from both sizes.
"""

import numpy as np
import rasterio.features
from rasterio.transform import Affine
from shapely.geometry import LinearRing, LineString
from skimage.transform import resize

MASK_ON = 255


def mask_downsample(request, result_width, result_height):
    """Effective downsample between a request and the feature grid calculated for it.

    The width and height ratios are averaged rather than kept separate, which matches how trained
    models were produced so far. Non-uniform pooling can therefore slightly distort the mask.

    Parameters:
    -----------
    request : RegionRequest
        Requested region, in full-resolution pixels
    result_width, result_height : int
        Size of the feature result

    Returns:
    --------
    downsample : float
    """
    return 0.5 * (request.width / result_width) + 0.5 * (request.height / result_height)


def _burnable(geometry):
    if isinstance(geometry, LinearRing):
        return LineString(geometry.coords)
    return geometry


def rasterize_roi(roi, request, result_width, result_height):
    """Render a ROI into a mask with the same grid as a feature result.

    Areas are filled using the pixel-centre rule. Lines are stroked one mask pixel wide, which
    corresponds to a stroke width equal to the effective downsample in image space.

    Parameters:
    -----------
    roi : ROI
        Area or line ROI to render
    request : RegionRequest
        Region the features were calculated for
    result_width, result_height : int
        Size of the feature result

    Returns:
    --------
    mask : numpy.ndarray
        uint8 array of shape (result_height, result_width) containing 0 or 255
    """
    if not (roi.is_area or roi.is_line):
        raise ValueError(f"{roi} is neither an area nor a line")

    mask = np.zeros((result_height, result_width), dtype=np.uint8)
    if roi.is_empty:
        return mask

    downsample = mask_downsample(request, result_width, result_height)
    transform = Affine(downsample, 0.0, request.x, 0.0, downsample, request.y)

    rasterio.features.rasterize(
        [(_burnable(roi.geometry), MASK_ON)],
        out=mask,
        transform=transform,
        fill=0,
        all_touched=False,
    )
    return match_mask_shape(mask, result_width, result_height)


def match_mask_shape(mask, width, height):
    """Resize a mask to (height, width) with area-weighted interpolation, keeping it binary."""
    if mask.shape == (height, width):
        return mask
    resized = resize(
        mask.astype(np.float32),
        (height, width),
        order=1,
        anti_aliasing=True,
        preserve_range=True,
    )
    return np.where(resized >= MASK_ON / 2, MASK_ON, 0).astype(np.uint8)


def select_masked_rows(features, mask):
    """Select the feature vectors of pixels inside a mask.

    Parameters:
    -----------
    features : numpy.ndarray
        Feature result with shape (height, width, n_features)
    mask : numpy.ndarray
        Mask with shape (height, width)

    Returns:
    --------
    rows : numpy.ndarray
        Array with shape (n_selected, n_features), in row-major pixel order
    """
    assert features.ndim == 3, f"Expected features with shape (height, width, n_features), got {features.shape}"
    height, width, n_features = features.shape
    assert mask.shape == (height, width), f"Mask shape {mask.shape} does not match feature grid {(height, width)}"

    flat_features = features.reshape(height * width, n_features)
    flat_mask = mask.reshape(height * width)
    return flat_features[flat_mask != 0]
