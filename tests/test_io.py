# -*- coding: utf-8 -*-
"""Tests for image servers and vector annotation input/output."""

import os

import geopandas as gpd
import numpy as np
import pytest
import rasterio
from shapely.geometry import LineString, box

from pixeltrainer import (
    ArrayImageServer,
    PathClass,
    RasterioImageServer,
    RegionRequest,
    annotations_from_geodataframe,
    default_class_color,
    hierarchy_to_geodataframe,
    read_annotations,
    read_raster,
    write_annotations,
)


@pytest.fixture
def gradient_image():
    return np.arange(2 * 100 * 80, dtype=np.float32).reshape(2, 100, 80)


@pytest.fixture
def raster_path(tmp_path, gradient_image):
    path = os.path.join(tmp_path, "gradient.tif")
    bands, height, width = gradient_image.shape
    with rasterio.open(
        path, "w", driver="GTiff", height=height, width=width, count=bands, dtype="float32"
    ) as dst:
        dst.write(gradient_image)
    return path


def test_array_server_reads_region(gradient_image):
    server = ArrayImageServer(gradient_image, path="memory://gradient")
    pixels = server.read_region(RegionRequest(server.path, 1.0, 10, 20, 30, 40))

    assert pixels.shape == (2, 40, 30)
    np.testing.assert_array_equal(pixels, gradient_image[:, 20:60, 10:40])


def test_array_server_pads_overhanging_region(gradient_image):
    """Pixels outside the image are zero."""
    server = ArrayImageServer(gradient_image)
    pixels = server.read_region(RegionRequest(server.path, 1.0, 70, 90, 20, 20))

    assert pixels.shape == (2, 20, 20)
    np.testing.assert_array_equal(pixels[:, :10, :10], gradient_image[:, 90:100, 70:80])
    assert np.all(pixels[:, 10:, :] == 0)
    assert np.all(pixels[:, :, 10:] == 0)


def test_array_server_downsamples(gradient_image):
    server = ArrayImageServer(gradient_image)
    pixels = server.read_region(RegionRequest(server.path, 2.0, 0, 0, 64, 64))

    assert pixels.shape == (2, 32, 32)


def test_array_server_rejects_region_outside_image(gradient_image):
    server = ArrayImageServer(gradient_image)
    with pytest.raises(IOError):
        server.read_region(RegionRequest(server.path, 1.0, 500, 500, 10, 10))


def test_array_server_accepts_single_band():
    server = ArrayImageServer(np.zeros((10, 20)))
    assert (server.n_bands, server.height, server.width) == (1, 10, 20)


def test_rasterio_server_matches_file(raster_path, gradient_image):
    server = RasterioImageServer(raster_path)
    pixels = server.read_region(RegionRequest(server.path, 1.0, 10, 20, 30, 40))

    assert (server.width, server.height, server.n_bands) == (80, 100, 2)
    np.testing.assert_array_equal(pixels, gradient_image[:, 20:60, 10:40])
    assert server.read_region(RegionRequest(server.path, 2.0, 0, 0, 64, 64)).shape == (2, 32, 32)

    with pytest.raises(IOError):
        server.read_region(RegionRequest(server.path, 1.0, 500, 500, 10, 10))


def test_rasterio_server_missing_file(tmp_path):
    with pytest.raises(IOError):
        RasterioImageServer(os.path.join(tmp_path, "missing.tif"))


def test_read_raster(raster_path, gradient_image):
    image_data, transform, crs = read_raster(raster_path)
    np.testing.assert_array_equal(image_data, gradient_image)


def test_annotations_from_geodataframe():
    """Rows become annotations; null classes stay unclassified."""
    gdf = gpd.GeoDataFrame(
        {
            "classification": ["Tumor", None, "Stroma", "Tumor"],
            "geometry": [box(0, 0, 10, 10), box(5, 5, 6, 6), LineString([(0, 0), (5, 5)]), box(20, 20, 30, 30)],
        }
    )

    hierarchy = annotations_from_geodataframe(gdf, class_color={"Tumor": "#ff0000"})
    objects = hierarchy.get_annotated_objects()

    assert len(objects) == 4
    assert objects[0].path_class == PathClass("Tumor")
    assert objects[0].path_class.color == "#ff0000"
    assert objects[0].path_class is objects[3].path_class
    assert objects[1].path_class is None
    assert objects[2].path_class.color == default_class_color("Stroma")
    assert objects[2].roi.is_line
    assert len(hierarchy.get_annotated_objects(class_filter=[PathClass("Tumor")])) == 2


def test_missing_class_column():
    gdf = gpd.GeoDataFrame({"label": ["Tumor"], "geometry": [box(0, 0, 1, 1)]})
    with pytest.raises(ValueError):
        annotations_from_geodataframe(gdf)


def test_geojson_round_trip(tmp_path):
    gdf = gpd.GeoDataFrame(
        {"classification": ["Tumor", "Background"], "geometry": [box(0, 0, 10, 10), box(20, 20, 30, 30)]}
    )
    hierarchy = annotations_from_geodataframe(gdf)
    path = os.path.join(tmp_path, "annotations", "training.geojson")

    write_annotations(hierarchy, path)
    restored = read_annotations(path)

    names = sorted(obj.path_class.name for obj in restored.get_annotated_objects())
    assert names == ["Background", "Tumor"]
    assert len(hierarchy_to_geodataframe(restored)) == 2


def test_unsupported_vector_format(tmp_path):
    gdf = gpd.GeoDataFrame({"classification": ["Tumor"], "geometry": [box(0, 0, 1, 1)]})
    with pytest.raises(ValueError):
        write_annotations(annotations_from_geodataframe(gdf), os.path.join(tmp_path, "out.csv"))
