# -*- coding: utf-8 -*-
"""Reads and writes annotations as vector data, supporting formats like Shapefile and GeoJSON.

Geometries are expected in pixel coordinates of the annotated image (x to the right, y down).
"""

import os

import geopandas as gpd
import pandas as pd

from ..core.hierarchy import AnnotationHierarchy
from ..core.objects import ROI, AnnotationObject, PathClass
from ..utils.helpers import default_class_color


def annotations_from_geodataframe(gdf, class_field="classification", class_color=None, z_field=None, t_field=None):
    """Create an annotation hierarchy from a GeoDataFrame.

    Parameters:
    -----------
    gdf : geopandas.GeoDataFrame
        One row per annotation
    class_field : str
        Column holding class names; rows with a null value become unclassified annotations
    class_color : dict, optional
        Class name -> hex color. Classes not listed get a default color.
    z_field, t_field : str, optional
        Columns holding the z-slice and time point of each annotation

    Returns:
    --------
    hierarchy : AnnotationHierarchy
    """
    if class_field not in gdf.columns:
        raise ValueError(f"Column '{class_field}' not found in vector data")
    class_color = class_color if class_color else {}

    classes = {}
    objects = []
    for _, row in gdf.iterrows():
        name = row[class_field]
        path_class = None
        if not pd.isna(name):
            name = str(name)
            if name not in classes:
                classes[name] = PathClass(name, class_color.get(name, default_class_color(name)))
            path_class = classes[name]

        geometry = row.geometry
        roi = None
        if geometry is not None and not geometry.is_empty:
            z = int(row[z_field]) if z_field else 0
            t = int(row[t_field]) if t_field else 0
            roi = ROI(geometry, z=z, t=t)
        objects.append(AnnotationObject(path_class=path_class, roi=roi))

    return AnnotationHierarchy(objects)


def read_annotations(vector_path, class_field="classification", class_color=None):
    """Read a vector file into an annotation hierarchy.

    Parameters:
    -----------
    vector_path : str
        Path to the vector file
    class_field : str
        Column holding class names
    class_color : dict, optional
        Class name -> hex color

    Returns:
    --------
    hierarchy : AnnotationHierarchy
    """
    return annotations_from_geodataframe(gpd.read_file(vector_path), class_field=class_field, class_color=class_color)


def hierarchy_to_geodataframe(hierarchy, class_field="classification"):
    """Convert the annotations of a hierarchy that have a ROI to a GeoDataFrame."""
    records = []
    for obj in hierarchy.get_annotated_objects():
        if not obj.has_roi:
            continue
        records.append(
            {
                class_field: obj.path_class.name if obj.path_class is not None else None,
                "color": obj.path_class.color if obj.path_class is not None else None,
                "z": obj.roi.z,
                "t": obj.roi.t,
                "geometry": obj.roi.geometry,
            }
        )
    columns = [class_field, "color", "z", "t", "geometry"]
    return gpd.GeoDataFrame(pd.DataFrame(records, columns=columns), geometry="geometry")


def write_annotations(hierarchy, output_path, class_field="classification"):
    """Write the annotations of a hierarchy to a Shapefile or GeoJSON file.

    Parameters:
    -----------
    hierarchy : AnnotationHierarchy
        Annotations to write
    output_path : str
        Path to the output vector file
    class_field : str
        Column to store class names in
    """
    directory = os.path.dirname(output_path)
    if directory:
        os.makedirs(directory, exist_ok=True)
    file_extension = os.path.splitext(output_path)[1].lower()
    gdf = hierarchy_to_geodataframe(hierarchy, class_field=class_field)

    if file_extension == ".shp":
        gdf.to_file(output_path)
    elif file_extension == ".geojson":
        gdf.to_file(output_path, driver="GeoJSON")
    else:
        raise ValueError(f"Unsupported vector format: {file_extension}")
