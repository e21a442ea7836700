# -*- coding: utf-8 -*-
"""Defines the annotation data model used when assembling pixel classifier training data.

A PathClass is a named, colored label, a ROI is a shapely geometry bound to an image plane, and an
AnnotationObject ties the two together. OutputChannel and RegionRequest describe the classifier output
and the pixel regions requested from an image server.
"""

from dataclasses import dataclass, field

from shapely.geometry import LinearRing, LineString, MultiLineString, MultiPolygon, Polygon

TRANSPARENT = "#00000000"


@dataclass(frozen=True, order=True)
class PathClass:
    """A classification label.

    Two classes are the same class if they share a name; the color is display metadata only.
    Ordering is lexicographic by name, which gives class sets a stable iteration order.
    """

    name: str
    color: str = field(default="#808080", compare=False)

    def __str__(self):
        """String representation of the class."""
        return self.name


REGION_CLASS = PathClass("Region*", "#0000b4")


class ROI:
    """A region of interest: a vector geometry on one z/t plane of an image.

    ROIs compare by identity. Editing a shape means replacing the ROI, so a ROI can safely be used
    as a key for anything computed from its geometry.
    """

    __slots__ = ("_geometry", "_z", "_t")

    def __init__(self, geometry, z=0, t=0):
        """Initialize a ROI.

        Parameters:
        -----------
        geometry : shapely.geometry.base.BaseGeometry
            Shape in full-resolution pixel coordinates (y axis pointing down)
        z : int
            Z-slice index
        t : int
            Time point index
        """
        self._geometry = geometry
        self._z = int(z)
        self._t = int(t)

    @property
    def geometry(self):
        return self._geometry

    @property
    def z(self):
        return self._z

    @property
    def t(self):
        return self._t

    @property
    def bounds(self):
        """Bounding box as (x, y, width, height)."""
        minx, miny, maxx, maxy = self._geometry.bounds
        return minx, miny, maxx - minx, maxy - miny

    @property
    def is_area(self):
        return isinstance(self._geometry, (Polygon, MultiPolygon))

    @property
    def is_line(self):
        return isinstance(self._geometry, (LineString, MultiLineString, LinearRing))

    @property
    def is_empty(self):
        return self._geometry.is_empty

    def __repr__(self):
        x, y, w, h = self.bounds if not self.is_empty else (0, 0, 0, 0)
        return f"ROI({self._geometry.geom_type}, x={x:g}, y={y:g}, w={w:g}, h={h:g}, z={self._z}, t={self._t})"


@dataclass(eq=False)
class AnnotationObject:
    """An annotation in the hierarchy: an optional classification plus an optional ROI.

    Annotation objects are mutable members of a hierarchy, so they compare by identity.
    """

    path_class: PathClass = None
    roi: ROI = None
    name: str = None

    @property
    def has_roi(self):
        return self.roi is not None


@dataclass(frozen=True)
class OutputChannel:
    """One output channel of a pixel classifier: a class name and its display color."""

    name: str
    color: str

    @property
    def is_transparent(self):
        return self.color == TRANSPARENT


@dataclass(frozen=True)
class RegionRequest:
    """A request for pixels from an image server.

    Coordinates and sizes are in full-resolution pixel units; the server returns the region scaled
    by 1 / downsample.
    """

    path: str
    downsample: float
    x: int
    y: int
    width: int
    height: int
    z: int = 0
    t: int = 0

    @property
    def output_width(self):
        return max(1, int(round(self.width / self.downsample)))

    @property
    def output_height(self):
        return max(1, int(round(self.height / self.downsample)))

    def __str__(self):
        """String representation of the request."""
        return (
            f"Region {self.path}: downsample={self.downsample:g}, "
            f"x={self.x}, y={self.y}, w={self.width}, h={self.height}, z={self.z}, t={self.t}"
        )
