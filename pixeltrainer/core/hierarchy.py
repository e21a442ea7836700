# -*- coding: utf-8 -*-
"""Holds annotation objects for an image and notifies listeners about structural changes.

Changes made inside a batch are reported with ``changing=True`` and followed by a single committed
event when the outermost batch ends, so listeners can ignore the intermediate notifications.
"""

import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HierarchyEvent:
    """A structural change notification.

    Parameters:
    -----------
    source : AnnotationHierarchy
        Hierarchy that changed
    changing : bool
        True while a batch of changes is still in progress
    removed_rois : tuple of ROI
        ROIs that were removed or replaced by the change
    """

    source: object
    changing: bool = False
    removed_rois: tuple = field(default_factory=tuple)


class AnnotationHierarchy:
    """A flat collection of annotation objects with change listeners."""

    def __init__(self, objects=None):
        """Initialize the hierarchy.

        Parameters:
        -----------
        objects : iterable of AnnotationObject, optional
            Objects to add without firing events
        """
        self._objects = list(objects) if objects is not None else []
        self._listeners = []
        self._lock = threading.RLock()
        self._batch_depth = 0
        self._batch_removed = []

    def __len__(self):
        return len(self._objects)

    def __iter__(self):
        return iter(list(self._objects))

    def add_listener(self, listener):
        """Register a listener.

        Parameters:
        -----------
        listener : callable or object
            Either a callable taking a HierarchyEvent, or an object with a ``hierarchy_changed(event)`` method
        """
        with self._lock:
            if listener not in self._listeners:
                self._listeners.append(listener)

    def remove_listener(self, listener):
        with self._lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    @property
    def listeners(self):
        return tuple(self._listeners)

    def get_annotated_objects(self, class_filter=None):
        """Get annotation objects, optionally only those with given classes.

        Parameters:
        -----------
        class_filter : iterable of PathClass, optional
            Classes to keep. If None, all objects are returned.

        Returns:
        --------
        objects : list of AnnotationObject
        """
        with self._lock:
            objects = list(self._objects)
        if class_filter is None:
            return objects
        allowed = set(class_filter)
        return [obj for obj in objects if obj.path_class in allowed]

    def add_object(self, obj, fire=True):
        with self._lock:
            self._objects.append(obj)
        if fire:
            self._fire()
        return obj

    def add_objects(self, objects):
        with self._lock:
            self._objects.extend(objects)
        self._fire()

    def remove_object(self, obj):
        """Remove an object, reporting its ROI as removed."""
        with self._lock:
            if obj not in self._objects:
                raise ValueError(f"Object {obj} is not in the hierarchy")
            self._objects.remove(obj)
        removed = (obj.roi,) if obj.roi is not None else ()
        self._fire(removed)

    def set_roi(self, obj, roi):
        """Replace the ROI of an object, reporting the previous ROI as removed."""
        previous = obj.roi
        obj.roi = roi
        removed = (previous,) if previous is not None and previous is not roi else ()
        self._fire(removed)

    def set_path_class(self, obj, path_class):
        obj.path_class = path_class
        self._fire()

    def clear(self):
        with self._lock:
            removed = tuple(obj.roi for obj in self._objects if obj.roi is not None)
            self._objects = []
        self._fire(removed)

    @contextmanager
    def batch(self):
        """Group changes so that listeners see a single committed event at the end.

        Examples:
        ---------
        >>> with hierarchy.batch():
        ...     hierarchy.add_object(a)
        ...     hierarchy.remove_object(b)
        """
        with self._lock:
            self._batch_depth += 1
        try:
            yield self
        finally:
            with self._lock:
                self._batch_depth -= 1
                done = self._batch_depth == 0
                removed = tuple(self._batch_removed) if done else ()
                if done:
                    self._batch_removed = []
            if done:
                self._notify(HierarchyEvent(self, changing=False, removed_rois=removed))

    def _fire(self, removed=()):
        with self._lock:
            changing = self._batch_depth > 0
            if changing:
                self._batch_removed.extend(removed)
        self._notify(HierarchyEvent(self, changing=changing, removed_rois=tuple(removed)))

    def _notify(self, event):
        for listener in self.listeners:
            handler = getattr(listener, "hierarchy_changed", listener)
            handler(event)
        logger.debug("Hierarchy event sent to %d listener(s) (changing=%s)", len(self.listeners), event.changing)
