# -*- coding: utf-8 -*-
"""Tracks whether assembled training data is out of date with respect to the annotations."""

import logging

logger = logging.getLogger(__name__)


class ChangeTracker:
    """Listens to an annotation hierarchy and flags training data as stale.

    Notifications sent while a batch of changes is in progress are ignored; only the committed
    notification counts. ROIs reported as removed or replaced are evicted from the feature cache
    straight away so the cache does not grow over a long editing session.
    """

    def __init__(self, cache=None):
        """Initialize the tracker.

        Parameters:
        -----------
        cache : FeatureCache, optional
            Cache to evict removed ROIs from
        """
        self.cache = cache
        self.hierarchy = None
        self.stale = True

    def attach(self, hierarchy):
        """Start listening to a hierarchy, detaching from any previous one."""
        if hierarchy is self.hierarchy:
            return
        self.detach()
        self.hierarchy = hierarchy
        if hierarchy is not None:
            hierarchy.add_listener(self)
        self.stale = True

    def detach(self):
        if self.hierarchy is not None:
            self.hierarchy.remove_listener(self)
        self.hierarchy = None

    def mark_stale(self):
        self.stale = True

    def mark_clean(self):
        self.stale = False

    def hierarchy_changed(self, event):
        if event.changing:
            return
        if self.cache is not None:
            evicted = sum(self.cache.invalidate(roi) for roi in event.removed_rois)
            if evicted:
                logger.debug("Evicted %d cached feature matrices after hierarchy change", evicted)
        self.stale = True
