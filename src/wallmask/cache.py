"""Opt-in memoization of occlusion masks.

The surrounding app re-requests a mask every time the user touches the
wall selection, often with an unchanged crop.  ``OcclusionMaskCache`` keys
results on a digest of the pixels, the crop bounds and the config.
"""

from __future__ import annotations

import hashlib
import logging
import threading
from collections import OrderedDict

import numpy as np

from .pipeline import OcclusionMaskBuilder
from .raster import ensure_rgba
from .schema import OcclusionMaskConfig

logger = logging.getLogger(__name__)

Bounds = tuple[int, int, int, int]


def raster_digest(rgba: np.ndarray) -> str:
    """Content digest of a raster, including its shape."""
    h = hashlib.blake2b(digest_size=16)
    h.update(repr(rgba.shape).encode())
    h.update(np.ascontiguousarray(rgba).tobytes())
    return h.hexdigest()


class OcclusionMaskCache:
    """Thread-safe LRU cache in front of :class:`OcclusionMaskBuilder`.

    Returned arrays are copies, so callers may modify them freely.
    """

    def __init__(self, maxsize: int = 8, config: OcclusionMaskConfig | None = None):
        if maxsize < 1:
            raise ValueError(f"maxsize must be >= 1, got {maxsize}")
        self.maxsize = maxsize
        self.builder = OcclusionMaskBuilder(config)
        self._entries: OrderedDict[tuple, np.ndarray] = OrderedDict()
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def get(self, image: np.ndarray, bounds: Bounds | None = None) -> np.ndarray:
        """Return the mask for ``image``, building it on a miss.

        Parameters
        ----------
        image : np.ndarray
            (H, W, 4) or (H, W, 3) uint8 crop.
        bounds : tuple | None
            ``(x, y, w, h)`` of the crop within the photo.  Only used as
            part of the key.
        """
        rgba = ensure_rgba(image)
        key = (raster_digest(rgba), bounds, self.builder.config)

        with self._lock:
            cached = self._entries.get(key)
            if cached is not None:
                self._entries.move_to_end(key)
                self.hits += 1
                return cached.copy()
            self.misses += 1

        logger.info("Occlusion mask cache miss (%dx%d, bounds=%s)", rgba.shape[1], rgba.shape[0], bounds)
        mask = self.builder.run(rgba).rgba

        with self._lock:
            self._entries[key] = mask
            self._entries.move_to_end(key)
            while len(self._entries) > self.maxsize:
                self._entries.popitem(last=False)
        return mask.copy()

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self.hits = 0
            self.misses = 0
