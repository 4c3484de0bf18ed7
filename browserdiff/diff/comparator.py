"""Perceptual pixel comparison of two equal-size screenshots.

Follows the pixelmatch approach: each pixel pair is compared by its YIQ
colour distance, pixels above ``35215 * threshold**2`` count as different,
and (unless ``include_aa`` is set) pixels that look like anti-aliased edges
in either image are reported separately and not counted. The whole scan is
vectorised with numpy.
"""

from __future__ import annotations

import io
import logging
from dataclasses import dataclass
from pathlib import Path

import numpy as np
from PIL import Image

from browserdiff.errors import DimensionMismatchError
from browserdiff.models.difference_report import DiffMetrics

logger = logging.getLogger(__name__)

# Largest possible YIQ distance between two colours
MAX_YIQ_DELTA = 35215.0

DIFF_COLOR = (255, 0, 0)
AA_COLOR = (255, 255, 0)
GRAY_ALPHA = 0.1

# Scan order of the 3x3 neighbourhood: x outer, y inner, centre skipped
_NEIGHBOURS = [(dx, dy) for dx in (-1, 0, 1) for dy in (-1, 0, 1) if (dx, dy) != (0, 0)]


@dataclass
class ImageDiff:
    diff_image: Image.Image
    metrics: DiffMetrics
    aa_pixels: int = 0


def read_png(path: str | Path) -> Image.Image:
    with Image.open(path) as img:
        img.load()
        return img.copy()


def encode_png(image: Image.Image) -> bytes:
    buf = io.BytesIO()
    image.save(buf, format="PNG")
    return buf.getvalue()


def _rgba_array(image: Image.Image) -> np.ndarray:
    return np.asarray(image.convert("RGBA"), dtype=np.uint8)


def _blend(channel: np.ndarray, alpha: np.ndarray) -> np.ndarray:
    """Blend a channel with white by ``alpha`` (0-1)."""
    return 255.0 + (channel - 255.0) * alpha


def _blended_rgb(rgba: np.ndarray) -> np.ndarray:
    alpha = rgba[..., 3:4].astype(np.float64) / 255.0
    return _blend(rgba[..., :3].astype(np.float64), alpha)


def _rgb2y(rgb: np.ndarray) -> np.ndarray:
    return rgb[..., 0] * 0.29889531 + rgb[..., 1] * 0.58662247 + rgb[..., 2] * 0.11448223


def _rgb2i(rgb: np.ndarray) -> np.ndarray:
    return rgb[..., 0] * 0.59597799 - rgb[..., 1] * 0.27417610 - rgb[..., 2] * 0.32180189


def _rgb2q(rgb: np.ndarray) -> np.ndarray:
    return rgb[..., 0] * 0.21147017 - rgb[..., 1] * 0.52261711 + rgb[..., 2] * 0.31114694


def color_delta(rgba1: np.ndarray, rgba2: np.ndarray) -> np.ndarray:
    """Squared YIQ distance per pixel (unsigned)."""
    rgb1 = _blended_rgb(rgba1)
    rgb2 = _blended_rgb(rgba2)
    y = _rgb2y(rgb1) - _rgb2y(rgb2)
    i = _rgb2i(rgb1) - _rgb2i(rgb2)
    q = _rgb2q(rgb1) - _rgb2q(rgb2)
    return 0.5053 * y * y + 0.299 * i * i + 0.1957 * q * q


def _shift(arr: np.ndarray, dx: int, dy: int) -> np.ndarray:
    """out[y, x] = arr[y + dy, x + dx], edge-padded outside the image."""
    pad = [(1, 1), (1, 1)] + [(0, 0)] * (arr.ndim - 2)
    padded = np.pad(arr, pad, mode="edge")
    h, w = arr.shape[:2]
    return padded[1 + dy: 1 + dy + h, 1 + dx: 1 + dx + w]


def _neighbour_valid(h: int, w: int) -> list[np.ndarray]:
    ys, xs = np.mgrid[0:h, 0:w]
    return [
        (xs + dx >= 0) & (xs + dx < w) & (ys + dy >= 0) & (ys + dy < h)
        for dx, dy in _NEIGHBOURS
    ]


def _on_edge(h: int, w: int) -> np.ndarray:
    ys, xs = np.mgrid[0:h, 0:w]
    return (xs == 0) | (xs == w - 1) | (ys == 0) | (ys == h - 1)


def _has_many_siblings(rgba: np.ndarray, valid: list[np.ndarray], edge: np.ndarray) -> np.ndarray:
    """True where more than two neighbours (edges count as one) share the exact colour."""
    count = edge.astype(np.int32)
    for k, (dx, dy) in enumerate(_NEIGHBOURS):
        same = np.all(_shift(rgba, dx, dy) == rgba, axis=-1)
        count += valid[k] & same
    return count > 2


def _antialiased(
    brightness: np.ndarray,
    siblings: np.ndarray,
    other_siblings: np.ndarray,
    valid: list[np.ndarray],
    edge: np.ndarray,
) -> np.ndarray:
    """Detect pixels that sit on an anti-aliased edge of ``brightness``.

    A pixel qualifies when at most two of its neighbours (edges count as one)
    have equal brightness, it has both a darker and a brighter neighbour, and
    the darkest or brightest neighbour has many same-coloured siblings in
    both images.
    """
    zeroes = edge.astype(np.int32)
    min_delta = np.zeros(brightness.shape)
    max_delta = np.zeros(brightness.shape)
    min_idx = np.full(brightness.shape, -1)
    max_idx = np.full(brightness.shape, -1)

    for k, (dx, dy) in enumerate(_NEIGHBOURS):
        delta = brightness - _shift(brightness, dx, dy)
        zeroes += valid[k] & (delta == 0)
        lower = valid[k] & (delta < min_delta)
        higher = valid[k] & (delta > max_delta)
        min_delta = np.where(lower, delta, min_delta)
        min_idx = np.where(lower, k, min_idx)
        max_delta = np.where(higher, delta, max_delta)
        max_idx = np.where(higher, k, max_idx)

    candidate = (zeroes <= 2) & (min_delta < 0) & (max_delta > 0)
    result = np.zeros(brightness.shape, dtype=bool)
    if not candidate.any():
        return result

    both = siblings & other_siblings
    for k, (dx, dy) in enumerate(_NEIGHBOURS):
        sib_at_neighbour = _shift(both, dx, dy)
        result |= candidate & (min_idx == k) & sib_at_neighbour
        result |= candidate & (max_idx == k) & sib_at_neighbour
    return result


def _gray_background(rgba: np.ndarray) -> np.ndarray:
    y = _rgb2y(rgba[..., :3].astype(np.float64))
    alpha = GRAY_ALPHA * rgba[..., 3].astype(np.float64) / 255.0
    return _blend(y, alpha)


class ImageComparator:
    """Compares two rasters of identical size."""

    def compare(
        self,
        baseline: Image.Image,
        current: Image.Image,
        threshold: float = 0.1,
        include_aa: bool = True,
    ) -> ImageDiff:
        """Return the diff raster and metrics for ``current`` against ``baseline``.

        Raises:
            DimensionMismatchError: if the two images differ in size. Images
                are never resized or cropped to fit.
            ValueError: if ``threshold`` is outside [0, 1].
        """
        if baseline.size != current.size:
            raise DimensionMismatchError(baseline.size, current.size)
        if threshold < 0 or threshold > 1:
            raise ValueError(f"threshold must be between 0 and 1, got {threshold}")

        width, height = baseline.size
        total_pixels = width * height
        img1 = _rgba_array(baseline)
        img2 = _rgba_array(current)

        gray = np.clip(_gray_background(img1), 0, 255).astype(np.uint8)
        output = np.empty((height, width, 4), dtype=np.uint8)
        output[..., 0] = gray
        output[..., 1] = gray
        output[..., 2] = gray
        output[..., 3] = 255

        if np.array_equal(img1, img2):
            logger.debug("Images are byte-identical (%dx%d)", width, height)
            return ImageDiff(
                diff_image=Image.fromarray(output),
                metrics=DiffMetrics.from_counts(0, total_pixels),
            )

        max_delta = MAX_YIQ_DELTA * threshold * threshold
        over = color_delta(img1, img2) > max_delta

        aa_mask = np.zeros(over.shape, dtype=bool)
        if not include_aa and over.any():
            valid = _neighbour_valid(height, width)
            edge = _on_edge(height, width)
            sib1 = _has_many_siblings(img1, valid, edge)
            sib2 = _has_many_siblings(img2, valid, edge)
            y1 = _rgb2y(_blended_rgb(img1))
            y2 = _rgb2y(_blended_rgb(img2))
            aa_mask = over & (
                _antialiased(y1, sib1, sib2, valid, edge)
                | _antialiased(y2, sib2, sib1, valid, edge)
            )

        diff_mask = over & ~aa_mask
        output[aa_mask, :3] = AA_COLOR
        output[diff_mask, :3] = DIFF_COLOR

        diff_pixels = int(np.count_nonzero(diff_mask))
        aa_pixels = int(np.count_nonzero(aa_mask))
        metrics = DiffMetrics.from_counts(diff_pixels, total_pixels)
        logger.debug(
            "Pixel diff: %d/%d pixels (%.4f%%), %d anti-aliased",
            diff_pixels, total_pixels, metrics.diff_percentage, aa_pixels,
        )
        return ImageDiff(
            diff_image=Image.fromarray(output),
            metrics=metrics,
            aa_pixels=aa_pixels,
        )


def calculate_similarity(metrics: DiffMetrics) -> float:
    return metrics.match_percentage


def is_within_threshold(metrics: DiffMetrics, threshold: float) -> bool:
    return metrics.diff_percentage <= threshold * 100
