from __future__ import annotations

from typing import List, Tuple

import numpy as np

from mandelgif.errors import PaletteOverflow

MAX_COLOURS = 256
_NEAREST_CHUNK = 4096


def _pack(rgb: np.ndarray) -> np.ndarray:
    rgb = rgb.astype(np.uint32)
    return (rgb[:, 0] << 16) | (rgb[:, 1] << 8) | rgb[:, 2]


def _unpack(packed: np.ndarray) -> np.ndarray:
    return np.stack([(packed >> 16) & 0xFF, (packed >> 8) & 0xFF, packed & 0xFF], axis=1).astype(np.uint8)


class _Box:
    __slots__ = ("rows", "sse")

    def __init__(self, rows: np.ndarray, colours: np.ndarray, weights: np.ndarray):
        self.rows = rows
        c = colours[rows]
        w = weights[rows]
        mean = (c * w[:, None]).sum(axis=0) / w.sum()
        self.sse = float((((c - mean) ** 2).sum(axis=1) * w).sum())

    def mean(self, colours: np.ndarray, weights: np.ndarray) -> np.ndarray:
        c = colours[self.rows]
        w = weights[self.rows]
        return (c * w[:, None]).sum(axis=0) / w.sum()

    def split(self, colours: np.ndarray, weights: np.ndarray) -> Tuple["_Box", "_Box"]:
        c = colours[self.rows]
        channel = int(np.argmax(c.max(axis=0) - c.min(axis=0)))
        # Stable ordering along the widest channel; rows are already in packed-RGB order.
        order = np.argsort(c[:, channel], kind="stable")
        rows = self.rows[order]
        cum = np.cumsum(weights[rows])
        cut = int(np.searchsorted(cum, cum[-1] / 2.0, side="left")) + 1
        cut = min(max(cut, 1), rows.size - 1)
        return _Box(rows[:cut], colours, weights), _Box(rows[cut:], colours, weights)


def median_cut(colours: np.ndarray, weights: np.ndarray, max_colours: int = MAX_COLOURS) -> np.ndarray:
    """Weighted median cut; splits the box with the largest squared error until `max_colours` exist."""
    colours = colours.astype(np.float64)
    weights = weights.astype(np.float64)
    boxes: List[_Box] = [_Box(np.arange(colours.shape[0]), colours, weights)]
    while len(boxes) < max_colours:
        # First box wins ties so the split order is reproducible.
        target = max(range(len(boxes)), key=lambda k: (boxes[k].sse, -k))
        if boxes[target].rows.size < 2 or boxes[target].sse <= 0.0:
            break
        a, b = boxes.pop(target).split(colours, weights)
        boxes.insert(target, b)
        boxes.insert(target, a)
    means = np.array([box.mean(colours, weights) for box in boxes])
    return np.clip(np.rint(means), 0, 255).astype(np.uint8)


def nearest_indices(colours: np.ndarray, palette: np.ndarray) -> np.ndarray:
    pal = palette.astype(np.int32)
    out = np.empty(colours.shape[0], dtype=np.uint8)
    for s in range(0, colours.shape[0], _NEAREST_CHUNK):
        chunk = colours[s:s + _NEAREST_CHUNK].astype(np.int32)
        d = ((chunk[:, None, :] - pal[None, :, :]) ** 2).sum(axis=2)
        out[s:s + chunk.shape[0]] = np.argmin(d, axis=1)
    return out


def quantize(raster: np.ndarray, max_colours: int = MAX_COLOURS) -> Tuple[np.ndarray, np.ndarray]:
    """
    Reduce an (H, W, 3|4) raster to at most `max_colours` RGB entries.

    Returns (palette, indices): palette is (K, 3) uint8, indices is (H, W) uint8.
    """
    if raster.ndim != 3 or raster.shape[2] not in (3, 4):
        raise ValueError(f"Expected an (H, W, 3|4) raster, got shape {raster.shape}")
    if max_colours > MAX_COLOURS:
        raise ValueError(f"max_colours cannot exceed {MAX_COLOURS}")
    height, width = raster.shape[:2]
    rgb = raster[..., :3].reshape(-1, 3)

    packed, inverse, counts = np.unique(_pack(rgb), return_inverse=True, return_counts=True)
    inverse = inverse.reshape(-1)
    unique = _unpack(packed)

    if unique.shape[0] <= max_colours:
        palette = unique
        lookup = np.arange(unique.shape[0], dtype=np.uint8)
    else:
        palette = median_cut(unique, counts, max_colours)
        lookup = nearest_indices(unique, palette)

    if palette.shape[0] > MAX_COLOURS:
        raise PaletteOverflow(f"Quantiser produced {palette.shape[0]} colours")

    indices = lookup[inverse].reshape(height, width)
    return palette, indices


def reconstruct(palette: np.ndarray, indices: np.ndarray) -> np.ndarray:
    return palette[indices]
