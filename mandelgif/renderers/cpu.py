from __future__ import annotations

import logging
from concurrent.futures import Executor, ProcessPoolExecutor
from dataclasses import dataclass
from typing import Callable, Iterable, List, Optional, Tuple

import numpy as np

from mandelgif.kernel import colourise, escape_time
from mandelgif.schedule import Window, pixel_coordinates
from mandelgif.util.logging_setup import get_logger, logging_initialiser

Band = Tuple[int, int]


@dataclass(frozen=True)
class FrameParams:
    """Everything a band task needs; passed to workers by value."""
    window: Window
    width: int
    height: int
    max_iter: int
    bailout: float
    frame_id: str


def pixel_bands(total: int, band_size: int) -> List[Band]:
    if band_size <= 0:
        raise ValueError("band_size must be > 0")
    bands: List[Band] = []
    i = 0
    while i < total:
        i1 = min(total, i + band_size)
        bands.append((i, i1))
        i = i1
    return bands


def render_band(task: Tuple[Band, FrameParams]) -> Tuple[int, np.ndarray]:
    """Colour pixel indices [i0, i1); pixel i sits at x = i % width, y = i // width."""
    (i0, i1), p = task
    idx = np.arange(i0, i1, dtype=np.int64)
    cr, ci = pixel_coordinates(p.window, p.width, p.height, idx % p.width, idx // p.width)
    zr, zi, iters = escape_time(cr, ci, p.max_iter, p.bailout)
    rgba = colourise(zr, zi, iters, p.max_iter)
    get_logger().debug("[Frame %s] band %s..%s done", p.frame_id, i0, i1)
    return i0, rgba


def parallel_for(tasks: Iterable, kernel: Callable, pool: Optional[Executor] = None):
    """Map `kernel` over `tasks`, in-process when no pool is given. Results come back in task order."""
    if pool is None:
        return map(kernel, tasks)
    return pool.map(kernel, tasks)


def make_pool(workers: Optional[int], *, log_queue=None, log_level: int = logging.INFO) -> Optional[ProcessPoolExecutor]:
    """Pool for band dispatch; `workers == 1` means render in the calling process."""
    if workers == 1:
        return None
    return ProcessPoolExecutor(
        max_workers=workers,
        initializer=logging_initialiser,
        initargs=(log_queue, log_level),
    )


def render_frame(
    *,
    window: Window,
    width: int,
    height: int,
    max_iter: int,
    bailout: float = 4.0,
    frame_id: str = "0",
    pool: Optional[Executor] = None,
    band_size: int = 4096,
) -> np.ndarray:
    """
    Render one frame of the zoom as an (height, width, 4) uint8 RGBA raster.
    Every pixel index in [0, width*height) is coloured exactly once; bands are
    independent so they may run in any order on any worker.
    """
    logger = get_logger()
    logger.debug("[Frame %s] CPU render start r=%s iter=%s", frame_id, window.radius, max_iter)

    params = FrameParams(window=window, width=width, height=height,
                         max_iter=max_iter, bailout=bailout, frame_id=frame_id)
    total = width * height
    buf = np.empty((total, 4), dtype=np.uint8)

    tasks = [(band, params) for band in pixel_bands(total, band_size)]
    for i0, rgba in parallel_for(tasks, render_band, pool):
        buf[i0:i0 + rgba.shape[0]] = rgba

    logger.debug("[Frame %s] CPU render done", frame_id)
    return buf.reshape(height, width, 4)
