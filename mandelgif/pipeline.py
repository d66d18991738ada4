from __future__ import annotations

import logging
import os
from typing import Any, Dict, List, Optional

import numpy as np
from PIL import Image
from tqdm import tqdm

from mandelgif.gif.quantize import quantize
from mandelgif.gif.writer import GifWriter
from mandelgif.renderers.cpu import make_pool, render_frame
from mandelgif.schedule import ZoomSchedule
from mandelgif.util.logging_setup import get_logger

def _ensure_dir(path: str) -> None:
    os.makedirs(path, exist_ok=True)

def _save_frame(raster: np.ndarray, frames_dir: str, frame_index: int) -> str:
    path = os.path.join(frames_dir, f"frame_{frame_index:06d}.png")
    Image.fromarray(np.ascontiguousarray(raster[..., :3])).save(path, format="PNG", optimize=True)
    return path

def schedule_from_config(cfg: Dict[str, Any]) -> ZoomSchedule:
    return ZoomSchedule(
        poi_x=float(cfg["center"][0]),
        poi_y=float(cfg["center"][1]),
        frames=int(cfg["total_frames"]),
        scale_start=float(cfg["start_zoom"]),
        scale_end=float(cfg["end_zoom"]),
    )

def encode_frame(writer: GifWriter, raster: np.ndarray) -> int:
    """Quantise one RGBA raster and append it to the animation; returns the palette size."""
    palette, indices = quantize(raster)
    writer.write_frame(palette, indices)
    return int(palette.shape[0])

def render_animation(
    *,
    cfg: Dict[str, Any],
    log_queue=None,
    log_level: int = logging.INFO,
    progress: bool = False,
) -> Dict[str, Any]:
    """
    Render every frame of the zoom and write the GIF to cfg["output_gif"].

    Frames are rendered and encoded strictly in ascending order. By default each
    frame is encoded as soon as it is rendered; with cfg["retain_frames"] all
    rasters are kept and encoded after the last one is rendered.
    """
    logger = get_logger()

    schedule = schedule_from_config(cfg)
    width = int(cfg["width"])
    height = int(cfg["height"])
    max_iter = int(cfg["max_iter"])
    bailout = float(cfg["bailout"])
    output = str(cfg["output_gif"])
    retain = bool(cfg.get("retain_frames", False))
    frames_dir: Optional[str] = cfg.get("frames_dir")

    if frames_dir:
        _ensure_dir(frames_dir)

    logger.info("Render start total_frames=%s size=%sx%s zoom=%s..%s iter=%s retain=%s output=%s",
                schedule.frames, width, height, schedule.scale_start, schedule.scale_end,
                max_iter, retain, output)

    pool = make_pool(cfg.get("workers"), log_queue=log_queue, log_level=log_level)
    retained: List[np.ndarray] = []
    try:
        with GifWriter.open(output, width=width, height=height,
                            delay=int(cfg["delay"]), loop=int(cfg["loop"])) as writer:
            for f, window in tqdm(schedule, total=schedule.frames, disable=not progress, unit="frame"):
                raster = render_frame(
                    window=window, width=width, height=height, max_iter=max_iter, bailout=bailout,
                    frame_id=f"{f:06d}", pool=pool, band_size=int(cfg.get("band_size", 4096)),
                )
                if frames_dir:
                    _save_frame(raster, frames_dir, f)
                if retain:
                    retained.append(raster)
                    logger.info("[Frame %s] Rendered r=%s (retained)", f, window.radius)
                    continue
                colours = encode_frame(writer, raster)
                logger.info("[Frame %s] Encoded r=%s colours=%s", f, window.radius, colours)

            for f, raster in enumerate(retained):
                colours = encode_frame(writer, raster)
                logger.info("[Frame %s] Encoded retained frame colours=%s", f, colours)
            retained.clear()
            frames_written = writer.frames_written
    finally:
        if pool is not None:
            pool.shutdown()

    logger.info("Render complete output=%s frames=%s", output, frames_written)
    return {"output_gif": output, "total_frames": frames_written, "width": width, "height": height,
            "retain_frames": retain}
