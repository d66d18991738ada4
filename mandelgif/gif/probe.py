from __future__ import annotations

from typing import Any, Dict, Iterator

import numpy as np
from PIL import Image


def probe_gif(path: str) -> Dict[str, Any]:
    """Read a GIF back with Pillow and summarise its animation structure."""
    with Image.open(path) as img:
        if img.format != "GIF":
            raise ValueError(f"{path} is not a GIF (format={img.format})")
        # The looping extension only precedes the first image.
        loop = img.info.get("loop")
        n = getattr(img, "n_frames", 1)
        durations = []
        for i in range(n):
            img.seek(i)
            durations.append(int(img.info.get("duration", 0)))
        return {
            "path": str(path),
            "width": img.size[0],
            "height": img.size[1],
            "frames": n,
            "loop": loop,
            "durations_ms": durations,
        }


def iter_rgb_frames(path: str) -> Iterator[np.ndarray]:
    """Decoded (H, W, 3) uint8 frames, composited as a viewer would show them."""
    with Image.open(path) as img:
        for i in range(getattr(img, "n_frames", 1)):
            img.seek(i)
            yield np.asarray(img.convert("RGB"), dtype=np.uint8).copy()
