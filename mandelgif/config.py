import json
from typing import Any, Dict, Optional

from mandelgif.errors import ConfigError, NumericDomainError
from mandelgif.kernel import check_bailout
from mandelgif.schedule import DEFAULT_POI

DEFAULTS: Dict[str, Any] = {
    "width": 256,
    "height": 256,
    "max_iter": 600,
    "bailout": 4.0,
    "center": list(DEFAULT_POI),
    "total_frames": 300,
    "start_zoom": 200.0,
    "end_zoom": 20000.0,
    "delay": 6,
    "loop": 0,
    "output_gif": "mandelbrot.gif",
    "retain_frames": False,
    "workers": None,
    "band_size": 4096,
    "frames_dir": None,
}

def load_config(config_path: Optional[str]) -> Dict[str, Any]:
    cfg = dict(DEFAULTS)
    if not config_path:
        return cfg
    with open(config_path, "r", encoding="utf-8") as f:
        user = json.load(f)
    if not isinstance(user, dict):
        raise ConfigError("Config JSON must be an object.")
    unknown = sorted(set(user) - set(DEFAULTS))
    if unknown:
        raise ConfigError(f"Unknown config field(s): {', '.join(unknown)}")
    cfg.update(user)
    return cfg

def normalise_config(cfg: Dict[str, Any]) -> Dict[str, Any]:
    required = ["width", "height", "total_frames", "start_zoom", "end_zoom", "center", "max_iter"]
    for r in required:
        if r not in cfg:
            raise ConfigError(f"Missing config field: {r}")

    try:
        width = int(cfg["width"])
        height = int(cfg["height"])
        total_frames = int(cfg["total_frames"])
        max_iter = int(cfg["max_iter"])
        start_zoom = float(cfg["start_zoom"])
        end_zoom = float(cfg["end_zoom"])
        bailout = float(cfg.get("bailout", DEFAULTS["bailout"]))
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid numeric config value: {e}") from e

    if width <= 0 or height <= 0 or width > 0xFFFF or height > 0xFFFF:
        raise ConfigError("width/height must be within 1..65535.")
    if max_iter <= 0:
        raise ConfigError("max_iter must be positive.")
    if total_frames <= 0:
        raise NumericDomainError("total_frames must be positive.")
    if start_zoom == end_zoom:
        raise NumericDomainError("start_zoom and end_zoom must differ.")
    if start_zoom <= 0 or end_zoom <= 0:
        raise NumericDomainError("Zoom values must be positive.")
    check_bailout(bailout)

    center = cfg["center"]
    if not (isinstance(center, (list, tuple)) and len(center) == 2):
        raise ConfigError("center must be [re, im].")

    workers = cfg.get("workers")
    if workers is not None:
        workers = int(workers)
        if workers <= 0:
            raise ConfigError("workers must be positive (or null for one per CPU).")

    out = dict(cfg)
    out["width"] = width
    out["height"] = height
    out["total_frames"] = total_frames
    out["max_iter"] = max_iter
    out["start_zoom"] = start_zoom
    out["end_zoom"] = end_zoom
    out["bailout"] = bailout
    out["center"] = [float(center[0]), float(center[1])]
    out["delay"] = int(cfg.get("delay", 6))
    out["loop"] = int(cfg.get("loop", 0))
    if not 0 <= out["delay"] <= 0xFFFF or not 0 <= out["loop"] <= 0xFFFF:
        raise ConfigError("delay and loop must be within 0..65535.")
    out["output_gif"] = str(cfg.get("output_gif", "mandelbrot.gif"))
    out["retain_frames"] = bool(cfg.get("retain_frames", False))
    out["workers"] = workers
    out["band_size"] = int(cfg.get("band_size", 4096))
    if out["band_size"] <= 0:
        raise ConfigError("band_size must be positive.")
    frames_dir = cfg.get("frames_dir")
    out["frames_dir"] = str(frames_dir) if frames_dir else None
    return out
