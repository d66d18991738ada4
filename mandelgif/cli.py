from __future__ import annotations

import argparse
import json
import logging
import os
from typing import Optional

from mandelgif.config import load_config, normalise_config
from mandelgif.errors import MandelGifError
from mandelgif.gif.probe import probe_gif
from mandelgif.pipeline import render_animation
from mandelgif.util.logging_setup import get_logger, logging_session

EXIT_IO_ERROR = 1
EXIT_INVALID = 2

def build_arg_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="mandelgif", description="Render an animated Mandelbrot zoom to a looping GIF.")
    p.add_argument("--config", type=str, default=None, help="Path to config JSON. If omitted, built-in defaults are used.")
    p.add_argument("--log-level", type=str, default="INFO", choices=["DEBUG","INFO","WARNING","ERROR"], help="Log level.")
    p.add_argument("--log-file", type=str, default="", help="Log file path (rotating). Empty disables file logging.")
    sub = p.add_subparsers(dest="cmd", required=True)

    r = sub.add_parser("render", help="Render the zoom and write the GIF.")
    r.add_argument("--output", type=str, default=None, help="Override output_gif from config.")
    r.add_argument("--total-frames", type=int, default=None, help="Override total_frames from config.")
    r.add_argument("--workers", type=int, default=None, help="Worker processes (1 renders in-process).")
    r.add_argument("--retain-frames", action="store_true", help="Render every frame before encoding any.")
    r.add_argument("--frames-dir", type=str, default=None, help="Also save each rendered frame as PNG here.")
    r.add_argument("--progress", action="store_true", help="Show a progress bar.")

    i = sub.add_parser("inspect", help="Report the frame structure of a GIF.")
    i.add_argument("input", type=str, help="GIF file to read.")

    return p

def _remove_partial(path: str) -> None:
    logger = get_logger()
    try:
        os.remove(path)
        logger.warning("Removed partial output %s", path)
    except FileNotFoundError:
        pass
    except OSError as e:
        logger.error("Could not remove partial output %s: %s", path, e)

def main(argv: Optional[list] = None) -> int:
    args = build_arg_parser().parse_args(argv)

    log_level = getattr(logging, args.log_level.upper(), logging.INFO)
    log_file = args.log_file if args.log_file and args.log_file.strip() else None
    with logging_session(level=log_level, log_file=log_file) as queue:
        return _run(args, queue, log_level)

def _inspect(args: argparse.Namespace) -> int:
    logger = get_logger()
    try:
        info = probe_gif(args.input)
    except OSError as e:
        logger.error("Cannot read %s: %s", args.input, e)
        return EXIT_IO_ERROR
    except ValueError as e:
        logger.error("%s", e)
        return EXIT_INVALID
    logger.info("GIF %s: %sx%s frames=%s loop=%s", info["path"], info["width"], info["height"],
                info["frames"], info["loop"])
    print(json.dumps(info, indent=2))
    return 0

def _render(args: argparse.Namespace, queue, log_level: int) -> int:
    logger = get_logger()
    try:
        cfg = load_config(args.config)
        if args.output:
            cfg["output_gif"] = args.output
        if args.total_frames is not None:
            cfg["total_frames"] = args.total_frames
        if args.workers is not None:
            cfg["workers"] = args.workers
        if args.retain_frames:
            cfg["retain_frames"] = True
        if args.frames_dir:
            cfg["frames_dir"] = args.frames_dir
        cfg = normalise_config(cfg)
    except OSError as e:
        logger.error("Cannot read configuration: %s", e)
        return EXIT_IO_ERROR
    except ValueError as e:
        logger.error("Invalid configuration: %s", e)
        return EXIT_INVALID

    output = cfg["output_gif"]
    try:
        render_animation(cfg=cfg, log_queue=queue, log_level=log_level, progress=args.progress)
    except OSError:
        logger.exception("I/O failure while writing %s", output)
        _remove_partial(output)
        return EXIT_IO_ERROR
    except MandelGifError:
        logger.exception("Internal invariant violated while writing %s", output)
        _remove_partial(output)
        return EXIT_INVALID
    return 0

def _run(args: argparse.Namespace, queue, log_level: int) -> int:
    if args.cmd == "inspect":
        return _inspect(args)
    if args.cmd == "render":
        return _render(args, queue, log_level)
    raise RuntimeError("Unknown command.")
