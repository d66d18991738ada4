from __future__ import annotations

import struct
from typing import BinaryIO, Optional

import numpy as np

from mandelgif.errors import EncoderInvariantError
from mandelgif.gif.lzw import write_image_data
from mandelgif.util.logging_setup import get_logger

LZW_MIN_CODE_SIZE = 8

_EXTENSION = 0x21
_GRAPHICS_CONTROL = 0xF9
_APPLICATION = 0xFF
_IMAGE_SEPARATOR = 0x2C
_TRAILER = 0x3B

# Logical screen packed field: no global table, colour resolution 8 bits.
_SCREEN_FLAGS = 0x70
_LOCAL_TABLE_FLAG = 0x80
_DISPOSE_NONE = 1


def colour_table_bits(n: int) -> int:
    """log2 of the table size needed for `n` colours; the format's smallest table has 2 entries."""
    if not 1 <= n <= 256:
        raise EncoderInvariantError(f"Palette of {n} colours cannot be encoded")
    return max(1, (n - 1).bit_length())


class GifWriter:
    """
    Streaming GIF89a writer. Each frame carries its own local colour table;
    records are appended to `sink` as soon as they are produced.
    """

    def __init__(self, sink: BinaryIO, *, width: int, height: int, delay: int = 6, loop: int = 0):
        if width <= 0 or height <= 0 or width > 0xFFFF or height > 0xFFFF:
            raise ValueError("width/height must be within 1..65535.")
        if not 0 <= delay <= 0xFFFF:
            raise ValueError("delay must be within 0..65535 centiseconds.")
        if not 0 <= loop <= 0xFFFF:
            raise ValueError("loop must be within 0..65535.")
        self.sink = sink
        self.width = width
        self.height = height
        self.delay = delay
        self.loop = loop
        self.frames_written = 0
        self._owns_sink = False
        self._state = "new"

    @classmethod
    def open(cls, path: str, **kwargs) -> "GifWriter":
        f = open(path, "wb")
        try:
            writer = cls(f, **kwargs)
        except Exception:
            f.close()
            raise
        writer._owns_sink = True
        return writer

    def _require(self, state: str) -> None:
        if self._state != state:
            raise EncoderInvariantError(f"GIF writer is '{self._state}', expected '{state}'")

    def begin(self) -> None:
        self._require("new")
        w = self.sink.write
        w(b"GIF89a")
        w(struct.pack("<HHBBB", self.width, self.height, _SCREEN_FLAGS, 0, 0))
        # NETSCAPE2.0 looping extension; loop count 0 repeats forever.
        w(struct.pack("<BBB", _EXTENSION, _APPLICATION, 11))
        w(b"NETSCAPE2.0")
        w(struct.pack("<BBHB", 3, 1, self.loop, 0))
        self._state = "open"

    def write_frame(self, palette: np.ndarray, indices: np.ndarray, *, delay: Optional[int] = None) -> None:
        """Append one image: graphics control extension, descriptor, local table and LZW data."""
        self._require("open")
        palette = np.asarray(palette, dtype=np.uint8).reshape(-1, 3)
        indices = np.asarray(indices, dtype=np.uint8)
        if indices.shape != (self.height, self.width):
            raise ValueError(f"Index raster is {indices.shape}, expected {(self.height, self.width)}")
        bits = colour_table_bits(palette.shape[0])
        if indices.size and int(indices.max()) >= palette.shape[0]:
            raise ValueError("Index raster refers past the end of the palette.")
        delay = self.delay if delay is None else delay

        w = self.sink.write
        w(struct.pack("<BBBBHBB", _EXTENSION, _GRAPHICS_CONTROL, 4, _DISPOSE_NONE << 2, delay, 0, 0))
        w(struct.pack("<BHHHHB", _IMAGE_SEPARATOR, 0, 0, self.width, self.height, _LOCAL_TABLE_FLAG | (bits - 1)))
        table = np.zeros((1 << bits, 3), dtype=np.uint8)
        table[:palette.shape[0]] = palette
        w(table.tobytes())
        w(bytes((LZW_MIN_CODE_SIZE,)))
        write_image_data(self.sink, indices, LZW_MIN_CODE_SIZE)
        self.frames_written += 1

    def end(self) -> None:
        self._require("open")
        self.sink.write(bytes((_TRAILER,)))
        self._state = "done"
        get_logger().debug("GIF stream closed after %s frames", self.frames_written)

    def close(self) -> None:
        if self._owns_sink:
            self.sink.close()
        if self._state != "done":
            self._state = "closed"

    def __enter__(self) -> "GifWriter":
        self.begin()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        try:
            if exc_type is None:
                self.end()
        finally:
            self.close()
