from __future__ import annotations

from typing import BinaryIO, Dict, Iterable, Iterator, List, Sequence, Tuple

from mandelgif.errors import EncoderInvariantError

MAX_CODE_WIDTH = 12
MAX_CODES = 1 << MAX_CODE_WIDTH
MAX_SUB_BLOCK = 255


class SubBlockWriter:
    def __init__(self, sink: BinaryIO):
        self.sink = sink
        self._pending = bytearray()

    def write(self, data: Iterable[int]) -> None:
        self._pending.extend(data)
        while len(self._pending) >= MAX_SUB_BLOCK:
            self._emit(self._pending[:MAX_SUB_BLOCK])
            del self._pending[:MAX_SUB_BLOCK]

    def _emit(self, block: bytes) -> None:
        if not 0 < len(block) <= MAX_SUB_BLOCK:
            raise EncoderInvariantError(f"Sub-block of {len(block)} bytes")
        self.sink.write(bytes((len(block),)))
        self.sink.write(bytes(block))

    def close(self) -> None:
        if self._pending:
            self._emit(self._pending)
            self._pending.clear()
        self.sink.write(b"\x00")


class BitPacker:
    def __init__(self, out: SubBlockWriter):
        self.out = out
        self._buffer = 0
        self._bits = 0

    def write(self, code: int, width: int) -> None:
        if code < 0 or code >= (1 << width):
            raise EncoderInvariantError(f"Code {code} does not fit in {width} bits")
        self._buffer |= code << self._bits
        self._bits += width
        if self._bits >= 8:
            n = self._bits // 8
            self.out.write(self._buffer.to_bytes(n + 1, "little")[:n])
            self._buffer >>= 8 * n
            self._bits -= 8 * n

    def flush(self) -> None:
        if self._bits:
            self.out.write((self._buffer & 0xFF,))
        self._buffer = 0
        self._bits = 0


def lzw_codes(indices: Iterable[int], min_code_size: int = 8) -> Iterator[Tuple[int, int]]:
    """(code, width) pairs from Clear Code to End-of-Information, resetting when the table fills."""
    if not 2 <= min_code_size <= 8:
        raise ValueError("min_code_size must be within 2..8")
    clear_code = 1 << min_code_size
    end_code = clear_code + 1
    alphabet = clear_code
    if hasattr(indices, "tolist"):
        indices = indices.ravel().tolist()

    table: Dict[Tuple[int, int], int] = {}
    next_code = end_code + 1
    width = min_code_size + 1

    yield clear_code, width
    prefix = -1
    for k in indices:
        if not 0 <= k < alphabet:
            raise ValueError(f"Index {k} outside the {min_code_size}-bit alphabet")
        if prefix < 0:
            prefix = k
            continue
        code = table.get((prefix, k))
        if code is not None:
            prefix = code
            continue

        yield prefix, width
        table[(prefix, k)] = next_code
        if next_code == (1 << width) and width < MAX_CODE_WIDTH:
            width += 1
        next_code += 1
        if next_code == MAX_CODES:
            yield clear_code, width
            table.clear()
            next_code = end_code + 1
            width = min_code_size + 1
        prefix = k

    if prefix >= 0:
        yield prefix, width
    yield end_code, width


def write_image_data(sink: BinaryIO, indices: Iterable[int], min_code_size: int = 8) -> None:
    """Write the LZW sub-block stream for `indices` (without the minimum-code-size byte)."""
    blocks = SubBlockWriter(sink)
    bits = BitPacker(blocks)
    for code, width in lzw_codes(indices, min_code_size):
        bits.write(code, width)
    bits.flush()
    blocks.close()


class _ByteSink:
    def __init__(self):
        self.data = bytearray()

    def write(self, b: bytes) -> None:
        self.data.extend(b)


def encode(indices: Iterable[int], min_code_size: int = 8) -> bytes:
    sink = _ByteSink()
    write_image_data(sink, indices, min_code_size)  # type: ignore[arg-type]
    return bytes(sink.data)


def iter_sub_blocks(data: bytes, offset: int = 0) -> Iterator[bytes]:
    pos = offset
    while True:
        if pos >= len(data):
            raise ValueError("Sub-block stream ended without a terminator")
        n = data[pos]
        if n == 0:
            return
        block = data[pos + 1:pos + 1 + n]
        if len(block) != n:
            raise ValueError("Truncated sub-block")
        yield block
        pos += 1 + n


def decode(data: bytes, min_code_size: int = 8) -> List[int]:
    """Reference decoder for a sub-block framed LZW stream."""
    payload = b"".join(iter_sub_blocks(data))
    clear_code = 1 << min_code_size
    end_code = clear_code + 1

    def reset() -> Tuple[List[Sequence[int]], int]:
        return [(i,) for i in range(clear_code)] + [(), ()], min_code_size + 1

    table, width = reset()
    out: List[int] = []
    prev: Sequence[int] = ()
    buffer = 0
    bits = 0
    pos = 0
    while True:
        while bits < width:
            if pos >= len(payload):
                raise ValueError("LZW stream ended before End-of-Information")
            buffer |= payload[pos] << bits
            pos += 1
            bits += 8
        code = buffer & ((1 << width) - 1)
        buffer >>= width
        bits -= width

        if code == clear_code:
            table, width = reset()
            prev = ()
            continue
        if code == end_code:
            return out

        if code < len(table):
            entry = table[code]
            if prev and len(table) < MAX_CODES:
                table.append(tuple(prev) + (entry[0],))
        elif code == len(table) and prev and len(table) < MAX_CODES:
            entry = tuple(prev) + (prev[0],)
            table.append(entry)
        else:
            raise ValueError(f"Invalid LZW code {code}")
        out.extend(entry)
        prev = entry
        if len(table) == (1 << width) and width < MAX_CODE_WIDTH:
            width += 1
