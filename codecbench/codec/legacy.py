"""
Legacy codec: whitespace-separated text tokens in a fixed field order.

This is the older stream-style layout: each component writes a begin marker,
its fields in declaration order, and an end marker. Floats are written with
repr() so they parse back to the identical value. The permanence table is
stored sparsely, one row per output holding its potential indices followed by
their permanences.
"""

import math
from typing import Any, Callable, Dict, List, Sequence, Tuple

import numpy as np

from ..core.errors import FormatError
from .base import Codec

MAX_TABLE_CELLS = 1 << 26


class TokenWriter:
    def __init__(self) -> None:
        self._lines: List[str] = []

    def line(self, *tokens: Any) -> None:
        self._lines.append(" ".join(str(t) for t in tokens))

    def ints(self, values: Sequence[int]) -> None:
        self.line(len(values), *(int(v) for v in values))

    def floats(self, values: Sequence[float]) -> None:
        self.line(len(values), *(repr(float(v)) for v in values))

    def to_bytes(self) -> bytes:
        return ("\n".join(self._lines) + "\n").encode("ascii")


class TokenReader:
    """
    Sequential token reader.

    Every read raises FormatError when tokens run out or fail to parse.
    """

    def __init__(self, payload: bytes) -> None:
        try:
            self._tokens = payload.decode("ascii").split()
        except UnicodeDecodeError as ex:
            raise FormatError(f"legacy payload is not ASCII: {ex}") from ex
        self._pos = 0

    def token(self) -> str:
        if self._pos >= len(self._tokens):
            raise FormatError("legacy payload ended early")
        tok = self._tokens[self._pos]
        self._pos += 1
        return tok

    def expect(self, marker: str) -> None:
        tok = self.token()
        if tok != marker:
            raise FormatError(f"expected {marker!r}, got {tok!r}")

    def read_int(self) -> int:
        tok = self.token()
        try:
            return int(tok)
        except ValueError:
            raise FormatError(f"expected integer, got {tok!r}") from None

    def read_float(self) -> float:
        tok = self.token()
        try:
            return float(tok)
        except ValueError:
            raise FormatError(f"expected float, got {tok!r}") from None

    def count(self, limit: int) -> int:
        n = self.read_int()
        if not 0 <= n <= limit:
            raise FormatError(f"count {n} outside [0, {limit}]")
        return n

    def ints(self, limit: int) -> List[int]:
        return [self.read_int() for _ in range(self.count(limit))]

    def floats(self, limit: int) -> List[float]:
        return [self.read_float() for _ in range(self.count(limit))]

    def remaining(self) -> int:
        return len(self._tokens) - self._pos

    def done(self) -> None:
        if self._pos != len(self._tokens):
            raise FormatError(f"{len(self._tokens) - self._pos} unexpected trailing tokens")


def _write_random(w: TokenWriter, state: Dict[str, Any]) -> None:
    w.line(state["seed"], state["draw_count"], state["front"], state["rear"])
    w.ints(state["state"])


def _read_random(r: TokenReader) -> Dict[str, Any]:
    seed, draw_count, front, rear = r.read_int(), r.read_int(), r.read_int(), r.read_int()
    return {
        "seed": seed,
        "draw_count": draw_count,
        "front": front,
        "rear": rear,
        "state": r.ints(1 << 10),
    }


def _write_encoder(w: TokenWriter, state: Dict[str, Any]) -> None:
    w.ints(state["input_dims"])
    w.ints(state["output_dims"])
    w.line(
        state["k"],
        repr(float(state["potential_pct"])),
        repr(float(state["syn_perm_connected"])),
        repr(float(state["syn_perm_active_inc"])),
        repr(float(state["syn_perm_inactive_dec"])),
        state["stimulus_threshold"],
        state["duty_cycle_period"],
        repr(float(state["boost_strength"])),
        state["seed"],
        state["iteration_num"],
        state["iteration_learn_num"],
    )

    potential = state["potential"]
    permanences = state["permanences"]
    w.line("potentialPools", potential.shape[0])
    for row in range(potential.shape[0]):
        idx = np.flatnonzero(potential[row])
        w.ints(idx.tolist())
        w.floats(permanences[row, idx].tolist())

    w.line("dutyCycles")
    w.floats(state["active_duty_cycles"].tolist())
    w.floats(state["overlap_duty_cycles"].tolist())
    w.floats(state["boost_factors"].tolist())
    w.ints(state["last_active"].tolist())


def _read_encoder(r: TokenReader) -> Dict[str, Any]:
    input_dims = r.ints(16)
    output_dims = r.ints(16)
    if not input_dims or not output_dims or any(d <= 0 for d in input_dims + output_dims):
        raise FormatError(f"bad dimensions {input_dims} x {output_dims}")
    input_size = math.prod(input_dims)
    output_size = math.prod(output_dims)
    # each pool row takes at least two count tokens
    if 2 * output_size > r.remaining():
        raise FormatError(f"output size {output_size} exceeds what the payload holds")
    if input_size * output_size > MAX_TABLE_CELLS:
        raise FormatError(f"permanence table {output_size} x {input_size} too large")

    state: Dict[str, Any] = {"input_dims": input_dims, "output_dims": output_dims}
    state["k"] = r.read_int()
    state["potential_pct"] = r.read_float()
    state["syn_perm_connected"] = r.read_float()
    state["syn_perm_active_inc"] = r.read_float()
    state["syn_perm_inactive_dec"] = r.read_float()
    state["stimulus_threshold"] = r.read_int()
    state["duty_cycle_period"] = r.read_int()
    state["boost_strength"] = r.read_float()
    state["seed"] = r.read_int()
    state["iteration_num"] = r.read_int()
    state["iteration_learn_num"] = r.read_int()

    r.expect("potentialPools")
    if r.read_int() != output_size:
        raise FormatError("potential pool row count does not match output size")
    potential = np.zeros((output_size, input_size), dtype=bool)
    permanences = np.zeros((output_size, input_size), dtype=np.float32)
    for row in range(output_size):
        idx = np.array(r.ints(input_size), dtype=np.int64)
        values = r.floats(input_size)
        if len(values) != idx.size:
            raise FormatError(f"row {row}: {idx.size} indices but {len(values)} permanences")
        if idx.size and (idx.min() < 0 or idx.max() >= input_size):
            raise FormatError(f"row {row}: potential index out of range")
        potential[row, idx] = True
        permanences[row, idx] = values
    state["potential"] = potential
    state["permanences"] = permanences

    r.expect("dutyCycles")
    state["active_duty_cycles"] = np.array(r.floats(output_size), dtype=np.float64)
    state["overlap_duty_cycles"] = np.array(r.floats(output_size), dtype=np.float64)
    state["boost_factors"] = np.array(r.floats(output_size), dtype=np.float64)
    state["last_active"] = np.array(r.ints(output_size), dtype=np.int64)
    return state


# kind -> (begin marker, end marker, writer, reader)
LAYOUTS: Dict[str, Tuple[str, str, Callable, Callable]] = {
    "random": ("RandomSource-v1", "endRandomSource", _write_random, _read_random),
    "sparse_encoder": ("SparseEncoder-v1", "endSparseEncoder", _write_encoder, _read_encoder),
}


class LegacyCodec(Codec):
    """Older text-stream codec, kept readable alongside the schema codec."""

    name = "legacy"
    format_tag = b"LGCY"
    version = 1

    def encode_state(self, kind: str, state: Dict[str, Any]) -> bytes:
        begin, end, write, _ = LAYOUTS[kind]
        w = TokenWriter()
        w.line(begin)
        write(w, state)
        w.line(end)
        return w.to_bytes()

    def decode_state(self, payload: bytes) -> Tuple[str, Dict[str, Any]]:
        r = TokenReader(payload)
        begin = r.token()
        for kind, (marker, end, _, read) in LAYOUTS.items():
            if marker == begin:
                state = read(r)
                r.expect(end)
                r.done()
                return kind, state
        raise FormatError(f"unknown legacy begin marker: {begin!r}")
