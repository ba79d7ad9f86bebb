"""
Schema codec: canonical JSON envelope validated by pydantic models.

Payload layout (canonical JSON, UTF-8):

    {"kind": "...", "state": {...}, "state_hash": "<sha256 of canonical state>"}

Numeric arrays inside state are packed as
{"dtype": ..., "shape": [...], "data": <base64 of little-endian bytes>}.
"""

import base64
import binascii
import json
import math
from typing import Any, Dict, List, Literal, Tuple, Type

import numpy as np
from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from ..core.canonical import canonical_hash, canonical_json_bytes
from ..core.errors import FormatError
from ..core.rng import STATE_SIZE
from .base import Codec

DType = Literal["bool", "uint8", "uint32", "int64", "float32", "float64"]


class PackedArray(BaseModel):
    model_config = ConfigDict(extra="forbid")

    dtype: DType
    shape: List[int]
    data: str

    def unpack(self) -> np.ndarray:
        try:
            raw = base64.b64decode(self.data, validate=True)
        except (binascii.Error, ValueError) as ex:
            raise FormatError(f"array data is not valid base64: {ex}") from ex
        wire = np.dtype(self.dtype).newbyteorder("<")
        # a dimension can never exceed the bytes on hand, zero-size arrays aside
        limit = max(len(raw), 1)
        if any(not 0 <= d <= limit for d in self.shape):
            raise FormatError(f"array shape {self.shape} out of range for {len(raw)} bytes")
        count = math.prod(self.shape)
        if len(raw) != count * wire.itemsize:
            raise FormatError(
                f"array data has {len(raw)} bytes, shape {self.shape} needs {count * wire.itemsize}"
            )
        return np.frombuffer(raw, dtype=wire).astype(np.dtype(self.dtype)).reshape(self.shape)


def pack_array(arr: np.ndarray) -> Dict[str, Any]:
    arr = np.ascontiguousarray(arr)
    wire = arr.dtype.newbyteorder("<")
    return {
        "dtype": arr.dtype.name,
        "shape": list(arr.shape),
        "data": base64.b64encode(arr.astype(wire).tobytes()).decode("ascii"),
    }


class RandomStateModel(BaseModel):
    model_config = ConfigDict(extra="forbid")

    seed: int = Field(ge=0)
    draw_count: int = Field(ge=0)
    state: List[int] = Field(min_length=STATE_SIZE, max_length=STATE_SIZE)
    front: int = Field(ge=0, lt=STATE_SIZE)
    rear: int = Field(ge=0, lt=STATE_SIZE)


class SparseEncoderStateModel(BaseModel):
    model_config = ConfigDict(extra="forbid")

    input_dims: List[int] = Field(min_length=1)
    output_dims: List[int] = Field(min_length=1)
    k: int = Field(ge=1)
    potential_pct: float
    syn_perm_connected: float
    syn_perm_active_inc: float
    syn_perm_inactive_dec: float
    stimulus_threshold: int
    duty_cycle_period: int = Field(ge=1)
    boost_strength: float
    seed: int
    iteration_num: int = Field(ge=0)
    iteration_learn_num: int = Field(ge=0)
    potential: PackedArray
    permanences: PackedArray
    active_duty_cycles: PackedArray
    overlap_duty_cycles: PackedArray
    boost_factors: PackedArray
    last_active: PackedArray


class Envelope(BaseModel):
    model_config = ConfigDict(extra="forbid")

    kind: str
    state: Dict[str, Any]
    state_hash: str = Field(min_length=64, max_length=64)


STATE_MODELS: Dict[str, Type[BaseModel]] = {
    "random": RandomStateModel,
    "sparse_encoder": SparseEncoderStateModel,
}


class SchemaCodec(Codec):
    """Current default codec."""

    name = "schema"
    format_tag = b"SCHM"
    version = 2

    def encode_state(self, kind: str, state: Dict[str, Any]) -> bytes:
        packed = {
            key: pack_array(value) if isinstance(value, np.ndarray) else value
            for key, value in state.items()
        }
        doc = {"kind": kind, "state": packed, "state_hash": canonical_hash(packed)}
        return canonical_json_bytes(doc)

    def decode_state(self, payload: bytes) -> Tuple[str, Dict[str, Any]]:
        try:
            doc = json.loads(payload.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as ex:
            raise FormatError(f"schema payload is not JSON: {ex}") from ex

        try:
            envelope = Envelope.model_validate(doc)
        except PydanticValidationError as ex:
            raise FormatError(f"schema envelope invalid: {ex.error_count()} error(s)") from ex

        if canonical_hash(envelope.state) != envelope.state_hash:
            raise FormatError("schema state_hash mismatch")

        model = STATE_MODELS.get(envelope.kind)
        if model is None:
            raise FormatError(f"unknown component kind: {envelope.kind!r}")
        try:
            validated = model.model_validate(envelope.state)
        except PydanticValidationError as ex:
            raise FormatError(
                f"{envelope.kind} state failed validation: {ex.errors()[0]['msg']}"
            ) from ex

        state = {
            name: value.unpack() if isinstance(value, PackedArray) else value
            for name, value in ((n, getattr(validated, n)) for n in type(validated).model_fields)
        }
        return envelope.kind, state
