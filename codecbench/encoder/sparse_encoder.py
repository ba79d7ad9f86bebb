"""
Competitive sparse encoder.

Maps a fixed-size binary input to a fixed-size binary output with exactly k
active positions. Each output position owns a potential pool of inputs and a
permanence per potential input; a synapse is connected when its permanence
reaches the connection threshold.

compute() is a pure function of (state, input, learn): no hidden randomness,
ties broken by lower output index.
"""

import math
from typing import Any, Dict, Optional, Sequence, Union

import numpy as np

from ..core.errors import FormatError, ShapeError
from ..core.persist import Persistable, persistable
from ..core.rng import RandomSource
from ..core.vector import SparseBinaryVector

InputVector = Union[SparseBinaryVector, Sequence[int], np.ndarray]

PERM_MAX = 1.0

PARAM_FIELDS = (
    "potential_pct",
    "syn_perm_connected",
    "syn_perm_active_inc",
    "syn_perm_inactive_dec",
    "boost_strength",
)


def _volume(dims: Sequence[int]) -> int:
    size = 1
    for d in dims:
        if int(d) <= 0:
            raise ShapeError(f"dimensions must be positive, got {list(dims)}")
        size *= int(d)
    return size


@persistable("sparse_encoder")
class SparseEncoder(Persistable):
    """
    Sparse encoder model.

    Lifecycle:
        enc = SparseEncoder().initialize([500], [500], k=50)
        out = enc.compute(input_vec, learn=True)     # mutates permanences
        out = enc.compute(input_vec, learn=False)    # pure

    State is persisted through a Codec (enc.encode(codec)); never torn down
    mid-run.
    """

    def __init__(self) -> None:
        self._initialized = False

    def initialize(
        self,
        input_dims: Sequence[int],
        output_dims: Sequence[int],
        k: int,
        potential_pct: float = 0.5,
        syn_perm_connected: float = 0.1,
        syn_perm_active_inc: float = 0.05,
        syn_perm_inactive_dec: float = 0.008,
        stimulus_threshold: int = 0,
        duty_cycle_period: int = 1000,
        boost_strength: float = 0.0,
        seed: int = 1,
    ) -> "SparseEncoder":
        """
        Allocate shapes and draw the initial potential pools and permanences.

        All randomness comes from a RandomSource seeded with `seed`, so two
        encoders initialized with the same arguments are identical.

        Raises:
            ShapeError: If a dimension is non-positive or k is out of range
        """
        input_size = _volume(input_dims)
        output_size = _volume(output_dims)
        if not 1 <= k <= output_size:
            raise ShapeError(f"k must be in [1, {output_size}], got {k}")
        if not 0.0 < potential_pct <= 1.0:
            raise ValueError(f"potential_pct must be in (0, 1], got {potential_pct}")
        if duty_cycle_period < 1:
            raise ValueError("duty_cycle_period must be >= 1")

        self._input_dims = tuple(int(d) for d in input_dims)
        self._output_dims = tuple(int(d) for d in output_dims)
        self._input_size = input_size
        self._output_size = output_size
        self._k = int(k)
        self._potential_pct = float(potential_pct)
        self._syn_perm_connected = float(syn_perm_connected)
        self._syn_perm_active_inc = float(syn_perm_active_inc)
        self._syn_perm_inactive_dec = float(syn_perm_inactive_dec)
        self._stimulus_threshold = int(stimulus_threshold)
        self._duty_cycle_period = int(duty_cycle_period)
        self._boost_strength = float(boost_strength)
        self._seed = int(seed)

        rng = RandomSource(seed)
        num_potential = max(1, int(potential_pct * input_size + 0.5))
        potential = np.zeros((output_size, input_size), dtype=bool)
        permanences = np.zeros((output_size, input_size), dtype=np.float32)
        inputs = range(input_size)
        for col in range(output_size):
            for i in rng.sample(inputs, num_potential):
                potential[col, i] = True
                if rng.next_real64() < 0.5:
                    # connected: spread over the lower quarter above threshold
                    span = (PERM_MAX - syn_perm_connected) * rng.next_real64() / 4.0
                    permanences[col, i] = syn_perm_connected + span
                else:
                    permanences[col, i] = syn_perm_connected * rng.next_real64()

        self._potential = potential
        self._permanences = permanences
        self._active_duty_cycles = np.zeros(output_size, dtype=np.float64)
        self._overlap_duty_cycles = np.zeros(output_size, dtype=np.float64)
        self._boost_factors = np.ones(output_size, dtype=np.float64)
        self._iteration_num = 0
        self._iteration_learn_num = 0
        self._last_active = np.zeros(0, dtype=np.int64)
        self._initialized = True
        return self

    def _require_initialized(self) -> None:
        if not self._initialized:
            raise RuntimeError("SparseEncoder used before initialize()")

    @property
    def input_size(self) -> int:
        self._require_initialized()
        return self._input_size

    @property
    def output_size(self) -> int:
        self._require_initialized()
        return self._output_size

    @property
    def k(self) -> int:
        self._require_initialized()
        return self._k

    @property
    def iteration_num(self) -> int:
        return self._iteration_num

    @property
    def iteration_learn_num(self) -> int:
        return self._iteration_learn_num

    @property
    def permanences(self) -> np.ndarray:
        """Copy of the permanence table (output x input)."""
        self._require_initialized()
        return self._permanences.copy()

    def _as_bits(self, input_vector: InputVector) -> np.ndarray:
        if isinstance(input_vector, SparseBinaryVector):
            bits = np.asarray(input_vector.bits)
        else:
            bits = np.asarray(input_vector)
        if bits.ndim != 1 or bits.size != self._input_size:
            raise ShapeError(
                f"input length {bits.size} does not match input_size {self._input_size}"
            )
        return bits != 0

    def _overlaps(self, active_inputs: np.ndarray) -> np.ndarray:
        connected = self._potential & (self._permanences >= self._syn_perm_connected)
        overlaps = connected[:, active_inputs].sum(axis=1).astype(np.int64)
        overlaps[overlaps < self._stimulus_threshold] = 0
        return overlaps

    def compute(self, input_vector: InputVector, learn: bool) -> SparseBinaryVector:
        """
        Select exactly k winning outputs for input_vector.

        With learn=False no state changes at all, so repeated calls on the
        same input return the same output. Iteration counters and the last
        active set advance only on learning steps.

        Args:
            input_vector: Binary input of length input_size
            learn: Update permanences, duty cycles, boost factors, counters
                and the last active set

        Returns:
            Output vector with exactly k bits set

        Raises:
            ShapeError: If len(input_vector) != input_size
        """
        self._require_initialized()
        active_inputs = self._as_bits(input_vector)
        overlaps = self._overlaps(active_inputs)

        scores = overlaps * self._boost_factors
        order = np.argsort(-scores, kind="stable")
        winners = np.sort(order[: self._k])

        if learn:
            self._iteration_num += 1
            self._learn(active_inputs, winners, overlaps)
            self._last_active = winners.astype(np.int64)

        out = np.zeros(self._output_size, dtype=np.uint8)
        out[winners] = 1
        return SparseBinaryVector.from_bits(out)

    def _learn(self, active_inputs: np.ndarray, winners: np.ndarray, overlaps: np.ndarray) -> None:
        delta = np.where(
            active_inputs,
            np.float32(self._syn_perm_active_inc),
            np.float32(-self._syn_perm_inactive_dec),
        ).astype(np.float32)
        rows = self._permanences[winners]
        updated = np.clip(rows + delta, np.float32(0.0), np.float32(PERM_MAX)).astype(np.float32)
        self._permanences[winners] = np.where(self._potential[winners], updated, rows)

        self._iteration_learn_num += 1
        period = min(self._duty_cycle_period, self._iteration_learn_num)
        active = np.zeros(self._output_size, dtype=np.float64)
        active[winners] = 1.0
        self._active_duty_cycles = (self._active_duty_cycles * (period - 1) + active) / period
        self._overlap_duty_cycles = (
            self._overlap_duty_cycles * (period - 1) + (overlaps > 0).astype(np.float64)
        ) / period

        if self._boost_strength > 0.0:
            target = self._k / self._output_size
            self._boost_factors = np.exp(
                -(self._active_duty_cycles - target) * self._boost_strength
            )

    def active_indices(self) -> list:
        """Output indices selected by the most recent learning compute()."""
        return [int(i) for i in self._last_active]

    def connected_counts(self) -> np.ndarray:
        """Number of connected synapses per output position."""
        self._require_initialized()
        connected = self._potential & (self._permanences >= self._syn_perm_connected)
        return connected.sum(axis=1)

    def to_state(self) -> Dict[str, Any]:
        self._require_initialized()
        return {
            "input_dims": list(self._input_dims),
            "output_dims": list(self._output_dims),
            "k": self._k,
            "potential_pct": self._potential_pct,
            "syn_perm_connected": self._syn_perm_connected,
            "syn_perm_active_inc": self._syn_perm_active_inc,
            "syn_perm_inactive_dec": self._syn_perm_inactive_dec,
            "stimulus_threshold": self._stimulus_threshold,
            "duty_cycle_period": self._duty_cycle_period,
            "boost_strength": self._boost_strength,
            "seed": self._seed,
            "iteration_num": self._iteration_num,
            "iteration_learn_num": self._iteration_learn_num,
            "potential": self._potential.copy(),
            "permanences": self._permanences.copy(),
            "active_duty_cycles": self._active_duty_cycles.copy(),
            "overlap_duty_cycles": self._overlap_duty_cycles.copy(),
            "boost_factors": self._boost_factors.copy(),
            "last_active": self._last_active.copy(),
        }

    @classmethod
    def from_state(cls, state: Dict[str, Any]) -> "SparseEncoder":
        """
        Rebuild an encoder from to_state() output.

        Arrays are copied, so the result shares nothing with `state`.

        Raises:
            FormatError: If array shapes disagree with the declared dimensions,
                or a float field is non-finite or out of range
        """
        try:
            input_size = _volume(state["input_dims"])
            output_size = _volume(state["output_dims"])
        except ShapeError as ex:
            raise FormatError(str(ex)) from ex
        k = int(state["k"])
        if not 1 <= k <= output_size:
            raise FormatError(f"k={k} out of range for output_size {output_size}")

        def array(name: str, dtype, shape) -> np.ndarray:
            arr = np.array(state[name], dtype=dtype, copy=True)
            if arr.shape != shape:
                raise FormatError(f"{name} has shape {arr.shape}, expected {shape}")
            return arr

        def finite_array(name: str, dtype, shape) -> np.ndarray:
            arr = array(name, dtype, shape)
            if not np.all(np.isfinite(arr)):
                raise FormatError(f"{name} holds non-finite values")
            return arr

        for name in PARAM_FIELDS:
            if not math.isfinite(float(state[name])):
                raise FormatError(f"{name} is not finite: {state[name]!r}")

        matrix = (output_size, input_size)
        potential = array("potential", bool, matrix)
        permanences = finite_array("permanences", np.float32, matrix)
        if permanences.size and (permanences.min() < 0.0 or permanences.max() > PERM_MAX):
            raise FormatError(f"permanence outside [0, {PERM_MAX}]")
        if np.any(permanences[~potential] != 0):
            raise FormatError("permanence set outside potential pool")
        last_active = np.array(state["last_active"], dtype=np.int64, copy=True).reshape(-1)
        if last_active.size and (last_active.min() < 0 or last_active.max() >= output_size):
            raise FormatError("last_active index out of range")

        obj = cls()
        obj._input_dims = tuple(int(d) for d in state["input_dims"])
        obj._output_dims = tuple(int(d) for d in state["output_dims"])
        obj._input_size = input_size
        obj._output_size = output_size
        obj._k = k
        obj._potential_pct = float(state["potential_pct"])
        obj._syn_perm_connected = float(state["syn_perm_connected"])
        obj._syn_perm_active_inc = float(state["syn_perm_active_inc"])
        obj._syn_perm_inactive_dec = float(state["syn_perm_inactive_dec"])
        obj._stimulus_threshold = int(state["stimulus_threshold"])
        obj._duty_cycle_period = int(state["duty_cycle_period"])
        obj._boost_strength = float(state["boost_strength"])
        obj._seed = int(state["seed"])
        obj._iteration_num = int(state["iteration_num"])
        obj._iteration_learn_num = int(state["iteration_learn_num"])
        obj._potential = potential
        obj._permanences = permanences
        obj._active_duty_cycles = finite_array("active_duty_cycles", np.float64, (output_size,))
        obj._overlap_duty_cycles = finite_array("overlap_duty_cycles", np.float64, (output_size,))
        obj._boost_factors = finite_array("boost_factors", np.float64, (output_size,))
        obj._last_active = last_active
        obj._initialized = True
        return obj

    def same_state(self, other: Optional["SparseEncoder"]) -> bool:
        """Field-by-field equality, arrays compared exactly."""
        if not isinstance(other, SparseEncoder):
            return False
        a, b = self.to_state(), other.to_state()
        if a.keys() != b.keys():
            return False
        for key, value in a.items():
            if isinstance(value, np.ndarray):
                if not np.array_equal(value, b[key]):
                    return False
            elif value != b[key]:
                return False
        return True

    def __repr__(self) -> str:
        if not self._initialized:
            return "SparseEncoder(uninitialized)"
        return (
            f"SparseEncoder(input_size={self._input_size}, "
            f"output_size={self._output_size}, k={self._k})"
        )
