"""
Deterministic pseudo-random source.

Additive lagged-Fibonacci generator over a 31-word table (the classic BSD
random(3) layout), seeded with the Park-Miller recurrence. Integer arithmetic
only, so draws are identical on every platform and in every process.
"""

from typing import Any, Dict, List, MutableSequence, Sequence, TypeVar

from .errors import FormatError
from .persist import Persistable, persistable

T = TypeVar("T")

STATE_SIZE = 31
SEPARATION = 3
MASK32 = 0xFFFFFFFF
_PM_MODULUS = 2147483647
_PM_MULTIPLIER = 16807
_DISCARD = 10 * STATE_SIZE
_MAX_SEED = 2 ** 64


@persistable("random")
class RandomSource(Persistable):
    """
    Reproducible uint32 draw sequence with serializable state.

    Fields that fully determine future draws:
        seed: Seed passed to seed()
        draw_count: Draws taken since seeding
        state: 31-word table plus front/rear pointers

    Usage:
        r = RandomSource(7)
        r.next_uint32()
        r2 = RandomSource.decode(codec, r.encode(codec))
        assert r.next_uint32() == r2.next_uint32()
    """

    def __init__(self, seed: int = 0) -> None:
        self._seed = 0
        self._draw_count = 0
        self._state: List[int] = []
        self._front = SEPARATION
        self._rear = 0
        self.seed(seed)

    @property
    def seed_value(self) -> int:
        return self._seed

    @property
    def draw_count(self) -> int:
        return self._draw_count

    def seed(self, n: int) -> None:
        """
        Reset state deterministically from integer n.

        Raises:
            ValueError: If n is negative or does not fit in 64 bits
        """
        if not 0 <= n < _MAX_SEED:
            raise ValueError(f"seed must be in [0, 2**64), got {n}")
        x = n % _PM_MODULUS or 1
        table = [x]
        for _ in range(1, STATE_SIZE):
            x = (_PM_MULTIPLIER * x) % _PM_MODULUS
            table.append(x)

        self._seed = n
        self._state = table
        self._front = SEPARATION
        self._rear = 0
        for _ in range(_DISCARD):
            self._step()
        self._draw_count = 0

    def _step(self) -> int:
        st = self._state
        value = (st[self._front] + st[self._rear]) & MASK32
        st[self._front] = value
        self._front = (self._front + 1) % STATE_SIZE
        self._rear = (self._rear + 1) % STATE_SIZE
        return value

    def next_uint32(self) -> int:
        """Advance one step and return an unsigned 32-bit value."""
        self._draw_count += 1
        return self._step()

    def next_uint32_below(self, bound: int) -> int:
        """One draw reduced into [0, bound)."""
        if not 0 < bound <= MASK32 + 1:
            raise ValueError(f"bound must be in (0, 2**32], got {bound}")
        return self.next_uint32() % bound

    def next_real64(self) -> float:
        """One draw scaled into [0, 1)."""
        return self.next_uint32() / (MASK32 + 1)

    def shuffle(self, sequence: MutableSequence) -> None:
        """
        In-place Fisher-Yates permutation.

        Consumes exactly len(sequence) - 1 draws, one per swap decision.
        Works on lists, numpy arrays and SparseBinaryVector.
        """
        for i in range(len(sequence) - 1, 0, -1):
            j = self.next_uint32_below(i + 1)
            if i != j:
                sequence[i], sequence[j] = sequence[j], sequence[i]

    def sample(self, population: Sequence[T], count: int) -> List[T]:
        """
        Pick count distinct items, in draw order.

        Consumes exactly count draws.
        """
        if not 0 <= count <= len(population):
            raise ValueError(f"sample size {count} outside [0, {len(population)}]")
        pool = list(population)
        for i in range(count):
            j = i + self.next_uint32_below(len(pool) - i)
            pool[i], pool[j] = pool[j], pool[i]
        return pool[:count]

    def to_state(self) -> Dict[str, Any]:
        return {
            "seed": self._seed,
            "draw_count": self._draw_count,
            "state": list(self._state),
            "front": self._front,
            "rear": self._rear,
        }

    @classmethod
    def from_state(cls, state: Dict[str, Any]) -> "RandomSource":
        """
        Rebuild a source from to_state() output.

        Raises:
            FormatError: If the table or pointers are out of shape
        """
        table = [int(v) for v in state["state"]]
        front, rear = int(state["front"]), int(state["rear"])
        if len(table) != STATE_SIZE:
            raise FormatError(f"random state must have {STATE_SIZE} words, got {len(table)}")
        if any(not 0 <= v <= MASK32 for v in table):
            raise FormatError("random state word out of uint32 range")
        if (front - rear) % STATE_SIZE != SEPARATION:
            raise FormatError(f"inconsistent random pointers: front={front} rear={rear}")
        if not (0 <= front < STATE_SIZE and 0 <= rear < STATE_SIZE):
            raise FormatError(f"random pointer out of range: front={front} rear={rear}")

        obj = cls.__new__(cls)
        obj._seed = int(state["seed"])
        obj._draw_count = int(state["draw_count"])
        obj._state = table
        obj._front = front
        obj._rear = rear
        return obj

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, RandomSource):
            return NotImplemented
        return self.to_state() == other.to_state()

    def __repr__(self) -> str:
        return f"RandomSource(seed={self._seed}, draw_count={self._draw_count})"
