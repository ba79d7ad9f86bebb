"""
Registry of persistable component kinds.

Codecs never import component classes directly. A component registers its
kind string here and exposes to_state()/from_state(); codecs dispatch on the
kind recorded in the payload.
"""

from typing import Any, Callable, Dict, Type, TypeVar

from .errors import FormatError

T = TypeVar("T", bound="Persistable")

_KINDS: Dict[str, Type["Persistable"]] = {}


class Persistable:
    """
    Mixin for components that round-trip through a Codec.

    Subclasses set KIND (via @persistable) and implement to_state/from_state.
    """

    KIND: str = ""

    def to_state(self) -> Dict[str, Any]:
        raise NotImplementedError

    @classmethod
    def from_state(cls: Type[T], state: Dict[str, Any]) -> T:
        raise NotImplementedError

    def encode(self, codec) -> bytes:
        """Serialize with the given codec and return wire bytes."""
        return codec.encode(self).to_bytes()

    @classmethod
    def decode(cls: Type[T], codec, data: bytes) -> T:
        """
        Deserialize wire bytes with the given codec.

        Raises:
            FormatError: If bytes are malformed or hold a different kind
        """
        obj = codec.decode(data)
        if not isinstance(obj, cls):
            raise FormatError(f"expected {cls.KIND!r} payload, got {type(obj).KIND!r}")
        return obj


def persistable(kind: str) -> Callable[[Type[T]], Type[T]]:
    """
    Class decorator registering a component kind.

    Usage:
        @persistable("random")
        class RandomSource(Persistable): ...
    """

    def register(cls: Type[T]) -> Type[T]:
        if kind in _KINDS and _KINDS[kind] is not cls:
            raise ValueError(f"kind already registered: {kind}")
        cls.KIND = kind
        _KINDS[kind] = cls
        return cls

    return register


def component_class(kind: str) -> Type[Persistable]:
    """
    Look up the class registered for kind.

    Raises:
        FormatError: If kind is unknown (payload names a type we cannot build)
    """
    try:
        return _KINDS[kind]
    except KeyError:
        raise FormatError(f"unknown component kind: {kind!r}") from None


def kind_of(component: Any) -> str:
    kind = getattr(type(component), "KIND", "")
    if not kind or _KINDS.get(kind) is not type(component):
        raise TypeError(f"{type(component).__name__} is not a registered persistable")
    return kind


def registered_kinds() -> Dict[str, Type[Persistable]]:
    return dict(_KINDS)
