"""
Codec interface and blob framing.

Every codec produces a SerializedBlob. On the wire a blob is a fixed header
followed by the payload:

    >4sHI  format_tag (4 ASCII bytes), version (uint16), payload length (uint32)

The framing is shared; payload layout is each codec's own business.
"""

import struct
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Tuple, Union

from ..core.errors import FormatError
from ..core.persist import Persistable, component_class, kind_of

HEADER = struct.Struct(">4sHI")


@dataclass(frozen=True)
class SerializedBlob:
    """
    Encoded component.

    Fields:
        format_tag: 4-byte tag naming the codec that wrote the payload
        version: Payload layout version
        payload: Codec-specific bytes
    """
    format_tag: bytes
    version: int
    payload: bytes

    def to_bytes(self) -> bytes:
        return HEADER.pack(self.format_tag, self.version, len(self.payload)) + self.payload

    @staticmethod
    def read_header(data: bytes) -> Tuple[bytes, int, int]:
        """
        Parse the header only.

        Returns:
            (format_tag, version, declared_payload_length)

        Raises:
            FormatError: If data is shorter than the header
        """
        if len(data) < HEADER.size:
            raise FormatError(f"blob truncated: {len(data)} bytes, header needs {HEADER.size}")
        return HEADER.unpack_from(data)

    @classmethod
    def from_bytes(cls, data: bytes) -> "SerializedBlob":
        """
        Parse wire bytes.

        Raises:
            FormatError: If the header is short or the payload length differs
                from the declared length
        """
        tag, version, declared = cls.read_header(data)
        payload = bytes(data[HEADER.size:])
        if len(payload) < declared:
            raise FormatError(f"payload truncated: {len(payload)} of {declared} bytes")
        if len(payload) > declared:
            raise FormatError(f"{len(payload) - declared} trailing bytes after payload")
        return cls(format_tag=tag, version=version, payload=payload)


class Codec(ABC):
    """
    Encode/decode for any registered Persistable component.

    Subclasses define name, format_tag, version and the payload layout via
    encode_state()/decode_state().
    """

    name: str = ""
    format_tag: bytes = b""
    version: int = 0

    def encode(self, component: Persistable) -> SerializedBlob:
        """Serialize a live component. Never fails for a well-formed component."""
        kind = kind_of(component)
        payload = self.encode_state(kind, component.to_state())
        return SerializedBlob(format_tag=self.format_tag, version=self.version, payload=payload)

    def decode(self, data: Union[bytes, SerializedBlob]) -> Persistable:
        """
        Deserialize into a fresh, fully initialized component.

        Raises:
            FormatError: On tag/version mismatch, truncation, or bad payload
        """
        blob = data if isinstance(data, SerializedBlob) else SerializedBlob.from_bytes(data)
        if blob.format_tag != self.format_tag:
            raise FormatError(
                f"{self.name} codec expects tag {self.format_tag!r}, got {blob.format_tag!r}"
            )
        if blob.version != self.version:
            raise FormatError(
                f"{self.name} codec expects version {self.version}, got {blob.version}"
            )

        try:
            kind, state = self.decode_state(blob.payload)
        except FormatError:
            raise
        except (OverflowError, TypeError, ValueError) as ex:
            raise FormatError(f"{self.name} payload unreadable: {ex}") from ex

        cls = component_class(kind)
        try:
            return cls.from_state(state)
        except FormatError:
            raise
        except (KeyError, OverflowError, TypeError, ValueError) as ex:
            raise FormatError(f"invalid {kind} state: {ex}") from ex

    @abstractmethod
    def encode_state(self, kind: str, state: Dict[str, Any]) -> bytes:
        """Serialize a component state dict into payload bytes."""
        ...

    @abstractmethod
    def decode_state(self, payload: bytes) -> Tuple[str, Dict[str, Any]]:
        """
        Parse payload bytes.

        Returns:
            (kind, state dict suitable for from_state)

        Raises:
            FormatError: If payload cannot be parsed
        """
        ...

    def __repr__(self) -> str:
        return f"{type(self).__name__}(tag={self.format_tag!r}, version={self.version})"
