"""
Codec registry.

Resolves codecs by name or by the format tag at the front of a blob, so a
reader can load bytes written by either codec (legacy state stays readable
after the default moved to the schema codec).
"""

from dataclasses import dataclass
from typing import Dict, List, Optional

from ..core.errors import FormatError
from ..core.persist import Persistable
from .base import HEADER, Codec, SerializedBlob
from .legacy import LegacyCodec
from .schema import SchemaCodec

DEFAULT_CODEC = "schema"

_CODECS: Dict[str, Codec] = {}


def register_codec(codec: Codec) -> None:
    for other in _CODECS.values():
        if other.format_tag == codec.format_tag and other.name != codec.name:
            raise ValueError(f"format tag {codec.format_tag!r} already used by {other.name}")
    _CODECS[codec.name] = codec


def get_codec(name: str) -> Codec:
    """
    Look up a codec by name.

    Raises:
        ValueError: If no codec has that name
    """
    try:
        return _CODECS[name]
    except KeyError:
        raise ValueError(f"unknown codec {name!r}; available: {available_codecs()}") from None


def available_codecs() -> List[str]:
    return sorted(_CODECS)


def codec_for_blob(data: bytes) -> Codec:
    """
    Pick the codec whose format tag starts data.

    Raises:
        FormatError: If the header is short or the tag is unknown
    """
    tag, _, _ = SerializedBlob.read_header(data)
    for codec in _CODECS.values():
        if codec.format_tag == tag:
            return codec
    raise FormatError(f"no codec for format tag {tag!r}")


def decode_any(data: bytes) -> Persistable:
    """Decode bytes written by any registered codec."""
    return codec_for_blob(data).decode(data)


@dataclass(frozen=True)
class BlobInfo:
    """Header facts about a blob, gathered without decoding the payload."""
    format_tag: str
    version: int
    declared_length: int
    actual_length: int
    codec: Optional[str]

    @property
    def truncated(self) -> bool:
        return self.actual_length < self.declared_length

    @property
    def version_supported(self) -> bool:
        return self.codec is not None and get_codec(self.codec).version == self.version


def inspect_blob(data: bytes) -> BlobInfo:
    tag, version, declared = SerializedBlob.read_header(data)
    try:
        name: Optional[str] = codec_for_blob(data).name
    except FormatError:
        name = None
    return BlobInfo(
        format_tag=tag.decode("ascii", errors="replace"),
        version=version,
        declared_length=declared,
        actual_length=len(data) - HEADER.size,
        codec=name,
    )


register_codec(SchemaCodec())
register_codec(LegacyCodec())
