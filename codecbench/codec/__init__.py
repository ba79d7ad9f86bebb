"""
Codecs for persistable components.

Provides:
- Codec / SerializedBlob: Interface and wire framing
- SchemaCodec: Canonical JSON validated with pydantic (default)
- LegacyCodec: Whitespace token stream
- Registry: Lookup by name or format tag, decode_any(), inspect_blob()
"""

from .base import Codec, SerializedBlob, HEADER
from .schema import SchemaCodec
from .legacy import LegacyCodec
from .registry import (
    DEFAULT_CODEC,
    BlobInfo,
    available_codecs,
    codec_for_blob,
    decode_any,
    get_codec,
    inspect_blob,
    register_codec,
)

__all__ = [
    "Codec",
    "SerializedBlob",
    "HEADER",
    "SchemaCodec",
    "LegacyCodec",
    "DEFAULT_CODEC",
    "BlobInfo",
    "available_codecs",
    "codec_for_blob",
    "decode_any",
    "get_codec",
    "inspect_blob",
    "register_codec",
]
