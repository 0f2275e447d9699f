"""Encode and decode self-describing ``data:`` URLs returned by the engine."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

_PREFIX = "data:"
_BASE64_SUFFIX = ";base64"


class PayloadEncoding(str, Enum):
    UTF8 = "utf8"
    BASE64 = "base64"


@dataclass(frozen=True)
class DataUrl:
    media_type: Optional[str]
    is_base64: bool
    data: str

    @property
    def encoding(self) -> PayloadEncoding:
        return PayloadEncoding.BASE64 if self.is_base64 else PayloadEncoding.UTF8


def decode_data_url(data_url: str) -> DataUrl:
    """
    Split a data URL into media type, encoding flag and payload.

    The media type is None when omitted; the payload is returned as-is
    (no percent-decoding, no base64 decoding).

    Raises:
        ValueError: If the value is not a string starting with ``data:``
            or has no comma between metadata and payload
    """
    if not isinstance(data_url, str) or not data_url.startswith(_PREFIX) or "," not in data_url:
        raise ValueError("Invalid data URL")

    meta, data = data_url.split(",", 1)
    is_base64 = meta.endswith(_BASE64_SUFFIX)
    end = len(meta) - len(_BASE64_SUFFIX) if is_base64 else len(meta)
    media_type = meta[len(_PREFIX):end] or None

    return DataUrl(media_type=media_type, is_base64=is_base64, data=data)


def encode_data_url(media_type: Optional[str], data: str, is_base64: bool = False) -> str:
    suffix = _BASE64_SUFFIX if is_base64 else ""
    return f"{_PREFIX}{media_type or ''}{suffix},{data}"
