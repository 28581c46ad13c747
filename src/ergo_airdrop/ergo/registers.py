"""Register decoding: serialized sigma constants found in box registers.

Box registers R4..R9 hold serialized constants: a one-byte type tag
followed by the value. Only the shapes used by token metadata are handled:

- ``0x0e`` Coll[Byte]: VLQ length + payload (names, descriptions, URLs)
- ``0x04`` SInt / ``0x05`` SLong: zig-zag encoded VLQ integers

Decoding never raises. It returns a ``DecodeOk`` or a ``DecodeError`` so
that one malformed register cannot abort a batch of lookups.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from io import BytesIO


class TypeTag(enum.IntEnum):
    """Supported sigma type tags."""

    SINT = 0x04
    SLONG = 0x05
    COLL_BYTE = 0x0E


@dataclass(frozen=True)
class DecodeOk:
    """Successfully decoded register value."""

    tag: TypeTag
    value: bytes | int

    @property
    def text(self) -> str | None:
        """UTF-8 view of a Coll[Byte] value, ``None`` when not text."""
        if not isinstance(self.value, bytes):
            return None
        try:
            return self.value.decode("utf-8")
        except UnicodeDecodeError:
            return None


@dataclass(frozen=True)
class DecodeError:
    """Register value that could not be decoded."""

    reason: str


DecodeResult = DecodeOk | DecodeError


# ---------------------------------------------------------------------------
# VLQ / zig-zag
# ---------------------------------------------------------------------------


def encode_vlq(n: int) -> bytes:
    """Encode a non-negative integer as an unsigned VLQ."""
    if n < 0:
        msg = "VLQ value must be non-negative"
        raise ValueError(msg)
    out = bytearray()
    while True:
        byte = n & 0x7F
        n >>= 7
        if n:
            out.append(byte | 0x80)
        else:
            out.append(byte)
            return bytes(out)


def read_vlq(stream: BytesIO) -> int:
    """Read an unsigned VLQ from a byte stream."""
    result = 0
    shift = 0
    while True:
        raw = stream.read(1)
        if not raw:
            msg = "Unexpected end of data reading VLQ"
            raise ValueError(msg)
        byte = raw[0]
        result |= (byte & 0x7F) << shift
        if not byte & 0x80:
            return result
        shift += 7
        if shift > 63:
            msg = "VLQ value too large"
            raise ValueError(msg)


def _zigzag_decode(n: int) -> int:
    return (n >> 1) ^ -(n & 1)


def _zigzag_encode(n: int) -> int:
    return n << 1 if n >= 0 else (-n << 1) - 1


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def decode_register(register_hex: str) -> DecodeResult:
    """Decode a hex-encoded register value.

    Args:
        register_hex: Serialized constant in hex.

    Returns:
        ``DecodeOk`` with the typed value, or ``DecodeError`` describing
        why the value could not be read.
    """
    try:
        data = bytes.fromhex(register_hex)
    except (TypeError, ValueError):
        return DecodeError("register is not valid hex")
    if not data:
        return DecodeError("register is empty")

    try:
        tag = TypeTag(data[0])
    except ValueError:
        return DecodeError(f"unsupported type tag {data[0]:#04x}")

    stream = BytesIO(data[1:])
    try:
        if tag is TypeTag.COLL_BYTE:
            length = read_vlq(stream)
            payload = stream.read(length)
            if len(payload) != length:
                return DecodeError(f"truncated Coll[Byte]: expected {length} bytes")
            value: bytes | int = payload
        else:
            value = _zigzag_decode(read_vlq(stream))
    except ValueError as exc:
        return DecodeError(str(exc))

    if stream.read(1):
        return DecodeError("trailing bytes after value")
    return DecodeOk(tag=tag, value=value)


def decode_text(register_hex: str) -> str | None:
    """Decode a register holding UTF-8 text; ``None`` on any failure."""
    result = decode_register(register_hex)
    if isinstance(result, DecodeError):
        return None
    return result.text


def encode_coll_byte(payload: bytes) -> str:
    """Serialize bytes as a Coll[Byte] constant (hex)."""
    return (bytes([TypeTag.COLL_BYTE]) + encode_vlq(len(payload)) + payload).hex()


def encode_string(text: str) -> str:
    """Serialize UTF-8 text as a Coll[Byte] constant (hex)."""
    return encode_coll_byte(text.encode("utf-8"))


def encode_int(value: int, *, long: bool = False) -> str:
    """Serialize an integer as an SInt (or SLong) constant (hex)."""
    tag = TypeTag.SLONG if long else TypeTag.SINT
    return (bytes([tag]) + encode_vlq(_zigzag_encode(value))).hex()
