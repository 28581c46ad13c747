"""Address encoding: Base58 with blake2b-256 checksum, ergo tree derivation.

Ergo address operations:
- Base58 encode / decode (Bitcoin alphabet)
- Address construction from network, type and content bytes
- Address validation and type detection
- Ergo tree derivation for P2PK and P2S addresses
"""

from __future__ import annotations

import enum
import hashlib
from dataclasses import dataclass

_B58_ALPHABET = b"123456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz"

_CHECKSUM_LENGTH = 4
_P2PK_TREE_PREFIX = bytes.fromhex("0008cd")
_PUBKEY_LENGTH = 33


class NetworkPrefix(enum.IntEnum):
    """High nibble of the address head byte."""

    MAINNET = 0x00
    TESTNET = 0x10


class AddressType(enum.IntEnum):
    """Low nibble of the address head byte."""

    P2PK = 1
    P2SH = 2
    P2S = 3


@dataclass(frozen=True)
class ErgoAddress:
    """A decoded Ergo address."""

    network: NetworkPrefix
    address_type: AddressType
    content: bytes

    @property
    def ergo_tree(self) -> str:
        """Hex-encoded ergo tree guarding boxes sent to this address."""
        if self.address_type is AddressType.P2PK:
            return (_P2PK_TREE_PREFIX + self.content).hex()
        if self.address_type is AddressType.P2S:
            return self.content.hex()
        msg = "P2SH addresses are not supported as output targets"
        raise ValueError(msg)


# ---------------------------------------------------------------------------
# Base58
# ---------------------------------------------------------------------------


def base58_encode(payload: bytes) -> str:
    """Encode raw bytes to Base58 (no checksum)."""
    n = int.from_bytes(payload, "big")
    result: list[int] = []
    while n > 0:
        n, remainder = divmod(n, 58)
        result.append(_B58_ALPHABET[remainder])
    for byte in payload:
        if byte == 0:
            result.append(_B58_ALPHABET[0])
        else:
            break
    return bytes(reversed(result)).decode("ascii")


def base58_decode(s: str) -> bytes:
    """Decode Base58 string to raw bytes (no checksum).

    Raises:
        ValueError: If the string contains a non-Base58 character.
    """
    n = 0
    for char in s:
        index = _B58_ALPHABET.find(char.encode("ascii", errors="replace"))
        if index < 0:
            msg = f"Invalid Base58 character: {char!r}"
            raise ValueError(msg)
        n = n * 58 + index
    result = n.to_bytes((n.bit_length() + 7) // 8, "big") if n > 0 else b""
    pad_count = 0
    for char in s:
        if char == "1":
            pad_count += 1
        else:
            break
    return b"\x00" * pad_count + result


def _checksum(payload: bytes) -> bytes:
    return hashlib.blake2b(payload, digest_size=32).digest()[:_CHECKSUM_LENGTH]


# ---------------------------------------------------------------------------
# Addresses
# ---------------------------------------------------------------------------


def encode_address(network: NetworkPrefix, address_type: AddressType, content: bytes) -> str:
    """Build a Base58 Ergo address.

    Args:
        network: Mainnet or testnet prefix.
        address_type: P2PK, P2SH or P2S.
        content: Public key (P2PK), script hash (P2SH) or serialized tree (P2S).

    Returns:
        The Base58-encoded address with its 4-byte checksum.
    """
    payload = bytes([network + address_type]) + content
    return base58_encode(payload + _checksum(payload))


def decode_address(address: str) -> ErgoAddress:
    """Decode and verify a Base58 Ergo address.

    Raises:
        ValueError: If the address is malformed or its checksum is wrong.
    """
    if not address:
        msg = "Empty address"
        raise ValueError(msg)
    raw = base58_decode(address)
    if len(raw) <= _CHECKSUM_LENGTH + 1:
        msg = "Address too short"
        raise ValueError(msg)
    payload, checksum = raw[:-_CHECKSUM_LENGTH], raw[-_CHECKSUM_LENGTH:]
    if checksum != _checksum(payload):
        msg = "Address checksum mismatch"
        raise ValueError(msg)

    head = payload[0]
    try:
        network = NetworkPrefix(head & 0xF0)
        address_type = AddressType(head & 0x0F)
    except ValueError:
        msg = f"Unknown address head byte: {head:#04x}"
        raise ValueError(msg) from None

    content = payload[1:]
    if address_type is AddressType.P2PK and len(content) != _PUBKEY_LENGTH:
        msg = f"Invalid P2PK public key length: {len(content)}"
        raise ValueError(msg)
    return ErgoAddress(network=network, address_type=address_type, content=content)


def address_to_ergo_tree(address: str) -> str:
    """Return the hex ergo tree for a P2PK or P2S address.

    Raises:
        ValueError: If the address is invalid or of an unsupported type.
    """
    return decode_address(address).ergo_tree


def validate_address(address: str) -> bool:
    """Check if an address decodes to a spendable P2PK or P2S target."""
    try:
        address_to_ergo_tree(address)
    except ValueError:
        return False
    return True
