"""Conversions between ledger entity ids (``shard.realm.num``) and EVM addresses.

A long-zero EVM address packs the entity id as 20 big-endian bytes:
shard (4 bytes), realm (8 bytes), num (8 bytes).
"""

from __future__ import annotations

import re
from typing import Tuple

_ENTITY_ID_RE = re.compile(r"^(\d+)\.(\d+)\.(\d+)(?:-[a-z]{5})?$")
_ADDRESS_RE = re.compile(r"^(?:0x)?([0-9a-fA-F]{40})$")

_MAX_SHARD = 2 ** 32 - 1
_MAX_U64 = 2 ** 64 - 1


class InvalidIdentifierError(ValueError):
    """Raised for identifiers that are neither entity ids nor EVM addresses."""


def parse_entity_id(value: str) -> Tuple[int, int, int]:
    match = _ENTITY_ID_RE.match(value.strip())
    if not match:
        raise InvalidIdentifierError(f"Not an entity id (shard.realm.num): {value!r}")
    shard, realm, num = (int(part) for part in match.groups())
    if shard > _MAX_SHARD or realm > _MAX_U64 or num > _MAX_U64:
        raise InvalidIdentifierError(f"Entity id out of range: {value!r}")
    return shard, realm, num


def entity_id_to_solidity_address(value: str) -> str:
    """``0.0.1001`` -> ``00000000000000000000000000000000000003e9``."""
    shard, realm, num = parse_entity_id(value)
    raw = shard.to_bytes(4, "big") + realm.to_bytes(8, "big") + num.to_bytes(8, "big")
    return raw.hex()


def solidity_address_to_entity_id(address: str) -> str:
    """Inverse of :func:`entity_id_to_solidity_address`; accepts an optional ``0x`` prefix."""
    match = _ADDRESS_RE.match(address.strip())
    if not match:
        raise InvalidIdentifierError(f"Not a 20-byte EVM address: {address!r}")
    raw = bytes.fromhex(match.group(1))
    shard = int.from_bytes(raw[:4], "big")
    realm = int.from_bytes(raw[4:12], "big")
    num = int.from_bytes(raw[12:], "big")
    return f"{shard}.{realm}.{num}"


def as_solidity_address(value: str) -> str:
    """Accept either form and return the bare 40-hex-char address."""
    match = _ADDRESS_RE.match(value.strip())
    if match:
        return match.group(1).lower()
    return entity_id_to_solidity_address(value)
