from __future__ import annotations
import base64
import hashlib
from dataclasses import dataclass
from typing import Any, Dict, Protocol, Tuple, runtime_checkable

import nacl.signing
import rfc8785


DIGEST_SIZE = 32
ZERO_DIGEST = bytes(DIGEST_SIZE)  # root of the empty tree


def B64(b: bytes) -> str:
    """Base64-encode bytes to ASCII string."""
    return base64.b64encode(b).decode("ascii")


def B64D(s: str) -> bytes:
    """Decode base64 ASCII string to bytes with strict validation."""
    try:
        return base64.b64decode(s.encode("ascii"), validate=True)
    except Exception as e:
        raise ValueError("invalid base64") from e


def sha256(data: bytes) -> bytes:
    return hashlib.sha256(data).digest()


def as_digest(value) -> bytes:
    """Return `value` as an immutable 32-byte digest or raise ValueError."""
    if not isinstance(value, (bytes, bytearray, memoryview)):
        raise ValueError(f"digest must be bytes, got {type(value).__name__}")
    b = bytes(value)
    if len(b) != DIGEST_SIZE:
        raise ValueError(f"digest must be {DIGEST_SIZE} bytes, got {len(b)}")
    return b


def jcs_dumps(obj) -> bytes:
    """Deterministic canonical JSON bytes per RFC8785."""
    return rfc8785.dumps(obj)


@runtime_checkable
class Hashable(Protocol):
    """Anything that can be committed as a leaf.

    `digest()` must be pure: the same content always yields the same 32 bytes.
    """

    def digest(self) -> bytes: ...


@dataclass(frozen=True)
class JsonLeaf:
    """JSON payload leaf hashed over its RFC8785 canonical form."""

    obj: Any

    def digest(self) -> bytes:
        return sha256(jcs_dumps(self.obj))


def leaf_digest(item) -> bytes:
    """Reduce one leaf item to its digest.

    Hashable items supply their own digest; raw bytes are hashed with SHA-256.
    """
    if isinstance(item, (bytes, bytearray, memoryview)):
        return sha256(bytes(item))
    if isinstance(item, Hashable):
        return as_digest(item.digest())
    raise TypeError(f"leaf of type {type(item).__name__} is not hashable")


@dataclass(frozen=True)
class NodeHasher:
    """Hashing rules for leaf slots and internal nodes.

    `plain` is the ledger's historical layout: leaf slots hold the leaf digest
    as-is and parents are sha256(left + right). `tagged` prefixes 0x00 for
    leaves and 0x01 for parents, in the manner of RFC 6962.
    """

    name: str
    leaf_prefix: bytes = b""
    node_prefix: bytes = b""

    def leaf_node(self, digest: bytes) -> bytes:
        if not self.leaf_prefix:
            return digest
        return sha256(self.leaf_prefix + digest)

    def node(self, left: bytes, right: bytes) -> bytes:
        return sha256(self.node_prefix + left + right)


PLAIN = NodeHasher("plain")
TAGGED = NodeHasher("tagged", leaf_prefix=b"\x00", node_prefix=b"\x01")

_HASHERS: Dict[str, NodeHasher] = {h.name: h for h in (PLAIN, TAGGED)}


def get_hasher(name: str) -> NodeHasher:
    try:
        return _HASHERS[name]
    except KeyError:
        raise ValueError(f"unknown hash scheme: {name!r}") from None


def ed25519_generate() -> Tuple[bytes, bytes]:
    sk = nacl.signing.SigningKey.generate()
    pk = sk.verify_key
    return (sk.encode(), pk.encode())


def ed25519_sign(sk_bytes: bytes, data: bytes) -> bytes:
    sk = nacl.signing.SigningKey(sk_bytes)
    sig = sk.sign(data).signature
    return sig


def ed25519_verify(pk_bytes: bytes, data: bytes, signature: bytes) -> bool:
    vk = nacl.signing.VerifyKey(pk_bytes)
    try:
        vk.verify(data, signature)
        return True
    except Exception:
        return False
