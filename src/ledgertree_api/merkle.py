from __future__ import annotations
import logging
from dataclasses import dataclass
from typing import Iterable, List, Sequence, Tuple

from .crypto import ZERO_DIGEST, DIGEST_SIZE, as_digest, get_hasher, leaf_digest
from .layout import auth_path, layer_offsets, layer_sizes, node_count, proof_length

log = logging.getLogger(__name__)


class LeafIndexError(IndexError):
    """Proof requested for a leaf position the tree does not have."""


class MalformedProofError(ValueError):
    """Proof shape is inconsistent with its declared leaf count."""


@dataclass(frozen=True)
class MerkleProof:
    leaf_index: int
    total_leaves: int
    siblings: Tuple[bytes, ...]  # leaf to root, root excluded
    scheme: str = "plain"


@dataclass(frozen=True)
class MerkleTree:
    leaves: Tuple[bytes, ...]  # leaf digests, input order
    nodes: Tuple[bytes, ...]  # flat array, root at 0, leaf layer last
    scheme: str = "plain"

    @classmethod
    def build(cls, items: Iterable, scheme: str = "plain") -> "MerkleTree":
        """Hash each item once and build the tree over the digests."""
        return cls.from_digests([leaf_digest(item) for item in items], scheme)

    @classmethod
    def from_digests(
        cls, digests: Sequence[bytes], scheme: str = "plain"
    ) -> "MerkleTree":
        hasher = get_hasher(scheme)
        leaves = tuple(as_digest(d) for d in digests)
        n = len(leaves)
        nodes: List[bytes] = [ZERO_DIGEST] * node_count(n)
        offsets = layer_offsets(n)
        layers = list(zip(layer_sizes(n), offsets))
        if layers:
            (real, padded), start = layers[0]
            nodes[start : start + real] = [hasher.leaf_node(d) for d in leaves]
            if padded != real:
                nodes[start + padded - 1] = nodes[start + real - 1]
            below = start
            for (real, padded), start in layers[1:]:
                for i in range(real):
                    left = nodes[below + 2 * i]
                    right = nodes[below + 2 * i + 1]
                    nodes[start + i] = hasher.node(left, right)
                if padded != real:
                    nodes[start + padded - 1] = nodes[start + real - 1]
                below = start
        log.debug("built %s tree: %d leaves, %d nodes", scheme, n, len(nodes))
        return cls(leaves, tuple(nodes), scheme)

    @property
    def root(self) -> bytes:
        if not self.nodes:
            return ZERO_DIGEST
        return self.nodes[0]

    @property
    def leaf_count(self) -> int:
        return len(self.leaves)

    def __len__(self) -> int:
        return len(self.leaves)

    def leaf(self, index: int) -> bytes:
        self._check_index(index)
        return self.leaves[index]

    def prove(self, index: int) -> MerkleProof:
        """Collect sibling digests from leaf `index` up to the root."""
        self._check_index(index)
        n = len(self.leaves)
        siblings = tuple(self.nodes[sib] for _, sib in auth_path(n, index))
        return MerkleProof(index, n, siblings, self.scheme)

    def _check_index(self, index: int) -> None:
        if not 0 <= index < len(self.leaves):
            raise LeafIndexError(
                f"leaf index {index} out of range for {len(self.leaves)} leaves"
            )


def check_proof(proof: MerkleProof) -> None:
    """Raise MalformedProofError unless the proof fits its own leaf count."""
    try:
        get_hasher(proof.scheme)
    except (ValueError, TypeError) as e:
        raise MalformedProofError(str(e)) from None
    for name in ("leaf_index", "total_leaves"):
        value = getattr(proof, name)
        if isinstance(value, bool) or not isinstance(value, int):
            raise MalformedProofError(f"{name} must be an int")
    if not isinstance(proof.siblings, (tuple, list)):
        raise MalformedProofError("siblings must be a sequence of digests")
    n = proof.total_leaves
    if n < 1:
        raise MalformedProofError("proof must cover at least one leaf")
    if not 0 <= proof.leaf_index < n:
        raise MalformedProofError(
            f"leaf index {proof.leaf_index} out of range for {n} leaves"
        )
    expected = proof_length(n)
    if len(proof.siblings) != expected:
        raise MalformedProofError(
            f"expected {expected} siblings for {n} leaves, got {len(proof.siblings)}"
        )
    for s in proof.siblings:
        if not isinstance(s, (bytes, bytearray)) or len(s) != DIGEST_SIZE:
            raise MalformedProofError("sibling is not a 32-byte digest")


def compute_root(leaf: bytes, proof: MerkleProof) -> bytes:
    """Replay the proof from `leaf` and return the root it implies."""
    check_proof(proof)
    hasher = get_hasher(proof.scheme)
    acc = hasher.leaf_node(as_digest(leaf))
    pos = proof.leaf_index
    for sibling in proof.siblings:
        sibling = bytes(sibling)
        if pos & 1:
            acc = hasher.node(sibling, acc)
        else:
            acc = hasher.node(acc, sibling)
        pos >>= 1
    return acc


def verify_inclusion(leaf: bytes, proof: MerkleProof, root: bytes) -> bool:
    try:
        return compute_root(leaf, proof) == bytes(root)
    except MalformedProofError as e:
        log.debug("rejecting malformed proof: %s", e)
        return False
    except ValueError as e:
        log.debug("rejecting leaf digest: %s", e)
        return False
