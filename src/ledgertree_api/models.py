from __future__ import annotations
from typing import List, Literal, Optional
from pydantic import BaseModel, Field, field_validator

from .crypto import B64, B64D, DIGEST_SIZE
from .merkle import MerkleProof

U32_MAX = 2**32 - 1

Scheme = Literal["plain", "tagged"]


def _digest_b64(v: str) -> str:
    if len(B64D(v)) != DIGEST_SIZE:
        raise ValueError(f"digest must decode to {DIGEST_SIZE} bytes")
    return v


class InclusionProof(BaseModel):
    """Serialized inclusion proof.

    `total_leaves` travels with the proof so a verifier can replay the
    layer/padding arithmetic without the tree.
    """

    leaf_index: int = Field(ge=0, le=U32_MAX)
    total_leaves: int = Field(ge=1, le=U32_MAX)
    siblings_b64: List[str] = Field(default_factory=list)
    scheme: Scheme = "plain"

    @field_validator("siblings_b64")
    @classmethod
    def _siblings_are_digests(cls, v: List[str]) -> List[str]:
        return [_digest_b64(s) for s in v]

    @classmethod
    def from_proof(cls, proof: MerkleProof) -> "InclusionProof":
        return cls(
            leaf_index=proof.leaf_index,
            total_leaves=proof.total_leaves,
            siblings_b64=[B64(s) for s in proof.siblings],
            scheme=proof.scheme,
        )

    def to_proof(self) -> MerkleProof:
        return MerkleProof(
            leaf_index=self.leaf_index,
            total_leaves=self.total_leaves,
            siblings=tuple(B64D(s) for s in self.siblings_b64),
            scheme=self.scheme,
        )


class TreeHead(BaseModel):
    tree_size: int
    merkle_root_b64: str
    scheme: Scheme = "plain"
    ts: str
    signer_pubkey_b64: str
    signature_b64: str


class LeavesRequest(BaseModel):
    """Leaves as base64. With `prehashed` each entry is already a leaf digest."""

    leaves_b64: List[str] = Field(default_factory=list)
    prehashed: bool = False


class ProveRequest(LeavesRequest):
    index: int = Field(ge=0)


class VerifyRequest(BaseModel):
    leaf_digest_b64: str
    proof: InclusionProof
    root_b64: str


class RootResponse(BaseModel):
    tree_size: int
    node_count: int
    merkle_root_b64: str
    scheme: Scheme


class VerifyResponse(BaseModel):
    valid: bool
    reason: Optional[str] = None
