from __future__ import annotations
import datetime
from typing import Any, Dict

from .crypto import jcs_dumps, ed25519_sign, B64
from .merkle import MerkleTree
from .models import TreeHead


def _now_iso() -> str:
    return datetime.datetime.now(datetime.timezone.utc).isoformat()


def tree_head_body(head: Dict[str, Any]) -> Dict[str, Any]:
    """Signed fields of a tree head (everything but the signature)."""
    return {k: v for k, v in head.items() if k != "signature_b64"}


def make_tree_head(
    tree: MerkleTree, signer_sk_bytes: bytes, signer_pk_bytes: bytes
) -> TreeHead:
    """Sign the root together with the leaf count.

    Duplicate padding lets [a, b, c] and [a, b, c, c] share a root, so the
    count is part of the commitment.
    """
    body = {
        "tree_size": tree.leaf_count,
        "merkle_root_b64": B64(tree.root),
        "scheme": tree.scheme,
        "ts": _now_iso(),
        "signer_pubkey_b64": B64(signer_pk_bytes),
    }
    sig = ed25519_sign(signer_sk_bytes, jcs_dumps(body))
    return TreeHead(**{**body, "signature_b64": B64(sig)})
