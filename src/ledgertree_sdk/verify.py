from typing import Dict, Any

from pydantic import ValidationError

from ledgertree_api.crypto import ed25519_verify, jcs_dumps, B64D
from ledgertree_api.merkle import verify_inclusion as _verify_proof
from ledgertree_api.models import InclusionProof
from ledgertree_api.tree_head import tree_head_body


def verify_tree_head(sth_json: Dict[str, Any]) -> bool:
    """Verify the Ed25519 signature over a tree head (root + leaf count).

    The body (all fields except signature_b64) is canonicalized with RFC 8785
    before verification. Missing fields or bad base64 yield False.
    """
    try:
        sig_b64 = sth_json["signature_b64"]
        pub_b64 = sth_json["signer_pubkey_b64"]
    except (KeyError, TypeError):
        return False
    try:
        canon = jcs_dumps(tree_head_body(sth_json))
        return ed25519_verify(B64D(pub_b64), canon, B64D(sig_b64))
    except Exception:
        return False


def verify_inclusion(
    leaf_digest_b64: str, proof_json: Dict[str, Any], sth_json: Dict[str, Any]
) -> bool:
    """Check that a leaf digest is committed by a signed tree head.

    The proof must be for the same leaf count and hash scheme the head
    commits to, and must recompute the head's root.
    """
    if not verify_tree_head(sth_json):
        return False
    try:
        proof = InclusionProof.model_validate(proof_json).to_proof()
        leaf = B64D(leaf_digest_b64)
        root = B64D(sth_json["merkle_root_b64"])
    except (ValidationError, ValueError, KeyError, TypeError):
        return False
    if proof.total_leaves != sth_json.get("tree_size"):
        return False
    if proof.scheme != sth_json.get("scheme", "plain"):
        return False
    return _verify_proof(leaf, proof, root)
