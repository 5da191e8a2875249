from __future__ import annotations
import datetime
import logging
import os
from pathlib import Path
from typing import List

from fastapi import FastAPI, HTTPException

from .settings import settings
from .crypto import B64, B64D, JsonLeaf
from .merkle import LeafIndexError, MalformedProofError, MerkleTree, compute_root
from .models import (
    InclusionProof,
    LeavesRequest,
    ProveRequest,
    RootResponse,
    TreeHead,
    VerifyRequest,
    VerifyResponse,
)
from .tree_head import make_tree_head
from .middleware.size_limit import SizeLimitMiddleware

log = logging.getLogger(__name__)

app = FastAPI(title="Ledgertree")
app.add_middleware(SizeLimitMiddleware)


def _scheme() -> str:
    return os.getenv("LEDGERTREE_HASH_SCHEME", settings.hash_scheme)


def _load_keys():
    sk_path = Path(os.getenv("LEDGERTREE_SIGNING_KEY_PATH", settings.signing_key_path))
    pk_path = Path(
        os.getenv("LEDGERTREE_SIGNING_PUBKEY_PATH", settings.signing_pubkey_path)
    )
    if not sk_path.exists() or not pk_path.exists():
        # generate if allowed for development only (gated by LEDGERTREE_ALLOW_DEV_KEYGEN)
        env_flag = os.getenv("LEDGERTREE_ALLOW_DEV_KEYGEN", "").lower()
        allow_dev = env_flag in ("1", "true", "yes") or settings.allow_dev_keygen
        if not allow_dev:
            raise FileNotFoundError(
                "signing keypair not found; set LEDGERTREE_ALLOW_DEV_KEYGEN=true to auto-generate for development"
            )
        from nacl.signing import SigningKey

        sk_path.parent.mkdir(parents=True, exist_ok=True)
        pk_path.parent.mkdir(parents=True, exist_ok=True)
        sk = SigningKey.generate()
        sk_path.write_bytes(sk.encode())
        pk_path.write_bytes(sk.verify_key.encode())
        log.info("generated development signing key at %s", sk_path)
    return sk_path.read_bytes(), pk_path.read_bytes()


def _decode_leaves(req: LeavesRequest) -> List[bytes]:
    max_leaves = int(os.getenv("LEDGERTREE_MAX_LEAVES") or settings.max_leaves)
    if len(req.leaves_b64) > max_leaves:
        raise HTTPException(status_code=413, detail="too many leaves")
    try:
        return [B64D(s) for s in req.leaves_b64]
    except ValueError:
        raise HTTPException(status_code=400, detail="leaves must be base64")


def _build(req: LeavesRequest) -> MerkleTree:
    leaves = _decode_leaves(req)
    try:
        if req.prehashed:
            return MerkleTree.from_digests(leaves, _scheme())
        return MerkleTree.build(leaves, _scheme())
    except ValueError as e:
        log.info("rejected leaves: %s", e)
        raise HTTPException(status_code=400, detail=str(e))


@app.get("/healthz")
async def healthz():
    return {"ok": True, "ts": datetime.datetime.now(datetime.timezone.utc).isoformat()}


@app.post("/merkle/root", response_model=RootResponse)
async def merkle_root(req: LeavesRequest):
    tree = _build(req)
    return RootResponse(
        tree_size=tree.leaf_count,
        node_count=len(tree.nodes),
        merkle_root_b64=B64(tree.root),
        scheme=tree.scheme,
    )


@app.post("/merkle/proof", response_model=InclusionProof)
async def merkle_proof(req: ProveRequest):
    tree = _build(req)
    try:
        proof = tree.prove(req.index)
    except LeafIndexError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return InclusionProof.from_proof(proof)


@app.post("/merkle/verify", response_model=VerifyResponse)
async def merkle_verify(req: VerifyRequest):
    try:
        leaf = B64D(req.leaf_digest_b64)
        root = B64D(req.root_b64)
    except ValueError:
        raise HTTPException(status_code=400, detail="digests must be base64")
    try:
        computed = compute_root(leaf, req.proof.to_proof())
    except MalformedProofError as e:
        log.info("malformed proof: %s", e)
        return VerifyResponse(valid=False, reason="malformed proof")
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if computed != root:
        return VerifyResponse(valid=False, reason="root mismatch")
    return VerifyResponse(valid=True)


@app.post("/merkle/tree-head", response_model=TreeHead)
async def merkle_tree_head(req: LeavesRequest):
    tree = _build(req)
    sk_bytes, pk_bytes = _load_keys()
    return make_tree_head(tree, sk_bytes, pk_bytes)


@app.post("/json/leaf-digest")
async def json_leaf_digest(payload: dict):
    """Digest a JSON payload the way JSON leaf files are hashed."""
    return {"leaf_digest_b64": B64(JsonLeaf(payload).digest())}
