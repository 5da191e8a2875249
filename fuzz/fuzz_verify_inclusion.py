"""Inclusion proof fuzzing with mutated and free-form proofs.

Verification must return a bool for any input; a tampered sibling must never
verify and an exception escaping verify_inclusion is a crash.
"""
from __future__ import annotations
import atheris
import sys
import hashlib
import json
import random

with atheris.instrument_imports():
    from ledgertree_api.merkle import MerkleProof, MerkleTree, verify_inclusion
    from ledgertree_sdk.verify import verify_inclusion as sdk_verify_inclusion


def _free_form(data: bytes):
    try:
        obj = json.loads(data.decode("utf-8", errors="ignore"))
    except ValueError:
        return
    sth = {"tree_size": 1, "merkle_root_b64": "", "signer_pubkey_b64": "", "signature_b64": ""}
    result = sdk_verify_inclusion("", obj, sth)
    if result is not False:
        raise RuntimeError("unsigned tree head accepted")


def TestOneInput(data: bytes):  # noqa: N802
    if len(data) < 8:
        return
    if data[0] == ord("{"):
        _free_form(data)
        return
    # Derive variable chunk size & mutation seed
    seed = int.from_bytes(data[:4], "little")
    rng = random.Random(seed)
    chunk_len = 1 + (data[4] % 32)
    body = data[5:]
    leaves_raw = [body[i : i + chunk_len] for i in range(0, min(len(body), chunk_len * 40), chunk_len)]
    leaves = [hashlib.sha256(x).digest() for x in leaves_raw if x]
    if not leaves:
        return
    tree = MerkleTree.from_digests(leaves)
    idx = seed % len(leaves)
    proof = tree.prove(idx)
    siblings = list(proof.siblings)
    roll = rng.random()
    if roll < 0.2 and siblings:
        k = rng.randrange(len(siblings))
        sib = siblings[k]
        siblings[k] = bytes([sib[0] ^ 0x01]) + sib[1:]
        forged = MerkleProof(idx, len(leaves), tuple(siblings))
        if verify_inclusion(leaves[idx], forged, tree.root):
            raise RuntimeError("tampered proof unexpectedly verified")
    elif roll < 0.4:
        # wrong shape: drop or add a level, or lie about the leaf count
        forged = MerkleProof(idx, rng.randrange(0, 2 * len(leaves) + 2), tuple(siblings[1:]))
        verify_inclusion(leaves[idx], forged, tree.root)
    else:
        if not verify_inclusion(leaves[idx], proof, tree.root):
            raise RuntimeError("valid proof failed")


def main():
    atheris.Setup(sys.argv, TestOneInput, enable_python_coverage=True)
    atheris.Fuzz()


if __name__ == "__main__":
    main()
