"""Fuzz harness for Merkle tree construction & inclusion proof verification."""
from __future__ import annotations
import atheris
import sys
import hashlib

with atheris.instrument_imports():
    from ledgertree_api.layout import node_count, proof_length
    from ledgertree_api.merkle import MerkleTree, verify_inclusion


def TestOneInput(data: bytes):  # noqa: N802
    if not data:
        return
    # Split data deterministically into pseudo-leaves (bounded count)
    # Use fixed-size chunks to avoid quadratic blowups.
    size = max(1, min(32, data[0]))
    chunks = [data[i : i + size] for i in range(1, min(len(data), 1 + size * 64), size)]
    scheme = "tagged" if data[0] & 0x80 else "plain"
    tree = MerkleTree.build(chunks, scheme)
    n = len(chunks)
    if len(tree.nodes) != node_count(n):
        raise RuntimeError("node array size disagrees with layout")
    if n == 0:
        return
    # Pick an index based on trailing byte
    idx = data[-1] % n
    proof = tree.prove(idx)
    if len(proof.siblings) != proof_length(n):
        raise RuntimeError("proof length disagrees with layout")
    leaf = hashlib.sha256(chunks[idx]).digest()
    if not verify_inclusion(leaf, proof, tree.root):
        raise RuntimeError("valid inclusion proof failed")


def main():
    atheris.Setup(sys.argv, TestOneInput, enable_python_coverage=True)
    atheris.Fuzz()


if __name__ == "__main__":
    main()
