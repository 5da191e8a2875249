import hashlib

from fastapi.testclient import TestClient

from ledgertree_api.crypto import B64, B64D, JsonLeaf, sha256
from ledgertree_api.merkle import MerkleTree


def _client(tmp_path, monkeypatch, **env):
    monkeypatch.setenv(
        "LEDGERTREE_SIGNING_KEY_PATH", str(tmp_path / "keys/ed25519_private.key")
    )
    monkeypatch.setenv(
        "LEDGERTREE_SIGNING_PUBKEY_PATH", str(tmp_path / "keys/ed25519_public.key")
    )
    monkeypatch.setenv("LEDGERTREE_ALLOW_DEV_KEYGEN", "true")
    for k, v in env.items():
        monkeypatch.setenv(k, v)
    from ledgertree_api.main import app as _app

    return TestClient(_app)


def _raw(n):
    return [f"payload-{i}".encode() for i in range(n)]


def test_healthz(tmp_path, monkeypatch):
    r = _client(tmp_path, monkeypatch).get("/healthz")
    assert r.status_code == 200
    assert r.json()["ok"] is True


def test_root_matches_library(tmp_path, monkeypatch):
    client = _client(tmp_path, monkeypatch)
    raw = _raw(7)
    r = client.post("/merkle/root", json={"leaves_b64": [B64(x) for x in raw]})
    assert r.status_code == 200
    body = r.json()
    assert body["tree_size"] == 7
    assert body["node_count"] == 15
    assert B64D(body["merkle_root_b64"]) == MerkleTree.build(raw).root


def test_root_prehashed_and_empty(tmp_path, monkeypatch):
    client = _client(tmp_path, monkeypatch)
    digests = [sha256(x) for x in _raw(3)]
    r = client.post(
        "/merkle/root",
        json={"leaves_b64": [B64(d) for d in digests], "prehashed": True},
    )
    assert B64D(r.json()["merkle_root_b64"]) == MerkleTree.from_digests(digests).root
    r = client.post("/merkle/root", json={"leaves_b64": []})
    assert r.status_code == 200
    assert B64D(r.json()["merkle_root_b64"]) == bytes(32)
    assert r.json()["node_count"] == 0


def test_bad_leaves(tmp_path, monkeypatch):
    client = _client(tmp_path, monkeypatch)
    r = client.post("/merkle/root", json={"leaves_b64": ["***"]})
    assert r.status_code == 400
    r = client.post(
        "/merkle/root", json={"leaves_b64": [B64(b"short")], "prehashed": True}
    )
    assert r.status_code == 400


def test_too_many_leaves(tmp_path, monkeypatch):
    client = _client(tmp_path, monkeypatch, LEDGERTREE_MAX_LEAVES="2")
    r = client.post("/merkle/root", json={"leaves_b64": [B64(x) for x in _raw(3)]})
    assert r.status_code == 413


def test_request_size_limit(tmp_path, monkeypatch):
    client = _client(tmp_path, monkeypatch, LEDGERTREE_MAX_REQUEST_BYTES="64")
    r = client.post("/merkle/root", json={"leaves_b64": [B64(x) for x in _raw(10)]})
    assert r.status_code == 413


def test_prove_and_verify(tmp_path, monkeypatch):
    client = _client(tmp_path, monkeypatch)
    raw = _raw(5)
    leaves_b64 = [B64(x) for x in raw]
    root = client.post("/merkle/root", json={"leaves_b64": leaves_b64}).json()
    r = client.post("/merkle/proof", json={"leaves_b64": leaves_b64, "index": 4})
    assert r.status_code == 200
    proof = r.json()
    assert proof["leaf_index"] == 4
    assert proof["total_leaves"] == 5
    assert len(proof["siblings_b64"]) == 3
    req = {
        "leaf_digest_b64": B64(sha256(raw[4])),
        "proof": proof,
        "root_b64": root["merkle_root_b64"],
    }
    r = client.post("/merkle/verify", json=req)
    assert r.json() == {"valid": True, "reason": None}

    req["leaf_digest_b64"] = B64(sha256(raw[3]))
    r = client.post("/merkle/verify", json=req)
    assert r.json() == {"valid": False, "reason": "root mismatch"}


def test_verify_malformed_proof(tmp_path, monkeypatch):
    client = _client(tmp_path, monkeypatch)
    leaf = hashlib.sha256(b"x").digest()
    req = {
        "leaf_digest_b64": B64(leaf),
        "proof": {"leaf_index": 0, "total_leaves": 4, "siblings_b64": [B64(leaf)]},
        "root_b64": B64(leaf),
    }
    r = client.post("/merkle/verify", json=req)
    assert r.status_code == 200
    assert r.json() == {"valid": False, "reason": "malformed proof"}


def test_prove_out_of_range(tmp_path, monkeypatch):
    client = _client(tmp_path, monkeypatch)
    leaves_b64 = [B64(x) for x in _raw(2)]
    r = client.post("/merkle/proof", json={"leaves_b64": leaves_b64, "index": 2})
    assert r.status_code == 404
    r = client.post("/merkle/proof", json={"leaves_b64": [], "index": 0})
    assert r.status_code == 404


def test_tree_head_endpoint(tmp_path, monkeypatch):
    from ledgertree_sdk.verify import verify_tree_head

    client = _client(tmp_path, monkeypatch)
    r = client.post("/merkle/tree-head", json={"leaves_b64": [B64(x) for x in _raw(3)]})
    assert r.status_code == 200
    sth = r.json()
    assert sth["tree_size"] == 3
    assert verify_tree_head(sth)
    assert (tmp_path / "keys/ed25519_private.key").exists()


def test_tagged_scheme_from_env(tmp_path, monkeypatch):
    client = _client(tmp_path, monkeypatch, LEDGERTREE_HASH_SCHEME="tagged")
    raw = _raw(3)
    r = client.post("/merkle/root", json={"leaves_b64": [B64(x) for x in raw]})
    assert r.json()["scheme"] == "tagged"
    assert B64D(r.json()["merkle_root_b64"]) == MerkleTree.build(raw, "tagged").root


def test_json_leaf_digest(tmp_path, monkeypatch):
    client = _client(tmp_path, monkeypatch)
    r = client.post("/json/leaf-digest", json={"b": 1, "a": [1, 2]})
    assert B64D(r.json()["leaf_digest_b64"]) == JsonLeaf({"a": [1, 2], "b": 1}).digest()
