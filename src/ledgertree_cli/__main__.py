from __future__ import annotations
import os
import json
import pathlib
from typing import List

import typer
from pydantic import ValidationError
from rich import print

from ledgertree_api.crypto import ed25519_generate, JsonLeaf, B64, B64D, leaf_digest
from ledgertree_api.merkle import LeafIndexError, MerkleTree
from ledgertree_api.models import InclusionProof, TreeHead
from ledgertree_api.settings import settings

app = typer.Typer(add_completion=False, no_args_is_help=True)

# never treated as leaves when scanning a directory
_RESERVED = {"sth.json"}


def _leaf_files(day_dir: pathlib.Path) -> List[pathlib.Path]:
    return sorted(
        p for p in day_dir.iterdir() if p.is_file() and p.name not in _RESERVED
    )


def _file_leaf(p: pathlib.Path):
    """JSON files are hashed in canonical form, anything else byte for byte."""
    if p.suffix == ".json":
        return JsonLeaf(json.loads(p.read_text()))
    return p.read_bytes()


def _load_tree(dir: str, scheme: str) -> MerkleTree:
    leaf_dir = pathlib.Path(dir)
    if not leaf_dir.is_dir():
        print(f"[red]No leaf directory at {leaf_dir}[/red]")
        raise typer.Exit(code=1)
    try:
        return MerkleTree.build([_file_leaf(p) for p in _leaf_files(leaf_dir)], scheme)
    except ValueError as e:
        print(f"[red]{e}[/red]")
        raise typer.Exit(code=1)


@app.command()
def gen_keys(out_dir: str = typer.Option("./keys", help="Directory to write keypair")):
    os.makedirs(out_dir, exist_ok=True)
    sk, pk = ed25519_generate()
    (pathlib.Path(out_dir) / "ed25519_private.key").write_bytes(sk)
    (pathlib.Path(out_dir) / "ed25519_public.key").write_bytes(pk)
    print(f"[green]Wrote keys to {out_dir}[/green]")


@app.command()
def build(
    dir: str = typer.Option(..., help="Directory of leaf files (sorted by name)"),
    out: str = typer.Option(None, help="Tree head path (default <dir>/sth.json)"),
    scheme: str = typer.Option(settings.hash_scheme, help="plain | tagged"),
    sk_path: str = typer.Option(settings.signing_key_path, help="Ed25519 private key"),
    pk_path: str = typer.Option(settings.signing_pubkey_path, help="Ed25519 public key"),
):
    """Build a Merkle tree over the leaf files and emit a signed tree head."""
    from ledgertree_api.tree_head import make_tree_head

    tree = _load_tree(dir, scheme)
    if not tree.leaf_count:
        print("[yellow]No leaves found; committing the empty tree[/yellow]")
    try:
        sk = pathlib.Path(sk_path).read_bytes()
        pk = pathlib.Path(pk_path).read_bytes()
    except FileNotFoundError as e:
        print(f"[red]Signing key missing: {e.filename}[/red]")
        raise typer.Exit(code=1)
    sth = make_tree_head(tree, sk, pk)

    out_path = pathlib.Path(out) if out else pathlib.Path(dir) / "sth.json"
    out_path.write_text(json.dumps(sth.model_dump(), indent=2))
    print(f"[green]Wrote tree head for {tree.leaf_count} leaves to {out_path}[/green]")


@app.command()
def prove(
    dir: str = typer.Option(..., help="Directory of leaf files (sorted by name)"),
    index: int = typer.Option(..., help="Leaf position to prove"),
    out: str = typer.Option(None, help="Write proof JSON here instead of stdout"),
    scheme: str = typer.Option(settings.hash_scheme, help="plain | tagged"),
):
    """Emit an inclusion proof for the leaf at INDEX."""
    tree = _load_tree(dir, scheme)
    try:
        proof = tree.prove(index)
    except LeafIndexError as e:
        print(f"[red]{e}[/red]")
        raise typer.Exit(code=1)
    doc = {
        "leaf_digest_b64": B64(tree.leaf(index)),
        "proof": InclusionProof.from_proof(proof).model_dump(),
    }
    if out:
        pathlib.Path(out).write_text(json.dumps(doc, indent=2))
        print(f"[green]Wrote proof for leaf {index} to {out}[/green]")
    else:
        print(doc)


@app.command()
def verify(
    proof: str = typer.Option(..., help="Proof JSON written by `prove`"),
    sth: str = typer.Option(..., help="Signed tree head JSON"),
    leaf_file: str = typer.Option(
        None, help="Leaf file to check (defaults to the digest inside the proof)"
    ),
):
    """Check that a leaf is committed by a signed tree head."""
    from ledgertree_sdk.verify import verify_inclusion

    doc = json.loads(pathlib.Path(proof).read_text())
    head = json.loads(pathlib.Path(sth).read_text())
    if leaf_file:
        leaf_b64 = B64(leaf_digest(_file_leaf(pathlib.Path(leaf_file))))
    else:
        leaf_b64 = doc.get("leaf_digest_b64", "")
    ok = verify_inclusion(leaf_b64, doc.get("proof", {}), head)
    print({"inclusion_valid": ok})
    if not ok:
        raise typer.Exit(code=1)


@app.command()
def verify_sth(path: str):
    from ledgertree_sdk.verify import verify_tree_head

    obj = json.loads(pathlib.Path(path).read_text())
    ok = verify_tree_head(obj)
    print({"signature_valid": ok})
    if ok:
        try:
            head = TreeHead.model_validate(obj)
        except ValidationError:
            print("[yellow]Signature is valid but the tree head is incomplete[/yellow]")
            raise typer.Exit(code=1)
        print({"tree_size": head.tree_size, "root_hex": B64D(head.merkle_root_b64).hex()})


@app.command()
def serve(
    host: str = typer.Option("127.0.0.1"),
    port: int = typer.Option(8000),
):
    """Run the HTTP service."""
    import uvicorn
    from ledgertree_api.logutil import setup_logging

    setup_logging(settings.log_level)
    uvicorn.run("ledgertree_api.main:app", host=host, port=port, log_config=None)


if __name__ == "__main__":
    app()
