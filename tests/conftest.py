import os
import sys
from pathlib import Path

import pytest
from nacl.signing import SigningKey

# Ensure the 'src' directory is on sys.path for imports in tests
ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

os.environ.setdefault("LEDGERTREE_ALLOW_DEV_KEYGEN", "true")


@pytest.fixture
def keypair():
    sk = SigningKey.generate()
    return sk.encode(), sk.verify_key.encode()


@pytest.fixture
def key_files(tmp_path, keypair):
    sk, pk = keypair
    keys = tmp_path / "keys"
    keys.mkdir()
    (keys / "ed25519_private.key").write_bytes(sk)
    (keys / "ed25519_public.key").write_bytes(pk)
    return keys / "ed25519_private.key", keys / "ed25519_public.key"
