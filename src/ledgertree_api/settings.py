from __future__ import annotations
from pydantic_settings import BaseSettings
from pydantic import Field


class Settings(BaseSettings):
    # plain | tagged (see crypto.NodeHasher)
    hash_scheme: str = Field(default="plain", alias="LEDGERTREE_HASH_SCHEME")

    signing_key_path: str = Field(
        default="./keys/ed25519_private.key", alias="LEDGERTREE_SIGNING_KEY_PATH"
    )
    signing_pubkey_path: str = Field(
        default="./keys/ed25519_public.key", alias="LEDGERTREE_SIGNING_PUBKEY_PATH"
    )
    allow_dev_keygen: bool = Field(default=False, alias="LEDGERTREE_ALLOW_DEV_KEYGEN")

    # Upper bound on leaves accepted by one HTTP request
    max_leaves: int = Field(default=65536, alias="LEDGERTREE_MAX_LEAVES")

    # Global request size limit enforced by middleware (bytes)
    max_request_bytes: int = Field(
        default=4194304, alias="LEDGERTREE_MAX_REQUEST_BYTES"
    )

    log_level: str = Field(default="INFO", alias="LEDGERTREE_LOG_LEVEL")

    class Config:
        env_file = ".env"
        case_sensitive = False


settings = Settings()  # load at import
