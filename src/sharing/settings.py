"""Configuration for short-code generation and shareable list decoding.

Reads values from environment variables or a .env file (shared with catalog).
The decode limits bound how much work an untrusted share token can cause.
"""

from __future__ import annotations

from pathlib import Path

from dotenv import load_dotenv
from pydantic_settings import BaseSettings
from pydantic import Field

load_dotenv(override=True)

DEFAULT_ALPHABET = "abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789"


class Settings(BaseSettings):
    """Runtime knobs for the registry generator and the list codec.

    Fields
    ------
    registry_file
        Published key <-> code artifact.
    code_alphabet
        Characters a short code is drawn from.
    code_length
        Fixed length of every short code.
    capacity_headroom
        Usage ratio above which generation warns that codes are running out.
    max_token_length
        Longest share token accepted before decompression.
    max_payload_bytes
        Largest decompressed payload accepted.
    max_items
        Most list entries a single token may carry.
    max_title_length
        Upper bound for free-text titles on persisted records.
    key_min_length / key_max_length
        Bounds on catalog key length for persisted records.
    share_base_url
        Page that renders a shared list.
    """

    registry_file: Path = Field(Path("data/film-key-mappings.json"), env="REGISTRY_FILE")
    code_alphabet: str = Field(DEFAULT_ALPHABET, env="CODE_ALPHABET")
    code_length: int = Field(3, env="CODE_LENGTH")
    capacity_headroom: float = Field(0.8, env="CAPACITY_HEADROOM")

    max_token_length: int = Field(100_000, env="MAX_TOKEN_LENGTH")
    max_payload_bytes: int = Field(500_000, env="MAX_PAYLOAD_BYTES")
    max_items: int = Field(10_000, env="MAX_ITEMS")
    max_title_length: int = Field(500, env="MAX_TITLE_LENGTH")
    key_min_length: int = Field(1, env="KEY_MIN_LENGTH")
    key_max_length: int = Field(200, env="KEY_MAX_LENGTH")

    share_base_url: str = Field(
        "http://localhost:3000/shared-favorites", env="SHARE_BASE_URL"
    )

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


settings = Settings()
