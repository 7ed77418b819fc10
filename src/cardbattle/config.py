"""Configuration for the card battle ledger."""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings, read from ``CARDBATTLE_*`` variables or ``.env``."""

    model_config = SettingsConfigDict(
        env_prefix="CARDBATTLE_", env_file=".env", env_file_encoding="utf-8"
    )

    database_url: str = Field(
        default="sqlite:///cardbattle.db", description="SQLAlchemy URL of the ledger store"
    )
    database_echo: bool = Field(default=False, description="Echo SQL statements")
    database_pool_size: int = Field(default=5, ge=1)
    database_max_overflow: int = Field(default=10, ge=0)

    authority_address: str = Field(
        default="0xf39fd6e51aad88f6f4ce6ab8827279cfffb92266",
        description="Owner installed on first deploy; signs battle outcomes",
    )
    nft_contract_address: str = Field(
        default="0xd652eb6b97b268489c5c4a95606e31ecade677f6",
        description="NFT contract whose ownership the ledger checks",
    )
    contract_name: str = Field(default="CardBattleGame", description="Signing domain name")
    contract_version: str = Field(default="1", description="Signing domain version")
    chain_id: int = Field(default=31337, ge=1, description="Signing domain chain id")
    verifying_contract: str = Field(
        default="0x5fbdb2315678afecb367f032d93f642f64180aa3",
        description="Address the signing domain is bound to",
    )

    require_registered_creator: bool = Field(
        default=False,
        description="Reject battle registration from addresses that never registered",
    )
    cors_origins: list[str] = Field(
        default_factory=lambda: ["http://localhost:5173", "http://127.0.0.1:5173"],
        description="Origins allowed to call the HTTP API",
    )
    log_level: str = Field(default="INFO", description="Root log level for the dev server")


@lru_cache
def get_settings() -> Settings:
    """Return a cached Settings instance."""

    return Settings()
