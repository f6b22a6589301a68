from __future__ import annotations

"""
Configuration loader for Verify Services.

- Reads environment variables (optionally from `.env`) via pydantic-settings.
- Exposes a cached `load_config()` accessor.

Environment variables:
    REPOSITORY_PATH    (str, default "./repository")  root of the verified repository
    INFURA_ID          (str, optional)                substituted into hosted RPC URL templates
    RPC_URLS           (json mapping, optional)       {"mainnet": "https://...", "5": "http://..."}
    LOCAL_CHAIN_URL    (str, optional)                enables the `localhost` chain
    CHAINS             (csv|json list)                chains to build readers for
    RPC_TIMEOUT_S      (float, default 10)            HTTP timeout per JSON-RPC request
    RPC_MAX_RETRIES    (int, default 2)               transport retries per JSON-RPC call
    READ_TIMEOUT_S     (float, default 20)            bound on one whole eth_getCode read
    STORAGE_LAYOUT     ("current"|"legacy")           on-disk directory scheme
    OFFLINE            (bool, default False)          build no chain readers
    LOG_LEVEL          (str, default "INFO")

Notes
-----
- Lists accept comma-separated strings or JSON arrays.
- RPC_URLS must be JSON if provided.
"""

import json
from functools import lru_cache
from pathlib import Path
from typing import Annotated, Dict, List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

from .storage.layout import StorageLayout

DEFAULT_CHAINS = ["mainnet", "ropsten", "rinkeby", "kovan", "goerli"]


def _parse_list(val: Optional[str | List[str]], *, default: List[str]) -> List[str]:
    if val is None:
        return list(default)
    if isinstance(val, list):
        return [str(x) for x in val]
    s = val.strip()
    if not s:
        return []
    if s.startswith("[") and s.endswith("]"):
        try:
            return [str(x) for x in json.loads(s)]
        except ValueError:
            pass
    return [x.strip() for x in s.split(",") if x.strip()]


class Settings(BaseSettings):
    repository_path: Path = Field(Path("./repository"), description="Root of the verified repository")
    infura_id: Optional[str] = Field(default=None, description="Infura project id for hosted chains")
    rpc_urls: Dict[str, str] = Field(default_factory=dict, description="Per-chain RPC URL overrides")
    local_chain_url: Optional[str] = Field(default=None, description="RPC URL of a local dev chain")
    chains: Annotated[List[str], NoDecode] = Field(default_factory=lambda: list(DEFAULT_CHAINS))
    rpc_timeout_s: float = Field(10.0, gt=0)
    rpc_max_retries: int = Field(2, ge=0)
    read_timeout_s: float = Field(20.0, gt=0)
    storage_layout: StorageLayout = StorageLayout.CURRENT
    offline: bool = False
    log_level: str = Field("INFO", description="Logging level (DEBUG, INFO, WARNING, ERROR)")

    model_config = SettingsConfigDict(
        env_prefix="", env_file=".env", case_sensitive=False, extra="ignore"
    )

    @field_validator("chains", mode="before")
    @classmethod
    def _coerce_chains(cls, v):
        return _parse_list(v, default=DEFAULT_CHAINS)

    @field_validator("rpc_urls", mode="before")
    @classmethod
    def _parse_rpc_urls(cls, v):
        if v is None:
            return {}
        if isinstance(v, str):
            s = v.strip()
            if not s:
                return {}
            try:
                data = json.loads(s)
            except ValueError as e:
                raise ValueError("RPC_URLS must be a JSON mapping of chain -> url") from e
            if not isinstance(data, dict):
                raise ValueError("RPC_URLS must be a JSON mapping of chain -> url")
            return {str(k): str(u) for k, u in data.items()}
        return v

    @field_validator("storage_layout", mode="before")
    @classmethod
    def _coerce_layout(cls, v):
        return v.strip().lower() if isinstance(v, str) else v


@lru_cache(maxsize=1)
def load_config() -> Settings:
    """Return cached settings instance."""
    return Settings()  # type: ignore[call-arg]


__all__ = ["Settings", "DEFAULT_CHAINS", "load_config"]
