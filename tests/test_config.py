from __future__ import annotations

import pytest

from verify_services.config import DEFAULT_CHAINS, Settings
from verify_services.storage.layout import StorageLayout

ENV_VARS = ("CHAINS", "RPC_URLS", "STORAGE_LAYOUT", "INFURA_ID", "LOCAL_CHAIN_URL", "OFFLINE", "REPOSITORY_PATH")


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def test_defaults():
    cfg = Settings()
    assert cfg.chains == DEFAULT_CHAINS
    assert cfg.rpc_urls == {}
    assert cfg.storage_layout is StorageLayout.CURRENT
    assert cfg.offline is False


@pytest.mark.parametrize("raw", ["mainnet, goerli", '["mainnet", "goerli"]'])
def test_chains_csv_or_json(monkeypatch, raw):
    monkeypatch.setenv("CHAINS", raw)
    assert Settings().chains == ["mainnet", "goerli"]


def test_rpc_urls_json(monkeypatch):
    monkeypatch.setenv("RPC_URLS", '{"goerli": "http://127.0.0.1:8545", "1": "https://rpc.example"}')
    assert Settings().rpc_urls == {"goerli": "http://127.0.0.1:8545", "1": "https://rpc.example"}


def test_legacy_layout_from_env(monkeypatch):
    monkeypatch.setenv("STORAGE_LAYOUT", "LEGACY")
    assert Settings().storage_layout is StorageLayout.LEGACY


def test_offline_and_repository(monkeypatch, tmp_path):
    monkeypatch.setenv("OFFLINE", "true")
    monkeypatch.setenv("REPOSITORY_PATH", str(tmp_path))
    cfg = Settings()
    assert cfg.offline is True
    assert cfg.repository_path == tmp_path
