from __future__ import annotations

from pathlib import Path
from typing import AsyncIterator

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from verify_services.adapters.chain_rpc import ChainRegistry
from verify_services.app import create_app
from verify_services.config import Settings
from verify_services.services.verify import Pipeline
from verify_services.storage.fs import FileRepository
from verify_services.storage.layout import RepositoryWriter, StorageLayout

from tests.fixtures import ADDR1, DEPLOYED, FakeCompiler, FakeReader


# ----------------------------
# Fixtures
# ----------------------------


@pytest.fixture
def repo_root(tmp_path: Path) -> Path:
    root = tmp_path / "repository"
    root.mkdir()
    return root


@pytest.fixture
def reader() -> FakeReader:
    return FakeReader({ADDR1: DEPLOYED})


@pytest.fixture
def compiler() -> FakeCompiler:
    return FakeCompiler()


@pytest.fixture
def registry(reader: FakeReader) -> ChainRegistry:
    return ChainRegistry({"mainnet": reader})


@pytest.fixture
def pipeline(registry: ChainRegistry, compiler: FakeCompiler) -> Pipeline:
    return Pipeline(registry, compiler, RepositoryWriter(FileRepository()), read_timeout_s=1.0)


@pytest.fixture
def settings(repo_root: Path) -> Settings:
    return Settings(repository_path=repo_root, offline=True, storage_layout=StorageLayout.CURRENT, log_level="WARNING")


@pytest.fixture
def app(settings: Settings, pipeline: Pipeline) -> FastAPI:
    return create_app(settings, pipeline=pipeline)


@pytest.fixture
async def aclient(app: FastAPI) -> AsyncIterator[AsyncClient]:
    """
    Async HTTP client bound to the ASGI app; no server is started.
    """
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client
