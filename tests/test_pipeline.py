from __future__ import annotations

import json
from pathlib import Path

import pytest
from eth_utils import to_checksum_address

from verify_services.adapters.chain_rpc import ChainRegistry
from verify_services.errors import (CompilationError, InputValidationError, NoMatch,
                                    NoMetadataFound, SourceNotFound)
from verify_services.models.verify import CheckedContract, InputData, Match, MatchStatus
from verify_services.services.verify import Pipeline
from verify_services.storage.fs import FileRepository
from verify_services.storage.layout import RepositoryWriter, StorageLayout

from tests.fixtures import (ADDR1, ADDR2, ADDR3, DEPLOYED_OTHER_TRAILER, SOURCE_A, SOURCE_LIB,
                      FakeCompiler, FakeReader, make_metadata, metadata_text)

CHECKSUMMED = to_checksum_address(ADDR1)


def _input(root: Path, **kw) -> InputData:
    base = dict(
        repository=str(root),
        chain="mainnet",
        addresses=[ADDR1],
        files=[metadata_text(), SOURCE_A],
    )
    base.update(kw)
    return InputData(**base)


def _files(root: Path):
    return sorted(str(p.relative_to(root)) for p in root.rglob("*") if p.is_file())


@pytest.mark.asyncio
async def test_perfect_match_writes_content_and_address_paths(pipeline: Pipeline, repo_root: Path):
    match = await pipeline.inject(_input(repo_root))

    assert match == Match(address=CHECKSUMMED, status=MatchStatus.perfect)
    files = _files(repo_root)
    assert f"contracts/full_match/1/{CHECKSUMMED}/metadata.json" in files
    assert f"contracts/full_match/1/{CHECKSUMMED}/sources/A.sol" in files
    ipfs = [f for f in files if f.startswith("ipfs/")]
    assert len(ipfs) == 1
    metadata = (repo_root / ipfs[0]).read_text()
    assert json.loads(metadata) == {"compiled": "A.sol", "contract": "A"}
    assert (repo_root / f"contracts/full_match/1/{CHECKSUMMED}/metadata.json").read_text() == metadata
    assert (repo_root / f"contracts/full_match/1/{CHECKSUMMED}/sources/A.sol").read_text() == SOURCE_A


@pytest.mark.asyncio
async def test_partial_match_writes_only_partial_path(compiler, repo_root: Path):
    reader = FakeReader({ADDR1: DEPLOYED_OTHER_TRAILER})
    pipeline = Pipeline(ChainRegistry({"mainnet": reader}), compiler, RepositoryWriter(FileRepository()))

    match = await pipeline.inject(_input(repo_root))

    assert match.status is MatchStatus.partial
    assert _files(repo_root) == [
        f"contracts/partial_match/1/{CHECKSUMMED}/metadata.json",
        f"contracts/partial_match/1/{CHECKSUMMED}/sources/A.sol",
    ]


@pytest.mark.asyncio
async def test_no_match_lists_target_and_every_address(compiler, repo_root: Path):
    reader = FakeReader({ADDR1: "0x", ADDR2: "0x6080", ADDR3: "0x"})
    pipeline = Pipeline(ChainRegistry({"mainnet": reader}), compiler, RepositoryWriter(FileRepository()))

    with pytest.raises(NoMatch) as exc:
        await pipeline.inject(_input(repo_root, addresses=[ADDR1, ADDR2, ADDR3]))

    err = exc.value
    assert err.target == {"A.sol": "A"}
    assert err.addresses == [to_checksum_address(a) for a in (ADDR1, ADDR2, ADDR3)]
    assert err.message.startswith("Could not match on-chain deployed bytecode to recompiled bytecode for:\n")
    assert '"A.sol": "A"' in err.message
    assert all(a in err.message for a in err.addresses)
    assert err.status_code == 404
    assert _files(repo_root) == []


@pytest.mark.asyncio
async def test_missing_source_fails_before_compiling(pipeline: Pipeline, compiler, repo_root: Path):
    files = [metadata_text({"A.sol": SOURCE_A, "L.sol": SOURCE_LIB}), SOURCE_A]

    with pytest.raises(SourceNotFound) as exc:
        await pipeline.inject(_input(repo_root, files=files))

    assert exc.value.file_name == "L.sol"
    assert exc.value.keccak256.startswith("0x")
    assert compiler.calls == []
    assert _files(repo_root) == []


@pytest.mark.asyncio
async def test_compilation_error_leaves_repository_untouched(reader, repo_root: Path):
    compiler = FakeCompiler(errors=[{"severity": "error", "formattedMessage": "TypeError: nope"}])
    pipeline = Pipeline(ChainRegistry({"mainnet": reader}), compiler, RepositoryWriter(FileRepository()))

    with pytest.raises(CompilationError):
        await pipeline.inject(_input(repo_root))

    assert reader.calls == []
    assert _files(repo_root) == []


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "overrides",
    [
        {"chain": None},
        {"chain": "  "},
        {"chain": "notachain"},
        {"addresses": []},
        {"addresses": [ADDR1, None]},
        {"addresses": ["0x1234"]},
    ],
)
async def test_input_validation(pipeline: Pipeline, reader, repo_root: Path, overrides):
    with pytest.raises(InputValidationError):
        await pipeline.inject(_input(repo_root, **overrides))
    assert reader.calls == []


@pytest.mark.asyncio
async def test_no_metadata_in_upload(pipeline: Pipeline, repo_root: Path):
    with pytest.raises(NoMetadataFound):
        await pipeline.inject(_input(repo_root, files=[SOURCE_A]))


@pytest.mark.asyncio
async def test_selection_failure_is_tagged_with_its_stage(pipeline: Pipeline, repo_root: Path):
    doc = make_metadata({"A.sol": SOURCE_A})
    doc["sources"]["A.sol"] = "0xdeadbeef"
    bundle = CheckedContract(metadata=doc, sources={"A.sol": SOURCE_A})

    with pytest.raises(NoMetadataFound) as exc:
        await pipeline.inject(_input(repo_root, files=[bundle, SOURCE_A]))

    assert exc.value.details["stage"] == "select_metadata"
    assert exc.value.details["loc"] == "[FIND]"


@pytest.mark.asyncio
async def test_later_failures_name_their_stage(reader, repo_root: Path):
    compiler = FakeCompiler(errors=[{"severity": "error", "formattedMessage": "TypeError: nope"}])
    pipeline = Pipeline(ChainRegistry({"mainnet": reader}), compiler, RepositoryWriter(FileRepository()))

    with pytest.raises(CompilationError) as exc:
        await pipeline.inject(_input(repo_root))

    assert exc.value.details["stage"] == "compile"

@pytest.mark.asyncio
async def test_chain_by_numeric_id(pipeline: Pipeline, repo_root: Path):
    match = await pipeline.inject(_input(repo_root, chain="1"))
    assert match.status is MatchStatus.perfect
    assert (repo_root / f"contracts/full_match/1/{CHECKSUMMED}/metadata.json").is_file()


@pytest.mark.asyncio
async def test_legacy_layout(reader, compiler, repo_root: Path):
    writer = RepositoryWriter(FileRepository(), StorageLayout.LEGACY)
    pipeline = Pipeline(ChainRegistry({"mainnet": reader}), compiler, writer)

    await pipeline.inject(_input(repo_root))

    files = _files(repo_root)
    assert f"contract/mainnet/{CHECKSUMMED}/metadata.json" in files
    assert f"contract/mainnet/{CHECKSUMMED}/sources/A.sol" in files
    assert any(f.startswith("ipfs/") for f in files)


@pytest.mark.asyncio
async def test_prefetched_bytecode_skips_chain_reads(pipeline: Pipeline, reader, repo_root: Path):
    match = await pipeline.inject(_input(repo_root, addresses=[ADDR2], bytecode=DEPLOYED_OTHER_TRAILER))

    assert match == Match(address=to_checksum_address(ADDR2), status=MatchStatus.partial)
    assert reader.calls == []


@pytest.mark.asyncio
async def test_prefetched_bytecode_without_match(pipeline: Pipeline, repo_root: Path):
    with pytest.raises(NoMatch):
        await pipeline.inject(_input(repo_root, bytecode="0x6080"))


@pytest.mark.asyncio
async def test_checked_contract_input(pipeline: Pipeline, repo_root: Path):
    bundle = CheckedContract(metadata=make_metadata({"A.sol": SOURCE_A}), sources={"contracts/A.sol": SOURCE_A})

    match = await pipeline.inject(_input(repo_root, files=[bundle]))

    assert match.status is MatchStatus.perfect
    # stored under the metadata's own file name
    assert (repo_root / f"contracts/full_match/1/{CHECKSUMMED}/sources/A.sol").is_file()


@pytest.mark.asyncio
async def test_checked_contract_sources_are_still_hash_checked(pipeline: Pipeline, repo_root: Path):
    bundle = CheckedContract(metadata=make_metadata({"A.sol": SOURCE_A}), sources={"A.sol": SOURCE_A + "//"})
    with pytest.raises(SourceNotFound):
        await pipeline.inject(_input(repo_root, files=[bundle]))


@pytest.mark.asyncio
async def test_every_descriptor_is_processed_and_last_match_returned(pipeline: Pipeline, compiler, repo_root: Path):
    files = [
        metadata_text(),
        metadata_text({"L.sol": SOURCE_LIB}, target={"L.sol": "L"}),
        SOURCE_A,
        SOURCE_LIB,
    ]

    match = await pipeline.inject(_input(repo_root, files=files))

    assert [c[1]["settings"]["outputSelection"] for c in compiler.calls] == [
        {"A.sol": {"A": ["evm.bytecode", "evm.deployedBytecode", "metadata"]}},
        {"L.sol": {"L": ["evm.bytecode", "evm.deployedBytecode", "metadata"]}},
    ]
    assert match.status is MatchStatus.perfect


@pytest.mark.asyncio
async def test_reverification_is_idempotent(pipeline: Pipeline, repo_root: Path):
    await pipeline.inject(_input(repo_root))
    first = {f: (repo_root / f).read_bytes() for f in _files(repo_root)}

    await pipeline.inject(_input(repo_root))

    assert {f: (repo_root / f).read_bytes() for f in _files(repo_root)} == first


@pytest.mark.asyncio
async def test_batch_isolates_failures(pipeline: Pipeline, repo_root: Path):
    good = _input(repo_root)
    bad = _input(repo_root, files=[SOURCE_A])
    invalid = _input(repo_root, chain=None)

    results = await pipeline.inject_batch([good, bad, invalid])

    assert results[0] == Match(address=CHECKSUMMED, status=MatchStatus.perfect)
    assert isinstance(results[1], NoMetadataFound)
    assert isinstance(results[2], InputValidationError)
