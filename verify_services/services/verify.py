"""
Verification pipeline: select metadata, rebuild sources, recompile, match
against on-chain code and persist verified artifacts.

Each selected metadata descriptor moves through

    SELECT_METADATA -> ASSEMBLE_SOURCES -> COMPILE -> MATCH
        -> STORE_FULL | STORE_PARTIAL -> DONE

or stops in FAILED with the first error raised. Storage is always the last
stage, so a failed submission leaves the repository untouched.

Collaborators are passed in, never looked up globally:

- ChainRegistry   : chain id -> ChainReader, shared read-only by all runs
- Compiler        : standard-JSON solc
- RepositoryWriter: path scheme (current or legacy) over a Repository
"""

from __future__ import annotations

import asyncio
from enum import Enum
from typing import List, Optional, Sequence, Tuple, Union

from ..adapters.chain_rpc import ChainRegistry, build_registry, resolve_chain
from ..adapters.code_hash import RawFile
from ..adapters.solc_compile import Compiler, SolcCompiler
from ..errors import ApiError, InputValidationError, NoMatch, NoMetadataFound
from ..logging import bind_submission_context, clear_submission_context, get_logger
from ..models.common import checksum_address
from ..models.metadata import SOLIDITY, MetadataDescriptor
from ..models.verify import NO_MATCH, CheckedContract, InputData, Match, MatchStatus
from ..storage.fs import FileRepository
from ..storage.layout import RepositoryWriter
from .compile import recompile
from .locator import locate
from .matcher import BytecodeMatcher
from .sources import assemble, select_metadata

log = get_logger(__name__)


class Stage(str, Enum):
    SELECT_METADATA = "select_metadata"
    ASSEMBLE_SOURCES = "assemble_sources"
    COMPILE = "compile"
    MATCH = "match"
    STORE_FULL = "store_full"
    STORE_PARTIAL = "store_partial"
    DONE = "done"
    FAILED = "failed"


Candidate = Tuple[MetadataDescriptor, List[RawFile]]


def validate_input(data: InputData) -> Tuple[str, List[str]]:
    """Return (chain, checksummed addresses) or raise InputValidationError."""
    chain = (data.chain or "").strip()
    if not chain:
        raise InputValidationError("Missing chain", details={"loc": "[INJECT]"})
    resolve_chain(chain)

    if not data.addresses:
        raise InputValidationError("Missing address", details={"loc": "[INJECT]", "chain": chain})
    addresses: List[str] = []
    for raw in data.addresses:
        if not raw:
            raise InputValidationError("Missing address", details={"loc": "[INJECT]", "chain": chain})
        try:
            addresses.append(checksum_address(raw))
        except ValueError:
            raise InputValidationError(
                f"Invalid address: {raw}", details={"loc": "[INJECT]", "chain": chain, "address": raw}
            ) from None
    return chain, addresses


def collect_candidates(files: Sequence[Union[str, CheckedContract]]) -> List[Candidate]:
    """
    Pair each metadata descriptor with the uploads its sources may come from.

    Raw uploads go through metadata selection; a CheckedContract contributes
    its own metadata and is assembled against its own source texts. Bundles
    whose metadata is not shaped like compiler metadata are skipped.
    """
    raw: List[RawFile] = [f for f in files if isinstance(f, (str, bytes))]
    candidates: List[Candidate] = []
    for bundle in files:
        if isinstance(bundle, CheckedContract):
            try:
                descriptor = MetadataDescriptor.from_document(bundle.metadata)
            except ValueError as e:
                log.warning("bundle_skipped", loc="[FIND]", reason=str(e))
                continue
            if descriptor.language == SOLIDITY:
                candidates.append((descriptor, list(bundle.sources.values())))

    if raw:
        try:
            selected = select_metadata(raw)
        except NoMetadataFound:
            if not candidates:
                raise
            selected = []
        candidates.extend((descriptor, raw) for descriptor in selected)

    if not candidates:
        raise NoMetadataFound()
    return candidates


def _record_failure(stage: Stage, err: ApiError) -> None:
    """Tag `err` with the stage it stopped in and log the move to FAILED."""
    err.details = {**(err.details or {}), "stage": stage.value}
    log.warning(
        "inject_failed",
        loc=err.loc or "[INJECT]",
        stage=Stage.FAILED.value,
        failed_in=stage.value,
        code=err.code,
        error=err.message,
    )


class Pipeline:
    def __init__(
        self,
        registry: ChainRegistry,
        compiler: Compiler,
        writer: RepositoryWriter,
        *,
        read_timeout_s: Optional[float] = None,
    ):
        self.registry = registry
        self.compiler = compiler
        self.writer = writer
        self.matcher = BytecodeMatcher(registry, read_timeout_s=read_timeout_s)

    async def inject(self, data: InputData) -> Match:
        """
        Verify one submission. Every selected descriptor is processed in order;
        the Match of the last one is returned. The first error aborts the run.
        """
        chain, addresses = validate_input(data)
        bind_submission_context(chain=chain)
        try:
            try:
                candidates = collect_candidates(data.files)
            except ApiError as e:
                _record_failure(Stage.SELECT_METADATA, e)
                raise
            match = NO_MATCH
            for descriptor, pool in candidates:
                match = await self._inject_one(data.repository, chain, addresses, descriptor, pool, data.bytecode)
            return match
        finally:
            clear_submission_context("chain")

    async def inject_batch(self, items: Sequence[InputData]) -> List[Union[Match, ApiError]]:
        """
        Verify independent submissions concurrently. Each entry of the result is
        that submission's Match or the ApiError that stopped it.
        """
        results = await asyncio.gather(*(self.inject(item) for item in items), return_exceptions=True)
        out: List[Union[Match, ApiError]] = []
        for result in results:
            if isinstance(result, BaseException) and not isinstance(result, ApiError):
                raise result
            out.append(result)
        return out

    async def _inject_one(
        self,
        root: str,
        chain: str,
        addresses: List[str],
        descriptor: MetadataDescriptor,
        pool: List[RawFile],
        bytecode: Optional[str],
    ) -> Match:
        stage = Stage.ASSEMBLE_SOURCES
        try:
            sources = assemble(descriptor, pool)

            stage = Stage.COMPILE
            file_name, contract_name = descriptor.compilation_target()
            compiled = await recompile(self.compiler, descriptor, sources)

            stage = Stage.MATCH
            if bytecode:
                match = self.matcher.compare_prefetched(addresses[0], bytecode, compiled.deployed_bytecode)
            else:
                match = await self.matcher.match_address(chain, addresses, compiled.deployed_bytecode)
            if not match.matched:
                raise NoMatch({file_name: contract_name}, chain, addresses)

            if match.status is MatchStatus.perfect:
                stage = Stage.STORE_FULL
                content = locate(compiled.deployed_bytecode, chain=chain, address=match.address)
                await self.writer.store_full(root, chain, match.address, compiled.metadata, sources, content.path)
            else:
                stage = Stage.STORE_PARTIAL
                await self.writer.store_partial(root, chain, match.address, compiled.metadata, sources)
        except ApiError as e:
            _record_failure(stage, e)
            raise

        log.info(
            "inject_done",
            loc="[INJECT]",
            stage=Stage.DONE.value,
            address=match.address,
            status=match.status.value if match.status else None,
            target=f"{file_name}:{contract_name}",
        )
        return match

    async def aclose(self) -> None:
        await self.registry.aclose()


def build_pipeline(settings) -> Pipeline:
    """Wire the default collaborators from Settings."""
    writer = RepositoryWriter(FileRepository(), settings.storage_layout)
    return Pipeline(
        build_registry(settings),
        SolcCompiler(),
        writer,
        read_timeout_s=settings.read_timeout_s,
    )


__all__ = [
    "Stage",
    "Pipeline",
    "validate_input",
    "collect_candidates",
    "build_pipeline",
]
